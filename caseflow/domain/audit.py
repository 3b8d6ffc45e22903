"""
===============================================================================
TARJETA CRC — domain/audit.py
===============================================================================

Módulo:
    Modelos de Auditoría y Trazabilidad (Dominio)

Responsabilidades:
    - TraceEvent: cadena de procedencia del documento (append-only).
    - UnauthorizedAccessEvent: intento denegado por el motor de autorización.
    - ActionLogEntry: log estructurado de acciones (actor/action/target/metadata).

Colaboradores:
    - domain.repositories: TraceRepository (transaccional) y
      AuditTrailRecorder (sink externo).
    - application.audit_trail: construye y emite eventos.

Notas:
    - Ningún evento se edita ni se borra.
    - TraceEvent sobrevive a la eliminación permanente del documento.
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID


class TraceAction(str, Enum):
    """Vocabulario de acciones registradas en la trazabilidad."""

    RECEPCION = "Recepción"
    ACTUALIZACION = "Actualización"
    CAMBIO_ESTADO = "Cambio de estado"
    DERIVACION = "Derivación"
    RECEPCION_DERIVACION = "Recepción de derivación"
    PAPELERA = "Envío a papelera"
    RESTAURACION = "Restauración"
    ELIMINACION_PERMANENTE = "Eliminación permanente"
    ADJUNTO = "Adjunto"


@dataclass(slots=True)
class TraceEvent:
    """Registro inmutable de una acción que afecta al documento."""

    id: UUID
    document_id: UUID
    user_id: UUID
    action: TraceAction
    origin_area_id: UUID | None = None
    destination_area_id: UUID | None = None
    observation: str = ""
    created_at: datetime | None = None


@dataclass(slots=True)
class UnauthorizedAccessEvent:
    """Intento de acceso denegado."""

    id: UUID
    user_id: UUID | None
    resource_type: str
    resource_id: UUID | None
    action: str
    origin: str | None = None
    reason: str = ""
    created_at: datetime | None = None


@dataclass(slots=True)
class ActionLogEntry:
    """Entrada del log estructurado de acciones."""

    id: UUID
    actor: str
    action: str
    target_id: UUID | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
