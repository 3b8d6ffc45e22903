"""
===============================================================================
TARJETA CRC — domain/entities.py
===============================================================================

Módulo:
    Entidades del Dominio (Actor, Role, Area, Document, Derivation, ...)

Responsabilidades:
    - Definir estructuras centrales del negocio (sin infraestructura).
    - Brindar helpers mínimos para mantener invariantes simples.
    - Mantener tipos claros para casos de uso y repositorios.

Colaboradores:
    - domain.repositories: persisten/recuperan estas entidades.
    - domain.lifecycle: reglas de estado sobre Document.
    - application/usecases: construyen/consumen estas entidades.

Principios:
    - Sin dependencias a DB/FastAPI.
    - Datos + comportamiento mínimo.
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional
from uuid import UUID

from .permissions import PermissionBits, decode_mask, has_bit


def utcnow() -> datetime:
    """Fecha/hora UTC."""
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Identity (read-only for the core)
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Actor:
    """
    Usuario autenticado que actúa en un request.

    Lo provee el colaborador de identidad; el core solo lee rol/área/bloqueo.
    """

    user_id: UUID
    role_id: UUID
    area_id: UUID | None = None
    blocked: bool = False
    failed_attempts: int = 0


@dataclass(frozen=True, slots=True)
class Role:
    """Rol con su máscara de permisos (inmutable durante una decisión)."""

    id: UUID
    name: str
    permissions: int = 0
    description: str = ""
    access_level: int = 0

    def has(self, bit: PermissionBits) -> bool:
        return has_bit(self.permissions, bit)

    @property
    def is_admin(self) -> bool:
        return self.has(PermissionBits.ADMIN)

    def capabilities(self) -> dict[str, bool]:
        return decode_mask(self.permissions)


@dataclass
class Area:
    """Unidad organizacional que puede tener y operar documentos."""

    id: UUID
    name: str
    code: str
    active: bool = True


# ---------------------------------------------------------------------------
# Document
# ---------------------------------------------------------------------------


class DocumentStatus(str, Enum):
    """Estados del ciclo de vida de un documento."""

    RECEIVED = "RECEIVED"
    IN_PROCESS = "IN_PROCESS"
    DERIVED = "DERIVED"
    OBSERVED = "OBSERVED"
    FINALIZED = "FINALIZED"
    ARCHIVED = "ARCHIVED"
    TRASH = "TRASH"


class DocumentPriority(str, Enum):
    NORMAL = "NORMAL"
    ALTA = "ALTA"
    URGENTE = "URGENTE"


@dataclass
class Document:
    """
    Expediente que circula entre áreas.

    Importante:
      - Pertenece a exactamente un área en cada instante (current_area_id).
      - version se incrementa en cada escritura (concurrencia optimista).
      - Los adjuntos (bytes) viven fuera: solo se guardan referencias.
    """

    id: UUID
    registration_number: str
    current_area_id: UUID
    creator_id: UUID
    status: DocumentStatus = DocumentStatus.RECEIVED
    assigned_user_id: Optional[UUID] = None

    # Contenido / metadata de mesa de partes
    intake_desk_id: Optional[UUID] = None
    office_number: Optional[str] = None
    document_date: Optional[date] = None
    origin: Optional[str] = None
    provenance: Optional[str] = None
    content: Optional[str] = None
    observations: str = ""
    priority: DocumentPriority = DocumentPriority.NORMAL
    metadata: Dict[str, Any] = field(default_factory=dict)

    version: int = 1
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def append_observation(self, note: str) -> None:
        """Agrega una nota legible al campo de observaciones."""
        note = note.strip()
        if not note:
            return
        self.observations = (
            f"{self.observations}\n{note}" if self.observations else note
        )

    def touch(self, *, at: datetime | None = None) -> None:
        """Marca una escritura: nueva versión + updated_at."""
        self.version += 1
        self.updated_at = at or utcnow()


@dataclass
class StatusChange:
    """Fila de historial de estados (una por transición)."""

    id: UUID
    document_id: UUID
    previous_status: Optional[DocumentStatus]
    new_status: DocumentStatus
    user_id: UUID
    observation: str = ""
    created_at: Optional[datetime] = None


@dataclass
class AttachmentReference:
    """Referencia a un archivo guardado en el storage externo."""

    id: UUID
    document_id: UUID
    storage_key: str
    file_name: str
    mime_type: Optional[str] = None
    uploaded_by: Optional[UUID] = None
    created_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Derivation
# ---------------------------------------------------------------------------


class DerivationStatus(str, Enum):
    PENDING = "PENDING"
    RECEIVED = "RECEIVED"


@dataclass
class Derivation:
    """Un pase del documento de un área a otra."""

    id: UUID
    document_id: UUID
    origin_area_id: UUID
    destination_area_id: UUID
    derived_by: UUID
    status: DerivationStatus = DerivationStatus.PENDING
    observation: str = ""
    urgent: bool = False
    reason: str = ""
    derived_at: Optional[datetime] = None
    received_at: Optional[datetime] = None
    received_by: Optional[UUID] = None

    @property
    def is_pending(self) -> bool:
        return self.status == DerivationStatus.PENDING

    def mark_received(self, user_id: UUID, *, at: datetime | None = None) -> None:
        self.status = DerivationStatus.RECEIVED
        self.received_by = user_id
        self.received_at = at or utcnow()
