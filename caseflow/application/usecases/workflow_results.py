"""
===============================================================================
WORKFLOW USE CASE RESULTS (Shared Result / Error Models)
===============================================================================

Name:
    Workflow Use Case Results

Business Goal:
    Proveer tipos consistentes de resultados y errores para los casos de uso
    de documentos, derivaciones y permisos.

Why (Context / Intención):
    - Los use cases devuelven resultados tipados en lugar de propagar
      excepciones de negocio.
    - El mapeo a HTTP (RFC 7807) es uniforme: un código -> un status.
    - El campo `resource` indica qué recurso falló ("Document", "Area", ...).

-------------------------------------------------------------------------------
CRC CARD (Module-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Component:
    workflow_results models (module)

Responsibilities:
    - Definir WorkflowErrorCode como conjunto estable de categorías.
    - Definir WorkflowError como contrato mínimo de error.
    - Definir DTOs de resultado por caso de uso.

Collaborators:
    - domain.entities / domain.audit / domain.rules
    - interfaces.api.http.error_mapping (code -> HTTP)
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List
from uuid import UUID

from ...domain.audit import TraceEvent
from ...domain.authorization import Decision
from ...domain.entities import (
    AttachmentReference,
    Derivation,
    Document,
    Role,
    StatusChange,
)
from ...domain.rules import ContextualPermissionRule


class WorkflowErrorCode(str, Enum):
    """
    Categorías de error del motor de workflow.

    Códigos:
      - FORBIDDEN: autorización denegada (siempre con evento de auditoría).
      - INVALID_STATE: la acción no es válida para el estado actual.
      - CONFLICT: unicidad, auto-derivación o carrera de concurrencia
        (reintentable tras releer el estado).
      - NOT_FOUND: documento/área/rol/regla inexistente.
      - VALIDATION_ERROR: input faltante o malformado.
      - INTERNAL_ERROR: falla de persistencia; la transacción se abortó.
    """

    FORBIDDEN = "FORBIDDEN"
    INVALID_STATE = "INVALID_STATE"
    CONFLICT = "CONFLICT"
    NOT_FOUND = "NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


@dataclass(frozen=True)
class WorkflowError:
    """
    Error de caso de uso.

    Campos:
      - code: WorkflowErrorCode (categoría estable)
      - message: mensaje humano (UI/logs)
      - resource: nombre del recurso afectado (opcional)
    """

    code: WorkflowErrorCode
    message: str
    resource: str | None = None


@dataclass
class DocumentResult:
    """
    Resultado con un documento.

    Contrato:
      - Éxito: document != None y error == None
      - Falla: document == None y error != None
    """

    document: Document | None = None
    error: WorkflowError | None = None


@dataclass
class DocumentListResult:
    documents: List[Document] = field(default_factory=list)
    error: WorkflowError | None = None


@dataclass
class DeleteDocumentResult:
    deleted: bool = False
    error: WorkflowError | None = None


@dataclass
class DocumentHistoryResult:
    """Historial completo: derivaciones + cambios de estado + trazas."""

    document: Document | None = None
    derivations: List[Derivation] = field(default_factory=list)
    status_history: List[StatusChange] = field(default_factory=list)
    traces: List[TraceEvent] = field(default_factory=list)
    error: WorkflowError | None = None


@dataclass
class DerivationResult:
    derivation: Derivation | None = None
    document: Document | None = None
    error: WorkflowError | None = None


@dataclass
class AttachmentResult:
    attachment: AttachmentReference | None = None
    error: WorkflowError | None = None


@dataclass
class AttachmentListResult:
    attachments: List[AttachmentReference] = field(default_factory=list)
    error: WorkflowError | None = None


@dataclass
class PermissionCheckResult:
    decision: Decision | None = None
    error: WorkflowError | None = None


@dataclass
class BatchPermissionCheckResult:
    decisions: Dict[UUID, Decision] = field(default_factory=dict)
    error: WorkflowError | None = None


@dataclass
class RuleResult:
    rule: ContextualPermissionRule | None = None
    error: WorkflowError | None = None


@dataclass
class RuleListResult:
    rules: List[ContextualPermissionRule] = field(default_factory=list)
    error: WorkflowError | None = None


@dataclass
class RoleListResult:
    roles: List[Role] = field(default_factory=list)
    error: WorkflowError | None = None
