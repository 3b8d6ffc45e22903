"""
===============================================================================
WORKFLOW SUPPORT HELPERS (Shared Guards / Transaction Helpers)
===============================================================================

Name:
    Workflow support helpers

Business Goal:
    Centralizar las guardas y pasos que TODOS los casos de uso mutantes
    comparten, para que ninguno re-implemente chequeos de permisos,
    escrituras compare-and-set o el par (historial + traza).

-------------------------------------------------------------------------------
CRC CARD (Functions-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Component:
    workflow_support helpers (module-level functions)

Responsibilities:
    - Resolver un documento y autorizar la acción sobre él (single entry point
      del AuthorizationEngine).
    - Bloquear el documento dentro de la transacción y verificar su versión.
    - Persistir con compare-and-set y registrar historial + TraceEvent.
    - Traducir fallas transaccionales a WorkflowError.
    - Construir errores consistentes.

Collaborators:
    - domain.authorization.AuthorizationEngine
    - domain.repositories.DocumentReader / WorkflowTransaction
    - crosscutting.exceptions.DatabaseError
    - workflow_results: WorkflowError, WorkflowErrorCode
===============================================================================
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Final, Tuple
from uuid import UUID, uuid4

from ...crosscutting.exceptions import DatabaseError, DuplicateKeyError
from ...domain.audit import TraceAction, TraceEvent
from ...domain.authorization import AuthorizationEngine
from ...domain.entities import Actor, Document, DocumentStatus, StatusChange
from ...domain.permissions import Action
from ...domain.repositories import DocumentReader, WorkflowTransaction
from ...domain.rules import ResourceType
from .workflow_results import WorkflowError, WorkflowErrorCode

logger = logging.getLogger(__name__)

RESOURCE_DOCUMENT: Final[str] = "Document"
RESOURCE_DERIVATION: Final[str] = "Derivation"
RESOURCE_AREA: Final[str] = "Area"
RESOURCE_ROLE: Final[str] = "Role"
RESOURCE_RULE: Final[str] = "ContextualPermissionRule"

_MSG_FORBIDDEN: Final[str] = "Access denied."
_MSG_STALE: Final[str] = (
    "Document was modified concurrently. Re-read its state and retry."
)
_MSG_INTERNAL: Final[str] = "Internal error. The operation was not applied."


# =============================================================================
# Transaction aborts (raised inside a transaction to force rollback)
# =============================================================================


class StaleDocumentError(Exception):
    """El documento cambió desde que se leyó (versión distinta)."""

    def __init__(self, document_id: UUID):
        self.document_id = document_id
        super().__init__(f"stale document {document_id}")


class DocumentMissingError(Exception):
    """El documento desapareció entre la lectura y el bloqueo."""

    def __init__(self, document_id: UUID):
        self.document_id = document_id
        super().__init__(f"document {document_id} vanished")


TRANSACTION_ERRORS: Final = (StaleDocumentError, DocumentMissingError, DatabaseError)

StateGuard = Callable[[Document], "WorkflowError | None"]


def translate_transaction_error(
    exc: Exception, *, operation: str, document_id: UUID | None = None
) -> WorkflowError:
    """
    Traduce una falla que abortó la transacción.

    Debe llamarse desde el bloque except (logger.exception usa exc_info).
    """
    if isinstance(exc, StaleDocumentError):
        logger.info(
            "Concurrent modification detected",
            extra={"operation": operation, "document_id": str(exc.document_id)},
        )
        return conflict(_MSG_STALE, RESOURCE_DOCUMENT)

    if isinstance(exc, DocumentMissingError):
        return not_found(RESOURCE_DOCUMENT)

    if isinstance(exc, DuplicateKeyError):
        logger.info(
            "Unique constraint rejected write",
            extra={"operation": operation, "error": exc.message},
        )
        return conflict(exc.message)

    logger.exception(
        "Workflow transaction aborted",
        extra={
            "operation": operation,
            "document_id": str(document_id) if document_id else None,
            **(exc.log_extra() if isinstance(exc, DatabaseError) else {}),
        },
    )
    return WorkflowError(
        code=WorkflowErrorCode.INTERNAL_ERROR,
        message=_MSG_INTERNAL,
        resource=RESOURCE_DOCUMENT,
    )


# =============================================================================
# Guards
# =============================================================================


def resolve_document_for(
    action: Action,
    *,
    document_id: UUID,
    actor: Actor,
    engine: AuthorizationEngine,
    documents: DocumentReader,
    origin: str | None = None,
    state_guard: StateGuard | None = None,
) -> Tuple[Document | None, WorkflowError | None]:
    """
    Carga el documento, aplica la guarda de estado y autoriza `action`.

    La guarda de estado corre ANTES de la autorización: una acción inválida
    para el estado se rechaza sin importar los permisos del actor.

    Retorna:
      - (document, None) si existe y el actor está autorizado
      - (None, WorkflowError) NOT_FOUND / INVALID_STATE / FORBIDDEN
    """
    document = documents.get_document(document_id)
    if document is None:
        return None, not_found(RESOURCE_DOCUMENT)

    if state_guard is not None:
        state_error = state_guard(document)
        if state_error is not None:
            return None, state_error

    decision = engine.authorize(
        actor,
        action,
        ResourceType.DOCUMENTO,
        document_id,
        origin=origin,
        document=document,
    )
    if not decision.allowed:
        return None, forbidden(RESOURCE_DOCUMENT)

    return document, None


def lock_document(
    tx: WorkflowTransaction, document_id: UUID, *, expected_version: int
) -> Document:
    """
    Relee el documento con bloqueo y verifica que nadie lo cambió.

    Raises:
        DocumentMissingError / StaleDocumentError (abortan la transacción)
    """
    document = tx.documents.get_document(document_id, for_update=True)
    if document is None:
        raise DocumentMissingError(document_id)
    if document.version != expected_version:
        raise StaleDocumentError(document_id)
    return document


def save_document(
    tx: WorkflowTransaction, document: Document, *, at: datetime
) -> None:
    """Escritura compare-and-set: incrementa version y persiste."""
    expected = document.version
    document.touch(at=at)
    if not tx.documents.update_document(document, expected_version=expected):
        raise StaleDocumentError(document.id)


def record_status_change(
    tx: WorkflowTransaction,
    document: Document,
    *,
    previous_status: DocumentStatus | None,
    actor: Actor,
    action: TraceAction,
    observation: str = "",
    at: datetime,
    origin_area_id: UUID | None = None,
    destination_area_id: UUID | None = None,
) -> None:
    """Una fila de historial + exactamente un TraceEvent por transición."""
    tx.status_history.append(
        StatusChange(
            id=uuid4(),
            document_id=document.id,
            previous_status=previous_status,
            new_status=document.status,
            user_id=actor.user_id,
            observation=observation,
            created_at=at,
        )
    )
    append_trace(
        tx,
        document.id,
        actor=actor,
        action=action,
        observation=observation,
        at=at,
        origin_area_id=origin_area_id or document.current_area_id,
        destination_area_id=destination_area_id,
    )


def append_trace(
    tx: WorkflowTransaction,
    document_id: UUID,
    *,
    actor: Actor,
    action: TraceAction,
    at: datetime,
    observation: str = "",
    origin_area_id: UUID | None = None,
    destination_area_id: UUID | None = None,
) -> None:
    tx.traces.append(
        TraceEvent(
            id=uuid4(),
            document_id=document_id,
            user_id=actor.user_id,
            action=action,
            origin_area_id=origin_area_id,
            destination_area_id=destination_area_id,
            observation=observation,
            created_at=at,
        )
    )


def validate_observation(
    observation: str | None, *, max_chars: int
) -> Tuple[str, WorkflowError | None]:
    text = (observation or "").strip()
    if len(text) > max_chars:
        return text, validation_error(
            f"Observation must be at most {max_chars} characters."
        )
    return text, None


# =============================================================================
# Error builders
# =============================================================================


def forbidden(resource: str) -> WorkflowError:
    return WorkflowError(
        code=WorkflowErrorCode.FORBIDDEN, message=_MSG_FORBIDDEN, resource=resource
    )


def not_found(resource: str) -> WorkflowError:
    return WorkflowError(
        code=WorkflowErrorCode.NOT_FOUND,
        message=f"{resource} not found.",
        resource=resource,
    )


def invalid_state(message: str, resource: str = RESOURCE_DOCUMENT) -> WorkflowError:
    return WorkflowError(
        code=WorkflowErrorCode.INVALID_STATE, message=message, resource=resource
    )


def conflict(message: str, resource: str = RESOURCE_DOCUMENT) -> WorkflowError:
    return WorkflowError(
        code=WorkflowErrorCode.CONFLICT, message=message, resource=resource
    )


def validation_error(message: str, resource: str | None = None) -> WorkflowError:
    return WorkflowError(
        code=WorkflowErrorCode.VALIDATION_ERROR, message=message, resource=resource
    )
