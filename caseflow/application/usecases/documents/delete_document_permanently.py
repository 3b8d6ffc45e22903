"""
===============================================================================
USE CASE: Delete Document Permanently (Hard Delete desde papelera)
===============================================================================

Name:
    Delete Document Permanently Use Case

Business Goal:
    Eliminar definitivamente un documento que ya está en la papelera.

Why (Context / Intención):
    - La pérdida de un expediente es irreversible: solo el bit ADMIN la
      habilita; ninguna regla contextual la delega.
    - La cadena de TraceEvents del documento se conserva siempre y se le
      agrega un evento final de eliminación.

-------------------------------------------------------------------------------
CRC CARD (Class-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Class:
    DeleteDocumentPermanentlyUseCase

Responsibilities:
    - Precondición status == TRASH (INVALID_STATE si no).
    - require_admin (FORBIDDEN + evento de denegación si no).
    - Rechazar (CONFLICT) documentos con derivaciones registradas.
    - Borrar historial de estados, adjuntos y la fila del documento.
    - Agregar TraceEvent "Eliminación permanente".

Collaborators:
    - AuthorizationEngine.require_admin
    - DocumentReader, WorkflowUnitOfWork

-------------------------------------------------------------------------------
FLOW
-------------------------------------------------------------------------------
1) Leer documento (NOT_FOUND si no existe).
2) Guarda de estado TRASH.
3) require_admin.
4) Transacción: bloquear, re-validar, contar derivaciones, borrar, trazar.
5) Log de acción (post-commit).
===============================================================================
"""

from __future__ import annotations

import logging
from typing import Final
from uuid import UUID

from ....domain.audit import TraceAction
from ....domain.authorization import AuthorizationEngine
from ....domain.entities import Actor, Document, utcnow
from ....domain.lifecycle import can_delete_permanently
from ....domain.permissions import Action
from ....domain.repositories import (
    AuditTrailRecorder,
    DocumentReader,
    WorkflowUnitOfWork,
)
from ....domain.rules import ResourceType
from ...audit_trail import emit_action
from ..workflow_results import DeleteDocumentResult, WorkflowError
from ..workflow_support import (
    RESOURCE_DOCUMENT,
    TRANSACTION_ERRORS,
    DocumentMissingError,
    append_trace,
    conflict,
    forbidden,
    invalid_state,
    lock_document,
    not_found,
    translate_transaction_error,
)

logger = logging.getLogger(__name__)

_MSG_HAS_DERIVATIONS: Final[str] = (
    "Document has derivations and cannot be permanently deleted."
)


def _trash_only_guard(document: Document) -> WorkflowError | None:
    if can_delete_permanently(document.status):
        return None
    return invalid_state(
        "Only documents in TRASH can be permanently deleted "
        f"(status {document.status.value})."
    )


class DeleteDocumentPermanentlyUseCase:
    def __init__(
        self,
        *,
        engine: AuthorizationEngine,
        documents: DocumentReader,
        unit_of_work: WorkflowUnitOfWork,
        recorder: AuditTrailRecorder | None = None,
    ) -> None:
        self._engine = engine
        self._documents = documents
        self._uow = unit_of_work
        self._recorder = recorder

    def execute(
        self,
        *,
        document_id: UUID,
        actor: Actor,
        origin: str | None = None,
    ) -> DeleteDocumentResult:
        # ---------------------------------------------------------------------
        # 1) + 2) Existencia y estado.
        # ---------------------------------------------------------------------
        document = self._documents.get_document(document_id)
        if document is None:
            return DeleteDocumentResult(error=not_found(RESOURCE_DOCUMENT))

        state_error = _trash_only_guard(document)
        if state_error is not None:
            return DeleteDocumentResult(error=state_error)

        # ---------------------------------------------------------------------
        # 3) Solo ADMIN: sin fallback contextual.
        # ---------------------------------------------------------------------
        decision = self._engine.require_admin(
            actor, Action.ELIMINAR, ResourceType.DOCUMENTO, document_id, origin=origin
        )
        if not decision.allowed:
            return DeleteDocumentResult(error=forbidden(RESOURCE_DOCUMENT))

        # ---------------------------------------------------------------------
        # 4) Transacción.
        # ---------------------------------------------------------------------
        try:
            with self._uow.transaction() as tx:
                locked = lock_document(
                    tx, document_id, expected_version=document.version
                )
                state_error = _trash_only_guard(locked)
                if state_error is not None:
                    return DeleteDocumentResult(error=state_error)

                if tx.derivations.count_for_document(document_id) > 0:
                    return DeleteDocumentResult(error=conflict(_MSG_HAS_DERIVATIONS))

                removed_history = tx.status_history.delete_for_document(document_id)
                removed_attachments = tx.attachments.delete_for_document(document_id)
                if not tx.documents.delete_document(document_id):
                    raise DocumentMissingError(document_id)

                # La cadena de trazas sobrevive: solo se agrega el evento final.
                append_trace(
                    tx,
                    document_id,
                    actor=actor,
                    action=TraceAction.ELIMINACION_PERMANENTE,
                    at=utcnow(),
                    observation=f"Registro {locked.registration_number}",
                    origin_area_id=locked.current_area_id,
                )
        except TRANSACTION_ERRORS as exc:
            return DeleteDocumentResult(
                error=translate_transaction_error(
                    exc, operation="document.delete_permanently", document_id=document_id
                )
            )

        logger.info(
            "Document permanently deleted",
            extra={
                "document_id": str(document_id),
                "status_history_rows": removed_history,
                "attachments": removed_attachments,
            },
        )

        # ---------------------------------------------------------------------
        # 5) Log de acción.
        # ---------------------------------------------------------------------
        emit_action(
            self._recorder,
            action="document.delete_permanently",
            actor=actor,
            target_id=document_id,
            metadata={"registration_number": locked.registration_number},
        )
        return DeleteDocumentResult(deleted=True)
