"""
===============================================================================
USE CASE: Restore Document (salida de papelera)
===============================================================================

Class:
    RestoreDocumentUseCase

Rules:
    R1) Solo desde TRASH; en otro estado -> INVALID_STATE sin efectos
        (ni historial, ni traza, ni evento de denegación).
    R2) Requiere EDITAR.
    R3) Vuelve a RECEIVED (estado "activo" inicial).
===============================================================================
"""

from __future__ import annotations

from uuid import UUID

from ....domain.audit import TraceAction
from ....domain.authorization import AuthorizationEngine
from ....domain.entities import Actor, Document, utcnow
from ....domain.lifecycle import RESTORED_STATUS, can_restore
from ....domain.permissions import Action
from ....domain.repositories import (
    AuditTrailRecorder,
    DocumentReader,
    WorkflowUnitOfWork,
)
from ...audit_trail import emit_action
from ..workflow_results import DocumentResult, WorkflowError
from ..workflow_support import (
    TRANSACTION_ERRORS,
    invalid_state,
    lock_document,
    record_status_change,
    resolve_document_for,
    save_document,
    translate_transaction_error,
)


def _restore_guard(document: Document) -> WorkflowError | None:
    if can_restore(document.status):
        return None
    return invalid_state(
        f"Only documents in TRASH can be restored (status {document.status.value})."
    )


class RestoreDocumentUseCase:
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
        expected_version: int | None = None,
        origin: str | None = None,
    ) -> DocumentResult:
        document, error = resolve_document_for(
            Action.EDITAR,
            document_id=document_id,
            actor=actor,
            engine=self._engine,
            documents=self._documents,
            origin=origin,
            state_guard=_restore_guard,
        )
        if error is not None:
            return DocumentResult(error=error)

        version = expected_version if expected_version is not None else document.version

        try:
            with self._uow.transaction() as tx:
                locked = lock_document(tx, document_id, expected_version=version)
                state_error = _restore_guard(locked)
                if state_error is not None:
                    return DocumentResult(error=state_error)

                now = utcnow()
                previous = locked.status
                locked.status = RESTORED_STATUS
                save_document(tx, locked, at=now)
                record_status_change(
                    tx,
                    locked,
                    previous_status=previous,
                    actor=actor,
                    action=TraceAction.RESTAURACION,
                    at=now,
                )
        except TRANSACTION_ERRORS as exc:
            return DocumentResult(
                error=translate_transaction_error(
                    exc, operation="document.restore", document_id=document_id
                )
            )

        emit_action(
            self._recorder,
            action="document.restore",
            actor=actor,
            target_id=document_id,
        )
        return DocumentResult(document=locked)
