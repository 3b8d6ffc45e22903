"""
===============================================================================
USE CASES: Attachment References (add / list)
===============================================================================

Business Goal:
    Asociar archivos a un documento guardando solo la referencia al storage
    externo (los bytes nunca pasan por el motor).

-------------------------------------------------------------------------------
CRC CARD (Class-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Classes:
    AddAttachmentUseCase, ListAttachmentsUseCase

Responsibilities:
    - add: EDITAR; documento fuera de TRASH/ARCHIVED; traza "Adjunto".
    - list: VER.

Collaborators:
    - AuthorizationEngine, DocumentReader, WorkflowUnitOfWork
===============================================================================
"""

from __future__ import annotations

from typing import Final
from uuid import UUID, uuid4

from ....domain.audit import TraceAction
from ....domain.authorization import AuthorizationEngine
from ....domain.entities import (
    Actor,
    AttachmentReference,
    Document,
    DocumentStatus,
    utcnow,
)
from ....domain.permissions import Action
from ....domain.repositories import (
    AuditTrailRecorder,
    DocumentReader,
    WorkflowUnitOfWork,
)
from ...audit_trail import emit_action
from ..workflow_results import AttachmentListResult, AttachmentResult, WorkflowError
from ..workflow_support import (
    TRANSACTION_ERRORS,
    DocumentMissingError,
    append_trace,
    invalid_state,
    resolve_document_for,
    translate_transaction_error,
    validation_error,
)

_CLOSED_STATUSES: Final[frozenset[DocumentStatus]] = frozenset(
    {DocumentStatus.TRASH, DocumentStatus.ARCHIVED}
)


def _open_guard(document: Document) -> WorkflowError | None:
    if document.status in _CLOSED_STATUSES:
        return invalid_state(
            f"Attachments cannot be added in status {document.status.value}."
        )
    return None


class AddAttachmentUseCase:
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
        storage_key: str,
        file_name: str,
        mime_type: str | None = None,
        origin: str | None = None,
    ) -> AttachmentResult:
        storage_key = (storage_key or "").strip()
        file_name = (file_name or "").strip()
        if not storage_key or not file_name:
            return AttachmentResult(
                error=validation_error("'storage_key' and 'file_name' are required.")
            )

        _, error = resolve_document_for(
            Action.EDITAR,
            document_id=document_id,
            actor=actor,
            engine=self._engine,
            documents=self._documents,
            origin=origin,
            state_guard=_open_guard,
        )
        if error is not None:
            return AttachmentResult(error=error)

        now = utcnow()
        attachment = AttachmentReference(
            id=uuid4(),
            document_id=document_id,
            storage_key=storage_key,
            file_name=file_name,
            mime_type=mime_type,
            uploaded_by=actor.user_id,
            created_at=now,
        )

        try:
            with self._uow.transaction() as tx:
                locked = tx.documents.get_document(document_id, for_update=True)
                if locked is None:
                    raise DocumentMissingError(document_id)
                state_error = _open_guard(locked)
                if state_error is not None:
                    return AttachmentResult(error=state_error)

                tx.attachments.add(attachment)
                append_trace(
                    tx,
                    document_id,
                    actor=actor,
                    action=TraceAction.ADJUNTO,
                    at=now,
                    observation=file_name,
                    origin_area_id=locked.current_area_id,
                )
        except TRANSACTION_ERRORS as exc:
            return AttachmentResult(
                error=translate_transaction_error(
                    exc, operation="document.attach", document_id=document_id
                )
            )

        emit_action(
            self._recorder,
            action="document.attach",
            actor=actor,
            target_id=document_id,
            metadata={"attachment_id": attachment.id, "file_name": file_name},
        )
        return AttachmentResult(attachment=attachment)


class ListAttachmentsUseCase:
    def __init__(
        self,
        *,
        engine: AuthorizationEngine,
        documents: DocumentReader,
        unit_of_work: WorkflowUnitOfWork,
    ) -> None:
        self._engine = engine
        self._documents = documents
        self._uow = unit_of_work

    def execute(
        self, *, document_id: UUID, actor: Actor, origin: str | None = None
    ) -> AttachmentListResult:
        _, error = resolve_document_for(
            Action.VER,
            document_id=document_id,
            actor=actor,
            engine=self._engine,
            documents=self._documents,
            origin=origin,
        )
        if error is not None:
            return AttachmentListResult(error=error)

        try:
            with self._uow.transaction() as tx:
                attachments = tx.attachments.list_for_document(document_id)
        except TRANSACTION_ERRORS as exc:
            return AttachmentListResult(
                error=translate_transaction_error(
                    exc, operation="document.attachments", document_id=document_id
                )
            )
        return AttachmentListResult(attachments=attachments)
