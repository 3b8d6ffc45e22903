"""
===============================================================================
USE CASE: Move Document To Trash (Soft Delete)
===============================================================================

Business Goal:
    Enviar un documento a la papelera de forma reversible.

-------------------------------------------------------------------------------
CRC CARD (Class-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Class:
    MoveDocumentToTrashUseCase

Responsibilities:
    - Autorizar ELIMINAR (acá aplican con más frecuencia las reglas
      contextuales ES_CREADOR / MISMA_AREA para usuarios no admin).
    - status = TRASH.
    - Agregar una nota legible al campo observaciones (trash_note_template).
    - Escribir historial + TraceEvent en la misma transacción.

Collaborators:
    - AuthorizationEngine, DocumentReader, WorkflowUnitOfWork
    - domain.lifecycle.can_move_to_trash

Notes:
    - La nota en observaciones NO reemplaza al TraceEvent.
===============================================================================
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Final
from uuid import UUID

from ....domain.audit import TraceAction
from ....domain.authorization import AuthorizationEngine
from ....domain.entities import Actor, Document, DocumentStatus, utcnow
from ....domain.lifecycle import can_move_to_trash
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

logger = logging.getLogger(__name__)

DEFAULT_TRASH_NOTE: Final[str] = (
    "[Movido a papelera por usuario {user_id} el {timestamp}]"
)


def render_trash_note(template: str, *, user_id: UUID, at: datetime) -> str:
    """Nota legible; ValueError si la plantilla usa otros placeholders."""
    try:
        return template.format(user_id=user_id, timestamp=at.isoformat(timespec="seconds"))
    except (KeyError, IndexError, AttributeError, ValueError) as exc:
        raise ValueError(f"Invalid trash note template {template!r}: {exc!r}") from exc


def _trash_guard(document: Document) -> WorkflowError | None:
    if can_move_to_trash(document.status):
        return None
    return invalid_state("Document is already in trash.")


class MoveDocumentToTrashUseCase:
    def __init__(
        self,
        *,
        engine: AuthorizationEngine,
        documents: DocumentReader,
        unit_of_work: WorkflowUnitOfWork,
        recorder: AuditTrailRecorder | None = None,
        note_template: str = DEFAULT_TRASH_NOTE,
    ) -> None:
        self._engine = engine
        self._documents = documents
        self._uow = unit_of_work
        self._recorder = recorder
        # Plantilla inválida: falla al construir, no en cada execute().
        render_trash_note(note_template, user_id=UUID(int=0), at=utcnow())
        self._note_template = note_template

    def execute(
        self,
        *,
        document_id: UUID,
        actor: Actor,
        expected_version: int | None = None,
        origin: str | None = None,
    ) -> DocumentResult:
        document, error = resolve_document_for(
            Action.ELIMINAR,
            document_id=document_id,
            actor=actor,
            engine=self._engine,
            documents=self._documents,
            origin=origin,
            state_guard=_trash_guard,
        )
        if error is not None:
            return DocumentResult(error=error)

        version = expected_version if expected_version is not None else document.version
        now = utcnow()
        note = render_trash_note(self._note_template, user_id=actor.user_id, at=now)

        try:
            with self._uow.transaction() as tx:
                locked = lock_document(tx, document_id, expected_version=version)
                state_error = _trash_guard(locked)
                if state_error is not None:
                    return DocumentResult(error=state_error)

                previous = locked.status
                locked.status = DocumentStatus.TRASH
                locked.append_observation(note)
                save_document(tx, locked, at=now)
                record_status_change(
                    tx,
                    locked,
                    previous_status=previous,
                    actor=actor,
                    action=TraceAction.PAPELERA,
                    observation=note,
                    at=now,
                )
        except TRANSACTION_ERRORS as exc:
            return DocumentResult(
                error=translate_transaction_error(
                    exc, operation="document.trash", document_id=document_id
                )
            )

        emit_action(
            self._recorder,
            action="document.trash",
            actor=actor,
            target_id=document_id,
            metadata={"previous_status": previous},
        )
        return DocumentResult(document=locked)
