"""
===============================================================================
USE CASE: Change Document Status
===============================================================================

Business Goal:
    Avanzar el documento en su ciclo de vida (en proceso, observado,
    finalizado, archivado) dejando historial y traza de cada transición.

-------------------------------------------------------------------------------
CRC CARD (Class-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Class:
    ChangeDocumentStatusUseCase

Responsibilities:
    - Validar que new_status sea miembro del enum (VALIDATION_ERROR si no).
    - Validar la transición contra domain.lifecycle (INVALID_STATE si no).
    - Autorizar EDITAR.
    - Registrar estado previo: historial + TraceEvent en la misma transacción.

Collaborators:
    - domain.lifecycle: parse_status, can_transition
    - AuthorizationEngine, DocumentReader, WorkflowUnitOfWork

Notes:
    - TRASH y DERIVED no se alcanzan por esta vía (move_to_trash / derive).
===============================================================================
"""

from __future__ import annotations

import logging
from uuid import UUID

from ....domain.audit import TraceAction
from ....domain.authorization import AuthorizationEngine
from ....domain.entities import Actor, Document, DocumentStatus, utcnow
from ....domain.lifecycle import can_transition, parse_status
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
    validate_observation,
    validation_error,
)

logger = logging.getLogger(__name__)


def _transition_guard(target: DocumentStatus):
    def guard(document: Document) -> WorkflowError | None:
        if can_transition(document.status, target):
            return None
        return invalid_state(
            f"Cannot change status from {document.status.value} to {target.value}."
        )

    return guard


class ChangeDocumentStatusUseCase:
    def __init__(
        self,
        *,
        engine: AuthorizationEngine,
        documents: DocumentReader,
        unit_of_work: WorkflowUnitOfWork,
        recorder: AuditTrailRecorder | None = None,
        max_observation_chars: int = 2_000,
    ) -> None:
        self._engine = engine
        self._documents = documents
        self._uow = unit_of_work
        self._recorder = recorder
        self._max_observation_chars = max_observation_chars

    def execute(
        self,
        *,
        document_id: UUID,
        actor: Actor,
        new_status: str | DocumentStatus,
        observation: str | None = None,
        expected_version: int | None = None,
        origin: str | None = None,
    ) -> DocumentResult:
        # 1) new_status debe pertenecer al conjunto enumerado.
        target = parse_status(new_status)
        if target is None:
            allowed = ", ".join(s.value for s in DocumentStatus)
            return DocumentResult(
                error=validation_error(f"'new_status' must be one of: {allowed}")
            )

        note, error = validate_observation(
            observation, max_chars=self._max_observation_chars
        )
        if error is not None:
            return DocumentResult(error=error)

        guard = _transition_guard(target)

        # 2) Guarda de transición + autorización EDITAR.
        document, error = resolve_document_for(
            Action.EDITAR,
            document_id=document_id,
            actor=actor,
            engine=self._engine,
            documents=self._documents,
            origin=origin,
            state_guard=guard,
        )
        if error is not None:
            return DocumentResult(error=error)

        version = expected_version if expected_version is not None else document.version

        # 3) Transacción: estado + historial + traza.
        try:
            with self._uow.transaction() as tx:
                locked = lock_document(tx, document_id, expected_version=version)
                state_error = guard(locked)
                if state_error is not None:
                    return DocumentResult(error=state_error)

                previous = locked.status
                locked.status = target
                now = utcnow()
                save_document(tx, locked, at=now)
                record_status_change(
                    tx,
                    locked,
                    previous_status=previous,
                    actor=actor,
                    action=TraceAction.CAMBIO_ESTADO,
                    observation=note or f"{previous.value} -> {target.value}",
                    at=now,
                )
        except TRANSACTION_ERRORS as exc:
            return DocumentResult(
                error=translate_transaction_error(
                    exc, operation="document.change_status", document_id=document_id
                )
            )

        logger.info(
            "Document status changed",
            extra={
                "document_id": str(document_id),
                "from": previous.value,
                "to": target.value,
            },
        )
        emit_action(
            self._recorder,
            action="document.change_status",
            actor=actor,
            target_id=document_id,
            metadata={"from": previous, "to": target},
        )
        return DocumentResult(document=locked)
