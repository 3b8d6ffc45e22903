"""
===============================================================================
USE CASE: Update Document (edición de campos)
===============================================================================

Business Goal:
    Editar los datos de registro de un documento mientras está en trámite.

-------------------------------------------------------------------------------
CRC CARD (Class-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Class:
    UpdateDocumentUseCase

Responsibilities:
    - Rechazar la edición fuera de {RECEIVED, IN_PROCESS, OBSERVED}
      sin importar los permisos del actor.
    - Autorizar EDITAR (bitmask primero, luego reglas contextuales).
    - Aplicar cambios con compare-and-set sobre Document.version.
    - Registrar una traza "Actualización" con los campos modificados.

Collaborators:
    - AuthorizationEngine, DocumentReader
    - WorkflowUnitOfWork
    - domain.lifecycle.is_editable

-------------------------------------------------------------------------------
INPUTS / OUTPUTS
-------------------------------------------------------------------------------
Inputs:
    - document_id, actor, UpdateDocumentInput (None = sin cambio)
      unassign=True limpia assigned_user_id
    - expected_version (opcional, If-Match)

Outputs:
    - DocumentResult(document) | DocumentResult(error)
===============================================================================
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from datetime import date
from typing import Any, Dict, Optional
from uuid import UUID

from ....domain.audit import TraceAction
from ....domain.authorization import AuthorizationEngine
from ....domain.entities import Actor, Document, DocumentPriority, utcnow
from ....domain.lifecycle import is_editable
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
    append_trace,
    conflict,
    invalid_state,
    lock_document,
    resolve_document_for,
    save_document,
    translate_transaction_error,
    validate_observation,
    validation_error,
)

logger = logging.getLogger(__name__)


def _editable_guard(document: Document) -> WorkflowError | None:
    if is_editable(document.status):
        return None
    return invalid_state(
        f"Document cannot be edited in status {document.status.value}."
    )


@dataclass
class UpdateDocumentInput:
    registration_number: Optional[str] = None
    office_number: Optional[str] = None
    document_date: Optional[date] = None
    origin: Optional[str] = None
    provenance: Optional[str] = None
    content: Optional[str] = None
    observations: Optional[str] = None
    priority: Optional[str] = None
    assigned_user_id: Optional[UUID] = None
    metadata: Optional[Dict[str, Any]] = None
    # None en assigned_user_id significa "sin cambio"; unassign lo limpia.
    unassign: bool = False

    def changes(self) -> Dict[str, Any]:
        """Campos provistos (no None); unassign se traduce a assigned_user_id=None."""
        provided = {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name != "unassign" and getattr(self, f.name) is not None
        }
        if self.unassign:
            provided["assigned_user_id"] = None
        return provided


class UpdateDocumentUseCase:
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
        data: UpdateDocumentInput,
        expected_version: int | None = None,
        origin: str | None = None,
    ) -> DocumentResult:
        # 1) Normalizar y validar cambios.
        if data.unassign and data.assigned_user_id is not None:
            return DocumentResult(
                error=validation_error(
                    "'assigned_user_id' and 'unassign' are mutually exclusive."
                )
            )
        changes = data.changes()
        if not changes:
            return DocumentResult(error=validation_error("No fields to update."))

        for name in ("registration_number", "office_number", "origin"):
            if name in changes:
                changes[name] = changes[name].strip()
                if not changes[name]:
                    return DocumentResult(
                        error=validation_error(f"'{name}' cannot be empty.")
                    )

        if "priority" in changes:
            try:
                changes["priority"] = DocumentPriority(changes["priority"].strip().upper())
            except ValueError:
                allowed = ", ".join(p.value for p in DocumentPriority)
                return DocumentResult(
                    error=validation_error(f"'priority' must be one of: {allowed}")
                )

        if "observations" in changes:
            text, error = validate_observation(
                changes["observations"], max_chars=self._max_observation_chars
            )
            if error is not None:
                return DocumentResult(error=error)
            changes["observations"] = text

        # 2) Guarda de estado (precede a la autorización) + autorización EDITAR.
        document, error = resolve_document_for(
            Action.EDITAR,
            document_id=document_id,
            actor=actor,
            engine=self._engine,
            documents=self._documents,
            origin=origin,
            state_guard=_editable_guard,
        )
        if error is not None:
            return DocumentResult(error=error)

        version = expected_version if expected_version is not None else document.version

        # 3) Transacción: bloquear, re-validar estado, aplicar y trazar.
        try:
            with self._uow.transaction() as tx:
                locked = lock_document(tx, document_id, expected_version=version)
                state_error = _editable_guard(locked)
                if state_error is not None:
                    return DocumentResult(error=state_error)

                new_number = changes.get("registration_number")
                if new_number and new_number != locked.registration_number:
                    if tx.documents.get_by_registration_number(new_number):
                        return DocumentResult(
                            error=conflict(
                                f"Registration number '{new_number}' already exists."
                            )
                        )

                for name, value in changes.items():
                    setattr(locked, name, value)

                now = utcnow()
                save_document(tx, locked, at=now)
                append_trace(
                    tx,
                    locked.id,
                    actor=actor,
                    action=TraceAction.ACTUALIZACION,
                    at=now,
                    observation="Campos: " + ", ".join(sorted(changes)),
                    origin_area_id=locked.current_area_id,
                )
        except TRANSACTION_ERRORS as exc:
            return DocumentResult(
                error=translate_transaction_error(
                    exc, operation="document.update", document_id=document_id
                )
            )

        emit_action(
            self._recorder,
            action="document.update",
            actor=actor,
            target_id=document_id,
            metadata={"fields": sorted(changes)},
        )
        return DocumentResult(document=locked)
