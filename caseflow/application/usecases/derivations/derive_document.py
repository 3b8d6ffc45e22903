"""
===============================================================================
USE CASE: Derive Document (pase a otra área)
===============================================================================

Name:
    Derive Document Use Case

Business Goal:
    Enviar un documento desde su área actual a otra área para que continúe
    el trámite.

Why (Context / Intención):
    - Derivación, cambio de área/estado y traza deben ser UNA unidad atómica:
      nunca debe observarse una derivación a medias.
    - Dos derivaciones concurrentes sobre el mismo estado inicial se
      serializan por versión: una gana, la otra recibe CONFLICT.

-------------------------------------------------------------------------------
CRC CARD (Class-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Class:
    DeriveDocumentUseCase

Responsibilities:
    - Autorizar DERIVAR (bitmask o contextual).
    - Validar área destino: existe (NOT_FOUND), activa (VALIDATION_ERROR),
      distinta del área actual (CONFLICT).
    - Validar estado derivable (INVALID_STATE).
    - En una transacción:
        1) insertar Derivation PENDING (origen = área actual)
        2) documento -> área destino + DERIVED
        3) historial + TraceEvent origen->destino
    - Post-commit: entrada del log de acciones.

Collaborators:
    - AuthorizationEngine, DocumentReader, WorkflowUnitOfWork
    - domain.lifecycle.is_derivable

-------------------------------------------------------------------------------
INPUTS / OUTPUTS
-------------------------------------------------------------------------------
Inputs:
    - document_id, destination_area_id, actor
    - observation, urgent, reason
    - expected_version (opcional, If-Match)

Outputs:
    - DerivationResult(derivation, document) | DerivationResult(error)
===============================================================================
"""

from __future__ import annotations

import logging
from typing import Final
from uuid import UUID, uuid4

from ....domain.audit import TraceAction
from ....domain.authorization import AuthorizationEngine
from ....domain.entities import (
    Actor,
    Derivation,
    DerivationStatus,
    Document,
    DocumentStatus,
    utcnow,
)
from ....domain.lifecycle import is_derivable
from ....domain.permissions import Action
from ....domain.repositories import (
    AuditTrailRecorder,
    DocumentReader,
    WorkflowUnitOfWork,
)
from ...audit_trail import emit_action
from ..workflow_results import DerivationResult, WorkflowError
from ..workflow_support import (
    RESOURCE_AREA,
    TRANSACTION_ERRORS,
    conflict,
    invalid_state,
    lock_document,
    not_found,
    record_status_change,
    resolve_document_for,
    save_document,
    translate_transaction_error,
    validate_observation,
    validation_error,
)

logger = logging.getLogger(__name__)

_MSG_SELF_DERIVATION: Final[str] = (
    "Destination area must differ from the document's current area."
)
_MSG_AREA_INACTIVE: Final[str] = "Destination area is not active."


def _derivable_guard(document: Document) -> WorkflowError | None:
    if is_derivable(document.status):
        return None
    return invalid_state(
        f"Document cannot be derived in status {document.status.value}."
    )


class DeriveDocumentUseCase:
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
        destination_area_id: UUID,
        actor: Actor,
        observation: str | None = None,
        urgent: bool = False,
        reason: str | None = None,
        expected_version: int | None = None,
        origin: str | None = None,
    ) -> DerivationResult:
        # 1) Input.
        note, error = validate_observation(
            observation, max_chars=self._max_observation_chars
        )
        if error is not None:
            return DerivationResult(error=error)

        # 2) Estado derivable + autorización DERIVAR.
        document, error = resolve_document_for(
            Action.DERIVAR,
            document_id=document_id,
            actor=actor,
            engine=self._engine,
            documents=self._documents,
            origin=origin,
            state_guard=_derivable_guard,
        )
        if error is not None:
            return DerivationResult(error=error)

        version = expected_version if expected_version is not None else document.version

        # 3) Transacción atómica.
        try:
            with self._uow.transaction() as tx:
                locked = lock_document(tx, document_id, expected_version=version)
                state_error = _derivable_guard(locked)
                if state_error is not None:
                    return DerivationResult(error=state_error)

                area = tx.areas.get_area(destination_area_id)
                if area is None:
                    return DerivationResult(error=not_found(RESOURCE_AREA))
                if not area.active:
                    return DerivationResult(
                        error=validation_error(_MSG_AREA_INACTIVE, RESOURCE_AREA)
                    )
                if destination_area_id == locked.current_area_id:
                    return DerivationResult(
                        error=conflict(_MSG_SELF_DERIVATION, RESOURCE_AREA)
                    )

                now = utcnow()
                origin_area_id = locked.current_area_id

                # 3.1) Derivation PENDING.
                derivation = Derivation(
                    id=uuid4(),
                    document_id=document_id,
                    origin_area_id=origin_area_id,
                    destination_area_id=destination_area_id,
                    derived_by=actor.user_id,
                    status=DerivationStatus.PENDING,
                    observation=note,
                    urgent=bool(urgent),
                    reason=(reason or "").strip(),
                    derived_at=now,
                )
                tx.derivations.insert_derivation(derivation)

                # 3.2) Documento -> área destino + DERIVED.
                previous = locked.status
                locked.current_area_id = destination_area_id
                locked.status = DocumentStatus.DERIVED
                save_document(tx, locked, at=now)

                # 3.3) Historial + traza origen -> destino.
                record_status_change(
                    tx,
                    locked,
                    previous_status=previous,
                    actor=actor,
                    action=TraceAction.DERIVACION,
                    observation=note,
                    at=now,
                    origin_area_id=origin_area_id,
                    destination_area_id=destination_area_id,
                )
        except TRANSACTION_ERRORS as exc:
            return DerivationResult(
                error=translate_transaction_error(
                    exc, operation="document.derive", document_id=document_id
                )
            )

        logger.info(
            "Document derived",
            extra={
                "document_id": str(document_id),
                "derivation_id": str(derivation.id),
                "origin_area_id": str(origin_area_id),
                "destination_area_id": str(destination_area_id),
            },
        )

        # 4) Log de acción estructurado.
        emit_action(
            self._recorder,
            action="document.derive",
            actor=actor,
            target_id=document_id,
            metadata={
                "derivation_id": derivation.id,
                "origin_area_id": origin_area_id,
                "destination_area_id": destination_area_id,
                "urgent": derivation.urgent,
            },
        )
        return DerivationResult(derivation=derivation, document=locked)
