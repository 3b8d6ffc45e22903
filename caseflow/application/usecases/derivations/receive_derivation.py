"""
===============================================================================
USE CASE: Receive Derivation (acuse de recepción)
===============================================================================

Business Goal:
    El área destino confirma que recibió el documento derivado.

-------------------------------------------------------------------------------
CRC CARD (Class-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Class:
    ReceiveDerivationUseCase

Responsibilities:
    - Validar que la derivación esté PENDING, sea la más reciente del
      documento y que el documento siga en el área destino (INVALID_STATE).
    - Autorizar: VER sobre el documento y pertenecer al área destino
      (o ser ADMIN). Toda denegación queda registrada.
    - PENDING -> RECEIVED, con fecha y usuario receptor.
    - TraceEvent "Recepción de derivación".

Collaborators:
    - AuthorizationEngine (authorize / is_admin / deny)
    - WorkflowUnitOfWork

Notes:
    - El estado del documento NO cambia: avanza luego vía change_status.
===============================================================================
"""

from __future__ import annotations

import logging
from uuid import UUID

from ....domain.audit import TraceAction
from ....domain.authorization import AuthorizationEngine, DecisionReason
from ....domain.entities import Actor, utcnow
from ....domain.permissions import Action
from ....domain.repositories import AuditTrailRecorder, WorkflowUnitOfWork
from ....domain.rules import ResourceType
from ...audit_trail import emit_action
from ..workflow_results import DerivationResult
from ..workflow_support import (
    RESOURCE_DERIVATION,
    RESOURCE_DOCUMENT,
    TRANSACTION_ERRORS,
    append_trace,
    forbidden,
    invalid_state,
    not_found,
    translate_transaction_error,
)

logger = logging.getLogger(__name__)


class ReceiveDerivationUseCase:
    def __init__(
        self,
        *,
        engine: AuthorizationEngine,
        unit_of_work: WorkflowUnitOfWork,
        recorder: AuditTrailRecorder | None = None,
    ) -> None:
        self._engine = engine
        self._uow = unit_of_work
        self._recorder = recorder

    def execute(
        self, *, derivation_id: UUID, actor: Actor, origin: str | None = None
    ) -> DerivationResult:
        try:
            with self._uow.transaction() as tx:
                # 1) Cargar derivación y documento (bloqueados).
                derivation = tx.derivations.get_derivation(
                    derivation_id, for_update=True
                )
                if derivation is None:
                    return DerivationResult(error=not_found(RESOURCE_DERIVATION))

                document = tx.documents.get_document(
                    derivation.document_id, for_update=True
                )
                if document is None:
                    return DerivationResult(error=not_found(RESOURCE_DOCUMENT))

                # 2) Guardas de estado.
                if not derivation.is_pending:
                    return DerivationResult(
                        error=invalid_state(
                            "Derivation was already received.", RESOURCE_DERIVATION
                        )
                    )
                latest = tx.derivations.latest_for_document(document.id)
                if (
                    latest is None
                    or latest.id != derivation.id
                    or document.current_area_id != derivation.destination_area_id
                ):
                    return DerivationResult(
                        error=invalid_state(
                            "Derivation was superseded by a later routing.",
                            RESOURCE_DERIVATION,
                        )
                    )

                # 3) Autorización: VER + pertenencia al área destino.
                decision = self._engine.authorize(
                    actor,
                    Action.VER,
                    ResourceType.DOCUMENTO,
                    document.id,
                    origin=origin,
                    document=document,
                )
                if not decision.allowed:
                    return DerivationResult(error=forbidden(RESOURCE_DERIVATION))

                if actor.area_id != derivation.destination_area_id and not (
                    self._engine.is_admin(actor)
                ):
                    self._engine.deny(
                        actor,
                        Action.VER,
                        ResourceType.DOCUMENTO,
                        document.id,
                        DecisionReason.OUTSIDE_DESTINATION_AREA,
                        origin=origin,
                    )
                    return DerivationResult(error=forbidden(RESOURCE_DERIVATION))

                # 4) PENDING -> RECEIVED + traza.
                now = utcnow()
                derivation.mark_received(actor.user_id, at=now)
                if not tx.derivations.update_derivation(derivation):
                    return DerivationResult(error=not_found(RESOURCE_DERIVATION))

                append_trace(
                    tx,
                    document.id,
                    actor=actor,
                    action=TraceAction.RECEPCION_DERIVACION,
                    at=now,
                    origin_area_id=derivation.origin_area_id,
                    destination_area_id=derivation.destination_area_id,
                )
        except TRANSACTION_ERRORS as exc:
            return DerivationResult(
                error=translate_transaction_error(exc, operation="derivation.receive")
            )

        emit_action(
            self._recorder,
            action="derivation.receive",
            actor=actor,
            target_id=derivation.document_id,
            metadata={"derivation_id": derivation_id},
        )
        return DerivationResult(derivation=derivation, document=document)
