"""
Name: Derivation Use Case Tests

Responsibilities:
  - Validate derive (atomic move + PENDING derivation + trace)
  - Validate receive (destination area only, PENDING -> RECEIVED)
  - Validate concurrent derives: exactly one wins, the loser gets CONFLICT
"""

import threading
from uuid import uuid4

import pytest

from caseflow.application.usecases import (
    DeriveDocumentUseCase,
    ReceiveDerivationUseCase,
    WorkflowErrorCode,
)
from caseflow.domain.audit import TraceAction
from caseflow.domain.authorization import DecisionReason
from caseflow.domain.entities import DerivationStatus, DocumentStatus

pytestmark = pytest.mark.unit


def _derive(workflow):
    return DeriveDocumentUseCase(
        engine=workflow.engine,
        documents=workflow.reader,
        unit_of_work=workflow.uow,
        recorder=workflow.recorder,
    )


def _receive(workflow):
    return ReceiveDerivationUseCase(
        engine=workflow.engine, unit_of_work=workflow.uow, recorder=workflow.recorder
    )


class TestDerive:
    def test_derive_moves_document_and_records_trace(self, workflow, operator):
        document = workflow.seed_document(creator=operator)

        result = _derive(workflow).execute(
            document_id=document.id,
            destination_area_id=workflow.area_b.id,
            actor=operator,
            observation="Para informe legal",
            urgent=True,
        )

        assert result.error is None
        assert result.derivation.status is DerivationStatus.PENDING
        assert result.derivation.origin_area_id == workflow.area_a.id
        stored = workflow.stored(document.id)
        assert stored.current_area_id == workflow.area_b.id
        assert stored.status is DocumentStatus.DERIVED
        assert stored.version == 2
        (trace,) = workflow.store.traces
        assert trace.action is TraceAction.DERIVACION
        assert (trace.origin_area_id, trace.destination_area_id) == (
            workflow.area_a.id,
            workflow.area_b.id,
        )

    def test_self_derivation_is_conflict(self, workflow, operator):
        document = workflow.seed_document(creator=operator)

        result = _derive(workflow).execute(
            document_id=document.id,
            destination_area_id=workflow.area_a.id,
            actor=operator,
        )

        assert result.error.code is WorkflowErrorCode.CONFLICT
        assert workflow.store.derivations == {}

    def test_unknown_destination_is_not_found(self, workflow, operator):
        document = workflow.seed_document(creator=operator)

        result = _derive(workflow).execute(
            document_id=document.id, destination_area_id=uuid4(), actor=operator
        )

        assert result.error.code is WorkflowErrorCode.NOT_FOUND
        assert workflow.stored(document.id).version == 1

    def test_inactive_destination_is_rejected(self, workflow, operator):
        closed = workflow.add_area("Archivo Central", "AC", active=False)
        document = workflow.seed_document(creator=operator)

        result = _derive(workflow).execute(
            document_id=document.id, destination_area_id=closed.id, actor=operator
        )

        assert result.error.code is WorkflowErrorCode.VALIDATION_ERROR

    @pytest.mark.parametrize(
        "status", [DocumentStatus.FINALIZED, DocumentStatus.ARCHIVED, DocumentStatus.TRASH]
    )
    def test_closed_documents_cannot_be_derived(self, workflow, operator, status):
        document = workflow.seed_document(creator=operator, status=status)

        result = _derive(workflow).execute(
            document_id=document.id,
            destination_area_id=workflow.area_b.id,
            actor=operator,
        )

        assert result.error.code is WorkflowErrorCode.INVALID_STATE

    def test_without_derive_permission_is_forbidden(self, workflow, operator, viewer):
        document = workflow.seed_document(creator=operator)

        result = _derive(workflow).execute(
            document_id=document.id,
            destination_area_id=workflow.area_b.id,
            actor=viewer,
        )

        assert result.error.code is WorkflowErrorCode.FORBIDDEN
        assert workflow.stored(document.id).current_area_id == workflow.area_a.id

    def test_concurrent_derives_have_exactly_one_winner(self, workflow, operator):
        document = workflow.seed_document(creator=operator)
        use_case = _derive(workflow)
        barrier = threading.Barrier(2)
        results = []

        def worker():
            barrier.wait()
            results.append(
                use_case.execute(
                    document_id=document.id,
                    destination_area_id=workflow.area_b.id,
                    actor=operator,
                    expected_version=1,
                )
            )

        threads = [threading.Thread(target=worker) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5)

        assert len(results) == 2
        winners = [r for r in results if r.error is None]
        losers = [r for r in results if r.error is not None]
        assert len(winners) == 1
        assert losers[0].error.code is WorkflowErrorCode.CONFLICT
        assert len(workflow.store.derivations) == 1
        assert workflow.stored(document.id).version == 2

    def test_concurrent_derives_to_different_areas_have_one_winner(
        self, workflow, operator
    ):
        document = workflow.seed_document(creator=operator)
        area_c = workflow.add_area("Laboratorio", "LB")
        both_read = threading.Barrier(2, timeout=5)

        class ReaderThatWaitsForBoth:
            # Both requests read version 1 before either one writes.
            def get_document(self, document_id):
                found = workflow.reader.get_document(document_id)
                both_read.wait()
                return found

        use_case = DeriveDocumentUseCase(
            engine=workflow.engine,
            documents=ReaderThatWaitsForBoth(),
            unit_of_work=workflow.uow,
            recorder=workflow.recorder,
        )
        results = {}

        def worker(destination_id):
            results[destination_id] = use_case.execute(
                document_id=document.id,
                destination_area_id=destination_id,
                actor=operator,
            )

        threads = [
            threading.Thread(target=worker, args=(area_id,))
            for area_id in (workflow.area_b.id, area_c.id)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5)

        assert len(results) == 2
        winners = [area for area, r in results.items() if r.error is None]
        conflicts = [
            r for r in results.values()
            if r.error is not None and r.error.code is WorkflowErrorCode.CONFLICT
        ]
        assert len(winners) == 1
        assert len(conflicts) == 1
        stored = workflow.stored(document.id)
        assert stored.current_area_id == winners[0]
        assert stored.version == 2
        (derivation,) = workflow.store.derivations.values()
        assert derivation.destination_area_id == winners[0]


class TestReceive:
    def _derived(self, workflow, operator):
        document = workflow.seed_document(creator=operator)
        result = _derive(workflow).execute(
            document_id=document.id,
            destination_area_id=workflow.area_b.id,
            actor=operator,
        )
        return document, result.derivation

    def test_destination_area_user_receives(self, workflow, operator):
        document, derivation = self._derived(workflow, operator)
        receiver = workflow.actor(workflow.viewer_role, workflow.area_b)

        result = _receive(workflow).execute(
            derivation_id=derivation.id, actor=receiver
        )

        assert result.error is None
        assert result.derivation.status is DerivationStatus.RECEIVED
        assert result.derivation.received_by == receiver.user_id
        assert result.derivation.received_at is not None
        # El estado del documento no cambia con la recepción.
        assert workflow.stored(document.id).status is DocumentStatus.DERIVED
        assert workflow.store.traces[-1].action is TraceAction.RECEPCION_DERIVACION

    def test_second_receive_is_invalid_state(self, workflow, operator):
        _, derivation = self._derived(workflow, operator)
        receiver = workflow.actor(workflow.viewer_role, workflow.area_b)
        _receive(workflow).execute(derivation_id=derivation.id, actor=receiver)

        again = _receive(workflow).execute(derivation_id=derivation.id, actor=receiver)

        assert again.error.code is WorkflowErrorCode.INVALID_STATE

    def test_user_outside_destination_is_forbidden_and_recorded(
        self, workflow, operator
    ):
        _, derivation = self._derived(workflow, operator)
        outsider = workflow.actor(workflow.viewer_role, workflow.area_a)

        result = _receive(workflow).execute(
            derivation_id=derivation.id, actor=outsider
        )

        assert result.error.code is WorkflowErrorCode.FORBIDDEN
        (event,) = workflow.recorder.unauthorized_for(outsider.user_id)
        assert event.reason == DecisionReason.OUTSIDE_DESTINATION_AREA.value
        assert workflow.store.derivations[derivation.id].is_pending

    def test_admin_can_receive_from_any_area(self, workflow, operator, admin):
        _, derivation = self._derived(workflow, operator)

        result = _receive(workflow).execute(derivation_id=derivation.id, actor=admin)

        assert result.error is None

    def test_superseded_derivation_is_invalid_state(self, workflow, operator):
        document, first = self._derived(workflow, operator)
        forwarder = workflow.actor(workflow.operator_role, workflow.area_b)
        third = workflow.add_area("Gerencia", "GG")
        _derive(workflow).execute(
            document_id=document.id, destination_area_id=third.id, actor=forwarder
        )
        receiver = workflow.actor(workflow.viewer_role, workflow.area_b)

        result = _receive(workflow).execute(derivation_id=first.id, actor=receiver)

        assert result.error.code is WorkflowErrorCode.INVALID_STATE

    def test_unknown_derivation_is_not_found(self, workflow, admin):
        result = _receive(workflow).execute(derivation_id=uuid4(), actor=admin)
        assert result.error.code is WorkflowErrorCode.NOT_FOUND
