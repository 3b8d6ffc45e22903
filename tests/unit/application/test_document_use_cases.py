"""
Name: Document Lifecycle Use Case Tests

Responsibilities:
  - Validate create / update / change status / trash / restore / delete
  - Validate that every transition leaves exactly one history row + trace
  - Validate state guards run before authorization (no denial recorded)
  - Validate rollback when a transactional write fails
"""

from datetime import date
from unittest.mock import patch
from uuid import uuid4

import pytest

from caseflow.application.usecases import (
    AddAttachmentUseCase,
    ChangeDocumentStatusUseCase,
    CreateDocumentInput,
    CreateDocumentUseCase,
    DeleteDocumentPermanentlyUseCase,
    GetDocumentHistoryUseCase,
    ListAttachmentsUseCase,
    ListTrashUseCase,
    MoveDocumentToTrashUseCase,
    RestoreDocumentUseCase,
    UpdateDocumentInput,
    UpdateDocumentUseCase,
    WorkflowErrorCode,
)
from caseflow.crosscutting.exceptions import DatabaseError
from caseflow.domain.audit import TraceAction
from caseflow.domain.entities import Derivation, DocumentStatus
from caseflow.infrastructure.repositories.in_memory.workflow_store import (
    InMemoryTraceStore,
)

pytestmark = pytest.mark.unit


def _create(workflow, **overrides):
    return CreateDocumentUseCase(
        engine=workflow.engine, unit_of_work=workflow.uow, recorder=workflow.recorder
    ), CreateDocumentInput(
        **{
            "registration_number": "EXP-2024-0001",
            "current_area_id": workflow.area_a.id,
            "office_number": "OF-12",
            "document_date": date(2024, 3, 1),
            "origin": "Municipalidad",
            **overrides,
        }
    )


def _lifecycle(workflow, cls, **kwargs):
    return cls(
        engine=workflow.engine,
        documents=workflow.reader,
        unit_of_work=workflow.uow,
        recorder=workflow.recorder,
        **kwargs,
    )


def _rows_for(workflow, document_id):
    with workflow.store.lock:
        return (
            [c for c in workflow.store.status_history if c.document_id == document_id],
            [t for t in workflow.store.traces if t.document_id == document_id],
        )


# =============================================================================
# Create
# =============================================================================


class TestCreateDocument:
    def test_creates_received_document_with_reception_trace(self, workflow, operator):
        use_case, data = _create(workflow)

        result = use_case.execute(actor=operator, data=data)

        assert result.error is None
        document = result.document
        assert document.status is DocumentStatus.RECEIVED
        assert document.creator_id == operator.user_id
        assert document.version == 1
        changes, traces = _rows_for(workflow, document.id)
        assert len(changes) == 1 and changes[0].previous_status is None
        assert [t.action for t in traces] == [TraceAction.RECEPCION]
        assert [e.action for e in workflow.recorder.action_entries] == [
            "document.create"
        ]

    def test_duplicate_registration_number_is_conflict(self, workflow, operator):
        use_case, data = _create(workflow)
        first = use_case.execute(actor=operator, data=data)

        second = use_case.execute(actor=operator, data=data)

        assert second.error.code is WorkflowErrorCode.CONFLICT
        assert workflow.stored(first.document.id).registration_number == (
            "EXP-2024-0001"
        )
        assert len(workflow.store.documents) == 1

    @pytest.mark.parametrize(
        "overrides",
        [
            {"registration_number": "  "},
            {"office_number": ""},
            {"origin": ""},
            {"document_date": None},
            {"priority": "MAXIMA"},
        ],
    )
    def test_missing_fields_are_validation_errors(self, workflow, operator, overrides):
        use_case, data = _create(workflow, **overrides)

        result = use_case.execute(actor=operator, data=data)

        assert result.error.code is WorkflowErrorCode.VALIDATION_ERROR
        assert workflow.store.documents == {}

    def test_unknown_area_is_not_found(self, workflow, operator):
        use_case, data = _create(workflow, current_area_id=uuid4())

        result = use_case.execute(actor=operator, data=data)

        assert result.error.code is WorkflowErrorCode.NOT_FOUND
        assert result.error.resource == "Area"

    def test_without_create_bit_is_forbidden_and_recorded(self, workflow, viewer):
        use_case, data = _create(workflow)

        result = use_case.execute(actor=viewer, data=data)

        assert result.error.code is WorkflowErrorCode.FORBIDDEN
        assert len(workflow.recorder.unauthorized_for(viewer.user_id)) == 1


# =============================================================================
# Update / change status
# =============================================================================


class TestUpdateAndStatus:
    def test_update_bumps_version_and_traces(self, workflow, operator):
        document = workflow.seed_document(creator=operator)
        use_case = _lifecycle(workflow, UpdateDocumentUseCase)

        result = use_case.execute(
            document_id=document.id,
            actor=operator,
            data=UpdateDocumentInput(content="Nuevo contenido", priority="urgente"),
        )

        assert result.error is None
        stored = workflow.stored(document.id)
        assert stored.content == "Nuevo contenido"
        assert stored.priority.value == "URGENTE"
        assert stored.version == 2
        assert [t.action for t in workflow.store.traces] == [TraceAction.ACTUALIZACION]

    def test_unassign_clears_assigned_user(self, workflow, operator):
        document = workflow.seed_document(creator=operator)
        use_case = _lifecycle(workflow, UpdateDocumentUseCase)
        assignee = uuid4()
        use_case.execute(
            document_id=document.id,
            actor=operator,
            data=UpdateDocumentInput(assigned_user_id=assignee),
        )
        assert workflow.stored(document.id).assigned_user_id == assignee

        result = use_case.execute(
            document_id=document.id,
            actor=operator,
            data=UpdateDocumentInput(unassign=True),
        )

        assert result.error is None
        stored = workflow.stored(document.id)
        assert stored.assigned_user_id is None
        assert stored.version == 3

    def test_none_assigned_user_keeps_current_assignee(self, workflow, operator):
        document = workflow.seed_document(creator=operator)
        use_case = _lifecycle(workflow, UpdateDocumentUseCase)
        assignee = uuid4()
        use_case.execute(
            document_id=document.id,
            actor=operator,
            data=UpdateDocumentInput(assigned_user_id=assignee),
        )

        use_case.execute(
            document_id=document.id,
            actor=operator,
            data=UpdateDocumentInput(content="x", assigned_user_id=None),
        )

        assert workflow.stored(document.id).assigned_user_id == assignee

    def test_unassign_together_with_assignee_is_validation_error(
        self, workflow, operator
    ):
        document = workflow.seed_document(creator=operator)
        use_case = _lifecycle(workflow, UpdateDocumentUseCase)

        result = use_case.execute(
            document_id=document.id,
            actor=operator,
            data=UpdateDocumentInput(assigned_user_id=uuid4(), unassign=True),
        )

        assert result.error.code is WorkflowErrorCode.VALIDATION_ERROR
        assert workflow.stored(document.id).version == 1

    def test_update_with_stale_version_is_conflict(self, workflow, operator):
        document = workflow.seed_document(creator=operator, version=4)
        use_case = _lifecycle(workflow, UpdateDocumentUseCase)

        result = use_case.execute(
            document_id=document.id,
            actor=operator,
            data=UpdateDocumentInput(content="x"),
            expected_version=3,
        )

        assert result.error.code is WorkflowErrorCode.CONFLICT
        assert workflow.stored(document.id).version == 4
        assert workflow.store.traces == []

    def test_update_in_closed_status_is_invalid_state(self, workflow, operator):
        document = workflow.seed_document(
            creator=operator, status=DocumentStatus.FINALIZED
        )
        use_case = _lifecycle(workflow, UpdateDocumentUseCase)

        result = use_case.execute(
            document_id=document.id, actor=operator, data=UpdateDocumentInput(content="x")
        )

        assert result.error.code is WorkflowErrorCode.INVALID_STATE

    def test_change_status_records_previous_status(self, workflow, operator):
        document = workflow.seed_document(creator=operator)
        use_case = _lifecycle(workflow, ChangeDocumentStatusUseCase)

        result = use_case.execute(
            document_id=document.id, actor=operator, new_status="IN_PROCESS"
        )

        assert result.document.status is DocumentStatus.IN_PROCESS
        (change,) = workflow.store.status_history
        assert change.previous_status is DocumentStatus.RECEIVED
        assert change.new_status is DocumentStatus.IN_PROCESS
        (trace,) = workflow.store.traces
        assert trace.action is TraceAction.CAMBIO_ESTADO

    @pytest.mark.parametrize(
        "target, code",
        [
            ("CERRADO", WorkflowErrorCode.VALIDATION_ERROR),
            ("TRASH", WorkflowErrorCode.INVALID_STATE),
            ("DERIVED", WorkflowErrorCode.INVALID_STATE),
        ],
    )
    def test_change_status_rejects_bad_targets(self, workflow, operator, target, code):
        document = workflow.seed_document(creator=operator)
        use_case = _lifecycle(workflow, ChangeDocumentStatusUseCase)

        result = use_case.execute(
            document_id=document.id, actor=operator, new_status=target
        )

        assert result.error.code is code
        assert workflow.stored(document.id).status is DocumentStatus.RECEIVED

    def test_change_status_without_edit_permission_is_forbidden(
        self, workflow, operator, viewer
    ):
        document = workflow.seed_document(creator=operator)
        use_case = _lifecycle(workflow, ChangeDocumentStatusUseCase)

        result = use_case.execute(
            document_id=document.id, actor=viewer, new_status="IN_PROCESS"
        )

        assert result.error.code is WorkflowErrorCode.FORBIDDEN
        assert workflow.store.status_history == []
        assert len(workflow.recorder.unauthorized_for(viewer.user_id)) == 1


# =============================================================================
# Trash / restore / permanent delete
# =============================================================================


class TestTrashLifecycle:
    def test_move_to_trash_appends_note_and_lists_in_trash(self, workflow, admin):
        document = workflow.seed_document(creator=admin)
        use_case = _lifecycle(
            workflow, MoveDocumentToTrashUseCase, note_template="[papelera {user_id}]"
        )

        result = use_case.execute(document_id=document.id, actor=admin)

        assert result.document.status is DocumentStatus.TRASH
        assert f"[papelera {admin.user_id}]" in result.document.observations
        trash = ListTrashUseCase(engine=workflow.engine, unit_of_work=workflow.uow)
        listed = trash.execute(actor=admin)
        assert [d.id for d in listed.documents] == [document.id]

    def test_note_template_with_unknown_placeholder_fails_at_construction(
        self, workflow
    ):
        with pytest.raises(ValueError, match="usuario"):
            _lifecycle(
                workflow, MoveDocumentToTrashUseCase, note_template="[papelera {usuario}]"
            )

    def test_note_is_rendered_before_the_write(self, workflow, admin):
        document = workflow.seed_document(creator=admin)
        use_case = _lifecycle(
            workflow,
            MoveDocumentToTrashUseCase,
            note_template="[papelera {user_id} {timestamp}]",
        )

        with patch(
            "caseflow.application.usecases.documents.move_document_to_trash.render_trash_note",
            side_effect=ValueError("bad template"),
        ):
            with pytest.raises(ValueError):
                use_case.execute(document_id=document.id, actor=admin)

        assert workflow.stored(document.id).status is DocumentStatus.RECEIVED
        status_rows, traces = _rows_for(workflow, document.id)
        assert status_rows == [] and traces == []

    def test_creator_rule_allows_trash_and_other_user_is_recorded(self, workflow):
        creator = workflow.actor(workflow.viewer_role, workflow.area_a)
        other = workflow.actor(workflow.viewer_role, workflow.area_a)
        workflow.add_rule(
            workflow.viewer_role,
            workflow.area_a,
            {"tipo": "PROPIEDAD", "condicion": "ES_CREADOR", "accion": "ELIMINAR"},
        )
        document = workflow.seed_document(creator=creator)
        use_case = _lifecycle(workflow, MoveDocumentToTrashUseCase)

        denied = use_case.execute(document_id=document.id, actor=other)
        allowed = use_case.execute(document_id=document.id, actor=creator)

        assert denied.error.code is WorkflowErrorCode.FORBIDDEN
        assert allowed.document.status is DocumentStatus.TRASH
        events = workflow.recorder.unauthorized_for(other.user_id)
        assert len(events) == 1
        assert events[0].action == "ELIMINAR"

    def test_restore_on_active_document_is_invalid_state_without_side_effects(
        self, workflow, viewer, operator
    ):
        document = workflow.seed_document(creator=operator)
        use_case = _lifecycle(workflow, RestoreDocumentUseCase)

        result = use_case.execute(document_id=document.id, actor=viewer)

        assert result.error.code is WorkflowErrorCode.INVALID_STATE
        assert workflow.store.traces == []
        assert workflow.store.status_history == []
        assert workflow.recorder.unauthorized_events == []

    def test_restore_returns_document_to_received(self, workflow, operator):
        document = workflow.seed_document(creator=operator, status=DocumentStatus.TRASH)
        use_case = _lifecycle(workflow, RestoreDocumentUseCase)

        result = use_case.execute(document_id=document.id, actor=operator)

        assert result.document.status is DocumentStatus.RECEIVED
        assert workflow.store.traces[-1].action is TraceAction.RESTAURACION

    def test_delete_permanently_requires_trash(self, workflow, admin):
        document = workflow.seed_document(creator=admin)
        use_case = _lifecycle(workflow, DeleteDocumentPermanentlyUseCase)

        result = use_case.execute(document_id=document.id, actor=admin)

        assert result.error.code is WorkflowErrorCode.INVALID_STATE
        assert workflow.stored(document.id) == document

    def test_delete_permanently_requires_admin_even_with_delete_bit(self, workflow):
        deleter = workflow.add_role("Depurador", 0x04 | 0x08)
        actor = workflow.actor(deleter, workflow.area_a)
        document = workflow.seed_document(creator=actor, status=DocumentStatus.TRASH)
        use_case = _lifecycle(workflow, DeleteDocumentPermanentlyUseCase)

        result = use_case.execute(document_id=document.id, actor=actor)

        assert result.error.code is WorkflowErrorCode.FORBIDDEN
        assert workflow.stored(document.id) is not None
        assert len(workflow.recorder.unauthorized_for(actor.user_id)) == 1

    def test_delete_permanently_keeps_trace_chain(self, workflow, admin):
        document = workflow.seed_document(creator=admin)
        trash = _lifecycle(workflow, MoveDocumentToTrashUseCase)
        trash.execute(document_id=document.id, actor=admin)
        use_case = _lifecycle(workflow, DeleteDocumentPermanentlyUseCase)

        result = use_case.execute(document_id=document.id, actor=admin)

        assert result.deleted is True
        assert workflow.stored(document.id) is None
        assert workflow.store.status_history == []
        assert [t.action for t in workflow.store.traces] == [
            TraceAction.PAPELERA,
            TraceAction.ELIMINACION_PERMANENTE,
        ]

    def test_delete_permanently_with_derivations_is_conflict(self, workflow, admin):
        document = workflow.seed_document(creator=admin, status=DocumentStatus.TRASH)
        with workflow.store.lock:
            derivation = Derivation(
                id=uuid4(),
                document_id=document.id,
                origin_area_id=workflow.area_b.id,
                destination_area_id=workflow.area_a.id,
                derived_by=admin.user_id,
            )
            workflow.store.derivations[derivation.id] = derivation
        use_case = _lifecycle(workflow, DeleteDocumentPermanentlyUseCase)

        result = use_case.execute(document_id=document.id, actor=admin)

        assert result.error.code is WorkflowErrorCode.CONFLICT
        assert workflow.stored(document.id) is not None


# =============================================================================
# Attachments + history
# =============================================================================


class TestAttachmentsAndHistory:
    def test_attachment_reference_is_stored_and_listed(self, workflow, operator):
        document = workflow.seed_document(creator=operator)
        add = AddAttachmentUseCase(
            engine=workflow.engine,
            documents=workflow.reader,
            unit_of_work=workflow.uow,
            recorder=workflow.recorder,
        )
        listing = ListAttachmentsUseCase(
            engine=workflow.engine, documents=workflow.reader, unit_of_work=workflow.uow
        )

        added = add.execute(
            document_id=document.id,
            actor=operator,
            storage_key="docs/2024/oficio.pdf",
            file_name="oficio.pdf",
            mime_type="application/pdf",
        )
        listed = listing.execute(document_id=document.id, actor=operator)

        assert added.error is None
        assert [a.storage_key for a in listed.attachments] == ["docs/2024/oficio.pdf"]
        assert workflow.store.traces[-1].action is TraceAction.ADJUNTO

    def test_history_is_ordered(self, workflow, operator):
        document = workflow.seed_document(creator=operator)
        change = _lifecycle(workflow, ChangeDocumentStatusUseCase)
        change.execute(document_id=document.id, actor=operator, new_status="IN_PROCESS")
        change.execute(document_id=document.id, actor=operator, new_status="OBSERVED")
        use_case = GetDocumentHistoryUseCase(
            engine=workflow.engine, documents=workflow.reader, unit_of_work=workflow.uow
        )

        result = use_case.execute(document_id=document.id, actor=operator)

        assert [c.new_status for c in result.status_history] == [
            DocumentStatus.OBSERVED,
            DocumentStatus.IN_PROCESS,
        ]
        assert [t.action for t in result.traces] == [TraceAction.CAMBIO_ESTADO] * 2


# =============================================================================
# Atomicity
# =============================================================================


def test_trace_write_failure_rolls_back_the_transition(workflow, operator):
    document = workflow.seed_document(creator=operator)
    use_case = _lifecycle(workflow, ChangeDocumentStatusUseCase)

    with patch.object(
        InMemoryTraceStore, "append", side_effect=DatabaseError("disk full")
    ):
        result = use_case.execute(
            document_id=document.id, actor=operator, new_status="IN_PROCESS"
        )

    assert result.error.code is WorkflowErrorCode.INTERNAL_ERROR
    stored = workflow.stored(document.id)
    assert stored.status is DocumentStatus.RECEIVED
    assert stored.version == 1
    assert workflow.store.status_history == []
    assert workflow.store.traces == []
    assert workflow.recorder.action_entries == []
