"""
Name: HTTP API Tests

Responsibilities:
  - Validate routing, DTO mapping and RFC7807 error bodies
  - Validate ETag / If-Match optimistic concurrency at the HTTP edge
  - Validate 401 when no actor is attached to the request

Notes:
  - Use case factories are overridden with the in-memory test workflow.
  - The identity collaborator is replaced by overriding require_actor.
"""

from datetime import date
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from caseflow import container
from caseflow.api.main import create_app
from caseflow.application.usecases import (
    BatchCheckPermissionsUseCase,
    ChangeDocumentStatusUseCase,
    CheckPermissionUseCase,
    CreateContextualRuleUseCase,
    CreateDocumentUseCase,
    DeleteDocumentPermanentlyUseCase,
    DeriveDocumentUseCase,
    GetDocumentHistoryUseCase,
    GetDocumentUseCase,
    ListRolesUseCase,
    MoveDocumentToTrashUseCase,
    ReceiveDerivationUseCase,
    RestoreDocumentUseCase,
    UpdateDocumentUseCase,
)
from caseflow.crosscutting.error_responses import unauthorized
from caseflow.crosscutting.exceptions import DatabaseError
from caseflow.domain.entities import DocumentStatus
from caseflow.interfaces.api.http.dependencies import parse_version_tag, require_actor

pytestmark = pytest.mark.unit


class _Session:
    """R: TestClient + mutable current actor."""

    def __init__(self, workflow):
        self.workflow = workflow
        self.actor = None
        self.app = create_app()
        self._wire()
        self.client = TestClient(self.app, raise_server_exceptions=False)

    def _wire(self):
        wf = self.workflow
        lifecycle = dict(
            engine=wf.engine,
            documents=wf.reader,
            unit_of_work=wf.uow,
            recorder=wf.recorder,
        )
        overrides = {
            container.get_create_document_use_case: lambda: CreateDocumentUseCase(
                engine=wf.engine, unit_of_work=wf.uow, recorder=wf.recorder
            ),
            container.get_get_document_use_case: lambda: GetDocumentUseCase(
                engine=wf.engine, documents=wf.reader
            ),
            container.get_update_document_use_case: lambda: UpdateDocumentUseCase(
                **lifecycle
            ),
            container.get_change_document_status_use_case: lambda: (
                ChangeDocumentStatusUseCase(**lifecycle)
            ),
            container.get_move_document_to_trash_use_case: lambda: (
                MoveDocumentToTrashUseCase(**lifecycle)
            ),
            container.get_restore_document_use_case: lambda: RestoreDocumentUseCase(
                **lifecycle
            ),
            container.get_delete_document_permanently_use_case: lambda: (
                DeleteDocumentPermanentlyUseCase(**lifecycle)
            ),
            container.get_document_history_use_case: lambda: GetDocumentHistoryUseCase(
                engine=wf.engine, documents=wf.reader, unit_of_work=wf.uow
            ),
            container.get_derive_document_use_case: lambda: DeriveDocumentUseCase(
                **lifecycle
            ),
            container.get_receive_derivation_use_case: lambda: (
                ReceiveDerivationUseCase(
                    engine=wf.engine, unit_of_work=wf.uow, recorder=wf.recorder
                )
            ),
            container.get_check_permission_use_case: lambda: CheckPermissionUseCase(
                engine=wf.engine
            ),
            container.get_batch_check_permissions_use_case: lambda: (
                BatchCheckPermissionsUseCase(engine=wf.engine, max_ids=3)
            ),
            container.get_create_rule_use_case: lambda: CreateContextualRuleUseCase(
                engine=wf.engine,
                rules=wf.rules,
                roles=wf.roles,
                areas=wf.areas,
                recorder=wf.recorder,
            ),
            container.get_list_roles_use_case: lambda: ListRolesUseCase(
                engine=wf.engine, roles=wf.roles
            ),
            require_actor: self._current_actor,
        }
        self.app.dependency_overrides.update(overrides)

    def _current_actor(self):
        if self.actor is None:
            raise unauthorized()
        return self.actor

    def as_(self, actor):
        self.actor = actor
        return self.client


@pytest.fixture
def api(workflow):
    return _Session(workflow)


def _create_payload(workflow, number="EXP-100"):
    return {
        "registration_number": number,
        "current_area_id": str(workflow.area_a.id),
        "office_number": "OF-7",
        "document_date": date(2024, 5, 2).isoformat(),
        "origin": "Ministerio",
    }


# =============================================================================
# Documents
# =============================================================================


class TestDocumentEndpoints:
    def test_create_then_get_with_etag(self, api, workflow, operator):
        client = api.as_(operator)

        created = client.post("/v1/documents", json=_create_payload(workflow))
        document_id = created.json()["id"]
        fetched = client.get(f"/v1/documents/{document_id}")

        assert created.status_code == 201
        assert created.headers["ETag"] == '"1"'
        assert fetched.status_code == 200
        assert fetched.json()["status"] == "RECEIVED"
        assert fetched.json()["creator_id"] == str(operator.user_id)

    def test_duplicate_registration_is_409_problem_json(self, api, workflow, operator):
        client = api.as_(operator)
        client.post("/v1/documents", json=_create_payload(workflow))

        response = client.post("/v1/documents", json=_create_payload(workflow))

        assert response.status_code == 409
        assert response.headers["content-type"].startswith("application/problem+json")
        assert response.json()["code"] == "CONFLICT"

    def test_missing_actor_is_401(self, api, workflow):
        response = api.client.post("/v1/documents", json=_create_payload(workflow))

        assert response.status_code == 401
        assert response.json()["code"] == "UNAUTHORIZED"

    def test_forbidden_is_403(self, api, workflow, viewer):
        response = api.as_(viewer).post("/v1/documents", json=_create_payload(workflow))

        assert response.status_code == 403
        assert response.json()["code"] == "FORBIDDEN"

    def test_unknown_document_is_404(self, api, operator):
        response = api.as_(operator).get(f"/v1/documents/{uuid4()}")

        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"

    def test_stale_if_match_is_409(self, api, workflow, operator):
        document = workflow.seed_document(creator=operator, version=2)

        response = api.as_(operator).post(
            f"/v1/documents/{document.id}/status",
            json={"status": "IN_PROCESS"},
            headers={"If-Match": '"1"'},
        )

        assert response.status_code == 409
        assert response.json()["code"] == "CONFLICT"
        assert workflow.stored(document.id).status is DocumentStatus.RECEIVED

    def test_matching_if_match_applies_change(self, api, workflow, operator):
        document = workflow.seed_document(creator=operator)

        response = api.as_(operator).patch(
            f"/v1/documents/{document.id}",
            json={"content": "Resumen"},
            headers={"If-Match": 'W/"1"'},
        )

        assert response.status_code == 200
        assert response.headers["ETag"] == '"2"'
        assert response.json()["content"] == "Resumen"

    def test_explicit_null_assignee_unassigns(self, api, workflow, operator):
        document = workflow.seed_document(creator=operator)
        assignee = uuid4()
        client = api.as_(operator)
        client.patch(
            f"/v1/documents/{document.id}", json={"assigned_user_id": str(assignee)}
        )

        untouched = client.patch(f"/v1/documents/{document.id}", json={"content": "x"})
        assert untouched.json()["assigned_user_id"] == str(assignee)

        response = client.patch(
            f"/v1/documents/{document.id}", json={"assigned_user_id": None}
        )

        assert response.status_code == 200
        assert response.json()["assigned_user_id"] is None
        assert workflow.stored(document.id).assigned_user_id is None

    def test_malformed_if_match_is_422(self, api, workflow, operator):
        document = workflow.seed_document(creator=operator)

        response = api.as_(operator).post(
            f"/v1/documents/{document.id}/trash", headers={"If-Match": "abc"}
        )

        assert response.status_code == 422

    def test_restore_active_document_is_409_invalid_state(self, api, workflow, operator):
        document = workflow.seed_document(creator=operator)

        response = api.as_(operator).post(f"/v1/documents/{document.id}/restore")

        assert response.status_code == 409
        assert response.json()["code"] == "INVALID_STATE"

    def test_trash_then_delete_permanently(self, api, workflow, admin):
        client = api.as_(admin)
        document = workflow.seed_document(creator=admin)

        trashed = client.post(f"/v1/documents/{document.id}/trash")
        deleted = client.delete(f"/v1/documents/{document.id}")
        history = client.get(f"/v1/documents/{document.id}/history")

        assert trashed.json()["status"] == "TRASH"
        assert deleted.json() == {"deleted": True}
        assert history.status_code == 404
        assert len(workflow.store.traces) == 2

    def test_history_lists_traces(self, api, workflow, operator):
        client = api.as_(operator)
        created = client.post("/v1/documents", json=_create_payload(workflow)).json()

        history = client.get(f"/v1/documents/{created['id']}/history").json()

        assert history["document"]["id"] == created["id"]
        assert [t["action"] for t in history["traces"]] == ["Recepción"]
        assert history["status_history"][0]["new_status"] == "RECEIVED"


# =============================================================================
# Derivations
# =============================================================================


class TestDerivationEndpoints:
    def test_derive_and_receive(self, api, workflow, operator):
        document = workflow.seed_document(creator=operator)
        receiver = workflow.actor(workflow.viewer_role, workflow.area_b)

        derived = api.as_(operator).post(
            f"/v1/documents/{document.id}/derivations",
            json={"destination_area_id": str(workflow.area_b.id), "urgent": True},
        )
        derivation_id = derived.json()["derivation"]["id"]
        received = api.as_(receiver).post(f"/v1/derivations/{derivation_id}/receive")

        assert derived.status_code == 201
        assert derived.json()["document_status"] == "DERIVED"
        assert derived.headers["ETag"] == '"2"'
        assert received.status_code == 200
        assert received.json()["derivation"]["status"] == "RECEIVED"

    def test_self_derivation_is_409(self, api, workflow, operator):
        document = workflow.seed_document(creator=operator)

        response = api.as_(operator).post(
            f"/v1/documents/{document.id}/derivations",
            json={"destination_area_id": str(workflow.area_a.id)},
        )

        assert response.status_code == 409


# =============================================================================
# Permissions
# =============================================================================


class TestPermissionEndpoints:
    def test_check_permission(self, api, workflow, viewer, operator):
        document = workflow.seed_document(creator=operator)

        response = api.as_(viewer).get(
            "/v1/permissions/check",
            params={"action": "VER", "resource_id": str(document.id)},
        )

        assert response.json() == {"allowed": True, "reason": "bitmask"}

    def test_check_permission_unknown_action_is_422(self, api, viewer):
        response = api.as_(viewer).get(
            "/v1/permissions/check", params={"action": "BORRAR"}
        )

        assert response.status_code == 422

    def test_batch_check(self, api, workflow, viewer, operator):
        ids = [str(workflow.seed_document(creator=operator).id) for _ in range(2)]

        response = api.as_(viewer).post(
            "/v1/permissions/check-batch",
            json={"action": "ELIMINAR", "resource_ids": ids},
        )

        body = response.json()
        assert response.status_code == 200
        assert set(body["results"]) == set(ids)
        assert not any(r["allowed"] for r in body["results"].values())

    def test_create_rule_as_admin(self, api, workflow, admin):
        response = api.as_(admin).post(
            "/v1/permission-rules",
            json={
                "role_id": str(workflow.viewer_role.id),
                "area_id": str(workflow.area_a.id),
                "body": {"condicion": "ES_CREADOR", "accion": "ELIMINAR"},
            },
        )

        assert response.status_code == 201
        assert response.json()["body"] == {
            "tipo": "PROPIEDAD",
            "condicion": "ES_CREADOR",
            "accion": "ELIMINAR",
        }

    def test_create_rule_accepts_bit_name_for_action(self, api, workflow, admin):
        response = api.as_(admin).post(
            "/v1/permission-rules",
            json={
                "role_id": str(workflow.viewer_role.id),
                "area_id": str(workflow.area_a.id),
                "body": {"condicion": "ES_CREADOR", "accion": "DELETE"},
            },
        )

        assert response.status_code == 201
        assert response.json()["body"]["accion"] == "ELIMINAR"

    def test_roles_catalog_decodes_capabilities(self, api, admin):
        response = api.as_(admin).get("/v1/roles")

        roles = {r["name"]: r for r in response.json()["roles"]}
        assert roles["Consulta"]["capabilities"]["VIEW"] is True
        assert roles["Consulta"]["capabilities"]["EDIT"] is False

    def test_roles_catalog_is_admin_only(self, api, viewer):
        assert api.as_(viewer).get("/v1/roles").status_code == 403


@pytest.mark.parametrize(
    "raw, expected",
    [(None, None), ("", None), ("*", None), ("3", 3), ('"3"', 3), ('W/"12"', 12)],
)
def test_parse_version_tag(raw, expected):
    assert parse_version_tag(raw) == expected


def test_healthz(api):
    assert api.client.get("/healthz").json() == {"ok": True}


def test_escaped_service_error_is_500_with_error_id(api, operator):
    broken = MagicMock()
    broken.execute.side_effect = DatabaseError("connection reset")
    api.app.dependency_overrides[container.get_get_document_use_case] = lambda: broken

    response = api.as_(operator).get(f"/v1/documents/{uuid4()}")

    body = response.json()
    assert response.status_code == 500
    assert body["code"] == "INTERNAL_ERROR"
    assert "connection reset" not in body["detail"]
    assert body["errors"][0]["error_id"]


def test_request_id_is_echoed_and_added_to_problem_body(api, workflow):
    response = api.client.post(
        "/v1/documents",
        json=_create_payload(workflow),
        headers={"X-Request-Id": "req-42"},
    )

    assert response.headers["X-Request-Id"] == "req-42"
    assert {"request_id": "req-42"} in response.json()["errors"]
