"""
Name: Pytest Configuration and Shared Fixtures

Responsibilities:
  - Configure the test environment (in-memory store, no .env)
  - Build a fully wired in-memory workflow (store, engine, recorder)
  - Provide role / area / actor / document factories

Collaborators:
  - pytest: Test framework
  - caseflow.infrastructure.repositories.in_memory: store + repositories
  - caseflow.domain: entities, permissions, rules

Notes:
  - Every test gets a fresh `workflow` (function scope): no shared state.
  - Documents are seeded straight into the store tables, bypassing use cases.
"""

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
from uuid import UUID, uuid4

import pytest

os.environ.setdefault("APP_ENV", "test")

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from caseflow.crosscutting import config as app_config  # noqa: E402

app_config.Settings.model_config["env_file"] = None

from caseflow.domain.authorization import AuthorizationEngine  # noqa: E402
from caseflow.domain.entities import (  # noqa: E402
    Actor,
    Area,
    Document,
    DocumentStatus,
    Role,
    utcnow,
)
from caseflow.domain.permissions import PermissionBits  # noqa: E402
from caseflow.domain.rules import (  # noqa: E402
    ContextualPermissionRule,
    ResourceType,
    parse_rule_body,
)
from caseflow.infrastructure.repositories.in_memory import (  # noqa: E402
    InMemoryAreaRepository,
    InMemoryAuditTrailRecorder,
    InMemoryContextualRuleRepository,
    InMemoryDocumentReader,
    InMemoryRoleRepository,
    InMemoryWorkflowStore,
    InMemoryWorkflowUnitOfWork,
)

AREA_LOCAL_ROLES = ("Mesa de Partes", "Responsable de Área")


def pytest_configure(config) -> None:
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, no external dependencies)"
    )


# ============================================================================
# Wired in-memory workflow
# ============================================================================


@dataclass
class Workflow:
    """R: Everything a use case needs, backed by one in-memory store."""

    store: InMemoryWorkflowStore
    uow: InMemoryWorkflowUnitOfWork
    reader: InMemoryDocumentReader
    roles: InMemoryRoleRepository
    areas: InMemoryAreaRepository
    rules: InMemoryContextualRuleRepository
    recorder: InMemoryAuditTrailRecorder
    engine: AuthorizationEngine

    area_a: Area = field(default=None)
    area_b: Area = field(default=None)
    admin_role: Role = field(default=None)
    operator_role: Role = field(default=None)
    viewer_role: Role = field(default=None)
    desk_role: Role = field(default=None)
    no_perm_role: Role = field(default=None)

    def add_area(self, name: str, code: str, *, active: bool = True) -> Area:
        area = Area(id=uuid4(), name=name, code=code, active=active)
        self.areas.add_area(area)
        return area

    def add_role(self, name: str, permissions: int) -> Role:
        role = Role(id=uuid4(), name=name, permissions=permissions)
        self.roles.add_role(role)
        return role

    def actor(
        self,
        role: Role,
        area: Optional[Area] = None,
        *,
        user_id: Optional[UUID] = None,
        blocked: bool = False,
    ) -> Actor:
        return Actor(
            user_id=user_id or uuid4(),
            role_id=role.id,
            area_id=area.id if area else None,
            blocked=blocked,
        )

    def add_rule(
        self,
        role: Role,
        area: Area,
        body: dict,
        *,
        resource_type: ResourceType = ResourceType.DOCUMENTO,
        active: bool = True,
    ) -> ContextualPermissionRule:
        return self.rules.create_rule(
            ContextualPermissionRule(
                id=uuid4(),
                role_id=role.id,
                area_id=area.id,
                resource_type=resource_type,
                body=parse_rule_body(body),
                active=active,
                created_at=utcnow(),
            )
        )

    def seed_document(
        self,
        *,
        creator: Actor,
        area: Optional[Area] = None,
        status: DocumentStatus = DocumentStatus.RECEIVED,
        registration_number: Optional[str] = None,
        version: int = 1,
    ) -> Document:
        now = utcnow()
        document = Document(
            id=uuid4(),
            registration_number=registration_number or f"EXP-{uuid4().hex[:8]}",
            current_area_id=(area or self.area_a).id,
            creator_id=creator.user_id,
            status=status,
            office_number="OF-001",
            origin="Ciudadano",
            version=version,
            created_at=now,
            updated_at=now,
        )
        with self.store.lock:
            self.store.documents[document.id] = document
        return self.reader.get_document(document.id)

    def stored(self, document_id: UUID) -> Optional[Document]:
        return self.reader.get_document(document_id)


def build_workflow(*, wildcard_area_id: Optional[UUID] = None) -> Workflow:
    store = InMemoryWorkflowStore()
    roles = InMemoryRoleRepository()
    rules = InMemoryContextualRuleRepository()
    recorder = InMemoryAuditTrailRecorder()
    reader = InMemoryDocumentReader(store)
    engine = AuthorizationEngine(
        roles=roles,
        rules=rules,
        documents=reader,
        recorder=recorder,
        bits=PermissionBits,
        area_local_roles=AREA_LOCAL_ROLES,
        wildcard_area_id=wildcard_area_id,
    )
    workflow = Workflow(
        store=store,
        uow=InMemoryWorkflowUnitOfWork(store),
        reader=reader,
        roles=roles,
        areas=InMemoryAreaRepository(store),
        rules=rules,
        recorder=recorder,
        engine=engine,
    )

    workflow.area_a = workflow.add_area("Secretaría General", "SG")
    workflow.area_b = workflow.add_area("Asesoría Legal", "AL")

    workflow.admin_role = workflow.add_role("Administrador", 0xFF)
    workflow.operator_role = workflow.add_role(
        "Operador",
        PermissionBits.CREATE
        | PermissionBits.EDIT
        | PermissionBits.VIEW
        | PermissionBits.DERIVE,
    )
    workflow.viewer_role = workflow.add_role("Consulta", PermissionBits.VIEW)
    workflow.desk_role = workflow.add_role("Mesa de Partes", PermissionBits.VIEW)
    workflow.no_perm_role = workflow.add_role("Invitado", 0)
    return workflow


@pytest.fixture
def workflow() -> Workflow:
    """R: Fresh wired in-memory workflow with two areas and five roles."""
    return build_workflow()


@pytest.fixture
def admin(workflow: Workflow) -> Actor:
    return workflow.actor(workflow.admin_role, workflow.area_a)


@pytest.fixture
def operator(workflow: Workflow) -> Actor:
    return workflow.actor(workflow.operator_role, workflow.area_a)


@pytest.fixture
def viewer(workflow: Workflow) -> Actor:
    return workflow.actor(workflow.viewer_role, workflow.area_a)
