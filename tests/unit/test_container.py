"""
Name: Container Wiring Tests

Responsibilities:
  - Validate that the test environment wires the in-memory backend
  - Validate that the in-memory repositories share one store
  - Validate that use case factories build without a database
"""

import pytest

from caseflow import container
from caseflow.crosscutting.config import get_settings
from caseflow.infrastructure.repositories.in_memory import (
    InMemoryAreaRepository,
    InMemoryAuditTrailRecorder,
    InMemoryContextualRuleRepository,
    InMemoryDocumentReader,
    InMemoryRoleRepository,
    InMemoryWorkflowUnitOfWork,
)

pytestmark = pytest.mark.unit

_CACHED = (
    get_settings,
    container.get_in_memory_store,
    container.get_unit_of_work,
    container.get_document_reader,
    container.get_role_repository,
    container.get_area_repository,
    container.get_rule_repository,
    container.get_audit_recorder,
)


@pytest.fixture(autouse=True)
def fresh_container(monkeypatch):
    monkeypatch.setenv("APP_ENV", "test")
    for factory in _CACHED:
        factory.cache_clear()
    yield
    for factory in _CACHED:
        factory.cache_clear()


def test_test_env_wires_in_memory_repositories():
    assert isinstance(container.get_unit_of_work(), InMemoryWorkflowUnitOfWork)
    assert isinstance(container.get_document_reader(), InMemoryDocumentReader)
    assert isinstance(container.get_role_repository(), InMemoryRoleRepository)
    assert isinstance(container.get_area_repository(), InMemoryAreaRepository)
    assert isinstance(container.get_rule_repository(), InMemoryContextualRuleRepository)
    assert isinstance(container.get_audit_recorder(), InMemoryAuditTrailRecorder)


def test_repositories_are_singletons_over_one_store():
    assert container.get_unit_of_work() is container.get_unit_of_work()
    assert container.get_in_memory_store() is container.get_in_memory_store()


def test_trash_use_case_builds_with_configured_note_template():
    use_case = container.get_move_document_to_trash_use_case()

    assert use_case._note_template == get_settings().trash_note_template
