"""
In-memory repository implementations (tests / local development).
"""

from .audit_trail import InMemoryAuditTrailRecorder
from .catalog import (
    InMemoryAreaRepository,
    InMemoryContextualRuleRepository,
    InMemoryRoleRepository,
)
from .workflow_store import (
    InMemoryDocumentReader,
    InMemoryWorkflowStore,
    InMemoryWorkflowUnitOfWork,
)

__all__ = [
    "InMemoryAuditTrailRecorder",
    "InMemoryAreaRepository",
    "InMemoryContextualRuleRepository",
    "InMemoryRoleRepository",
    "InMemoryDocumentReader",
    "InMemoryWorkflowStore",
    "InMemoryWorkflowUnitOfWork",
]
