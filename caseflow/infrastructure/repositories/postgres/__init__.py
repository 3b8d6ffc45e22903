"""
PostgreSQL Repository Implementations.

Raw SQL over the psycopg connection pool (infrastructure.db).
"""

from .audit_trail import PostgresAuditTrailRecorder
from .catalog import (
    PostgresAreaRepository,
    PostgresContextualRuleRepository,
    PostgresRoleRepository,
)
from .workflow_store import PostgresDocumentReader, PostgresWorkflowUnitOfWork

__all__ = [
    "PostgresAuditTrailRecorder",
    "PostgresAreaRepository",
    "PostgresContextualRuleRepository",
    "PostgresRoleRepository",
    "PostgresDocumentReader",
    "PostgresWorkflowUnitOfWork",
]
