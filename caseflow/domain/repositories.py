"""
CRC — domain/repositories.py

Name
- Domain Repository Interfaces (Protocols)

Responsibilities
- Define persistence contracts for the domain layer (ports).
- Keep the application/domain independent from infrastructure (PostgreSQL, in-memory).
- Express the transactional boundary (WorkflowUnitOfWork) every multi-step
  lifecycle mutation must run inside.

Collaborators
- domain.entities: Document, Derivation, StatusChange, AttachmentReference, Role, Area
- domain.rules: ContextualPermissionRule, ResourceType
- domain.audit: TraceEvent, UnauthorizedAccessEvent, ActionLogEntry
- infrastructure.repositories: postgres/*, in_memory/* implementations

Constraints
- Pure interfaces only: no side effects, no infrastructure imports, no SQL.
- Implementations MUST match method signatures exactly.

Notes
- typing.Protocol for structural subtyping.
- Store-level writes return bool where a concurrent writer can make them
  miss (compare-and-set on Document.version).
"""

from contextlib import AbstractContextManager
from typing import List, Optional, Protocol
from uuid import UUID

from .audit import ActionLogEntry, TraceEvent, UnauthorizedAccessEvent
from .entities import (
    Area,
    AttachmentReference,
    Derivation,
    Document,
    DocumentStatus,
    Role,
    StatusChange,
)
from .rules import ContextualPermissionRule, ResourceType

# ---------------------------------------------------------------------------
# Read-side ports (used by the AuthorizationEngine and queries)
# ---------------------------------------------------------------------------


class DocumentReader(Protocol):
    """R: Read a document's ownership/area attributes outside a transaction."""

    def get_document(self, document_id: UUID) -> Optional[Document]:
        """R: Fetch a document by ID (None if absent)."""
        ...


class RoleRepository(Protocol):
    """R: Interface for role lookup."""

    def get_role(self, role_id: UUID) -> Optional[Role]:
        """R: Fetch a role by ID."""
        ...

    def list_roles(self) -> List[Role]:
        """R: List roles ordered by access level, then name."""
        ...


class AreaRepository(Protocol):
    """R: Interface for area lookup."""

    def get_area(self, area_id: UUID) -> Optional[Area]:
        """R: Fetch an area by ID."""
        ...

    def list_areas(self, *, include_inactive: bool = False) -> List[Area]:
        """R: List areas ordered by name."""
        ...


class ContextualRuleRepository(Protocol):
    """
    R: Interface for contextual permission rule persistence.

    Implementations must provide:
      - Active rule lookup per (role, resource type)
      - Admin management (create / list / deactivate)
    """

    def list_active_rules(
        self, role_id: UUID, resource_type: ResourceType
    ) -> List[ContextualPermissionRule]:
        """R: Active rules for a role and resource type (any area)."""
        ...

    def list_rules(
        self, *, include_inactive: bool = False
    ) -> List[ContextualPermissionRule]:
        """R: All rules ordered by resource type, then creation time."""
        ...

    def get_rule(self, rule_id: UUID) -> Optional[ContextualPermissionRule]:
        """R: Fetch a rule by ID."""
        ...

    def create_rule(self, rule: ContextualPermissionRule) -> ContextualPermissionRule:
        """R: Persist a new rule."""
        ...

    def deactivate_rule(self, rule_id: UUID) -> bool:
        """R: Mark a rule inactive. False if it does not exist."""
        ...


class AuditTrailRecorder(Protocol):
    """
    R: External append-only sink for audit records.

    Callers treat it as fire-and-forget: failures are logged, never
    propagated into (or rolling back) a lifecycle mutation.
    """

    def record_unauthorized(self, event: UnauthorizedAccessEvent) -> None:
        """R: Persist a denied access attempt."""
        ...

    def record_action(self, entry: ActionLogEntry) -> None:
        """R: Persist a structured action log entry."""
        ...


# ---------------------------------------------------------------------------
# Transactional ports (only reachable through WorkflowUnitOfWork)
# ---------------------------------------------------------------------------


class DocumentStore(Protocol):
    """R: Document rows inside a transaction."""

    def get_document(
        self, document_id: UUID, *, for_update: bool = False
    ) -> Optional[Document]:
        """R: Fetch a document; for_update locks the row until commit."""
        ...

    def get_by_registration_number(
        self, registration_number: str
    ) -> Optional[Document]:
        """R: Uniqueness lookup."""
        ...

    def insert_document(self, document: Document) -> None:
        """R: Insert a new document row."""
        ...

    def update_document(self, document: Document, *, expected_version: int) -> bool:
        """
        R: Compare-and-set write.

        Persists `document` only if the stored row still has
        `expected_version`. Returns False when a concurrent writer won.
        """
        ...

    def delete_document(self, document_id: UUID) -> bool:
        """R: Physically remove a document row."""
        ...

    def list_by_status(
        self, status: DocumentStatus, *, limit: int = 50, offset: int = 0
    ) -> List[Document]:
        """R: Documents in a status, newest update first."""
        ...


class DerivationStore(Protocol):
    """R: Derivation rows inside a transaction."""

    def insert_derivation(self, derivation: Derivation) -> None:
        ...

    def get_derivation(
        self, derivation_id: UUID, *, for_update: bool = False
    ) -> Optional[Derivation]:
        ...

    def latest_for_document(self, document_id: UUID) -> Optional[Derivation]:
        """R: Most recent derivation (derived_at desc)."""
        ...

    def list_for_document(self, document_id: UUID) -> List[Derivation]:
        """R: Derivations ordered by derived_at desc."""
        ...

    def update_derivation(self, derivation: Derivation) -> bool:
        ...

    def count_for_document(self, document_id: UUID) -> int:
        ...


class StatusHistoryStore(Protocol):
    """R: Status history rows inside a transaction."""

    def append(self, change: StatusChange) -> None:
        ...

    def list_for_document(self, document_id: UUID) -> List[StatusChange]:
        """R: Ordered by created_at desc."""
        ...

    def delete_for_document(self, document_id: UUID) -> int:
        ...


class TraceStore(Protocol):
    """R: Append-only trace events inside a transaction (no update/delete)."""

    def append(self, event: TraceEvent) -> None:
        ...

    def list_for_document(self, document_id: UUID) -> List[TraceEvent]:
        """R: Ordered by created_at asc (provenance chain order)."""
        ...


class AttachmentStore(Protocol):
    """R: Attachment references inside a transaction."""

    def add(self, attachment: AttachmentReference) -> None:
        ...

    def list_for_document(self, document_id: UUID) -> List[AttachmentReference]:
        ...

    def delete_for_document(self, document_id: UUID) -> int:
        ...


class WorkflowTransaction(Protocol):
    """R: Stores bound to one open store-level transaction."""

    documents: DocumentStore
    derivations: DerivationStore
    status_history: StatusHistoryStore
    traces: TraceStore
    attachments: AttachmentStore
    areas: AreaRepository


class WorkflowUnitOfWork(Protocol):
    """
    R: Transaction boundary for lifecycle and derivation mutations.

    Contract:
      - Leaving the context normally commits every write.
      - Any exception rolls back every write and propagates.
      - A half-applied mutation is never observable by other transactions.
    """

    def transaction(self) -> AbstractContextManager[WorkflowTransaction]:
        ...
