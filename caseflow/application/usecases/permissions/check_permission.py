"""
===============================================================================
USE CASES: Permission Checks (single / batch)
===============================================================================

Business Goal:
    Permitir que la UI pregunte "¿puedo hacer X sobre Y?" antes de mostrar
    acciones, sin ejecutar nada.

-------------------------------------------------------------------------------
CRC CARD (Class-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Classes:
    CheckPermissionUseCase, BatchCheckPermissionsUseCase

Responsibilities:
    - Parsear acción y tipo de recurso (VALIDATION_ERROR si no se reconocen).
    - Delegar la decisión en AuthorizationEngine.evaluate / authorize_many.
    - Acotar el tamaño del lote (max_batch_check_ids).

Notes:
    - Son consultas: no registran UnauthorizedAccessEvent.
===============================================================================
"""

from __future__ import annotations

from typing import Iterable, Tuple
from uuid import UUID

from ....domain.authorization import AuthorizationEngine
from ....domain.entities import Actor
from ....domain.permissions import Action, action_from_name
from ....domain.rules import ResourceType
from ..workflow_results import (
    BatchPermissionCheckResult,
    PermissionCheckResult,
    WorkflowError,
)
from ..workflow_support import validation_error


def parse_action(raw: str | Action) -> Tuple[Action | None, WorkflowError | None]:
    """Acepta el nombre de la acción (ELIMINAR) o del bit (DELETE)."""
    if isinstance(raw, Action):
        return raw, None
    action = action_from_name(raw) if isinstance(raw, str) else None
    if action is not None:
        return action, None
    allowed = ", ".join(a.value for a in Action)
    return None, validation_error(f"'action' must be one of: {allowed}")


def parse_resource_type(
    raw: str | ResourceType,
) -> Tuple[ResourceType | None, WorkflowError | None]:
    if isinstance(raw, ResourceType):
        return raw, None
    value = (raw or "").strip().upper() if isinstance(raw, str) else ""
    try:
        return ResourceType(value), None
    except ValueError:
        allowed = ", ".join(r.value for r in ResourceType)
        return None, validation_error(f"'resource_type' must be one of: {allowed}")


class CheckPermissionUseCase:
    def __init__(self, *, engine: AuthorizationEngine) -> None:
        self._engine = engine

    def execute(
        self,
        *,
        actor: Actor,
        action: str | Action,
        resource_type: str | ResourceType,
        resource_id: UUID | None = None,
    ) -> PermissionCheckResult:
        parsed_action, error = parse_action(action)
        if error is not None:
            return PermissionCheckResult(error=error)
        parsed_type, error = parse_resource_type(resource_type)
        if error is not None:
            return PermissionCheckResult(error=error)

        decision = self._engine.evaluate(actor, parsed_action, parsed_type, resource_id)
        return PermissionCheckResult(decision=decision)


class BatchCheckPermissionsUseCase:
    def __init__(self, *, engine: AuthorizationEngine, max_ids: int = 200) -> None:
        self._engine = engine
        self._max_ids = max_ids

    def execute(
        self,
        *,
        actor: Actor,
        action: str | Action,
        resource_type: str | ResourceType,
        resource_ids: Iterable[UUID],
    ) -> BatchPermissionCheckResult:
        parsed_action, error = parse_action(action)
        if error is not None:
            return BatchPermissionCheckResult(error=error)
        parsed_type, error = parse_resource_type(resource_type)
        if error is not None:
            return BatchPermissionCheckResult(error=error)

        ids = list(resource_ids)
        if len(ids) > self._max_ids:
            return BatchPermissionCheckResult(
                error=validation_error(
                    f"At most {self._max_ids} resource ids per batch."
                )
            )

        decisions = self._engine.authorize_many(actor, parsed_action, parsed_type, ids)
        return BatchPermissionCheckResult(decisions=decisions)
