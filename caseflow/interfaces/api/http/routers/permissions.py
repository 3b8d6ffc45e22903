"""
===============================================================================
TARJETA CRC — interfaces/api/http/routers/permissions.py
===============================================================================

Responsibilities:
    - Chequeo de permiso individual y por lote (consultas, sin auditoría).
    - CRUD de reglas contextuales (solo administradores).
    - Catálogo de roles con capacidades decodificadas (solo administradores).

Collaborators:
    - application.usecases.permissions
    - schemas.permissions
===============================================================================
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from .....application.usecases import (
    BatchCheckPermissionsUseCase,
    CheckPermissionUseCase,
    CreateContextualRuleUseCase,
    DeactivateContextualRuleUseCase,
    ListContextualRulesUseCase,
    ListRolesUseCase,
)
from .....container import (
    get_batch_check_permissions_use_case,
    get_check_permission_use_case,
    get_create_rule_use_case,
    get_deactivate_rule_use_case,
    get_list_roles_use_case,
    get_list_rules_use_case,
)
from .....domain.entities import Actor
from ..dependencies import require_actor
from ..error_mapping import raise_workflow_error
from ..schemas.permissions import (
    BatchCheckReq,
    BatchCheckRes,
    CreateRuleReq,
    DecisionRes,
    RoleListRes,
    RoleRes,
    RuleListRes,
    RuleRes,
)

router = APIRouter(tags=["permissions"])


# =============================================================================
# Chequeos
# =============================================================================


@router.get("/permissions/check", response_model=DecisionRes)
def check_permission(
    action: str = Query(..., min_length=1),
    resource_type: str = Query("DOCUMENTO", min_length=1),
    resource_id: UUID | None = Query(None),
    actor: Actor = Depends(require_actor),
    use_case: CheckPermissionUseCase = Depends(get_check_permission_use_case),
):
    result = use_case.execute(
        actor=actor,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
    )
    if result.error is not None:
        raise_workflow_error(result.error)
    return DecisionRes.from_decision(result.decision)


@router.post("/permissions/check-batch", response_model=BatchCheckRes)
def check_permissions_batch(
    req: BatchCheckReq,
    actor: Actor = Depends(require_actor),
    use_case: BatchCheckPermissionsUseCase = Depends(
        get_batch_check_permissions_use_case
    ),
):
    result = use_case.execute(
        actor=actor,
        action=req.action,
        resource_type=req.resource_type,
        resource_ids=req.resource_ids,
    )
    if result.error is not None:
        raise_workflow_error(result.error)
    return BatchCheckRes(
        action=req.action,
        resource_type=req.resource_type,
        results={
            resource_id: DecisionRes.from_decision(decision)
            for resource_id, decision in result.decisions.items()
        },
    )


# =============================================================================
# Reglas contextuales (admin)
# =============================================================================


@router.get("/permission-rules", response_model=RuleListRes)
def list_rules(
    include_inactive: bool = Query(False),
    actor: Actor = Depends(require_actor),
    use_case: ListContextualRulesUseCase = Depends(get_list_rules_use_case),
):
    result = use_case.execute(actor=actor, include_inactive=include_inactive)
    if result.error is not None:
        raise_workflow_error(result.error)
    return RuleListRes(rules=[RuleRes.from_entity(r) for r in result.rules])


@router.post(
    "/permission-rules",
    response_model=RuleRes,
    status_code=status.HTTP_201_CREATED,
)
def create_rule(
    req: CreateRuleReq,
    actor: Actor = Depends(require_actor),
    use_case: CreateContextualRuleUseCase = Depends(get_create_rule_use_case),
):
    result = use_case.execute(
        actor=actor,
        role_id=req.role_id,
        area_id=req.area_id,
        resource_type=req.resource_type,
        body=req.body,
    )
    if result.error is not None:
        raise_workflow_error(result.error)
    return RuleRes.from_entity(result.rule)


@router.delete("/permission-rules/{rule_id}", response_model=RuleRes)
def deactivate_rule(
    rule_id: UUID,
    actor: Actor = Depends(require_actor),
    use_case: DeactivateContextualRuleUseCase = Depends(get_deactivate_rule_use_case),
):
    result = use_case.execute(actor=actor, rule_id=rule_id)
    if result.error is not None:
        raise_workflow_error(result.error, resource_id=rule_id)
    return RuleRes.from_entity(result.rule)


# =============================================================================
# Roles (admin)
# =============================================================================


@router.get("/roles", response_model=RoleListRes)
def list_roles(
    actor: Actor = Depends(require_actor),
    use_case: ListRolesUseCase = Depends(get_list_roles_use_case),
):
    result = use_case.execute(actor=actor)
    if result.error is not None:
        raise_workflow_error(result.error)
    return RoleListRes(roles=[RoleRes.from_entity(r) for r in result.roles])
