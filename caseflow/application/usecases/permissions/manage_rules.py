"""
===============================================================================
USE CASES: Contextual Rule Management (admin only)
===============================================================================

Name:
    Contextual permission rule management

Business Goal:
    Que un administrador delegue permisos finos (ej. "el creador puede
    eliminar su documento en el área X") sin tocar las máscaras de rol.

-------------------------------------------------------------------------------
CRC CARD (Class-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Classes:
    CreateContextualRuleUseCase
    ListContextualRulesUseCase
    DeactivateContextualRuleUseCase

Responsibilities:
    - require_admin en las tres operaciones (ADMIN bit, sin reglas).
    - Validar el cuerpo de la regla con parse_rule_body (VALIDATION_ERROR).
    - Validar existencia de rol y área (NOT_FOUND).
    - Desactivar en lugar de borrar (las reglas quedan como historia).

Collaborators:
    - AuthorizationEngine.require_admin
    - ContextualRuleRepository, RoleRepository, AreaRepository
    - domain.rules.parse_rule_body
===============================================================================
"""

from __future__ import annotations

import logging
from typing import Any, Mapping
from uuid import UUID, uuid4

from ....domain.authorization import AuthorizationEngine
from ....domain.entities import Actor, utcnow
from ....domain.permissions import Action
from ....domain.repositories import (
    AreaRepository,
    AuditTrailRecorder,
    ContextualRuleRepository,
    RoleRepository,
)
from ....domain.rules import (
    ContextualPermissionRule,
    ResourceType,
    RuleBodyError,
    parse_rule_body,
)
from ...audit_trail import emit_action
from ..workflow_results import RuleListResult, RuleResult
from ..workflow_support import (
    RESOURCE_AREA,
    RESOURCE_ROLE,
    RESOURCE_RULE,
    forbidden,
    not_found,
    validation_error,
)
from .check_permission import parse_resource_type

logger = logging.getLogger(__name__)


class CreateContextualRuleUseCase:
    def __init__(
        self,
        *,
        engine: AuthorizationEngine,
        rules: ContextualRuleRepository,
        roles: RoleRepository,
        areas: AreaRepository,
        recorder: AuditTrailRecorder | None = None,
    ) -> None:
        self._engine = engine
        self._rules = rules
        self._roles = roles
        self._areas = areas
        self._recorder = recorder

    def execute(
        self,
        *,
        actor: Actor,
        role_id: UUID,
        area_id: UUID,
        resource_type: str | ResourceType,
        body: Mapping[str, Any] | str,
        origin: str | None = None,
    ) -> RuleResult:
        # 1) Solo administradores.
        decision = self._engine.require_admin(
            actor, Action.ADMIN, ResourceType.USUARIO, None, origin=origin
        )
        if not decision.allowed:
            return RuleResult(error=forbidden(RESOURCE_RULE))

        # 2) Input.
        parsed_type, error = parse_resource_type(resource_type)
        if error is not None:
            return RuleResult(error=error)
        try:
            rule_body = parse_rule_body(body)
        except RuleBodyError as exc:
            return RuleResult(error=validation_error(str(exc), RESOURCE_RULE))

        # 3) Referencias.
        if self._roles.get_role(role_id) is None:
            return RuleResult(error=not_found(RESOURCE_ROLE))
        if self._areas.get_area(area_id) is None:
            return RuleResult(error=not_found(RESOURCE_AREA))

        # 4) Persistir.
        rule = self._rules.create_rule(
            ContextualPermissionRule(
                id=uuid4(),
                role_id=role_id,
                area_id=area_id,
                resource_type=parsed_type,
                body=rule_body,
                active=True,
                created_at=utcnow(),
            )
        )
        if parsed_type != ResourceType.DOCUMENTO:
            logger.warning(
                "Contextual rule stored for a resource type the engine never consults",
                extra={"rule_id": str(rule.id), "resource_type": parsed_type.value},
            )

        emit_action(
            self._recorder,
            action="rule.create",
            actor=actor,
            target_id=rule.id,
            metadata={
                "role_id": role_id,
                "area_id": area_id,
                "resource_type": parsed_type,
                **rule_body.to_dict(),
            },
        )
        return RuleResult(rule=rule)


class ListContextualRulesUseCase:
    def __init__(
        self, *, engine: AuthorizationEngine, rules: ContextualRuleRepository
    ) -> None:
        self._engine = engine
        self._rules = rules

    def execute(
        self,
        *,
        actor: Actor,
        include_inactive: bool = False,
        origin: str | None = None,
    ) -> RuleListResult:
        decision = self._engine.require_admin(
            actor, Action.ADMIN, ResourceType.USUARIO, None, origin=origin
        )
        if not decision.allowed:
            return RuleListResult(error=forbidden(RESOURCE_RULE))
        return RuleListResult(
            rules=self._rules.list_rules(include_inactive=include_inactive)
        )


class DeactivateContextualRuleUseCase:
    def __init__(
        self,
        *,
        engine: AuthorizationEngine,
        rules: ContextualRuleRepository,
        recorder: AuditTrailRecorder | None = None,
    ) -> None:
        self._engine = engine
        self._rules = rules
        self._recorder = recorder

    def execute(
        self, *, actor: Actor, rule_id: UUID, origin: str | None = None
    ) -> RuleResult:
        decision = self._engine.require_admin(
            actor, Action.ADMIN, ResourceType.USUARIO, rule_id, origin=origin
        )
        if not decision.allowed:
            return RuleResult(error=forbidden(RESOURCE_RULE))

        rule = self._rules.get_rule(rule_id)
        if rule is None or not self._rules.deactivate_rule(rule_id):
            return RuleResult(error=not_found(RESOURCE_RULE))

        rule.active = False
        emit_action(
            self._recorder,
            action="rule.deactivate",
            actor=actor,
            target_id=rule_id,
        )
        return RuleResult(rule=rule)
