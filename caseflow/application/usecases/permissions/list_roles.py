"""
USE CASE: List Roles (catálogo con capacidades decodificadas)

Solo administradores. Cada rol se devuelve con su máscara; la capa HTTP
agrega los flags decodificados (Role.capabilities()).
"""

from __future__ import annotations

from ....domain.authorization import AuthorizationEngine
from ....domain.entities import Actor
from ....domain.permissions import Action
from ....domain.repositories import RoleRepository
from ....domain.rules import ResourceType
from ..workflow_results import RoleListResult
from ..workflow_support import RESOURCE_ROLE, forbidden


class ListRolesUseCase:
    def __init__(self, *, engine: AuthorizationEngine, roles: RoleRepository) -> None:
        self._engine = engine
        self._roles = roles

    def execute(self, *, actor: Actor, origin: str | None = None) -> RoleListResult:
        decision = self._engine.require_admin(
            actor, Action.VER, ResourceType.USUARIO, None, origin=origin
        )
        if not decision.allowed:
            return RoleListResult(error=forbidden(RESOURCE_ROLE))
        return RoleListResult(roles=self._roles.list_roles())
