"""
PERMISSION USE CASES PACKAGE (Public API / Exports)

  - Chequeos de permiso (individual / por lote)
  - Gestión de reglas contextuales (admin)
  - Catálogo de roles (admin)
"""

from __future__ import annotations

from .check_permission import (
    BatchCheckPermissionsUseCase,
    CheckPermissionUseCase,
    parse_action,
    parse_resource_type,
)
from .list_roles import ListRolesUseCase
from .manage_rules import (
    CreateContextualRuleUseCase,
    DeactivateContextualRuleUseCase,
    ListContextualRulesUseCase,
)

__all__ = [
    "CheckPermissionUseCase",
    "BatchCheckPermissionsUseCase",
    "parse_action",
    "parse_resource_type",
    "CreateContextualRuleUseCase",
    "ListContextualRulesUseCase",
    "DeactivateContextualRuleUseCase",
    "ListRolesUseCase",
]
