"""
===============================================================================
TARJETA CRC — schemas/permissions.py
===============================================================================

Módulo:
    Schemas HTTP para chequeos de permiso, reglas contextuales y roles

Responsabilidades:
    - DTOs de chequeo individual / por lote.
    - DTOs de alta y listado de reglas (cuerpo {tipo, condicion, accion}).
    - Catálogo de roles con capacidades decodificadas.

Colaboradores:
    - domain.authorization.Decision
    - domain.rules.ContextualPermissionRule
    - domain.entities.Role
===============================================================================
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List
from uuid import UUID

from pydantic import BaseModel, Field

from .....crosscutting.config import get_settings
from .....domain.authorization import Decision
from .....domain.entities import Role
from .....domain.rules import ContextualPermissionRule

_settings = get_settings()


class DecisionRes(BaseModel):
    allowed: bool
    reason: str

    @classmethod
    def from_decision(cls, decision: Decision) -> "DecisionRes":
        return cls(allowed=decision.allowed, reason=decision.reason.value)


class BatchCheckReq(BaseModel):
    action: str = Field(..., min_length=1)
    resource_type: str = Field(default="DOCUMENTO", min_length=1)
    resource_ids: List[UUID] = Field(
        default_factory=list, max_length=_settings.max_batch_check_ids
    )


class BatchCheckRes(BaseModel):
    action: str
    resource_type: str
    results: Dict[UUID, DecisionRes]


class CreateRuleReq(BaseModel):
    role_id: UUID
    area_id: UUID
    resource_type: str = Field(default="DOCUMENTO", min_length=1)
    body: Dict[str, Any] = Field(
        ...,
        description='{"tipo": "PROPIEDAD", "condicion": "ES_CREADOR", "accion": "ELIMINAR"}',
    )


class RuleRes(BaseModel):
    id: UUID
    role_id: UUID
    area_id: UUID
    resource_type: str
    body: Dict[str, str]
    active: bool
    created_at: datetime | None = None

    @classmethod
    def from_entity(cls, rule: ContextualPermissionRule) -> "RuleRes":
        return cls(
            id=rule.id,
            role_id=rule.role_id,
            area_id=rule.area_id,
            resource_type=rule.resource_type.value,
            body=rule.body.to_dict(),
            active=rule.active,
            created_at=rule.created_at,
        )


class RuleListRes(BaseModel):
    rules: List[RuleRes]


class RoleRes(BaseModel):
    id: UUID
    name: str
    description: str = ""
    access_level: int = 0
    permissions: int
    capabilities: Dict[str, bool]

    @classmethod
    def from_entity(cls, role: Role) -> "RoleRes":
        return cls(
            id=role.id,
            name=role.name,
            description=role.description,
            access_level=role.access_level,
            permissions=role.permissions,
            capabilities=role.capabilities(),
        )


class RoleListRes(BaseModel):
    roles: List[RoleRes]
