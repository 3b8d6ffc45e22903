"""
============================================================
TARJETA CRC — infrastructure/repositories/postgres/catalog.py
============================================================
Classes:
  - PostgresRoleRepository
  - PostgresAreaRepository
  - PostgresContextualRuleRepository

Responsibilities:
  - Catálogos que consulta el motor de autorización (roles, áreas, reglas).
  - Alta / listado / desactivación de reglas contextuales.

Collaborators:
  - PostgresRepositoryBase (pool + errores consistentes)
  - psycopg.types.json.Json (cuerpo de regla en JSONB)
  - domain.rules.parse_rule_body (el cuerpo se re-valida al leer)

Constraints / Notes:
  - Repo puro: NO decide permisos.
  - Una regla con cuerpo corrupto en DB se omite y se loguea (no rompe
    la evaluación de las demás).
============================================================
"""

from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from psycopg.types.json import Json

from ....crosscutting.logger import logger
from ....domain.entities import Area, Role
from ....domain.rules import (
    ContextualPermissionRule,
    ResourceType,
    RuleBodyError,
    parse_rule_body,
)
from ._base import PostgresRepositoryBase
from .workflow_store import _row_to_area


class PostgresRoleRepository(PostgresRepositoryBase):
    _SELECT = "SELECT id, name, permissions, description, access_level FROM roles"

    @staticmethod
    def _row_to_role(row: tuple) -> Role:
        role_id, name, permissions, description, access_level = row
        return Role(
            id=role_id,
            name=name,
            permissions=int(permissions or 0),
            description=description or "",
            access_level=int(access_level or 0),
        )

    def get_role(self, role_id: UUID) -> Optional[Role]:
        row = self._fetchone(
            query=f"{self._SELECT} WHERE id = %s",
            params=[role_id],
            context_msg="PostgresRoleRepository: Failed to get role",
            extra={"role_id": str(role_id)},
        )
        return self._row_to_role(row) if row else None

    def list_roles(self) -> List[Role]:
        rows = self._fetchall(
            query=f"{self._SELECT} ORDER BY access_level ASC, name ASC",
            params=[],
            context_msg="PostgresRoleRepository: Failed to list roles",
            extra={},
        )
        return [self._row_to_role(r) for r in rows]


class PostgresAreaRepository(PostgresRepositoryBase):
    _SELECT = "SELECT id, name, code, active FROM areas"

    def get_area(self, area_id: UUID) -> Optional[Area]:
        row = self._fetchone(
            query=f"{self._SELECT} WHERE id = %s",
            params=[area_id],
            context_msg="PostgresAreaRepository: Failed to get area",
            extra={"area_id": str(area_id)},
        )
        return _row_to_area(row) if row else None

    def list_areas(self, *, include_inactive: bool = False) -> List[Area]:
        where = "" if include_inactive else "WHERE active"
        rows = self._fetchall(
            query=f"{self._SELECT} {where} ORDER BY name ASC, id ASC",
            params=[],
            context_msg="PostgresAreaRepository: Failed to list areas",
            extra={"include_inactive": include_inactive},
        )
        return [_row_to_area(r) for r in rows]


class PostgresContextualRuleRepository(PostgresRepositoryBase):
    _SELECT = """
        SELECT id, role_id, area_id, resource_type, body, active, created_at
        FROM contextual_permission_rules
    """
    _ORDER_BY = "ORDER BY resource_type ASC, created_at ASC, id ASC"

    def _rows_to_rules(self, rows: list[tuple]) -> List[ContextualPermissionRule]:
        rules: List[ContextualPermissionRule] = []
        for rule_id, role_id, area_id, resource_type, body, active, created_at in rows:
            try:
                parsed = parse_rule_body(body)
            except RuleBodyError as exc:
                logger.warning(
                    "Skipping contextual rule with malformed body",
                    extra={"rule_id": str(rule_id), "error": str(exc)},
                )
                continue
            rules.append(
                ContextualPermissionRule(
                    id=rule_id,
                    role_id=role_id,
                    area_id=area_id,
                    resource_type=ResourceType(resource_type),
                    body=parsed,
                    active=bool(active),
                    created_at=created_at,
                )
            )
        return rules

    def list_active_rules(
        self, role_id: UUID, resource_type: ResourceType
    ) -> List[ContextualPermissionRule]:
        rows = self._fetchall(
            query=f"""
                {self._SELECT}
                WHERE active AND role_id = %s AND resource_type = %s
                {self._ORDER_BY}
            """,
            params=[role_id, resource_type.value],
            context_msg="PostgresContextualRuleRepository: Failed to list active rules",
            extra={"role_id": str(role_id), "resource_type": resource_type.value},
        )
        return self._rows_to_rules(rows)

    def list_rules(
        self, *, include_inactive: bool = False
    ) -> List[ContextualPermissionRule]:
        where = "" if include_inactive else "WHERE active"
        rows = self._fetchall(
            query=f"{self._SELECT} {where} {self._ORDER_BY}",
            params=[],
            context_msg="PostgresContextualRuleRepository: Failed to list rules",
            extra={"include_inactive": include_inactive},
        )
        return self._rows_to_rules(rows)

    def get_rule(self, rule_id: UUID) -> Optional[ContextualPermissionRule]:
        row = self._fetchone(
            query=f"{self._SELECT} WHERE id = %s",
            params=[rule_id],
            context_msg="PostgresContextualRuleRepository: Failed to get rule",
            extra={"rule_id": str(rule_id)},
        )
        if row is None:
            return None
        rules = self._rows_to_rules([row])
        return rules[0] if rules else None

    def create_rule(self, rule: ContextualPermissionRule) -> ContextualPermissionRule:
        self._execute(
            query="""
                INSERT INTO contextual_permission_rules
                    (id, role_id, area_id, resource_type, body, active, created_at)
                VALUES (%s, %s, %s, %s, %s, %s, %s)
            """,
            params=[
                rule.id,
                rule.role_id,
                rule.area_id,
                rule.resource_type.value,
                Json(rule.body.to_dict()),
                rule.active,
                rule.created_at,
            ],
            context_msg="PostgresContextualRuleRepository: Failed to create rule",
            extra={"rule_id": str(rule.id)},
        )
        return rule

    def deactivate_rule(self, rule_id: UUID) -> bool:
        updated = self._execute(
            query="UPDATE contextual_permission_rules SET active = FALSE WHERE id = %s",
            params=[rule_id],
            context_msg="PostgresContextualRuleRepository: Failed to deactivate rule",
            extra={"rule_id": str(rule_id)},
        )
        return updated == 1
