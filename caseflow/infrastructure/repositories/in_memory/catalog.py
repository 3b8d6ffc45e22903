"""
============================================================
TARJETA CRC — infrastructure/repositories/in_memory/catalog.py
============================================================
Classes:
  - InMemoryRoleRepository
  - InMemoryAreaRepository
  - InMemoryContextualRuleRepository

Responsibilities:
  - Catálogos de lectura que consulta el motor de autorización.
  - Alta / listado / desactivación de reglas contextuales.
  - Ordering determinístico alineado con Postgres.

Constraints / Notes:
  - Thread-safe: acceso protegido por Lock.
  - Las áreas viven en InMemoryWorkflowStore para que una transacción
    las vea con el mismo lock que al resto de las tablas.
============================================================
"""

from __future__ import annotations

import copy
from datetime import datetime, timezone
from threading import Lock
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional
from uuid import UUID

from ....domain.entities import Area, Role
from ....domain.rules import ContextualPermissionRule, ResourceType

if TYPE_CHECKING:
    from .workflow_store import InMemoryWorkflowStore


class InMemoryRoleRepository:
    """Roles son inmutables (frozen): no hace falta copiarlos."""

    def __init__(self, roles: Iterable[Role] = ()) -> None:
        self._lock = Lock()
        self._roles: Dict[UUID, Role] = {r.id: r for r in roles}

    def add_role(self, role: Role) -> None:
        with self._lock:
            self._roles[role.id] = role

    def get_role(self, role_id: UUID) -> Optional[Role]:
        with self._lock:
            return self._roles.get(role_id)

    def list_roles(self) -> List[Role]:
        with self._lock:
            values = list(self._roles.values())
        return sorted(values, key=lambda r: (r.access_level, r.name))


class InMemoryAreaRepository:
    def __init__(self, store: "InMemoryWorkflowStore") -> None:
        self._store = store

    def add_area(self, area: Area) -> None:
        with self._store.lock:
            self._store.areas[area.id] = copy.deepcopy(area)

    def get_area(self, area_id: UUID) -> Optional[Area]:
        with self._store.lock:
            return copy.deepcopy(self._store.areas.get(area_id))

    def list_areas(self, *, include_inactive: bool = False) -> List[Area]:
        with self._store.lock:
            values = [
                a for a in self._store.areas.values() if include_inactive or a.active
            ]
            return copy.deepcopy(sorted(values, key=lambda a: (a.name, str(a.id))))


class InMemoryContextualRuleRepository:
    def __init__(self, rules: Iterable[ContextualPermissionRule] = ()) -> None:
        self._lock = Lock()
        self._rules: Dict[UUID, ContextualPermissionRule] = {r.id: r for r in rules}

    @staticmethod
    def _sort_key(rule: ContextualPermissionRule):
        created = rule.created_at or datetime.min.replace(tzinfo=timezone.utc)
        return (rule.resource_type.value, created, str(rule.id))

    def list_active_rules(
        self, role_id: UUID, resource_type: ResourceType
    ) -> List[ContextualPermissionRule]:
        with self._lock:
            values = [
                r
                for r in self._rules.values()
                if r.active and r.role_id == role_id and r.resource_type == resource_type
            ]
        return copy.deepcopy(sorted(values, key=self._sort_key))

    def list_rules(
        self, *, include_inactive: bool = False
    ) -> List[ContextualPermissionRule]:
        with self._lock:
            values = [r for r in self._rules.values() if include_inactive or r.active]
        return copy.deepcopy(sorted(values, key=self._sort_key))

    def get_rule(self, rule_id: UUID) -> Optional[ContextualPermissionRule]:
        with self._lock:
            return copy.deepcopy(self._rules.get(rule_id))

    def create_rule(self, rule: ContextualPermissionRule) -> ContextualPermissionRule:
        with self._lock:
            self._rules[rule.id] = copy.deepcopy(rule)
        return rule

    def deactivate_rule(self, rule_id: UUID) -> bool:
        with self._lock:
            rule = self._rules.get(rule_id)
            if rule is None:
                return False
            rule.active = False
            return True
