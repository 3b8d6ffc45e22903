"""
===============================================================================
TARJETA CRC — domain/rules.py
===============================================================================

Módulo:
    Reglas de Permiso Contextual

Responsabilidades:
    - Representar el cuerpo de una regla como tipo estructural
      RuleBody(kind, condition, action), comparado por igualdad.
    - Parsear/validar cuerpos de regla entrantes (dict o JSON) sin
      búsqueda por substrings.
    - Definir el tipo de recurso al que aplica una regla.

Colaboradores:
    - domain.permissions.Action
    - domain.repositories.ContextualRuleRepository (persistencia)
    - domain.authorization.AuthorizationEngine (evaluación)
    - application.usecases.permissions.manage_rules (alta de reglas)

Notas:
    - Reglas para USUARIO/AREA se pueden guardar, pero el motor nunca las
      consulta: esos recursos son solo para administradores.
    - Cada condición tiene un único kind válido:
        ES_CREADOR -> PROPIEDAD
        MISMA_AREA -> AREA
===============================================================================
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Mapping
from uuid import UUID

from .permissions import Action, action_from_name


class ResourceType(str, Enum):
    """Tipos de recurso sobre los que se decide acceso."""

    DOCUMENTO = "DOCUMENTO"
    USUARIO = "USUARIO"
    AREA = "AREA"


class RuleKind(str, Enum):
    PROPIEDAD = "PROPIEDAD"
    AREA = "AREA"


class RuleCondition(str, Enum):
    ES_CREADOR = "ES_CREADOR"
    MISMA_AREA = "MISMA_AREA"


_KIND_FOR_CONDITION: dict[RuleCondition, RuleKind] = {
    RuleCondition.ES_CREADOR: RuleKind.PROPIEDAD,
    RuleCondition.MISMA_AREA: RuleKind.AREA,
}


class RuleBodyError(ValueError):
    """Cuerpo de regla malformado (se mapea a VALIDATION_ERROR)."""


@dataclass(frozen=True, slots=True)
class RuleBody:
    """Cuerpo de una regla contextual: {tipo, condicion, accion}."""

    kind: RuleKind
    condition: RuleCondition
    action: Action

    def matches(self, condition: RuleCondition, action: Action) -> bool:
        return self.condition == condition and self.action == action

    def to_dict(self) -> dict[str, str]:
        return {
            "tipo": self.kind.value,
            "condicion": self.condition.value,
            "accion": self.action.value,
        }


@dataclass
class ContextualPermissionRule:
    """Regla contextual persistida para (rol, área, tipo de recurso)."""

    id: UUID
    role_id: UUID
    area_id: UUID
    resource_type: ResourceType
    body: RuleBody
    active: bool = True
    created_at: datetime | None = None


def _enum_value(enum_cls: type[Enum], raw: Any, field_name: str) -> Any:
    if not isinstance(raw, str) or not raw.strip():
        raise RuleBodyError(f"'{field_name}' is required")
    try:
        return enum_cls(raw.strip().upper())
    except ValueError as exc:
        allowed = ", ".join(member.value for member in enum_cls)
        raise RuleBodyError(
            f"'{field_name}' must be one of: {allowed}"
        ) from exc


def _action_value(raw: Any) -> Action:
    # Mismo vocabulario que los checks de permisos: ELIMINAR o DELETE.
    if not isinstance(raw, str) or not raw.strip():
        raise RuleBodyError("'accion' is required")
    action = action_from_name(raw)
    if action is None:
        allowed = ", ".join(member.value for member in Action)
        raise RuleBodyError(f"'accion' must be one of: {allowed}")
    return action


def parse_rule_body(raw: Mapping[str, Any] | str) -> RuleBody:
    """
    Parsea un cuerpo de regla.

    Formatos aceptados:
      - {"tipo": "PROPIEDAD", "condicion": "ES_CREADOR", "accion": "ELIMINAR"}
      - el mismo objeto serializado como JSON (string)
      - claves en inglés: kind / condition / action
      - "accion" con el nombre del bit (DELETE); se guarda como ELIMINAR

    Si "tipo" se omite, se infiere desde la condición.

    Raises:
        RuleBodyError: si falta un campo, un valor no es reconocido o el
            kind no corresponde a la condición.
    """
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise RuleBodyError(f"rule body is not valid JSON: {exc.msg}") from exc

    if not isinstance(raw, Mapping):
        raise RuleBodyError("rule body must be an object")

    condition = _enum_value(
        RuleCondition, raw.get("condicion", raw.get("condition")), "condicion"
    )
    action = _action_value(raw.get("accion", raw.get("action")))

    raw_kind = raw.get("tipo", raw.get("kind"))
    expected_kind = _KIND_FOR_CONDITION[condition]
    if raw_kind is None:
        kind = expected_kind
    else:
        kind = _enum_value(RuleKind, raw_kind, "tipo")
        if kind != expected_kind:
            raise RuleBodyError(
                f"condition {condition.value} requires tipo {expected_kind.value}"
            )

    return RuleBody(kind=kind, condition=condition, action=action)
