"""
===============================================================================
TARJETA CRC — domain/authorization.py
===============================================================================

Módulo:
    Motor de Autorización (bitmask + reglas contextuales)

Responsabilidades:
    - Decidir si un actor puede ejecutar una acción sobre un recurso.
    - Ser el ÚNICO punto de entrada de autorización para operaciones mutantes.
    - Registrar cada denegación como UnauthorizedAccessEvent.

Colaboradores:
    - domain.permissions: PermissionBits (inyectado), Action
    - domain.rules: ResourceType, RuleCondition
    - domain.repositories: RoleRepository, ContextualRuleRepository,
      DocumentReader, AuditTrailRecorder
    - context.get_client_origin: origen por defecto del evento de denegación

Reglas (primera coincidencia gana):
    0) Actor bloqueado -> deny.
    1) Bitmask: (permissions & bit) == bit -> allow.
    2) ADMIN -> allow.
    3) Contextual (solo DOCUMENTO):
       a) creador + regla activa ES_CREADOR para la acción en el área del
          documento (o el área comodín) -> allow.
       b) misma área + rol local de área + regla activa MISMA_AREA -> allow.
    4) USUARIO / AREA: no se consultan reglas.
    5) Default deny.

Notas:
    - Stateless entre llamadas; las reglas se leen en cada decisión.
    - evaluate()/authorize_many() son consultas (pantallas, chequeos por lote)
      y no registran; authorize()/require_admin()/deny() sí.
    - La escritura de la denegación es best-effort: si el recorder falla
      se loguea y la decisión (deny) se mantiene.
===============================================================================
"""

from __future__ import annotations

import logging
import unicodedata
from dataclasses import dataclass
from enum import Enum
from typing import Iterable
from uuid import UUID, uuid4

from ..context import get_client_origin
from .audit import UnauthorizedAccessEvent
from .entities import Actor, Document, Role, utcnow
from .permissions import ACTION_BITS, Action, PermissionBits
from .repositories import (
    AuditTrailRecorder,
    ContextualRuleRepository,
    DocumentReader,
    RoleRepository,
)
from .rules import ResourceType, RuleCondition

logger = logging.getLogger(__name__)


class DecisionReason(str, Enum):
    """Motivo de una decisión (para logs, auditoría y respuestas)."""

    BITMASK = "bitmask"
    ADMIN = "admin"
    RULE_CREATOR = "rule:ES_CREADOR"
    RULE_SAME_AREA = "rule:MISMA_AREA"
    BLOCKED = "blocked"
    UNKNOWN_ROLE = "unknown_role"
    DOCUMENT_NOT_FOUND = "document_not_found"
    ADMIN_REQUIRED = "admin_required"
    OUTSIDE_DESTINATION_AREA = "outside_destination_area"
    NO_PERMISSION = "no_permission"


@dataclass(frozen=True, slots=True)
class Decision:
    allowed: bool
    reason: DecisionReason

    def __bool__(self) -> bool:
        return self.allowed


def normalize_role_name(name: str) -> str:
    """
    Normaliza un nombre de rol para compararlo por igualdad.

    "Responsable de Área " -> "responsable de area"
    """
    decomposed = unicodedata.normalize("NFKD", name or "")
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return " ".join(stripped.lower().split())


class AuthorizationEngine:
    """
    Punto único de decisión de acceso.

    Uso:
        decision = engine.authorize(actor, Action.ELIMINAR, ResourceType.DOCUMENTO, doc_id)
        if not decision.allowed:
            ...  # FORBIDDEN (la denegación ya quedó registrada)
    """

    def __init__(
        self,
        *,
        roles: RoleRepository,
        rules: ContextualRuleRepository,
        documents: DocumentReader,
        recorder: AuditTrailRecorder,
        bits: type[PermissionBits] = PermissionBits,
        area_local_roles: Iterable[str] = (),
        wildcard_area_id: UUID | None = None,
    ):
        self._roles = roles
        self._rules = rules
        self._documents = documents
        self._recorder = recorder
        self._bits = bits
        self._action_bits = {
            action: bits[bit.name] for action, bit in ACTION_BITS.items()
        }
        self._area_local_roles = frozenset(
            normalize_role_name(name) for name in area_local_roles if name.strip()
        )
        self._wildcard_area_id = wildcard_area_id

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def authorize(
        self,
        actor: Actor,
        action: Action,
        resource_type: ResourceType,
        resource_id: UUID | None = None,
        *,
        origin: str | None = None,
        document: Document | None = None,
    ) -> Decision:
        """
        Decide y, si deniega, registra el intento.

        `document` evita una relectura cuando el caller ya tiene la fila
        (por ejemplo, bloqueada dentro de la transacción).
        """
        decision = self.evaluate(
            actor, action, resource_type, resource_id, document=document
        )
        if not decision.allowed:
            self._record_denial(
                actor, action, resource_type, resource_id, decision, origin
            )
        return decision

    def deny(
        self,
        actor: Actor,
        action: Action,
        resource_type: ResourceType,
        resource_id: UUID | None,
        reason: DecisionReason,
        *,
        origin: str | None = None,
    ) -> Decision:
        """Registra una denegación decidida por una guarda del caller."""
        decision = Decision(False, reason)
        self._record_denial(actor, action, resource_type, resource_id, decision, origin)
        return decision

    def is_admin(self, actor: Actor) -> bool:
        """ADMIN bit del rol (sin registrar nada)."""
        if actor.blocked:
            return False
        role = self._roles.get_role(actor.role_id)
        return role is not None and self._has(role, self._bits.ADMIN)

    def require_admin(
        self,
        actor: Actor,
        action: Action,
        resource_type: ResourceType,
        resource_id: UUID | None = None,
        *,
        origin: str | None = None,
    ) -> Decision:
        """ADMIN bit y nada más: sin reglas contextuales."""
        if actor.blocked:
            decision = Decision(False, DecisionReason.BLOCKED)
        else:
            role = self._roles.get_role(actor.role_id)
            if role is None:
                decision = Decision(False, DecisionReason.UNKNOWN_ROLE)
            elif self._has(role, self._bits.ADMIN):
                decision = Decision(True, DecisionReason.ADMIN)
            else:
                decision = Decision(False, DecisionReason.ADMIN_REQUIRED)

        if not decision.allowed:
            self._record_denial(
                actor, action, resource_type, resource_id, decision, origin
            )
        return decision

    def authorize_many(
        self,
        actor: Actor,
        action: Action,
        resource_type: ResourceType,
        resource_ids: Iterable[UUID],
    ) -> dict[UUID, Decision]:
        """
        Decisión por recurso (pantallas de listado).

        Es una consulta, no un intento de acceso: no registra denegaciones.
        """
        results: dict[UUID, Decision] = {}
        for resource_id in resource_ids:
            if resource_id in results:
                continue
            results[resource_id] = self.evaluate(
                actor, action, resource_type, resource_id
            )
        return results

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def _has(self, role: Role, bit: PermissionBits) -> bool:
        return (int(role.permissions) & int(bit)) == int(bit)

    def evaluate(
        self,
        actor: Actor,
        action: Action,
        resource_type: ResourceType,
        resource_id: UUID | None = None,
        *,
        document: Document | None = None,
    ) -> Decision:
        """Decisión pura: no registra denegaciones."""
        if actor.blocked:
            return Decision(False, DecisionReason.BLOCKED)

        role = self._roles.get_role(actor.role_id)
        if role is None:
            return Decision(False, DecisionReason.UNKNOWN_ROLE)

        # 1) Bitmask
        if self._has(role, self._action_bits[action]):
            return Decision(True, DecisionReason.BITMASK)

        # 2) Admin override
        if self._has(role, self._bits.ADMIN):
            return Decision(True, DecisionReason.ADMIN)

        # 3) Contextual: only documents carry ownership/area context
        if resource_type != ResourceType.DOCUMENTO or resource_id is None:
            return Decision(False, DecisionReason.NO_PERMISSION)

        if document is None or document.id != resource_id:
            document = self._documents.get_document(resource_id)
        if document is None:
            return Decision(False, DecisionReason.DOCUMENT_NOT_FOUND)

        return self._evaluate_rules(actor, role, action, document)

    def _evaluate_rules(
        self, actor: Actor, role: Role, action: Action, document: Document
    ) -> Decision:
        rules = [
            rule
            for rule in self._rules.list_active_rules(role.id, ResourceType.DOCUMENTO)
            if rule.active and rule.resource_type == ResourceType.DOCUMENTO
        ]
        if not rules:
            return Decision(False, DecisionReason.NO_PERMISSION)

        # a) Ownership: rule registered for the document area (or the wildcard area)
        creator_areas = {document.current_area_id}
        if self._wildcard_area_id is not None:
            creator_areas.add(self._wildcard_area_id)

        if actor.user_id == document.creator_id and any(
            rule.area_id in creator_areas
            and rule.body.matches(RuleCondition.ES_CREADOR, action)
            for rule in rules
        ):
            return Decision(True, DecisionReason.RULE_CREATOR)

        # b) Same area, area-local role archetype: rule matched by role only
        if (
            actor.area_id is not None
            and actor.area_id == document.current_area_id
            and normalize_role_name(role.name) in self._area_local_roles
            and any(
                rule.body.matches(RuleCondition.MISMA_AREA, action) for rule in rules
            )
        ):
            return Decision(True, DecisionReason.RULE_SAME_AREA)

        return Decision(False, DecisionReason.NO_PERMISSION)

    # ------------------------------------------------------------------
    # Audit
    # ------------------------------------------------------------------

    def _record_denial(
        self,
        actor: Actor,
        action: Action,
        resource_type: ResourceType,
        resource_id: UUID | None,
        decision: Decision,
        origin: str | None,
    ) -> None:
        event = UnauthorizedAccessEvent(
            id=uuid4(),
            user_id=actor.user_id,
            resource_type=resource_type.value,
            resource_id=resource_id,
            action=action.value,
            origin=origin or get_client_origin(),
            reason=decision.reason.value,
            created_at=utcnow(),
        )
        logger.info(
            "Access denied",
            extra={
                "user_id": str(actor.user_id),
                "resource_type": resource_type.value,
                "resource_id": str(resource_id) if resource_id else None,
                "action": action.value,
                "reason": decision.reason.value,
            },
        )
        try:
            self._recorder.record_unauthorized(event)
        except Exception as exc:
            logger.warning(
                "Failed to record unauthorized access event",
                extra={"event_id": str(event.id), "error": str(exc)},
            )
