"""
===============================================================================
TARJETA CRC — domain/__init__.py
===============================================================================

Módulo:
    Exportaciones de la Capa de Dominio (API pública del dominio)

Responsabilidades:
    - Centralizar exports para imports limpios en application/interfaces.
    - Mantener estable el "surface area" del dominio.

Colaboradores:
    - domain.entities / domain.audit: entidades y eventos
    - domain.permissions / domain.rules: vocabulario de autorización
    - domain.authorization: AuthorizationEngine
    - domain.lifecycle: reglas de estado
    - domain.repositories: puertos de persistencia

Reglas:
    - Solo re-exporta contratos/entidades del dominio.
    - No importar infraestructura aquí.
===============================================================================
"""

from .audit import ActionLogEntry, TraceAction, TraceEvent, UnauthorizedAccessEvent
from .authorization import AuthorizationEngine, Decision, DecisionReason
from .entities import (
    Actor,
    Area,
    AttachmentReference,
    Derivation,
    DerivationStatus,
    Document,
    DocumentPriority,
    DocumentStatus,
    Role,
    StatusChange,
)
from .permissions import Action, PermissionBits
from .repositories import (
    AreaRepository,
    AuditTrailRecorder,
    ContextualRuleRepository,
    DocumentReader,
    RoleRepository,
    WorkflowTransaction,
    WorkflowUnitOfWork,
)
from .rules import (
    ContextualPermissionRule,
    ResourceType,
    RuleBody,
    RuleBodyError,
    RuleCondition,
    RuleKind,
    parse_rule_body,
)

__all__ = [
    # Entities
    "Actor",
    "Role",
    "Area",
    "Document",
    "DocumentStatus",
    "DocumentPriority",
    "Derivation",
    "DerivationStatus",
    "StatusChange",
    "AttachmentReference",
    # Audit
    "TraceAction",
    "TraceEvent",
    "UnauthorizedAccessEvent",
    "ActionLogEntry",
    # Authorization
    "Action",
    "PermissionBits",
    "ResourceType",
    "RuleKind",
    "RuleCondition",
    "RuleBody",
    "RuleBodyError",
    "ContextualPermissionRule",
    "parse_rule_body",
    "AuthorizationEngine",
    "Decision",
    "DecisionReason",
    # Repository Interfaces (Ports)
    "RoleRepository",
    "AreaRepository",
    "ContextualRuleRepository",
    "DocumentReader",
    "AuditTrailRecorder",
    "WorkflowTransaction",
    "WorkflowUnitOfWork",
]
