"""
===============================================================================
TARJETA CRC — caseflow/container.py (Composition Root / DI manual)
===============================================================================

Responsabilidades:
  - Componer repositorios, motor de autorización y casos de uso.
  - Exponer factories para FastAPI (Depends).
  - Mantener singletons con caching (lru_cache) para recursos compartidos.
  - Elegir in-memory vs PostgreSQL según Settings.uses_in_memory_store().

Colaboradores:
  - caseflow.crosscutting.config.get_settings
  - caseflow.domain (puertos + AuthorizationEngine)
  - caseflow.infrastructure.repositories (postgres / in_memory)
  - caseflow.application.usecases

Notas:
  - Este archivo NO contiene lógica de negocio.
  - Este archivo NO depende de FastAPI (solo expone factories).
  - El motor se construye por llamada: es stateless y request-scoped.
===============================================================================
"""

from __future__ import annotations

from functools import lru_cache

from .application.usecases import (
    AddAttachmentUseCase,
    BatchCheckPermissionsUseCase,
    ChangeDocumentStatusUseCase,
    CheckPermissionUseCase,
    CreateContextualRuleUseCase,
    CreateDocumentUseCase,
    DeactivateContextualRuleUseCase,
    DeleteDocumentPermanentlyUseCase,
    DeriveDocumentUseCase,
    GetDocumentHistoryUseCase,
    GetDocumentUseCase,
    ListAttachmentsUseCase,
    ListContextualRulesUseCase,
    ListRolesUseCase,
    ListTrashUseCase,
    MoveDocumentToTrashUseCase,
    ReceiveDerivationUseCase,
    RestoreDocumentUseCase,
    UpdateDocumentUseCase,
)
from .crosscutting.config import get_settings
from .domain.authorization import AuthorizationEngine
from .domain.repositories import (
    AreaRepository,
    AuditTrailRecorder,
    ContextualRuleRepository,
    DocumentReader,
    RoleRepository,
    WorkflowUnitOfWork,
)
from .infrastructure.repositories.in_memory import (
    InMemoryAreaRepository,
    InMemoryAuditTrailRecorder,
    InMemoryContextualRuleRepository,
    InMemoryDocumentReader,
    InMemoryRoleRepository,
    InMemoryWorkflowStore,
    InMemoryWorkflowUnitOfWork,
)
from .infrastructure.repositories.postgres import (
    PostgresAreaRepository,
    PostgresAuditTrailRecorder,
    PostgresContextualRuleRepository,
    PostgresDocumentReader,
    PostgresRoleRepository,
    PostgresWorkflowUnitOfWork,
)


def _in_memory() -> bool:
    return get_settings().uses_in_memory_store()


# =============================================================================
# Repositorios (singletons)
# =============================================================================


@lru_cache(maxsize=1)
def get_in_memory_store() -> InMemoryWorkflowStore:
    """Tablas compartidas por el unit of work, el lector y las áreas en memoria."""
    return InMemoryWorkflowStore()


@lru_cache(maxsize=1)
def get_unit_of_work() -> WorkflowUnitOfWork:
    if _in_memory():
        return InMemoryWorkflowUnitOfWork(get_in_memory_store())
    return PostgresWorkflowUnitOfWork()


@lru_cache(maxsize=1)
def get_document_reader() -> DocumentReader:
    if _in_memory():
        return InMemoryDocumentReader(get_in_memory_store())
    return PostgresDocumentReader()


@lru_cache(maxsize=1)
def get_role_repository() -> RoleRepository:
    if _in_memory():
        return InMemoryRoleRepository()
    return PostgresRoleRepository()


@lru_cache(maxsize=1)
def get_area_repository() -> AreaRepository:
    if _in_memory():
        return InMemoryAreaRepository(get_in_memory_store())
    return PostgresAreaRepository()


@lru_cache(maxsize=1)
def get_rule_repository() -> ContextualRuleRepository:
    if _in_memory():
        return InMemoryContextualRuleRepository()
    return PostgresContextualRuleRepository()


@lru_cache(maxsize=1)
def get_audit_recorder() -> AuditTrailRecorder:
    if _in_memory():
        return InMemoryAuditTrailRecorder()
    return PostgresAuditTrailRecorder()


# =============================================================================
# Motor de autorización
# =============================================================================


def get_authorization_engine() -> AuthorizationEngine:
    settings = get_settings()
    return AuthorizationEngine(
        roles=get_role_repository(),
        rules=get_rule_repository(),
        documents=get_document_reader(),
        recorder=get_audit_recorder(),
        area_local_roles=settings.get_area_local_roles(),
        wildcard_area_id=settings.rule_wildcard_area_id,
    )


# =============================================================================
# Casos de uso: documentos
# =============================================================================


def get_create_document_use_case() -> CreateDocumentUseCase:
    return CreateDocumentUseCase(
        engine=get_authorization_engine(),
        unit_of_work=get_unit_of_work(),
        recorder=get_audit_recorder(),
        max_observation_chars=get_settings().max_observation_chars,
    )


def get_get_document_use_case() -> GetDocumentUseCase:
    return GetDocumentUseCase(
        engine=get_authorization_engine(), documents=get_document_reader()
    )


def get_update_document_use_case() -> UpdateDocumentUseCase:
    return UpdateDocumentUseCase(
        engine=get_authorization_engine(),
        documents=get_document_reader(),
        unit_of_work=get_unit_of_work(),
        recorder=get_audit_recorder(),
        max_observation_chars=get_settings().max_observation_chars,
    )


def get_change_document_status_use_case() -> ChangeDocumentStatusUseCase:
    return ChangeDocumentStatusUseCase(
        engine=get_authorization_engine(),
        documents=get_document_reader(),
        unit_of_work=get_unit_of_work(),
        recorder=get_audit_recorder(),
        max_observation_chars=get_settings().max_observation_chars,
    )


def get_move_document_to_trash_use_case() -> MoveDocumentToTrashUseCase:
    return MoveDocumentToTrashUseCase(
        engine=get_authorization_engine(),
        documents=get_document_reader(),
        unit_of_work=get_unit_of_work(),
        recorder=get_audit_recorder(),
        note_template=get_settings().trash_note_template,
    )


def get_restore_document_use_case() -> RestoreDocumentUseCase:
    return RestoreDocumentUseCase(
        engine=get_authorization_engine(),
        documents=get_document_reader(),
        unit_of_work=get_unit_of_work(),
        recorder=get_audit_recorder(),
    )


def get_delete_document_permanently_use_case() -> DeleteDocumentPermanentlyUseCase:
    return DeleteDocumentPermanentlyUseCase(
        engine=get_authorization_engine(),
        documents=get_document_reader(),
        unit_of_work=get_unit_of_work(),
        recorder=get_audit_recorder(),
    )


def get_document_history_use_case() -> GetDocumentHistoryUseCase:
    return GetDocumentHistoryUseCase(
        engine=get_authorization_engine(),
        documents=get_document_reader(),
        unit_of_work=get_unit_of_work(),
    )


def get_list_trash_use_case() -> ListTrashUseCase:
    return ListTrashUseCase(
        engine=get_authorization_engine(), unit_of_work=get_unit_of_work()
    )


def get_add_attachment_use_case() -> AddAttachmentUseCase:
    return AddAttachmentUseCase(
        engine=get_authorization_engine(),
        documents=get_document_reader(),
        unit_of_work=get_unit_of_work(),
        recorder=get_audit_recorder(),
    )


def get_list_attachments_use_case() -> ListAttachmentsUseCase:
    return ListAttachmentsUseCase(
        engine=get_authorization_engine(),
        documents=get_document_reader(),
        unit_of_work=get_unit_of_work(),
    )


# =============================================================================
# Casos de uso: derivaciones
# =============================================================================


def get_derive_document_use_case() -> DeriveDocumentUseCase:
    return DeriveDocumentUseCase(
        engine=get_authorization_engine(),
        documents=get_document_reader(),
        unit_of_work=get_unit_of_work(),
        recorder=get_audit_recorder(),
        max_observation_chars=get_settings().max_observation_chars,
    )


def get_receive_derivation_use_case() -> ReceiveDerivationUseCase:
    return ReceiveDerivationUseCase(
        engine=get_authorization_engine(),
        unit_of_work=get_unit_of_work(),
        recorder=get_audit_recorder(),
    )


# =============================================================================
# Casos de uso: permisos
# =============================================================================


def get_check_permission_use_case() -> CheckPermissionUseCase:
    return CheckPermissionUseCase(engine=get_authorization_engine())


def get_batch_check_permissions_use_case() -> BatchCheckPermissionsUseCase:
    return BatchCheckPermissionsUseCase(
        engine=get_authorization_engine(),
        max_ids=get_settings().max_batch_check_ids,
    )


def get_create_rule_use_case() -> CreateContextualRuleUseCase:
    return CreateContextualRuleUseCase(
        engine=get_authorization_engine(),
        rules=get_rule_repository(),
        roles=get_role_repository(),
        areas=get_area_repository(),
        recorder=get_audit_recorder(),
    )


def get_list_rules_use_case() -> ListContextualRulesUseCase:
    return ListContextualRulesUseCase(
        engine=get_authorization_engine(), rules=get_rule_repository()
    )


def get_deactivate_rule_use_case() -> DeactivateContextualRuleUseCase:
    return DeactivateContextualRuleUseCase(
        engine=get_authorization_engine(),
        rules=get_rule_repository(),
        recorder=get_audit_recorder(),
    )


def get_list_roles_use_case() -> ListRolesUseCase:
    return ListRolesUseCase(
        engine=get_authorization_engine(), roles=get_role_repository()
    )
