"""
===============================================================================
USE CASES PACKAGE (Public API / Exports)
===============================================================================

Casos de uso por subdominio:
  - documents/: ciclo de vida del documento
  - derivations/: pases entre áreas
  - permissions/: chequeos, reglas contextuales y catálogo de roles

Resultados y errores compartidos en workflow_results.
===============================================================================
"""

from .derivations import DeriveDocumentUseCase, ReceiveDerivationUseCase
from .documents import (
    AddAttachmentUseCase,
    ChangeDocumentStatusUseCase,
    CreateDocumentInput,
    CreateDocumentUseCase,
    DeleteDocumentPermanentlyUseCase,
    GetDocumentHistoryUseCase,
    GetDocumentUseCase,
    ListAttachmentsUseCase,
    ListTrashUseCase,
    MoveDocumentToTrashUseCase,
    RestoreDocumentUseCase,
    UpdateDocumentInput,
    UpdateDocumentUseCase,
)
from .permissions import (
    BatchCheckPermissionsUseCase,
    CheckPermissionUseCase,
    CreateContextualRuleUseCase,
    DeactivateContextualRuleUseCase,
    ListContextualRulesUseCase,
    ListRolesUseCase,
)
from .workflow_results import WorkflowError, WorkflowErrorCode

__all__ = [
    # Documents
    "CreateDocumentInput",
    "CreateDocumentUseCase",
    "UpdateDocumentInput",
    "UpdateDocumentUseCase",
    "ChangeDocumentStatusUseCase",
    "MoveDocumentToTrashUseCase",
    "RestoreDocumentUseCase",
    "DeleteDocumentPermanentlyUseCase",
    "GetDocumentUseCase",
    "GetDocumentHistoryUseCase",
    "ListTrashUseCase",
    "AddAttachmentUseCase",
    "ListAttachmentsUseCase",
    # Derivations
    "DeriveDocumentUseCase",
    "ReceiveDerivationUseCase",
    # Permissions
    "CheckPermissionUseCase",
    "BatchCheckPermissionsUseCase",
    "CreateContextualRuleUseCase",
    "ListContextualRulesUseCase",
    "DeactivateContextualRuleUseCase",
    "ListRolesUseCase",
    # Results
    "WorkflowError",
    "WorkflowErrorCode",
]
