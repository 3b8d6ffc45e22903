"""
===============================================================================
DOCUMENT USE CASES PACKAGE (Public API / Exports)
===============================================================================

Exporta el ciclo de vida del documento:
  create / update / change_status / trash / restore / delete_permanently,
  consultas (get / history / trash listing) y referencias a adjuntos.
===============================================================================
"""

from __future__ import annotations

from .change_document_status import ChangeDocumentStatusUseCase
from .create_document import CreateDocumentInput, CreateDocumentUseCase
from .delete_document_permanently import DeleteDocumentPermanentlyUseCase
from .get_document import GetDocumentUseCase
from .get_document_history import GetDocumentHistoryUseCase
from .list_trash import ListTrashUseCase
from .manage_attachments import AddAttachmentUseCase, ListAttachmentsUseCase
from .move_document_to_trash import MoveDocumentToTrashUseCase
from .restore_document import RestoreDocumentUseCase
from .update_document import UpdateDocumentInput, UpdateDocumentUseCase

__all__ = [
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
]
