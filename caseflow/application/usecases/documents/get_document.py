"""
===============================================================================
USE CASE: Get Document
===============================================================================

Class:
    GetDocumentUseCase

Rules:
    - NOT_FOUND si no existe.
    - Requiere VER (bitmask, admin o regla contextual).
===============================================================================
"""

from __future__ import annotations

from uuid import UUID

from ....domain.authorization import AuthorizationEngine
from ....domain.entities import Actor
from ....domain.permissions import Action
from ....domain.repositories import DocumentReader
from ..workflow_results import DocumentResult
from ..workflow_support import resolve_document_for


class GetDocumentUseCase:
    def __init__(self, *, engine: AuthorizationEngine, documents: DocumentReader):
        self._engine = engine
        self._documents = documents

    def execute(
        self, *, document_id: UUID, actor: Actor, origin: str | None = None
    ) -> DocumentResult:
        document, error = resolve_document_for(
            Action.VER,
            document_id=document_id,
            actor=actor,
            engine=self._engine,
            documents=self._documents,
            origin=origin,
        )
        if error is not None:
            return DocumentResult(error=error)
        return DocumentResult(document=document)
