"""
===============================================================================
USE CASE: Get Document History
===============================================================================

Business Goal:
    Mostrar el recorrido completo de un documento: derivaciones, cambios de
    estado y la cadena de trazas.

-------------------------------------------------------------------------------
CRC CARD (Class-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Class:
    GetDocumentHistoryUseCase

Responsibilities:
    - Autorizar VER sobre el documento.
    - Leer las tres colecciones en una misma transacción (snapshot
      consistente).

Collaborators:
    - AuthorizationEngine, DocumentReader, WorkflowUnitOfWork
===============================================================================
"""

from __future__ import annotations

from uuid import UUID

from ....domain.authorization import AuthorizationEngine
from ....domain.entities import Actor
from ....domain.permissions import Action
from ....domain.repositories import DocumentReader, WorkflowUnitOfWork
from ..workflow_results import DocumentHistoryResult
from ..workflow_support import (
    TRANSACTION_ERRORS,
    resolve_document_for,
    translate_transaction_error,
)


class GetDocumentHistoryUseCase:
    def __init__(
        self,
        *,
        engine: AuthorizationEngine,
        documents: DocumentReader,
        unit_of_work: WorkflowUnitOfWork,
    ) -> None:
        self._engine = engine
        self._documents = documents
        self._uow = unit_of_work

    def execute(
        self, *, document_id: UUID, actor: Actor, origin: str | None = None
    ) -> DocumentHistoryResult:
        document, error = resolve_document_for(
            Action.VER,
            document_id=document_id,
            actor=actor,
            engine=self._engine,
            documents=self._documents,
            origin=origin,
        )
        if error is not None:
            return DocumentHistoryResult(error=error)

        try:
            with self._uow.transaction() as tx:
                derivations = tx.derivations.list_for_document(document_id)
                status_history = tx.status_history.list_for_document(document_id)
                traces = tx.traces.list_for_document(document_id)
        except TRANSACTION_ERRORS as exc:
            return DocumentHistoryResult(
                error=translate_transaction_error(
                    exc, operation="document.history", document_id=document_id
                )
            )

        return DocumentHistoryResult(
            document=document,
            derivations=derivations,
            status_history=status_history,
            traces=traces,
        )
