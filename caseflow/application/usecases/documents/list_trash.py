"""
===============================================================================
USE CASE: List Trash
===============================================================================

Class:
    ListTrashUseCase

Rules:
    - Requiere VER a nivel de rol (bitmask o ADMIN): no hay recurso concreto,
      por lo que las reglas contextuales no aplican.
    - limit se acota a [1, 200]; offset >= 0.
===============================================================================
"""

from __future__ import annotations

from typing import Final

from ....domain.authorization import AuthorizationEngine
from ....domain.entities import Actor, DocumentStatus
from ....domain.permissions import Action
from ....domain.repositories import WorkflowUnitOfWork
from ....domain.rules import ResourceType
from ..workflow_results import DocumentListResult
from ..workflow_support import (
    RESOURCE_DOCUMENT,
    TRANSACTION_ERRORS,
    forbidden,
    translate_transaction_error,
)

_MAX_LIMIT: Final[int] = 200


class ListTrashUseCase:
    def __init__(
        self, *, engine: AuthorizationEngine, unit_of_work: WorkflowUnitOfWork
    ) -> None:
        self._engine = engine
        self._uow = unit_of_work

    def execute(
        self,
        *,
        actor: Actor,
        limit: int = 50,
        offset: int = 0,
        origin: str | None = None,
    ) -> DocumentListResult:
        decision = self._engine.authorize(
            actor, Action.VER, ResourceType.DOCUMENTO, None, origin=origin
        )
        if not decision.allowed:
            return DocumentListResult(error=forbidden(RESOURCE_DOCUMENT))

        limit = max(1, min(limit, _MAX_LIMIT))
        offset = max(0, offset)

        try:
            with self._uow.transaction() as tx:
                documents = tx.documents.list_by_status(
                    DocumentStatus.TRASH, limit=limit, offset=offset
                )
        except TRANSACTION_ERRORS as exc:
            return DocumentListResult(
                error=translate_transaction_error(exc, operation="document.list_trash")
            )
        return DocumentListResult(documents=documents)
