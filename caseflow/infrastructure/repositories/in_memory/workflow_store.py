"""
============================================================
TARJETA CRC — infrastructure/repositories/in_memory/workflow_store.py
============================================================
Classes:
  - InMemoryWorkflowStore (las "tablas" en memoria)
  - InMemoryWorkflowUnitOfWork (frontera transaccional)
  - InMemoryDocumentReader (lecturas fuera de transacción)

Responsibilities:
  - Almacenar documentos, derivaciones, historial, trazas, adjuntos y áreas
    (tests / local dev sin PostgreSQL).
  - Emular una transacción serializable: un RLock tomado durante toda la
    transacción + snapshot que se restaura si el bloque levanta.
  - Replicar el contrato de Postgres: compare-and-set sobre version,
    unicidad del número de registro, ordering determinístico.

Collaborators:
  - domain.repositories (DocumentStore, DerivationStore, ... WorkflowUnitOfWork)
  - domain.entities / domain.audit
  - crosscutting.exceptions.DuplicateKeyError

Constraints / Notes:
  - Copias defensivas: lo que sale del store nunca es el objeto guardado.
  - Las trazas no tienen FK a documentos: sobreviven al borrado permanente.
============================================================
"""

from __future__ import annotations

import copy
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from threading import RLock
from typing import Dict, Iterator, List, Optional, TypeVar
from uuid import UUID

from ....crosscutting.exceptions import DuplicateKeyError
from ....domain.audit import TraceEvent
from ....domain.entities import (
    Area,
    AttachmentReference,
    Derivation,
    Document,
    DocumentStatus,
    StatusChange,
)
from .catalog import InMemoryAreaRepository

T = TypeVar("T")

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _copy(value: T) -> T:
    return copy.deepcopy(value)


class InMemoryWorkflowStore:
    """
    Tablas en memoria compartidas por el unit of work y los lectores.

    Modelo mental:
    - Cada atributo es una "tabla".
    - `lock` serializa transacciones y lecturas (RLock: una transacción puede
      leer a través de los mismos helpers sin auto-bloquearse).
    """

    def __init__(self, areas: Optional[List[Area]] = None) -> None:
        self.lock = RLock()
        self.documents: Dict[UUID, Document] = {}
        self.derivations: Dict[UUID, Derivation] = {}
        self.status_history: List[StatusChange] = []
        self.traces: List[TraceEvent] = []
        self.attachments: List[AttachmentReference] = []
        self.areas: Dict[UUID, Area] = {a.id: a for a in (areas or [])}

    def snapshot(self) -> dict:
        return _copy(
            {
                "documents": self.documents,
                "derivations": self.derivations,
                "status_history": self.status_history,
                "traces": self.traces,
                "attachments": self.attachments,
                "areas": self.areas,
            }
        )

    def restore(self, snapshot: dict) -> None:
        self.documents = snapshot["documents"]
        self.derivations = snapshot["derivations"]
        self.status_history = snapshot["status_history"]
        self.traces = snapshot["traces"]
        self.attachments = snapshot["attachments"]
        self.areas = snapshot["areas"]


# =========================================================
# Stores (vistas de una transacción abierta)
# =========================================================
class InMemoryDocumentStore:
    def __init__(self, store: InMemoryWorkflowStore) -> None:
        self._store = store

    def get_document(
        self, document_id: UUID, *, for_update: bool = False
    ) -> Optional[Document]:
        # for_update no agrega nada: la transacción ya tiene el lock global.
        return _copy(self._store.documents.get(document_id))

    def get_by_registration_number(
        self, registration_number: str
    ) -> Optional[Document]:
        for document in self._store.documents.values():
            if document.registration_number == registration_number:
                return _copy(document)
        return None

    def insert_document(self, document: Document) -> None:
        if document.id in self._store.documents:
            raise DuplicateKeyError(f"Document {document.id} already exists.")
        if self.get_by_registration_number(document.registration_number):
            raise DuplicateKeyError(
                f"Registration number '{document.registration_number}' already exists."
            )
        self._store.documents[document.id] = _copy(document)

    def update_document(self, document: Document, *, expected_version: int) -> bool:
        current = self._store.documents.get(document.id)
        if current is None or current.version != expected_version:
            return False
        self._store.documents[document.id] = _copy(document)
        return True

    def delete_document(self, document_id: UUID) -> bool:
        return self._store.documents.pop(document_id, None) is not None

    def list_by_status(
        self, status: DocumentStatus, *, limit: int = 50, offset: int = 0
    ) -> List[Document]:
        matches = [d for d in self._store.documents.values() if d.status == status]
        matches.sort(
            key=lambda d: (d.updated_at or d.created_at or _EPOCH, str(d.id)),
            reverse=True,
        )
        return _copy(matches[offset : offset + limit])


class InMemoryDerivationStore:
    def __init__(self, store: InMemoryWorkflowStore) -> None:
        self._store = store

    def insert_derivation(self, derivation: Derivation) -> None:
        if derivation.id in self._store.derivations:
            raise DuplicateKeyError(f"Derivation {derivation.id} already exists.")
        self._store.derivations[derivation.id] = _copy(derivation)

    def get_derivation(
        self, derivation_id: UUID, *, for_update: bool = False
    ) -> Optional[Derivation]:
        return _copy(self._store.derivations.get(derivation_id))

    def _for_document(self, document_id: UUID) -> List[Derivation]:
        rows = [
            (i, d)
            for i, d in enumerate(self._store.derivations.values())
            if d.document_id == document_id
        ]
        # R: ORDER BY derived_at DESC, orden de inserción DESC
        rows.sort(key=lambda pair: (pair[1].derived_at or _EPOCH, pair[0]), reverse=True)
        return [d for _, d in rows]

    def latest_for_document(self, document_id: UUID) -> Optional[Derivation]:
        rows = self._for_document(document_id)
        return _copy(rows[0]) if rows else None

    def list_for_document(self, document_id: UUID) -> List[Derivation]:
        return _copy(self._for_document(document_id))

    def update_derivation(self, derivation: Derivation) -> bool:
        if derivation.id not in self._store.derivations:
            return False
        self._store.derivations[derivation.id] = _copy(derivation)
        return True

    def count_for_document(self, document_id: UUID) -> int:
        return len(self._for_document(document_id))


class InMemoryStatusHistoryStore:
    def __init__(self, store: InMemoryWorkflowStore) -> None:
        self._store = store

    def append(self, change: StatusChange) -> None:
        self._store.status_history.append(_copy(change))

    def list_for_document(self, document_id: UUID) -> List[StatusChange]:
        # Orden de inserción como desempate: varias filas pueden compartir timestamp.
        rows = [
            (i, c)
            for i, c in enumerate(self._store.status_history)
            if c.document_id == document_id
        ]
        rows.sort(key=lambda pair: (pair[1].created_at or _EPOCH, pair[0]), reverse=True)
        return _copy([c for _, c in rows])

    def delete_for_document(self, document_id: UUID) -> int:
        before = len(self._store.status_history)
        self._store.status_history = [
            c for c in self._store.status_history if c.document_id != document_id
        ]
        return before - len(self._store.status_history)


class InMemoryTraceStore:
    """Append-only: no expone update ni delete."""

    def __init__(self, store: InMemoryWorkflowStore) -> None:
        self._store = store

    def append(self, event: TraceEvent) -> None:
        self._store.traces.append(_copy(event))

    def list_for_document(self, document_id: UUID) -> List[TraceEvent]:
        rows = [
            (i, e)
            for i, e in enumerate(self._store.traces)
            if e.document_id == document_id
        ]
        rows.sort(key=lambda pair: (pair[1].created_at or _EPOCH, pair[0]))
        return _copy([e for _, e in rows])


class InMemoryAttachmentStore:
    def __init__(self, store: InMemoryWorkflowStore) -> None:
        self._store = store

    def add(self, attachment: AttachmentReference) -> None:
        self._store.attachments.append(_copy(attachment))

    def list_for_document(self, document_id: UUID) -> List[AttachmentReference]:
        return _copy(
            [a for a in self._store.attachments if a.document_id == document_id]
        )

    def delete_for_document(self, document_id: UUID) -> int:
        before = len(self._store.attachments)
        self._store.attachments = [
            a for a in self._store.attachments if a.document_id != document_id
        ]
        return before - len(self._store.attachments)


@dataclass
class InMemoryWorkflowTransaction:
    documents: InMemoryDocumentStore
    derivations: InMemoryDerivationStore
    status_history: InMemoryStatusHistoryStore
    traces: InMemoryTraceStore
    attachments: InMemoryAttachmentStore
    areas: InMemoryAreaRepository


# =========================================================
# Unit of work + lector
# =========================================================
class InMemoryWorkflowUnitOfWork:
    """
    Frontera transaccional en memoria.

    - Entrar: toma el lock y guarda un snapshot de todas las tablas.
    - Salir normal: commit (no hay nada que hacer).
    - Excepción: restaura el snapshot y re-levanta.
    """

    def __init__(self, store: InMemoryWorkflowStore | None = None) -> None:
        self.store = store or InMemoryWorkflowStore()

    @contextmanager
    def transaction(self) -> Iterator[InMemoryWorkflowTransaction]:
        store = self.store
        with store.lock:
            snapshot = store.snapshot()
            tx = InMemoryWorkflowTransaction(
                documents=InMemoryDocumentStore(store),
                derivations=InMemoryDerivationStore(store),
                status_history=InMemoryStatusHistoryStore(store),
                traces=InMemoryTraceStore(store),
                attachments=InMemoryAttachmentStore(store),
                areas=InMemoryAreaRepository(store),
            )
            try:
                yield tx
            except BaseException:
                store.restore(snapshot)
                raise


class InMemoryDocumentReader:
    """Lecturas por fuera de una transacción (usadas por el motor de autorización)."""

    def __init__(self, store: InMemoryWorkflowStore) -> None:
        self._store = store

    def get_document(self, document_id: UUID) -> Optional[Document]:
        with self._store.lock:
            return _copy(self._store.documents.get(document_id))
