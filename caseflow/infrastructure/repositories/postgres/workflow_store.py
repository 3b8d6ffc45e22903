"""
============================================================
TARJETA CRC — infrastructure/repositories/postgres/workflow_store.py
============================================================
Classes:
  - PostgresWorkflowUnitOfWork (frontera transaccional)
  - PostgresDocumentReader (lecturas fuera de transacción)
  - Stores ligados a una conexión: documentos, derivaciones, historial,
    trazas, adjuntos, áreas.

Responsibilities:
  - Abrir una conexión del pool + conn.transaction() por unidad de trabajo:
    commit al salir normal, rollback ante cualquier excepción.
  - SELECT ... FOR UPDATE para serializar escritores sobre un documento.
  - UPDATE ... WHERE version = %s (compare-and-set).
  - Traducir errores de psycopg: UniqueViolation -> DuplicateKeyError,
    el resto -> DatabaseError (logueado con stacktrace).

Collaborators:
  - psycopg / psycopg_pool (pool instrumentado de infrastructure.db)
  - psycopg.types.json.Json (metadata JSONB)
  - domain.entities / domain.audit
  - crosscutting.logger.logger, crosscutting.exceptions

Constraints / Notes:
  - Queries SIEMPRE parametrizadas.
  - Sin lógica de negocio: guardas y permisos viven en los casos de uso.
  - trace_events no tiene FK a documents: las trazas sobreviven al
    borrado permanente.
============================================================
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List, Optional
from uuid import UUID

import psycopg
from psycopg.types.json import Json

from ....crosscutting.exceptions import DatabaseError, DuplicateKeyError
from ....crosscutting.logger import logger
from ....domain.audit import TraceAction, TraceEvent
from ....domain.entities import (
    Area,
    AttachmentReference,
    Derivation,
    DerivationStatus,
    Document,
    DocumentPriority,
    DocumentStatus,
    StatusChange,
)
from ._base import PostgresRepositoryBase

# =========================================================
# Mapping
# =========================================================
_DOCUMENT_COLUMNS = """
    id, registration_number, current_area_id, creator_id, status,
    assigned_user_id, intake_desk_id, office_number, document_date,
    origin, provenance, content, observations, priority, metadata,
    version, created_at, updated_at
"""

_DERIVATION_COLUMNS = """
    id, document_id, origin_area_id, destination_area_id, derived_by,
    status, observation, urgent, reason, derived_at, received_at, received_by
"""


def _row_to_document(row: tuple) -> Document:
    (
        document_id,
        registration_number,
        current_area_id,
        creator_id,
        status,
        assigned_user_id,
        intake_desk_id,
        office_number,
        document_date,
        origin,
        provenance,
        content,
        observations,
        priority,
        metadata,
        version,
        created_at,
        updated_at,
    ) = row
    return Document(
        id=document_id,
        registration_number=registration_number,
        current_area_id=current_area_id,
        creator_id=creator_id,
        status=DocumentStatus(status),
        assigned_user_id=assigned_user_id,
        intake_desk_id=intake_desk_id,
        office_number=office_number,
        document_date=document_date,
        origin=origin,
        provenance=provenance,
        content=content,
        observations=observations or "",
        priority=DocumentPriority(priority),
        metadata=dict(metadata or {}),
        version=version,
        created_at=created_at,
        updated_at=updated_at,
    )


def _row_to_derivation(row: tuple) -> Derivation:
    (
        derivation_id,
        document_id,
        origin_area_id,
        destination_area_id,
        derived_by,
        status,
        observation,
        urgent,
        reason,
        derived_at,
        received_at,
        received_by,
    ) = row
    return Derivation(
        id=derivation_id,
        document_id=document_id,
        origin_area_id=origin_area_id,
        destination_area_id=destination_area_id,
        derived_by=derived_by,
        status=DerivationStatus(status),
        observation=observation or "",
        urgent=bool(urgent),
        reason=reason or "",
        derived_at=derived_at,
        received_at=received_at,
        received_by=received_by,
    )


def _row_to_area(row: tuple) -> Area:
    area_id, name, code, active = row
    return Area(id=area_id, name=name, code=code, active=bool(active))


# =========================================================
# Stores (ligados a la conexión de una transacción abierta)
# =========================================================
class PostgresDocumentStore:
    def __init__(self, conn) -> None:
        self._conn = conn

    def get_document(
        self, document_id: UUID, *, for_update: bool = False
    ) -> Optional[Document]:
        lock = "FOR UPDATE" if for_update else ""
        row = self._conn.execute(
            f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE id = %s {lock}",
            (document_id,),
        ).fetchone()
        return _row_to_document(row) if row else None

    def get_by_registration_number(
        self, registration_number: str
    ) -> Optional[Document]:
        row = self._conn.execute(
            f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE registration_number = %s",
            (registration_number,),
        ).fetchone()
        return _row_to_document(row) if row else None

    def insert_document(self, document: Document) -> None:
        self._conn.execute(
            f"""
            INSERT INTO documents ({_DOCUMENT_COLUMNS})
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s,
                    %s, %s, %s, %s, %s, %s, %s, %s, %s)
            """,
            (
                document.id,
                document.registration_number,
                document.current_area_id,
                document.creator_id,
                document.status.value,
                document.assigned_user_id,
                document.intake_desk_id,
                document.office_number,
                document.document_date,
                document.origin,
                document.provenance,
                document.content,
                document.observations,
                document.priority.value,
                Json(document.metadata or {}),
                document.version,
                document.created_at,
                document.updated_at,
            ),
        )

    def update_document(self, document: Document, *, expected_version: int) -> bool:
        cur = self._conn.execute(
            """
            UPDATE documents
            SET current_area_id = %s,
                status = %s,
                assigned_user_id = %s,
                office_number = %s,
                document_date = %s,
                origin = %s,
                provenance = %s,
                content = %s,
                observations = %s,
                priority = %s,
                metadata = %s,
                version = %s,
                updated_at = %s
            WHERE id = %s AND version = %s
            """,
            (
                document.current_area_id,
                document.status.value,
                document.assigned_user_id,
                document.office_number,
                document.document_date,
                document.origin,
                document.provenance,
                document.content,
                document.observations,
                document.priority.value,
                Json(document.metadata or {}),
                document.version,
                document.updated_at,
                document.id,
                expected_version,
            ),
        )
        return cur.rowcount == 1

    def delete_document(self, document_id: UUID) -> bool:
        cur = self._conn.execute("DELETE FROM documents WHERE id = %s", (document_id,))
        return cur.rowcount == 1

    def list_by_status(
        self, status: DocumentStatus, *, limit: int = 50, offset: int = 0
    ) -> List[Document]:
        rows = self._conn.execute(
            f"""
            SELECT {_DOCUMENT_COLUMNS} FROM documents
            WHERE status = %s
            ORDER BY updated_at DESC NULLS LAST, id DESC
            LIMIT %s OFFSET %s
            """,
            (status.value, limit, offset),
        ).fetchall()
        return [_row_to_document(r) for r in rows]


class PostgresDerivationStore:
    def __init__(self, conn) -> None:
        self._conn = conn

    def insert_derivation(self, derivation: Derivation) -> None:
        self._conn.execute(
            f"""
            INSERT INTO derivations ({_DERIVATION_COLUMNS})
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            """,
            (
                derivation.id,
                derivation.document_id,
                derivation.origin_area_id,
                derivation.destination_area_id,
                derivation.derived_by,
                derivation.status.value,
                derivation.observation,
                derivation.urgent,
                derivation.reason,
                derivation.derived_at,
                derivation.received_at,
                derivation.received_by,
            ),
        )

    def get_derivation(
        self, derivation_id: UUID, *, for_update: bool = False
    ) -> Optional[Derivation]:
        lock = "FOR UPDATE" if for_update else ""
        row = self._conn.execute(
            f"SELECT {_DERIVATION_COLUMNS} FROM derivations WHERE id = %s {lock}",
            (derivation_id,),
        ).fetchone()
        return _row_to_derivation(row) if row else None

    def latest_for_document(self, document_id: UUID) -> Optional[Derivation]:
        row = self._conn.execute(
            f"""
            SELECT {_DERIVATION_COLUMNS} FROM derivations
            WHERE document_id = %s
            ORDER BY derived_at DESC, id DESC
            LIMIT 1
            """,
            (document_id,),
        ).fetchone()
        return _row_to_derivation(row) if row else None

    def list_for_document(self, document_id: UUID) -> List[Derivation]:
        rows = self._conn.execute(
            f"""
            SELECT {_DERIVATION_COLUMNS} FROM derivations
            WHERE document_id = %s
            ORDER BY derived_at DESC, id DESC
            """,
            (document_id,),
        ).fetchall()
        return [_row_to_derivation(r) for r in rows]

    def update_derivation(self, derivation: Derivation) -> bool:
        cur = self._conn.execute(
            """
            UPDATE derivations
            SET status = %s, received_at = %s, received_by = %s
            WHERE id = %s
            """,
            (
                derivation.status.value,
                derivation.received_at,
                derivation.received_by,
                derivation.id,
            ),
        )
        return cur.rowcount == 1

    def count_for_document(self, document_id: UUID) -> int:
        row = self._conn.execute(
            "SELECT COUNT(*) FROM derivations WHERE document_id = %s",
            (document_id,),
        ).fetchone()
        return int(row[0]) if row else 0


class PostgresStatusHistoryStore:
    def __init__(self, conn) -> None:
        self._conn = conn

    def append(self, change: StatusChange) -> None:
        self._conn.execute(
            """
            INSERT INTO document_status_history
                (id, document_id, previous_status, new_status, user_id,
                 observation, created_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            """,
            (
                change.id,
                change.document_id,
                change.previous_status.value if change.previous_status else None,
                change.new_status.value,
                change.user_id,
                change.observation,
                change.created_at,
            ),
        )

    def list_for_document(self, document_id: UUID) -> List[StatusChange]:
        rows = self._conn.execute(
            """
            SELECT id, document_id, previous_status, new_status, user_id,
                   observation, created_at
            FROM document_status_history
            WHERE document_id = %s
            ORDER BY created_at DESC, seq DESC
            """,
            (document_id,),
        ).fetchall()
        return [
            StatusChange(
                id=r[0],
                document_id=r[1],
                previous_status=DocumentStatus(r[2]) if r[2] else None,
                new_status=DocumentStatus(r[3]),
                user_id=r[4],
                observation=r[5] or "",
                created_at=r[6],
            )
            for r in rows
        ]

    def delete_for_document(self, document_id: UUID) -> int:
        cur = self._conn.execute(
            "DELETE FROM document_status_history WHERE document_id = %s",
            (document_id,),
        )
        return cur.rowcount


class PostgresTraceStore:
    """Append-only: no expone update ni delete."""

    def __init__(self, conn) -> None:
        self._conn = conn

    def append(self, event: TraceEvent) -> None:
        self._conn.execute(
            """
            INSERT INTO trace_events
                (id, document_id, user_id, action, origin_area_id,
                 destination_area_id, observation, created_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            """,
            (
                event.id,
                event.document_id,
                event.user_id,
                event.action.value,
                event.origin_area_id,
                event.destination_area_id,
                event.observation,
                event.created_at,
            ),
        )

    def list_for_document(self, document_id: UUID) -> List[TraceEvent]:
        rows = self._conn.execute(
            """
            SELECT id, document_id, user_id, action, origin_area_id,
                   destination_area_id, observation, created_at
            FROM trace_events
            WHERE document_id = %s
            ORDER BY created_at ASC, seq ASC
            """,
            (document_id,),
        ).fetchall()
        return [
            TraceEvent(
                id=r[0],
                document_id=r[1],
                user_id=r[2],
                action=TraceAction(r[3]),
                origin_area_id=r[4],
                destination_area_id=r[5],
                observation=r[6] or "",
                created_at=r[7],
            )
            for r in rows
        ]


class PostgresAttachmentStore:
    def __init__(self, conn) -> None:
        self._conn = conn

    def add(self, attachment: AttachmentReference) -> None:
        self._conn.execute(
            """
            INSERT INTO document_attachments
                (id, document_id, storage_key, file_name, mime_type,
                 uploaded_by, created_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            """,
            (
                attachment.id,
                attachment.document_id,
                attachment.storage_key,
                attachment.file_name,
                attachment.mime_type,
                attachment.uploaded_by,
                attachment.created_at,
            ),
        )

    def list_for_document(self, document_id: UUID) -> List[AttachmentReference]:
        rows = self._conn.execute(
            """
            SELECT id, document_id, storage_key, file_name, mime_type,
                   uploaded_by, created_at
            FROM document_attachments
            WHERE document_id = %s
            ORDER BY created_at ASC, id ASC
            """,
            (document_id,),
        ).fetchall()
        return [
            AttachmentReference(
                id=r[0],
                document_id=r[1],
                storage_key=r[2],
                file_name=r[3],
                mime_type=r[4],
                uploaded_by=r[5],
                created_at=r[6],
            )
            for r in rows
        ]

    def delete_for_document(self, document_id: UUID) -> int:
        cur = self._conn.execute(
            "DELETE FROM document_attachments WHERE document_id = %s",
            (document_id,),
        )
        return cur.rowcount


class PostgresAreaStore:
    """Lecturas de áreas dentro de la transacción (misma conexión)."""

    _SELECT = "SELECT id, name, code, active FROM areas"

    def __init__(self, conn) -> None:
        self._conn = conn

    def get_area(self, area_id: UUID) -> Optional[Area]:
        row = self._conn.execute(f"{self._SELECT} WHERE id = %s", (area_id,)).fetchone()
        return _row_to_area(row) if row else None

    def list_areas(self, *, include_inactive: bool = False) -> List[Area]:
        where = "" if include_inactive else "WHERE active"
        rows = self._conn.execute(f"{self._SELECT} {where} ORDER BY name, id").fetchall()
        return [_row_to_area(r) for r in rows]


@dataclass
class PostgresWorkflowTransaction:
    documents: PostgresDocumentStore
    derivations: PostgresDerivationStore
    status_history: PostgresStatusHistoryStore
    traces: PostgresTraceStore
    attachments: PostgresAttachmentStore
    areas: PostgresAreaStore

    @classmethod
    def bind(cls, conn) -> "PostgresWorkflowTransaction":
        return cls(
            documents=PostgresDocumentStore(conn),
            derivations=PostgresDerivationStore(conn),
            status_history=PostgresStatusHistoryStore(conn),
            traces=PostgresTraceStore(conn),
            attachments=PostgresAttachmentStore(conn),
            areas=PostgresAreaStore(conn),
        )


# =========================================================
# Unit of work + lector
# =========================================================
class PostgresWorkflowUnitOfWork(PostgresRepositoryBase):
    """
    Una transacción PostgreSQL por unidad de trabajo.

    Los errores de psycopg se traducen DESPUÉS de que conn.transaction()
    hizo rollback.
    """

    @contextmanager
    def transaction(self) -> Iterator[PostgresWorkflowTransaction]:
        try:
            with self._get_pool().connection() as conn:
                with conn.transaction():
                    yield PostgresWorkflowTransaction.bind(conn)
        except psycopg.errors.UniqueViolation as exc:
            logger.warning(
                "PostgresWorkflowUnitOfWork: unique constraint violated",
                extra={"constraint": getattr(exc.diag, "constraint_name", None)},
            )
            raise DuplicateKeyError(
                "A record with the same unique key already exists.",
                original_error=exc,
            ) from exc
        except psycopg.Error as exc:
            logger.exception(
                "PostgresWorkflowUnitOfWork: transaction failed",
                extra={"error": str(exc)},
            )
            raise DatabaseError(
                f"Workflow transaction failed: {exc}", original_error=exc
            ) from exc


class PostgresDocumentReader(PostgresRepositoryBase):
    def get_document(self, document_id: UUID) -> Optional[Document]:
        row = self._fetchone(
            query=f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE id = %s",
            params=[document_id],
            context_msg="PostgresDocumentReader: Failed to get document",
            extra={"document_id": str(document_id)},
        )
        return _row_to_document(row) if row else None
