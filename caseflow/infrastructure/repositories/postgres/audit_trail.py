"""
============================================================
TARJETA CRC — infrastructure/repositories/postgres/audit_trail.py
============================================================
Class: PostgresAuditTrailRecorder

Responsibilities:
  - Persistir accesos denegados (unauthorized_access_events).
  - Persistir el log estructurado de acciones (action_log).
  - Listar eventos recientes para consultas de administración.

Collaborators:
  - PostgresRepositoryBase
  - psycopg.types.json.Json (metadata JSONB)
  - domain.audit

Constraints / Notes:
  - Append-only. Autocommit por statement: nunca participa de la
    transacción del caso de uso (los callers lo tratan como best-effort).
  - actor sigue la convención "user:<uuid>" / "anonymous".
============================================================
"""

from __future__ import annotations

from typing import List
from uuid import UUID

from psycopg.types.json import Json

from ....domain.audit import ActionLogEntry, UnauthorizedAccessEvent
from ._base import PostgresRepositoryBase


class PostgresAuditTrailRecorder(PostgresRepositoryBase):
    def record_unauthorized(self, event: UnauthorizedAccessEvent) -> None:
        self._execute(
            query="""
                INSERT INTO unauthorized_access_events
                    (id, user_id, resource_type, resource_id, action, origin,
                     reason, created_at)
                VALUES (%s, %s, %s, %s, %s, %s, %s, COALESCE(%s, NOW()))
            """,
            params=[
                event.id,
                event.user_id,
                event.resource_type,
                event.resource_id,
                event.action,
                event.origin,
                event.reason,
                event.created_at,
            ],
            context_msg="PostgresAuditTrailRecorder: Failed to record denial",
            extra={"event_id": str(event.id)},
        )

    def record_action(self, entry: ActionLogEntry) -> None:
        self._execute(
            query="""
                INSERT INTO action_log (id, actor, action, target_id, metadata, created_at)
                VALUES (%s, %s, %s, %s, %s, COALESCE(%s, NOW()))
            """,
            params=[
                entry.id,
                entry.actor,
                entry.action,
                entry.target_id,
                Json(entry.metadata or {}),
                entry.created_at,
            ],
            context_msg="PostgresAuditTrailRecorder: Failed to record action",
            extra={"action": entry.action},
        )

    def unauthorized_for(
        self, user_id: UUID, *, limit: int = 100
    ) -> List[UnauthorizedAccessEvent]:
        rows = self._fetchall(
            query="""
                SELECT id, user_id, resource_type, resource_id, action, origin,
                       reason, created_at
                FROM unauthorized_access_events
                WHERE user_id = %s
                ORDER BY created_at DESC, id DESC
                LIMIT %s
            """,
            params=[user_id, limit],
            context_msg="PostgresAuditTrailRecorder: Failed to list denials",
            extra={"user_id": str(user_id)},
        )
        return [
            UnauthorizedAccessEvent(
                id=r[0],
                user_id=r[1],
                resource_type=r[2],
                resource_id=r[3],
                action=r[4],
                origin=r[5],
                reason=r[6] or "",
                created_at=r[7],
            )
            for r in rows
        ]
