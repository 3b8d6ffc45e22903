"""
============================================================
TARJETA CRC — infrastructure/repositories/in_memory/audit_trail.py
============================================================
Class: InMemoryAuditTrailRecorder

Responsibilities:
  - Guardar eventos de acceso denegado y entradas del log de acciones
    en listas (tests / local dev).
  - Exponer consultas simples para aserciones.

Constraints / Notes:
  - Append-only: no hay update ni delete.
  - Thread-safe (Lock).
============================================================
"""

from __future__ import annotations

from threading import Lock
from typing import List
from uuid import UUID

from ....domain.audit import ActionLogEntry, UnauthorizedAccessEvent


class InMemoryAuditTrailRecorder:
    def __init__(self) -> None:
        self._lock = Lock()
        self._unauthorized: List[UnauthorizedAccessEvent] = []
        self._actions: List[ActionLogEntry] = []

    def record_unauthorized(self, event: UnauthorizedAccessEvent) -> None:
        with self._lock:
            self._unauthorized.append(event)

    def record_action(self, entry: ActionLogEntry) -> None:
        with self._lock:
            self._actions.append(entry)

    @property
    def unauthorized_events(self) -> List[UnauthorizedAccessEvent]:
        with self._lock:
            return list(self._unauthorized)

    @property
    def action_entries(self) -> List[ActionLogEntry]:
        with self._lock:
            return list(self._actions)

    def unauthorized_for(self, user_id: UUID) -> List[UnauthorizedAccessEvent]:
        with self._lock:
            return [e for e in self._unauthorized if e.user_id == user_id]
