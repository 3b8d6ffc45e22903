"""
===============================================================================
CRC CARD — infrastructure/db/instrumentation.py
===============================================================================

Clases:
  - TimedConnection (Proxy)
  - InstrumentedConnectionPool (Facade)

Responsabilidades:
  - Medir cada conn.execute(...) y loguear las lentas con tipo de statement
    y tabla principal (nunca parámetros: llevan datos de expedientes).
  - Healthcheck opcional al adquirir la conexión (SELECT 1 + rollback).
  - Traducir fallas de adquisición a DatabaseConnectionError.

Colaboradores:
  - crosscutting.logger
  - psycopg_pool.ConnectionPool (pool real)
===============================================================================
"""

from __future__ import annotations

import re
import time
from contextlib import contextmanager
from typing import Any, Iterator

import psycopg

from ...crosscutting.logger import logger
from .errors import DatabaseConnectionError

_TABLE_RE = re.compile(r"\b(?:FROM|INTO|UPDATE|JOIN)\s+([a-z_][a-z0-9_]*)", re.IGNORECASE)


def _statement_kind(sql: Any) -> str:
    """Primer token del statement (SELECT, UPDATE, ...)."""
    parts = str(sql).lstrip().split(None, 1)
    return parts[0].upper() if parts else "UNKNOWN"


def _statement_table(sql: Any) -> str | None:
    match = _TABLE_RE.search(str(sql))
    return match.group(1).lower() if match else None


class TimedConnection:
    """
    Proxy de psycopg.Connection que cronometra execute().

    El resto (transaction(), cursor(), commit()...) se delega tal cual.
    """

    def __init__(self, inner_conn, *, slow_query_seconds: float) -> None:
        self._conn = inner_conn
        self._slow = slow_query_seconds

    def execute(self, sql, *args, **kwargs):
        start = time.perf_counter()
        try:
            return self._conn.execute(sql, *args, **kwargs)
        finally:
            elapsed = time.perf_counter() - start
            if elapsed >= self._slow:
                logger.warning(
                    "DB query lenta",
                    extra={
                        "kind": _statement_kind(sql),
                        "table": _statement_table(sql),
                        "seconds": round(elapsed, 4),
                    },
                )

    def __getattr__(self, item: str):
        return getattr(self._conn, item)


class InstrumentedConnectionPool:
    """
    Envoltura del pool real con la misma forma de uso:
    `with pool.connection() as conn:` entrega un TimedConnection.
    """

    def __init__(
        self,
        inner_pool,
        *,
        slow_query_seconds: float = 0.25,
        healthcheck: bool = True,
    ) -> None:
        self._pool = inner_pool
        self._slow_seconds = slow_query_seconds
        self._healthcheck = healthcheck

    def _check(self, conn) -> None:
        try:
            conn.execute("SELECT 1")
        except psycopg.Error as exc:
            raise DatabaseConnectionError(
                "La conexión DB no pasó el healthcheck.", original_error=exc
            ) from exc
        # SELECT 1 deja una transacción implícita abierta.
        conn.rollback()

    @contextmanager
    def connection(self, *args, **kwargs) -> Iterator[TimedConnection]:
        try:
            acquired = self._pool.connection(*args, **kwargs)
            conn = acquired.__enter__()
        except psycopg.Error as exc:
            raise DatabaseConnectionError(
                "No se pudo adquirir una conexión DB.", original_error=exc
            ) from exc

        try:
            if self._healthcheck:
                self._check(conn)
            yield TimedConnection(conn, slow_query_seconds=self._slow_seconds)
        except BaseException as exc:
            if not acquired.__exit__(type(exc), exc, exc.__traceback__):
                raise
        else:
            acquired.__exit__(None, None, None)

    def __getattr__(self, item: str):
        return getattr(self._pool, item)
