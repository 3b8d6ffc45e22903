"""
============================================================
TARJETA CRC — infrastructure/repositories/postgres/_base.py
============================================================
Class: PostgresRepositoryBase

Responsibilities:
  - Resolver el pool (inyectado o global) de forma lazy.
  - Ejecutar SELECT / DML autocontenidos con logging y DatabaseError
    consistentes (un statement = una conexión del pool).

Collaborators:
  - infrastructure.db.pool.get_pool
  - crosscutting.logger.logger
  - crosscutting.exceptions.DatabaseError

Constraints / Notes:
  - Solo para repos de catálogo / auditoría. Las mutaciones del ciclo de
    vida pasan por PostgresWorkflowUnitOfWork.
============================================================
"""

from __future__ import annotations

from typing import Iterable

import psycopg

from ....crosscutting.exceptions import DatabaseError, DuplicateKeyError
from ....crosscutting.logger import logger


class PostgresRepositoryBase:
    def __init__(self, pool=None):
        # R: Pool inyectable para tests; en producción se obtiene por factory global.
        self._pool = pool

    def _get_pool(self):
        if self._pool is not None:
            return self._pool

        from ...db.pool import get_pool

        return get_pool()

    def _fetchall(
        self, *, query: str, params: Iterable[object], context_msg: str, extra: dict
    ) -> list[tuple]:
        try:
            with self._get_pool().connection() as conn:
                return conn.execute(query, tuple(params)).fetchall()
        except psycopg.Error as exc:
            logger.exception(context_msg, extra={**extra, "error": str(exc)})
            raise DatabaseError(f"{context_msg}: {exc}", original_error=exc) from exc

    def _fetchone(
        self, *, query: str, params: Iterable[object], context_msg: str, extra: dict
    ) -> tuple | None:
        try:
            with self._get_pool().connection() as conn:
                return conn.execute(query, tuple(params)).fetchone()
        except psycopg.Error as exc:
            logger.exception(context_msg, extra={**extra, "error": str(exc)})
            raise DatabaseError(f"{context_msg}: {exc}", original_error=exc) from exc

    def _execute(
        self, *, query: str, params: Iterable[object], context_msg: str, extra: dict
    ) -> int:
        """DML autocontenido. Retorna rowcount."""
        try:
            with self._get_pool().connection() as conn:
                cur = conn.execute(query, tuple(params))
                return cur.rowcount
        except psycopg.errors.UniqueViolation as exc:
            logger.warning(context_msg, extra={**extra, "error": str(exc)})
            raise DuplicateKeyError(
                f"{context_msg}: duplicate key", original_error=exc
            ) from exc
        except psycopg.Error as exc:
            logger.exception(context_msg, extra={**extra, "error": str(exc)})
            raise DatabaseError(f"{context_msg}: {exc}", original_error=exc) from exc
