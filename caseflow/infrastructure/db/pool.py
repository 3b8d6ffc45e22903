"""
===============================================================================
CRC CARD — infrastructure/db/pool.py
===============================================================================

Componente:
  Pool PostgreSQL del proceso (singleton)

Responsabilidades:
  - Abrir el pool en el lifespan de la API y cerrarlo al apagar.
  - Preparar cada conexión nueva: statement_timeout, zona horaria UTC
    (las marcas de tiempo del historial se comparan en UTC) y
    application_name para identificar la API en pg_stat_activity.
  - Entregar el pool envuelto en InstrumentedConnectionPool.

Colaboradores:
  - psycopg_pool.ConnectionPool
  - infrastructure/db/instrumentation.InstrumentedConnectionPool
  - crosscutting/config.Settings
===============================================================================
"""

from __future__ import annotations

import threading
from typing import Optional

from ...crosscutting.config import get_settings
from ...crosscutting.logger import logger
from .errors import PoolAlreadyInitializedError, PoolNotInitializedError
from .instrumentation import InstrumentedConnectionPool

APPLICATION_NAME = "caseflow-api"

_pool: Optional[InstrumentedConnectionPool] = None
_pool_lock = threading.Lock()


def _configure_connection(conn) -> None:
    timeout_ms = int(get_settings().db_statement_timeout_ms)
    conn.execute("SET TIME ZONE 'UTC'")
    if timeout_ms > 0:
        conn.execute(f"SET statement_timeout = {timeout_ms}")
    conn.commit()


def init_pool(database_url: str, min_size: int, max_size: int) -> InstrumentedConnectionPool:
    """Abre el pool. Una segunda llamada sin close_pool() es un error."""
    global _pool

    with _pool_lock:
        if _pool is not None:
            raise PoolAlreadyInitializedError("El pool ya fue inicializado.")

        from psycopg_pool import ConnectionPool

        settings = get_settings()
        real_pool = ConnectionPool(
            conninfo=database_url,
            min_size=min_size,
            max_size=max_size,
            kwargs={"application_name": APPLICATION_NAME},
            configure=_configure_connection,
            open=True,
        )
        _pool = InstrumentedConnectionPool(
            real_pool,
            slow_query_seconds=settings.db_slow_query_seconds,
            healthcheck=settings.db_healthcheck_on_acquire,
        )

    logger.info(
        "Pool DB abierto",
        extra={
            "min_size": min_size,
            "max_size": max_size,
            "statement_timeout_ms": settings.db_statement_timeout_ms,
            "healthcheck": settings.db_healthcheck_on_acquire,
        },
    )
    return _pool


def get_pool() -> InstrumentedConnectionPool:
    if _pool is None:
        raise PoolNotInitializedError(
            "Pool no inicializado: la API corre sin DATABASE_URL o init_pool() no se llamó."
        )
    return _pool


def close_pool() -> None:
    """Cierra el pool si está abierto (idempotente)."""
    global _pool

    with _pool_lock:
        pool, _pool = _pool, None

    if pool is not None:
        pool.close()
        logger.info("Pool DB cerrado")
