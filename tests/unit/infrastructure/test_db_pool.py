"""
Name: Database Pool Tests

Responsibilities:
  - Test pool lifecycle (init, get, close)
  - Test connection instrumentation (healthcheck, slow query log, errors)
  - Offline unit tests (no real DB)

Notes:
  - Uses mocking for psycopg_pool.ConnectionPool
"""

import logging
from contextlib import contextmanager
from unittest.mock import MagicMock, patch

import psycopg
import pytest

from caseflow.crosscutting.exceptions import DatabaseError
from caseflow.infrastructure.db.errors import (
    DatabaseConnectionError,
    PoolAlreadyInitializedError,
    PoolNotInitializedError,
)
from caseflow.infrastructure.db.instrumentation import (
    InstrumentedConnectionPool,
    _statement_kind,
    _statement_table,
)
from caseflow.infrastructure.db.pool import close_pool, get_pool, init_pool


@contextmanager
def _yielding(conn):
    yield conn


@pytest.mark.unit
class TestPoolLifecycle:
    """Test pool initialization and cleanup."""

    def test_init_pool_wraps_connection_pool(self):
        close_pool()

        with patch("psycopg_pool.ConnectionPool") as MockPool:
            MockPool.return_value = MagicMock()

            result = init_pool("postgresql://test", min_size=2, max_size=10)

            MockPool.assert_called_once()
            assert isinstance(result, InstrumentedConnectionPool)
            assert get_pool() is result

        close_pool()

    def test_init_pool_twice_raises_error(self):
        close_pool()

        with patch("psycopg_pool.ConnectionPool"):
            init_pool("postgresql://test", min_size=2, max_size=10)

            with pytest.raises(PoolAlreadyInitializedError, match="ya fue"):
                init_pool("postgresql://test", min_size=2, max_size=10)

        close_pool()

    def test_get_pool_without_init_raises_error(self):
        close_pool()

        with pytest.raises(PoolNotInitializedError):
            get_pool()

    def test_close_pool_is_idempotent(self):
        close_pool()
        close_pool()

    def test_pool_errors_are_database_errors(self):
        assert issubclass(PoolNotInitializedError, DatabaseError)
        assert DatabaseConnectionError("x").error_code == "DATABASE_POOL_ERROR"


@pytest.mark.unit
class TestInstrumentation:
    def test_healthcheck_runs_and_resets_transaction(self):
        conn = MagicMock()
        inner = MagicMock()
        inner.connection.return_value = _yielding(conn)
        pool = InstrumentedConnectionPool(inner, healthcheck=True)

        with pool.connection() as wrapped:
            wrapped.execute("SELECT * FROM documents")

        assert conn.execute.call_args_list[0].args == ("SELECT 1",)
        conn.rollback.assert_called_once()

    def test_failed_healthcheck_is_connection_error(self):
        conn = MagicMock()
        conn.execute.side_effect = psycopg.OperationalError("gone")
        inner = MagicMock()
        inner.connection.return_value = _yielding(conn)
        pool = InstrumentedConnectionPool(inner, healthcheck=True)

        with pytest.raises(DatabaseConnectionError):
            with pool.connection():
                pass

    def test_slow_query_is_logged(self, caplog):
        conn = MagicMock()
        inner = MagicMock()
        inner.connection.return_value = _yielding(conn)
        pool = InstrumentedConnectionPool(
            inner, slow_query_seconds=0.0, healthcheck=False
        )

        with caplog.at_level(logging.WARNING):
            with pool.connection() as wrapped:
                wrapped.execute("UPDATE documents SET version = version + 1")

        assert "DB query lenta" in caplog.text

    @pytest.mark.parametrize(
        "sql, kind",
        [("  select 1", "SELECT"), ("UPDATE t SET a=1", "UPDATE"), ("", "UNKNOWN")],
    )
    def test_statement_kind(self, sql, kind):
        assert _statement_kind(sql) == kind

    @pytest.mark.parametrize(
        "sql, table",
        [
            ("SELECT * FROM documents WHERE id = %s FOR UPDATE", "documents"),
            ("INSERT INTO trace_events (id) VALUES (%s)", "trace_events"),
            ("UPDATE derivations SET status = %s", "derivations"),
            ("SELECT 1", None),
        ],
    )
    def test_statement_table(self, sql, table):
        assert _statement_table(sql) == table

    def test_pool_error_is_returned_to_inner_context(self):
        conn = MagicMock()
        inner_ctx = MagicMock()
        inner_ctx.__enter__.return_value = conn
        inner_ctx.__exit__.return_value = False
        inner = MagicMock()
        inner.connection.return_value = inner_ctx
        pool = InstrumentedConnectionPool(inner, healthcheck=False)

        with pytest.raises(RuntimeError):
            with pool.connection():
                raise RuntimeError("boom")

        assert inner_ctx.__exit__.call_args.args[0] is RuntimeError
