"""
PostgreSQL store: every namespace shares one key/value table.

Schema::

    CREATE TABLE <table> (
        namespace TEXT  NOT NULL,
        key       TEXT  NOT NULL,
        value     BYTEA NOT NULL,
        PRIMARY KEY (namespace, key)
    )

Writes are single-statement upserts, so concurrent writers to the same key
resolve as last-writer-wins. Transient connection failures are retried with
tenacity; any other psycopg error surfaces as PersistenceError.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Iterator, Optional, TypeVar

import psycopg
from psycopg import sql
from psycopg_pool import ConnectionPool
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from dustydb.config import get_settings
from dustydb.errors import PersistenceError
from dustydb.infrastructure.db_factory import get_sync_pool
from dustydb.stores.abstract import AbstractStore, StoredItem
from dustydb.utils.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")

_TRANSIENT_ERRORS = (psycopg.OperationalError, psycopg.InterfaceError)


class PostgresStore(AbstractStore):
    """
    Key/value store on top of a psycopg ConnectionPool.

    Parameters
    ----------
    table : str | None
        Table holding the records. Defaults to settings.db_table.
    dsn_override : str | None
        Open a private pool for this DSN instead of the shared PoolManager pool.
    pool_min_size, pool_max_size : int | None
        Pool bounds. Default to settings.db_pool_min_size / db_pool_max_size.
    retry_attempts : int | None
        Attempts for transient failures. Defaults to settings.retry_attempts.
    pool_timeout : float
        Seconds to wait for a connection from a private pool.
    """

    name: str = "postgres"

    def __init__(
        self,
        table: Optional[str] = None,
        dsn_override: Optional[str] = None,
        pool_min_size: Optional[int] = None,
        pool_max_size: Optional[int] = None,
        retry_attempts: Optional[int] = None,
        pool_timeout: float = 30.0,
    ) -> None:
        settings = get_settings()
        self.table = table or settings.db_table
        self.pool_min_size = pool_min_size if pool_min_size is not None else settings.db_pool_min_size
        self.pool_max_size = pool_max_size or settings.db_pool_max_size
        self.retry_attempts = retry_attempts or settings.retry_attempts
        self.pool_timeout = pool_timeout
        self._dsn_override = dsn_override
        self._pool: Optional[ConnectionPool] = None
        self._owns_pool = False
        self._table_ready = False
        self._lock = threading.Lock()

    def _get_pool(self) -> ConnectionPool:
        with self._lock:
            if self._pool is not None:
                return self._pool
            if self._dsn_override:
                self._pool = ConnectionPool(
                    conninfo=self._dsn_override,
                    min_size=self.pool_min_size,
                    max_size=self.pool_max_size,
                    timeout=self.pool_timeout,
                    open=True,
                )
                self._owns_pool = True
            else:
                self._pool = get_sync_pool(
                    min_size=self.pool_min_size, max_size=self.pool_max_size
                )
            return self._pool

    def _run(self, operation: str, fn: Callable[[psycopg.Connection], T]) -> T:
        """Run ``fn`` on a pooled connection, retrying transient failures."""
        try:
            for attempt in Retrying(
                stop=stop_after_attempt(self.retry_attempts),
                wait=wait_exponential(multiplier=0.2, min=0.2, max=5),
                retry=retry_if_exception_type(_TRANSIENT_ERRORS),
                reraise=True,
            ):
                with attempt:
                    if attempt.retry_state.attempt_number > 1:
                        log.warning(
                            f"[RETRY] postgres {operation}",
                            extra={"attempt": attempt.retry_state.attempt_number},
                        )
                    with self._get_pool().connection() as conn:
                        self._ensure_table(conn)
                        return fn(conn)
        except psycopg.Error as exc:
            log.error(
                f"[POSTGRES FAILED] {operation}",
                extra={"operation": operation, "error": str(exc)},
            )
            raise PersistenceError(f"postgres {operation} failed: {exc}") from exc
        raise AssertionError("unreachable")  # pragma: no cover

    def _ensure_table(self, conn: psycopg.Connection) -> None:
        with self._lock:
            if self._table_ready:
                return
            # Committed on its own so a failing operation cannot roll the table back.
            with conn.transaction():
                conn.execute(
                    sql.SQL(
                        "CREATE TABLE IF NOT EXISTS {} ("
                        "namespace TEXT NOT NULL, "
                        "key TEXT NOT NULL, "
                        "value BYTEA NOT NULL, "
                        "PRIMARY KEY (namespace, key))"
                    ).format(sql.Identifier(self.table))
                )
            self._table_ready = True

    def get(self, namespace: str, key: str) -> Optional[bytes]:
        query = sql.SQL("SELECT value FROM {} WHERE namespace = %s AND key = %s").format(
            sql.Identifier(self.table)
        )

        def _get(conn: psycopg.Connection) -> Optional[bytes]:
            row = conn.execute(query, (namespace, key)).fetchone()
            return bytes(row[0]) if row is not None else None

        return self._run("get", _get)

    def put(self, namespace: str, key: str, value: bytes) -> None:
        query = sql.SQL(
            "INSERT INTO {} (namespace, key, value) VALUES (%s, %s, %s) "
            "ON CONFLICT (namespace, key) DO UPDATE SET value = EXCLUDED.value"
        ).format(sql.Identifier(self.table))

        def _put(conn: psycopg.Connection) -> None:
            conn.execute(query, (namespace, key, bytes(value)))

        self._run("put", _put)

    def delete(self, namespace: str, key: str) -> bool:
        query = sql.SQL("DELETE FROM {} WHERE namespace = %s AND key = %s").format(
            sql.Identifier(self.table)
        )

        def _delete(conn: psycopg.Connection) -> bool:
            return conn.execute(query, (namespace, key)).rowcount > 0

        return self._run("delete", _delete)

    def scan(self, namespace: str) -> Iterator[StoredItem]:
        # Byte order, matching the other stores regardless of database collation.
        query = sql.SQL(
            'SELECT key, value FROM {} WHERE namespace = %s ORDER BY key COLLATE "C"'
        ).format(sql.Identifier(self.table))

        def _scan(conn: psycopg.Connection) -> list[Any]:
            return conn.execute(query, (namespace,)).fetchall()

        for key, value in self._run("scan", _scan):
            yield key, bytes(value)

    def close(self) -> None:
        """Close the private pool, if any. The shared pool is closed by PoolManager."""
        with self._lock:
            if self._pool is not None and self._owns_pool:
                self._pool.close()
            self._pool = None
            self._owns_pool = False


__all__ = ["PostgresStore"]
