"""
Database sessions used by the lock observation protocol.

Manifesto:
    The protocol needs very little from a connection: run a statement, fetch
    the InnoDB status, commit, roll back. :class:`Session` is that contract;
    :class:`MySQLSession` implements it over ``mysql.connector`` with
    autocommit disabled, so a transaction is open from the first statement
    until the next commit or rollback.

    Driver calls block. Each one runs in a worker thread through
    ``asyncio.to_thread`` so that one session can sit blocked on a row lock
    inside the server while the other keeps working on the event loop.

Install the driver::

    pip install mysql-connector-python

Guardrails:
    ❌ DON'T: Use one session from two tasks at the same time
    ✅ DO: Give each protocol role its own session

Tags:
    innolock, database, session, mysql, asyncio
"""

from __future__ import annotations

import asyncio
from typing import Any, Protocol, runtime_checkable

import mysql.connector

from innolock.errors import DatabaseConnectionError, QueryError
from innolock.logging import get_logger

logger = get_logger(__name__)

STATUS_SQL = "SHOW ENGINE INNODB STATUS"
LOCK_WAITS_SQL = "SELECT COUNT(*) FROM information_schema.innodb_trx WHERE trx_state = 'LOCK WAIT'"
LOCK_WAITS_BY_THREAD_SQL = LOCK_WAITS_SQL + " AND trx_mysql_thread_id = %s"


@runtime_checkable
class Session(Protocol):
    """One database connection with an implicitly open transaction."""

    name: str
    connection_id: int | None

    async def execute(self, sql: str) -> Any:
        """Run a statement; rows for queries, affected row count otherwise."""
        ...

    async def fetch_status(self) -> str:
        """Return the ``Status`` text of ``SHOW ENGINE INNODB STATUS``."""
        ...

    async def count_lock_waits(self, connection_id: int | None = None) -> int:
        """Transactions in ``LOCK WAIT``, only those of ``connection_id`` if given."""
        ...

    async def commit(self) -> None:
        ...

    async def rollback(self) -> None:
        ...

    async def close(self) -> None:
        ...


class MySQLSession:
    """A :class:`Session` over a ``mysql.connector`` connection."""

    def __init__(self, connection: Any, name: str):
        self._conn = connection
        self.name = name

    @property
    def connection_id(self) -> int | None:
        """Server thread id; matches ``MySQL thread id`` in the status dump."""
        return getattr(self._conn, "connection_id", None)

    # ── Lifecycle ────────────────────────────────────────────────────

    @classmethod
    def open(
        cls,
        name: str,
        *,
        host: str = "localhost",
        port: int = 3306,
        user: str = "root",
        password: str = "",
        database: str = "test",
        connect_timeout: int = 10,
    ) -> MySQLSession:
        """Connect with autocommit disabled (blocking)."""
        try:
            conn = mysql.connector.connect(
                host=host,
                port=port,
                user=user,
                password=password,
                database=database,
                connection_timeout=connect_timeout,
                autocommit=False,
            )
        except mysql.connector.Error as e:
            raise DatabaseConnectionError(
                f"Failed to connect to MySQL at {host}:{port}: {e}",
                cause=e,
            ).with_context(session=name) from e

        session = cls(conn, name)
        logger.debug(
            "session.connected",
            session=name,
            connection_id=session.connection_id,
            host=host,
            database=database,
        )
        return session

    async def close(self) -> None:
        await asyncio.to_thread(self._close)

    def _close(self) -> None:
        try:
            self._conn.close()
        except mysql.connector.Error as e:
            logger.warning("session.close_failed", session=self.name, error=str(e))

    # ── Statements ───────────────────────────────────────────────────

    async def execute(self, sql: str, params: tuple[Any, ...] | None = None) -> Any:
        return await asyncio.to_thread(self._execute, sql, params)

    async def fetch_status(self) -> str:
        return await asyncio.to_thread(self._fetch_status)

    async def count_lock_waits(self, connection_id: int | None = None) -> int:
        if connection_id is None:
            rows = await self.execute(LOCK_WAITS_SQL)
        else:
            rows = await self.execute(LOCK_WAITS_BY_THREAD_SQL, (connection_id,))
        return int(rows[0][0]) if rows else 0

    async def commit(self) -> None:
        await asyncio.to_thread(self._call, "COMMIT", self._conn.commit)

    async def rollback(self) -> None:
        await asyncio.to_thread(self._call, "ROLLBACK", self._conn.rollback)

    def _execute(self, sql: str, params: tuple[Any, ...] | None = None) -> Any:
        logger.debug("session.execute", session=self.name, sql=sql)
        try:
            cursor = self._conn.cursor()
            try:
                cursor.execute(sql, params)
                if cursor.with_rows:
                    return cursor.fetchall()
                return cursor.rowcount
            finally:
                cursor.close()
        except mysql.connector.Error as e:
            raise self._query_error(sql, e) from e

    def _fetch_status(self) -> str:
        try:
            cursor = self._conn.cursor(dictionary=True)
            try:
                cursor.execute(STATUS_SQL)
                rows = cursor.fetchall()
            finally:
                cursor.close()
        except mysql.connector.Error as e:
            raise self._query_error(STATUS_SQL, e) from e

        if not rows:
            raise QueryError(f"{STATUS_SQL} returned no rows", sql=STATUS_SQL).with_context(
                session=self.name
            )
        return rows[0]["Status"]

    def _call(self, sql: str, fn: Any) -> None:
        logger.debug("session.execute", session=self.name, sql=sql)
        try:
            fn()
        except mysql.connector.Error as e:
            raise self._query_error(sql, e) from e

    def _query_error(self, sql: str, error: mysql.connector.Error) -> QueryError:
        return QueryError(
            f"{self.name}: {error}",
            sql=sql,
            errno=getattr(error, "errno", None),
            cause=error,
        ).with_context(session=self.name)

    def __repr__(self) -> str:
        return f"MySQLSession({self.name!r}, connection_id={self.connection_id})"


async def connect(name: str, **kwargs: Any) -> MySQLSession:
    """Open a :class:`MySQLSession` without blocking the event loop."""
    return await asyncio.to_thread(MySQLSession.open, name, **kwargs)


__all__ = [
    "Session",
    "MySQLSession",
    "connect",
    "STATUS_SQL",
    "LOCK_WAITS_SQL",
    "LOCK_WAITS_BY_THREAD_SQL",
]
