"""
In-memory stand-ins for two MySQL sessions contending for one row lock.

``FakeServer`` models a single exclusive lock: the first session to execute
a statement holds it until it rolls back; a second session executing a
statement while it is held waits (if ``conflicts``) until it is released.
``fetch_status`` renders the current holder/waiter as InnoDB status text.

Failures are injected per session with ``fail_on``, keyed by SQL text or by
the method name (``"fetch_status"``, ``"rollback"``, ``"count_lock_waits"``).
"""

from __future__ import annotations

import asyncio
from typing import Any

from innolock.errors import QueryError

from tests._support.status_dumps import HOLDER_BLOCK, IDLE_BLOCK, WAITING_BLOCK, build_status


class FakeServer:
    def __init__(self, *, conflicts: bool = True, block_delay: float = 0.0):
        self.conflicts = conflicts
        self.block_delay = block_delay
        self.holder: FakeSession | None = None
        self.waiting: FakeSession | None = None
        self.released = asyncio.Event()
        # lock waits of transactions outside the experiment
        self.foreign_waits = 0
        self.log: list[tuple[str, str, str]] = []

    def record(self, session: str, action: str, detail: str = "") -> None:
        self.log.append((session, action, detail))

    def actions(self, session: str | None = None) -> list[str]:
        return [f"{a}:{d}" if d else a for s, a, d in self.log if session is None or s == session]

    def status(self) -> str:
        blocks = [IDLE_BLOCK]
        if self.waiting is not None:
            blocks.append(WAITING_BLOCK)
        if self.holder is not None:
            blocks.append(HOLDER_BLOCK)
        return build_status(*blocks)

    def release(self, session: FakeSession) -> None:
        if self.holder is session:
            self.holder = None
            self.released.set()


class FakeSession:
    def __init__(
        self,
        name: str,
        server: FakeServer,
        fail_on: dict[str, Exception] | None = None,
        connection_id: int | None = None,
    ):
        self.name = name
        self.connection_id = connection_id
        self.server = server
        self.fail_on = dict(fail_on or {})
        self.closed = False

    def _maybe_fail(self, key: str) -> None:
        error = self.fail_on.get(key)
        if error is not None:
            raise error

    async def execute(self, sql: str) -> Any:
        server = self.server
        server.record(self.name, "execute", sql)
        self._maybe_fail(sql)

        if server.holder is not None and server.holder is not self and server.conflicts:
            if server.block_delay:
                await asyncio.sleep(server.block_delay)
            server.waiting = self
            await server.released.wait()
            server.waiting = None
            server.record(self.name, "granted", sql)

        if server.holder is None:
            server.holder = self
            server.released = asyncio.Event()
        return 1

    async def fetch_status(self) -> str:
        self.server.record(self.name, "fetch_status")
        self._maybe_fail("fetch_status")
        return self.server.status()

    async def count_lock_waits(self, connection_id: int | None = None) -> int:
        server = self.server
        server.record(self.name, "count_lock_waits")
        self._maybe_fail("count_lock_waits")
        waiting = server.waiting
        if connection_id is not None:
            return 1 if waiting is not None and waiting.connection_id == connection_id else 0
        return (1 if waiting is not None else 0) + server.foreign_waits

    async def commit(self) -> None:
        self.server.record(self.name, "commit")
        self.server.release(self)

    async def rollback(self) -> None:
        self.server.record(self.name, "rollback")
        # a failed rollback still frees the lock, as when the server drops the connection
        self.server.release(self)
        self._maybe_fail("rollback")

    async def close(self) -> None:
        self.server.record(self.name, "close")
        self.closed = True


class RecordingSession:
    """Session that only records statements; used for fixture tests."""

    def __init__(self, name: str = "admin", fail_on: dict[str, Exception] | None = None):
        self.name = name
        self.connection_id = None
        self.statements: list[str] = []
        self.committed = 0
        self.closed = False
        self.fail_on = dict(fail_on or {})

    async def execute(self, sql: str) -> Any:
        self.statements.append(sql)
        if sql in self.fail_on:
            raise self.fail_on[sql]
        return 0

    async def fetch_status(self) -> str:
        return build_status()

    async def count_lock_waits(self, connection_id: int | None = None) -> int:
        return 0

    async def commit(self) -> None:
        self.committed += 1

    async def rollback(self) -> None:
        pass

    async def close(self) -> None:
        self.closed = True


def query_error(message: str = "boom", sql: str | None = None, errno: int | None = None) -> QueryError:
    return QueryError(message, sql=sql, errno=errno)
