"""
Assemble a full lock test run from settings.

Opens an admin session plus the two test sessions, sets up the lock
monitor and the fixture table, runs the sequencer and tears the monitor
down again. A connection failure aborts the run before anything else
happens.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

from innolock.errors import InnolockError
from innolock.fixture import create_fixture, disable_lock_monitor, drop_fixture, enable_lock_monitor
from innolock.logging import get_logger
from innolock.sequencer import LockTestSequencer, PairResult
from innolock.session import MySQLSession, connect
from innolock.settings import LockTestSettings
from innolock.statements import StatementPair

logger = get_logger(__name__)


async def open_session(settings: LockTestSettings, name: str) -> MySQLSession:
    return await connect(
        name,
        host=settings.host,
        port=settings.port,
        user=settings.user,
        password=settings.password,
        database=settings.database,
        connect_timeout=settings.connect_timeout,
    )


async def setup(settings: LockTestSettings) -> None:
    """Enable the lock monitor and (re)create the fixture table."""
    admin = await open_session(settings, "admin")
    try:
        await enable_lock_monitor(admin, settings.lock_monitor)
        await create_fixture(admin, settings.table_name)
    finally:
        await admin.close()


async def teardown(settings: LockTestSettings, *, drop_table: bool = False) -> None:
    """Disable the lock monitor, optionally dropping the fixture table."""
    admin = await open_session(settings, "admin")
    try:
        await disable_lock_monitor(admin, settings.lock_monitor)
        if drop_table:
            await drop_fixture(admin, settings.table_name)
    finally:
        await admin.close()


async def run_lock_tests(
    settings: LockTestSettings,
    pairs: Sequence[StatementPair],
    *,
    prepare: bool = True,
    on_result: Callable[[PairResult], None] | None = None,
) -> list[PairResult]:
    """Run ``pairs`` against the configured server.

    Args:
        settings: Connection and timing settings
        pairs: Statement pairs, in order
        prepare: Set up the lock monitor and fixture before, and disable
            the monitor after
        on_result: Sink called with each result as it completes

    Raises:
        DatabaseConnectionError: A session could not be opened; the lock
            monitor is still torn down
        SequenceError: A pair failed; earlier results were already emitted
    """
    if prepare:
        await setup(settings)

    try:
        results = await _run_sequence(settings, pairs, on_result)
    except InnolockError as e:
        if prepare:
            try:
                await teardown(settings)
            except InnolockError as cleanup:
                logger.error("runner.teardown_failed", error=str(cleanup))
                e.add_note(f"teardown also failed: {cleanup}")
        raise

    if prepare:
        await teardown(settings)
    return results


async def _run_sequence(
    settings: LockTestSettings,
    pairs: Sequence[StatementPair],
    on_result: Callable[[PairResult], None] | None,
) -> list[PairResult]:
    session1 = await open_session(settings, "session1")
    try:
        session2 = await open_session(settings, "session2")
    except InnolockError:
        await session1.close()
        raise

    logger.info(
        "runner.start",
        pairs=len(pairs),
        settle_delay_ms=settings.settle_delay_ms,
        strategy=settings.settle_strategy.value,
    )
    sequencer = LockTestSequencer(
        session1,
        session2,
        settle_delay=settings.settle_delay,
        table_name=settings.table_name,
        strategy=settings.settle_strategy,
        poll_interval=settings.poll_interval,
        on_result=on_result,
    )
    return await sequencer.run(pairs)


__all__ = ["run_lock_tests", "setup", "teardown", "open_session"]
