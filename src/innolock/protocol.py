"""
Two-session lock observation.

Session 1 takes a lock, session 2 tries to take a conflicting one and
blocks, and while it is blocked session 1 samples the InnoDB status and
rolls back, which releases session 2::

    session1.execute(primary)
      │
      ├── branch A ──────────────────────┐   branch B ───────────────────┐
      │   session2.execute(secondary)    │   settle delay                │
      │   (blocks on session 1's lock)   │   session1.fetch_status()     │
      │   ...                            │   session1.rollback()  ───────┼─ unblocks A
      │   session2.rollback()            │                               │
      └──────────────── gather ──────────┴───────────────────────────────┘
      │
      status dump from branch B

Timing:
    Nothing tells session 1 that session 2 has actually blocked. The settle
    delay is a guess: if it expires first, the dump shows no waiting
    transaction and the report has no ``waiting_for``. That is a valid
    result, not an error. The ``poll`` strategy shortens the guess by
    watching ``information_schema.innodb_trx`` for a ``LOCK WAIT`` of
    session 2, but the delay still bounds it.

Failures:
    - acquire fails: raised at once, nothing rolled back, no contention
    - status fetch fails: session 1 is still rolled back so session 2 does
      not stay blocked; a rollback failure is attached, not substituted
    - secondary statement fails: session 2 is rolled back best-effort
"""

from __future__ import annotations

import asyncio
from enum import Enum

from innolock.errors import InnolockError, ProtocolError
from innolock.logging import get_logger
from innolock.parser import LockReport, parse_status
from innolock.session import Session

logger = get_logger(__name__)


class SettleStrategy(str, Enum):
    """How session 1 waits for session 2 to block."""

    SLEEP = "sleep"
    POLL = "poll"


class Phase(str, Enum):
    ACQUIRE = "acquire"
    CONTEND = "contend"
    SAMPLE = "sample"
    CLEANUP = "cleanup"


async def capture_status(
    session1: Session,
    session2: Session,
    primary: str,
    secondary: str,
    settle_delay: float,
    *,
    strategy: SettleStrategy = SettleStrategy.SLEEP,
    poll_interval: float = 0.01,
) -> str:
    """Run one contention experiment and return the raw status dump.

    Args:
        session1: Takes the lock and samples the status
        session2: Runs the conflicting statement
        primary: Statement run on session 1
        secondary: Statement run on session 2
        settle_delay: Seconds to wait for session 2 to block
        strategy: Sleep for the whole delay, or poll for a lock wait
        poll_interval: Seconds between polls

    Raises:
        ProtocolError: A statement, the status fetch or a rollback failed
    """
    logger.debug("observe.acquire", session=session1.name, sql=primary)
    try:
        await session1.execute(primary)
    except InnolockError as e:
        raise ProtocolError(
            f"Acquire failed on {session1.name}: {e.message}",
            phase=Phase.ACQUIRE.value,
            cause=e,
        ).with_context(session=session1.name, statement=primary) from e

    contended, sampled = await asyncio.gather(
        _contend(session2, secondary),
        _settle_and_sample(session1, settle_delay, strategy, poll_interval, session2.connection_id),
        return_exceptions=True,
    )

    errors = [r for r in (sampled, contended) if isinstance(r, BaseException)]
    if errors:
        first, *rest = errors
        if isinstance(first, ProtocolError):
            first.additional_errors.extend(rest)
        for error in rest:
            logger.error("observe.branch_failed", error=str(error))
        raise first

    return sampled


async def observe(
    session1: Session,
    session2: Session,
    primary: str,
    secondary: str,
    settle_delay: float,
    *,
    table_name: str = "test",
    strategy: SettleStrategy = SettleStrategy.SLEEP,
    poll_interval: float = 0.01,
) -> LockReport:
    """Run one contention experiment and parse the sampled status."""
    status = await capture_status(
        session1,
        session2,
        primary,
        secondary,
        settle_delay,
        strategy=strategy,
        poll_interval=poll_interval,
    )
    return parse_status(status, table_name)


async def _contend(session: Session, sql: str) -> None:
    logger.debug("observe.contend", session=session.name, sql=sql)
    try:
        await session.execute(sql)
    except InnolockError as e:
        cleanup = await _rollback_quietly(session)
        raise ProtocolError(
            f"Contending statement failed on {session.name}: {e.message}",
            phase=Phase.CONTEND.value,
            cause=e,
            additional_errors=cleanup,
        ).with_context(session=session.name, statement=sql) from e

    logger.debug("observe.contend_released", session=session.name)
    try:
        await session.rollback()
    except InnolockError as e:
        raise ProtocolError(
            f"Rollback failed on {session.name}: {e.message}",
            phase=Phase.CLEANUP.value,
            cause=e,
        ).with_context(session=session.name) from e


async def _settle_and_sample(
    session: Session,
    settle_delay: float,
    strategy: SettleStrategy,
    poll_interval: float,
    contender_id: int | None = None,
) -> str:
    try:
        blocked = await _settle(session, settle_delay, strategy, poll_interval, contender_id)
        status = await session.fetch_status()
    except InnolockError as e:
        cleanup = await _rollback_quietly(session)
        raise ProtocolError(
            f"Status sample failed on {session.name}: {e.message}",
            phase=Phase.SAMPLE.value,
            cause=e,
            additional_errors=cleanup,
        ).with_context(session=session.name) from e
    except Exception:
        # session 2 stays blocked until session 1 lets go
        await _rollback_quietly(session)
        raise

    logger.debug(
        "observe.sampled",
        session=session.name,
        settle_delay=settle_delay,
        strategy=strategy.value,
        lock_wait_seen=blocked,
        status_chars=len(status),
    )

    try:
        await session.rollback()
    except InnolockError as e:
        raise ProtocolError(
            f"Rollback failed on {session.name}: {e.message}",
            phase=Phase.CLEANUP.value,
            cause=e,
        ).with_context(session=session.name) from e
    return status


async def _settle(
    session: Session,
    settle_delay: float,
    strategy: SettleStrategy,
    poll_interval: float,
    contender_id: int | None = None,
) -> bool | None:
    """Wait for session 2 to block. None when the strategy cannot tell.

    Polling only counts lock waits of ``contender_id``, session 2's server
    thread. Without it any waiting transaction on the server counts.
    """
    if strategy is SettleStrategy.SLEEP or settle_delay <= 0:
        await asyncio.sleep(settle_delay)
        return None

    loop = asyncio.get_running_loop()
    deadline = loop.time() + settle_delay
    while True:
        if await session.count_lock_waits(contender_id) > 0:
            return True
        remaining = deadline - loop.time()
        if remaining <= 0:
            logger.info("observe.no_lock_wait", session=session.name, settle_delay=settle_delay)
            return False
        await asyncio.sleep(min(poll_interval, remaining))


async def _rollback_quietly(session: Session) -> list[BaseException]:
    """Best-effort rollback; returns the failure instead of raising it."""
    try:
        await session.rollback()
    except InnolockError as e:
        logger.warning("observe.cleanup_failed", session=session.name, error=str(e))
        return [e]
    return []


__all__ = [
    "SettleStrategy",
    "Phase",
    "capture_status",
    "observe",
]
