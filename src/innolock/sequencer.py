"""
Run statement pairs through the lock observation protocol, one at a time.

Both sessions are reused for every pair and each pair's statements see the
rows earlier pairs left behind, so pair *i+1* never starts before pair *i*
has fully finished, rollbacks included. The first failure stops the run.

Example::

    sequencer = LockTestSequencer(session1, session2, settle_delay=0.05)
    results = await sequencer.run(DEFAULT_PAIRS)
    for result in results:
        print(render_text(result))
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from innolock.errors import InnolockError, SequenceError
from innolock.logging import LogContext, get_logger
from innolock.parser import LockReport, parse_status
from innolock.protocol import SettleStrategy, capture_status
from innolock.session import Session
from innolock.statements import StatementPair

logger = get_logger(__name__)


@dataclass(frozen=True)
class PairResult:
    """Outcome of one statement pair."""

    index: int
    pair: StatementPair
    report: LockReport
    status: str
    elapsed: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "primary": self.pair.primary,
            "secondary": self.pair.secondary,
            "note": self.pair.note,
            "elapsed_seconds": round(self.elapsed, 4),
            **self.report.to_dict(),
        }


class LockTestSequencer:
    """Runs pairs sequentially on two sessions and closes them afterwards.

    Parameters
    ----------
    session1, session2 : Session
        Lock holder and contender. Owned by the sequencer from now on.
    settle_delay : float
        Seconds to wait for the contender to block before sampling.
    table_name : str
        Fixture table whose locks are reported.
    strategy, poll_interval
        Passed through to :func:`innolock.protocol.capture_status`.
    on_result : callable, optional
        Called with each :class:`PairResult` as soon as it is available.
    """

    def __init__(
        self,
        session1: Session,
        session2: Session,
        *,
        settle_delay: float,
        table_name: str = "test",
        strategy: SettleStrategy = SettleStrategy.SLEEP,
        poll_interval: float = 0.01,
        on_result: Callable[[PairResult], None] | None = None,
    ) -> None:
        if session1 is session2:
            raise ValueError("The two roles need two distinct sessions")
        self._session1 = session1
        self._session2 = session2
        self._settle_delay = settle_delay
        self._table_name = table_name
        self._strategy = strategy
        self._poll_interval = poll_interval
        self._on_result = on_result

    async def run(self, pairs: Iterable[StatementPair]) -> list[PairResult]:
        """Observe every pair in order.

        Raises:
            SequenceError: A pair failed; later pairs were not attempted
        """
        results: list[PairResult] = []
        try:
            for index, pair in enumerate(pairs):
                results.append(await self._run_pair(index, pair, results))
        finally:
            await self._close()

        logger.info("sequencer.completed", pairs=len(results))
        return results

    async def _run_pair(
        self, index: int, pair: StatementPair, completed: list[PairResult]
    ) -> PairResult:
        with LogContext(pair_index=index):
            logger.info("sequencer.pair_start", primary=pair.primary, secondary=pair.secondary)
            started = time.perf_counter()
            try:
                status = await capture_status(
                    self._session1,
                    self._session2,
                    pair.primary,
                    pair.secondary,
                    self._settle_delay,
                    strategy=self._strategy,
                    poll_interval=self._poll_interval,
                )
            except InnolockError as e:
                logger.error("sequencer.pair_failed", **e.to_dict())
                raise SequenceError(
                    f"Pair {index} failed: {e.message}",
                    index=index,
                    pair=pair,
                    completed=completed,
                    cause=e,
                ).with_context(statement=e.context.statement, phase=e.context.phase) from e

            result = PairResult(
                index=index,
                pair=pair,
                report=parse_status(status, self._table_name),
                status=status,
                elapsed=time.perf_counter() - started,
            )
            logger.info(
                "sequencer.pair_done",
                holding=result.report.holding is not None,
                blocked=result.report.is_blocked,
                elapsed=round(result.elapsed, 4),
            )

        if self._on_result is not None:
            self._on_result(result)
        return result

    async def _close(self) -> None:
        for session in (self._session1, self._session2):
            await session.close()


__all__ = ["LockTestSequencer", "PairResult"]
