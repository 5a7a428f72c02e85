"""
Extract held and awaited locks from ``SHOW ENGINE INNODB STATUS`` output.

The status report is a large human-oriented dump. Its TRANSACTIONS section
lists one block per transaction, each starting with ``---TRANSACTION``. With
the lock monitor enabled a block also lists the locks the transaction holds;
a blocked transaction additionally shows the lock it is waiting for::

    ---TRANSACTION 5393, ACTIVE 0 sec starting index read
    LOCK WAIT 2 lock struct(s), heap size 1136, 1 row lock(s)
    DELETE FROM test WHERE pri = 4
    ------- TRX HAS BEEN WAITING 0 SEC FOR THIS LOCK TO BE GRANTED:
    RECORD LOCKS space id 24 page no 3 n bits 72 index PRIMARY of table `test`.`test` ...
    ------------------
    ---TRANSACTION 5392, ACTIVE 0 sec
    TABLE LOCK table `test`.`test` trx id 5392 lock mode IX
    RECORD LOCKS space id 24 page no 3 n bits 72 index PRIMARY of table `test`.`test` ...
    --------
    FILE I/O
    --------

:func:`parse_status` returns the lock section of the first transaction that
is not waiting and holds a lock on the fixture table, and the awaited lock
of the first waiting transaction.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

TRANSACTION_MARKER = "---TRANSACTION "
TRAILER_MARKER = "FILE I/O"
# "\n--------\n" in front of the FILE I/O heading
TRAILER_SEPARATOR_WIDTH = 10
WAIT_MARKER = re.compile(r"SEC FOR THIS LOCK TO BE GRANTED:[^\n]*\n?")
SECTION_SEPARATOR = "------------------"


@dataclass(frozen=True)
class LockReport:
    """Locks held by one transaction and awaited by another.

    Either field is ``None`` when no matching transaction was found.
    """

    holding: str | None = None
    waiting_for: str | None = None

    @property
    def is_blocked(self) -> bool:
        """True when an awaited lock was seen."""
        return bool(self.waiting_for)

    def to_dict(self) -> dict[str, Any]:
        return {"holding": self.holding, "waiting_for": self.waiting_for}


def split_transactions(status: str) -> list[str]:
    """Split a status dump into transaction blocks, dropping the preamble.

    Each block is cut short of the sections that follow the transaction list.
    """
    blocks = []
    for block in status.split(TRANSACTION_MARKER)[1:]:
        pos = block.find(TRAILER_MARKER)
        if pos >= 0:
            block = block[: max(pos - TRAILER_SEPARATOR_WIDTH, 0)]
        blocks.append(block)
    return blocks


def extract_waiting(block: str) -> str | None:
    """Return the awaited lock description of a waiting block, else None."""
    match = WAIT_MARKER.search(block)
    if match is None:
        return None
    rest = block[match.end():]
    pos = rest.find(SECTION_SEPARATOR)
    if pos < 0:
        return rest
    # drop the newline in front of the separator
    return rest[: max(pos - 1, 0)]


def holding_pattern(table_name: str) -> re.Pattern[str]:
    """Regex for the first lock line that names ``table_name``."""
    return re.compile(rf"(?:TABLE|RECORD) LOCK.*\.`{re.escape(table_name)}`")


def extract_holding(block: str, table_name: str = "test") -> str | None:
    """Return the block text from the first lock on ``table_name`` onwards."""
    match = holding_pattern(table_name).search(block)
    if match is None:
        return None
    return block[match.start():]


def parse_status(status: str, table_name: str = "test") -> LockReport:
    """Build a :class:`LockReport` from a status dump.

    A block that waits for a lock is never treated as a holder, even when
    its awaited section is empty. The first holder and the first waiter
    with a non-empty awaited section win; scanning stops once both are known.

    Args:
        status: ``Status`` column of ``SHOW ENGINE INNODB STATUS``
        table_name: Fixture table whose locks are of interest

    Returns:
        LockReport, with absent fields when nothing matched
    """
    holding: str | None = None
    waiting_for: str | None = None

    for block in split_transactions(status):
        waiting = extract_waiting(block)
        if waiting is not None:
            # an empty awaited section names no lock
            if waiting_for is None and waiting.strip():
                waiting_for = waiting
        elif holding is None:
            holding = extract_holding(block, table_name)

        if waiting_for is not None and holding is not None:
            break

    return LockReport(holding=holding, waiting_for=waiting_for)


__all__ = [
    "LockReport",
    "parse_status",
    "split_transactions",
    "extract_waiting",
    "extract_holding",
    "holding_pattern",
]
