"""
Fixture table and lock monitor.

The fixture table has three integer columns: ``pri`` (primary key),
``sec`` (non-unique secondary index) and ``non`` (not indexed), and three
rows spaced so that gaps exist between them::

    pri  sec  non
      0    1    2
      4    5    6
      8    9   10

InnoDB only lists the locks a transaction holds when its lock monitor is
on. Older servers turn it on while a table named ``innodb_lock_monitor``
exists; current ones use the ``innodb_status_output_locks`` global
variable. Both setups are idempotent.
"""

from __future__ import annotations

from enum import Enum

from innolock.logging import get_logger
from innolock.session import Session

logger = get_logger(__name__)

FIXTURE_ROWS = ((0, 1, 2), (4, 5, 6), (8, 9, 10))
MONITOR_TABLE = "innodb_lock_monitor"


class LockMonitorMode(str, Enum):
    """How to make the status dump list held locks."""

    TABLE = "table"
    VARIABLE = "variable"
    BOTH = "both"
    NONE = "none"

    @property
    def uses_table(self) -> bool:
        return self in (LockMonitorMode.TABLE, LockMonitorMode.BOTH)

    @property
    def uses_variable(self) -> bool:
        return self in (LockMonitorMode.VARIABLE, LockMonitorMode.BOTH)


def _quote(name: str) -> str:
    return "`" + name.replace("`", "``") + "`"


async def create_fixture(session: Session, table_name: str = "test") -> None:
    """Drop and recreate the fixture table with its three rows."""
    table = _quote(table_name)
    values = ", ".join(f"({p}, {s}, {n})" for p, s, n in FIXTURE_ROWS)

    await session.execute(f"DROP TABLE IF EXISTS {table}")
    await session.execute(
        f"CREATE TABLE {table} (pri INT NOT NULL, sec INT, non INT, "
        f"PRIMARY KEY(pri), KEY(sec)) ENGINE=InnoDB"
    )
    await session.execute(f"INSERT INTO {table} VALUES {values}")
    await session.commit()
    logger.info("fixture.created", table=table_name, rows=len(FIXTURE_ROWS))


async def drop_fixture(session: Session, table_name: str = "test") -> None:
    await session.execute(f"DROP TABLE IF EXISTS {_quote(table_name)}")
    logger.info("fixture.dropped", table=table_name)


async def enable_lock_monitor(session: Session, mode: LockMonitorMode = LockMonitorMode.BOTH) -> None:
    """Turn on the InnoDB lock monitor."""
    if mode.uses_table:
        await session.execute(f"DROP TABLE IF EXISTS {MONITOR_TABLE}")
        await session.execute(f"CREATE TABLE {MONITOR_TABLE} (a INT)")
    if mode.uses_variable:
        await session.execute("SET GLOBAL innodb_status_output_locks = ON")
    logger.info("fixture.lock_monitor_enabled", mode=mode.value)


async def disable_lock_monitor(session: Session, mode: LockMonitorMode = LockMonitorMode.BOTH) -> None:
    """Turn off the InnoDB lock monitor."""
    if mode.uses_table:
        await session.execute(f"DROP TABLE IF EXISTS {MONITOR_TABLE}")
    if mode.uses_variable:
        await session.execute("SET GLOBAL innodb_status_output_locks = OFF")
    logger.info("fixture.lock_monitor_disabled", mode=mode.value)


__all__ = [
    "FIXTURE_ROWS",
    "MONITOR_TABLE",
    "LockMonitorMode",
    "create_fixture",
    "drop_fixture",
    "enable_lock_monitor",
    "disable_lock_monitor",
]
