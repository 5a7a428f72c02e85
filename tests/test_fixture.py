"""
Tests for fixture table and lock monitor setup.
"""

import pytest

from innolock.fixture import (
    MONITOR_TABLE,
    LockMonitorMode,
    create_fixture,
    disable_lock_monitor,
    drop_fixture,
    enable_lock_monitor,
)

from tests._support.fakes import RecordingSession


@pytest.mark.asyncio
async def test_create_fixture():
    session = RecordingSession()

    await create_fixture(session)

    assert session.statements == [
        "DROP TABLE IF EXISTS `test`",
        "CREATE TABLE `test` (pri INT NOT NULL, sec INT, non INT, "
        "PRIMARY KEY(pri), KEY(sec)) ENGINE=InnoDB",
        "INSERT INTO `test` VALUES (0, 1, 2), (4, 5, 6), (8, 9, 10)",
    ]
    assert session.committed == 1


@pytest.mark.asyncio
async def test_table_name_is_quoted():
    session = RecordingSession()

    await create_fixture(session, "lock`test")
    await drop_fixture(session, "lock`test")

    assert session.statements[0] == "DROP TABLE IF EXISTS `lock``test`"
    assert session.statements[-1] == "DROP TABLE IF EXISTS `lock``test`"


@pytest.mark.parametrize(
    "mode,enabled,disabled",
    [
        (
            LockMonitorMode.BOTH,
            [
                f"DROP TABLE IF EXISTS {MONITOR_TABLE}",
                f"CREATE TABLE {MONITOR_TABLE} (a INT)",
                "SET GLOBAL innodb_status_output_locks = ON",
            ],
            [
                f"DROP TABLE IF EXISTS {MONITOR_TABLE}",
                "SET GLOBAL innodb_status_output_locks = OFF",
            ],
        ),
        (
            LockMonitorMode.TABLE,
            [f"DROP TABLE IF EXISTS {MONITOR_TABLE}", f"CREATE TABLE {MONITOR_TABLE} (a INT)"],
            [f"DROP TABLE IF EXISTS {MONITOR_TABLE}"],
        ),
        (
            LockMonitorMode.VARIABLE,
            ["SET GLOBAL innodb_status_output_locks = ON"],
            ["SET GLOBAL innodb_status_output_locks = OFF"],
        ),
        (LockMonitorMode.NONE, [], []),
    ],
)
@pytest.mark.asyncio
async def test_lock_monitor(mode, enabled, disabled):
    session = RecordingSession()
    await enable_lock_monitor(session, mode)
    assert session.statements == enabled

    session = RecordingSession()
    await disable_lock_monitor(session, mode)
    assert session.statements == disabled
