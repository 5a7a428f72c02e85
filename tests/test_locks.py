"""
Tests for lock line summaries.
"""

import pytest

from innolock.locks import LockLine, decode_key, describe_locks
from innolock.parser import parse_status

from tests._support.status_dumps import (
    HOLDER_BLOCK,
    NEXT_KEY_LOCKS,
    SECOND_WAITING_BLOCK,
    WAITING_BLOCK,
    awaited_section,
    build_status,
    held_section,
)


@pytest.mark.parametrize(
    "hex_value,expected",
    [
        ("80000004", 4),
        ("80000000", 0),
        ("7fffffff", -1),
        ("8000000000000008", 8),
        ("7ffffffffffffffe", -2),
        ("abcd", "abcd"),
        ("000000001510", "000000001510"),
    ],
)
def test_decode_key(hex_value, expected):
    assert decode_key(hex_value) == expected


class TestDescribeLocks:
    def test_held_locks(self):
        lines = describe_locks(held_section(HOLDER_BLOCK))

        assert [line.kind for line in lines] == ["TABLE", "RECORD"]
        table, record = lines
        assert (table.schema, table.table, table.trx_id, table.mode) == ("test", "test", "5392", "IX")
        assert table.keys == []
        assert not table.gap

        assert record.index == "PRIMARY"
        assert record.mode == "X locks rec but not gap"
        assert record.keys == [4]
        assert not record.waiting
        assert not record.gap

    def test_awaited_lock(self):
        (line,) = describe_locks(awaited_section(WAITING_BLOCK))

        assert line.kind == "RECORD"
        assert line.waiting
        assert line.mode == "X locks rec but not gap"
        assert line.keys == [4]

    def test_insert_intention(self):
        (line,) = describe_locks(awaited_section(SECOND_WAITING_BLOCK))

        assert line.insert_intention
        assert line.gap
        assert line.waiting

    def test_next_key_locks_on_secondary_index(self):
        (line,) = describe_locks(NEXT_KEY_LOCKS)

        assert line.index == "sec"
        assert line.mode == "X"
        assert line.gap
        assert line.keys == ["supremum", 1]

    def test_from_parsed_report(self, contended_status):
        report = parse_status(contended_status)
        held = describe_locks(report.holding)
        awaited = describe_locks(report.waiting_for)

        assert [line.trx_id for line in held] == ["5392", "5392"]
        assert [line.trx_id for line in awaited] == ["5393"]

    @pytest.mark.parametrize("text", [None, "", "no locks here\n"])
    def test_empty(self, text):
        assert describe_locks(text) == []

    def test_build_status_text_is_ignored_outside_lock_lines(self):
        assert describe_locks(build_status()) == []


def test_lock_line_to_dict():
    line = LockLine(
        kind="RECORD",
        schema="test",
        table="test",
        trx_id="5392",
        mode="X locks gap before rec",
        index="sec",
        keys=[5],
    )

    assert line.to_dict() == {
        "kind": "RECORD",
        "schema": "test",
        "table": "test",
        "trx_id": "5392",
        "mode": "X locks gap before rec",
        "index": "sec",
        "waiting": False,
        "keys": [5],
        "gap": True,
        "insert_intention": False,
    }
