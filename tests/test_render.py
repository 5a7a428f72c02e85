"""
Tests for text and JSON renderings.
"""

from innolock.parser import LockReport, parse_status
from innolock.render import (
    BLOCKED_LABEL,
    NONE_HELD,
    NONE_WAITING,
    RULE,
    render_report,
    render_text,
    report_payload,
    result_payload,
)
from innolock.sequencer import PairResult
from innolock.statements import StatementPair


def make_result(report, pair=None, status="STATUS"):
    return PairResult(
        index=0,
        pair=pair or StatementPair.same("DELETE FROM test WHERE pri = 4"),
        report=report,
        status=status,
        elapsed=0.01,
    )


class TestRenderReport:
    def test_both_present(self):
        text = render_report(LockReport(holding="HELD\n", waiting_for="AWAITED\n"))
        assert text == f"HELD\n\n{BLOCKED_LABEL}\n\nAWAITED\n"

    def test_sentinels(self):
        text = render_report(LockReport())
        assert text == f"{NONE_HELD}\n\n{BLOCKED_LABEL}\n\n{NONE_WAITING}\n"

    def test_empty_strings_render_as_sentinels(self):
        text = render_report(LockReport(holding="", waiting_for=""))
        assert text == f"{NONE_HELD}\n\n{BLOCKED_LABEL}\n\n{NONE_WAITING}\n"


class TestRenderText:
    def test_symmetric_header(self):
        text = render_text(make_result(LockReport()))
        lines = text.splitlines()
        assert lines[:4] == [RULE, "DELETE FROM test WHERE pri = 4", RULE, ""]
        assert NONE_HELD in text
        assert "STATUS" not in text

    def test_asymmetric_header_with_note(self):
        pair = StatementPair("INSERT INTO test VALUES (2,0,0)", "DELETE FROM test WHERE sec > 2", "purge")
        lines = render_text(make_result(LockReport(), pair=pair)).splitlines()
        assert lines[:5] == [
            RULE,
            "INSERT INTO test VALUES (2,0,0)",
            "DELETE FROM test WHERE sec > 2",
            "-- purge",
            RULE,
        ]

    def test_raw(self):
        text = render_text(make_result(LockReport(), status="THE DUMP"), raw=True)
        assert text.endswith(f"{RULE}\nRAW STATUS\n{RULE}\nTHE DUMP")


class TestPayload:
    def test_report_payload_summarizes_locks(self, contended_status):
        payload = report_payload(parse_status(contended_status))

        assert payload["holding"].startswith("TABLE LOCK")
        assert [line["kind"] for line in payload["holding_locks"]] == ["TABLE", "RECORD"]
        assert payload["waiting_locks"][0]["waiting"] is True
        assert payload["waiting_locks"][0]["keys"] == [4]

    def test_empty_report(self):
        payload = report_payload(LockReport())
        assert payload == {
            "holding": None,
            "waiting_for": None,
            "holding_locks": [],
            "waiting_locks": [],
        }

    def test_result_payload(self):
        payload = result_payload(make_result(LockReport(), status="DUMP"))
        assert payload["primary"] == "DELETE FROM test WHERE pri = 4"
        assert payload["holding_locks"] == []
        assert "status" not in payload

        assert result_payload(make_result(LockReport(), status="DUMP"), raw=True)["status"] == "DUMP"
