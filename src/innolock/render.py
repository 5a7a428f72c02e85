"""Text and JSON renderings of pair results."""

from __future__ import annotations

from typing import Any

from innolock.locks import describe_locks
from innolock.parser import LockReport
from innolock.sequencer import PairResult

RULE = "-" * 40
BLOCKED_LABEL = "OTHER STATEMENT BLOCKED ON:"
NONE_HELD = "* NONE HELD *"
NONE_WAITING = "* NONE WAITING *"


def render_report(report: LockReport) -> str:
    """Held locks, the blocked label, then the awaited lock."""
    holding = report.holding or NONE_HELD + "\n"
    waiting = report.waiting_for or NONE_WAITING + "\n"
    return f"{holding}\n{BLOCKED_LABEL}\n\n{waiting}"


def render_text(result: PairResult, *, raw: bool = False) -> str:
    """Header with the statement(s) between rules, then the report."""
    parts = [RULE, result.pair.label]
    if result.pair.note:
        parts.append(f"-- {result.pair.note}")
    parts += [RULE, "", render_report(result.report)]
    if raw:
        parts += [RULE, "RAW STATUS", RULE, result.status]
    return "\n".join(parts)


def result_payload(result: PairResult, *, raw: bool = False) -> dict[str, Any]:
    """JSON-ready dict, including the summarized lock lines."""
    payload = {**result.to_dict(), **report_payload(result.report)}
    if raw:
        payload["status"] = result.status
    return payload


def report_payload(report: LockReport) -> dict[str, Any]:
    payload = report.to_dict()
    payload["holding_locks"] = [line.to_dict() for line in describe_locks(report.holding)]
    payload["waiting_locks"] = [line.to_dict() for line in describe_locks(report.waiting_for)]
    return payload
