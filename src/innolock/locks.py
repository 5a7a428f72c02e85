"""
Summarize lock descriptor text into one record per lock line.

The text :func:`innolock.parser.parse_status` extracts is still the raw
monitor output. :func:`describe_locks` reads its ``TABLE LOCK`` and
``RECORD LOCKS`` lines, together with the first field of each locked record,
so the JSON output can say "X lock on PRIMARY, key 4, not gap" directly.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field
from typing import Any

_TABLE_LOCK = re.compile(
    r"^TABLE LOCK table `(?P<schema>[^`]*)`\.`(?P<table>[^`]*)` "
    r"trx id (?P<trx>\S+) lock mode (?P<mode>.+?)\s*$"
)
_RECORD_LOCK = re.compile(
    r"^RECORD LOCKS space id \d+ page no \d+ n bits \d+ "
    r"index (?P<index>\S+) of table `(?P<schema>[^`]*)`\.`(?P<table>[^`]*)` "
    r"trx id (?P<trx>\S+) lock[_ ]mode (?P<mode>.+?)\s*$"
)
_FIRST_FIELD = re.compile(r"^\s*0: len (?P<len>\d+); hex (?P<hex>[0-9a-f]+);")
_SUPREMUM = re.compile(r"^Record lock, heap no 1 PHYSICAL RECORD: n_fields 1;")


@dataclass
class LockLine:
    """One table or record lock from the monitor output."""

    kind: str
    schema: str
    table: str
    trx_id: str
    mode: str
    index: str | None = None
    waiting: bool = False
    keys: list[Any] = field(default_factory=list)

    @property
    def gap(self) -> bool:
        """Gap-only, or next-key (record plus the gap before it)."""
        if self.kind != "RECORD":
            return False
        return "locks gap" in self.mode or "rec but not gap" not in self.mode

    @property
    def insert_intention(self) -> bool:
        return "insert intention" in self.mode

    def to_dict(self) -> dict[str, Any]:
        result = asdict(self)
        result["gap"] = self.gap
        result["insert_intention"] = self.insert_intention
        return result


def decode_key(hex_value: str) -> Any:
    """Decode the first field of an index record.

    InnoDB stores signed integers big-endian with the sign bit flipped, so a
    4 or 8 byte field decodes to its INT/BIGINT value. Anything else is
    returned as hex.
    """
    width = len(hex_value) * 4
    if width not in (32, 64):
        return hex_value
    value = int(hex_value, 16) ^ (1 << (width - 1))
    if value >= 1 << (width - 1):
        value -= 1 << width
    return value


def describe_locks(text: str | None) -> list[LockLine]:
    """Parse every lock line (and its locked keys) out of ``text``."""
    if not text:
        return []

    lines: list[LockLine] = []
    current: LockLine | None = None
    supremum_next = False

    for raw in text.splitlines():
        match = _TABLE_LOCK.match(raw)
        if match:
            current = None
            mode, waiting = _split_waiting(match["mode"])
            lines.append(
                LockLine(
                    kind="TABLE",
                    schema=match["schema"],
                    table=match["table"],
                    trx_id=match["trx"],
                    mode=mode,
                    waiting=waiting,
                )
            )
            continue

        match = _RECORD_LOCK.match(raw)
        if match:
            mode, waiting = _split_waiting(match["mode"])
            current = LockLine(
                kind="RECORD",
                schema=match["schema"],
                table=match["table"],
                trx_id=match["trx"],
                mode=mode,
                index=match["index"],
                waiting=waiting,
            )
            lines.append(current)
            continue

        if current is None:
            continue
        if _SUPREMUM.match(raw):
            supremum_next = True
            continue
        match = _FIRST_FIELD.match(raw)
        if match:
            if supremum_next:
                current.keys.append("supremum")
            else:
                current.keys.append(decode_key(match["hex"]))
            supremum_next = False

    return lines


def _split_waiting(mode: str) -> tuple[str, bool]:
    if mode.endswith(" waiting"):
        return mode[: -len(" waiting")], True
    return mode, False


__all__ = ["LockLine", "describe_locks", "decode_key"]
