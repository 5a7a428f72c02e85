"""
Statement pairs to exercise, and where they come from.

A pair is run as ``primary`` on session 1 (takes the lock) and
``secondary`` on session 2 (expected to block). Configuration may give a
single statement, which then runs on both sessions.

Pairs come from the built-in :data:`DEFAULT_PAIRS` catalog or from a YAML
file, either a bare list or a mapping with a ``pairs`` key::

    pairs:
      - DELETE FROM test WHERE pri = 4
      - ["INSERT INTO test VALUES (2,0,0)", "DELETE FROM test WHERE sec > 2"]
      - primary: DELETE FROM test WHERE sec < 2
        secondary: INSERT INTO test VALUES (2,0,0)
        note: gap lock from the delete blocks the insert intention lock
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from innolock.errors import InvalidPairError
from innolock.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class StatementPair:
    """Two statements run concurrently on the two sessions."""

    primary: str
    secondary: str
    note: str | None = None

    @classmethod
    def same(cls, statement: str, note: str | None = None) -> StatementPair:
        """Run ``statement`` on both sessions."""
        return cls(statement, statement, note)

    @classmethod
    def from_value(cls, value: Any) -> StatementPair:
        """Build a pair from a string, a two-item sequence or a mapping."""
        if isinstance(value, StatementPair):
            return value
        if isinstance(value, str):
            if not value.strip():
                raise InvalidPairError("Statement is empty", value=value)
            return cls.same(value.strip())
        if isinstance(value, list | tuple):
            if len(value) > 2:
                # an unquoted YAML flow sequence splits statements at every comma
                raise InvalidPairError(
                    f"A statement pair needs exactly two statements, got {len(value)}; "
                    "quote statements that contain commas",
                    value=value,
                )
            if len(value) != 2 or not all(isinstance(v, str) and v.strip() for v in value):
                raise InvalidPairError(
                    "A statement pair needs exactly two non-empty statements",
                    value=value,
                )
            return cls(value[0].strip(), value[1].strip())
        if isinstance(value, dict):
            primary = value.get("primary")
            if not isinstance(primary, str) or not primary.strip():
                raise InvalidPairError("Pair mapping needs a 'primary' statement", value=value)
            secondary = value.get("secondary", primary)
            if not isinstance(secondary, str) or not secondary.strip():
                raise InvalidPairError("Pair 'secondary' must be a statement", value=value)
            note = value.get("note")
            return cls(primary.strip(), secondary.strip(), str(note) if note is not None else None)
        raise InvalidPairError(
            f"Unsupported statement pair type: {type(value).__name__}",
            value=value,
        )

    @property
    def is_symmetric(self) -> bool:
        return self.primary == self.secondary

    @property
    def label(self) -> str:
        """Header text used when rendering the pair."""
        if self.is_symmetric:
            return self.primary
        return f"{self.primary}\n{self.secondary}"


DEFAULT_PAIRS: tuple[StatementPair, ...] = (
    StatementPair.same("DELETE FROM test WHERE pri = 4"),
    StatementPair.same("UPDATE test SET non = 99 WHERE pri = 4"),
    StatementPair.same("DELETE FROM test WHERE pri = 4 or pri = 8"),
    StatementPair.same("DELETE FROM test WHERE pri < 3"),
    StatementPair.same("UPDATE test SET non = 99 WHERE pri < 3"),
    StatementPair.same("DELETE FROM test WHERE sec = 5"),
    StatementPair.same("UPDATE test SET non = 99 WHERE sec = 5"),
    StatementPair.same("DELETE FROM test WHERE sec < 3"),
    StatementPair.same("UPDATE test SET non = 99 WHERE sec < 3"),
    StatementPair.same("DELETE FROM test WHERE non = 6"),
    StatementPair.same("UPDATE test SET non = 99 WHERE non = 6"),
    StatementPair.same("DELETE FROM test WHERE non < 3"),
    StatementPair.same("UPDATE test SET non = 99 WHERE non < 3"),
    StatementPair.same("DELETE FROM test"),
    StatementPair.same("UPDATE test SET non = 99"),
    StatementPair.same("INSERT INTO test VALUES (2,2,2)"),
    StatementPair(
        "INSERT INTO test VALUES (2,2,2)",
        "DELETE FROM test WHERE sec = 2",
        note="differs from the symmetric insert",
    ),
    StatementPair(
        "DELETE FROM test WHERE sec < 2",
        "INSERT INTO test VALUES (2,0,0)",
        note="gap lock from the delete blocks the insert intention lock",
    ),
    StatementPair(
        "INSERT INTO test VALUES (2,0,0)",
        "INSERT INTO test VALUES (3,0,0)",
        note="insert intention locks do not block each other",
    ),
    StatementPair(
        "INSERT INTO test VALUES (2,2,2)",
        "DELETE FROM test WHERE pri = 2 OR sec = 2",
        note="only the primary key is locked",
    ),
    StatementPair(
        "UPDATE test SET pri = 15 WHERE pri = 4",
        "DELETE FROM test WHERE pri = 15",
        note="reveals the locks on the newly created index records",
    ),
    StatementPair(
        "UPDATE test SET sec = 15 WHERE sec = 5",
        "DELETE FROM test WHERE sec = 15",
        note="reveals the locks on the newly created index records",
    ),
    StatementPair(
        "INSERT INTO test VALUES (2,0,0)",
        "DELETE FROM test WHERE sec > 2",
        note="may only block after earlier pairs ran; purge timing dependent",
    ),
)


def parse_pairs(values: Iterable[Any]) -> list[StatementPair]:
    """Convert raw configuration values into pairs, reporting the bad index."""
    pairs = []
    for index, value in enumerate(values):
        try:
            pairs.append(StatementPair.from_value(value))
        except InvalidPairError as e:
            raise e.with_context(pair_index=index)
    return pairs


def load_pairs(path: str | Path) -> list[StatementPair]:
    """Load statement pairs from a YAML file."""
    path = Path(path)
    if not path.exists():
        raise InvalidPairError(f"Statement file not found: {path}")

    logger.debug("statements.load_yaml", path=str(path))

    with open(path, encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise InvalidPairError(f"Invalid YAML in {path}: {e}", cause=e)

    if isinstance(data, dict):
        data = data.get("pairs")
    if not isinstance(data, list) or not data:
        raise InvalidPairError(
            f"Expected a non-empty list of statement pairs in {path}",
            value=type(data).__name__,
        )

    return parse_pairs(data)


__all__ = [
    "StatementPair",
    "DEFAULT_PAIRS",
    "parse_pairs",
    "load_pairs",
]
