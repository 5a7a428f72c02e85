"""
innolock - observe InnoDB lock contention between two sessions.

Runs a pair of statements on two connections so that the second one blocks
on a lock taken by the first, samples ``SHOW ENGINE INNODB STATUS`` while it
is blocked, and reports which locks were held and which one was awaited.
"""

__version__ = "0.1.0"

from innolock.parser import LockReport, parse_status
from innolock.statements import StatementPair

__all__ = [
    "LockReport",
    "StatementPair",
    "parse_status",
    "__version__",
]
