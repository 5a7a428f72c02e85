"""
Structured error types for innolock.

Every failure a lock test can hit is one of a handful of typed errors that
carry a category, structured context (which pair, which statement, which
protocol phase, which session) and the underlying driver exception.

Manifesto:
    - **Typed hierarchy:** Connection, query, protocol and sequencing
      failures are distinguishable without string matching
    - **No retries:** A lock experiment mutates the fixture table, so no
      error here is ever retryable
    - **Rich context:** Errors carry metadata for logging and CLI output
    - **Error chaining:** The driver exception is preserved as ``cause``

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────┐
        │                     InnolockError                         │
        │               (category, context, cause)                  │
        ├──────────────────────────────────────────────────────────┤
        │  ConfigError        DatabaseError         ProtocolError   │
        │  (CONFIG)           (DATABASE)            (PROTOCOL)      │
        │      │                  │                                 │
        │  InvalidPairError   DatabaseConnectionError               │
        │                     QueryError            SequenceError   │
        │                                           (SEQUENCE)      │
        └──────────────────────────────────────────────────────────┘

Guardrails:
    ❌ DON'T: Raise a bare driver exception out of a session
    ✅ DO: Wrap it in QueryError with ``cause=``

    ❌ DON'T: Replace a failure with the error of a later cleanup step
    ✅ DO: Attach cleanup failures to ``ProtocolError.additional_errors``

Tags:
    error-handling, exception-hierarchy, error-context, innolock
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from innolock.statements import StatementPair


class ErrorCategory(str, Enum):
    """Error categories used for classification in logs and CLI output."""

    CONFIG = "CONFIG"            # Bad settings or statement files
    CONNECTION = "CONNECTION"    # Cannot establish a session
    DATABASE = "DATABASE"        # Statement, status fetch or rollback failed
    PROTOCOL = "PROTOCOL"        # Lock observation failed in some phase
    SEQUENCE = "SEQUENCE"        # A pair aborted the test sequence
    INTERNAL = "INTERNAL"        # Bugs, unexpected state


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Attributes:
        pair_index: Position of the statement pair in the sequence
        statement: SQL text that was executing
        phase: Protocol phase (acquire, contend, sample, cleanup)
        session: Name of the session the failure happened on
        metadata: Additional key-value pairs
    """

    pair_index: int | None = None
    statement: str | None = None
    phase: str | None = None
    session: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["pair_index", "statement", "phase", "session"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class InnolockError(Exception):
    """
    Base exception for all innolock errors.

    Subclasses set ``default_category``. Context can be added after creation
    with the fluent :meth:`with_context`.

    Examples:
        >>> error = QueryError("Table 'test.test' doesn't exist", sql="DELETE FROM test")
        >>> error.category
        <ErrorCategory.DATABASE: 'DATABASE'>
        >>> error.with_context(session="session1").context.session
        'session1'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> InnolockError:
        """
        Add context to this error (fluent API).

        Usage:
            raise QueryError("Lock wait timeout").with_context(
                session="session2",
                statement="DELETE FROM test WHERE pri = 4",
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(InnolockError):
    """Settings or statement configuration is invalid."""

    default_category = ErrorCategory.CONFIG


class InvalidPairError(ConfigError):
    """A configured statement pair could not be understood."""

    def __init__(self, message: str, *, value: Any = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.value = value

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.value is not None:
            result["value"] = repr(self.value)
        return result


# =============================================================================
# DATABASE ERRORS
# =============================================================================


class DatabaseError(InnolockError):
    """Database query or session error."""

    default_category = ErrorCategory.DATABASE


class DatabaseConnectionError(DatabaseError):
    """A session could not be established. Fatal for the whole run."""

    default_category = ErrorCategory.CONNECTION


class QueryError(DatabaseError):
    """A statement, status fetch, commit or rollback failed."""

    def __init__(
        self,
        message: str,
        *,
        sql: str | None = None,
        errno: int | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.sql = sql
        self.errno = errno
        if sql is not None and self.context.statement is None:
            self.context.statement = sql

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.errno is not None:
            result["errno"] = self.errno
        return result


# =============================================================================
# PROTOCOL / SEQUENCE ERRORS
# =============================================================================


class ProtocolError(InnolockError):
    """
    A lock observation failed.

    ``phase`` names where it failed. ``additional_errors`` holds failures that
    happened alongside the primary one: a rollback that failed during cleanup,
    or the other branch of the contention failing as well.
    """

    default_category = ErrorCategory.PROTOCOL

    def __init__(
        self,
        message: str,
        *,
        phase: str,
        additional_errors: list[BaseException] | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.phase = phase
        self.additional_errors = list(additional_errors or [])
        self.context.phase = phase

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["phase"] = self.phase
        if self.additional_errors:
            result["additional_errors"] = [str(e) for e in self.additional_errors]
        return result


class SequenceError(InnolockError):
    """
    A statement pair failed and the remaining pairs were not run.

    ``completed`` holds the results of the pairs that finished before the
    failure; they remain valid.
    """

    default_category = ErrorCategory.SEQUENCE

    def __init__(
        self,
        message: str,
        *,
        index: int,
        pair: StatementPair,
        completed: list[Any] | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.index = index
        self.pair = pair
        self.completed = list(completed or [])
        self.context.pair_index = index

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["pair"] = {"primary": self.pair.primary, "secondary": self.pair.secondary}
        result["completed"] = len(self.completed)
        return result


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "InnolockError",
    "ConfigError",
    "InvalidPairError",
    "DatabaseError",
    "DatabaseConnectionError",
    "QueryError",
    "ProtocolError",
    "SequenceError",
]
