"""
Structured error types for the edgesql data-access layer.

Every failure that leaves this package is one of the types below. Each error
carries a category, an explicit retry flag, structured context (the SQL,
its parameters, the attempt number, the migration id) and the chained
underlying exception, so callers never have to parse messages to decide
what happened.

Manifesto:
    - **Typed taxonomy:** Configuration, transient, exhausted, migration and
      unsupported failures are distinct types
    - **Explicit retry semantics:** Each error knows if it's retryable
    - **Rich context:** Errors carry the SQL and parameters for logging
    - **Error chaining:** The store's original exception is kept as cause

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                        EdgeSQLError                              │
        │  (category, retryable, context, cause)                           │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  ConfigurationError        TransientExecutionError               │
        │  (CONFIG, never retried)   (DATABASE, retryable)                 │
        │                                 │                                │
        │                            QueryTimeoutError                     │
        │                                                                  │
        │  PermanentExecutionError   QueryFailedError                      │
        │  (DATABASE, not retried)   (attempts, last_message)              │
        │                                                                  │
        │  MigrationError            UnsupportedOperationError             │
        │  (MIGRATION)               (also NotImplementedError)            │
        │                                                                  │
        │  RecordNotFoundError       RecordValidationError                 │
        │  (REPOSITORY)              (VALIDATION)                          │
        └─────────────────────────────────────────────────────────────────┘

Examples:
    >>> err = QueryFailedError(attempts=3, last_message="network blip")
    >>> err.attempts
    3
    >>> err.retryable
    False

    >>> TransientExecutionError("socket reset").with_context(sql="SELECT 1").context.sql
    'SELECT 1'

Tags:
    error-handling, exception-hierarchy, retry-logic, error-context, edgesql
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    CONFIG = "CONFIG"             # Missing binding, invalid settings
    DATABASE = "DATABASE"         # Store call failures
    TIMEOUT = "TIMEOUT"           # Per-attempt deadline exceeded
    MIGRATION = "MIGRATION"       # Schema migration failures
    VALIDATION = "VALIDATION"     # Bad record data
    REPOSITORY = "REPOSITORY"     # Missing rows, repository misuse
    UNSUPPORTED = "UNSUPPORTED"   # Intentionally unimplemented operations
    INTERNAL = "INTERNAL"         # Bugs, unexpected state


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Only fields that are set end up in ``to_dict()``. Anything that does not
    have a dedicated field goes in ``metadata``.

    Attributes:
        sql: Statement text that was being executed
        params: Bound parameters of that statement
        attempt: 1-based attempt number inside the retry loop
        migration_id: Id of the migration being applied
        table: Table a repository was working on
        metadata: Additional key-value pairs
    """

    sql: str | None = None
    params: list[Any] | None = None
    attempt: int | None = None
    migration_id: str | None = None
    table: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result: dict[str, Any] = {}
        for key in ["sql", "params", "attempt", "migration_id", "table"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class EdgeSQLError(Exception):
    """
    Base exception for all edgesql errors.

    Subclasses set ``default_category`` and ``default_retryable``; both can
    be overridden per instance.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> EdgeSQLError:
        """
        Add context to this error (fluent API).

        Usage:
            raise TransientExecutionError("reset").with_context(sql=sql, attempt=2)
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
            "retryable": self.retryable,
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
# CONFIGURATION
# =============================================================================


class ConfigurationError(EdgeSQLError):
    """The store binding is unavailable. A deployment defect, never retried."""

    default_category = ErrorCategory.CONFIG
    default_retryable = False


# =============================================================================
# EXECUTION
# =============================================================================


class TransientExecutionError(EdgeSQLError):
    """
    A single attempt inside the retry loop failed in a way worth retrying.

    Raised per attempt, recovered locally by the executor up to
    ``max_retries`` and then escalated as :class:`QueryFailedError`.
    """

    default_category = ErrorCategory.DATABASE
    default_retryable = True


class QueryTimeoutError(TransientExecutionError):
    """An attempt exceeded the configured per-attempt deadline."""

    default_category = ErrorCategory.TIMEOUT

    def __init__(self, timeout_ms: int, **kwargs: Any):
        super().__init__(f"Query timed out after {timeout_ms}ms", **kwargs)
        self.timeout_ms = timeout_ms


class PermanentExecutionError(EdgeSQLError):
    """An attempt failed in a way the classifier considers not worth retrying."""

    default_category = ErrorCategory.DATABASE
    default_retryable = False


class QueryFailedError(EdgeSQLError):
    """
    A call gave up: retries were exhausted or the error was permanent.

    Always surfaced to the caller. ``attempts`` is the number of attempts
    actually made and ``last_message`` the message of the final underlying
    error.
    """

    default_category = ErrorCategory.DATABASE
    default_retryable = False

    def __init__(
        self,
        attempts: int,
        last_message: str,
        *,
        operation: str = "Query",
        **kwargs: Any,
    ):
        super().__init__(
            f"{operation} failed after {attempts} attempts: {last_message}",
            **kwargs,
        )
        self.attempts = attempts
        self.last_message = last_message
        self.operation = operation


# =============================================================================
# MIGRATIONS
# =============================================================================


class MigrationError(EdgeSQLError):
    """A migration's ``up`` script failed; the rest of the run is halted."""

    default_category = ErrorCategory.MIGRATION
    default_retryable = False

    def __init__(self, message: str, migration_id: str | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.migration_id = migration_id
        if migration_id is not None:
            self.context.migration_id = migration_id


# =============================================================================
# UNSUPPORTED
# =============================================================================


class UnsupportedOperationError(EdgeSQLError, NotImplementedError):
    """Rollback and schema introspection are deliberately not implemented."""

    default_category = ErrorCategory.UNSUPPORTED
    default_retryable = False


# =============================================================================
# REPOSITORIES
# =============================================================================


class RecordNotFoundError(EdgeSQLError):
    """A row expected to exist was not found."""

    default_category = ErrorCategory.REPOSITORY
    default_retryable = False


class RecordValidationError(EdgeSQLError):
    """Record data failed validation before reaching the store."""

    default_category = ErrorCategory.VALIDATION
    default_retryable = False

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.errors = errors or []

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.errors:
            result["errors"] = self.errors
        return result


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


# Substrings of store error messages that no amount of retrying will fix.
PERMANENT_MESSAGE_MARKERS = (
    "syntax error",
    "no such table",
    "no such column",
    "already exists",
    "duplicate column name",
    "constraint failed",
    "datatype mismatch",
    "incorrect number of bindings",
)


def is_retryable(error: BaseException) -> bool:
    """Check if an error is retryable.

    edgesql errors carry their own flag. Bad arguments (``ValueError``,
    ``TypeError``) never succeed on retry, and neither does a store error
    whose message names malformed SQL, a missing object or a violated
    constraint. Any other failure (connection resets, timeouts, locks,
    I/O errors) is worth another attempt.
    """
    if isinstance(error, EdgeSQLError):
        return error.retryable
    if isinstance(error, (ValueError, TypeError)):
        return False
    message = str(error).lower()
    return not any(marker in message for marker in PERMANENT_MESSAGE_MARKERS)


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "EdgeSQLError",
    "ConfigurationError",
    "TransientExecutionError",
    "QueryTimeoutError",
    "PermanentExecutionError",
    "QueryFailedError",
    "MigrationError",
    "UnsupportedOperationError",
    "RecordNotFoundError",
    "RecordValidationError",
    "PERMANENT_MESSAGE_MARKERS",
    "is_retryable",
]
