"""edgesql core -- data-access primitives.

Architecture::

    Layer 1 -- Types & Errors
        errors.py          Structured error hierarchy (EdgeSQLError, QueryFailedError)
        results.py         QueryDescriptor + RowsResult / SingleRowResult / WriteResult
        protocols.py       StoreBinding / PreparedStatement protocols

    Layer 2 -- Store access
        connection.py      ConnectionAccessor (binding looked up per call)
        store.py           SqliteBinding (local sqlite3 implementation)
        statements.py      split_sql (statement-boundary script splitting)
        clauses.py         WHERE / ORDER BY / LIMIT builders

    Layer 3 -- Execution
        executor.py        ResilientExecutor (retry, timeout, classification)
        metrics.py         MetricsCollector (lock-protected counters)
        transaction.py     Transaction shim (no rollback)
        migrations/        MigrationRunner + built-in definitions
        hashing.py         FNV-1a checksums

    Layer 4 -- Service
        database.py        DatabaseService facade
        health.py          Health verdicts
        repositories/      Users / sessions / audit log repositories

    Cross-cutting
        logging.py         structlog configuration
        settings.py        DatabaseSettings (pydantic-settings)
"""

from edgesql.core.clauses import OrderBy, QueryOptions, WhereCondition
from edgesql.core.connection import ConnectionAccessor
from edgesql.core.database import DatabaseService
from edgesql.core.errors import (
    ConfigurationError,
    EdgeSQLError,
    ErrorCategory,
    ErrorContext,
    MigrationError,
    PermanentExecutionError,
    QueryFailedError,
    QueryTimeoutError,
    RecordNotFoundError,
    RecordValidationError,
    TransientExecutionError,
    UnsupportedOperationError,
)
from edgesql.core.executor import (
    ErrorClass,
    ResilientExecutor,
    build_retry_strategy,
    classify_error,
    retry_everything,
)
from edgesql.core.health import HealthStatus
from edgesql.core.metrics import MetricsCollector, MetricsSnapshot
from edgesql.core.results import QueryDescriptor, RowsResult, SingleRowResult, WriteResult
from edgesql.core.statements import split_sql
from edgesql.core.store import SqliteBinding

__all__ = [
    "ConfigurationError",
    "ConnectionAccessor",
    "DatabaseService",
    "EdgeSQLError",
    "ErrorCategory",
    "ErrorClass",
    "ErrorContext",
    "HealthStatus",
    "MetricsCollector",
    "MetricsSnapshot",
    "MigrationError",
    "OrderBy",
    "PermanentExecutionError",
    "QueryDescriptor",
    "QueryFailedError",
    "QueryOptions",
    "QueryTimeoutError",
    "RecordNotFoundError",
    "RecordValidationError",
    "ResilientExecutor",
    "RowsResult",
    "SingleRowResult",
    "SqliteBinding",
    "TransientExecutionError",
    "UnsupportedOperationError",
    "WhereCondition",
    "WriteResult",
    "build_retry_strategy",
    "classify_error",
    "retry_everything",
    "split_sql",
]
