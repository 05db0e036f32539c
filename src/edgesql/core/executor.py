"""
Resilient executor - bounded retry, timing and outcome classification.

Every ``query`` / ``query_one`` / ``execute`` / ``execute_script`` call runs
through the same loop:

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │ attempt n (1..max_retries)                                    │
        │   accessor.get_connection()   ── ConfigurationError ──► raise │
        │   wait_for(prepare→bind→run, query_timeout)                   │
        │     ok    ──► metrics.record(success) ──► result              │
        │     error ──► classify ──► TRANSIENT and attempts left?       │
        │                  yes ──► sleep(strategy delay) ──► attempt n+1│
        │                  no  ──► metrics.record(failure)              │
        │                          ──► QueryFailedError(attempts, msg)  │
        └──────────────────────────────────────────────────────────────┘

``batch`` is a single store call: timed, logged and counted, never retried.

Metrics are mutated exactly once per terminal outcome. A call whose total
duration (retries and backoff included) exceeds the slow-query threshold is
also counted as slow, success or not.

The executor keeps no per-call state on the instance, so one executor is
safe to share between concurrent request contexts; only the
:class:`~edgesql.core.metrics.MetricsCollector` is shared, and it locks.

Tags:
    retry, backoff, timeout, metrics, executor, edgesql
"""

from __future__ import annotations

import asyncio
import sqlite3
import time
from collections.abc import Awaitable, Callable, Sequence
from enum import Enum
from typing import Any, TypeVar

from edgesql.core.connection import ConnectionAccessor
from edgesql.core.errors import (
    ConfigurationError,
    EdgeSQLError,
    ErrorContext,
    PermanentExecutionError,
    QueryFailedError,
    QueryTimeoutError,
    TransientExecutionError,
    is_retryable,
)
from edgesql.core.logging import get_logger
from edgesql.core.metrics import MetricsCollector
from edgesql.core.protocols import PreparedStatement, StoreBinding
from edgesql.core.results import (
    QueryDescriptor,
    QueryMeta,
    QueryParams,
    RowsResult,
    SingleRowResult,
    WriteMeta,
    WriteResult,
    rows_result_from_store,
    write_result_from_store,
)
from edgesql.core.settings import DatabaseSettings
from edgesql.execution.retry import (
    ExponentialBackoff,
    LinearBackoff,
    NoRetry,
    RetryContext,
    RetryStrategy,
)

T = TypeVar("T")

Statement = QueryDescriptor | tuple[str, QueryParams] | str | PreparedStatement


class ErrorClass(str, Enum):
    TRANSIENT = "TRANSIENT"
    PERMANENT = "PERMANENT"


ErrorClassifier = Callable[[BaseException], ErrorClass]


def retry_everything(error: BaseException) -> ErrorClass:
    """Treat every failure as transient."""
    return ErrorClass.TRANSIENT


def classify_error(error: BaseException) -> ErrorClass:
    """Tag malformed SQL, constraint violations and bad parameters as permanent.

    sqlite integrity and programming errors are permanent by type; everything
    else follows :func:`~edgesql.core.errors.is_retryable`.
    """
    if isinstance(error, (sqlite3.IntegrityError, sqlite3.ProgrammingError)):
        return ErrorClass.PERMANENT
    return ErrorClass.TRANSIENT if is_retryable(error) else ErrorClass.PERMANENT


def build_retry_strategy(settings: DatabaseSettings) -> RetryStrategy:
    """Map ``settings.backoff`` to a :class:`RetryStrategy`."""
    if settings.backoff == "none":
        return NoRetry()
    if settings.backoff == "exponential":
        return ExponentialBackoff(
            max_retries=settings.max_retries,
            base_delay=settings.retry_delay_seconds,
            max_delay=settings.retry_max_delay_seconds,
            jitter=settings.retry_jitter,
        )
    return LinearBackoff(
        max_retries=settings.max_retries,
        base_delay=settings.retry_delay_seconds,
        increment=settings.retry_delay_seconds,
        max_delay=settings.retry_max_delay_seconds,
    )


class ResilientExecutor:
    """Runs statements against the store with retry, deadline and metrics.

    Parameters
    ----------
    accessor
        Where the store binding is fetched from on every attempt.
    settings
        Retry, timeout, slow-query and logging knobs.
    metrics
        Shared accumulator. A new one is created if omitted.
    logger
        structlog-compatible logger sink.
    classifier
        Decides transient vs permanent. Defaults to :func:`retry_everything`
        when ``settings.retry_all_errors`` is set, else :func:`classify_error`.
    strategy
        Retry strategy. Defaults to :func:`build_retry_strategy` of ``settings``.
    sleep, clock
        Injected for deterministic tests.
    """

    def __init__(
        self,
        accessor: ConnectionAccessor,
        settings: DatabaseSettings | None = None,
        metrics: MetricsCollector | None = None,
        logger: Any = None,
        classifier: ErrorClassifier | None = None,
        strategy: RetryStrategy | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.accessor = accessor
        self.settings = settings or DatabaseSettings()
        self.metrics = metrics or MetricsCollector(enabled=self.settings.enable_metrics)
        self.logger = logger or get_logger(__name__)
        if classifier is None:
            classifier = retry_everything if self.settings.retry_all_errors else classify_error
        self.classifier = classifier
        self.strategy = strategy or build_retry_strategy(self.settings)
        self._sleep = sleep
        self._clock = clock

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def query(self, sql: str, params: QueryParams | None = None) -> RowsResult:
        """Run a statement expected to return zero or more rows."""
        raw, duration = await self._run_with_retry(
            "Query", sql, params, lambda db: self._prepare(db, sql, params).all()
        )
        return rows_result_from_store(raw, duration)

    async def query_one(self, sql: str, params: QueryParams | None = None) -> SingleRowResult:
        """Run a statement expected to return at most one row."""
        row, duration = await self._run_with_retry(
            "Single query", sql, params, lambda db: self._prepare(db, sql, params).first()
        )
        return SingleRowResult(
            row=row,
            success=True,
            meta=QueryMeta(duration=duration, rows_read=1 if row is not None else 0),
        )

    async def execute(self, sql: str, params: QueryParams | None = None) -> WriteResult:
        """Run an INSERT / UPDATE / DELETE / DDL statement."""
        raw, duration = await self._run_with_retry(
            "Execute", sql, params, lambda db: self._prepare(db, sql, params).run()
        )
        return write_result_from_store(raw, duration)

    async def execute_script(self, script: str) -> WriteResult:
        """Run a multi-statement script (no parameters) through the retry loop."""
        _, duration = await self._run_with_retry(
            "Script", script, None, lambda db: db.exec(script)
        )
        return WriteResult(success=True, meta=WriteMeta(duration=duration))

    async def batch(self, statements: Sequence[Statement]) -> list[RowsResult]:
        """Submit ``statements`` as one store call. Not retried."""
        start = self._clock()
        count = len(statements)
        if self.settings.enable_query_logging:
            self.logger.debug("batch.start", statement_count=count)

        try:
            db = self.accessor.get_connection()
        except ConfigurationError as exc:
            self._finish(False, self._elapsed_ms(start), "<batch>", [], error=exc)
            raise

        try:
            prepared = [self._coerce_statement(db, stmt) for stmt in statements]
            raw = await asyncio.wait_for(
                db.batch(prepared), timeout=self.settings.query_timeout_seconds
            )
        except Exception as exc:
            if isinstance(exc, TimeoutError):
                exc = QueryTimeoutError(self.settings.query_timeout_ms, cause=exc)
            duration = self._elapsed_ms(start)
            self._finish(False, duration, "<batch>", [], error=exc)
            self.logger.error(
                "batch.failed",
                statement_count=count,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            raise QueryFailedError(
                attempts=1,
                last_message=str(exc),
                operation="Batch",
                context=ErrorContext(metadata={"statement_count": count}),
                cause=exc,
            ) from exc

        duration = self._elapsed_ms(start)
        self._finish(True, duration, "<batch>", [])
        return [rows_result_from_store(result, duration) for result in raw]

    # ------------------------------------------------------------------
    # Retry loop
    # ------------------------------------------------------------------

    async def _run_with_retry(
        self,
        operation: str,
        sql: str,
        params: QueryParams | None,
        call: Callable[[StoreBinding], Awaitable[T]],
    ) -> tuple[T, float]:
        ctx = RetryContext(self.strategy)
        params_list = list(params) if params else []
        start = self._clock()

        while True:
            attempt = ctx.attempts + 1
            if self.settings.enable_query_logging:
                self.logger.debug(
                    "query.attempt",
                    operation=operation,
                    sql=sql,
                    params=params_list,
                    attempt=attempt,
                )

            try:
                db = self.accessor.get_connection()
            except ConfigurationError as exc:
                self._finish(False, self._elapsed_ms(start), sql, params_list, error=exc)
                raise

            try:
                value = await asyncio.wait_for(
                    call(db), timeout=self.settings.query_timeout_seconds
                )
            except Exception as exc:
                error = self._wrap_attempt_error(exc, sql, params_list, attempt)
                ctx.record_failure(error)
                self.logger.warning(
                    "query.attempt_failed",
                    operation=operation,
                    sql=sql,
                    params=params_list,
                    attempt=attempt,
                    error=error.message,
                    error_type=type(exc).__name__,
                    retryable=error.retryable,
                )
                if ctx.should_retry(error.retryable):
                    await self._sleep(ctx.next_delay())
                    continue

                duration = self._elapsed_ms(start)
                self._finish(False, duration, sql, params_list, error=error)
                self.logger.error(
                    "query.failed",
                    operation=operation,
                    sql=sql,
                    attempts=ctx.attempts,
                    duration_ms=duration,
                    delays=ctx.delays,
                    error=error.message,
                )
                raise QueryFailedError(
                    attempts=ctx.attempts,
                    last_message=error.message,
                    operation=operation,
                    context=ErrorContext(sql=sql, params=params_list, attempt=ctx.attempts),
                    cause=error,
                ) from error

            duration = self._elapsed_ms(start)
            self._finish(True, duration, sql, params_list)
            return value, duration

    def _wrap_attempt_error(
        self, exc: Exception, sql: str, params: list[Any], attempt: int
    ) -> EdgeSQLError:
        """Turn a raw store failure into a classified per-attempt error."""
        if isinstance(exc, TimeoutError):
            candidate: BaseException = QueryTimeoutError(self.settings.query_timeout_ms, cause=exc)
        else:
            candidate = exc

        kind = self.classifier(candidate)
        if isinstance(candidate, EdgeSQLError):
            error = candidate
            error.retryable = kind is ErrorClass.TRANSIENT
        elif kind is ErrorClass.TRANSIENT:
            error = TransientExecutionError(str(exc) or type(exc).__name__, cause=exc)
        else:
            error = PermanentExecutionError(str(exc) or type(exc).__name__, cause=exc)
        return error.with_context(sql=sql, params=params, attempt=attempt)

    def _finish(
        self,
        success: bool,
        duration: float,
        sql: str,
        params: list[Any],
        error: BaseException | None = None,
    ) -> None:
        """Record the terminal outcome of one call."""
        slow = duration > self.settings.slow_query_threshold_ms
        message = None if error is None else getattr(error, "message", None) or str(error)
        self.metrics.record(success, duration, error=message, slow=slow)
        if slow:
            self.logger.warning("query.slow", sql=sql, params=params, duration_ms=duration)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _prepare(db: StoreBinding, sql: str, params: QueryParams | None) -> PreparedStatement:
        stmt = db.prepare(sql)
        if params:
            stmt = stmt.bind(*params)
        return stmt

    def _coerce_statement(self, db: StoreBinding, statement: Statement) -> PreparedStatement:
        if isinstance(statement, QueryDescriptor):
            return self._prepare(db, statement.sql, statement.params)
        if isinstance(statement, str):
            return self._prepare(db, statement, None)
        if isinstance(statement, tuple):
            sql, params = statement
            return self._prepare(db, sql, params)
        return statement

    def _elapsed_ms(self, start: float) -> float:
        return (self._clock() - start) * 1000


__all__ = [
    "ErrorClass",
    "ErrorClassifier",
    "ResilientExecutor",
    "Statement",
    "build_retry_strategy",
    "classify_error",
    "retry_everything",
]
