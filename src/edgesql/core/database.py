"""
Database service - the single entry point callers use.

``DatabaseService`` composes the connection accessor, the resilient
executor, the migration runner and the metrics collector behind one object.

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────┐
        │                     DatabaseService                       │
        │                                                          │
        │  accessor: ConnectionAccessor   ← env["DB"] per call     │
        │  executor: ResilientExecutor    ← retry / timeout / log  │
        │  metrics:  MetricsCollector     ← shared, lock-protected │
        │  migrations: MigrationRunner    ← built-in definitions   │
        │                                                          │
        │  query / query_one / execute / execute_script / batch    │
        │  transaction(callback)                                   │
        │  run_migrations / get_migration_status / validate_schema │
        │  health_check / get_metrics / reset_metrics              │
        └──────────────────────────────────────────────────────────┘

Example:
    >>> db = DatabaseService({"DB": SqliteBinding()})
    >>> await db.run_migrations()
    >>> result = await db.query("SELECT * FROM users WHERE status = ?", ["active"])

Tags:
    database, service, facade, edgesql
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any, TypeVar

from edgesql.core.connection import ConnectionAccessor
from edgesql.core.errors import ErrorContext, UnsupportedOperationError
from edgesql.core.executor import ErrorClassifier, ResilientExecutor, Statement
from edgesql.core.health import HealthStatus, failed_check, healthy_check
from edgesql.core.logging import get_logger
from edgesql.core.metrics import MetricsCollector, MetricsSnapshot
from edgesql.core.migrations.definitions import REQUIRED_TABLES, Migration, MigrationRecord
from edgesql.core.migrations.runner import MigrationResult, MigrationRunner
from edgesql.core.protocols import StoreBinding
from edgesql.core.results import QueryParams, RowsResult, SingleRowResult, WriteResult
from edgesql.core.settings import DatabaseSettings, get_settings
from edgesql.core.transaction import Transaction, run_transaction

T = TypeVar("T")


class DatabaseService:
    """Resilient data-access facade over a prepare/bind/run store binding.

    Parameters
    ----------
    env
        Mapping holding the store binding under ``settings.binding_name``.
        May be supplied later through :meth:`initialize`.
    settings
        Defaults to the cached :func:`get_settings` instance.
    logger
        structlog-style sink. Defaults to ``get_logger(__name__)``.
    classifier
        Transient/permanent error classifier for the retry loop.
    sleep, clock
        Injected into the executor for deterministic tests.
    metrics
        Shared collector; one is created per service if omitted.
    migrations
        Migration definitions; defaults to the built-in set.
    """

    def __init__(
        self,
        env: Mapping[str, Any] | None = None,
        settings: DatabaseSettings | None = None,
        logger: Any = None,
        classifier: ErrorClassifier | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.perf_counter,
        metrics: MetricsCollector | None = None,
        migrations: Sequence[Migration] | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.logger = logger or get_logger(__name__)
        self.metrics = metrics or MetricsCollector(enabled=self.settings.enable_metrics)
        self.accessor = ConnectionAccessor(env, binding_name=self.settings.binding_name)
        self.executor = ResilientExecutor(
            self.accessor,
            settings=self.settings,
            metrics=self.metrics,
            logger=self.logger,
            classifier=classifier,
            sleep=sleep,
            clock=clock,
        )
        self.migrations = MigrationRunner(self.executor, migrations, logger=self.logger)
        self._clock = clock

    def initialize(self, env: Mapping[str, Any] | None, logger: Any = None) -> None:
        """Bind the store environment (and optionally a logger) after construction."""
        self.accessor.rebind(env)
        if logger is not None:
            self.logger = logger
            self.executor.logger = logger
            self.migrations.logger = logger
        self.logger.info("database.initialized", binding=self.settings.binding_name)

    def get_connection(self) -> StoreBinding:
        return self.accessor.get_connection()

    # ------------------------------------------------------------------
    # Statement execution
    # ------------------------------------------------------------------

    async def query(self, sql: str, params: QueryParams | None = None) -> RowsResult:
        return await self.executor.query(sql, params)

    async def query_one(self, sql: str, params: QueryParams | None = None) -> SingleRowResult:
        return await self.executor.query_one(sql, params)

    async def execute(self, sql: str, params: QueryParams | None = None) -> WriteResult:
        return await self.executor.execute(sql, params)

    async def execute_script(self, script: str) -> WriteResult:
        return await self.executor.execute_script(script)

    async def batch(self, statements: Sequence[Statement]) -> list[RowsResult]:
        return await self.executor.batch(statements)

    async def transaction(self, callback: Callable[[Transaction], Awaitable[T]]) -> T:
        """Run ``callback`` against one connection. Nothing is rolled back on failure."""
        return await run_transaction(self.get_connection(), callback, self.logger)

    # ------------------------------------------------------------------
    # Migrations and schema
    # ------------------------------------------------------------------

    async def run_migrations(self) -> MigrationResult:
        return await self.migrations.run()

    async def get_migration_status(self) -> list[MigrationRecord]:
        await self.migrations.ensure_table()
        return await self.migrations.status()

    def rollback_migration(self, migration_id: str) -> None:
        self.migrations.rollback(migration_id)

    def get_table_schema(self, table_name: str) -> None:
        raise UnsupportedOperationError(
            "Schema introspection not implemented",
            context=ErrorContext(table=table_name),
        )

    async def validate_schema(self) -> bool:
        """Return True only when every required table exists."""
        try:
            missing = []
            for table in REQUIRED_TABLES:
                result = await self.query_one(
                    "SELECT name FROM sqlite_master WHERE type='table' AND name=?", [table]
                )
                if result.row is None:
                    missing.append(table)
        except Exception as exc:
            self.logger.error("schema.validation_failed", error=str(exc))
            return False

        if missing:
            self.logger.warning("schema.missing_tables", tables=missing)
            return False
        return True

    # ------------------------------------------------------------------
    # Health and metrics
    # ------------------------------------------------------------------

    async def health_check(self) -> HealthStatus:
        """Probe the store with a trivial query. Never raises."""
        start = self._clock()
        try:
            await self.query_one("SELECT 1 AS health_check")
        except Exception as exc:
            self.metrics.record_connection_error()
            self.logger.error("health.check_failed", error=str(exc))
            return failed_check(exc)
        response_time_ms = (self._clock() - start) * 1000
        return healthy_check(self.metrics.snapshot(), response_time_ms)

    def get_metrics(self) -> MetricsSnapshot:
        return self.metrics.snapshot()

    def reset_metrics(self) -> None:
        self.metrics.reset()
        self.logger.info("metrics.reset")


__all__ = ["DatabaseService"]
