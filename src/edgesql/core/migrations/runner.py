"""Migration runner.

Tracks applied migrations in the ``migrations`` bookkeeping table and applies
pending ones in ascending id order through the resilient executor.

Each migration moves ``PENDING -> APPLYING -> APPLIED`` or
``PENDING -> APPLYING -> FAILED``. A failure is logged and raised as
:class:`MigrationError`, halting the run; nothing is skipped and nothing is
rolled back. A migration is applied at most once: pending work is computed
against the recorded ids, and ``migration_id`` is UNIQUE in the table.

``up`` scripts are applied one statement at a time, each through the
executor's retry loop, so every statement must be safe to run twice: a
retried attempt may follow one the store applied before the response was
lost. ``CREATE ... IF NOT EXISTS`` covers tables and indexes; ``ADD COLUMN``
is guarded by a column lookup.
"""

from __future__ import annotations

import re
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from edgesql.core.errors import (
    ErrorContext,
    MigrationError,
    QueryFailedError,
    UnsupportedOperationError,
)
from edgesql.core.executor import ResilientExecutor
from edgesql.core.hashing import checksum
from edgesql.core.logging import get_logger
from edgesql.core.migrations.definitions import (
    BUILTIN_MIGRATIONS,
    MIGRATIONS_TABLE_DDL,
    Migration,
    MigrationRecord,
)
from edgesql.core.statements import split_sql

_ADD_COLUMN = re.compile(
    r"^\s*ALTER\s+TABLE\s+(\w+)\s+ADD\s+(?:COLUMN\s+)?(\w+)",
    re.IGNORECASE,
)


class MigrationState(str, Enum):
    PENDING = "PENDING"
    APPLYING = "APPLYING"
    APPLIED = "APPLIED"
    FAILED = "FAILED"


@dataclass
class MigrationResult:
    """Result of a migration run."""

    applied: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    states: dict[str, MigrationState] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return MigrationState.FAILED not in self.states.values()


class MigrationRunner:
    """Applies built-in migrations through a :class:`ResilientExecutor`.

    Parameters
    ----------
    executor
        Executor used for every statement; its retry policy applies to
        migration scripts too.
    migrations
        Migration definitions. Defaults to :data:`BUILTIN_MIGRATIONS`.

    Example::

        runner = MigrationRunner(executor)
        result = await runner.run()
        print(f"Applied {len(result.applied)} migrations")
    """

    def __init__(
        self,
        executor: ResilientExecutor,
        migrations: Iterable[Migration] | None = None,
        logger: Any = None,
    ) -> None:
        self._executor = executor
        self._migrations = sorted(
            migrations if migrations is not None else BUILTIN_MIGRATIONS,
            key=lambda m: m.id,
        )
        self.logger = logger or get_logger(__name__)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def migrations(self) -> list[Migration]:
        return list(self._migrations)

    async def ensure_table(self) -> None:
        """Create the bookkeeping table if it doesn't exist."""
        await self._executor.execute(MIGRATIONS_TABLE_DDL)

    async def run(self) -> MigrationResult:
        """Apply all pending migrations in id order."""
        await self.ensure_table()
        applied_ids = await self._applied_ids()

        result = MigrationResult()
        pending: list[Migration] = []
        for migration in self._migrations:
            if migration.id in applied_ids:
                result.skipped.append(migration.id)
                result.states[migration.id] = MigrationState.APPLIED
            else:
                pending.append(migration)
                result.states[migration.id] = MigrationState.PENDING

        for migration in pending:
            result.states[migration.id] = MigrationState.APPLYING
            try:
                await self._apply(migration)
            except Exception as exc:
                result.states[migration.id] = MigrationState.FAILED
                self.logger.error(
                    "migration.failed",
                    migration_id=migration.id,
                    name=migration.name,
                    error=str(exc),
                )
                raise MigrationError(
                    f"Migration {migration.id} ({migration.name}) failed: {exc}",
                    migration_id=migration.id,
                    cause=exc,
                ) from exc
            result.states[migration.id] = MigrationState.APPLIED
            result.applied.append(migration.id)

        self.logger.info(
            "migration.run_complete",
            applied=len(result.applied),
            skipped=len(result.skipped),
        )
        return result

    async def get_applied(self) -> list[MigrationRecord]:
        """Return applied migrations, oldest first."""
        result = await self._executor.query(
            "SELECT * FROM migrations ORDER BY executed_at, migration_id"
        )
        return [MigrationRecord.model_validate(row) for row in result.rows]

    async def get_pending(self) -> list[Migration]:
        """Return definitions not yet applied, in id order."""
        await self.ensure_table()
        applied_ids = await self._applied_ids()
        return [m for m in self._migrations if m.id not in applied_ids]

    async def status(self) -> list[MigrationRecord]:
        """Return applied migrations, newest first."""
        result = await self._executor.query(
            "SELECT * FROM migrations ORDER BY executed_at DESC, migration_id DESC"
        )
        return [MigrationRecord.model_validate(row) for row in result.rows]

    async def verify_checksums(self) -> list[str]:
        """Return ids of applied migrations whose script changed since they ran."""
        known = {m.id: m for m in self._migrations}
        drifted: list[str] = []
        for record in await self.get_applied():
            migration = known.get(record.migration_id)
            if migration is not None and checksum(migration.up) != record.checksum:
                drifted.append(record.migration_id)
        if drifted:
            self.logger.warning("migration.checksum_drift", migration_ids=drifted)
        return drifted

    def rollback(self, migration_id: str) -> None:
        """Reverse a migration. Not implemented."""
        raise UnsupportedOperationError(
            "Migration rollback not implemented",
            context=ErrorContext(migration_id=migration_id),
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _applied_ids(self) -> set[str]:
        result = await self._executor.query(
            "SELECT migration_id FROM migrations ORDER BY executed_at"
        )
        return {row["migration_id"] for row in result.rows}

    async def _apply(self, migration: Migration) -> None:
        for statement in split_sql(migration.up):
            await self._apply_statement(migration, statement)
        await self._executor.execute(
            "INSERT OR IGNORE INTO migrations (id, migration_id, name, checksum) VALUES (?, ?, ?, ?)",
            [str(uuid.uuid4()), migration.id, migration.name, checksum(migration.up)],
        )
        self.logger.info("migration.applied", migration_id=migration.id, name=migration.name)

    async def _apply_statement(self, migration: Migration, statement: str) -> None:
        """Run one statement of an ``up`` script so that re-running it is harmless.

        SQLite has no ``ADD COLUMN IF NOT EXISTS``: an ``ADD COLUMN`` is skipped
        when the column is already there, and a failed one counts as applied
        if the column exists afterwards (the store ran it but the response
        was lost).
        """
        added = _ADD_COLUMN.match(statement)
        if added is None:
            await self._executor.execute(statement)
            return

        table, column = added.groups()
        if await self._has_column(table, column):
            self.logger.info(
                "migration.column_exists", migration_id=migration.id, table=table, column=column
            )
            return
        try:
            await self._executor.execute(statement)
        except QueryFailedError:
            if not await self._has_column(table, column):
                raise
            self.logger.warning(
                "migration.column_added_despite_error",
                migration_id=migration.id,
                table=table,
                column=column,
            )

    async def _has_column(self, table: str, column: str) -> bool:
        result = await self._executor.query_one(
            "SELECT name FROM pragma_table_info(?) WHERE name = ?", [table, column]
        )
        return result.row is not None


__all__ = ["MigrationRunner", "MigrationResult", "MigrationState"]
