"""Base repository over the database service.

Provides :class:`BaseRepository`, which pairs a
:class:`~edgesql.core.database.DatabaseService` with a table name so that
domain repositories get generic CRUD without writing SQL by hand. Every
call goes through the service, so retries, timeouts and metrics apply.

Architecture::

    ┌────────────────────────────────────────────────────────────────────┐
    │                       BaseRepository                               │
    │                                                                    │
    │   db: DatabaseService     ← query / query_one / execute            │
    │   table_name: str         ← set by subclasses                      │
    │                                                                    │
    │   find_by_id / find_many / find_one / find_by / find_one_by        │
    │   create / update / delete / count / exists                        │
    │   raw / raw_one           ← hand-written SQL for subclasses        │
    └────────────────────────────────────────────────────────────────────┘

Usage:
    >>> class ConfigRepository(BaseRepository):
    ...     table_name = "config"
    ...
    ...     async def get_value(self, key: str):
    ...         row = await self.find_one_by("key", key)
    ...         return row["value"] if row else None

Tags:
    repository, database, crud, edgesql
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from edgesql.core.clauses import QueryOptions, WhereCondition, build_count, build_select
from edgesql.core.errors import ErrorContext, RecordNotFoundError
from edgesql.core.results import QueryParam, QueryParams, Row

from ._helpers import _check_column, utcnow_iso

if TYPE_CHECKING:
    from edgesql.core.database import DatabaseService


class BaseRepository:
    """Generic CRUD for one table.

    Parameters:
        db: The database service every statement is sent through.

    Records are plain dicts keyed by column name. ``create`` fills in a
    UUID ``id`` and ISO ``created_at`` / ``updated_at`` stamps; ``update``
    refreshes ``updated_at``.
    """

    table_name: str = ""

    def __init__(self, db: DatabaseService) -> None:
        if not self.table_name:
            raise TypeError(f"{type(self).__name__} must set table_name")
        self.db = db

    # -- Reads ---------------------------------------------------------------

    async def find_by_id(self, record_id: str) -> Row | None:
        result = await self.db.query_one(
            f"SELECT * FROM {self.table_name} WHERE id = ?", [record_id]
        )
        return result.row

    async def find_many(self, options: QueryOptions | None = None) -> list[Row]:
        """Select rows with optional filtering, ordering and paging."""
        query = build_select(self.table_name, options)
        result = await self.db.query(query.sql, query.params)
        return result.rows

    async def find_one(self, options: QueryOptions) -> Row | None:
        limited = QueryOptions(
            where=list(options.where),
            order_by=list(options.order_by),
            limit=1,
            offset=options.offset,
        )
        query = build_select(self.table_name, limited)
        result = await self.db.query_one(query.sql, query.params)
        return result.row

    async def find_by(self, column: str, value: QueryParam) -> list[Row]:
        result = await self.db.query(
            f"SELECT * FROM {self.table_name} WHERE {_check_column(column)} = ?", [value]
        )
        return result.rows

    async def find_one_by(self, column: str, value: QueryParam) -> Row | None:
        result = await self.db.query_one(
            f"SELECT * FROM {self.table_name} WHERE {_check_column(column)} = ? LIMIT 1",
            [value],
        )
        return result.row

    async def count(self, where: Sequence[WhereCondition | Mapping[str, Any]] | None = None) -> int:
        query = build_count(self.table_name, where)
        result = await self.db.query_one(query.sql, query.params)
        return int((result.row or {}).get("count") or 0)

    async def exists(self, record_id: str) -> bool:
        result = await self.db.query_one(
            f"SELECT COUNT(*) AS count FROM {self.table_name} WHERE id = ?", [record_id]
        )
        return int((result.row or {}).get("count") or 0) > 0

    # -- Writes --------------------------------------------------------------

    async def create(self, data: Mapping[str, Any]) -> Row:
        """Insert a row and return it as written (including generated fields)."""
        now = utcnow_iso()
        record: Row = {"id": str(uuid.uuid4()), "created_at": now, "updated_at": now}
        record.update(data)

        columns = [_check_column(c) for c in record]
        placeholders = ", ".join("?" for _ in columns)
        await self.db.execute(
            f"INSERT INTO {self.table_name} ({', '.join(columns)}) VALUES ({placeholders})",
            list(record.values()),
        )
        return record

    async def update(self, record_id: str, data: Mapping[str, Any]) -> Row:
        """Update columns on a row and return the fresh row.

        Raises:
            RecordNotFoundError: If no row with ``record_id`` exists afterwards.
        """
        changes = {**data, "updated_at": utcnow_iso()}
        sets = ", ".join(f"{_check_column(c)} = ?" for c in changes)
        await self.db.execute(
            f"UPDATE {self.table_name} SET {sets} WHERE id = ?",
            [*changes.values(), record_id],
        )

        updated = await self.find_by_id(record_id)
        if updated is None:
            raise RecordNotFoundError(
                f"Record with id {record_id} not found after update",
                context=ErrorContext(table=self.table_name, metadata={"id": record_id}),
            )
        return updated

    async def delete(self, record_id: str) -> bool:
        result = await self.db.execute(
            f"DELETE FROM {self.table_name} WHERE id = ?", [record_id]
        )
        return result.meta.changes > 0

    # -- Raw SQL -------------------------------------------------------------

    async def raw(self, sql: str, params: QueryParams | None = None) -> list[Row]:
        result = await self.db.query(sql, params)
        return result.rows

    async def raw_one(self, sql: str, params: QueryParams | None = None) -> Row | None:
        result = await self.db.query_one(sql, params)
        return result.row


__all__ = ["BaseRepository"]
