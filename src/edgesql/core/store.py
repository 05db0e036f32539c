"""SQLite store binding.

Implements the :class:`~edgesql.core.protocols.StoreBinding` surface on top
of :mod:`sqlite3` so the data-access layer can run locally and in tests
exactly as it runs against the remote store.

- Rows come back as plain dicts.
- A lock serialises access; blocking sqlite calls run in a worker thread.
- ``batch`` runs inside one sqlite transaction, all-or-nothing like the
  remote batch primitive.

Usage::

    from edgesql.core.store import SqliteBinding

    db = SqliteBinding(":memory:")
    await db.exec("CREATE TABLE t (id INTEGER)")
    await db.prepare("INSERT INTO t VALUES (?)").bind(1).run()
    row = await db.prepare("SELECT * FROM t").first()
"""

from __future__ import annotations

import asyncio
import sqlite3
import threading
import time
from typing import Any

from edgesql.core.results import ExecResult, StoreResult
from edgesql.core.statements import split_sql


class SqliteStatement:
    """Prepared statement bound to a :class:`SqliteBinding`."""

    def __init__(self, binding: SqliteBinding, sql: str, params: tuple[Any, ...] = ()) -> None:
        self._binding = binding
        self.sql = sql
        self.params = params

    def bind(self, *params: Any) -> SqliteStatement:
        return SqliteStatement(self._binding, self.sql, tuple(params))

    async def first(self) -> dict[str, Any] | None:
        result = await self._binding._submit(self._binding._run_statement, self, 1)
        return result.results[0] if result.results else None

    async def all(self) -> StoreResult:
        return await self._binding._submit(self._binding._run_statement, self, None)

    async def run(self) -> StoreResult:
        return await self._binding._submit(self._binding._run_statement, self, None)

    def __repr__(self) -> str:
        return f"SqliteStatement({self.sql!r}, params={self.params!r})"


class SqliteBinding:
    """Adapter: ``sqlite3.Connection`` → ``StoreBinding`` protocol."""

    def __init__(self, path: str = ":memory:") -> None:
        self._conn = sqlite3.connect(path, check_same_thread=False, isolation_level=None)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._lock = threading.Lock()

    # -- StoreBinding protocol ---------------------------------------------

    def prepare(self, sql: str) -> SqliteStatement:
        return SqliteStatement(self, sql)

    async def batch(self, statements: list[Any]) -> list[StoreResult]:
        return await self._submit(self._run_batch, list(statements))

    async def exec(self, script: str) -> ExecResult:
        return await self._submit(self._run_script, script)

    # -- internals ---------------------------------------------------------

    async def _submit(self, fn: Any, *args: Any) -> Any:
        return await asyncio.to_thread(self._locked, fn, *args)

    def _locked(self, fn: Any, *args: Any) -> Any:
        with self._lock:
            return fn(*args)

    def _run_statement(self, stmt: SqliteStatement, limit: int | None) -> StoreResult:
        start = time.perf_counter()
        cursor = self._conn.execute(stmt.sql, stmt.params)
        rows = cursor.fetchmany(limit) if limit else cursor.fetchall()
        results = [dict(row) for row in rows]
        changes = max(cursor.rowcount, 0) if cursor.description is None else 0
        return StoreResult(
            results=results,
            success=True,
            meta={
                "duration": (time.perf_counter() - start) * 1000,
                "rows_read": len(results),
                "rows_written": changes,
                "changes": changes,
                "last_row_id": cursor.lastrowid,
            },
        )

    def _run_batch(self, statements: list[SqliteStatement]) -> list[StoreResult]:
        results: list[StoreResult] = []
        self._conn.execute("BEGIN")
        try:
            for stmt in statements:
                results.append(self._run_statement(stmt, None))
        except Exception:
            self._conn.execute("ROLLBACK")
            raise
        self._conn.execute("COMMIT")
        return results

    def _run_script(self, script: str) -> ExecResult:
        start = time.perf_counter()
        self._conn.executescript(script)
        count = len(split_sql(script))
        return ExecResult(count=count, duration=(time.perf_counter() - start) * 1000)

    # -- convenience -------------------------------------------------------

    def close(self) -> None:
        self._conn.close()

    @property
    def raw(self) -> sqlite3.Connection:
        """Access the underlying ``sqlite3.Connection`` (e.g. for pragmas)."""
        return self._conn

    def __repr__(self) -> str:
        return f"SqliteBinding({self._conn!r})"


__all__ = ["SqliteBinding", "SqliteStatement"]
