"""Transaction shim.

The remote store has no multi-statement transactions. ``Transaction`` gives a
callback the same prepare / batch / exec surface as the store, bound to a
single connection, and nothing more:

- statements executed one by one stay applied if the callback later raises
  (there is no rollback)
- only ``batch`` is all-or-nothing, because the store runs a batch as one unit
- calls made through the shim bypass the executor's retry loop and metrics

Usage::

    async def move(tx):
        await tx.batch([
            tx.prepare("UPDATE config SET value = ? WHERE key = ?").bind("on", "a"),
            tx.prepare("UPDATE config SET value = ? WHERE key = ?").bind("off", "b"),
        ])

    await db.transaction(move)
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from edgesql.core.protocols import PreparedStatement, StoreBinding
from edgesql.core.results import ExecResult, StoreResult

T = TypeVar("T")


class Transaction:
    """Narrow view of one store connection handed to a transaction callback."""

    def __init__(self, connection: StoreBinding) -> None:
        self._connection = connection

    def prepare(self, sql: str) -> PreparedStatement:
        return self._connection.prepare(sql)

    async def batch(self, statements: list[PreparedStatement]) -> list[StoreResult]:
        return await self._connection.batch(statements)

    async def exec(self, script: str) -> ExecResult:
        return await self._connection.exec(script)


async def run_transaction(
    connection: StoreBinding,
    callback: Callable[[Transaction], Awaitable[T]],
    logger: Any,
) -> T:
    """Await ``callback`` with a :class:`Transaction`; log and re-raise failures."""
    tx = Transaction(connection)
    try:
        return await callback(tx)
    except Exception as exc:
        logger.error("transaction.failed", error=str(exc), error_type=type(exc).__name__)
        raise


__all__ = ["Transaction", "run_transaction"]
