"""
Canonical protocol definitions for the remote SQL store.

The store is reached only through an asynchronous prepared-statement
surface. These protocols are the single definition of that surface; the
executor, the transaction shim and the local :class:`SqliteBinding` all
depend on shape, not implementation.

Architecture:
    ::

        StoreBinding
        ├── prepare(sql)           → PreparedStatement   (sync)
        ├── await batch([stmt..])  → list[StoreResult]   (one round-trip)
        └── await exec(script)     → ExecResult          (multi-statement)

        PreparedStatement
        ├── bind(*params)          → PreparedStatement   (sync)
        ├── await first()          → row dict | None
        ├── await all()            → StoreResult
        └── await run()            → StoreResult

Guardrails:
    ❌ DON'T: Assume the store raises typed retryable-vs-fatal errors
    ✅ DO: Let the executor's classifier decide

    ❌ DON'T: Cache a StoreBinding across calls
    ✅ DO: Ask the ConnectionAccessor on every call; handles may rotate

Tags:
    protocol, connection, async, database, edgesql, contracts
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from edgesql.core.results import ExecResult, StoreResult


@runtime_checkable
class PreparedStatement(Protocol):
    """A statement prepared against the store, optionally with bound parameters."""

    def bind(self, *params: Any) -> PreparedStatement:
        """Return a statement with ``params`` bound positionally."""
        ...

    async def first(self) -> dict[str, Any] | None:
        """Run and return the first row, or None."""
        ...

    async def all(self) -> StoreResult:
        """Run and return every row."""
        ...

    async def run(self) -> StoreResult:
        """Run a write statement."""
        ...


@runtime_checkable
class StoreBinding(Protocol):
    """Handle to the remote SQL store."""

    def prepare(self, sql: str) -> PreparedStatement:
        """Prepare a single statement."""
        ...

    async def batch(self, statements: list[PreparedStatement]) -> list[StoreResult]:
        """Submit several statements in one call, executed as one unit."""
        ...

    async def exec(self, script: str) -> ExecResult:
        """Execute a multi-statement script without parameters."""
        ...


__all__ = ["PreparedStatement", "StoreBinding"]
