"""Query descriptors and execution results.

Two families live here:

- **Store shapes** (``StoreResult``, ``ExecResult``) - what a
  :class:`~edgesql.core.protocols.StoreBinding` hands back, mirroring the
  remote protocol's ``{results, success, meta}`` envelope.
- **Execution results** (``RowsResult``, ``SingleRowResult``,
  ``WriteResult``) - what the resilient executor returns to callers, one per
  call kind, with timing measured by the executor itself.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, TypeAlias

from pydantic import BaseModel, Field

QueryParam: TypeAlias = str | int | float | bool | bytes | None
QueryParams: TypeAlias = Sequence[QueryParam]
Row: TypeAlias = dict[str, Any]


@dataclass(frozen=True)
class QueryDescriptor:
    """SQL text plus its ordered parameters. Immutable once built."""

    sql: str
    params: tuple[QueryParam, ...] = ()

    @classmethod
    def of(cls, sql: str, params: QueryParams | None = None) -> QueryDescriptor:
        return cls(sql=sql, params=tuple(params or ()))


# ── Store shapes ─────────────────────────────────────────────────────────


@dataclass
class StoreResult:
    """Raw result of ``all()`` / ``run()`` / one entry of ``batch()``."""

    results: list[Row] = field(default_factory=list)
    success: bool = True
    meta: dict[str, Any] = field(default_factory=dict)


@dataclass
class ExecResult:
    """Raw result of ``exec()``: number of statements run and their duration."""

    count: int = 0
    duration: float = 0.0


# ── Execution results ────────────────────────────────────────────────────


class QueryMeta(BaseModel):
    """Timing and row counters for read calls."""

    duration: float = 0.0
    rows_read: int = 0
    rows_written: int = 0


class WriteMeta(BaseModel):
    """Timing and change counters for write calls."""

    duration: float = 0.0
    changes: int = 0
    last_insert_id: int | None = None
    rows_read: int = 0
    rows_written: int = 0


class RowsResult(BaseModel):
    """Zero or more rows returned by ``query``."""

    rows: list[Row] = Field(default_factory=list)
    success: bool = True
    meta: QueryMeta = Field(default_factory=QueryMeta)


class SingleRowResult(BaseModel):
    """At most one row returned by ``query_one``; ``row`` is None when nothing matched."""

    row: Row | None = None
    success: bool = True
    meta: QueryMeta = Field(default_factory=QueryMeta)


class WriteResult(BaseModel):
    """Outcome of ``execute`` / ``execute_script``."""

    success: bool = True
    meta: WriteMeta = Field(default_factory=WriteMeta)


def rows_result_from_store(raw: StoreResult, duration: float) -> RowsResult:
    return RowsResult(
        rows=list(raw.results),
        success=raw.success,
        meta=QueryMeta(
            duration=duration,
            rows_read=int(raw.meta.get("rows_read") or 0),
            rows_written=int(raw.meta.get("rows_written") or 0),
        ),
    )


def write_result_from_store(raw: StoreResult, duration: float) -> WriteResult:
    last_row_id = raw.meta.get("last_row_id")
    return WriteResult(
        success=raw.success,
        meta=WriteMeta(
            duration=duration,
            changes=int(raw.meta.get("changes") or 0),
            last_insert_id=int(last_row_id) if last_row_id is not None else None,
            rows_read=int(raw.meta.get("rows_read") or 0),
            rows_written=int(raw.meta.get("rows_written") or 0),
        ),
    )


__all__ = [
    "QueryParam",
    "QueryParams",
    "Row",
    "QueryDescriptor",
    "StoreResult",
    "ExecResult",
    "QueryMeta",
    "WriteMeta",
    "RowsResult",
    "SingleRowResult",
    "WriteResult",
    "rows_result_from_store",
    "write_result_from_store",
]
