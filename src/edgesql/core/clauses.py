"""Clause builder - WHERE / ORDER BY / LIMIT fragments from structured input.

Pure, stateless functions. Values are always parameterised; column names,
operators and directions are trusted input and are not sanitised. Multiple
conditions are joined with ``AND`` only; there is no ``OR`` or nesting.

Example::

    >>> build_where([WhereCondition("status", "IN", ["a", "b"])])
    WhereClause(clause='WHERE status IN (?, ?)', params=['a', 'b'])
    >>> build_order_by([OrderBy("created_at", "DESC")])
    'ORDER BY created_at DESC'
    >>> build_limit(10, 20)
    'LIMIT 10 OFFSET 20'
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Literal

from edgesql.core.results import QueryDescriptor, QueryParam

COMPARISON_OPERATORS = frozenset({"=", "!=", ">", "<", ">=", "<=", "LIKE"})
NULL_OPERATORS = frozenset({"IS NULL", "IS NOT NULL"})
LIST_OPERATORS = frozenset({"IN", "NOT IN"})
OPERATORS = COMPARISON_OPERATORS | NULL_OPERATORS | LIST_OPERATORS


@dataclass(frozen=True)
class WhereCondition:
    column: str
    operator: str = "="
    value: Any = None


@dataclass(frozen=True)
class OrderBy:
    column: str
    direction: Literal["ASC", "DESC"] = "ASC"


@dataclass(frozen=True)
class WhereClause:
    clause: str
    params: list[QueryParam]


@dataclass
class QueryOptions:
    """Filtering, ordering and paging for repository reads."""

    where: list[WhereCondition | Mapping[str, Any]] = field(default_factory=list)
    order_by: list[OrderBy | Mapping[str, Any]] = field(default_factory=list)
    limit: int | None = None
    offset: int | None = None


def _as_condition(condition: WhereCondition | Mapping[str, Any]) -> WhereCondition:
    if isinstance(condition, WhereCondition):
        return condition
    return WhereCondition(
        column=condition["column"],
        operator=condition.get("operator", "="),
        value=condition.get("value"),
    )


def _as_order(spec: OrderBy | Mapping[str, Any]) -> OrderBy:
    if isinstance(spec, OrderBy):
        return spec
    return OrderBy(column=spec["column"], direction=spec.get("direction", "ASC"))


def build_where(conditions: Sequence[WhereCondition | Mapping[str, Any]]) -> WhereClause:
    """Build a ``WHERE`` clause and its parameter list.

    Raises ``ValueError`` for an unknown operator or an ``IN`` / ``NOT IN``
    value that is not a list or tuple.
    """
    if not conditions:
        return WhereClause(clause="", params=[])

    clauses: list[str] = []
    params: list[QueryParam] = []

    for raw in conditions:
        condition = _as_condition(raw)
        operator = condition.operator.upper()
        if operator not in OPERATORS:
            raise ValueError(f"Unsupported operator {condition.operator!r}")

        if operator in NULL_OPERATORS:
            clauses.append(f"{condition.column} {operator}")
        elif operator in LIST_OPERATORS:
            if not isinstance(condition.value, (list, tuple)):
                raise ValueError(
                    f"{operator} on {condition.column!r} needs a list of values"
                )
            placeholders = ", ".join("?" for _ in condition.value)
            clauses.append(f"{condition.column} {operator} ({placeholders})")
            params.extend(condition.value)
        else:
            clauses.append(f"{condition.column} {operator} ?")
            params.append(condition.value)

    return WhereClause(clause=f"WHERE {' AND '.join(clauses)}", params=params)


def build_order_by(order_specs: Sequence[OrderBy | Mapping[str, Any]] | None) -> str:
    if not order_specs:
        return ""
    parts = [f"{spec.column} {spec.direction}" for spec in map(_as_order, order_specs)]
    return f"ORDER BY {', '.join(parts)}"


def build_limit(limit: int | None = None, offset: int | None = None) -> str:
    clauses: list[str] = []
    if limit is not None:
        clauses.append(f"LIMIT {int(limit)}")
    if offset is not None:
        clauses.append(f"OFFSET {int(offset)}")
    return " ".join(clauses)


def build_select(table: str, options: QueryOptions | None = None) -> QueryDescriptor:
    """Assemble ``SELECT * FROM table`` with the given options."""
    options = options or QueryOptions()
    where = build_where(options.where)
    parts = [
        f"SELECT * FROM {table}",
        where.clause,
        build_order_by(options.order_by),
        build_limit(options.limit, options.offset),
    ]
    return QueryDescriptor.of(" ".join(p for p in parts if p), where.params)


def build_count(
    table: str, conditions: Sequence[WhereCondition | Mapping[str, Any]] | None = None
) -> QueryDescriptor:
    where = build_where(conditions or [])
    sql = f"SELECT COUNT(*) AS count FROM {table}"
    if where.clause:
        sql = f"{sql} {where.clause}"
    return QueryDescriptor.of(sql, where.params)


__all__ = [
    "OPERATORS",
    "WhereCondition",
    "OrderBy",
    "WhereClause",
    "QueryOptions",
    "build_where",
    "build_order_by",
    "build_limit",
    "build_select",
    "build_count",
]
