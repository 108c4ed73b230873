"""Typed query vocabulary for the repositories.

Filters are small value objects checked against the columns a table declares,
so a misspelled column fails before any SQL is built and values are always
bound as parameters.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any, Union

from betline.errors import StoreError


@dataclass(frozen=True)
class Table:
    name: str
    columns: frozenset[str]

    def check(self, column: str) -> str:
        if column not in self.columns:
            raise StoreError(f"Unknown column {column!r} for table {self.name!r}")
        return column


@dataclass(frozen=True)
class Eq:
    column: str
    value: Any


@dataclass(frozen=True)
class In:
    column: str
    values: tuple[Any, ...]

    def __init__(self, column: str, values: Iterable[Any]) -> None:
        object.__setattr__(self, "column", column)
        object.__setattr__(self, "values", tuple(values))


@dataclass(frozen=True)
class OrderBy:
    column: str
    descending: bool = False


Filter = Union[Eq, In]


@dataclass(frozen=True)
class Query:
    filters: Sequence[Filter] = ()
    order_by: OrderBy | None = None
    limit: int | None = None


@dataclass
class Compiled:
    sql: str
    params: list[Any] = field(default_factory=list)


def where_clause(table: Table, filters: Sequence[Filter]) -> Compiled:
    """Render filters as a WHERE clause (empty string when there are none)."""
    parts: list[str] = []
    params: list[Any] = []
    for flt in filters:
        column = table.check(flt.column)
        if isinstance(flt, Eq):
            if flt.value is None:
                parts.append(f"{column} IS NULL")
            else:
                parts.append(f"{column} = ?")
                params.append(flt.value)
        elif isinstance(flt, In):
            if not flt.values:
                parts.append("0")
                continue
            placeholders = ", ".join("?" for _ in flt.values)
            parts.append(f"{column} IN ({placeholders})")
            params.extend(flt.values)
        else:
            raise StoreError(f"Unsupported filter {flt!r}")
    if not parts:
        return Compiled("")
    return Compiled(" WHERE " + " AND ".join(parts), params)


def compile_select(table: Table, query: Query) -> Compiled:
    where = where_clause(table, query.filters)
    sql = f"SELECT * FROM {table.name}{where.sql}"
    params = list(where.params)
    if query.order_by is not None:
        column = table.check(query.order_by.column)
        sql += f" ORDER BY {column} {'DESC' if query.order_by.descending else 'ASC'}"
    if query.limit is not None:
        if query.limit < 0:
            raise StoreError("limit must be non-negative")
        sql += " LIMIT ?"
        params.append(query.limit)
    return Compiled(sql, params)


def compile_insert(table: Table, columns: Sequence[str]) -> str:
    for column in columns:
        table.check(column)
    names = ", ".join(columns)
    values = ", ".join(f":{c}" for c in columns)
    return f"INSERT INTO {table.name} ({names}) VALUES ({values})"


def compile_update(
    table: Table, values: dict[str, Any], filters: Sequence[Filter]
) -> Compiled:
    if not values:
        raise StoreError("update needs at least one column")
    assignments = ", ".join(f"{table.check(c)} = ?" for c in values)
    where = where_clause(table, filters)
    return Compiled(
        f"UPDATE {table.name} SET {assignments}{where.sql}",
        [*values.values(), *where.params],
    )


def compile_delete(table: Table, filters: Sequence[Filter]) -> Compiled:
    if not filters:
        raise StoreError(f"Refusing to delete every row of {table.name!r}")
    where = where_clause(table, filters)
    return Compiled(f"DELETE FROM {table.name}{where.sql}", where.params)
