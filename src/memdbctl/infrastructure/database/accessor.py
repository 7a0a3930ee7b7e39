"""Generic relational accessor: equality-filtered CRUD on any table.

Conditions are flat ``{column: value}`` maps joined with AND.  Every column
name is resolved against the table's live column list before a statement is
built, and statements are composed with SQLAlchemy Core ``table()`` /
``column()`` clauses, so identifiers are quoted by the compiler and values
always travel as bound parameters.

Column matching is case-insensitive (as it is in SQLite); the canonical
spelling from the table definition is used in the generated SQL.

All functions take a ``Connection``; the caller owns the transaction.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from sqlalchemy import column, delete, func, insert, select, table, update
from sqlalchemy.exc import DBAPIError, IntegrityError

from memdbctl.infrastructure.database.catalog import column_names
from memdbctl.infrastructure.database.errors import QueryError, ValidationError

if TYPE_CHECKING:
    from sqlalchemy import Connection
    from sqlalchemy.sql import ColumnElement, TableClause

ORDER_DIRECTIONS = ("ASC", "DESC")

_SCALARS = (str, int, float, bool, bytes, type(None))
# Statements that would break the caller's transaction or the name/file mapping.
_FORBIDDEN_RAW = frozenset(
    {"BEGIN", "COMMIT", "END", "ROLLBACK", "SAVEPOINT", "RELEASE", "ATTACH", "DETACH"}
)
# First keyword after any leading whitespace and SQL comments.
_LEADING_WORD_RE = re.compile(r"\A(?:\s|--[^\n]*+|/\*.*?\*/)*+([A-Za-z]+)", re.DOTALL)


class BoundTable:
    """A table's live column list plus a typeless Core clause for it."""

    def __init__(self, conn: Connection, name: str) -> None:
        self.name = name
        self.columns = column_names(conn, name)
        self._by_key = {col.lower(): col for col in self.columns}
        self.clause: TableClause = table(name, *(column(col) for col in self.columns))

    def resolve(self, key: str) -> str:
        """Canonical column name for *key*, or ValidationError."""
        resolved = self._by_key.get(key.lower()) if isinstance(key, str) else None
        if resolved is None:
            raise ValidationError(
                f"Unknown column {key!r} for table '{self.name}'",
                table=self.name,
                column=key,
                allowed=self.columns,
            )
        return resolved

    def values(self, mapping: Mapping[str, Any], *, what: str) -> dict[str, Any]:
        """Resolve every key of *mapping*; values must be scalars."""
        if not isinstance(mapping, Mapping):
            raise ValidationError(f"{what} must be an object mapping column names to values")
        resolved: dict[str, Any] = {}
        for key, value in mapping.items():
            name = self.resolve(key)
            if not isinstance(value, _SCALARS):
                raise ValidationError(
                    f"{what} value for column '{name}' must be a scalar, "
                    f"got {type(value).__name__}",
                    column=name,
                )
            resolved[name] = value
        return resolved

    def where(self, conditions: Mapping[str, Any] | None) -> list[ColumnElement[bool]]:
        """AND-joined equality clauses; ``None`` values compare with IS NULL."""
        if not conditions:
            return []
        return [
            self.clause.c[name] == value
            for name, value in self.values(conditions, what="Condition").items()
        ]


def clamp_limit(limit: int | None, *, default: int, maximum: int) -> int:
    """Clamp *limit* into ``[1, maximum]``; ``None`` means *default*."""
    if limit is None:
        limit = default
    if isinstance(limit, bool) or not isinstance(limit, int):
        raise ValidationError(f"Limit must be an integer, got {limit!r}")
    return max(1, min(limit, maximum))


def select_rows(
    conn: Connection,
    table_name: str,
    conditions: Mapping[str, Any] | None = None,
    *,
    limit: int | None = None,
    offset: int = 0,
    order_by: str | None = None,
    order_direction: str = "ASC",
) -> tuple[list[dict[str, Any]], list[str]]:
    """Rows matching *conditions* plus the table's column list."""
    bound = BoundTable(conn, table_name)
    if offset < 0:
        raise ValidationError(f"Offset must be >= 0, got {offset}")
    direction = (order_direction or "ASC").upper()
    if direction not in ORDER_DIRECTIONS:
        raise ValidationError(f"Order direction must be ASC or DESC, got {order_direction!r}")

    stmt = select(bound.clause).where(*bound.where(conditions))
    if order_by:
        col = bound.clause.c[bound.resolve(order_by)]
        stmt = stmt.order_by(col.desc() if direction == "DESC" else col.asc())
    if limit is not None:
        stmt = stmt.limit(limit)
    if offset:
        stmt = stmt.offset(offset)

    rows = [dict(row._mapping) for row in conn.execute(stmt)]
    return rows, bound.columns


def count_rows(
    conn: Connection,
    table_name: str,
    conditions: Mapping[str, Any] | None = None,
) -> int:
    bound = BoundTable(conn, table_name)
    stmt = select(func.count()).select_from(bound.clause).where(*bound.where(conditions))
    return int(conn.execute(stmt).scalar_one())


def insert_rows(
    conn: Connection,
    table_name: str,
    records: Sequence[Mapping[str, Any]],
) -> int:
    """Insert every record; returns the number inserted.

    All records are validated before the first statement runs.  Atomicity
    across the batch comes from the caller's transaction.
    """
    if not isinstance(records, Sequence) or isinstance(records, (str, bytes)) or not records:
        raise ValidationError("Records must be a non-empty list of objects")
    bound = BoundTable(conn, table_name)
    prepared = [bound.values(record, what="Record") for record in records]
    for values in prepared:
        conn.execute(insert(bound.clause).values({bound.clause.c[k]: v for k, v in values.items()}))
    return len(prepared)


def update_rows(
    conn: Connection,
    table_name: str,
    conditions: Mapping[str, Any],
    updates: Mapping[str, Any],
) -> int:
    """Apply *updates* to rows matching *conditions*; returns rows changed.

    An empty condition map is rejected: there is no implicit match-all.
    """
    if not conditions:
        raise ValidationError("Update requires at least one condition")
    if not updates:
        raise ValidationError("Update requires at least one column to change")
    bound = BoundTable(conn, table_name)
    clauses = bound.where(conditions)
    values = bound.values(updates, what="Update")
    stmt = (
        update(bound.clause)
        .where(*clauses)
        .values({bound.clause.c[k]: v for k, v in values.items()})
    )
    return int(conn.execute(stmt).rowcount)


def delete_rows(
    conn: Connection,
    table_name: str,
    conditions: Mapping[str, Any],
) -> int:
    """Delete rows matching *conditions*; returns rows removed.

    An empty condition map is rejected: there is no implicit match-all.
    """
    if not conditions:
        raise ValidationError("Delete requires at least one condition")
    bound = BoundTable(conn, table_name)
    stmt = delete(bound.clause).where(*bound.where(conditions))
    return int(conn.execute(stmt).rowcount)


def execute_raw(
    conn: Connection,
    sql: str,
    parameters: Sequence[Any] | Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Run one parameterized statement exactly as written.

    *parameters* is a list for ``?`` placeholders or a mapping for
    ``:name`` placeholders; the driver binds them.  Row-returning
    statements yield ``{rows, columns, count}``; anything else yields
    ``{changes}``.
    """
    if not isinstance(sql, str) or not sql.strip():
        raise ValidationError("SQL query must be a non-empty string")
    leading = _LEADING_WORD_RE.match(sql)
    if leading and leading.group(1).upper() in _FORBIDDEN_RAW:
        raise ValidationError(
            f"{leading.group(1).upper()} statements are not allowed; "
            "each call already runs in its own transaction"
        )

    params: tuple[Any, ...] | dict[str, Any]
    if parameters is None:
        params = ()
    elif isinstance(parameters, Mapping):
        params = dict(parameters)
    elif isinstance(parameters, Sequence) and not isinstance(parameters, (str, bytes)):
        params = tuple(parameters)
    else:
        raise ValidationError("Parameters must be a list (positional) or an object (named)")

    try:
        result = conn.exec_driver_sql(sql, params)
    except IntegrityError:
        raise
    except DBAPIError as exc:
        raise QueryError(str(exc.orig), sql=sql) from exc
    if result.returns_rows:
        columns = list(result.keys())
        rows = [dict(row._mapping) for row in result]
        return {"rows": rows, "columns": columns, "count": len(rows)}
    return {"changes": max(int(result.rowcount), 0)}
