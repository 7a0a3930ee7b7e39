"""Schema catalog: DDL from abstract column descriptors, plus introspection.

Callers describe a table as an ordered list of ``{name, type, constraints}``
column specs.  Nothing from a descriptor reaches DDL text unchecked:

- column and table names must be plain identifiers and are always quoted
  by the dialect's identifier preparer;
- types must look like SQLite type names (``TEXT``, ``VARCHAR(255)``,
  ``DOUBLE PRECISION``...);
- constraints must match an allow-list and are re-rendered from their
  parsed parts rather than pasted in.

All functions take a ``Connection``; the caller owns the transaction.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from sqlalchemy import inspect, text

from memdbctl.infrastructure.database.errors import (
    AlreadyExistsError,
    NotFoundError,
    ValidationError,
)

if TYPE_CHECKING:
    from sqlalchemy import Connection
    from sqlalchemy.sql.compiler import IdentifierPreparer

_IDENT = r"[A-Za-z_][A-Za-z0-9_]*"
_IDENT_RE = re.compile(rf"^{_IDENT}$")
_TYPE_RE = re.compile(
    r"^[A-Za-z][A-Za-z0-9_]*(?: [A-Za-z][A-Za-z0-9_]*)*"
    r"(?:\s*\(\s*[-+]?\d+\s*(?:,\s*[-+]?\d+\s*)?\))?$"
)
_DEFAULT_LITERAL = (
    r"[-+]?\d+(?:\.\d+)?|'(?:[^']|'')*'"
    r"|NULL|TRUE|FALSE|CURRENT_TIMESTAMP|CURRENT_DATE|CURRENT_TIME"
)
_FK_ACTION = r"CASCADE|RESTRICT|NO\s+ACTION|SET\s+NULL|SET\s+DEFAULT"

_PRIMARY_KEY_RE = re.compile(r"PRIMARY\s+KEY(?:\s+(ASC|DESC))?(\s+AUTOINCREMENT)?", re.I)
_DEFAULT_RE = re.compile(rf"DEFAULT\s+({_DEFAULT_LITERAL})", re.I)
_COLLATE_RE = re.compile(r"COLLATE\s+(NOCASE|BINARY|RTRIM)", re.I)
_REFERENCES_RE = re.compile(
    rf"REFERENCES\s+({_IDENT})\s*\(\s*({_IDENT})\s*\)"
    rf"((?:\s+ON\s+(?:DELETE|UPDATE)\s+(?:{_FK_ACTION}))*)",
    re.I,
)
_FK_CLAUSE_RE = re.compile(rf"ON\s+(DELETE|UPDATE)\s+({_FK_ACTION})", re.I)
_KEYWORD_CONSTRAINTS = {
    "NOT NULL": "NOT NULL",
    "NULL": "NULL",
    "UNIQUE": "UNIQUE",
    "AUTOINCREMENT": "AUTOINCREMENT",
}


@dataclass(frozen=True)
class ColumnSpec:
    """One column of a table descriptor."""

    name: str
    type: str
    constraints: tuple[str, ...] = ()


@dataclass(frozen=True)
class TableSchema:
    """Ordered column specs plus optional multi-column UNIQUE groups."""

    columns: tuple[ColumnSpec, ...]
    unique: tuple[tuple[str, ...], ...] = field(default=())

    @classmethod
    def from_dict(cls, raw: Any) -> TableSchema:
        """Build a schema from ``{"columns": [...], "unique": [[...]]}``.

        Raises:
            ValidationError: The descriptor is not shaped like a schema, or a
                column spec is missing its name or type.
        """
        if not isinstance(raw, dict) or not isinstance(raw.get("columns"), list):
            raise ValidationError("Schema must be an object with a 'columns' list")
        columns: list[ColumnSpec] = []
        for index, spec in enumerate(raw["columns"]):
            if not isinstance(spec, dict):
                raise ValidationError(f"Column #{index} must be an object", index=index)
            name, col_type = spec.get("name"), spec.get("type")
            if not isinstance(name, str) or not name:
                raise ValidationError(f"Column #{index} is missing a name", index=index)
            if not isinstance(col_type, str) or not col_type:
                raise ValidationError(f"Column '{name}' is missing a type", column=name)
            constraints = spec.get("constraints") or []
            if not isinstance(constraints, list) or not all(
                isinstance(c, str) for c in constraints
            ):
                raise ValidationError(
                    f"Constraints for column '{name}' must be a list of strings", column=name
                )
            columns.append(ColumnSpec(name, col_type, tuple(constraints)))
        unique = raw.get("unique") or []
        if not isinstance(unique, list) or not all(isinstance(g, list) for g in unique):
            raise ValidationError("'unique' must be a list of column-name lists")
        return cls(tuple(columns), tuple(tuple(group) for group in unique))


def validate_identifier(name: str, *, kind: str = "identifier") -> str:
    """Return *name* if it is a plain SQL identifier, else raise ValidationError."""
    if not isinstance(name, str) or not _IDENT_RE.match(name):
        raise ValidationError(f"Invalid {kind}: {name!r}", name=name)
    return name


def _normalize_ws(value: str) -> str:
    return " ".join(value.split())


def render_constraint(raw: str, preparer: IdentifierPreparer) -> str:
    """Re-render one allow-listed column constraint as DDL text."""
    candidate = _normalize_ws(raw.strip())
    upper = candidate.upper()
    if upper in _KEYWORD_CONSTRAINTS:
        return _KEYWORD_CONSTRAINTS[upper]

    if m := _PRIMARY_KEY_RE.fullmatch(candidate):
        parts = ["PRIMARY KEY"]
        if m.group(1):
            parts.append(m.group(1).upper())
        if m.group(2):
            parts.append("AUTOINCREMENT")
        return " ".join(parts)

    if m := _DEFAULT_RE.fullmatch(candidate):
        literal = m.group(1)
        if not literal.startswith("'"):
            literal = literal.upper()
        return f"DEFAULT {literal}"

    if m := _COLLATE_RE.fullmatch(candidate):
        return f"COLLATE {m.group(1).upper()}"

    if m := _REFERENCES_RE.fullmatch(candidate):
        ref = f"REFERENCES {preparer.quote_identifier(m.group(1))}"
        ref += f"({preparer.quote_identifier(m.group(2))})"
        for event, action in _FK_CLAUSE_RE.findall(m.group(3)):
            ref += f" ON {event.upper()} {_normalize_ws(action).upper()}"
        return ref

    raise ValidationError(f"Unsupported column constraint: {raw!r}", constraint=raw)


def build_create_table_sql(
    table: str,
    schema: TableSchema,
    preparer: IdentifierPreparer,
    *,
    if_not_exists: bool = False,
) -> str:
    """Render ``CREATE TABLE`` DDL for *schema*, validating every part."""
    validate_identifier(table, kind="table name")
    if table.lower().startswith("sqlite_"):
        raise ValidationError(f"Table names starting with 'sqlite_' are reserved: {table!r}")
    if not schema.columns:
        raise ValidationError(f"Table '{table}' needs at least one column", table=table)

    seen: dict[str, str] = {}
    lines: list[str] = []
    for col in schema.columns:
        validate_identifier(col.name, kind="column name")
        key = col.name.lower()
        if key in seen:
            raise ValidationError(
                f"Duplicate column name in table '{table}': {col.name!r}", column=col.name
            )
        seen[key] = col.name
        col_type = _normalize_ws(col.type.strip())
        if not _TYPE_RE.match(col_type):
            raise ValidationError(
                f"Invalid type for column '{col.name}': {col.type!r}", column=col.name
            )
        parts = [preparer.quote_identifier(col.name), col_type.upper()]
        parts.extend(render_constraint(c, preparer) for c in col.constraints)
        lines.append(" ".join(parts))

    for group in schema.unique:
        if not group:
            raise ValidationError(f"Empty UNIQUE group on table '{table}'", table=table)
        resolved = []
        for name in group:
            if not isinstance(name, str) or name.lower() not in seen:
                raise ValidationError(
                    f"UNIQUE refers to unknown column {name!r} on table '{table}'", column=name
                )
            resolved.append(preparer.quote_identifier(seen[name.lower()]))
        lines.append(f"UNIQUE ({', '.join(resolved)})")

    head = "CREATE TABLE IF NOT EXISTS" if if_not_exists else "CREATE TABLE"
    body = ",\n    ".join(lines)
    return f"{head} {preparer.quote_identifier(table)} (\n    {body}\n)"


# ---------------------------------------------------------------------------
# Introspection
# ---------------------------------------------------------------------------


def list_tables(conn: Connection) -> list[str]:
    """User tables, sorted; SQLite's internal ``sqlite_*`` tables are excluded."""
    return sorted(inspect(conn).get_table_names())


def table_exists(conn: Connection, table: str) -> bool:
    return isinstance(table, str) and bool(table) and inspect(conn).has_table(table)


def describe_table(conn: Connection, table: str) -> dict[str, Any]:
    """Column name, declared type, nullability, primary-key flag and default.

    ``nullable`` is False for primary-key columns too: SQLite assigns rowid
    values to an ``INTEGER PRIMARY KEY`` rather than storing NULL.
    """
    if not table_exists(conn, table):
        raise NotFoundError(f"Table '{table}' does not exist", table=table)
    rows = conn.execute(
        text("SELECT * FROM pragma_table_info(:table) ORDER BY cid"),
        {"table": table},
    ).mappings()
    columns = [
        {
            "name": row["name"],
            "type": row["type"],
            "nullable": not row["notnull"] and not row["pk"],
            "primaryKey": bool(row["pk"]),
            "default": row["dflt_value"],
        }
        for row in rows
    ]
    return {"name": table, "columns": columns}


def column_names(conn: Connection, table: str) -> list[str]:
    """Live column names of *table* in declaration order (NotFoundError if absent)."""
    return [col["name"] for col in describe_table(conn, table)["columns"]]


# ---------------------------------------------------------------------------
# DDL
# ---------------------------------------------------------------------------


def create_table(
    conn: Connection,
    table: str,
    schema: TableSchema,
    *,
    if_not_exists: bool = False,
) -> bool:
    """Create *table*; return False if it existed and *if_not_exists* was set.

    Raises:
        AlreadyExistsError: The table exists and *if_not_exists* is False.
        ValidationError: The descriptor is malformed.
    """
    ddl = build_create_table_sql(
        table, schema, conn.dialect.identifier_preparer, if_not_exists=if_not_exists
    )
    if table_exists(conn, table):
        if if_not_exists:
            return False
        raise AlreadyExistsError(f"Table '{table}' already exists", table=table)
    conn.exec_driver_sql(ddl)
    return True


def drop_table(conn: Connection, table: str) -> None:
    if not table_exists(conn, table):
        raise NotFoundError(f"Table '{table}' does not exist", table=table)
    quoted = conn.dialect.identifier_preparer.quote_identifier(table)
    conn.exec_driver_sql(f"DROP TABLE {quoted}")
