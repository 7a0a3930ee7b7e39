"""Command group: row-level access and raw SQL."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import click

from memdbctl.commands._base import JSON_ANY, JSON_ARRAY, JSON_OBJECT, MemdbGroup
from memdbctl.services.data import DataService

if TYPE_CHECKING:
    from memdbctl.commands._context import AppContext

_DATA_EXAMPLES = """\
  memdbctl data insert proj users --records '[{"name":"Ann","age":30}]'
  memdbctl data query proj users --where '{"age":30}' --order-by name
  memdbctl data update proj users --where '{"name":"Ann"}' --set '{"age":31}'
  memdbctl data delete proj users --where '{"name":"Ann"}'
  memdbctl data count proj users
  memdbctl data sql proj "SELECT name FROM users WHERE age > ?" --params '[21]'"""


@click.group(cls=MemdbGroup, examples=_DATA_EXAMPLES)
def data() -> None:
    """Query, insert, update and delete rows; run parameterized SQL."""


@data.command(
    examples="""\
  memdbctl data query proj users
  memdbctl data query proj users --where '{"age":30}'
  memdbctl data query proj users --order-by age --order-direction desc --limit 10
  memdbctl --json data query proj users --offset 20 --limit 20""",
)
@click.argument("database")
@click.argument("table")
@click.option("--where", "conditions", type=JSON_OBJECT, default=None, help="Equality filter.")
@click.option("--limit", type=int, default=None, help="Max rows (clamped to [query] max_limit).")
@click.option("--offset", type=int, default=None, help="Rows to skip.")
@click.option("--order-by", default=None, help="Column to sort by.")
@click.option(
    "--order-direction",
    type=click.Choice(["ASC", "DESC"], case_sensitive=False),
    default="ASC",
    show_default=True,
)
@click.pass_obj
def query(
    app: AppContext,
    database: str,
    table: str,
    conditions: dict[str, Any] | None,
    limit: int | None,
    offset: int | None,
    order_by: str | None,
    order_direction: str,
) -> None:
    """Select rows from TABLE matching every --where column."""
    app.emit(
        DataService(app.registry).query_data(
            database,
            table,
            conditions,
            limit=limit,
            offset=offset,
            order_by=order_by,
            order_direction=order_direction,
        )
    )


@data.command(
    examples="""\
  memdbctl data insert proj users --records '[{"name":"Ann"},{"name":"Bob"}]'""",
)
@click.argument("database")
@click.argument("table")
@click.option("--records", required=True, type=JSON_ARRAY, help="Array of row objects.")
@click.pass_obj
def insert(app: AppContext, database: str, table: str, records: list[Any]) -> None:
    """Insert rows into TABLE, all or nothing."""
    app.emit(DataService(app.registry).insert_data(database, table, records))


@data.command(
    examples="""\
  memdbctl data update proj users --where '{"id":1}' --set '{"age":31}'""",
)
@click.argument("database")
@click.argument("table")
@click.option("--where", "conditions", required=True, type=JSON_OBJECT, help="Equality filter.")
@click.option("--set", "updates", required=True, type=JSON_OBJECT, help="Columns to change.")
@click.pass_obj
def update(
    app: AppContext,
    database: str,
    table: str,
    conditions: dict[str, Any],
    updates: dict[str, Any],
) -> None:
    """Update rows of TABLE matching every --where column."""
    app.emit(DataService(app.registry).update_data(database, table, conditions, updates))


@data.command(
    examples="""\
  memdbctl data delete proj users --where '{"id":1}'""",
)
@click.argument("database")
@click.argument("table")
@click.option("--where", "conditions", required=True, type=JSON_OBJECT, help="Equality filter.")
@click.pass_obj
def delete(app: AppContext, database: str, table: str, conditions: dict[str, Any]) -> None:
    """Delete rows of TABLE matching every --where column."""
    app.emit(DataService(app.registry).delete_data(database, table, conditions))


@data.command(
    examples="""\
  memdbctl data count proj users
  memdbctl data count proj users --where '{"age":30}'""",
)
@click.argument("database")
@click.argument("table")
@click.option("--where", "conditions", type=JSON_OBJECT, default=None, help="Equality filter.")
@click.pass_obj
def count(
    app: AppContext, database: str, table: str, conditions: dict[str, Any] | None
) -> None:
    """Count rows of TABLE."""
    app.emit(DataService(app.registry).count_records(database, table, conditions))


@data.command(
    examples="""\
  memdbctl data sql proj "SELECT COUNT(*) AS n FROM users"
  memdbctl data sql proj "SELECT * FROM users WHERE age > ?" --params '[21]'
  memdbctl data sql proj "UPDATE users SET age = :age WHERE name = :name" \\
      --params '{"age":40,"name":"Ann"}'""",
)
@click.argument("database")
@click.argument("statement")
@click.option(
    "--params",
    "parameters",
    type=JSON_ANY,
    default=None,
    help="Array for ? placeholders or object for :name placeholders.",
)
@click.pass_obj
def sql(app: AppContext, database: str, statement: str, parameters: Any) -> None:
    """Run one parameterized SQL STATEMENT against DATABASE."""
    app.emit(DataService(app.registry).execute_sql(database, statement, parameters))
