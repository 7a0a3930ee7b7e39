"""Command group: table DDL and introspection."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import click

from memdbctl.commands._base import JSON_ARRAY, MemdbGroup
from memdbctl.services.schema import SchemaService

if TYPE_CHECKING:
    from memdbctl.commands._context import AppContext

_TABLE_EXAMPLES = """\
  memdbctl table list proj
  memdbctl table create proj users \\
      --columns '[{"name":"id","type":"INTEGER","constraints":["PRIMARY KEY"]},
                  {"name":"name","type":"TEXT","constraints":["NOT NULL"]}]'
  memdbctl table describe proj users
  memdbctl table drop proj users"""


@click.group(cls=MemdbGroup, examples=_TABLE_EXAMPLES)
def table() -> None:
    """Create, describe, list and drop tables."""


@table.command(
    "list",
    examples="""\
  memdbctl table list proj
  memdbctl --json table list memory""",
)
@click.argument("database")
@click.pass_obj
def list_cmd(app: AppContext, database: str) -> None:
    """List the tables of DATABASE."""
    app.emit(SchemaService(app.registry).list_tables(database))


@table.command(
    examples="""\
  memdbctl table describe proj users""",
)
@click.argument("database")
@click.argument("name")
@click.pass_obj
def describe(app: AppContext, database: str, name: str) -> None:
    """Show the columns of table NAME."""
    app.emit(SchemaService(app.registry).describe_table(database, name))


@table.command(
    examples="""\
  memdbctl table create proj users \\
      --columns '[{"name":"id","type":"INTEGER","constraints":["PRIMARY KEY"]},
                  {"name":"email","type":"TEXT","constraints":["NOT NULL","UNIQUE"]}]'
  memdbctl table create proj tags --if-not-exists \\
      --columns '[{"name":"label","type":"TEXT"},{"name":"scope","type":"TEXT"}]' \\
      --unique '[["label","scope"]]'""",
)
@click.argument("database")
@click.argument("name")
@click.option(
    "--columns",
    required=True,
    type=JSON_ARRAY,
    help='Column specs as JSON: [{"name", "type", "constraints": [...]}].',
)
@click.option("--unique", type=JSON_ARRAY, default=None, help="UNIQUE column groups as JSON.")
@click.option("--if-not-exists", is_flag=True, help="Succeed without changes if NAME exists.")
@click.pass_obj
def create(
    app: AppContext,
    database: str,
    name: str,
    columns: list[Any],
    unique: list[Any] | None,
    if_not_exists: bool,
) -> None:
    """Create table NAME in DATABASE."""
    schema: dict[str, Any] = {"columns": columns}
    if unique:
        schema["unique"] = unique
    app.emit(
        SchemaService(app.registry).create_table(
            database, name, schema, if_not_exists=if_not_exists
        )
    )


@table.command(
    examples="""\
  memdbctl table drop proj users""",
)
@click.argument("database")
@click.argument("name")
@click.pass_obj
def drop(app: AppContext, database: str, name: str) -> None:
    """Drop table NAME from DATABASE."""
    app.emit(SchemaService(app.registry).drop_table(database, name))
