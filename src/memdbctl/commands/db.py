"""Command group: named database lifecycle."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from memdbctl.commands._base import MemdbGroup
from memdbctl.services.database import DatabaseService

if TYPE_CHECKING:
    from memdbctl.commands._context import AppContext

_DB_EXAMPLES = """\
  memdbctl db list
  memdbctl db create proj
  memdbctl db backup proj backups/proj.db
  memdbctl db restore backups/proj.db proj_copy
  memdbctl db drop proj_copy"""


@click.group(cls=MemdbGroup, examples=_DB_EXAMPLES)
def db() -> None:
    """Create, list, back up, restore and drop named databases."""


@db.command(
    "list",
    examples="""\
  memdbctl db list
  memdbctl --json db list""",
)
@click.pass_obj
def list_cmd(app: AppContext) -> None:
    """List every database in the data directory."""
    app.emit(DatabaseService(app.registry).list_databases())


@db.command(
    examples="""\
  memdbctl db create proj
  memdbctl --data-dir ./stores db create analytics""",
)
@click.argument("name")
@click.pass_obj
def create(app: AppContext, name: str) -> None:
    """Create an empty database NAME."""
    app.emit(DatabaseService(app.registry).create_database(name))


@db.command(
    examples="""\
  memdbctl db drop proj""",
)
@click.argument("name")
@click.pass_obj
def drop(app: AppContext, name: str) -> None:
    """Delete database NAME and its file."""
    app.emit(DatabaseService(app.registry).drop_database(name))


@db.command(
    examples="""\
  memdbctl db backup proj backups/proj-2026-01-01.db
  memdbctl db backup memory memory.bak""",
)
@click.argument("name")
@click.argument("dest", type=click.Path(dir_okay=False, path_type=Path))
@click.pass_obj
def backup(app: AppContext, name: str, dest: Path) -> None:
    """Copy database NAME to the file DEST."""
    app.emit(DatabaseService(app.registry).backup_database(name, dest))


@db.command(
    examples="""\
  memdbctl db restore backups/proj.db proj_restored""",
)
@click.argument("source", type=click.Path(dir_okay=False, path_type=Path))
@click.argument("new_name")
@click.pass_obj
def restore(app: AppContext, source: Path, new_name: str) -> None:
    """Register a copy of the backup SOURCE as database NEW_NAME."""
    app.emit(DatabaseService(app.registry).restore_database(source, new_name))
