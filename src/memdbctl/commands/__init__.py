"""Subcommand modules for memdbctl.

Provides register_commands() which uses deferred imports to keep
``memdbctl --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register the command groups and the ``serve`` command on the root group."""
    from memdbctl.commands.data import data
    from memdbctl.commands.db import db
    from memdbctl.commands.memory import memory
    from memdbctl.commands.serve import serve
    from memdbctl.commands.table import table

    cli.add_command(db)
    cli.add_command(table)
    cli.add_command(data)
    cli.add_command(memory)
    cli.add_command(serve)
