"""Root CLI group for memdbctl with global flags and command registration."""

from __future__ import annotations

from pathlib import Path

import click

from memdbctl import __version__
from memdbctl.commands import register_commands
from memdbctl.commands._context import AppContext
from memdbctl.config.settings import MemdbSettings


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="memdbctl")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging and timing spans.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory holding the <name>.db files.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
    data_dir: Path | None,
) -> None:
    """memdbctl: named SQLite databases with a knowledge-graph layer."""
    settings = MemdbSettings.from_cli(
        config_path=config_path,
        data_dir=data_dir,
        json_output=json_output,
        verbose=verbose,
        log_json=log_json,
    )
    app = AppContext(settings)
    ctx.obj = app
    ctx.call_on_close(app.close)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
