"""serve: start the MCP server (requires the memdbctl[mcp] extra)."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from memdbctl.commands._base import MemdbCommand

if TYPE_CHECKING:
    from memdbctl.commands._context import AppContext


@click.command(
    cls=MemdbCommand,
    examples="""\
  # Start the MCP server (stdio transport, default)
  memdbctl serve

  # Serve databases from a specific directory
  memdbctl --data-dir ~/memdb serve

  # Streamable HTTP on custom host/port
  memdbctl serve --transport streamable-http --host 0.0.0.0 --port 9000""",
)
@click.option(
    "--transport",
    default=None,
    type=click.Choice(["stdio", "sse", "streamable-http"]),
    help="MCP transport protocol (default from [mcp] transport).",
)
@click.option("--host", default="127.0.0.1", help="Bind address (HTTP transports only).")
@click.option("--port", default=8000, type=int, help="Listen port (HTTP transports only).")
@click.pass_obj
def serve(app: AppContext, transport: str | None, host: str, port: int) -> None:
    """Start the MCP server (requires memdbctl[mcp] extra)."""
    from memdbctl.mcp.server import create_server, mcp_available

    if not mcp_available:
        click.echo("MCP not installed. Install with: pip install memdbctl[mcp]", err=True)
        raise SystemExit(1)
    if not app.settings.mcp.enabled:
        click.echo("MCP server is disabled ([mcp] enabled = false).", err=True)
        raise SystemExit(1)

    server = create_server(app.settings, host=host, port=port)
    server.run(transport=transport or app.settings.mcp.transport)
