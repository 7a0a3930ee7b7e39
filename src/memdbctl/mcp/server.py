"""FastMCP server setup.

Optional extra, guarded behind try/except ImportError.
Transport: stdio by default, SSE or streamable HTTP optional.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from memdbctl.config.settings import MemdbSettings

mcp_available = False
_FastMCP: Any = None

try:
    from mcp.server.fastmcp import FastMCP as _FastMCP  # type: ignore[no-redef,import-not-found]

    mcp_available = True
except ImportError:
    pass

__all__ = ["create_server", "mcp_available"]


def create_server(
    settings: MemdbSettings | None = None,
    *,
    host: str = "127.0.0.1",
    port: int = 8000,
) -> Any:
    """Create and configure the MCP server.

    Builds one DatabaseRegistry from *settings* (discovered from the
    environment when omitted) and registers every tool and resource on
    it.  The registry's engines are closed when the server shuts down.

    *host* and *port* configure the bind address for HTTP transports and
    are ignored for stdio.

    Raises RuntimeError if the mcp extra is not installed.
    """
    if not mcp_available or _FastMCP is None:
        msg = "MCP extra not installed. Install with: pip install memdbctl[mcp]"
        raise RuntimeError(msg)

    from memdbctl.config.settings import MemdbSettings
    from memdbctl.infrastructure.database.registry import DatabaseRegistry
    from memdbctl.mcp.resources import register_resources
    from memdbctl.mcp.tools import register_tools

    registry = DatabaseRegistry(settings or MemdbSettings.from_cli())

    @asynccontextmanager
    async def lifespan(_server: Any) -> AsyncIterator[dict[str, Any]]:
        try:
            yield {}
        finally:
            registry.close_all()

    server = _FastMCP("memdbctl", host=host, port=port, lifespan=lifespan)

    register_tools(server, registry)
    register_resources(server, registry)

    return server
