"""MCP resource definitions: 4 URI-based, read-only JSON views.

URIs: memdb://databases, memdb://graph/current, memdb://graph/stats,
memdb://graph/recent.  Each resource has an ``_impl`` function testable
without the mcp package.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from memdbctl.mcp.tools import to_mcp_response
from memdbctl.services.database import DatabaseService
from memdbctl.services.memory import MemoryService

if TYPE_CHECKING:
    from memdbctl.infrastructure.database.registry import DatabaseRegistry
    from memdbctl.services.result import ServiceResult


def _payload(result: ServiceResult) -> dict[str, Any]:
    """The result's data, or the full error envelope on failure."""
    return result.data if result.ok else to_mcp_response(result)


def databases_impl(registry: DatabaseRegistry) -> dict[str, Any]:
    return _payload(DatabaseService(registry).list_databases())


def graph_current_impl(registry: DatabaseRegistry) -> dict[str, Any]:
    """The whole knowledge graph."""
    return _payload(MemoryService(registry).read_graph())


def graph_stats_impl(registry: DatabaseRegistry) -> dict[str, Any]:
    return _payload(MemoryService(registry).stats())


def graph_recent_impl(registry: DatabaseRegistry) -> dict[str, Any]:
    """Recently touched entities and relations (``[memory] recent_limit``)."""
    return _payload(MemoryService(registry).recent_changes())


def register_resources(server: Any, registry: DatabaseRegistry) -> None:
    """Register all 4 MCP resources on the FastMCP server."""

    @server.resource("memdb://databases", mime_type="application/json")  # type: ignore[untyped-decorator]
    def databases_resource() -> str:
        """Every named database."""
        return json.dumps(databases_impl(registry), indent=2, default=str)

    @server.resource("memdb://graph/current", mime_type="application/json")  # type: ignore[untyped-decorator]
    def graph_current_resource() -> str:
        """Current knowledge graph: all entities and relations."""
        return json.dumps(graph_current_impl(registry), indent=2, default=str)

    @server.resource("memdb://graph/stats", mime_type="application/json")  # type: ignore[untyped-decorator]
    def graph_stats_resource() -> str:
        """Knowledge-graph totals, type distributions and connectivity."""
        return json.dumps(graph_stats_impl(registry), indent=2, default=str)

    @server.resource("memdb://graph/recent", mime_type="application/json")  # type: ignore[untyped-decorator]
    def graph_recent_resource() -> str:
        """Recently updated entities and newest relations."""
        return json.dumps(graph_recent_impl(registry), indent=2, default=str)
