"""Tests for MCP resource _impl functions."""

from __future__ import annotations

import json
from unittest.mock import MagicMock

from memdbctl.mcp.resources import (
    databases_impl,
    graph_current_impl,
    graph_recent_impl,
    graph_stats_impl,
    register_resources,
)


def _seed(memory) -> None:
    memory.create_entities(
        [
            {"name": "alice", "entityType": "person", "observations": ["Likes tea"]},
            {"name": "acme", "entityType": "company"},
        ]
    )
    memory.create_relations([{"from": "alice", "to": "acme", "relationType": "works_at"}])


class TestResourceImpls:
    def test_databases(self, registry) -> None:
        data = databases_impl(registry)
        assert data["databases"][0]["name"] == "memory"

    def test_graph_current(self, registry, memory) -> None:
        _seed(memory)
        data = graph_current_impl(registry)
        assert [e["name"] for e in data["entities"]] == ["alice", "acme"]
        assert len(data["relations"]) == 1

    def test_graph_stats(self, registry, memory) -> None:
        _seed(memory)
        data = graph_stats_impl(registry)
        assert data["entities"] == 2
        assert data["components"] == 1

    def test_graph_recent(self, registry, memory) -> None:
        _seed(memory)
        data = graph_recent_impl(registry)
        assert data["limit"] == 10
        assert len(data["entities"]) == 2


class TestRegisterResources:
    def test_registers_four_uris(self, registry) -> None:
        server = MagicMock()
        registered: dict[str, object] = {}

        def resource(uri: str, **_kwargs: object):
            def decorator(fn):
                registered[uri] = fn
                return fn

            return decorator

        server.resource.side_effect = resource
        register_resources(server, registry)
        assert set(registered) == {
            "memdb://databases",
            "memdb://graph/current",
            "memdb://graph/stats",
            "memdb://graph/recent",
        }
        payload = json.loads(registered["memdb://databases"]())
        assert payload["count"] == 1
