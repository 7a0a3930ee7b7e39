"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, memdbctl.toml only contains
overrides. An empty file (or no file at all) is a valid configuration.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class DatabaseConfig(BaseModel):
    """[database] section."""

    model_config = {"frozen": True}

    journal_mode: Literal["wal", "delete", "truncate", "memory"] = "wal"
    echo: bool = False


class QueryConfig(BaseModel):
    """[query] section: row limits for query_data."""

    model_config = {"frozen": True}

    default_limit: int = Field(default=1000, ge=1)
    max_limit: int = Field(default=10000, ge=1)


class MemoryConfig(BaseModel):
    """[memory] section: knowledge-graph behaviour."""

    model_config = {"frozen": True}

    search_include_touching_relations: bool = False
    recent_limit: int = Field(default=10, ge=1)


class McpConfig(BaseModel):
    """[mcp] section."""

    model_config = {"frozen": True}

    enabled: bool = True
    transport: str = "stdio"


class MemdbConfig(BaseModel):
    """Root model for a parsed memdbctl.toml file."""

    model_config = {"frozen": True}

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    query: QueryConfig = Field(default_factory=QueryConfig)
    memory: MemoryConfig = Field(default_factory=MemoryConfig)
    mcp: McpConfig = Field(default_factory=McpConfig)
