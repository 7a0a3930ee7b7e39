"""Unified settings: CLI flags, env vars, and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs (CLI flags passed by Click)
  2. Env vars (``MEMDBCTL_*`` prefix)
  3. TOML file (``memdbctl.toml`` discovered via walk-up)
  4. Code defaults baked into the section models

``data_dir`` is where ``<name>.db`` files live.  Without an explicit value
it resolves to the directory holding the discovered ``memdbctl.toml``, or
the current directory when no config file exists.
"""

from __future__ import annotations

import os
import threading
import tomllib
from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from memdbctl.config.models import DatabaseConfig, McpConfig, MemoryConfig, QueryConfig

CONFIG_FILENAME = "memdbctl.toml"
CONFIG_ENV_VAR = "MEMDBCTL_CONFIG"


def find_config(start: Path | None = None) -> Path | None:
    """Return the nearest ``memdbctl.toml`` at or above *start* (default: cwd).

    ``MEMDBCTL_CONFIG`` short-circuits the walk; if it names a missing file
    no config is used at all.
    """
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        candidate = Path(override)
        return candidate if candidate.is_file() else None

    origin = (start or Path.cwd()).resolve()
    for directory in (origin, *origin.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from a discovered ``memdbctl.toml``."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path and toml_path.is_file():
            raw = toml_path.read_text(encoding="utf-8")
            try:
                self._data = tomllib.loads(raw)
            except tomllib.TOMLDecodeError as exc:
                import click

                msg = f"Invalid TOML in {toml_path}: {exc}"
                raise click.ClickException(msg) from exc

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        """Return ``(value, field_name, value_is_complex)``."""
        return self._data.get(field_name), field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        return self._data


# TOML path handed to settings_customise_sources during construction.
_tls = threading.local()


class MemdbSettings(BaseSettings):
    """Frozen settings object shared by the CLI, the MCP server, and services.

    Attributes:
        data_dir: Directory holding one ``<name>.db`` file per database.
        config_path: The TOML file that was loaded, if any.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "MEMDBCTL_",
        "env_nested_delimiter": "__",
    }

    data_dir: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    # --- CLI flags ---
    json_output: bool = False
    verbose: bool = False
    log_json: bool = False

    # --- TOML sections ---
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    query: QueryConfig = Field(default_factory=QueryConfig)
    memory: MemoryConfig = Field(default_factory=MemoryConfig)
    mcp: McpConfig = Field(default_factory=McpConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert the TOML source between env vars and defaults."""
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, getattr(_tls, "toml_path", None)),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        data_dir: Path | None = None,
        **cli_flags: Any,
    ) -> MemdbSettings:
        """Construct settings for one CLI invocation or server process.

        An explicit *config_path* wins over discovery; discovery starts at
        *data_dir* when given, else at the current directory.
        """
        toml_path: Path | None = None
        if config_path:
            explicit = Path(config_path)
            if explicit.is_file():
                toml_path = explicit
        else:
            toml_path = find_config(data_dir)

        kwargs: dict[str, Any] = {"config_path": toml_path, **cli_flags}
        if data_dir is not None:
            kwargs["data_dir"] = data_dir
        elif toml_path is not None and "MEMDBCTL_DATA_DIR" not in os.environ:
            kwargs["data_dir"] = toml_path.parent

        _tls.toml_path = toml_path
        try:
            return cls(**kwargs)
        finally:
            _tls.toml_path = None
