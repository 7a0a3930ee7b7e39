"""Tests for MemdbSettings: defaults, TOML, env vars and CLI flags."""

from __future__ import annotations

from pathlib import Path

import click
import pytest

from memdbctl.config.settings import CONFIG_FILENAME, MemdbSettings, find_config


class TestFindConfig:
    def test_walks_up(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("", encoding="utf-8")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        assert find_config(nested) == tmp_path / CONFIG_FILENAME

    def test_env_override(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        custom = tmp_path / "custom.toml"
        custom.write_text("", encoding="utf-8")
        monkeypatch.setenv("MEMDBCTL_CONFIG", str(custom))
        assert find_config(tmp_path / "anywhere") == custom

    def test_env_override_missing_file(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("", encoding="utf-8")
        monkeypatch.setenv("MEMDBCTL_CONFIG", str(tmp_path / "missing.toml"))
        assert find_config(tmp_path) is None


class TestMemdbSettings:
    def test_defaults(self, tmp_path: Path) -> None:
        settings = MemdbSettings.from_cli(data_dir=tmp_path)
        assert settings.data_dir == tmp_path
        assert settings.query.default_limit == 1000
        assert settings.query.max_limit == 10000
        assert settings.database.journal_mode == "wal"
        assert settings.memory.search_include_touching_relations is False
        assert settings.mcp.transport == "stdio"

    def test_toml_overrides(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text(
            "[query]\nmax_limit = 50\n\n[memory]\nrecent_limit = 3\n", encoding="utf-8"
        )
        settings = MemdbSettings.from_cli(data_dir=tmp_path)
        assert settings.query.max_limit == 50
        assert settings.query.default_limit == 1000
        assert settings.memory.recent_limit == 3
        assert settings.config_path == tmp_path / CONFIG_FILENAME

    def test_data_dir_defaults_to_config_directory(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("", encoding="utf-8")
        nested = tmp_path / "sub"
        nested.mkdir()
        monkeypatch.chdir(nested)
        assert MemdbSettings.from_cli().data_dir == tmp_path

    def test_explicit_config_path(self, tmp_path: Path) -> None:
        custom = tmp_path / "custom.toml"
        custom.write_text('[mcp]\ntransport = "sse"\n', encoding="utf-8")
        settings = MemdbSettings.from_cli(config_path=str(custom), data_dir=tmp_path / "d")
        assert settings.mcp.transport == "sse"

    def test_env_beats_toml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("[query]\nmax_limit = 50\n", encoding="utf-8")
        monkeypatch.setenv("MEMDBCTL_QUERY__MAX_LIMIT", "70")
        assert MemdbSettings.from_cli(data_dir=tmp_path).query.max_limit == 70

    def test_cli_flags(self, tmp_path: Path) -> None:
        settings = MemdbSettings.from_cli(data_dir=tmp_path, json_output=True, verbose=True)
        assert settings.json_output is True
        assert settings.verbose is True

    def test_invalid_toml(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("[query\n", encoding="utf-8")
        with pytest.raises(click.ClickException, match="Invalid TOML"):
            MemdbSettings.from_cli(data_dir=tmp_path)

    def test_frozen(self, tmp_path: Path) -> None:
        settings = MemdbSettings.from_cli(data_dir=tmp_path)
        with pytest.raises(Exception):  # noqa: B017
            settings.verbose = True  # type: ignore[misc]
