"""Tests for the db command group."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from memdbctl.cli import cli


@pytest.mark.usefixtures("_isolated_data_dir")
class TestDbCommands:
    def test_list_shows_memory(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["db", "list"])
        assert result.exit_code == 0, result.output
        assert "memory" in result.output
        assert "1 databases" in result.output

    def test_create_and_list_json(self, cli_runner: CliRunner, data_dir: Path) -> None:
        created = cli_runner.invoke(cli, ["db", "create", "proj"])
        assert created.exit_code == 0, created.output
        assert "Database 'proj' created successfully" in created.output
        assert (data_dir / "proj.db").exists()

        listed = cli_runner.invoke(cli, ["--json", "db", "list"])
        payload = json.loads(listed.output)
        assert payload["ok"] is True
        assert [d["name"] for d in payload["data"]["databases"]] == ["memory", "proj"]

    def test_create_duplicate_exits_1(self, cli_runner: CliRunner) -> None:
        cli_runner.invoke(cli, ["db", "create", "proj"])
        result = cli_runner.invoke(cli, ["db", "create", "proj"])
        assert result.exit_code == 1
        assert "ALREADY_EXISTS" in result.output

    def test_drop_unknown(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--json", "db", "drop", "ghost"])
        assert result.exit_code == 1
        assert '"NOT_FOUND"' in result.output

    def test_backup_and_restore(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        cli_runner.invoke(cli, ["db", "create", "proj"])
        dest = tmp_path / "backups" / "proj.bak"
        backup = cli_runner.invoke(cli, ["db", "backup", "proj", str(dest)])
        assert backup.exit_code == 0, backup.output
        assert dest.exists()

        restore = cli_runner.invoke(cli, ["db", "restore", str(dest), "proj_copy"])
        assert restore.exit_code == 0, restore.output
        assert "restored successfully" in restore.output

    def test_data_dir_flag(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        other = tmp_path / "elsewhere"
        result = cli_runner.invoke(cli, ["--data-dir", str(other), "db", "create", "x"])
        assert result.exit_code == 0, result.output
        assert (other / "x.db").exists()
