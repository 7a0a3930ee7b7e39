"""Tests for root CLI help, version and --examples."""

from __future__ import annotations

import pytest
from click.testing import CliRunner

from memdbctl import __version__
from memdbctl.cli import cli


class TestRootCli:
    def test_no_args_prints_help(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, [])
        assert result.exit_code == 0
        for group in ("db", "table", "data", "memory", "serve"):
            assert group in result.output

    def test_version(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--version"])
        assert __version__ in result.output

    @pytest.mark.parametrize(
        "args",
        [["db", "--examples"], ["memory", "create-entity", "--examples"], ["data", "sql", "--examples"]],
    )
    def test_examples(self, cli_runner: CliRunner, args: list[str]) -> None:
        result = cli_runner.invoke(cli, args)
        assert result.exit_code == 0
        assert "Examples for" in result.output
        assert "memdbctl" in result.output

    @pytest.mark.usefixtures("_isolated_data_dir")
    def test_verbose_attaches_telemetry(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["-v", "db", "list"])
        assert result.exit_code == 0, result.output
        assert "meta:" in result.output
