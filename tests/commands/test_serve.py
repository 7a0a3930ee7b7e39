"""Tests for the serve command."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from memdbctl.cli import cli


class TestServeCommand:
    def test_serve_registered(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--help"])
        assert "serve" in result.output

    def test_serve_help_shows_transports(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["serve", "--help"])
        assert "stdio" in result.output
        assert "sse" in result.output
        assert "streamable-http" in result.output

    @pytest.mark.usefixtures("_isolated_data_dir")
    def test_serve_invokes_create_server(self, cli_runner: CliRunner) -> None:
        server = MagicMock()
        with (
            patch("memdbctl.mcp.server.mcp_available", True),
            patch("memdbctl.mcp.server.create_server", return_value=server) as create_server,
        ):
            result = cli_runner.invoke(
                cli, ["serve", "--transport", "sse", "--host", "0.0.0.0", "--port", "9000"]
            )

        assert result.exit_code == 0, result.output
        create_server.assert_called_once()
        assert create_server.call_args.kwargs == {"host": "0.0.0.0", "port": 9000}
        server.run.assert_called_once_with(transport="sse")

    @pytest.mark.usefixtures("_isolated_data_dir")
    def test_serve_defaults_to_configured_transport(self, cli_runner: CliRunner) -> None:
        server = MagicMock()
        with (
            patch("memdbctl.mcp.server.mcp_available", True),
            patch("memdbctl.mcp.server.create_server", return_value=server),
        ):
            result = cli_runner.invoke(cli, ["serve"])
        assert result.exit_code == 0, result.output
        server.run.assert_called_once_with(transport="stdio")

    @pytest.mark.usefixtures("_isolated_data_dir")
    def test_serve_without_mcp(self, cli_runner: CliRunner) -> None:
        with patch("memdbctl.mcp.server.mcp_available", False):
            result = cli_runner.invoke(cli, ["serve"])
        assert result.exit_code == 1
        assert "MCP not installed" in result.output
