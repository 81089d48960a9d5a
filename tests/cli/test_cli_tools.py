"""Tests for ``stateless-mcp tools`` CLI command."""

from __future__ import annotations

import json
from unittest.mock import patch

from click.testing import CliRunner

from stateless_mcp.cli import main
from stateless_mcp.protocol.server import McpServer


class TestToolsList:
    def test_table(self) -> None:
        runner = CliRunner()
        result = runner.invoke(main, ["tools", "list"])

        assert result.exit_code == 0
        assert "Registered Tools" in result.output
        assert "echo" in result.output
        assert "get-weather" in result.output

    def test_json(self) -> None:
        runner = CliRunner()
        result = runner.invoke(main, ["tools", "list", "--json"])

        assert result.exit_code == 0
        payload = json.loads(result.output)
        names = [tool["name"] for tool in payload["tools"]]
        assert names == ["echo", "get-weather"]
        assert payload["tools"][0]["inputSchema"]["required"] == ["message"]

    def test_no_tools(self) -> None:
        with patch("stateless_mcp.app.build_server", return_value=McpServer()):
            runner = CliRunner()
            result = runner.invoke(main, ["tools", "list"])

        assert result.exit_code == 0
        assert "No tools registered" in result.output


class TestVersion:
    def test_version_option(self) -> None:
        runner = CliRunner()
        result = runner.invoke(main, ["--version"])

        assert result.exit_code == 0
        assert "stateless-mcp" in result.output
        assert "0.1.0" in result.output
