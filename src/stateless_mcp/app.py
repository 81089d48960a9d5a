"""Server assembly — the startup-only registration phase."""

from __future__ import annotations

from stateless_mcp.config import ServerSettings
from stateless_mcp.protocol.server import McpServer
from stateless_mcp.tools.echo import ECHO_TOOL
from stateless_mcp.tools.weather import make_weather_tool


def build_server(settings: ServerSettings | None = None) -> McpServer:
    """Create the protocol server with the bundled tools registered.

    The registry stays open until :func:`stateless_mcp.web.app.create_app`
    freezes it.
    """
    settings = settings or ServerSettings()
    server = McpServer(settings.server_name, settings.server_version)
    server.register_tool(ECHO_TOOL)
    server.register_tool(make_weather_tool(timeout=settings.http_timeout))
    return server
