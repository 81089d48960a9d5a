"""``stateless-mcp serve`` — run the HTTP server."""

from __future__ import annotations

import logging
import sys

import click
from pydantic import ValidationError
from rich.markup import escape

from stateless_mcp.cli_commands._output import console

logger = logging.getLogger(__name__)


@click.command()
@click.option("--host", default=None, help="Interface to listen on (env: HOST).")
@click.option("--port", type=int, default=None, help="TCP port (env: PORT, default 3000).")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default=None,
    help="Log level (env: MCP_LOG_LEVEL).",
)
@click.option("--telemetry", is_flag=True, help="Export tracing spans to the console.")
def serve(
    host: str | None,
    port: int | None,
    log_level: str | None,
    telemetry: bool,
) -> None:
    """Serve the MCP endpoint over HTTP in stateless mode."""
    from stateless_mcp.app import build_server
    from stateless_mcp.config import ServerSettings
    from stateless_mcp.log import configure_logging
    from stateless_mcp.web.app import create_app, run_server

    try:
        settings = ServerSettings.from_env(
            host=host,
            port=port,
            log_level=log_level,
            telemetry=telemetry or None,
        )
    except ValidationError as exc:
        console.print(f"[red]Configuration error:[/red] {escape(str(exc))}")
        sys.exit(1)

    configure_logging(settings.log_level)

    if settings.telemetry:
        from stateless_mcp.utils.telemetry import configure_telemetry

        try:
            configure_telemetry(service_name="stateless-mcp")
        except ImportError as exc:
            console.print(f"[red]Telemetry error:[/red] {escape(str(exc))}")
            sys.exit(1)

    app = create_app(
        build_server(settings),
        path=settings.path,
        max_body_size=settings.max_body_size,
    )

    try:
        run_server(app, settings)
    except OSError as exc:
        logger.error("Server error: %s", exc)
        sys.exit(1)
