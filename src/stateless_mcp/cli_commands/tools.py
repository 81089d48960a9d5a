"""``stateless-mcp tools`` — inspect the tools the server exposes."""

from __future__ import annotations

import click

from stateless_mcp.cli_commands._output import console, print_tools_table


@click.group()
def tools() -> None:
    """Inspect registered tools."""


@tools.command("list")
@click.option("--json", "as_json", is_flag=True, help="Output the tools/list payload as JSON.")
def list_tools(as_json: bool) -> None:
    """List the tools a client discovers through ``tools/list``."""
    from stateless_mcp.app import build_server

    definitions = build_server().registry.list_tools()
    if not definitions:
        console.print("[yellow]No tools registered.[/yellow]")
        return

    print_tools_table(definitions, as_json=as_json)
