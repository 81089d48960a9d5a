"""stateless-mcp CLI entrypoint."""

from __future__ import annotations

import click

from stateless_mcp import __version__


@click.group()
@click.version_option(version=__version__, prog_name="stateless-mcp")
def main() -> None:
    """stateless-mcp — MCP tools over per-request HTTP transports."""


# Register subcommands
from stateless_mcp.cli_commands import register_commands  # noqa: E402

register_commands(main)

if __name__ == "__main__":
    main()
