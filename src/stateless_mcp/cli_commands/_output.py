"""Shared CLI output formatters."""

from __future__ import annotations

import json

from rich.console import Console
from rich.table import Table

from stateless_mcp.protocol.models import ToolDefinition  # noqa: TC001

console = Console()


def print_tools_table(tools: list[ToolDefinition], *, as_json: bool = False) -> None:
    """Pretty-print tool definitions as a table, or as the ``tools/list`` JSON."""
    if as_json:
        payload = [t.model_dump(by_alias=True, exclude_none=True) for t in tools]
        console.print_json(json.dumps({"tools": payload}))
        return

    table = Table(title="Registered Tools")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Title")
    table.add_column("Arguments")
    table.add_column("Structured output")

    for tool in tools:
        arguments = ", ".join(tool.input_schema.get("properties", {})) or "-"
        table.add_row(
            tool.name,
            _truncate(tool.title or tool.description),
            arguments,
            "yes" if tool.output_schema else "no",
        )

    console.print(table)


def _truncate(text: str, max_len: int = 60) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."
