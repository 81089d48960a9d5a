"""The ``echo`` tool."""

from __future__ import annotations

from pydantic import BaseModel, Field

from stateless_mcp.protocol.models import CallToolResult
from stateless_mcp.tools.registry import ToolDescriptor

ECHO_PREFIX = "Tool echo: "


class EchoInput(BaseModel):
    message: str = Field(..., description="The message to echo back")


class EchoOutput(BaseModel):
    echo: str


def echo_message(message: str) -> EchoOutput:
    return EchoOutput(echo=f"{ECHO_PREFIX}{message}")


async def handle_echo(arguments: EchoInput) -> CallToolResult:
    output = echo_message(arguments.message)
    return CallToolResult.from_structured(output.model_dump())


ECHO_TOOL = ToolDescriptor(
    name="echo",
    title="Echo Tool",
    description="Echoes back the provided message",
    input_model=EchoInput,
    output_model=EchoOutput,
    handler=handle_echo,
)
