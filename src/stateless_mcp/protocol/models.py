"""MCP models — JSON-RPC 2.0 messages and tool payloads.

Implements the message format the server speaks for the handshake
(``initialize``), tool discovery (``tools/list``) and execution
(``tools/call``).
"""

from __future__ import annotations

import json
from typing import Any, Literal

from pydantic import BaseModel, Field, StrictInt, StrictStr

# ---------------------------------------------------------------------------
# JSON-RPC 2.0 envelope
# ---------------------------------------------------------------------------

# Strict: JSON-RPC ids are strings, numbers or null, never booleans.
RequestId = StrictInt | StrictStr | None


class JsonRpcRequest(BaseModel):
    """A JSON-RPC 2.0 request, or a notification when ``id`` is absent."""

    jsonrpc: Literal["2.0"] = "2.0"
    method: str
    id: RequestId = None
    params: dict[str, Any] = {}

    @property
    def is_notification(self) -> bool:
        return "id" not in self.model_fields_set


class JsonRpcError(BaseModel):
    """A JSON-RPC 2.0 error object."""

    code: int
    message: str
    data: Any = None


class JsonRpcResponse(BaseModel):
    """A JSON-RPC 2.0 response message."""

    jsonrpc: Literal["2.0"] = "2.0"
    id: RequestId = None
    result: dict[str, Any] | None = None
    error: JsonRpcError | None = None

    def to_wire(self) -> dict[str, Any]:
        """Serialize with exactly one of ``result`` / ``error`` and an explicit ``id``."""
        payload: dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            payload["error"] = self.error.model_dump(exclude_none=True)
        else:
            payload["result"] = self.result if self.result is not None else {}
        return payload


def error_envelope(code: int, message: str, request_id: RequestId = None) -> dict[str, Any]:
    """Build a wire-ready error response."""
    return JsonRpcResponse(id=request_id, error=JsonRpcError(code=code, message=message)).to_wire()


# ---------------------------------------------------------------------------
# MCP-specific payloads
# ---------------------------------------------------------------------------


class TextContent(BaseModel):
    """Plain text content block."""

    type: Literal["text"] = "text"
    text: str


class CallToolParams(BaseModel):
    """Parameters of a ``tools/call`` request."""

    name: str
    arguments: dict[str, Any] | None = None


class CallToolResult(BaseModel):
    """The result of a ``tools/call`` request."""

    model_config = {"populate_by_name": True}

    content: list[TextContent] = []
    structured_content: dict[str, Any] | None = Field(default=None, alias="structuredContent")
    is_error: bool = Field(default=False, alias="isError")

    @classmethod
    def from_text(cls, text: str) -> CallToolResult:
        """A result carrying a single text block and no structured content."""
        return cls(content=[TextContent(text=text)])

    @classmethod
    def from_structured(cls, data: dict[str, Any], *, indent: int | None = None) -> CallToolResult:
        """A result whose text block is the JSON rendering of *data*."""
        separators = (",", ":") if indent is None else None
        text = json.dumps(data, indent=indent, separators=separators, ensure_ascii=False)
        return cls(content=[TextContent(text=text)], structured_content=data)

    @classmethod
    def from_error(cls, message: str) -> CallToolResult:
        """A tool-scoped failure reported to the client as a result."""
        return cls(content=[TextContent(text=message)], is_error=True)

    def to_wire(self) -> dict[str, Any]:
        payload = self.model_dump(by_alias=True, exclude_none=True)
        if not self.is_error:
            payload.pop("isError", None)
        return payload


class ToolDefinition(BaseModel):
    """A tool definition as returned by ``tools/list``."""

    model_config = {"populate_by_name": True}

    name: str
    title: str | None = None
    description: str = ""
    input_schema: dict[str, Any] = Field(default_factory=dict, alias="inputSchema")
    output_schema: dict[str, Any] | None = Field(default=None, alias="outputSchema")


class ServerInfo(BaseModel):
    """Implementation name and version reported during ``initialize``."""

    name: str
    version: str


class InitializeResult(BaseModel):
    """The result of an ``initialize`` request."""

    model_config = {"populate_by_name": True}

    protocol_version: str = Field(alias="protocolVersion")
    capabilities: dict[str, Any] = Field(default_factory=dict)
    server_info: ServerInfo = Field(alias="serverInfo")
