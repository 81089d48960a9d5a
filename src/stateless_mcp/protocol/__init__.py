"""MCP protocol — JSON-RPC models and error types.

The shared protocol server lives in :mod:`stateless_mcp.protocol.server`.
"""

from stateless_mcp.protocol.errors import (
    InvalidParamsError,
    MethodNotFoundError,
    ProtocolError,
    ToolExecutionError,
    ToolNotFoundError,
)
from stateless_mcp.protocol.models import (
    CallToolResult,
    JsonRpcError,
    JsonRpcRequest,
    JsonRpcResponse,
    TextContent,
    ToolDefinition,
)

__all__ = [
    "CallToolResult",
    "InvalidParamsError",
    "JsonRpcError",
    "JsonRpcRequest",
    "JsonRpcResponse",
    "MethodNotFoundError",
    "ProtocolError",
    "TextContent",
    "ToolDefinition",
    "ToolExecutionError",
    "ToolNotFoundError",
]
