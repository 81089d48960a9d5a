"""Shared error types for the protocol layer.

Every :class:`ProtocolError` maps onto a JSON-RPC error object via its
``code``; registry errors are startup failures and never reach a client.
"""

from __future__ import annotations

from typing import Any

from stateless_mcp.protocol.models import JsonRpcError

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603
# Implementation-defined server error used for HTTP-level rejections.
TRANSPORT_ERROR = -32000


class ProtocolError(Exception):
    """Base error for failures reported to the client as JSON-RPC errors."""

    code: int = INTERNAL_ERROR

    def __init__(self, message: str, data: Any = None) -> None:
        self.message = message
        self.data = data
        super().__init__(message)

    def to_error(self) -> JsonRpcError:
        return JsonRpcError(code=self.code, message=self.message, data=self.data)


class InvalidRequestError(ProtocolError):
    """The payload is JSON but not a valid JSON-RPC 2.0 message."""

    code = INVALID_REQUEST


class MethodNotFoundError(ProtocolError):
    """The requested JSON-RPC method is not served."""

    code = METHOD_NOT_FOUND

    def __init__(self, method: str) -> None:
        self.method = method
        super().__init__(f"Method not found: {method}")


class InvalidParamsError(ProtocolError):
    """The method parameters (or tool arguments) failed validation."""

    code = INVALID_PARAMS


class InternalError(ProtocolError):
    """The server failed while producing a response."""

    code = INTERNAL_ERROR


class ToolNotFoundError(InvalidParamsError):
    """Requested tool does not exist in the registry."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Tool {name} not found")


class ToolExecutionError(ProtocolError):
    """A tool handler failed while doing its work."""

    def __init__(self, name: str, detail: str = "") -> None:
        self.name = name
        self.detail = detail
        super().__init__(f"Tool execution failed: {name}" + (f": {detail}" if detail else ""))


class RegistryError(Exception):
    """Base error for tool registration failures."""


class DuplicateToolError(RegistryError):
    """A tool with the same name is already registered."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Tool already registered: {name}")


class RegistryFrozenError(RegistryError):
    """Registration was attempted after the startup phase ended."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Cannot register tool {name}: registry is frozen")
