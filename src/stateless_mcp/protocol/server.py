"""McpServer — the protocol server that owns the tool registry.

One instance is shared by the whole process.  It keeps no per-client state:
every message is answered from the message itself and the frozen registry,
so any number of transports may be bound to it concurrently.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any, Protocol, runtime_checkable

from pydantic import ValidationError

from stateless_mcp.protocol.errors import (
    INTERNAL_ERROR,
    InvalidParamsError,
    InvalidRequestError,
    MethodNotFoundError,
    ProtocolError,
)
from stateless_mcp.protocol.models import (
    CallToolParams,
    InitializeResult,
    JsonRpcError,
    JsonRpcRequest,
    JsonRpcResponse,
    ServerInfo,
)
from stateless_mcp.tools.registry import ToolDescriptor, ToolRegistry
from stateless_mcp.utils.telemetry import ATTR_RPC_METHOD, get_tracer

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

LATEST_PROTOCOL_VERSION = "2025-06-18"
SUPPORTED_PROTOCOL_VERSIONS = (
    LATEST_PROTOCOL_VERSION,
    "2025-03-26",
    "2024-11-05",
    "2024-10-07",
)

DEFAULT_SERVER_NAME = "R&D test MCP server"
DEFAULT_SERVER_VERSION = "0.0.1"

_MethodHandler = Callable[[dict[str, Any]], Awaitable[dict[str, Any]]]


@runtime_checkable
class ServerTransport(Protocol):
    """A transport that can be attached to a server for one exchange."""

    def bind(self, server: McpServer) -> None: ...


class McpServer:
    """Answers MCP JSON-RPC messages from a :class:`ToolRegistry`.

    Usage::

        server = McpServer()
        server.register_tool(ECHO_TOOL)
        server.registry.freeze()

        bridge = SessionBridge()
        await server.connect(bridge)
        await bridge.handle_request(request, send)
    """

    def __init__(
        self,
        name: str = DEFAULT_SERVER_NAME,
        version: str = DEFAULT_SERVER_VERSION,
        *,
        registry: ToolRegistry | None = None,
    ) -> None:
        self.info = ServerInfo(name=name, version=version)
        self.registry = registry if registry is not None else ToolRegistry()
        self._methods: dict[str, _MethodHandler] = {
            "initialize": self._initialize,
            "ping": self._ping,
            "tools/list": self._list_tools,
            "tools/call": self._call_tool,
        }

    def register_tool(self, descriptor: ToolDescriptor) -> None:
        """Register a tool during startup."""
        self.registry.register(descriptor)

    async def connect(self, transport: ServerTransport) -> None:
        """Attach this server to *transport*.

        The server does not keep a reference to the transport, so binding
        one per request leaves no trace once the request is over.
        """
        transport.bind(self)

    async def handle_message(self, message: dict[str, Any]) -> dict[str, Any] | None:
        """Process one inbound message and return the wire response.

        Returns ``None`` for notifications and for responses sent by the
        client, which need no answer.
        """
        if "method" not in message:
            # No server-initiated requests are ever pending in stateless mode.
            logger.debug("Ignoring client response for id %r", message.get("id"))
            return None

        with _tracer.start_as_current_span("mcp.rpc.message") as span:
            try:
                request = JsonRpcRequest.model_validate(message)
            except ValidationError as exc:
                error = InvalidRequestError(f"Invalid Request: {exc.error_count()} validation error(s)")
                return JsonRpcResponse(id=_raw_id(message), error=error.to_error()).to_wire()

            span.set_attribute(ATTR_RPC_METHOD, request.method)

            if request.is_notification:
                logger.debug("Received notification %s", request.method)
                return None

            handler = self._methods.get(request.method)
            try:
                if handler is None:
                    raise MethodNotFoundError(request.method)
                result = await handler(request.params)
            except ProtocolError as exc:
                return JsonRpcResponse(id=request.id, error=exc.to_error()).to_wire()
            except Exception as exc:
                logger.exception("Unhandled error while processing %s", request.method)
                error = JsonRpcError(code=INTERNAL_ERROR, message=str(exc) or "Internal error")
                return JsonRpcResponse(id=request.id, error=error).to_wire()

            return JsonRpcResponse(id=request.id, result=result).to_wire()

    # ------------------------------------------------------------------
    # Method handlers
    # ------------------------------------------------------------------

    async def _initialize(self, params: dict[str, Any]) -> dict[str, Any]:
        requested = params.get("protocolVersion")
        version = requested if requested in SUPPORTED_PROTOCOL_VERSIONS else LATEST_PROTOCOL_VERSION
        result = InitializeResult(
            protocol_version=version,
            capabilities={"tools": {"listChanged": False}},
            server_info=self.info,
        )
        return result.model_dump(by_alias=True)

    async def _ping(self, params: dict[str, Any]) -> dict[str, Any]:
        return {}

    async def _list_tools(self, params: dict[str, Any]) -> dict[str, Any]:
        tools = [tool.model_dump(by_alias=True, exclude_none=True) for tool in self.registry.list_tools()]
        return {"tools": tools}

    async def _call_tool(self, params: dict[str, Any]) -> dict[str, Any]:
        try:
            call = CallToolParams.model_validate(params)
        except ValidationError as exc:
            msg = "Invalid params for tools/call: 'name' must be a string and 'arguments' an object"
            raise InvalidParamsError(msg) from exc
        result = await self.registry.invoke(call.name, call.arguments)
        return result.to_wire()


def _raw_id(message: dict[str, Any]) -> int | str | None:
    raw = message.get("id")
    return raw if isinstance(raw, (int, str)) and not isinstance(raw, bool) else None
