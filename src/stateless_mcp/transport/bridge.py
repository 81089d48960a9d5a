"""SessionBridge — a single-use streamable HTTP transport.

A bridge translates exactly one HTTP request into one logical MCP exchange
and writes the answer back to the same connection.  It never issues or reads
an ``mcp-session-id``: JSON-RPC ids chosen by different clients may collide,
so a transport is never reused across HTTP requests.

Lifecycle::

    new --bind()--> bound --handle_request()--> handling --> completed

    close() moves any state to closed.

Once a bridge has completed or been closed, any further use raises
:class:`BridgeStateError`.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING, Any

from starlette.responses import JSONResponse, Response

from stateless_mcp.protocol.errors import (
    INVALID_REQUEST,
    PARSE_ERROR,
    TRANSPORT_ERROR,
)
from stateless_mcp.protocol.models import error_envelope
from stateless_mcp.protocol.server import SUPPORTED_PROTOCOL_VERSIONS
from stateless_mcp.transport.errors import BridgeStateError
from stateless_mcp.utils.telemetry import ATTR_RPC_BATCH_SIZE, get_tracer

if TYPE_CHECKING:
    from starlette.requests import Request
    from starlette.types import Message, Send

    from stateless_mcp.protocol.server import McpServer

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

PROTOCOL_VERSION_HEADER = "mcp-protocol-version"
JSON_MEDIA_TYPE = "application/json"
SSE_MEDIA_TYPE = "text/event-stream"


class BridgeState(str, Enum):
    """Lifecycle state of a :class:`SessionBridge`."""

    NEW = "new"
    BOUND = "bound"
    HANDLING = "handling"
    COMPLETED = "completed"
    CLOSED = "closed"


class SessionBridge:
    """Stateless, single-use transport between one HTTP request and an :class:`McpServer`.

    Parameters
    ----------
    json_response:
        When ``True`` (the default) all responses are collected and written as
        one JSON body.  When ``False`` they are streamed as server-sent events
        as each one completes, which means the response headers go out before
        any tool runs.

    Usage::

        bridge = SessionBridge()
        bridge.on_close(lambda: logger.debug("released"))
        await server.connect(bridge)
        try:
            await bridge.handle_request(request, send)
        finally:
            await bridge.close()
    """

    def __init__(self, *, json_response: bool = True) -> None:
        self.json_response = json_response
        self._state = BridgeState.NEW
        self._server: McpServer | None = None
        self._send: Send | None = None
        self._headers_sent = False
        self._close_callbacks: list[Callable[[], None]] = []

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> BridgeState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._state is BridgeState.CLOSED

    @property
    def headers_sent(self) -> bool:
        """Whether ``http.response.start`` has gone out through this bridge."""
        return self._headers_sent

    @property
    def session_id(self) -> None:
        """Always ``None``: stateless bridges carry no session identity."""
        return None

    def on_close(self, callback: Callable[[], None]) -> None:
        """Run *callback* once when the bridge is closed."""
        if self.closed:
            raise BridgeStateError(self._state.value, "register a close callback")
        self._close_callbacks.append(callback)

    def bind(self, server: McpServer) -> None:
        """Attach the protocol server that will answer this bridge's messages."""
        if self._state is not BridgeState.NEW:
            raise BridgeStateError(self._state.value, "bind a server")
        self._server = server
        self._state = BridgeState.BOUND

    async def close(self) -> None:
        """Release the bridge. Safe to call any number of times.

        Output produced after closing (for example by a tool that was still
        running when the client went away) is discarded.
        """
        if self._state is BridgeState.CLOSED:
            return
        previous = self._state
        self._state = BridgeState.CLOSED
        self._server = None
        callbacks, self._close_callbacks = self._close_callbacks, []
        for callback in callbacks:
            callback()
        logger.debug("Session bridge closed (was %s)", previous.value)

    # ------------------------------------------------------------------
    # Request handling
    # ------------------------------------------------------------------

    async def handle_request(self, request: Request, send: Send) -> None:
        """Answer *request* on *send*. May be called exactly once, after :meth:`bind`."""
        if self._state is not BridgeState.BOUND:
            raise BridgeStateError(self._state.value, "handle a request")
        assert self._server is not None
        server = self._server
        self._state = BridgeState.HANDLING
        self._send = send

        try:
            if request.method == "POST":
                await self._handle_post(request, server)
            elif request.method == "GET":
                await self._handle_get(request)
            else:
                await self._write_error(
                    405,
                    TRANSPORT_ERROR,
                    "Method Not Allowed",
                    headers={"Allow": "POST"},
                    request=request,
                )
        finally:
            if self._state is BridgeState.HANDLING:
                self._state = BridgeState.COMPLETED

    async def _handle_get(self, request: Request) -> None:
        if SSE_MEDIA_TYPE not in request.headers.get("accept", ""):
            await self._write_error(
                406,
                TRANSPORT_ERROR,
                "Not Acceptable: Client must accept text/event-stream",
                request=request,
            )
            return
        await self._write_error(
            405,
            TRANSPORT_ERROR,
            "Method Not Allowed: server-initiated streams are not available in stateless mode",
            headers={"Allow": "POST"},
            request=request,
        )

    async def _handle_post(self, request: Request, server: McpServer) -> None:
        accept = request.headers.get("accept", "")
        if JSON_MEDIA_TYPE not in accept or SSE_MEDIA_TYPE not in accept:
            await self._write_error(
                406,
                TRANSPORT_ERROR,
                "Not Acceptable: Client must accept both application/json and text/event-stream",
                request=request,
            )
            return

        if JSON_MEDIA_TYPE not in request.headers.get("content-type", ""):
            await self._write_error(
                415,
                TRANSPORT_ERROR,
                "Unsupported Media Type: Content-Type must be application/json",
                request=request,
            )
            return

        try:
            body = json.loads(await request.body())
        except ValueError:
            await self._write_error(400, PARSE_ERROR, "Parse error: Invalid JSON", request=request)
            return

        is_batch = isinstance(body, list)
        messages: list[Any] = body if is_batch else [body]
        if not messages or not all(_is_jsonrpc_message(m) for m in messages):
            await self._write_error(
                400,
                INVALID_REQUEST,
                "Invalid Request: expected a JSON-RPC 2.0 message or a non-empty batch",
                request=request,
            )
            return

        requests = [m for m in messages if "method" in m and "id" in m]
        is_initialize = any(m["method"] == "initialize" for m in requests)
        if is_initialize and len(messages) > 1:
            await self._write_error(
                400,
                INVALID_REQUEST,
                "Invalid Request: Only one initialization request is allowed",
                request=request,
            )
            return

        version = request.headers.get(PROTOCOL_VERSION_HEADER)
        if not is_initialize and version is not None and version not in SUPPORTED_PROTOCOL_VERSIONS:
            supported = ", ".join(SUPPORTED_PROTOCOL_VERSIONS)
            await self._write_error(
                400,
                TRANSPORT_ERROR,
                f"Bad Request: Unsupported protocol version (supported versions: {supported})",
                request=request,
            )
            return

        with _tracer.start_as_current_span("mcp.bridge.exchange") as span:
            span.set_attribute(ATTR_RPC_BATCH_SIZE, len(messages))

            for message in messages:
                if not ("method" in message and "id" in message):
                    await server.handle_message(message)

            if not requests:
                await self._write(Response(status_code=202), request)
                return

            if self.json_response:
                answers = await asyncio.gather(*(server.handle_message(m) for m in requests))
                responses = [a for a in answers if a is not None]
                payload: Any = responses if is_batch else responses[0]
                await self._write(JSONResponse(payload), request)
            else:
                await self._stream(server, requests)

    async def _stream(self, server: McpServer, requests: list[dict[str, Any]]) -> None:
        await self._emit({
            "type": "http.response.start",
            "status": 200,
            "headers": [
                (b"content-type", SSE_MEDIA_TYPE.encode()),
                (b"cache-control", b"no-cache"),
                (b"connection", b"keep-alive"),
            ],
        })
        for pending in asyncio.as_completed([server.handle_message(m) for m in requests]):
            answer = await pending
            if answer is None:
                continue
            await self._emit({
                "type": "http.response.body",
                "body": _sse_event(answer),
                "more_body": True,
            })
        await self._emit({"type": "http.response.body", "body": b"", "more_body": False})

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    async def _write_error(
        self,
        status: int,
        code: int,
        message: str,
        *,
        request: Request,
        headers: dict[str, str] | None = None,
    ) -> None:
        logger.debug("Rejecting %s request with HTTP %d: %s", request.method, status, message)
        response = JSONResponse(error_envelope(code, message), status_code=status, headers=headers)
        await self._write(response, request)

    async def _write(self, response: Response, request: Request) -> None:
        await response(request.scope, request.receive, self._emit)

    async def _emit(self, message: Message) -> None:
        if self.closed or self._send is None:
            logger.debug("Discarding %s: session bridge is closed", message["type"])
            return
        if message["type"] == "http.response.start":
            self._headers_sent = True
        await self._send(message)


def _is_jsonrpc_message(message: Any) -> bool:
    if not isinstance(message, dict) or message.get("jsonrpc") != "2.0":
        return False
    if "method" in message:
        return isinstance(message["method"], str)
    return "result" in message or "error" in message


def _sse_event(payload: dict[str, Any]) -> bytes:
    data = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
    return f"event: message\ndata: {data}\n\n".encode()
