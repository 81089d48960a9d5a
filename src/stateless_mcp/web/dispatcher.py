"""EndpointDispatcher — the ASGI entry point for ``GET /mcp`` and ``POST /mcp``.

Every HTTP request gets its own :class:`SessionBridge`, created, bound and
released inside one call.  Nothing about a request outlives its connection,
which keeps colliding client-chosen JSON-RPC ids in separate exchanges.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from starlette.requests import ClientDisconnect, Request
from starlette.responses import JSONResponse

from stateless_mcp.protocol.errors import INTERNAL_ERROR, TRANSPORT_ERROR
from stateless_mcp.protocol.models import error_envelope
from stateless_mcp.transport.bridge import SessionBridge
from stateless_mcp.transport.errors import PayloadTooLargeError
from stateless_mcp.utils.telemetry import ATTR_HTTP_METHOD, ATTR_HTTP_STATUS, get_tracer

if TYPE_CHECKING:
    from starlette.types import Message, Receive, Scope, Send

    from stateless_mcp.protocol.server import McpServer

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

# Largest accepted request body, matching the MCP SDK message limit.
DEFAULT_MAX_BODY_SIZE = 4 * 1024 * 1024


class _ResponseTracker:
    """Wraps an ASGI ``send`` and records the status once headers go out."""

    def __init__(self, send: Send) -> None:
        self._send = send
        self.status: int | None = None

    @property
    def headers_sent(self) -> bool:
        return self.status is not None

    async def send(self, message: Message) -> None:
        if message["type"] == "http.response.start":
            self.status = message["status"]
        await self._send(message)


class EndpointDispatcher:
    """Routes ``/mcp`` requests through a fresh bridge to the shared server.

    The dispatcher is an ASGI application; mount it on a route that accepts
    ``GET`` and ``POST``::

        dispatcher = EndpointDispatcher(server)
        app.router.routes.append(Route("/mcp", endpoint=dispatcher, methods=["GET", "POST"]))

    Request bodies larger than *max_body_size* bytes are refused with 413.
    """

    def __init__(self, server: McpServer, *, max_body_size: int = DEFAULT_MAX_BODY_SIZE) -> None:
        self._server = server
        self._max_body_size = max_body_size

    @property
    def max_body_size(self) -> int:
        return self._max_body_size

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive)
        if request.method == "GET":
            await self.handle_get(request, send)
        else:
            await self.handle_post(request, send)

    async def handle_get(self, request: Request, send: Send) -> None:
        """Entry point for clients asking for a server-initiated event stream."""
        await self._dispatch(request, send)

    async def handle_post(self, request: Request, send: Send) -> None:
        """Entry point for JSON-RPC call/response exchanges."""
        await self._dispatch(request, send)

    async def _dispatch(self, request: Request, send: Send) -> None:
        tracker = _ResponseTracker(send)
        bridge: SessionBridge | None = None
        watcher: asyncio.Task[None] | None = None

        with _tracer.start_as_current_span("mcp.http.request") as span:
            span.set_attribute(ATTR_HTTP_METHOD, request.method)
            try:
                request = await _buffer_body(request, self._max_body_size)
                bridge = SessionBridge(json_response=True)
                watcher = asyncio.create_task(_close_on_disconnect(request, bridge))
                await self._server.connect(bridge)
                await bridge.handle_request(request, tracker.send)
            except ClientDisconnect:
                logger.debug("Client disconnected before sending the full %s body", request.method)
            except PayloadTooLargeError as exc:
                logger.warning("Rejecting %s request: %s", request.method, exc)
                await _write_error(request, tracker.send, 413, TRANSPORT_ERROR, f"Payload Too Large: {exc}")
            except Exception:
                logger.exception("Error handling MCP %s request", request.method)
                if tracker.headers_sent:
                    logger.error("Response already started; cannot send an error envelope")
                else:
                    await _write_error(request, tracker.send, 500, INTERNAL_ERROR, "Internal server error")
            finally:
                if watcher is not None:
                    watcher.cancel()
                if bridge is not None:
                    await bridge.close()
                if tracker.status is not None:
                    span.set_attribute(ATTR_HTTP_STATUS, tracker.status)


async def _buffer_body(request: Request, limit: int) -> Request:
    """Read the whole body (at most *limit* bytes) and return a request that replays it.

    Raises :class:`PayloadTooLargeError` as soon as the declared or received
    size exceeds *limit*, and :class:`ClientDisconnect` if the client leaves
    mid-body.
    """
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > limit:
        raise PayloadTooLargeError(limit)

    chunks: list[bytes] = []
    size = 0
    async for chunk in request.stream():
        size += len(chunk)
        if size > limit:
            raise PayloadTooLargeError(limit)
        chunks.append(chunk)

    buffered = Request(request.scope, _replay(b"".join(chunks), request.receive))
    # Caches the body on the new request; later receives reach the connection.
    await buffered.body()
    return buffered


def _replay(body: bytes, receive: Receive) -> Receive:
    delivered = False

    async def replay() -> Message:
        nonlocal delivered
        if not delivered:
            delivered = True
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return replay


async def _close_on_disconnect(request: Request, bridge: SessionBridge) -> None:
    """Close *bridge* when the client drops the connection.

    Must only run after the body was read: it consumes the remaining ASGI
    receive channel, where the next message is ``http.disconnect``.
    """
    while True:
        message = await request.receive()
        if message["type"] == "http.disconnect":
            break
    if not bridge.closed:
        logger.debug("Client disconnected from %s %s", request.method, request.url.path)
        await bridge.close()


async def _write_error(request: Request, send: Send, status: int, code: int, message: str) -> None:
    response = JSONResponse(error_envelope(code, message), status_code=status)
    await response(request.scope, request.receive, send)
