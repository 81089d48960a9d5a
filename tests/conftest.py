"""Shared fixtures: fake ASGI connections and servers with test tools."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest
from pydantic import BaseModel
from starlette.requests import Request

from stateless_mcp.protocol.models import CallToolResult
from stateless_mcp.protocol.server import McpServer
from stateless_mcp.tools.echo import ECHO_TOOL
from stateless_mcp.tools.registry import ToolDescriptor

MCP_HEADERS = {
    "accept": "application/json, text/event-stream",
    "content-type": "application/json",
}


class FakeConnection:
    """One HTTP connection as seen by an ASGI app.

    ``receive`` yields the body once, then blocks until :meth:`disconnect`
    is called.  Everything the app sends is recorded in ``sent``.
    """

    def __init__(
        self,
        body: Any = None,
        *,
        method: str = "POST",
        headers: dict[str, str] | None = None,
        raw_body: bytes | None = None,
    ) -> None:
        if raw_body is None:
            raw_body = b"" if body is None else json.dumps(body).encode()
        self._body = raw_body
        self._body_delivered = False
        self._disconnected = asyncio.Event()
        self.sent: list[dict[str, Any]] = []
        header_items = MCP_HEADERS if headers is None else headers
        self.scope: dict[str, Any] = {
            "type": "http",
            "asgi": {"version": "3.0"},
            "http_version": "1.1",
            "method": method,
            "scheme": "http",
            "path": "/mcp",
            "raw_path": b"/mcp",
            "root_path": "",
            "query_string": b"",
            "headers": [(k.lower().encode(), v.encode()) for k, v in header_items.items()],
            "client": ("127.0.0.1", 50000),
            "server": ("testserver", 80),
        }

    def request(self) -> Request:
        return Request(self.scope, self.receive)

    def disconnect(self) -> None:
        self._disconnected.set()

    async def receive(self) -> dict[str, Any]:
        if not self._body_delivered:
            self._body_delivered = True
            return {"type": "http.request", "body": self._body, "more_body": False}
        await self._disconnected.wait()
        return {"type": "http.disconnect"}

    async def send(self, message: dict[str, Any]) -> None:
        self.sent.append(message)

    @property
    def starts(self) -> list[dict[str, Any]]:
        return [m for m in self.sent if m["type"] == "http.response.start"]

    @property
    def status(self) -> int:
        return int(self.starts[0]["status"])

    @property
    def headers(self) -> dict[str, str]:
        return {k.decode(): v.decode() for k, v in self.starts[0]["headers"]}

    @property
    def body(self) -> bytes:
        return b"".join(m.get("body", b"") for m in self.sent if m["type"] == "http.response.body")

    def json(self) -> Any:
        return json.loads(self.body)


class Gate:
    """A tool handler that blocks until released, recording what it saw."""

    def __init__(self) -> None:
        self.started = asyncio.Event()
        self.release = asyncio.Event()
        self.finished = False
        self.messages: list[str] = []

    async def __call__(self, arguments: Any) -> CallToolResult:
        self.messages.append(arguments.message)
        self.started.set()
        await self.release.wait()
        self.finished = True
        return CallToolResult.from_structured({"echo": arguments.message})


class MessageInput(BaseModel):
    message: str


def tool_call(request_id: Any, name: str, arguments: dict[str, Any]) -> dict[str, Any]:
    return {
        "jsonrpc": "2.0",
        "id": request_id,
        "method": "tools/call",
        "params": {"name": name, "arguments": arguments},
    }


@pytest.fixture
def make_connection() -> type[FakeConnection]:
    return FakeConnection


@pytest.fixture
def call() -> Any:
    return tool_call


@pytest.fixture
def server() -> McpServer:
    server = McpServer()
    server.register_tool(ECHO_TOOL)
    return server


@pytest.fixture
def gate() -> Gate:
    return Gate()


@pytest.fixture
def gated_server(gate: Gate) -> McpServer:
    """A server whose ``wait`` tool blocks on :class:`Gate`."""
    server = McpServer()
    server.register_tool(ECHO_TOOL)
    server.register_tool(
        ToolDescriptor(
            name="wait",
            description="Blocks until released",
            input_model=MessageInput,
            handler=gate,
        )
    )
    return server
