"""End-to-end tests of the HTTP application through httpx's ASGI transport."""

from __future__ import annotations

import asyncio
import logging
from typing import Any
from unittest.mock import patch

import httpx
import pytest
from pydantic import BaseModel

from stateless_mcp.config import ServerSettings
from stateless_mcp.protocol.errors import RegistryFrozenError
from stateless_mcp.protocol.models import CallToolResult
from stateless_mcp.protocol.server import McpServer
from stateless_mcp.tools.echo import ECHO_TOOL
from stateless_mcp.tools.registry import ToolDescriptor
from stateless_mcp.web.app import bind_socket, create_app, run_server

MCP_HEADERS = {
    "accept": "application/json, text/event-stream",
    "content-type": "application/json",
}


class TagInput(BaseModel):
    tag: str


def _client(app: Any) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")


def _rendezvous_server(parties: int) -> McpServer:
    """A server whose ``rendezvous`` tool only returns once *parties* calls are in flight."""
    barrier = asyncio.Barrier(parties)

    async def rendezvous(arguments: TagInput) -> CallToolResult:
        await barrier.wait()
        return CallToolResult.from_text(arguments.tag)

    server = McpServer()
    server.register_tool(
        ToolDescriptor(
            name="rendezvous",
            description="Waits for its peers",
            input_model=TagInput,
            handler=rendezvous,
        )
    )
    return server


class TestCreateApp:
    def test_freezes_registry(self, server) -> None:
        create_app(server)
        assert server.registry.frozen
        with pytest.raises(RegistryFrozenError):
            server.register_tool(ECHO_TOOL)

    def test_exposes_server_on_state(self, server) -> None:
        app = create_app(server)
        assert app.state.mcp_server is server

    def test_no_docs_routes(self, server) -> None:
        app = create_app(server)
        paths = {getattr(route, "path", None) for route in app.routes}
        assert "/docs" not in paths
        assert "/openapi.json" not in paths
        assert "/mcp" in paths


class TestMcpEndpoint:
    async def test_initialize(self, server) -> None:
        async with _client(create_app(server)) as client:
            response = await client.post(
                "/mcp",
                headers=MCP_HEADERS,
                json={
                    "jsonrpc": "2.0",
                    "id": 1,
                    "method": "initialize",
                    "params": {
                        "protocolVersion": "2025-03-26",
                        "capabilities": {},
                        "clientInfo": {"name": "test", "version": "1.0"},
                    },
                },
            )

        assert response.status_code == 200
        assert "mcp-session-id" not in response.headers
        result = response.json()["result"]
        assert result["protocolVersion"] == "2025-03-26"
        assert result["serverInfo"] == {"name": "R&D test MCP server", "version": "0.0.1"}
        assert "tools" in result["capabilities"]

    async def test_tools_list_then_call_on_separate_requests(self, server) -> None:
        async with _client(create_app(server)) as client:
            listed = await client.post(
                "/mcp",
                headers=MCP_HEADERS,
                json={"jsonrpc": "2.0", "id": 1, "method": "tools/list"},
            )
            called = await client.post(
                "/mcp",
                headers=MCP_HEADERS,
                json={
                    "jsonrpc": "2.0",
                    "id": 1,
                    "method": "tools/call",
                    "params": {"name": "echo", "arguments": {"message": "again"}},
                },
            )

        assert [t["name"] for t in listed.json()["result"]["tools"]] == ["echo"]
        result = called.json()["result"]
        assert result["content"] == [{"type": "text", "text": '{"echo":"Tool echo: again"}'}]

    async def test_get_not_allowed(self, server) -> None:
        async with _client(create_app(server)) as client:
            response = await client.get("/mcp", headers={"accept": "text/event-stream"})

        assert response.status_code == 405
        assert response.headers["allow"] == "POST"

    async def test_other_methods_not_routed(self, server) -> None:
        async with _client(create_app(server)) as client:
            response = await client.delete("/mcp")

        assert response.status_code == 405

    async def test_head_not_allowed(self, server) -> None:
        async with _client(create_app(server)) as client:
            response = await client.head("/mcp", headers={"accept": "text/event-stream"})

        assert response.status_code == 405
        assert response.headers["allow"] == "POST"

    async def test_body_limit(self, server) -> None:
        async with _client(create_app(server, max_body_size=128)) as client:
            response = await client.post(
                "/mcp",
                headers=MCP_HEADERS,
                json={
                    "jsonrpc": "2.0",
                    "id": 1,
                    "method": "tools/call",
                    "params": {"name": "echo", "arguments": {"message": "x" * 1024}},
                },
            )

        assert response.status_code == 413
        assert response.json()["error"]["code"] == -32000

    async def test_unknown_path(self, server) -> None:
        async with _client(create_app(server)) as client:
            response = await client.post("/other", headers=MCP_HEADERS, json={})

        assert response.status_code == 404

    async def test_custom_path(self, server) -> None:
        async with _client(create_app(server, path="/rpc")) as client:
            response = await client.post(
                "/rpc",
                headers=MCP_HEADERS,
                json={"jsonrpc": "2.0", "id": "p", "method": "ping"},
            )

        assert response.json() == {"jsonrpc": "2.0", "id": "p", "result": {}}


class TestIsolation:
    async def test_colliding_ids_get_their_own_results(self) -> None:
        app = create_app(_rendezvous_server(2))

        def body(tag: str) -> dict[str, Any]:
            return {
                "jsonrpc": "2.0",
                "id": 7,
                "method": "tools/call",
                "params": {"name": "rendezvous", "arguments": {"tag": tag}},
            }

        async with _client(app) as client:
            first, second = await asyncio.wait_for(
                asyncio.gather(
                    client.post("/mcp", headers=MCP_HEADERS, json=body("client-a")),
                    client.post("/mcp", headers=MCP_HEADERS, json=body("client-b")),
                ),
                timeout=5,
            )

        assert first.json()["id"] == 7
        assert second.json()["id"] == 7
        assert first.json()["result"]["content"][0]["text"] == "client-a"
        assert second.json()["result"]["content"][0]["text"] == "client-b"


class TestBindSocket:
    def test_ephemeral_port(self) -> None:
        sock = bind_socket("127.0.0.1", 0)
        try:
            assert sock.getsockname()[1] > 0
        finally:
            sock.close()

    def test_port_in_use_raises(self) -> None:
        first = bind_socket("127.0.0.1", 0)
        first.listen()
        try:
            port = first.getsockname()[1]
            with pytest.raises(OSError):
                bind_socket("127.0.0.1", port)
        finally:
            first.close()


class TestRunServer:
    def test_logs_public_url_with_bound_port(self, server, caplog: pytest.LogCaptureFixture) -> None:
        settings = ServerSettings(host="127.0.0.1", port=0)

        with (
            patch("stateless_mcp.web.app.uvicorn.Server") as server_cls,
            caplog.at_level(logging.INFO, logger="stateless_mcp.web.app"),
        ):
            run_server(create_app(server), settings)

        (sock,) = server_cls.return_value.run.call_args.kwargs["sockets"]
        port = sock.getsockname()[1]
        sock.close()
        assert f"MCP Server running on http://localhost:{port}/mcp" in caplog.text
