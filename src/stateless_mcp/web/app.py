"""FastAPI application factory and the uvicorn runner."""

from __future__ import annotations

import logging
import socket
from typing import TYPE_CHECKING

import uvicorn
from fastapi import FastAPI
from starlette.routing import Route

from stateless_mcp.web.dispatcher import DEFAULT_MAX_BODY_SIZE, EndpointDispatcher

if TYPE_CHECKING:
    from stateless_mcp.config import ServerSettings
    from stateless_mcp.protocol.server import McpServer

logger = logging.getLogger(__name__)


def create_app(
    server: McpServer,
    *,
    path: str = "/mcp",
    max_body_size: int = DEFAULT_MAX_BODY_SIZE,
) -> FastAPI:
    """Build the HTTP application serving *server* at *path*.

    Freezes the server's tool registry: from here on no tool can be added.
    """
    server.registry.freeze()

    app = FastAPI(
        title=server.info.name,
        version=server.info.version,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.mcp_server = server
    dispatcher = EndpointDispatcher(server, max_body_size=max_body_size)
    app.router.routes.append(Route(path, endpoint=dispatcher, methods=["GET", "POST"]))
    return app


def bind_socket(host: str, port: int) -> socket.socket:
    """Bind a listening TCP socket. Raises :class:`OSError` on failure."""
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
    except OSError:
        sock.close()
        raise
    sock.set_inheritable(True)
    return sock


def run_server(app: FastAPI, settings: ServerSettings) -> None:
    """Bind ``settings.host:settings.port`` and serve *app* until interrupted.

    A bind failure raises :class:`OSError` before anything is served.
    """
    sock = bind_socket(settings.host, settings.port)
    bound = settings.model_copy(update={"port": sock.getsockname()[1]})
    logger.info("MCP Server running on %s", bound.public_url)

    config = uvicorn.Config(app, log_level=settings.log_level.lower(), log_config=None)
    uvicorn.Server(config).run(sockets=[sock])
