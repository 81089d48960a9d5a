"""HTTP surface — the ``/mcp`` endpoint dispatcher and application factory."""

from stateless_mcp.web.app import create_app, run_server
from stateless_mcp.web.dispatcher import EndpointDispatcher

__all__ = ["EndpointDispatcher", "create_app", "run_server"]
