"""Stateless MCP — Model Context Protocol tools served over per-request HTTP transports."""

from __future__ import annotations

from typing import TYPE_CHECKING

__version__ = "0.1.0"

if TYPE_CHECKING:
    from stateless_mcp.app import build_server as build_server
    from stateless_mcp.web.app import create_app as create_app

_LAZY_EXPORTS = {
    "build_server": "stateless_mcp.app",
    "create_app": "stateless_mcp.web.app",
}


def __getattr__(name: str) -> object:
    module_path = _LAZY_EXPORTS.get(name)
    if module_path is not None:
        import importlib

        mod = importlib.import_module(module_path)
        return getattr(mod, name)
    raise AttributeError(f"module 'stateless_mcp' has no attribute {name!r}")
