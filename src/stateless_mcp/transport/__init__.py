"""Per-request MCP transports."""

from stateless_mcp.transport.bridge import BridgeState, SessionBridge
from stateless_mcp.transport.errors import BridgeStateError, PayloadTooLargeError, TransportError

__all__ = [
    "BridgeState",
    "BridgeStateError",
    "PayloadTooLargeError",
    "SessionBridge",
    "TransportError",
]
