"""Shared error types for the transport layer."""


class TransportError(Exception):
    """Base error for all transport failures."""


class BridgeStateError(TransportError):
    """A session bridge was used outside its single request/response cycle."""

    def __init__(self, state: str, action: str) -> None:
        self.state = state
        self.action = action
        super().__init__(f"Cannot {action}: session bridge is {state}")


class PayloadTooLargeError(TransportError):
    """The request body exceeds the configured size limit."""

    def __init__(self, limit: int) -> None:
        self.limit = limit
        super().__init__(f"request body exceeds {limit} bytes")
