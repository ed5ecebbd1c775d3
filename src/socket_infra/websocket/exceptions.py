"""WebSocket error taxonomy.

Faults on operations the caller invokes directly (the first ``connect()``,
``send()``, ``close()``) surface as these exceptions. Faults on a single
reconnection attempt are absorbed by the client and never raised.
"""

from __future__ import annotations

from socket_infra.exceptions import SocketInfraError


class WebSocketError(SocketInfraError):
    """Base WebSocket error carrying a human readable reason."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class ConnectionFailedError(WebSocketError):
    """Opening a connection failed: bad address, refused dial or timeout."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(reason)
        self.url = url

    def __str__(self) -> str:
        return f"Failed to connect to {self.url}: {self.reason}"


class SendFailedError(WebSocketError):
    """A message could not be handed to the transport."""


class CloseFailedError(WebSocketError):
    """The transport raised while a close was being requested."""


class ConnectionClosedError(WebSocketError):
    """The connection has terminated and no more messages will arrive."""


class ChannelClosedError(WebSocketError):
    """A closed channel has been drained."""

    def __init__(self, reason: str = "Channel closed") -> None:
        super().__init__(reason)
