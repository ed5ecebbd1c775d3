from . import websocket

# Base exception
from .exceptions import SocketInfraError

# Logging
from .logging import setup_logging

# Client
from .websocket import (
    ReconnectionPolicy,
    WebSocketClient,
    websocket_connect,
    with_websocket_client,
)

__all__ = [
    # Modules
    "websocket",
    # Base exception
    "SocketInfraError",
    # Logging
    "setup_logging",
    # Client
    "ReconnectionPolicy",
    "WebSocketClient",
    "websocket_connect",
    "with_websocket_client",
]
