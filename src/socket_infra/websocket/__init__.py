"""
Reconnecting WebSocket client for socket-infra.

Provides:
- WebSocketClient: long-lived client that survives dropped connections
- websocket_connect / with_websocket_client: scoped helpers that always
  release the socket and cancel pending reconnects on exit
- Channel: the ordered stream behind ``client.messages`` and ``client.events``

Quick Start:
    from socket_infra.websocket import ReconnectionPolicy, websocket_connect

    policy = ReconnectionPolicy(enabled=True, max_attempts=5)
    async with websocket_connect("wss://api.example.com", reconnection=policy) as ws:
        ws.send("hello")
        async for event in ws.events:
            print(event)
"""

from .backoff import reconnect_delay
from .channel import Channel
from .client import WebSocketClient, websocket_connect, with_websocket_client
from .config import (
    ConnectionConfig,
    ReconnectionPolicy,
    WebSocketSettings,
    get_websocket_settings,
)
from .exceptions import (
    ChannelClosedError,
    CloseFailedError,
    ConnectionClosedError,
    ConnectionFailedError,
    SendFailedError,
    WebSocketError,
)
from .models import (
    ClientState,
    Closed,
    ConnectionState,
    Errored,
    EventType,
    LifecycleEvent,
    Message,
    MessageReceived,
    Opened,
    ReconnectFailed,
    Reconnecting,
    ReconnectionStatus,
)
from .session import ConnectionSession
from .transport import Transport, TransportHandle, WebsocketsTransport

__all__ = [
    # Client
    "WebSocketClient",
    "websocket_connect",
    "with_websocket_client",
    "ConnectionSession",
    "Channel",
    "reconnect_delay",
    # Transport
    "Transport",
    "TransportHandle",
    "WebsocketsTransport",
    # Config
    "ConnectionConfig",
    "ReconnectionPolicy",
    "WebSocketSettings",
    "get_websocket_settings",
    # Models
    "ClientState",
    "ConnectionState",
    "ReconnectionStatus",
    "EventType",
    "LifecycleEvent",
    "Message",
    "Opened",
    "Closed",
    "Errored",
    "MessageReceived",
    "Reconnecting",
    "ReconnectFailed",
    # Exceptions
    "WebSocketError",
    "ConnectionFailedError",
    "SendFailedError",
    "CloseFailedError",
    "ConnectionClosedError",
    "ChannelClosedError",
]
