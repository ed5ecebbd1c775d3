"""Transport contract and the ``websockets``-backed implementation.

A transport opens handles. A handle is one physical socket exposing a ready
state, synchronous ``send``/``close`` and four push-style callback slots. The
transport guarantees callbacks for one handle are invoked serially on the
event loop, and that ``on_close`` eventually follows ``on_open``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Mapping, Optional, Protocol, Sequence

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, ConnectionClosedError
from websockets.uri import parse_uri

from .config import WebSocketSettings, get_websocket_settings
from .models import ConnectionState, Message

logger = logging.getLogger(__name__)

ABNORMAL_CLOSURE = 1006
NORMAL_CLOSURE = 1000

OpenCallback = Callable[[], None]
CloseCallback = Callable[[int, str], None]
ErrorCallback = Callable[[str], None]
MessageCallback = Callable[[Message], None]


class TransportHandle(Protocol):
    on_open: Optional[OpenCallback]
    on_close: Optional[CloseCallback]
    on_error: Optional[ErrorCallback]
    on_message: Optional[MessageCallback]

    @property
    def state(self) -> ConnectionState: ...

    def send(self, payload: Message) -> None: ...

    def close(self, code: Optional[int] = None, reason: Optional[str] = None) -> None: ...


class Transport(Protocol):
    def open(self, url: str, subprotocols: Optional[Sequence[str]] = None) -> TransportHandle: ...


class WebsocketsHandle:
    """One client socket driven by a background pump task.

    Outbound payloads go through a queue drained by a writer task, which keeps
    ``send`` synchronous and preserves order.
    """

    def __init__(self, url: str, subprotocols: Optional[Sequence[str]], connect_kwargs: dict[str, Any]):
        self.url = url
        self.on_open: Optional[OpenCallback] = None
        self.on_close: Optional[CloseCallback] = None
        self.on_error: Optional[ErrorCallback] = None
        self.on_message: Optional[MessageCallback] = None

        self._state = ConnectionState.CONNECTING
        self._subprotocols = list(subprotocols) if subprotocols else None
        self._connect_kwargs = connect_kwargs
        self._connection: Optional[ClientConnection] = None
        self._outbox: asyncio.Queue[Message] = asyncio.Queue()
        self._closer: Optional[asyncio.Task] = None
        self._task = asyncio.get_running_loop().create_task(self._run())

    @property
    def state(self) -> ConnectionState:
        return self._state

    def send(self, payload: Message) -> None:
        if self._state is not ConnectionState.OPEN:
            raise RuntimeError("WebSocket is not open")
        if not isinstance(payload, (str, bytes, bytearray, memoryview)):
            raise TypeError(f"Unsupported payload type: {type(payload).__name__}")
        self._outbox.put_nowait(payload)

    def close(self, code: Optional[int] = None, reason: Optional[str] = None) -> None:
        if self._state in (ConnectionState.CLOSING, ConnectionState.CLOSED):
            return
        if self._connection is None:
            # Still dialing: abandon the handshake, the pump reports the closure.
            self._state = ConnectionState.CLOSING
            self._task.cancel()
            return
        self._state = ConnectionState.CLOSING
        self._closer = asyncio.get_running_loop().create_task(
            self._connection.close(code if code is not None else NORMAL_CLOSURE, reason or "")
        )

    async def _run(self) -> None:
        code, reason = ABNORMAL_CLOSURE, ""
        try:
            try:
                connection = await connect(
                    self.url, subprotocols=self._subprotocols, **self._connect_kwargs
                )
            except asyncio.CancelledError:
                reason = "Connection aborted while opening"
                return
            except Exception as exc:
                self._fire_error(f"Failed to establish WebSocket connection: {exc}")
                return

            self._connection = connection
            self._state = ConnectionState.OPEN
            self._fire(self.on_open)
            writer = asyncio.create_task(self._drain_outbox(connection))
            try:
                async for payload in connection:
                    self._fire(self.on_message, payload)
            except ConnectionClosedError as exc:
                # Application close codes (4xxx, 1011...) arrive with a frame.
                if exc.rcvd is None:
                    self._fire_error(str(exc))
            finally:
                writer.cancel()
                self._discard_outbox()
            code = connection.close_code if connection.close_code is not None else ABNORMAL_CLOSURE
            reason = connection.close_reason or ""
        finally:
            self._state = ConnectionState.CLOSED
            self._fire(self.on_close, code, reason)

    async def _drain_outbox(self, connection: ClientConnection) -> None:
        while True:
            payload = await self._outbox.get()
            try:
                await connection.send(payload)
            except ConnectionClosed:
                self._discard_outbox(pending=1)
                return

    def _discard_outbox(self, pending: int = 0) -> None:
        while not self._outbox.empty():
            self._outbox.get_nowait()
            pending += 1
        if pending:
            logger.debug("Dropping %d unsent message(s) for %s", pending, self.url)

    def _fire_error(self, info: str) -> None:
        logger.debug("WebSocket error on %s: %s", self.url, info)
        self._fire(self.on_error, info)

    @staticmethod
    def _fire(callback: Optional[Callable[..., None]], *args: Any) -> None:
        if callback is not None:
            callback(*args)


class WebsocketsTransport:
    """Transport backed by ``websockets.asyncio.client.connect``.

    The handshake itself is unbounded here; the client enforces its own
    ``open_timeout`` on every dial.
    """

    def __init__(
        self,
        *,
        ping_interval: Optional[float] = 20.0,
        ping_timeout: Optional[float] = 20.0,
        max_message_size: Optional[int] = 2**20,
        additional_headers: Optional[Mapping[str, str]] = None,
    ):
        self.connect_kwargs: dict[str, Any] = {
            "open_timeout": None,
            "ping_interval": ping_interval,
            "ping_timeout": ping_timeout,
            "max_size": max_message_size,
        }
        if additional_headers:
            self.connect_kwargs["additional_headers"] = dict(additional_headers)

    @classmethod
    def from_settings(cls, settings: WebSocketSettings) -> "WebsocketsTransport":
        return cls(
            ping_interval=settings.ping_interval,
            ping_timeout=settings.ping_timeout,
            max_message_size=settings.max_message_size,
        )

    def open(self, url: str, subprotocols: Optional[Sequence[str]] = None) -> WebsocketsHandle:
        parse_uri(url)  # raises InvalidURI synchronously
        return WebsocketsHandle(url, subprotocols, dict(self.connect_kwargs))


def default_transport() -> Transport:
    return WebsocketsTransport.from_settings(get_websocket_settings())
