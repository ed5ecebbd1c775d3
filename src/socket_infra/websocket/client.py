"""Reconnecting WebSocket client.

``WebSocketClient`` is the long-lived object callers hold. It owns two
channels (messages and lifecycle events) and a single live
``ConnectionSession``. When the session drops unexpectedly the client
schedules a new dial with exponential backoff and wires the replacement
session into the same channels, so consumers see one continuous stream.

Usage:
    async with websocket_connect("wss://api.example.com", reconnection=policy) as ws:
        ws.send("hello")
        async for event in ws.events:
            ...
"""

from __future__ import annotations

import asyncio
import logging
import random as _random
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Optional, Sequence, TypeVar

from .backoff import reconnect_delay
from .channel import Channel
from .config import ConnectionConfig, ReconnectionPolicy, get_websocket_settings
from .exceptions import (
    ChannelClosedError,
    CloseFailedError,
    ConnectionClosedError,
    ConnectionFailedError,
    SendFailedError,
)
from .models import (
    ClientState,
    ConnectionState,
    LifecycleEvent,
    Message,
    ReconnectFailed,
    Reconnecting,
    ReconnectionStatus,
)
from .session import ConnectionSession
from .transport import Transport, TransportHandle, default_transport

logger = logging.getLogger(__name__)

T = TypeVar("T")


class WebSocketClient:
    def __init__(
        self,
        url: str,
        subprotocols: Optional[Sequence[str]] = None,
        *,
        reconnection: Optional[ReconnectionPolicy] = None,
        open_timeout: Optional[float] = None,
        transport: Optional[Transport] = None,
        random: Optional[Callable[[], float]] = None,
    ):
        settings = get_websocket_settings()
        self.config = ConnectionConfig(
            url=url,
            subprotocols=tuple(subprotocols) if subprotocols else None,
            reconnection=reconnection or settings.reconnection_policy(),
            open_timeout=open_timeout or settings.open_timeout,
        )
        self._transport = transport or default_transport()
        self._random = random or _random.random

        self._messages: Channel[Message] = Channel("messages")
        self._events: Channel[LifecycleEvent] = Channel("events")
        self._session: Optional[ConnectionSession] = None
        self._state = ClientState.INITIALIZING

        self._attempts = 0
        self._reconnecting = False
        self._manual_close = False
        self._released = False
        self._reconnect_timer: Optional[asyncio.TimerHandle] = None
        self._open_timer: Optional[asyncio.TimerHandle] = None

    # Introspection

    @property
    def url(self) -> str:
        return self.config.url

    @property
    def subprotocols(self) -> Optional[tuple[str, ...]]:
        return self.config.subprotocols

    @property
    def policy(self) -> ReconnectionPolicy:
        return self.config.reconnection

    @property
    def state(self) -> ClientState:
        return self._state

    @property
    def ready_state(self) -> ConnectionState:
        if self._session is None:
            return ConnectionState.CLOSED
        return self._session.ready_state

    @property
    def reconnection_status(self) -> ReconnectionStatus:
        return ReconnectionStatus(is_reconnecting=self._reconnecting, attempt_count=self._attempts)

    @property
    def is_reconnecting(self) -> bool:
        return self._reconnecting

    @property
    def reconnect_attempts(self) -> int:
        return self._attempts

    @property
    def messages(self) -> Channel[Message]:
        return self._messages

    @property
    def events(self) -> Channel[LifecycleEvent]:
        return self._events

    # Operations

    async def connect(self) -> "WebSocketClient":
        """Open the first connection; failures here are fatal (no retry)."""
        if self._state is not ClientState.INITIALIZING:
            raise ConnectionFailedError(self.url, f"Client is already {self._state}")

        try:
            handle = self._transport.open(self.url, self.subprotocols)
        except Exception as exc:
            self._terminate()
            raise ConnectionFailedError(self.url, f"Invalid WebSocket URL: {exc}") from exc

        session = self._wire(handle)
        try:
            await session.wait_open(self.config.open_timeout)
        except (ConnectionFailedError, asyncio.CancelledError):
            self._manual_close = True
            self._terminate()
            raise

        logger.info("WebSocket connected to %s", self.url, extra={"url": self.url})
        return self

    def send(self, message: Message) -> None:
        """Hand ``message`` to the live socket; never queued for later."""
        if self._session is None:
            raise SendFailedError("WebSocket is not connected")
        self._session.send(message)

    def close(self, code: Optional[int] = None, reason: Optional[str] = None) -> None:
        """Close for good: no reconnection happens after this call."""
        self._manual_close = True
        self._cancel_timers()
        self._reconnecting = False
        session = self._session
        self._state = ClientState.TERMINATED
        if session is None or not session.attached or session.ready_state is ConnectionState.CLOSED:
            self._close_channels()
            return
        try:
            session.close(code, reason)
        except CloseFailedError:
            # No close notification will follow a failed close.
            self._close_channels()
            raise

    async def recv(self) -> Message:
        try:
            return await self._messages.get()
        except ChannelClosedError:
            raise ConnectionClosedError(f"Connection to {self.url} is closed") from None

    def __aiter__(self) -> AsyncIterator[Message]:
        return aiter(self._messages)

    async def __aenter__(self) -> "WebSocketClient":
        return await self.connect()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.release()

    def release(self) -> None:
        """Scope teardown: runs once, whatever the exit path."""
        if self._released:
            return
        self._released = True
        self._manual_close = True
        self._cancel_timers()
        self._reconnecting = False
        self._state = ClientState.TERMINATED

        session = self._session
        if session is None or not session.attached:
            self._close_channels()
            return
        if session.ready_state in (ConnectionState.OPEN, ConnectionState.CONNECTING):
            if not self._close_quietly(session):
                self._close_channels()
                return
        if session.ready_state is ConnectionState.CLOSED:
            self._close_channels()

    def _close_quietly(self, session: ConnectionSession) -> bool:
        try:
            session.close()
        except CloseFailedError:
            logger.warning("Failed to close WebSocket to %s", self.url, exc_info=True)
            return False
        return True

    # Session wiring and the reconnection state machine

    def _wire(self, handle: TransportHandle) -> ConnectionSession:
        previous = self._session
        if previous is not None:
            previous.detach()
        self._session = ConnectionSession(
            handle,
            self.url,
            self._messages,
            self._events,
            on_open=self._session_opened,
            on_close=self._session_closed,
        )
        return self._session

    def _session_opened(self, session: ConnectionSession) -> None:
        if session is not self._session:
            return
        self._cancel_open_timer()
        reconnected = self._attempts > 0
        self._attempts = 0
        self._reconnecting = False
        if self._manual_close:
            # Dial finished after close() or release(): don't leave it open,
            # and keep it out of the already terminated streams.
            session.detach()
            self._close_channels()
            asyncio.get_running_loop().call_soon(self._close_quietly, session)
            return
        self._state = ClientState.LIVE
        if reconnected:
            logger.info("WebSocket reconnected to %s", self.url, extra={"url": self.url})

    def _session_closed(self, session: ConnectionSession, code: int, reason: str) -> None:
        if session is not self._session:
            return
        self._cancel_open_timer()
        if self._state is ClientState.INITIALIZING:
            # connect() is waiting on this session and reports the failure.
            return
        if self._manual_close or self._state is ClientState.TERMINATED:
            self._close_channels()
            return

        if not session.opened:
            self._reconnecting = False  # this dial attempt is over
            logger.warning(
                "Reconnection attempt %d to %s failed (code=%s)",
                self._attempts,
                self.url,
                code,
                extra={"url": self.url, "attempt": self._attempts, "close_code": code},
            )
        else:
            logger.warning(
                "WebSocket to %s closed unexpectedly (code=%s reason=%r)",
                self.url,
                code,
                reason,
                extra={"url": self.url, "close_code": code},
            )

        if not self.policy.enabled:
            self._terminate()
            return
        self._request_reconnect()

    def _request_reconnect(self) -> None:
        if self._reconnecting or self._manual_close or self._state is ClientState.TERMINATED:
            return

        max_attempts = self.policy.max_attempts
        if max_attempts > 0 and self._attempts >= max_attempts:
            logger.error(
                "Giving up on %s after %d reconnection attempts",
                self.url,
                self._attempts,
                extra={"url": self.url, "attempt": self._attempts},
            )
            self._events.push(ReconnectFailed(attempt=self._attempts))
            self._terminate()
            return

        self._reconnecting = True
        self._attempts += 1
        self._state = ClientState.RECONNECTING
        delay = reconnect_delay(self._attempts, self.policy, random=self._random)
        self._reconnect_timer = asyncio.get_running_loop().call_later(delay, self._reconnect)
        logger.info(
            "Reconnecting to %s in %.3fs (attempt %d)",
            self.url,
            delay,
            self._attempts,
            extra={"url": self.url, "attempt": self._attempts},
        )
        self._events.push(Reconnecting(attempt=self._attempts, delay=delay))

    def _reconnect(self) -> None:
        self._reconnect_timer = None
        if self._manual_close:
            return
        try:
            handle = self._transport.open(self.url, self.subprotocols)
        except Exception as exc:
            logger.warning(
                "Reconnection attempt %d to %s could not start: %s",
                self._attempts,
                self.url,
                exc,
                extra={"url": self.url, "attempt": self._attempts},
            )
            self._reconnecting = False
            self._request_reconnect()
            return

        session = self._wire(handle)
        self._open_timer = asyncio.get_running_loop().call_later(
            self.config.open_timeout, self._open_timed_out, session
        )

    def _open_timed_out(self, session: ConnectionSession) -> None:
        self._open_timer = None
        if session is not self._session or session.opened or session.closed:
            return
        logger.warning(
            "Reconnection attempt %d to %s timed out after %.1fs",
            self._attempts,
            self.url,
            self.config.open_timeout,
            extra={"url": self.url, "attempt": self._attempts},
        )
        session.abandon()
        self._reconnecting = False
        self._request_reconnect()

    def _terminate(self) -> None:
        self._state = ClientState.TERMINATED
        self._reconnecting = False
        self._cancel_timers()
        self._close_channels()

    def _close_channels(self) -> None:
        self._messages.close()
        self._events.close()

    def _cancel_open_timer(self) -> None:
        if self._open_timer is not None:
            self._open_timer.cancel()
            self._open_timer = None

    def _cancel_timers(self) -> None:
        if self._reconnect_timer is not None:
            self._reconnect_timer.cancel()
            self._reconnect_timer = None
        self._cancel_open_timer()

    def __repr__(self) -> str:
        return f"<WebSocketClient {self.url} state={self._state} attempts={self._attempts}>"


@asynccontextmanager
async def websocket_connect(
    url: str,
    subprotocols: Optional[Sequence[str]] = None,
    **kwargs,
) -> AsyncIterator[WebSocketClient]:
    """Connect and yield a client that is released when the block exits."""
    client = WebSocketClient(url, subprotocols, **kwargs)
    async with client:
        yield client


async def with_websocket_client(
    url: str,
    fn: Callable[[WebSocketClient], Awaitable[T]],
    subprotocols: Optional[Sequence[str]] = None,
    **kwargs,
) -> T:
    async with websocket_connect(url, subprotocols, **kwargs) as client:
        return await fn(client)
