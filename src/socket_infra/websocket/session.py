from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from .channel import Channel
from .exceptions import CloseFailedError, ConnectionFailedError, SendFailedError
from .models import (
    Closed,
    ConnectionState,
    Errored,
    LifecycleEvent,
    Message,
    MessageReceived,
    Opened,
)
from .transport import TransportHandle

logger = logging.getLogger(__name__)


class ConnectionSession:
    """One physical transport handle wired into a client's channels.

    The session translates handle callbacks into lifecycle events and
    forwards ``send``/``close`` to the handle. Once detached it is inert: the
    handle's callback slots are cleared, so a straggling callback can no
    longer write into channels now owned by a newer session.
    """

    def __init__(
        self,
        handle: TransportHandle,
        url: str,
        messages: Channel[Message],
        events: Channel[LifecycleEvent],
        *,
        on_open: Optional[Callable[["ConnectionSession"], None]] = None,
        on_close: Optional[Callable[["ConnectionSession", int, str], None]] = None,
    ):
        self.handle = handle
        self.url = url
        self._messages = messages
        self._events = events
        self._on_open = on_open
        self._on_close = on_close

        self._attached = True
        self._opened = False
        self._closed = False
        self._ready: Optional[asyncio.Future[None]] = None

        handle.on_open = self._handle_open
        handle.on_close = self._handle_close
        handle.on_error = self._handle_error
        handle.on_message = self._handle_message

    @property
    def attached(self) -> bool:
        return self._attached

    @property
    def opened(self) -> bool:
        """True once the handle has reported open (even if closed since)."""
        return self._opened

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def ready_state(self) -> ConnectionState:
        return self.handle.state

    def send(self, message: Message) -> None:
        if self.handle.state is not ConnectionState.OPEN:
            raise SendFailedError("WebSocket is not connected")
        try:
            self.handle.send(message)
        except Exception as exc:
            raise SendFailedError(str(exc) or type(exc).__name__) from exc

    def close(self, code: Optional[int] = None, reason: Optional[str] = None) -> None:
        if self.handle.state is ConnectionState.CLOSED:
            return
        try:
            self.handle.close(code, reason)
        except Exception as exc:
            raise CloseFailedError(str(exc) or type(exc).__name__) from exc

    def detach(self) -> None:
        if not self._attached:
            return
        self._attached = False
        self.handle.on_open = None
        self.handle.on_close = None
        self.handle.on_error = None
        self.handle.on_message = None
        logger.debug("Detached session for %s", self.url)

    async def wait_open(self, timeout: float) -> None:
        """Wait for the handshake; anything but an open within ``timeout`` fails."""
        if self._opened:
            return
        if self._closed:
            raise ConnectionFailedError(self.url, "Connection closed before opening")

        self._ready = asyncio.get_running_loop().create_future()
        try:
            await asyncio.wait_for(self._ready, timeout)
        except asyncio.TimeoutError:
            self.abandon()
            raise ConnectionFailedError(self.url, "WebSocket connection timeout") from None
        except (ConnectionFailedError, asyncio.CancelledError):
            self.abandon()
            raise
        finally:
            self._ready = None

    def abandon(self) -> None:
        """Detach and request close without raising; used on failed dials."""
        self.detach()
        try:
            self.close()
        except CloseFailedError:
            logger.warning("Failed to close abandoned connection to %s", self.url, exc_info=True)

    def _resolve_ready(self, error: Optional[str] = None) -> None:
        if self._ready is None or self._ready.done():
            return
        if error is None:
            self._ready.set_result(None)
        else:
            self._ready.set_exception(ConnectionFailedError(self.url, error))

    # Transport callbacks

    def _handle_open(self) -> None:
        self._opened = True
        if self._on_open is not None:
            self._on_open(self)
        if not self._attached:
            # The owner dropped this session while handling the open.
            self._resolve_ready()
            return
        self._events.push(Opened())
        self._resolve_ready()

    def _handle_close(self, code: int, reason: str) -> None:
        if self._closed:
            return
        self._closed = True
        self._events.push(Closed(code=code, reason=reason))
        self._resolve_ready("Connection closed before opening")
        if self._on_close is not None:
            self._on_close(self, code, reason)

    def _handle_error(self, info: str) -> None:
        self._events.push(Errored(reason=str(info)))
        self._resolve_ready("Failed to establish WebSocket connection")

    def _handle_message(self, payload: Message) -> None:
        self._messages.push(payload)
        self._events.push(MessageReceived(payload=payload))
