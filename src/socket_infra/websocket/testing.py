"""In-memory transport for tests.

``FakeTransport`` hands out ``FakeHandle`` objects instead of sockets. Each
opened handle follows a behaviour, taken in order from ``behaviours`` (or
``default``):

- ``"accept"``: the handshake succeeds on the next loop iteration
- ``"refuse"``: an error then an abnormal close (1006)
- ``"hang"``: nothing happens until the test drives the handle
- a callable receiving the handle, scheduled on the next loop iteration

Tests can also drive handles directly with ``accept()``, ``receive()``,
``fail()`` and ``drop()``.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Optional, Sequence, Union

from .models import ConnectionState, Message
from .transport import ABNORMAL_CLOSURE, NORMAL_CLOSURE

Behaviour = Union[str, Callable[["FakeHandle"], None]]


class FakeHandle:
    def __init__(self, url: str, subprotocols: Optional[Sequence[str]] = None, *, close_completes: bool = True):
        self.url = url
        self.subprotocols = list(subprotocols) if subprotocols else None
        self.on_open = None
        self.on_close = None
        self.on_error = None
        self.on_message = None

        self.sent: list[Message] = []
        self.close_calls: list[tuple[Optional[int], Optional[str]]] = []
        self.send_error: Optional[Exception] = None
        self.close_error: Optional[Exception] = None
        self.close_completes = close_completes
        self._state = ConnectionState.CONNECTING

    @property
    def state(self) -> ConnectionState:
        return self._state

    # Transport-facing API

    def send(self, payload: Message) -> None:
        if self.send_error is not None:
            raise self.send_error
        if self._state is not ConnectionState.OPEN:
            raise RuntimeError("WebSocket is not open")
        self.sent.append(payload)

    def close(self, code: Optional[int] = None, reason: Optional[str] = None) -> None:
        self.close_calls.append((code, reason))
        if self.close_error is not None:
            raise self.close_error
        if self._state in (ConnectionState.CLOSING, ConnectionState.CLOSED):
            return
        self._state = ConnectionState.CLOSING
        if self.close_completes:
            asyncio.get_running_loop().call_soon(
                self.drop, code if code is not None else NORMAL_CLOSURE, reason or ""
            )

    # Test-facing API

    def accept(self) -> None:
        self._state = ConnectionState.OPEN
        if self.on_open is not None:
            self.on_open()

    def receive(self, payload: Message) -> None:
        if self.on_message is not None:
            self.on_message(payload)

    def error(self, info: str = "error") -> None:
        if self.on_error is not None:
            self.on_error(info)

    def drop(self, code: int = ABNORMAL_CLOSURE, reason: str = "") -> None:
        if self._state is ConnectionState.CLOSED:
            return
        self._state = ConnectionState.CLOSED
        if self.on_close is not None:
            self.on_close(code, reason)

    def fail(self, info: str = "Connection refused") -> None:
        self.error(info)
        self.drop(ABNORMAL_CLOSURE, "")


class FakeTransport:
    def __init__(
        self,
        behaviours: Sequence[Behaviour] = (),
        *,
        default: Behaviour = "accept",
        open_errors: Sequence[Optional[Exception]] = (),
        close_completes: bool = True,
    ):
        self.behaviours = list(behaviours)
        self.default = default
        self.open_errors = list(open_errors)
        self.close_completes = close_completes
        self.handles: list[FakeHandle] = []
        self.open_calls: list[tuple[str, Optional[tuple[str, ...]]]] = []

    @property
    def last(self) -> FakeHandle:
        return self.handles[-1]

    def open(self, url: str, subprotocols: Optional[Sequence[str]] = None) -> FakeHandle:
        self.open_calls.append((url, tuple(subprotocols) if subprotocols else None))
        if self.open_errors:
            error = self.open_errors.pop(0)
            if error is not None:
                raise error

        handle = FakeHandle(url, subprotocols, close_completes=self.close_completes)
        self.handles.append(handle)
        behaviour = self.behaviours.pop(0) if self.behaviours else self.default

        loop = asyncio.get_running_loop()
        if behaviour == "accept":
            loop.call_soon(handle.accept)
        elif behaviour == "refuse":
            loop.call_soon(handle.fail)
        elif behaviour == "hang":
            pass
        elif callable(behaviour):
            loop.call_soon(behaviour, handle)
        else:
            raise ValueError(f"Unknown behaviour: {behaviour!r}")
        return handle
