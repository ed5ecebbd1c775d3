"""WebSocket data model: transport states, client states and lifecycle events."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum, StrEnum
from typing import ClassVar, TypeAlias, Union

Message: TypeAlias = Union[str, bytes]


class ConnectionState(IntEnum):
    """Ready state reported by the transport (same numbering as browsers)."""

    CONNECTING = 0
    OPEN = 1
    CLOSING = 2
    CLOSED = 3


class ClientState(StrEnum):
    """Logical state of a reconnecting client, layered over ConnectionState."""

    INITIALIZING = "initializing"
    LIVE = "live"
    RECONNECTING = "reconnecting"
    TERMINATED = "terminated"


class EventType(StrEnum):
    OPENED = "opened"
    CLOSED = "closed"
    ERRORED = "errored"
    MESSAGE = "message"
    RECONNECTING = "reconnecting"
    RECONNECT_FAILED = "reconnect_failed"


@dataclass(frozen=True)
class ReconnectionStatus:
    is_reconnecting: bool = False
    attempt_count: int = 0


@dataclass(frozen=True)
class Opened:
    type: ClassVar[EventType] = EventType.OPENED


@dataclass(frozen=True)
class Closed:
    code: int
    reason: str = ""

    type: ClassVar[EventType] = EventType.CLOSED


@dataclass(frozen=True)
class Errored:
    reason: str = ""

    type: ClassVar[EventType] = EventType.ERRORED


@dataclass(frozen=True)
class MessageReceived:
    payload: Message

    type: ClassVar[EventType] = EventType.MESSAGE


@dataclass(frozen=True)
class Reconnecting:
    """A reconnection attempt has been scheduled ``delay`` seconds from now."""

    attempt: int
    delay: float = 0.0

    type: ClassVar[EventType] = EventType.RECONNECTING


@dataclass(frozen=True)
class ReconnectFailed:
    """Terminal: ``max_attempts`` was reached and the client gave up."""

    attempt: int

    type: ClassVar[EventType] = EventType.RECONNECT_FAILED


LifecycleEvent: TypeAlias = Union[
    Opened, Closed, Errored, MessageReceived, Reconnecting, ReconnectFailed
]
