from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Generic, TypeVar

from .exceptions import ChannelClosedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CLOSED = object()


class Channel(Generic[T]):
    """Unbounded FIFO bridging push-style producers to async consumers.

    ``push`` never blocks and never raises. Every ``async for`` opens a new
    subscription that continues from the current head of the queue (items
    are consumed, not replayed). Once ``close()`` is called, subscribers drain
    what is already queued and then stop.
    """

    def __init__(self, name: str = "channel") -> None:
        self.name = name
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def qsize(self) -> int:
        return self._queue.qsize() - (1 if self._closed else 0)

    def push(self, item: T) -> None:
        if self._closed:
            logger.debug("Dropping item pushed to closed %s channel", self.name)
            return
        self._queue.put_nowait(item)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)

    async def get(self) -> T:
        item = await self._queue.get()
        if item is _CLOSED:
            # Leave the marker in place so every other waiter also wakes up.
            self._queue.put_nowait(_CLOSED)
            raise ChannelClosedError(f"{self.name} channel closed")
        return item

    def __aiter__(self) -> AsyncIterator[T]:
        return self._subscribe()

    async def _subscribe(self) -> AsyncIterator[T]:
        while True:
            try:
                item = await self.get()
            except ChannelClosedError:
                return
            yield item

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<Channel {self.name} {state} size={self.qsize()}>"
