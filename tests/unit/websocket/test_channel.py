"""Tests for Channel: FIFO order, suspension, close and subscriptions."""

import asyncio

import pytest

from socket_infra.websocket.channel import Channel
from socket_infra.websocket.exceptions import ChannelClosedError


class TestChannelOrdering:
    @pytest.mark.asyncio
    async def test_items_come_out_in_push_order(self, drain):
        channel: Channel[int] = Channel()
        for i in range(100):
            channel.push(i)
        channel.close()

        assert await drain(channel) == list(range(100))

    @pytest.mark.asyncio
    async def test_get_suspends_until_push(self):
        channel: Channel[str] = Channel()
        getter = asyncio.create_task(channel.get())
        await asyncio.sleep(0)
        assert not getter.done()

        channel.push("hello")
        assert await asyncio.wait_for(getter, 1) == "hello"

    @pytest.mark.asyncio
    async def test_push_never_blocks(self):
        channel: Channel[int] = Channel()
        for i in range(10_000):
            channel.push(i)
        assert channel.qsize() == 10_000


class TestChannelClose:
    @pytest.mark.asyncio
    async def test_queued_items_drain_before_end(self, drain):
        channel: Channel[str] = Channel()
        channel.push("a")
        channel.push("b")
        channel.close()

        assert await drain(channel) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_get_after_drain_raises(self):
        channel: Channel[str] = Channel()
        channel.close()

        with pytest.raises(ChannelClosedError):
            await channel.get()
        # Still closed on a second read.
        with pytest.raises(ChannelClosedError):
            await channel.get()

    @pytest.mark.asyncio
    async def test_push_after_close_is_dropped(self, drain):
        channel: Channel[str] = Channel()
        channel.close()
        channel.push("late")

        assert await drain(channel) == []
        assert channel.qsize() == 0

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self):
        channel: Channel[str] = Channel()
        channel.close()
        channel.close()
        assert channel.closed is True
        assert channel.qsize() == 0

    @pytest.mark.asyncio
    async def test_close_wakes_every_waiter(self):
        channel: Channel[str] = Channel()
        waiters = [asyncio.create_task(channel.get()) for _ in range(3)]
        await asyncio.sleep(0)

        channel.close()
        results = await asyncio.gather(*waiters, return_exceptions=True)
        assert all(isinstance(r, ChannelClosedError) for r in results)


class TestChannelSubscriptions:
    @pytest.mark.asyncio
    async def test_new_subscription_continues_from_head(self, take, drain):
        """Subscriptions consume; a later one does not replay earlier items."""
        channel: Channel[int] = Channel()
        for i in range(5):
            channel.push(i)

        assert await take(channel, 2) == [0, 1]
        channel.close()
        assert await drain(channel) == [2, 3, 4]

    @pytest.mark.asyncio
    async def test_independent_channels_do_not_interfere(self, drain):
        left: Channel[str] = Channel("left")
        right: Channel[str] = Channel("right")
        left.push("l1")
        right.push("r1")
        left.push("l2")
        left.close()
        right.close()

        assert await drain(right) == ["r1"]
        assert await drain(left) == ["l1", "l2"]

    def test_repr_mentions_state(self):
        channel: Channel[int] = Channel("events")
        assert "events" in repr(channel)
        assert "open" in repr(channel)
