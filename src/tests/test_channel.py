"""
Tests for Channels.

Requires Python 3.11+.
"""

import asyncio
import threading

import pytest

from watcher.channel import ChannelClosedError, UnboundedChannel


class TestUnboundedChannel:
    """Test cases for UnboundedChannel."""

    async def test_send_and_recv_in_order(self):
        """Test items come out in the order they were sent."""
        channel: UnboundedChannel[int] = UnboundedChannel()
        for i in range(3):
            channel.send(i)

        assert [await channel.recv() for _ in range(3)] == [0, 1, 2]

    async def test_try_recv_empty(self):
        """Test try_recv returns None when nothing is queued."""
        channel: UnboundedChannel[int] = UnboundedChannel()
        assert channel.try_recv() is None

        channel.send(7)
        assert len(channel) == 1
        assert channel.try_recv() == 7
        assert channel.try_recv() is None

    async def test_close_drains_then_ends(self):
        """Test queued items are delivered before the end marker."""
        channel: UnboundedChannel[str] = UnboundedChannel()
        channel.send("a")
        channel.close()

        assert await channel.recv() == "a"
        assert await channel.recv() is None
        # The end stays visible
        assert await channel.recv() is None
        assert channel.try_recv() is None

    async def test_send_after_close_raises(self):
        """Test a closed channel rejects new items."""
        channel: UnboundedChannel[int] = UnboundedChannel()
        sender = channel.sender()
        channel.close()
        channel.close()

        assert sender.closed
        with pytest.raises(ChannelClosedError):
            sender.send(1)

    async def test_close_wakes_waiting_receiver(self):
        """Test a pending recv returns None when the channel closes."""
        channel: UnboundedChannel[int] = UnboundedChannel()
        waiter = asyncio.create_task(channel.recv())
        await asyncio.sleep(0)

        channel.close()

        assert await asyncio.wait_for(waiter, 1.0) is None

    async def test_send_from_other_thread(self):
        """Test items sent from a foreign thread reach the loop."""
        channel: UnboundedChannel[int] = UnboundedChannel()
        sender = channel.sender()

        thread = threading.Thread(target=lambda: [sender.send(i) for i in range(5)])
        thread.start()
        thread.join()

        received = [await asyncio.wait_for(channel.recv(), 1.0) for _ in range(5)]
        assert received == [0, 1, 2, 3, 4]

    def test_send_after_loop_closed_raises(self):
        """Test a thread sending into a finished loop gets ChannelClosedError."""
        loop = asyncio.new_event_loop()
        channel: UnboundedChannel[int] = UnboundedChannel(loop=loop)
        loop.close()

        with pytest.raises(ChannelClosedError):
            channel.send(1)
