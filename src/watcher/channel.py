"""
Watchloop Channels.

Unbounded single-consumer queues that may be fed from any thread.
Requires Python 3.11+.
"""

import asyncio
from typing import Generic, TypeVar

T = TypeVar("T")

_CLOSED = object()


class ChannelClosedError(Exception):
    """Raised when sending on a channel that no longer accepts items."""


class UnboundedChannel(Generic[T]):
    """
    Multi-producer, single-consumer queue bound to an event loop.

    Producers on the loop thread enqueue directly; producers on other
    threads (e.g. a watchdog observer) hand items over with
    ``call_soon_threadsafe``. Must be created while the loop is running
    unless a loop is passed explicitly.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        """
        Initialize the channel.

        Args:
            loop: Loop the consumer runs on (defaults to the running loop)
        """
        self._loop = loop or asyncio.get_running_loop()
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._closed = False

    def _on_loop_thread(self) -> bool:
        try:
            return asyncio.get_running_loop() is self._loop
        except RuntimeError:
            return False

    def _put(self, item: object) -> None:
        if self._on_loop_thread():
            self._queue.put_nowait(item)
            return
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, item)
        except RuntimeError as e:
            raise ChannelClosedError("event loop is closed") from e

    def send(self, item: T) -> None:
        """
        Enqueue an item without blocking.

        Raises:
            ChannelClosedError: If the channel or its loop is closed
        """
        if self._closed:
            raise ChannelClosedError("channel is closed")
        self._put(item)

    def close(self) -> None:
        """Stop accepting items; the consumer drains what is queued."""
        if self._closed:
            return
        self._closed = True
        try:
            self._put(_CLOSED)
        except ChannelClosedError:
            # Loop already gone, no consumer left to wake
            pass

    @property
    def closed(self) -> bool:
        """Check if the channel has been closed."""
        return self._closed

    async def recv(self) -> T | None:
        """
        Wait for the next item.

        Returns:
            The item, or None once the channel is closed and drained
        """
        item = await self._queue.get()
        if item is _CLOSED:
            # Keep the marker so later receivers also see the end
            self._queue.put_nowait(_CLOSED)
            return None
        return item  # type: ignore[return-value]

    def try_recv(self) -> T | None:
        """Return the next queued item, or None if nothing is ready."""
        try:
            item = self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None
        if item is _CLOSED:
            self._queue.put_nowait(_CLOSED)
            return None
        return item  # type: ignore[return-value]

    def sender(self) -> "ChannelSender[T]":
        """Get a write-only handle for producers."""
        return ChannelSender(self)

    def __len__(self) -> int:
        return self._queue.qsize()


class ChannelSender(Generic[T]):
    """Write-only capability on an UnboundedChannel."""

    __slots__ = ("_channel",)

    def __init__(self, channel: UnboundedChannel[T]) -> None:
        self._channel = channel

    def send(self, item: T) -> None:
        """Enqueue an item; see UnboundedChannel.send."""
        self._channel.send(item)

    @property
    def closed(self) -> bool:
        """Check if the underlying channel has been closed."""
        return self._channel.closed
