"""
Watchloop Path Registry.

The registration channel through which a running operation asks for
additional paths to be watched.
Requires Python 3.11+.
"""

import os
from collections.abc import Iterable
from typing import Protocol

from watcher.channel import ChannelSender, UnboundedChannel
from utils.logger import LoggerMixin

PathBatch = list[str | os.PathLike[str]]


class WatchTarget(Protocol):
    """Anything that can start watching paths (normally a WatcherHandle)."""

    def watch(self, paths: Iterable[str | os.PathLike[str]]) -> None: ...


class PathRegistry(LoggerMixin):
    """
    Receiving side of the registration channel.

    The channel outlives individual watchers: requests that arrive while
    no watcher exists queue up and are drained into the next one.
    """

    def __init__(self, channel: UnboundedChannel[PathBatch] | None = None) -> None:
        """
        Initialize the registry.

        Args:
            channel: Registration channel (created on the running loop if omitted)
        """
        self._channel: UnboundedChannel[PathBatch] = (
            channel if channel is not None else UnboundedChannel()
        )

    @property
    def sender(self) -> ChannelSender[PathBatch]:
        """Write-only handle given to operations."""
        return self._channel.sender()

    def drain_into(self, watcher: WatchTarget) -> int:
        """
        Move every queued request into a watcher without suspending.

        Returns:
            Number of batches consumed
        """
        count = 0
        while (paths := self._channel.try_recv()) is not None:
            watcher.watch(paths)
            count += 1
        return count

    async def pump(self, watcher: WatchTarget) -> None:
        """Feed requests into a watcher as they arrive, until cancelled or closed."""
        while (paths := await self._channel.recv()) is not None:
            watcher.watch(paths)
        self.log.debug("registration_channel_closed")

    def close(self) -> None:
        """Close the registration channel."""
        self._channel.close()
