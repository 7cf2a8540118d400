"""
Watchloop Debouncer.

Coalesces bursts of file system events into a single change set.
Requires Python 3.11+.
"""

import asyncio
from pathlib import Path

from watcher.channel import UnboundedChannel
from utils.logger import LoggerMixin

DEFAULT_DEBOUNCE_INTERVAL_MS = 200


class DebouncedReceiver(LoggerMixin):
    """
    Quiet-period debouncer over a channel of path batches.

    Every arriving batch restarts the quiet-period timer, so a continuous
    stream of events never flushes until activity pauses for the whole
    interval. Accumulated paths are kept on the instance: a ``recv()``
    cancelled by a competing task loses nothing, the next call resumes
    with what was already collected.
    """

    def __init__(
        self,
        channel: UnboundedChannel[list[Path]],
        interval_ms: int = DEFAULT_DEBOUNCE_INTERVAL_MS,
    ) -> None:
        """
        Initialize the debouncer.

        Args:
            channel: Upstream channel of path batches
            interval_ms: Quiet period in milliseconds
        """
        self._channel = channel
        self._interval = interval_ms / 1000.0
        self._received: set[Path] = set()

    async def recv(self) -> set[Path] | None:
        """
        Wait for the next debounced change set.

        Returns:
            Non-empty set of changed paths, or None if the upstream
            channel was closed
        """
        while not self._received:
            batch = await self._channel.recv()
            if batch is None:
                return None
            self._received.update(batch)

        while True:
            try:
                batch = await asyncio.wait_for(self._channel.recv(), self._interval)
            except TimeoutError:
                changes, self._received = self._received, set()
                self.log.debug("processing_debounced_changes", count=len(changes))
                return changes

            if batch is None:
                return None
            self._received.update(batch)

    @property
    def pending_count(self) -> int:
        """Get number of paths waiting for the quiet period."""
        return len(self._received)

    @property
    def pending_paths(self) -> list[Path]:
        """Get list of paths waiting for the quiet period."""
        return list(self._received)
