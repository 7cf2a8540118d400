"""
Watchloop Event Source.

Cross-platform file system monitoring using watchdog.
Requires Python 3.11+.
"""

import errno
import os
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    DirModifiedEvent,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver

from watcher.channel import ChannelClosedError, ChannelSender
from watcher.paths import canonicalize_path
from utils.logger import LoggerMixin

# Access events (opened, closed) never trigger a restart
RELEVANT_EVENT_TYPES = frozenset(
    {EVENT_TYPE_CREATED, EVENT_TYPE_MODIFIED, EVENT_TYPE_DELETED, EVENT_TYPE_MOVED}
)

# Failures that concern a single path; anything else means the watcher is unusable
PER_PATH_ERRNOS = frozenset(
    {errno.ENOENT, errno.ENOTDIR, errno.EACCES, errno.EPERM, errno.ELOOP}
)

ObserverFactory = Callable[[], BaseObserver]


class WatcherError(Exception):
    """Raised when the native file watcher cannot be created."""


class ChangeEventHandler(FileSystemEventHandler, LoggerMixin):
    """
    Forwards file system events as batches of canonical paths.

    Runs on the observer thread; its only job is to push into the
    thread-safe channel.
    """

    def __init__(self, sender: ChannelSender[list[Path]]) -> None:
        """
        Initialize the event handler.

        Args:
            sender: Destination for path batches
        """
        super().__init__()
        self._sender = sender

    def on_any_event(self, event: FileSystemEvent) -> None:
        """Canonicalize and forward create, modify, remove and move events."""
        if event.event_type not in RELEVANT_EVENT_TYPES:
            return

        # Skip directory modified events; the file events inside carry the change
        if isinstance(event, DirModifiedEvent):
            return

        raw_paths = [event.src_path, getattr(event, "dest_path", "")]
        paths = [
            canonical
            for raw in raw_paths
            if raw and (canonical := canonicalize_path(os.fsdecode(raw))) is not None
        ]

        try:
            self._sender.send(paths)
        except ChannelClosedError:
            self.log.debug("event_dropped_after_close", event_type=event.event_type)


class WatcherHandle(LoggerMixin):
    """
    Native recursive watch state for one orchestration cycle.

    Paths are only ever added. A handle is replaced wholesale at the start
    of every cycle instead of unwatching individual paths.
    """

    def __init__(
        self,
        sender: ChannelSender[list[Path]],
        observer_factory: ObserverFactory = Observer,
        join_timeout: float = 5.0,
    ) -> None:
        """
        Create and start the native watcher.

        Args:
            sender: Destination for path batches
            observer_factory: Builds the watchdog observer
            join_timeout: Seconds to wait for the observer thread on close

        Raises:
            WatcherError: If the observer cannot be created or started
        """
        self._handler = ChangeEventHandler(sender)
        self._join_timeout = join_timeout
        self._watched: set[Path] = set()
        self._closed = False

        try:
            self._observer = observer_factory()
            self._observer.start()
        except (OSError, RuntimeError) as e:
            raise WatcherError(f"failed to create file watcher: {e}") from e

    def watch(self, paths: Iterable[str | os.PathLike[str]]) -> None:
        """
        Watch paths recursively.

        Duplicates (by canonical form), paths that no longer exist and
        paths the OS refuses to watch are skipped without error.

        Args:
            paths: Files or directories to watch

        Raises:
            WatcherError: If the OS cannot watch any more paths
        """
        added: list[str] = []
        for path in paths:
            canonical = canonicalize_path(path)
            if canonical is None or canonical in self._watched:
                continue
            try:
                self._observer.schedule(self._handler, str(canonical), recursive=True)
            except OSError as e:
                if e.errno not in PER_PATH_ERRNOS:
                    # e.g. EMFILE when the inotify instance limit is reached
                    raise WatcherError(f"failed to watch {canonical}: {e}") from e
                self.log.debug("watch_path_failed", path=str(canonical), error=str(e))
                continue
            self._watched.add(canonical)
            added.append(str(canonical))

        if added:
            self.log.debug("watching_paths", paths=added)

    @property
    def watched_paths(self) -> frozenset[Path]:
        """Get the current watch set."""
        return frozenset(self._watched)

    def close(self) -> None:
        """Stop the observer thread and release native watches."""
        if self._closed:
            return
        self._closed = True
        self._observer.stop()
        self._observer.join(timeout=self._join_timeout)

    def __enter__(self) -> "WatcherHandle":
        """Context manager entry."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.close()


def new_watcher(
    sender: ChannelSender[list[Path]],
    join_timeout: float = 5.0,
) -> WatcherHandle:
    """
    Create a watcher backed by the platform's recommended observer.

    Args:
        sender: Destination for path batches
        join_timeout: Seconds to wait for the observer thread on close

    Returns:
        Started WatcherHandle with nothing watched yet
    """
    return WatcherHandle(sender, join_timeout=join_timeout)
