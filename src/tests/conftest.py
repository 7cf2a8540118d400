"""
Watchloop Test Configuration.

Pytest fixtures and configuration.
Requires Python 3.11+.
"""

import asyncio
import json
import os
from collections.abc import Callable, Iterable
from pathlib import Path

import pytest

from watcher.channel import ChannelSender


class FakeWatcher:
    """In-memory stand-in for WatcherHandle."""

    def __init__(self, sender: ChannelSender[list[Path]]) -> None:
        self.sender = sender
        self.watched: set[Path] = set()
        self.closed = False

    def watch(self, paths: Iterable[str | os.PathLike[str]]) -> None:
        self.watched.update(Path(p) for p in paths)

    def close(self) -> None:
        self.closed = True

    def emit(self, *paths: Path) -> None:
        """Deliver a batch as if the OS had reported it."""
        self.sender.send(list(paths))


class FakeWatcherFactory:
    """Records every watcher the orchestrator builds."""

    def __init__(self) -> None:
        self.watchers: list[FakeWatcher] = []

    def __call__(self, sender: ChannelSender[list[Path]]) -> FakeWatcher:
        watcher = FakeWatcher(sender)
        self.watchers.append(watcher)
        return watcher

    @property
    def current(self) -> FakeWatcher:
        return self.watchers[-1]


class RecordingSender:
    """Collects batches sent on a registration channel."""

    def __init__(self) -> None:
        self.batches: list[list[Path]] = []

    def send(self, item: list[Path]) -> None:
        self.batches.append([Path(p) for p in item])

    @property
    def paths(self) -> list[Path]:
        return [p for batch in self.batches for p in batch]


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll until predicate holds, failing the test on timeout."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            pytest.fail("condition not reached before timeout")
        await asyncio.sleep(0.01)


@pytest.fixture
def watcher_factory() -> FakeWatcherFactory:
    """Create a fake watcher factory."""
    return FakeWatcherFactory()


@pytest.fixture
def recording_sender() -> RecordingSender:
    """Create a sender that records registrations."""
    return RecordingSender()


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Create a small project with sources and a package.json."""
    root = tmp_path / "proj"
    src = root / "src"
    src.mkdir(parents=True)
    (src / "main.ts").write_text("import { add } from './util.ts';\n")
    (src / "util.ts").write_text("export const add = (a, b) => a + b;\n")
    (root / "package.json").write_text(
        json.dumps(
            {
                "name": "proj",
                "version": "1.0.0",
                "type": "module",
                "scripts": {"build": "echo building", "test": "echo testing"},
                "dependencies": {"left-pad": "^1.3.0"},
                "devDependencies": {"typescript": "^5.0.0"},
            }
        )
    )
    return root.resolve()
