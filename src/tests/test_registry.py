"""
Tests for the Path Registry.

Requires Python 3.11+.
"""

import asyncio
from pathlib import Path

from conftest import FakeWatcher, wait_until
from watcher.channel import UnboundedChannel
from watcher.registry import PathRegistry


class TestPathRegistry:
    """Test cases for PathRegistry."""

    async def test_backlog_drained_into_new_watcher(self):
        """Test requests made while no watcher exists are not lost."""
        registry = PathRegistry()
        registry.sender.send([Path("/proj/src")])
        registry.sender.send([Path("/proj/src/util.ts"), Path("/proj/package.json")])

        watcher = FakeWatcher(UnboundedChannel[list[Path]]().sender())
        assert registry.drain_into(watcher) == 2
        assert watcher.watched == {
            Path("/proj/src"),
            Path("/proj/src/util.ts"),
            Path("/proj/package.json"),
        }
        assert registry.drain_into(watcher) == 0

    async def test_pump_feeds_live_watcher(self):
        """Test requests sent while pumping reach the watcher."""
        registry = PathRegistry()
        watcher = FakeWatcher(UnboundedChannel[list[Path]]().sender())
        pump = asyncio.create_task(registry.pump(watcher))

        registry.sender.send([Path("/proj/src/util.ts")])
        await wait_until(lambda: Path("/proj/src/util.ts") in watcher.watched)

        pump.cancel()
        # Requests after the pump stops wait for the next watcher
        registry.sender.send([Path("/proj/src/late.ts")])
        await asyncio.sleep(0.05)
        assert Path("/proj/src/late.ts") not in watcher.watched

        other = FakeWatcher(UnboundedChannel[list[Path]]().sender())
        assert registry.drain_into(other) == 1
        assert other.watched == {Path("/proj/src/late.ts")}

    async def test_pump_ends_when_closed(self):
        """Test the pump returns once the channel is closed."""
        registry = PathRegistry()
        watcher = FakeWatcher(UnboundedChannel[list[Path]]().sender())
        pump = asyncio.create_task(registry.pump(watcher))

        registry.close()

        await asyncio.wait_for(pump, 1.0)
        assert pump.done() and pump.exception() is None
