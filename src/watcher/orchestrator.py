"""
Watchloop Orchestrator.

Re-runs an operation whenever watched files change.
Requires Python 3.11+.
"""

import asyncio
import sys
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from enum import Enum
from functools import partial
from pathlib import Path
from typing import Any, Generic, TextIO, TypeVar

from structlog.stdlib import BoundLogger

from watcher.channel import ChannelSender, UnboundedChannel
from watcher.debouncer import DebouncedReceiver
from watcher.event_source import WatcherHandle, new_watcher
from watcher.registry import PathBatch, PathRegistry
from watcher.reporter import report_errors
from utils.colors import intense_blue
from utils.config import get_settings
from utils.logger import LoggerMixin

CLEAR_SCREEN = "\x1b[2J\x1b[1;1H"


class CycleState(str, Enum):
    """Phases of one watch cycle."""

    STARTING = "starting"
    RUNNING = "running"
    AWAITING_CHANGE = "awaiting_change"


@dataclass(frozen=True)
class Flags:
    """
    Configuration snapshot handed to every operation run.

    Subclass to carry operation-specific options. ``reload`` is kept as
    given for the first run and forced off for every restart.
    """

    reload: bool = True


@dataclass(frozen=True)
class PrintConfig:
    """How the watcher reports its status."""

    job_name: str
    # Only honoured when stderr is a terminal
    clear_screen: bool = True


@dataclass(slots=True)
class _Restart:
    """A debounced change that ends the current cycle."""

    paths: set[Path]
    run_task: asyncio.Task[bool]


FlagsT = TypeVar("FlagsT", bound=Flags)

Operation = Callable[[FlagsT, ChannelSender[PathBatch], list[Path] | None], Awaitable[None]]
WatcherFactory = Callable[[ChannelSender[list[Path]]], WatcherHandle]


class WatchOrchestrator(LoggerMixin, Generic[FlagsT]):
    """
    Top-level watch loop.

    Each cycle builds a fresh watcher, starts the operation and races
    three things: paths the operation asks to watch, a debounced change
    set and the operation finishing. A change restarts the cycle; a
    finished run (successful or not) leaves the loop waiting for the next
    change. The loop only ends when cancelled or stopped.
    """

    def __init__(
        self,
        flags: FlagsT,
        print_config: PrintConfig,
        operation: Operation[FlagsT],
        *,
        watcher_factory: WatcherFactory | None = None,
        debounce_interval_ms: int | None = None,
        settle_yields: int | None = None,
        stream: TextIO | None = None,
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            flags: Configuration snapshot passed to each run
            print_config: Job name and screen clearing preference
            operation: Builds one run from (flags, path sender, changed paths)
            watcher_factory: Builds the watcher for a cycle
            debounce_interval_ms: Quiet period before a change set is flushed
            settle_yields: Event loop yields before each watcher is built
            stream: Terminal stream for notices (stderr by default)
        """
        settings = get_settings().watcher

        self._flags = flags
        self._print_config = print_config
        self._operation = operation
        self._watcher_factory = watcher_factory or partial(
            new_watcher, join_timeout=settings.join_timeout_seconds
        )
        self._debounce_interval_ms = (
            settings.debounce_interval_ms if debounce_interval_ms is None else debounce_interval_ms
        )
        self._settle_yields = settings.settle_yields if settle_yields is None else settle_yields
        self._stream = stream

        self._events: UnboundedChannel[list[Path]] | None = None
        self._state = CycleState.STARTING
        self._cycle = 0

    @property
    def state(self) -> CycleState:
        """Get the phase of the current cycle."""
        return self._state

    @property
    def cycle(self) -> int:
        """Get the number of cycles started so far."""
        return self._cycle

    def stop(self) -> None:
        """End the loop gracefully once queued events are handled."""
        if self._events is not None:
            self._events.close()

    async def run(self) -> None:
        """
        Run the watch loop.

        Raises:
            WatcherError: If a watcher cannot be created
        """
        log = self.log.bind(job_name=self._print_config.job_name)

        events: UnboundedChannel[list[Path]] = UnboundedChannel()
        self._events = events
        registry = PathRegistry()
        debouncer = DebouncedReceiver(events, self._debounce_interval_ms)

        watcher: WatcherHandle | None = None
        previous_run: asyncio.Task[bool] | None = None
        changed_paths: list[Path] | None = None

        try:
            while True:
                self._cycle += 1
                self._set_state(CycleState.STARTING, log)

                # Give cancelled work from the previous run a chance to unwind
                await self._settle()
                if previous_run is not None and not previous_run.done():
                    log.debug("previous_run_still_cancelling", cycle=self._cycle)

                if watcher is not None:
                    stale, watcher = watcher, None
                    await asyncio.to_thread(stale.close)
                watcher = self._watcher_factory(events.sender())
                registry.drain_into(watcher)
                if self._cycle == 1:
                    self._notice(f"{self._print_config.job_name} started.")
                    log.info("watcher_started")

                flags = self._flags if self._cycle == 1 else replace(self._flags, reload=False)
                run = self._operation(flags, registry.sender, changed_paths)
                changed_paths = None

                changed = await self._run_cycle(run, watcher, registry, debouncer, log)
                if changed is None:
                    log.info("watcher_stopped")
                    return

                previous_run = changed.run_task
                changed_paths = sorted(changed.paths)
        finally:
            if watcher is not None:
                # Joining the observer thread can take up to the join timeout
                await asyncio.to_thread(watcher.close)
            registry.close()
            events.close()
            self._events = None

    async def _run_cycle(
        self,
        run: Awaitable[None],
        watcher: WatcherHandle,
        registry: PathRegistry,
        debouncer: DebouncedReceiver,
        log: BoundLogger,
    ) -> _Restart | None:
        run_task = asyncio.create_task(report_errors(run, self._stream))
        pump_task = asyncio.create_task(registry.pump(watcher))
        change_task = asyncio.create_task(debouncer.recv())
        pending: set[asyncio.Task[Any]] = {run_task, pump_task, change_task}

        self._set_state(CycleState.RUNNING, log)
        try:
            while True:
                done, _ = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)

                if pump_task in done:
                    pending.discard(pump_task)
                    pump_task.result()

                if change_task in done:
                    paths = change_task.result()
                    if paths is None:
                        return None
                    self._print_after_restart(log, paths)
                    return _Restart(paths=paths, run_task=run_task)

                if run_task in done:
                    pending.discard(run_task)
                    success = not run_task.cancelled() and run_task.result()
                    registry.drain_into(watcher)
                    outcome = "finished" if success else "failed"
                    self._notice(
                        f"{self._print_config.job_name} {outcome}. Restarting on file change..."
                    )
                    if success:
                        log.info("watcher_job_finished", next_step="restart on file change")
                    else:
                        log.info("watcher_job_failed", next_step="restart on file change")
                    self._set_state(CycleState.AWAITING_CHANGE, log)
        finally:
            for task in (run_task, pump_task, change_task):
                if not task.done():
                    task.cancel()

    def _print_after_restart(self, log: BoundLogger, paths: set[Path]) -> None:
        stream = self._stream if self._stream is not None else sys.stderr
        if self._print_config.clear_screen and stream.isatty():
            stream.write(CLEAR_SCREEN)
        self._notice("File change detected! Restarting!")
        log.info("file_change_detected", changed=len(paths), next_step="restarting")

    def _notice(self, message: str) -> None:
        stream = self._stream if self._stream is not None else sys.stderr
        stream.write(f"{intense_blue('Watcher', stream=stream)} {message}\n")
        stream.flush()

    async def _settle(self) -> None:
        for _ in range(self._settle_yields):
            await asyncio.sleep(0)

    def _set_state(self, state: CycleState, log: BoundLogger) -> None:
        self._state = state
        log.debug("watch_cycle_state", cycle=self._cycle, state=state.value)


async def watch_func(
    flags: FlagsT,
    print_config: PrintConfig,
    operation: Operation[FlagsT],
    **options: Any,
) -> None:
    """
    Run an operation in watch mode until cancelled.

    Args:
        flags: Configuration snapshot passed to each run
        print_config: Job name and screen clearing preference
        operation: Builds one run from (flags, path sender, changed paths)
        **options: Forwarded to WatchOrchestrator

    Raises:
        WatcherError: If a watcher cannot be created
    """
    orchestrator = WatchOrchestrator(flags, print_config, operation, **options)
    await orchestrator.run()
