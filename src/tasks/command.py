"""
Watchloop Command Operation.

Runs a shell command, or a package.json script, as a watch-mode operation.
Requires Python 3.11+.
"""

import asyncio
import os
import shlex
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path

from package_json.loader import (
    PACKAGE_JSON,
    PackageJson,
    PackageJsonCache,
    find_package_json,
)
from watcher.channel import ChannelSender
from watcher.orchestrator import Flags, Operation
from watcher.registry import PathBatch
from utils.logger import get_logger

logger = get_logger("tasks.command")

CHANGED_PATHS_ENV = "WATCHLOOP_CHANGED_PATHS"
RELOAD_ENV = "WATCHLOOP_RELOAD"
TERMINATE_TIMEOUT_SECONDS = 5.0


class CommandFailedError(Exception):
    """Raised when the command exits with a non-zero status."""

    def __init__(self, command: str, returncode: int) -> None:
        super().__init__(f"command exited with status {returncode}: {command}")
        self.command = command
        self.returncode = returncode


class TaskNotFoundError(Exception):
    """Raised when a named task is not defined in package.json."""


@dataclass(frozen=True)
class CommandFlags(Flags):
    """Options for running a command in watch mode."""

    command: tuple[str, ...] = ()
    task: str | None = None
    watch_paths: tuple[Path, ...] = ()
    cwd: Path = field(default_factory=Path.cwd)


def resolve_command(
    flags: CommandFlags, cache: PackageJsonCache
) -> tuple[str, PackageJson | None]:
    """
    Work out the shell command for a run.

    Args:
        flags: Command options
        cache: Manifest cache of the calling worker

    Returns:
        The shell command and the manifest it came from, if any

    Raises:
        TaskNotFoundError: If a task is requested but not defined
    """
    if flags.task is None:
        if not flags.command:
            raise ValueError("either a command or a task is required")
        return shlex.join(flags.command), None

    manifest = find_package_json(flags.cwd, cache)
    if manifest is None:
        raise TaskNotFoundError(f"no package.json found for task '{flags.task}'")

    script = manifest.scripts.get(flags.task)
    if script is None:
        available = ", ".join(sorted(manifest.scripts)) or "none"
        raise TaskNotFoundError(
            f"task '{flags.task}' not found in {manifest.path} (available: {available})"
        )

    if flags.command:
        script = f"{script} {shlex.join(flags.command)}"
    return script, manifest


async def _terminate(process: asyncio.subprocess.Process) -> None:
    if process.returncode is not None:
        return
    try:
        process.terminate()
    except ProcessLookupError:
        return
    try:
        await asyncio.wait_for(process.wait(), TERMINATE_TIMEOUT_SECONDS)
    except TimeoutError:
        process.kill()
        await process.wait()


async def run_command(
    flags: CommandFlags,
    sender: ChannelSender[PathBatch],
    changed_paths: list[Path] | None,
    *,
    cache: PackageJsonCache,
) -> None:
    """
    Run the command once.

    Registers the watch paths (and the manifest a task came from), passes
    the changed paths to the child in ``WATCHLOOP_CHANGED_PATHS`` and
    terminates the child if the run is cancelled. The manifest cache lives
    across runs; a changed package.json is evicted before it is read again.

    Raises:
        CommandFailedError: If the command exits with a non-zero status
        TaskNotFoundError: If the requested task does not exist
    """
    # Only an edited manifest invalidates its cached copy
    for path in changed_paths or ():
        if path.name == PACKAGE_JSON:
            cache.evict(path)

    watch_paths = [flags.cwd / p for p in flags.watch_paths] or [flags.cwd]
    sender.send(watch_paths)

    command, manifest = resolve_command(flags, cache)
    if manifest is not None:
        sender.send([manifest.path])

    env = dict(os.environ)
    env.pop(CHANGED_PATHS_ENV, None)
    env.pop(RELOAD_ENV, None)
    if changed_paths:
        env[CHANGED_PATHS_ENV] = os.pathsep.join(str(p) for p in changed_paths)
    if flags.reload:
        env[RELOAD_ENV] = "1"

    logger.info("command_started", command=command, changed=len(changed_paths or []))
    process = await asyncio.create_subprocess_shell(command, cwd=flags.cwd, env=env)
    try:
        returncode = await process.wait()
    except asyncio.CancelledError:
        await _terminate(process)
        raise

    if returncode != 0:
        raise CommandFailedError(command, returncode)


def command_operation(cache: PackageJsonCache | None = None) -> Operation[CommandFlags]:
    """
    Build a re-runnable command operation bound to a manifest cache.

    Args:
        cache: Manifest cache to use (a fresh one if omitted)

    Returns:
        Operation suitable for watch_func
    """
    if cache is None:
        cache = PackageJsonCache()
    return partial(run_command, cache=cache)
