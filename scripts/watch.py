#!/usr/bin/env python3
"""
Watchloop Command Line.

Re-runs a command, or a package.json script, whenever watched files change.
Requires Python 3.11+.

Usage:
    python scripts/watch.py --watch src -- pytest -x
    python scripts/watch.py --task build
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from package_json.loader import PackageJsonCache
from tasks.command import CommandFlags, command_operation
from watcher.event_source import WatcherError
from watcher.orchestrator import PrintConfig, watch_func
from utils.config import get_settings
from utils.logger import configure_logging, get_logger


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        description="Run a command and re-run it whenever watched files change"
    )
    parser.add_argument(
        "command",
        nargs=argparse.REMAINDER,
        help="Command to run (put it after --); extra arguments when --task is used",
    )
    parser.add_argument(
        "--task",
        default=None,
        help="Run a script from the nearest package.json instead of a command",
    )
    parser.add_argument(
        "--watch",
        dest="watch_paths",
        action="append",
        type=Path,
        default=[],
        help="File or directory to watch (repeatable, defaults to the working directory)",
    )
    parser.add_argument(
        "--job",
        dest="job_name",
        default=None,
        help="Name shown in watcher log lines",
    )
    parser.add_argument(
        "--no-clear-screen",
        action="store_true",
        help="Do not clear the terminal before restarting",
    )
    parser.add_argument(
        "--no-reload",
        action="store_true",
        help="Do not set WATCHLOOP_RELOAD on the first run",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override LOG_LEVEL",
    )
    return parser


def main() -> None:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args()

    command = tuple(args.command)
    if command[:1] == ("--",):
        command = command[1:]
    if not command and args.task is None:
        parser.error("a command or --task is required")

    configure_logging(args.log_level)
    logger = get_logger("watch")
    settings = get_settings()

    flags = CommandFlags(
        reload=not args.no_reload,
        command=command,
        task=args.task,
        watch_paths=tuple(args.watch_paths),
        cwd=Path.cwd(),
    )
    print_config = PrintConfig(
        job_name=args.job_name or args.task or "Process",
        clear_screen=settings.watcher.clear_screen and not args.no_clear_screen,
    )

    try:
        asyncio.run(watch_func(flags, print_config, command_operation(PackageJsonCache())))
    except WatcherError as e:
        logger.error("watcher_failed", error=str(e))
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nCancelled by user", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    main()
