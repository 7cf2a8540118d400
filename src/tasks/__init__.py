"""
Watchloop Tasks Package.

Concrete operations for the watch loop.
Requires Python 3.11+.
"""

from tasks.command import (
    CommandFailedError,
    CommandFlags,
    TaskNotFoundError,
    command_operation,
    resolve_command,
    run_command,
)

__all__ = [
    "CommandFailedError",
    "CommandFlags",
    "TaskNotFoundError",
    "command_operation",
    "resolve_command",
    "run_command",
]
