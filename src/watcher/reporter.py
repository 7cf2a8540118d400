"""
Watchloop Error Reporter.

Formats operation failures for display. Failures never stop the loop.
Requires Python 3.11+.
"""

import sys
from collections.abc import Awaitable
from dataclasses import dataclass, field
from typing import TextIO

from utils.colors import red_bold
from utils.logger import get_logger

logger = get_logger("watcher.reporter")


@dataclass(slots=True)
class StackFrame:
    """A single frame of a script stack trace."""

    file_name: str
    line: int
    column: int
    function_name: str | None = None

    def format(self) -> str:
        """Render the frame as an ``at`` line."""
        location = f"{self.file_name}:{self.line}:{self.column}"
        if self.function_name:
            return f"at {self.function_name} ({location})"
        return f"at {location}"


class ScriptError(Exception):
    """
    A structured error raised by a watched script.

    Operations raise this when they can attribute a failure to a location
    in user code; it is rendered with its stack instead of as a plain
    exception.
    """

    def __init__(self, message: str, frames: list[StackFrame] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.frames: list[StackFrame] = frames or []

    def format(self) -> str:
        """Render the message followed by one line per frame."""
        lines = [self.message]
        lines.extend(f"    {frame.format()}" for frame in self.frames)
        return "\n".join(lines)


def _describe(err: BaseException) -> str:
    message = str(err)
    name = type(err).__name__
    return f"{name}: {message}" if message else name


def _next_cause(err: BaseException) -> BaseException | None:
    if err.__cause__ is not None:
        return err.__cause__
    return None if err.__suppress_context__ else err.__context__


def _format_generic(err: BaseException) -> str:
    lines = [_describe(err)]
    seen = {id(err)}
    cause = _next_cause(err)
    if cause is not None:
        lines.extend(["", "Caused by:"])
    depth = 0
    while cause is not None and id(cause) not in seen:
        seen.add(id(cause))
        lines.append(f"    {depth}: {_describe(cause)}")
        depth += 1
        cause = _next_cause(cause)
    return "\n".join(lines)


def format_error(err: BaseException) -> str:
    """
    Render an operation failure for the terminal.

    Script errors keep their stack; everything else is shown with its
    type and cause chain.
    """
    if isinstance(err, ScriptError):
        text = err.format()
    else:
        text = _format_generic(err)
    return text.removeprefix("error: ")


async def report_errors(
    operation: Awaitable[None],
    stream: TextIO | None = None,
) -> bool:
    """
    Await an operation run and report a failure instead of raising it.

    Args:
        operation: The run to await
        stream: Where the ``error:`` line goes (stderr by default)

    Returns:
        True if the run succeeded, False if it raised
    """
    try:
        await operation
    except Exception as e:
        out = stream if stream is not None else sys.stderr
        print(f"{red_bold('error', stream=out)}: {format_error(e)}", file=out)
        logger.debug("operation_failed", error_type=type(e).__name__)
        return False
    return True
