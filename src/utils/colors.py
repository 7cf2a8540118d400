"""
Watchloop Terminal Colors.

ANSI styling for the few user-facing notices, sharing structlog's palette.
Requires Python 3.11+.
"""

import os
import sys
from typing import TextIO

from structlog.dev import BLUE, BRIGHT, RED, RESET_ALL


def use_color(stream: TextIO | None = None) -> bool:
    """Check whether ANSI styling should be emitted on a stream."""
    if os.environ.get("NO_COLOR"):
        return False
    stream = stream if stream is not None else sys.stderr
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


def _style(text: str, *codes: str, stream: TextIO | None = None) -> str:
    if not use_color(stream):
        return text
    return f"{''.join(codes)}{text}{RESET_ALL}"


def red_bold(text: str, stream: TextIO | None = None) -> str:
    """Render text in bold red."""
    return _style(text, BRIGHT, RED, stream=stream)


def intense_blue(text: str, stream: TextIO | None = None) -> str:
    """Render text in bright blue."""
    return _style(text, BRIGHT, BLUE, stream=stream)
