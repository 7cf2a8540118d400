"""
Watchloop Path Canonicalization.

Requires Python 3.11+.
"""

import os
from pathlib import Path


def canonicalize_path(path: str | os.PathLike[str]) -> Path | None:
    """
    Resolve a path to its absolute, symlink-free form.

    Args:
        path: Raw path as reported by the OS or a caller

    Returns:
        The canonical path, or None if it can no longer be resolved
    """
    try:
        return Path(path).resolve(strict=True)
    except (OSError, RuntimeError):
        # Missing target, permission denied or a symlink loop
        return None
