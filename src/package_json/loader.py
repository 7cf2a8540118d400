"""
Watchloop package.json Loader.

Reads package manifests with an explicit per-worker cache.
Requires Python 3.11+.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from utils.logger import LoggerMixin, get_logger

logger = get_logger("package_json")

PACKAGE_JSON = "package.json"


class PackageJsonLoadError(Exception):
    """Raised when a package.json exists but cannot be read or parsed."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"failed to load {path}: {reason}")
        self.path = path
        self.reason = reason


@dataclass(slots=True)
class PackageJson:
    """A parsed package manifest."""

    path: Path
    name: str | None = None
    version: str | None = None
    main: str | None = None
    type: str = "commonjs"
    scripts: dict[str, str] = field(default_factory=dict)
    dependencies: dict[str, str] = field(default_factory=dict)
    dev_dependencies: dict[str, str] = field(default_factory=dict)
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def directory(self) -> Path:
        """Get the directory containing the manifest."""
        return self.path.parent

    @classmethod
    def from_dict(cls, path: Path, data: dict[str, Any]) -> "PackageJson":
        """
        Build a manifest from decoded JSON.

        Fields with an unexpected type are treated as absent.
        """

        def _str(key: str) -> str | None:
            value = data.get(key)
            return value if isinstance(value, str) else None

        def _str_map(key: str) -> dict[str, str]:
            value = data.get(key)
            if not isinstance(value, dict):
                return {}
            return {k: v for k, v in value.items() if isinstance(v, str)}

        return cls(
            path=path,
            name=_str("name"),
            version=_str("version"),
            main=_str("main"),
            type=_str("type") or "commonjs",
            scripts=_str_map("scripts"),
            dependencies=_str_map("dependencies"),
            dev_dependencies=_str_map("devDependencies"),
            raw=data,
        )


class PackageJsonCache(LoggerMixin):
    """
    Manifest cache owned by a single worker.

    Holds parsed manifests by path plus a negative cache of paths known
    to have no manifest. Create one per worker, evict a path when its file changes and clear
    it when the worker is recycled.
    """

    def __init__(self) -> None:
        """Initialize empty caches."""
        self._entries: dict[Path, PackageJson] = {}
        self._missing: set[Path] = set()

    def get(self, path: Path) -> PackageJson | None:
        """Get a cached manifest."""
        return self._entries.get(path)

    def set(self, path: Path, package_json: PackageJson) -> None:
        """Cache a manifest."""
        self._missing.discard(path)
        self._entries[path] = package_json

    def mark_missing(self, path: Path) -> None:
        """Remember that no manifest exists at path."""
        self._missing.add(path)

    def is_missing(self, path: Path) -> bool:
        """Check if path is known to have no manifest."""
        return path in self._missing

    def evict(self, path: Path) -> None:
        """Forget whatever is cached for one manifest path."""
        self._entries.pop(path, None)
        self._missing.discard(path)

    def clear(self) -> None:
        """Forget all cached manifests and misses."""
        self._entries.clear()
        self._missing.clear()
        self.log.debug("package_json_cache_cleared")

    def __len__(self) -> int:
        return len(self._entries)


def load_package_json(path: Path, cache: PackageJsonCache) -> PackageJson | None:
    """
    Load a package.json through a worker cache.

    Args:
        path: Path of the manifest file
        cache: The calling worker's cache

    Returns:
        The manifest, or None if the file does not exist

    Raises:
        PackageJsonLoadError: If the file exists but is unreadable or invalid
    """
    if cache.is_missing(path):
        return None

    cached = cache.get(path)
    if cached is not None:
        return cached

    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        cache.mark_missing(path)
        return None
    except (OSError, UnicodeDecodeError) as e:
        raise PackageJsonLoadError(path, str(e)) from e

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise PackageJsonLoadError(path, f"invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise PackageJsonLoadError(path, "top-level value must be an object")

    package_json = PackageJson.from_dict(path, data)
    cache.set(path, package_json)
    logger.debug("package_json_loaded", path=str(path), name=package_json.name)
    return package_json


def find_package_json(start_dir: Path, cache: PackageJsonCache) -> PackageJson | None:
    """
    Find the nearest package.json at or above a directory.

    Args:
        start_dir: Directory to start searching from
        cache: The calling worker's cache

    Returns:
        The closest manifest, or None if no ancestor has one
    """
    start = start_dir.resolve()
    for directory in (start, *start.parents):
        package_json = load_package_json(directory / PACKAGE_JSON, cache)
        if package_json is not None:
            return package_json
    return None
