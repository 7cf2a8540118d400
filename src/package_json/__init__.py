"""
Watchloop package.json Package.

Cached loading of package manifests.
Requires Python 3.11+.
"""

from package_json.loader import (
    PackageJson,
    PackageJsonCache,
    PackageJsonLoadError,
    find_package_json,
    load_package_json,
)

__all__ = [
    "PackageJson",
    "PackageJsonCache",
    "PackageJsonLoadError",
    "find_package_json",
    "load_package_json",
]
