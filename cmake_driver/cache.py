"""Stale CMake cache detection."""
from __future__ import annotations

from pathlib import Path
import shutil

CACHE_FILE = "CMakeCache.txt"
HOME_DIRECTORY_KEY = "CMAKE_HOME_DIRECTORY"


def _canonicalize(path: Path) -> Path | None:
    try:
        return path.resolve(strict=True)
    except (OSError, RuntimeError):
        return None


def recorded_home_directory(build_dir: Path) -> str | None:
    """Value of ``CMAKE_HOME_DIRECTORY`` in the build dir's cache, if any."""

    try:
        contents = (build_dir / CACHE_FILE).read_bytes().decode("utf-8", errors="replace")
    except OSError:
        return None
    for line in contents.splitlines():
        if line.startswith(HOME_DIRECTORY_KEY):
            return line.rsplit("=", 1)[-1]
    return None


def needs_cleanup(build_dir: Path, source: Path) -> bool:
    """True when the cache was generated for a different source directory.

    CMake refuses to reconfigure a build directory whose source tree moved,
    and it records canonical paths, so both sides are canonicalized.
    """

    recorded = recorded_home_directory(build_dir)
    if recorded is None:
        return False
    current = _canonicalize(source) or source
    previous = _canonicalize(Path(recorded))
    return previous is None or previous != current


def maybe_clear(build_dir: Path, source: Path) -> bool:
    if not needs_cleanup(build_dir, source):
        return False
    print("detected home dir change, cleaning out entire build directory")
    shutil.rmtree(build_dir)
    return True


__all__ = ["CACHE_FILE", "HOME_DIRECTORY_KEY", "maybe_clear", "needs_cleanup", "recorded_home_directory"]
