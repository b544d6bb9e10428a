"""Forwarding of the host pipeline's make jobserver into the CMake build."""
from __future__ import annotations

from pathlib import Path
import sys

from .environment import EnvironmentReader

MAKEFILE = "Makefile"
JOBSERVER_VARIABLE = "CARGO_MAKEFLAGS"
FORWARDED_VARIABLE = "MAKEFLAGS"
NAMED_PIPE_MARKER = "--jobserver-auth=fifo:"

# Hosts whose make cannot join an inherited jobserver (MinGW make, bsdmake).
_EXCLUDED_PLATFORMS = ("win32", "openbsd", "netbsd", "freebsd", "dragonfly")


def uses_named_pipe_jobserver(makeflags: str) -> bool:
    return NAMED_PIPE_MARKER in makeflags


def host_supports_jobserver(makeflags: str, platform: str | None = None) -> bool:
    platform = platform or sys.platform
    if platform.startswith(_EXCLUDED_PLATFORMS):
        return False
    if platform == "darwin":
        # Inherited descriptors do not survive CMake here; named pipes do.
        return uses_named_pipe_jobserver(makeflags)
    return True


def jobserver_makeflags(
    build_dir: Path,
    reader: EnvironmentReader,
    *,
    platform: str | None = None,
) -> str | None:
    """``MAKEFLAGS`` to hand to a Makefile-based build, or ``None``."""

    if not (build_dir / MAKEFILE).exists():
        return None
    makeflags = reader.get(JOBSERVER_VARIABLE)
    if makeflags is None:
        return None
    if not host_supports_jobserver(makeflags, platform):
        return None
    return makeflags


__all__ = [
    "FORWARDED_VARIABLE",
    "JOBSERVER_VARIABLE",
    "host_supports_jobserver",
    "jobserver_makeflags",
    "uses_named_pipe_jobserver",
]
