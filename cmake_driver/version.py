"""CMake version detection used to gate newer command line flags."""
from __future__ import annotations

from typing import NamedTuple

from core.command_runner import CommandError, CommandRunner, CommandSpawnError

VERSION_PREFIX = "cmake version "


class CMakeVersion(NamedTuple):
    major: int
    minor: int

    @classmethod
    def parse(cls, text: str) -> "CMakeVersion | None":
        """Parse ``cmake --version`` output; ``None`` when it does not match.

        The first line reads ``cmake version <major>.<minor>.<patch>``; the
        patch component does not affect the command line and is ignored.
        """

        lines = text.splitlines()
        if not lines or not lines[0].startswith(VERSION_PREFIX):
            return None
        digits = lines[0][len(VERSION_PREFIX):].split(".", 2)
        if len(digits) < 2:
            return None
        major, minor = digits[0], digits[1]
        if not (major.isdecimal() and minor.isdecimal()):
            return None
        return cls(int(major), int(minor))


# Assume the latest known version when detection fails; a changed output
# format is the likeliest cause.
DEFAULT_VERSION = CMakeVersion(3, 22)

PARALLEL_FLAG_VERSION = CMakeVersion(3, 12)


def probe_version(runner: CommandRunner, executable: str) -> CMakeVersion:
    try:
        result = runner.run([executable, "--version"], check=False, program=executable)
    except (CommandSpawnError, CommandError):
        return DEFAULT_VERSION
    if result.returncode != 0:
        return DEFAULT_VERSION
    return CMakeVersion.parse(result.stdout) or DEFAULT_VERSION


__all__ = ["CMakeVersion", "DEFAULT_VERSION", "PARALLEL_FLAG_VERSION", "probe_version"]
