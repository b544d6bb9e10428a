"""Generator and architecture selection tables for Windows and Apple targets."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, Tuple

from core.command_runner import CommandRunner, CommandSpawnError

from .environment import EnvironmentReader
from .errors import ConfigurationError

# Probed in order on MinGW/MSYS hosts when no generator is configured.
MINGW_GENERATOR_PROBES: Tuple[Tuple[str, str], ...] = (
    ("make", "MSYS Makefiles"),
    ("mingw32-make", "MinGW Makefiles"),
)

NMAKE_GENERATORS: FrozenSet[str] = frozenset({"NMake Makefiles", "NMake Makefiles JOM"})

VISUAL_STUDIO_GENERATORS: Dict[int, str] = {
    17: "Visual Studio 17 2022",
    16: "Visual Studio 16 2019",
    15: "Visual Studio 15 2017",
    14: "Visual Studio 14 2015",
}


@dataclass(frozen=True, slots=True)
class MsvcArchitecture:
    marker: str
    host_toolset: str
    platform: str


MSVC_ARCHITECTURES: Tuple[MsvcArchitecture, ...] = (
    MsvcArchitecture("x86_64", "x64", "x64"),
    MsvcArchitecture("thumbv7a", "x64", "arm"),
    MsvcArchitecture("aarch64", "x64", "ARM64"),
    MsvcArchitecture("i686", "x86", "Win32"),
)

OSX_ARCHITECTURES: Tuple[Tuple[str, str], ...] = (
    ("x86_64", "x86_64"),
    ("aarch64", "arm64"),
)


def is_ninja(generator: str | None) -> bool:
    return bool(generator) and "Ninja" in generator


def is_nmake(generator: str | None) -> bool:
    return generator in NMAKE_GENERATORS


def executable_available(runner: CommandRunner, name: str) -> bool:
    """True unless spawning ``name`` fails because it does not exist."""

    try:
        runner.run([name, "--version"], check=False, program=name)
    except CommandSpawnError as exc:
        return not exc.not_found
    return True


def probe_mingw_generator(runner: CommandRunner) -> str:
    for executable, generator in MINGW_GENERATOR_PROBES:
        if executable_available(runner, executable):
            return generator
    raise ConfigurationError(
        "no valid generator found for GNU toolchain; MSYS or MinGW must be installed"
    )


def detect_visual_studio_version(reader: EnvironmentReader) -> int | None:
    """Major Visual Studio version of the active developer environment."""

    raw = reader.get("VisualStudioVersion")
    if not raw:
        return None
    major, _, _ = raw.strip().partition(".")
    try:
        return int(major)
    except ValueError:
        return None


def msvc_architecture(target: str) -> MsvcArchitecture:
    for arch in MSVC_ARCHITECTURES:
        if arch.marker in target:
            return arch
    raise ConfigurationError(f"unsupported msvc target: {target}")


def visual_studio_generator(target: str, version: int | None) -> str:
    if version is None:
        raise ConfigurationError(
            "unable to detect a Visual Studio installation; run from a developer "
            "command prompt or set a generator explicitly"
        )
    base = VISUAL_STUDIO_GENERATORS.get(version)
    if base is None:
        raise ConfigurationError(
            f"Visual Studio version {version} detected but no CMake generator is known for it"
        )
    msvc_architecture(target)
    return base


def osx_architecture(target: str) -> str:
    for marker, architecture in OSX_ARCHITECTURES:
        if marker in target:
            return architecture
    raise ConfigurationError(f"unsupported darwin target: {target}")


__all__ = [
    "MINGW_GENERATOR_PROBES",
    "MSVC_ARCHITECTURES",
    "MsvcArchitecture",
    "NMAKE_GENERATORS",
    "OSX_ARCHITECTURES",
    "VISUAL_STUDIO_GENERATORS",
    "detect_visual_studio_version",
    "executable_available",
    "is_ninja",
    "is_nmake",
    "msvc_architecture",
    "osx_architecture",
    "probe_mingw_generator",
    "visual_studio_generator",
]
