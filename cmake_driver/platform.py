"""Target/host platform resolution for cross-compiling configure steps."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePath, PureWindowsPath
from typing import Dict, List, Mapping, Tuple

from .config import BuildConfig, Define
from .environment import EnvironmentReader

TOOLCHAIN_FILE = "CMAKE_TOOLCHAIN_FILE"
SYSTEM_NAME = "CMAKE_SYSTEM_NAME"
SYSTEM_PROCESSOR = "CMAKE_SYSTEM_PROCESSOR"
ANDROID_NDK_TOOLCHAIN = "android.toolchain.cmake"


@dataclass(frozen=True, slots=True)
class SystemEntry:
    name: str
    processors: Mapping[str, str]


# CMAKE_SYSTEM_NAME per target os, with CMAKE_SYSTEM_PROCESSOR spellings
# (uname -m style) where they differ from the target arch.
SYSTEM_TABLE: Dict[str, SystemEntry] = {
    "android": SystemEntry("Android", {"arm": "armv7-a", "x86": "i686"}),
    "dragonfly": SystemEntry("DragonFly", {}),
    "macos": SystemEntry("Darwin", {"aarch64": "arm64"}),
    "freebsd": SystemEntry("FreeBSD", {"x86_64": "amd64"}),
    "fuchsia": SystemEntry("Fuchsia", {}),
    "haiku": SystemEntry("Haiku", {}),
    "ios": SystemEntry("iOS", {"aarch64": "arm64"}),
    "linux": SystemEntry(
        "Linux",
        {"powerpc": "ppc", "powerpc64": "ppc64", "powerpc64le": "ppc64le"},
    ),
    "netbsd": SystemEntry("NetBSD", {}),
    "openbsd": SystemEntry("OpenBSD", {"x86_64": "amd64"}),
    "solaris": SystemEntry("SunOS", {}),
    "tvos": SystemEntry("tvOS", {"aarch64": "arm64"}),
    "visionos": SystemEntry("visionOS", {"aarch64": "arm64"}),
    "watchos": SystemEntry("watchOS", {"aarch64": "arm64"}),
    "windows": SystemEntry("Windows", {"x86_64": "AMD64", "x86": "X86", "aarch64": "ARM64"}),
    "none": SystemEntry("Generic", {}),
}

# Triple vendor/os components that name a different target os.
_TRIPLE_OS_ALIASES = {
    "darwin": "macos",
    "androideabi": "android",
    "sun": "solaris",
}

_TRIPLE_ARCH_ALIASES = {
    "i386": "x86",
    "i586": "x86",
    "i686": "x86",
    "arm64": "aarch64",
    "arm64_32": "aarch64",
    "arm64e": "aarch64",
    "sparcv9": "sparc64",
}

# Checked in order after the exact aliases; sub-architecture suffixes are dropped.
_TRIPLE_ARCH_PREFIXES = (
    ("arm", "arm"),
    ("thumb", "arm"),
    ("riscv64", "riscv64"),
    ("riscv32", "riscv32"),
)


def system_for(os_name: str, arch: str) -> Tuple[str, str]:
    """Return ``(CMAKE_SYSTEM_NAME, CMAKE_SYSTEM_PROCESSOR)`` for ``(os, arch)``."""

    entry = SYSTEM_TABLE.get(os_name)
    if entry is None:
        return os_name, arch
    return entry.name, entry.processors.get(arch, arch)


def _triple_arch(raw_arch: str) -> str:
    if raw_arch in _TRIPLE_ARCH_ALIASES:
        return _TRIPLE_ARCH_ALIASES[raw_arch]
    for prefix, arch in _TRIPLE_ARCH_PREFIXES:
        if raw_arch.startswith(prefix):
            return arch
    return raw_arch


def split_triple(triple: str) -> Tuple[str, str]:
    """Best-effort ``(target_os, target_arch)`` for a target triple."""

    parts = triple.split("-")
    raw_arch = parts[0]
    arch = _triple_arch(raw_arch)
    for component in reversed(parts[1:]):
        if component in SYSTEM_TABLE:
            return component, arch
        if component in _TRIPLE_OS_ALIASES:
            return _TRIPLE_OS_ALIASES[component], arch
    if "apple" in parts:
        return "macos", arch
    return (parts[2] if len(parts) > 2 else "none"), arch


def _toolchain_file_name(value: str) -> str:
    # The toolchain path may be spelled for either host family.
    return PureWindowsPath(value).name if "\\" in value else PurePath(value).name


def uses_android_ndk(config: BuildConfig) -> bool:
    """Heuristic: cross compiling through the Android NDK toolchain file.

    ``ANDROID_ABI`` is the one variable the NDK toolchain file requires.
    """

    if not config.is_defined("ANDROID_ABI"):
        return False
    return any(
        key == TOOLCHAIN_FILE and _toolchain_file_name(value) == ANDROID_NDK_TOOLCHAIN
        for key, value in config.defines
    )


class PlatformResolver:
    """Injects the toolchain/system defines a cross-compiling configure needs."""

    def __init__(self, reader: EnvironmentReader, *, target: str, host: str) -> None:
        self._reader = reader
        self.target = target
        self.host = host

    @property
    def cross_compiling(self) -> bool:
        return self.target != self.host

    def target_os_arch(self) -> Tuple[str, str]:
        os_name = self._reader.get("CARGO_CFG_TARGET_OS")
        arch = self._reader.get("CARGO_CFG_TARGET_ARCH")
        if os_name and arch:
            return os_name, arch
        derived_os, derived_arch = split_triple(self.target)
        return os_name or derived_os, arch or derived_arch

    def system_defines(self, config: BuildConfig) -> List[Define]:
        if config.is_defined(TOOLCHAIN_FILE):
            return []
        toolchain_file = self._reader.get_for_target(TOOLCHAIN_FILE, target=self.target, host=self.host)
        if toolchain_file is not None:
            return [(TOOLCHAIN_FILE, toolchain_file)]
        if "redox" in self.target:
            if not config.is_defined(SYSTEM_NAME):
                return [(SYSTEM_NAME, "Generic")]
            return []
        if self.cross_compiling and not config.is_defined(SYSTEM_NAME):
            system_name, system_processor = system_for(*self.target_os_arch())
            return [(SYSTEM_NAME, system_name), (SYSTEM_PROCESSOR, system_processor)]
        return []

    def resolve(self, config: BuildConfig) -> BuildConfig:
        return config.with_defines(*self.system_defines(config))


__all__ = [
    "ANDROID_NDK_TOOLCHAIN",
    "PlatformResolver",
    "SYSTEM_TABLE",
    "SystemEntry",
    "split_triple",
    "system_for",
    "uses_android_ndk",
]
