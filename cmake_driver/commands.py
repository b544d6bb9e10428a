"""Composition of the CMake configure and build command lines.

The argument order produced here is relied upon by tools that diff or parse
the logged invocations, so new arguments must be appended at the documented
positions only.
"""
from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple
import os

from core.command_runner import CommandRunner

from .compiler import CompilerInfo
from .config import BuildConfig
from .environment import EnvironmentReader
from .generators import (
    detect_visual_studio_version,
    is_ninja,
    is_nmake,
    msvc_architecture,
    osx_architecture,
    probe_mingw_generator,
    visual_studio_generator,
)
from .version import PARALLEL_FLAG_VERSION, CMakeVersion

DEFAULT_BUILD_JOBS = "4"
EMSCRIPTEN_MARKER = "emscripten"


def find_executable(path: str | Path, search_path: str | None = None) -> Path:
    """First ``PATH`` entry containing ``path``, else ``path`` unchanged."""

    path = Path(path)
    search_path = os.environ.get("PATH", "") if search_path is None else search_path
    for entry in search_path.split(os.pathsep):
        if not entry:
            continue
        candidate = Path(entry) / path
        if candidate.exists():
            return candidate
    return path


def _skip_compiler_arg(arg: str) -> bool:
    # CMake owns optimization and debug info for the configured build type.
    return arg.startswith("-O") or arg.startswith("/O") or arg == "-g"


def compose_flags(extra: str, args: Iterable[str]) -> str:
    return extra + "".join(f" {arg}" for arg in args if not _skip_compiler_arg(arg))


class CommandComposer:
    def __init__(
        self,
        reader: EnvironmentReader,
        runner: CommandRunner,
        *,
        target: str,
        host: str,
        host_is_windows: bool | None = None,
        search_path: str | None = None,
    ) -> None:
        self._reader = reader
        self._runner = runner
        self.target = target
        self.host = host
        self.host_is_windows = os.name == "nt" if host_is_windows is None else host_is_windows
        self._search_path = search_path

    @property
    def msvc(self) -> bool:
        return "msvc" in self.target

    def _target_env(self, name: str) -> str | None:
        return self._reader.get_for_target(name, target=self.target, host=self.host)

    def cmake_executable(self) -> str:
        return self._target_env("CMAKE") or "cmake"

    def _program(self, wrapper_var: str, wrapper_default: str) -> List[str]:
        # emcmake/emmake export the Emscripten toolchain to the wrapped cmake.
        if EMSCRIPTEN_MARKER in self.target:
            wrapper = self._target_env(wrapper_var) or wrapper_default
            return [wrapper, self.cmake_executable()]
        return [self.cmake_executable()]

    def configure_program(self) -> List[str]:
        return self._program("EMCMAKE", "emcmake")

    def build_program(self) -> List[str]:
        return self._program("EMMAKE", "emmake")

    def resolve_generator(self, config: BuildConfig) -> str | None:
        return config.generator or self._target_env("CMAKE_GENERATOR")

    def platform_arguments(
        self,
        config: BuildConfig,
        *,
        generator: str | None,
        c_compiler: CompilerInfo,
    ) -> List[str]:
        args: List[str] = []
        if "windows-gnu" in self.target:
            if "windows" in self.host:
                if generator is None:
                    args.extend(["-G", probe_mingw_generator(self._runner)])
            elif not config.is_defined("CMAKE_RC_COMPILER"):
                exe = find_executable(c_compiler.path, self._search_path)
                windres = exe.with_name(exe.name.replace("gcc", "windres"))
                if windres.is_file():
                    args.append(f"-DCMAKE_RC_COMPILER={windres}")
        elif self.msvc:
            if generator is None:
                version = detect_visual_studio_version(self._reader)
                args.extend(["-G", visual_studio_generator(self.target, version)])
            if not is_ninja(generator) and not is_nmake(generator):
                arch = msvc_architecture(self.target)
                if config.generator_toolset is None:
                    args.append(f"-Thost={arch.host_toolset}")
                args.append(f"-A{arch.platform}")
        elif "darwin" in self.target and not config.is_defined("CMAKE_OSX_ARCHITECTURES"):
            args.append(f"-DCMAKE_OSX_ARCHITECTURES={osx_architecture(self.target)}")
        return args

    def _compiler_arguments(
        self,
        config: BuildConfig,
        *,
        kind: str,
        compiler: CompilerInfo,
        extra: str,
        generator: str | None,
        build_type: str,
    ) -> List[str]:
        args: List[str] = []
        flag_var = f"CMAKE_{kind}_FLAGS"
        tool_var = f"CMAKE_{kind}_COMPILER"
        flags = compose_flags(extra, compiler.args)
        if not config.is_defined(flag_var):
            args.append(f"-D{flag_var}={flags}")

        # Visual Studio generators ignore CMAKE_<LANG>_FLAGS for the runtime
        # library selection but honour the per-configuration variables.
        if generator is None and self.msvc:
            flag_var_alt = f"CMAKE_{kind}_FLAGS_{build_type.upper()}"
            if not config.is_defined(flag_var_alt):
                args.append(f"-D{flag_var_alt}={flags}")

        if (
            not config.is_defined("CMAKE_TOOLCHAIN_FILE")
            and not config.is_defined(tool_var)
            and (not self.host_is_windows or (self.msvc and is_ninja(generator)))
        ):
            compiler_path = str(find_executable(compiler.path, self._search_path))
            if self.host_is_windows:
                compiler_path = compiler_path.replace("\\", "/")
            args.append(f"-D{tool_var}={compiler_path}")
        return args

    def configure_command(
        self,
        config: BuildConfig,
        *,
        generator: str | None,
        out_dir: Path,
        profile: str,
        c_compiler: CompilerInfo,
        cxx_compiler: CompilerInfo,
    ) -> List[str]:
        cmd = self.configure_program()
        if config.verbose_cmake:
            cmd.extend(["-Wdev", "--debug-output"])
        cmd.append(str(config.path))
        cmd.extend(self.platform_arguments(config, generator=generator, c_compiler=c_compiler))
        if generator is not None:
            cmd.extend(["-G", generator])
        if config.generator_toolset is not None:
            cmd.extend(["-T", config.generator_toolset])
        for key, value in config.defines:
            cmd.append(f"-D{key}={value}")

        if not config.is_defined("CMAKE_INSTALL_PREFIX"):
            cmd.append(f"-DCMAKE_INSTALL_PREFIX={out_dir}")

        build_type = config.defined_value("CMAKE_BUILD_TYPE")
        if build_type is None:
            build_type = profile
        for kind, compiler, extra in (
            ("C", c_compiler, config.cflags),
            ("CXX", cxx_compiler, config.cxxflags),
            ("ASM", c_compiler, config.asmflags),
        ):
            cmd.extend(
                self._compiler_arguments(
                    config,
                    kind=kind,
                    compiler=compiler,
                    extra=extra,
                    generator=generator,
                    build_type=build_type,
                )
            )

        if not config.is_defined("CMAKE_BUILD_TYPE"):
            cmd.append(f"-DCMAKE_BUILD_TYPE={profile}")
        if config.verbose_make:
            cmd.append("-DCMAKE_VERBOSE_MAKEFILE:BOOL=ON")
        cmd.extend(config.configure_args)
        return cmd

    def build_command(
        self,
        config: BuildConfig,
        *,
        profile: str,
        version: CMakeVersion,
        jobserver: bool,
    ) -> List[str]:
        cmd = self.build_program()
        cmd.extend(["--build", "."])
        if not jobserver:
            cmd.extend(["-j", DEFAULT_BUILD_JOBS])
        if not config.no_build_target:
            cmd.extend(["--target", config.effective_build_target])
        cmd.extend(["--config", profile])

        # --parallel appeared in CMake 3.12.
        if version >= PARALLEL_FLAG_VERSION and not jobserver:
            jobs = self._reader.get("NUM_JOBS")
            if jobs is not None:
                cmd.extend(["--parallel", jobs])

        if config.build_args:
            cmd.append("--")
            cmd.extend(config.build_args)
        return cmd


def subprocess_environment(*sources: Sequence[Tuple[str, str]] | Mapping[str, str]) -> Dict[str, str]:
    """Merge environment overrides in order; later sources win."""

    merged: Dict[str, str] = {}
    for source in sources:
        items = source.items() if isinstance(source, Mapping) else source
        for key, value in items:
            merged[key] = value
    return merged


__all__ = [
    "CommandComposer",
    "DEFAULT_BUILD_JOBS",
    "compose_flags",
    "find_executable",
    "subprocess_environment",
]
