"""Terminal build step: configure and build one CMake project."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Sequence
import os

from core.command_runner import CommandRunner, SubprocessCommandRunner

from .cache import CACHE_FILE, maybe_clear, needs_cleanup
from .commands import CommandComposer, subprocess_environment
from .compiler import CompilerInfo, detect_compiler
from .config import BuildConfig, ConfigBuilder
from .environment import EnvironmentReader
from .jobserver import FORWARDED_VARIABLE, jobserver_makeflags
from .platform import PlatformResolver, uses_android_ndk
from .version import probe_version

BUILD_SUBDIR = "build"
RESULT_KEY = "cargo:root"


@dataclass(slots=True)
class BuildResult:
    out_dir: Path
    build_dir: Path
    configure_command: List[str]
    build_command: List[str]
    configured: bool


class CMakeBuild:
    """Runs the configure and build steps for one :class:`BuildConfig`.

    A fresh instance owns the environment cache for a single run; running the
    same instance twice is not supported.
    """

    def __init__(
        self,
        config: BuildConfig,
        *,
        runner: CommandRunner | None = None,
        env: Mapping[str, str] | None = None,
        host_platform: str | None = None,
        host_is_windows: bool | None = None,
        dry_run: bool = False,
    ) -> None:
        self._config = config
        self._runner = runner or SubprocessCommandRunner()
        self._reader = EnvironmentReader(env)
        self._host_platform = host_platform
        self._host_is_windows = host_is_windows
        self._search_path = env.get("PATH", "") if env is not None else None
        self._dry_run = dry_run

    @property
    def reader(self) -> EnvironmentReader:
        return self._reader

    def _compiler(
        self,
        language: str,
        configured: CompilerInfo | None,
        *,
        target: str,
        host: str,
        ndk: bool,
    ) -> CompilerInfo:
        if configured is not None:
            return configured
        return detect_compiler(
            language,
            reader=self._reader,
            target=target,
            host=host,
            pass_target=not ndk,
            no_default_flags=ndk or self._config.no_default_flags,
            static_crt=self._config.static_crt,
            pic=self._config.pic,
        )

    def _prefix_path(self, *, target: str, host: str) -> str:
        entries: List[str] = []
        for dep in self._config.deps:
            name = dep.upper().replace("-", "_")
            root = self._reader.get(f"DEP_{name}_ROOT")
            if root is not None:
                entries.append(root)
        system_prefix = self._reader.get_for_target("CMAKE_PREFIX_PATH", target=target, host=host) or ""
        entries.extend(entry for entry in system_prefix.split(os.pathsep) if entry)
        return os.pathsep.join(entries)

    def _prepare_build_dir(self, build_dir: Path) -> None:
        if self._dry_run:
            if needs_cleanup(build_dir, self._config.path):
                print(f"[dry-run] would remove stale build directory {build_dir}")
            return
        maybe_clear(build_dir, self._config.path)
        build_dir.mkdir(parents=True, exist_ok=True)

    def _run(self, command: Sequence[str], *, cwd: Path, env: Dict[str, str], note: str, program: str) -> None:
        print(f"running: {self._runner.format_command(command)}")
        self._runner.run(command, cwd=cwd, env=env, check=True, note=note, stream=True, program=program)

    def run(self) -> Path:
        return self.execute().out_dir

    def execute(self) -> BuildResult:
        reader = self._reader
        target = self._config.target or reader.require("TARGET")
        host = self._config.host or reader.require("HOST")

        # Later decisions depend on CMAKE_TOOLCHAIN_FILE, so resolve it first.
        resolver = PlatformResolver(reader, target=target, host=host)
        config = resolver.resolve(self._config)

        composer = CommandComposer(
            reader,
            self._runner,
            target=target,
            host=host,
            host_is_windows=self._host_is_windows,
            search_path=self._search_path,
        )
        generator = composer.resolve_generator(config)

        if composer.msvc:
            config = config.with_flags(cflags=" -EHsc", cxxflags=" -EHsc")

        ndk = uses_android_ndk(config)
        c_compiler = self._compiler("C", config.c_compiler, target=target, host=host, ndk=ndk)
        cxx_compiler = self._compiler("CXX", config.cxx_compiler, target=target, host=host, ndk=ndk)

        out_dir = config.out_dir or Path(reader.require("OUT_DIR"))
        build_dir = out_dir / BUILD_SUBDIR
        self._prepare_build_dir(build_dir)

        prefix_path = self._prefix_path(target=target, host=host)
        profile = config.get_profile(reader)
        configure_cmd = composer.configure_command(
            config,
            generator=generator,
            out_dir=out_dir,
            profile=profile,
            c_compiler=c_compiler,
            cxx_compiler=cxx_compiler,
        )
        cmake = composer.cmake_executable()
        version = probe_version(self._runner, cmake)

        base_env = subprocess_environment(c_compiler.env, config.env)
        configured = False
        if config.always_configure or not (build_dir / CACHE_FILE).exists():
            configure_env = dict(base_env)
            configure_env["CMAKE_PREFIX_PATH"] = prefix_path
            self._run(configure_cmd, cwd=build_dir, env=configure_env, note="configure", program=cmake)
            configured = True
        else:
            print("CMake project was already configured. Skipping configuration step.")

        build_env = dict(base_env)
        makeflags = jobserver_makeflags(build_dir, reader, platform=self._host_platform)
        if makeflags is not None:
            build_env[FORWARDED_VARIABLE] = makeflags

        print(f"Running CMake build in {build_dir}")
        build_cmd = composer.build_command(
            config,
            profile=profile,
            version=version,
            jobserver=makeflags is not None,
        )
        self._run(build_cmd, cwd=build_dir, env=build_env, note="build", program=cmake)

        print(f"{RESULT_KEY}={out_dir}")
        return BuildResult(
            out_dir=out_dir,
            build_dir=build_dir,
            configure_command=configure_cmd,
            build_command=build_cmd,
            configured=configured,
        )


def build(path: str | Path) -> Path:
    """Build the CMake project at ``path`` with default options.

    Returns the directory the project was installed into.
    """

    return CMakeBuild(ConfigBuilder(path).finalize()).run()


__all__ = ["BUILD_SUBDIR", "BuildResult", "CMakeBuild", "RESULT_KEY", "build"]
