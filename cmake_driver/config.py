"""Build configuration model: a staged builder producing an immutable value."""
from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Tuple
import sys

from core.config_loader import load_config_file, merge_mappings, normalize_string_list

from .compiler import CompilerInfo
from .environment import EnvironmentReader
from .errors import ConfigurationError

DEFAULT_BUILD_TARGET = "install"

Define = Tuple[str, str]


@dataclass(frozen=True, slots=True)
class BuildConfig:
    """Everything needed to configure and build one native library.

    ``defines`` keeps every ``define()`` call in order, duplicates included.
    Definedness checks look at the first occurrence of a key, while the
    configure command emits all of them positionally.
    """

    path: Path
    generator: str | None = None
    generator_toolset: str | None = None
    cflags: str = ""
    cxxflags: str = ""
    asmflags: str = ""
    defines: Tuple[Define, ...] = ()
    deps: Tuple[str, ...] = ()
    target: str | None = None
    host: str | None = None
    out_dir: Path | None = None
    profile: str | None = None
    configure_args: Tuple[str, ...] = ()
    build_args: Tuple[str, ...] = ()
    build_target: str | None = None
    env: Tuple[Tuple[str, str], ...] = ()
    static_crt: bool | None = None
    always_configure: bool = True
    no_build_target: bool = False
    no_default_flags: bool = False
    verbose_cmake: bool = False
    verbose_make: bool = False
    pic: bool | None = None
    c_compiler: CompilerInfo | None = None
    cxx_compiler: CompilerInfo | None = None

    def is_defined(self, key: str) -> bool:
        return any(name == key for name, _ in self.defines)

    def defined_value(self, key: str) -> str | None:
        for name, value in self.defines:
            if name == key:
                return value
        return None

    def with_defines(self, *pairs: Define) -> "BuildConfig":
        if not pairs:
            return self
        return replace(self, defines=self.defines + tuple(pairs))

    def with_flags(self, *, cflags: str = "", cxxflags: str = "", asmflags: str = "") -> "BuildConfig":
        return replace(
            self,
            cflags=self.cflags + cflags,
            cxxflags=self.cxxflags + cxxflags,
            asmflags=self.asmflags + asmflags,
        )

    @property
    def effective_build_target(self) -> str:
        return self.build_target or DEFAULT_BUILD_TARGET

    def get_profile(self, reader: EnvironmentReader) -> str:
        """Return the explicit profile or infer ``CMAKE_BUILD_TYPE`` from the pipeline."""

        if self.profile:
            return self.profile
        return infer_profile(reader)


def _warn(message: str) -> None:
    print(f"Warning: {message}", file=sys.stderr)


def infer_profile(reader: EnvironmentReader) -> str:
    """Map ``PROFILE``/``OPT_LEVEL``/``DEBUG`` onto a CMake build type.

    * ``opt-level=0`` -> ``Debug``
    * ``opt-level=1..3`` -> ``Release`` or ``RelWithDebInfo`` with debug info
    * ``opt-level=s|z`` -> ``MinSizeRel``
    """

    profile = reader.require("PROFILE")
    if profile == "debug":
        release = False
    elif profile in ("release", "bench"):
        release = True
    else:
        _warn(f"unknown Rust profile={profile}; defaulting to a release build.")
        release = True

    opt_level = reader.require("OPT_LEVEL")
    if opt_level == "0":
        level = "Debug"
    elif opt_level in ("1", "2", "3"):
        level = "Release"
    elif opt_level in ("s", "z"):
        level = "Size"
    else:
        level = "Release" if release else "Debug"
        _warn(f"unknown opt-level={opt_level}; defaulting to a {level} build.")

    debug = reader.require("DEBUG")
    if debug == "false":
        debug_info = False
    elif debug == "true":
        debug_info = True
    else:
        _warn(f"unknown debug={debug}; defaulting to `true`.")
        debug_info = True

    if level == "Debug":
        return "Debug"
    if level == "Size":
        return "MinSizeRel"
    return "RelWithDebInfo" if debug_info else "Release"


def _format_define_value(value: Any) -> str:
    if isinstance(value, bool):
        return "ON" if value else "OFF"
    return str(value)


def _parse_defines(value: Any) -> List[Define]:
    if value is None:
        return []
    if isinstance(value, Mapping):
        return [(str(key), _format_define_value(item)) for key, item in value.items()]
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        raise ConfigurationError("defines must be a list or a table")
    defines: List[Define] = []
    for entry in value:
        if isinstance(entry, str):
            key, sep, raw = entry.partition("=")
            if not sep:
                raise ConfigurationError(f"define '{entry}' must use KEY=VALUE form")
            defines.append((key.strip(), raw))
        elif isinstance(entry, Sequence) and len(entry) == 2:
            defines.append((str(entry[0]), _format_define_value(entry[1])))
        elif isinstance(entry, Mapping) and len(entry) == 1:
            key, raw = next(iter(entry.items()))
            defines.append((str(key), _format_define_value(raw)))
        else:
            raise ConfigurationError(f"Unsupported define entry: {entry!r}")
    return defines


def _optional_bool(data: Mapping[str, Any], key: str) -> bool | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, bool):
        raise ConfigurationError(f"'{key}' must be a boolean")
    return value


def _optional_str(data: Mapping[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


_MAPPING_KEYS = frozenset(
    {
        "source",
        "generator",
        "toolset",
        "profile",
        "target",
        "host",
        "out_dir",
        "build_target",
        "static_crt",
        "pic",
        "always_configure",
        "no_build_target",
        "no_default_flags",
        "very_verbose",
        "cflags",
        "cxxflags",
        "asmflags",
        "defines",
        "deps",
        "configure_args",
        "build_args",
        "env",
        "c_compiler",
        "cxx_compiler",
    }
)


class ConfigBuilder:
    """Chained setters that accumulate options until :meth:`finalize`."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path.cwd().joinpath(path)
        self._generator: str | None = None
        self._generator_toolset: str | None = None
        self._cflags = ""
        self._cxxflags = ""
        self._asmflags = ""
        self._defines: List[Define] = []
        self._deps: List[str] = []
        self._target: str | None = None
        self._host: str | None = None
        self._out_dir: Path | None = None
        self._profile: str | None = None
        self._configure_args: List[str] = []
        self._build_args: List[str] = []
        self._build_target: str | None = None
        self._env: List[Tuple[str, str]] = []
        self._static_crt: bool | None = None
        self._always_configure = True
        self._no_build_target = False
        self._no_default_flags = False
        self._verbose_cmake = False
        self._verbose_make = False
        self._pic: bool | None = None
        self._c_compiler: CompilerInfo | None = None
        self._cxx_compiler: CompilerInfo | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, source: str | Path | None = None) -> "ConfigBuilder":
        section = data.get("cmake", data) if isinstance(data, Mapping) else None
        if not isinstance(section, Mapping):
            raise ConfigurationError("Build configuration must be a mapping")
        unknown = {str(key) for key in section.keys() if str(key) not in _MAPPING_KEYS}
        if unknown:
            joined = ", ".join(sorted(unknown))
            raise ConfigurationError(f"Build configuration contains unknown keys: {joined}")

        source_value = source if source is not None else section.get("source")
        if source_value is None or not str(source_value).strip():
            raise ConfigurationError("Build configuration requires a 'source' path")
        builder = cls(str(source_value))

        for key, setter in (
            ("generator", builder.generator),
            ("toolset", builder.generator_toolset),
            ("profile", builder.profile),
            ("target", builder.target),
            ("host", builder.host),
            ("out_dir", builder.out_dir),
            ("build_target", builder.build_target),
        ):
            value = _optional_str(section, key)
            if value is not None:
                setter(value)

        for key, setter in (
            ("static_crt", builder.static_crt),
            ("pic", builder.pic),
            ("always_configure", builder.always_configure),
            ("no_build_target", builder.no_build_target),
            ("no_default_flags", builder.no_default_flags),
            ("very_verbose", builder.very_verbose),
        ):
            flag = _optional_bool(section, key)
            if flag is not None:
                setter(flag)

        try:
            for flag in normalize_string_list(section.get("cflags"), field_name="cflags"):
                builder.cflag(flag)
            for flag in normalize_string_list(section.get("cxxflags"), field_name="cxxflags"):
                builder.cxxflag(flag)
            for flag in normalize_string_list(section.get("asmflags"), field_name="asmflags"):
                builder.asmflag(flag)
            for dep in normalize_string_list(section.get("deps"), field_name="deps"):
                builder.register_dep(dep)
            for arg in normalize_string_list(section.get("configure_args"), field_name="configure_args"):
                builder.configure_arg(arg)
            for arg in normalize_string_list(section.get("build_args"), field_name="build_args"):
                builder.build_arg(arg)
        except TypeError as exc:
            raise ConfigurationError(str(exc)) from exc

        for key, value in _parse_defines(section.get("defines")):
            builder.define(key, value)

        env_section = section.get("env")
        if env_section is not None:
            if not isinstance(env_section, Mapping):
                raise ConfigurationError("'env' must be a table of KEY = value pairs")
            for key, value in env_section.items():
                builder.env(str(key), str(value))

        try:
            c_section = section.get("c_compiler")
            if isinstance(c_section, Mapping):
                builder.init_c_cfg(CompilerInfo.from_mapping(c_section))
            cxx_section = section.get("cxx_compiler")
            if isinstance(cxx_section, Mapping):
                builder.init_cxx_cfg(CompilerInfo.from_mapping(cxx_section))
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc

        return builder

    def pic(self, explicit_flag: bool) -> "ConfigBuilder":
        self._pic = explicit_flag
        return self

    def generator(self, generator: str) -> "ConfigBuilder":
        self._generator = generator
        return self

    def generator_toolset(self, toolset_name: str) -> "ConfigBuilder":
        self._generator_toolset = toolset_name
        return self

    def cflag(self, flag: str) -> "ConfigBuilder":
        self._cflags += f" {flag}"
        return self

    def cxxflag(self, flag: str) -> "ConfigBuilder":
        self._cxxflags += f" {flag}"
        return self

    def asmflag(self, flag: str) -> "ConfigBuilder":
        self._asmflags += f" {flag}"
        return self

    def define(self, key: str, value: Any) -> "ConfigBuilder":
        self._defines.append((key, _format_define_value(value)))
        return self

    def register_dep(self, dep: str) -> "ConfigBuilder":
        self._deps.append(dep)
        return self

    def target(self, target: str) -> "ConfigBuilder":
        self._target = target
        return self

    def host(self, host: str) -> "ConfigBuilder":
        self._host = host
        return self

    def out_dir(self, out: str | Path) -> "ConfigBuilder":
        self._out_dir = Path(out)
        return self

    def profile(self, profile: str) -> "ConfigBuilder":
        self._profile = profile
        return self

    def static_crt(self, static_crt: bool) -> "ConfigBuilder":
        self._static_crt = static_crt
        return self

    def configure_arg(self, arg: str) -> "ConfigBuilder":
        self._configure_args.append(arg)
        return self

    def build_arg(self, arg: str) -> "ConfigBuilder":
        self._build_args.append(arg)
        return self

    def env(self, key: str, value: str) -> "ConfigBuilder":
        self._env.append((key, value))
        return self

    def build_target(self, target: str) -> "ConfigBuilder":
        self._build_target = target
        return self

    def no_build_target(self, no_build_target: bool) -> "ConfigBuilder":
        self._no_build_target = no_build_target
        return self

    def no_default_flags(self, no_default_flags: bool) -> "ConfigBuilder":
        self._no_default_flags = no_default_flags
        return self

    def always_configure(self, always_configure: bool) -> "ConfigBuilder":
        self._always_configure = always_configure
        return self

    def very_verbose(self, value: bool) -> "ConfigBuilder":
        self._verbose_cmake = value
        self._verbose_make = value
        return self

    def init_c_cfg(self, compiler: CompilerInfo) -> "ConfigBuilder":
        self._c_compiler = compiler
        return self

    def init_cxx_cfg(self, compiler: CompilerInfo) -> "ConfigBuilder":
        self._cxx_compiler = compiler
        return self

    def _validate(self) -> None:
        errors: List[str] = []
        for key, _ in self._defines:
            if not key or not key.strip():
                errors.append("define keys cannot be empty")
        for key, _ in self._env:
            if not key or "=" in key:
                errors.append(f"invalid environment variable name: {key!r}")
        for dep in self._deps:
            if not dep.strip():
                errors.append("dependency names cannot be empty")
        if self._build_target is not None and not self._build_target.strip():
            errors.append("build target cannot be empty")
        if errors:
            raise ConfigurationError("; ".join(errors))

    def finalize(self) -> BuildConfig:
        self._validate()
        return BuildConfig(
            path=self._path,
            generator=self._generator,
            generator_toolset=self._generator_toolset,
            cflags=self._cflags,
            cxxflags=self._cxxflags,
            asmflags=self._asmflags,
            defines=tuple(self._defines),
            deps=tuple(self._deps),
            target=self._target,
            host=self._host,
            out_dir=self._out_dir,
            profile=self._profile,
            configure_args=tuple(self._configure_args),
            build_args=tuple(self._build_args),
            build_target=self._build_target,
            env=tuple(self._env),
            static_crt=self._static_crt,
            always_configure=self._always_configure,
            no_build_target=self._no_build_target,
            no_default_flags=self._no_default_flags,
            verbose_cmake=self._verbose_cmake,
            verbose_make=self._verbose_make,
            pic=self._pic,
            c_compiler=self._c_compiler,
            cxx_compiler=self._cxx_compiler,
        )


def _anchor_paths(data: Mapping[str, Any], base_dir: Path) -> Dict[str, Any]:
    """Make relative ``source``/``out_dir`` entries relative to the file that set them."""

    result: Dict[str, Any] = dict(data)
    section_key = "cmake" if isinstance(data.get("cmake"), Mapping) else None
    section: Dict[str, Any] = dict(data[section_key]) if section_key else result
    for key in ("source", "out_dir"):
        value = section.get(key)
        if isinstance(value, str) and value.strip() and not Path(value).is_absolute():
            section[key] = str(base_dir / value)
    if section_key:
        result[section_key] = section
    return result


def load_build_config(paths: Iterable[Path], *, source: str | Path | None = None) -> ConfigBuilder:
    """Load configuration files in order and return a builder for further overrides."""

    merged: Dict[str, Any] = {}
    for path in paths:
        data = _anchor_paths(load_config_file(path), path.resolve().parent)
        merged = merge_mappings(merged, data)
    return ConfigBuilder.from_mapping(merged, source=source)


__all__ = [
    "BuildConfig",
    "ConfigBuilder",
    "DEFAULT_BUILD_TARGET",
    "infer_profile",
    "load_build_config",
]
