"""Per-language compiler descriptions handed to the configure step."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePath
from typing import Any, List, Mapping, Tuple
import shlex

from .environment import EnvironmentReader

LANGUAGES = ("C", "CXX")

_COMPILER_VARS = {"C": "CC", "CXX": "CXX"}
_FLAGS_VARS = {"C": "CFLAGS", "CXX": "CXXFLAGS"}
_DEFAULT_COMPILERS = {"C": "cc", "CXX": "c++"}


@dataclass(frozen=True, slots=True)
class CompilerInfo:
    """Result of compiler detection: executable, base arguments and environment."""

    path: str
    args: Tuple[str, ...] = ()
    env: Tuple[Tuple[str, str], ...] = ()

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "CompilerInfo":
        allowed_keys = {"path", "args", "env"}
        unknown = {str(key) for key in data.keys() if str(key) not in allowed_keys}
        if unknown:
            joined = ", ".join(sorted(unknown))
            raise ValueError(f"Compiler entry contains unknown keys: {joined}")
        path = data.get("path")
        if not isinstance(path, str) or not path.strip():
            raise ValueError("Compiler entry requires a non-empty 'path'")
        raw_args = data.get("args") or []
        if isinstance(raw_args, str):
            args = tuple(shlex.split(raw_args))
        else:
            args = tuple(str(arg) for arg in raw_args)
        env_section = data.get("env")
        env: Tuple[Tuple[str, str], ...] = ()
        if isinstance(env_section, Mapping):
            env = tuple((str(key), str(value)) for key, value in env_section.items())
        return cls(path=path.strip(), args=args, env=env)


def _is_msvc(target: str) -> bool:
    return "msvc" in target


def _default_pic(target: str) -> bool:
    return "windows" not in target and "none" not in target.split("-")


def detect_compiler(
    language: str,
    *,
    reader: EnvironmentReader,
    target: str,
    host: str,
    pass_target: bool = True,
    no_default_flags: bool = False,
    static_crt: bool | None = None,
    pic: bool | None = None,
) -> CompilerInfo:
    """Describe the compiler for ``language`` from the environment.

    This is intentionally small: it honours the usual ``CC``/``CXX`` and
    ``CFLAGS``/``CXXFLAGS`` variables through the target-specific lookup chain
    and adds the code-generation flags a static library linked into another
    artifact needs.
    """

    if language not in LANGUAGES:
        raise ValueError(f"Unsupported compiler language: {language}")

    msvc = _is_msvc(target)
    path = reader.get_for_target(_COMPILER_VARS[language], target=target, host=host)
    if not path:
        path = "cl.exe" if msvc else _DEFAULT_COMPILERS[language]

    args: List[str] = []
    if msvc:
        args.extend(["-nologo", "-MT" if static_crt else "-MD", "-Od"])
    else:
        args.append("-O0")
        if not no_default_flags:
            args.extend(["-ffunction-sections", "-fdata-sections"])
            if pic if pic is not None else _default_pic(target):
                args.append("-fPIC")
            if pass_target and "clang" in PurePath(path).name:
                args.append(f"--target={target}")

    extra = reader.get_for_target(_FLAGS_VARS[language], target=target, host=host)
    if extra:
        args.extend(shlex.split(extra))

    return CompilerInfo(path=path, args=tuple(args))


__all__ = ["CompilerInfo", "LANGUAGES", "detect_compiler"]
