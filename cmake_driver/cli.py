"""Command line interface for the CMake build driver."""
from __future__ import annotations

from argparse import ArgumentParser, Namespace
from pathlib import Path
from typing import Iterable, List
import sys

import yaml

from core.command_runner import (
    CommandError,
    CommandSpawnError,
    RecordingCommandRunner,
    SubprocessCommandRunner,
)

from .build import CMakeBuild
from .config import ConfigBuilder, load_build_config
from .errors import BuildError, ConfigurationError, MissingEnvironmentError

EXIT_BUILD_FAILURE = 1
EXIT_CONFIGURATION_ERROR = 2


def _parse_extra_switches(values: Iterable[str]) -> tuple[List[str], List[str]]:
    config_args: List[str] = []
    build_args: List[str] = []

    for raw in values:
        if raw is None:
            continue
        text = raw.strip()
        if not text:
            continue

        # Only the scope prefix is split off; the argument itself may contain commas.
        prefix, sep, remainder = text.partition(",")
        scope = prefix.strip().lower() if sep else None
        if scope == "build":
            if remainder.strip():
                build_args.append(remainder.strip())
        elif scope == "config":
            if remainder.strip():
                config_args.append(remainder.strip())
        else:
            config_args.append(text)

    return config_args, build_args


def _parse_define(text: str) -> tuple[str, str]:
    key, sep, value = text.partition("=")
    if not sep or not key.strip():
        raise ConfigurationError(f"define '{text}' must use KEY=VALUE form")
    return key.strip(), value


def _emit_dry_run_output(runner: RecordingCommandRunner, *, workspace: Path) -> None:
    for line in runner.iter_formatted(workspace=workspace):
        print(line)


def _parse_arguments(argv: Iterable[str]) -> Namespace:
    parser = ArgumentParser(prog="cmake-driver", description="Configure and build a CMake project")
    subparsers = parser.add_subparsers(dest="command", required=True)

    build_parser = subparsers.add_parser("build", help="Configure, build and install a CMake project")
    build_parser.add_argument("source", nargs="?", help="CMake source directory (overrides configuration files)")
    build_parser.add_argument(
        "-c",
        "--config",
        dest="config_files",
        action="append",
        default=[],
        metavar="FILE",
        help="TOML/JSON/YAML configuration file(s), merged in order",
    )
    build_parser.add_argument(
        "-D",
        dest="defines",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Add a CMake cache definition",
    )
    build_parser.add_argument("-G", dest="generator", help="CMake generator")
    build_parser.add_argument("-T", dest="toolset", help="Generator toolset")
    build_parser.add_argument("--profile", help="CMAKE_BUILD_TYPE to use instead of the inferred one")
    build_parser.add_argument("--target", help="Target triple (defaults to $TARGET)")
    build_parser.add_argument("--host", help="Host triple (defaults to $HOST)")
    build_parser.add_argument("--out-dir", help="Install prefix and build root (defaults to $OUT_DIR)")
    target_group = build_parser.add_mutually_exclusive_group()
    target_group.add_argument("--build-target", help="Target passed to `cmake --build` (default: install)")
    target_group.add_argument("--no-build-target", action="store_true", help="Do not pass --target to the build")
    build_parser.add_argument(
        "--no-always-configure",
        action="store_true",
        help="Skip the configure step when the build directory already holds a cache",
    )
    build_parser.add_argument("--very-verbose", action="store_true", help="Verbose CMake and Makefile output")
    build_parser.add_argument(
        "-X",
        dest="extra_switches",
        action="append",
        default=[],
        metavar="SCOPE,ARG",
        help="Extra argument (use -Xconfig,<arg> or -Xbuild,<arg>; without a scope it goes to configure)",
    )
    build_parser.add_argument(
        "-n",
        "--dry-run",
        action="store_true",
        help="Print commands without executing them",
    )

    return parser.parse_args(list(argv))


def main(argv: Iterable[str] | None = None) -> int:
    args = _parse_arguments(sys.argv[1:] if argv is None else argv)
    workspace = Path.cwd()

    if args.command == "build":
        try:
            return _handle_build(args, workspace)
        except (ConfigurationError, MissingEnvironmentError) as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return EXIT_CONFIGURATION_ERROR
        except (CommandError, CommandSpawnError, BuildError) as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return EXIT_BUILD_FAILURE
    raise ValueError(f"Unknown command: {args.command}")


def _config_builder(args: Namespace) -> ConfigBuilder:
    config_files = [Path(value) for value in getattr(args, "config_files", [])]
    if config_files:
        try:
            return load_build_config(config_files, source=args.source)
        except ConfigurationError:
            raise
        except (OSError, TypeError, ValueError, yaml.YAMLError) as exc:
            raise ConfigurationError(str(exc)) from exc
    return ConfigBuilder(args.source or ".")


def _handle_build(args: Namespace, workspace: Path) -> int:
    builder = _config_builder(args)
    config_args, build_args = _parse_extra_switches(getattr(args, "extra_switches", []))

    for text in getattr(args, "defines", []):
        builder.define(*_parse_define(text))
    if args.generator:
        builder.generator(args.generator)
    if args.toolset:
        builder.generator_toolset(args.toolset)
    if args.profile:
        builder.profile(args.profile)
    if args.target:
        builder.target(args.target)
    if args.host:
        builder.host(args.host)
    if args.out_dir:
        builder.out_dir(workspace / args.out_dir)
    if args.build_target:
        builder.build_target(args.build_target)
    if args.no_build_target:
        builder.no_build_target(True)
    if args.no_always_configure:
        builder.always_configure(False)
    if args.very_verbose:
        builder.very_verbose(True)
    for arg in config_args:
        builder.configure_arg(arg)
    for arg in build_args:
        builder.build_arg(arg)

    config = builder.finalize()

    runner: SubprocessCommandRunner | RecordingCommandRunner
    if args.dry_run:
        runner = RecordingCommandRunner()
    else:
        runner = SubprocessCommandRunner()

    CMakeBuild(config, runner=runner, dry_run=args.dry_run).run()

    if args.dry_run and isinstance(runner, RecordingCommandRunner):
        _emit_dry_run_output(runner, workspace=workspace)
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
