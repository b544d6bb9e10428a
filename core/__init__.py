"""Shared core utilities for running external tools and loading configuration."""

from .command_runner import (
    COMMAND_NOT_FOUND_STATUS,
    CommandError,
    CommandResult,
    CommandRunner,
    CommandSpawnError,
    RecordingCommandRunner,
    SubprocessCommandRunner,
)
from .config_loader import (
    ConfigLoader,
    FILE_LOADERS,
    load_config_file,
    merge_mappings,
    normalize_string_list,
)

__all__ = [
    "COMMAND_NOT_FOUND_STATUS",
    "CommandError",
    "CommandResult",
    "CommandRunner",
    "CommandSpawnError",
    "RecordingCommandRunner",
    "SubprocessCommandRunner",
    "ConfigLoader",
    "FILE_LOADERS",
    "load_config_file",
    "merge_mappings",
    "normalize_string_list",
]
