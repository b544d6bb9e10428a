"""Drive CMake configure and build steps from a native-library build pipeline."""

from .build import BuildResult, CMakeBuild, build
from .compiler import CompilerInfo
from .config import BuildConfig, ConfigBuilder, load_build_config
from .environment import EnvironmentReader
from .errors import BuildError, ConfigurationError, MissingEnvironmentError

__all__ = [
    "BuildConfig",
    "BuildError",
    "BuildResult",
    "CMakeBuild",
    "CompilerInfo",
    "ConfigBuilder",
    "ConfigurationError",
    "EnvironmentReader",
    "MissingEnvironmentError",
    "build",
    "load_build_config",
]
