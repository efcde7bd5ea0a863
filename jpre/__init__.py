"""jpre: per-shell JDK version manager."""

from jpre.app import Jpre
from jpre.config import JpreConfig, load_config, save_config
from jpre.core.errors import JpreError
from jpre.core.java_version import JavaVersion, NewScheme, OldScheme, PreRelease, VersionKey, compare, parse_key, parse_version
from jpre.jdks.manager import UpdateCheck
from jpre.version import __version__

__all__ = [
    "__version__",
    "JavaVersion",
    "Jpre",
    "JpreConfig",
    "JpreError",
    "NewScheme",
    "OldScheme",
    "PreRelease",
    "UpdateCheck",
    "VersionKey",
    "compare",
    "load_config",
    "parse_key",
    "parse_version",
    "save_config",
]
