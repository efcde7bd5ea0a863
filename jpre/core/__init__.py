"""Version model, checksum verification and the error taxonomy."""

from jpre.core.errors import JpreError, ParseError
from jpre.core.java_version import JavaVersion, NewScheme, OldScheme, PreRelease, VersionKey, compare, parse_key, parse_version

__all__ = [
    "JavaVersion",
    "JpreError",
    "NewScheme",
    "OldScheme",
    "ParseError",
    "PreRelease",
    "VersionKey",
    "compare",
    "parse_key",
    "parse_version",
]
