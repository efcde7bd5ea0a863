"""Error taxonomy shared by every jpre layer."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from jpre.core.java_version import VersionKey


class JpreError(RuntimeError):
    """Base class for every failure raised by jpre."""

    #: Conditions the user can fix (bad input, unknown names, missing installs).
    user_correctable: bool = False


class ParseError(JpreError, ValueError):
    """A version or version key string is malformed."""

    user_correctable = True

    def __init__(self, field: str, value: str, reason: str) -> None:
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"invalid {field} {value!r}: {reason}")


class ConfigError(JpreError):
    """The configuration file cannot be read or does not validate."""

    user_correctable = True


class UnsupportedPlatformError(JpreError):
    """The running OS or architecture has no package index equivalent."""

    user_correctable = True


class RemoteIndexError(JpreError):
    """The remote package index failed or answered with an error."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class TransportError(RemoteIndexError):
    """The remote package index could not be reached."""


class MalformedResponseError(RemoteIndexError):
    """The remote package index answered with an unexpected payload."""


class DistributionNotFoundError(RemoteIndexError):
    """The remote package index does not know the requested distribution."""

    user_correctable = True

    def __init__(self, distribution: str, available: list[str] | None = None) -> None:
        self.distribution = distribution
        self.available = list(available or [])
        message = f"Distribution '{distribution}' not found"
        if self.available:
            message += f". Available distributions: {', '.join(self.available)}"
        super().__init__(message)


class NoCandidateError(JpreError):
    """The index was reachable but no package satisfies the request."""

    def __init__(self, distribution: str, key: VersionKey, detail: str | None = None) -> None:
        self.distribution = distribution
        self.key = key
        message = f"No latest package available for JDK {key} in distribution {distribution}"
        if detail:
            message += f" ({detail})"
        super().__init__(message)


class AllDistributionsFailedError(JpreError):
    """Every configured distribution failed to resolve a package."""

    def __init__(self, key: VersionKey, failures: list[tuple[str, JpreError]]) -> None:
        self.key = key
        self.failures = list(failures)
        lines = [f"Failed to get latest package info for JDK {key}:"]
        lines.extend(f"  - {distribution}: {error}" for distribution, error in self.failures)
        super().__init__("\n".join(lines))

    @property
    def user_correctable(self) -> bool:  # type: ignore[override]
        return bool(self.failures) and all(error.user_correctable for _, error in self.failures)


class ChecksumMismatchError(JpreError):
    """Downloaded bytes do not hash to the advertised checksum."""

    def __init__(self, source: str, expected: str, actual: str) -> None:
        self.source = source
        self.expected = expected
        self.actual = actual
        super().__init__(f"Checksum failed for {source}: expected {expected}, got {actual}")


class ArchiveError(JpreError):
    """A downloaded archive is unreadable or holds no usable JDK."""


class FilesystemError(JpreError):
    """An OS-level filesystem operation failed."""

    def __init__(self, message: str, path: str | Path) -> None:
        self.path = Path(path)
        super().__init__(f"{message}: {self.path}")


class NotInstalledError(JpreError):
    """The requested JDK has no completed install."""

    user_correctable = True

    def __init__(self, key: VersionKey) -> None:
        self.key = key
        super().__init__(f"JDK {key} is not installed")
