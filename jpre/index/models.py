"""Package index entry models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from jpre.core.checksum import SUPPORTED_ALGORITHMS
from jpre.core.java_version import JavaVersion, parse_version


class ArchiveType(str, Enum):
    TAR_GZ = "tar.gz"
    ZIP = "zip"

    @classmethod
    def from_name(cls, value: str | None) -> "ArchiveType | None":
        """Return the archive type for ``value`` or ``None`` when it is not one we can unpack."""
        cleaned = (value or "").strip().lower()
        if cleaned == "tgz":
            cleaned = "tar.gz"
        for member in cls:
            if member.value == cleaned:
                return member
        return None


class ChecksumType(str, Enum):
    SHA256 = "sha256"
    SHA512 = "sha512"

    @classmethod
    def from_name(cls, value: str | None) -> "ChecksumType | None":
        cleaned = (value or "").strip().lower().replace("-", "")
        for member in cls:
            if member.value == cleaned:
                return member
        return None


class DistributionInfo(BaseModel):
    """One JDK vendor build family as advertised by the index."""

    model_config = ConfigDict(frozen=True)

    name: str
    synonyms: tuple[str, ...] = ()

    def matches(self, name: str) -> bool:
        return name == self.name or name in self.synonyms

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, DistributionInfo):
            return NotImplemented
        return self.name < other.name


class PackageCandidate(BaseModel):
    """A downloadable build that satisfies a resolve request."""

    model_config = ConfigDict(frozen=True)

    distribution: str
    java_version: JavaVersion
    archive_type: ArchiveType
    download_uri: str
    checksum: str
    checksum_type: ChecksumType
    filename: str = ""
    latest_build_available: bool = True
    size: int | None = Field(default=None, ge=0)

    @field_validator("java_version", mode="before")
    @classmethod
    def _parse_java_version(cls, value: object) -> object:
        if isinstance(value, str):
            return parse_version(value)
        return value

    @field_validator("checksum")
    @classmethod
    def _normalize_checksum(cls, value: str) -> str:
        cleaned = value.strip().lower()
        if not cleaned:
            raise ValueError("checksum cannot be empty")
        return cleaned

    @model_validator(mode="after")
    def _validate_checksum_shape(self) -> "PackageCandidate":
        length = SUPPORTED_ALGORITHMS[self.checksum_type.value]
        if len(self.checksum) != length or any(ch not in "0123456789abcdef" for ch in self.checksum):
            raise ValueError(f"checksum is not a {self.checksum_type.value} hex digest")
        return self
