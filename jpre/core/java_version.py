"""Java version strings: parsing, formatting and total ordering.

Two grammars are understood:

* the legacy ``1.MINOR.PATCH(_UPDATE)?(-bBUILD)?`` scheme used up to Java 8;
* the JEP 223 / JEP 322 scheme, ``FEATURE(.INTERIM(.UPDATE(.PATCH(.N)*)?)?)?``
  followed by ``-PRE``, ``+BUILD`` and ``-OPT`` decorations.

Every legacy version sorts below every JEP 223 version. ``str()`` of a parsed
value reproduces the input exactly.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Annotated, Any, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from jpre.core.errors import ParseError

U32_MAX = 0xFFFFFFFF

U32 = Annotated[int, Field(ge=0, le=U32_MAX)]

_EXTRA_SEPARATOR_RE = re.compile(r"[+\-_]")


def _split_optional(value: str, separator: str) -> tuple[str, str | None]:
    head, found, tail = value.partition(separator)
    return head, (tail if found else None)


def _parse_number(value: str, field: str) -> int:
    if not value:
        raise ParseError(field, value, "value is empty")
    if not (value.isascii() and value.isdigit()):
        raise ParseError(field, value, "must be an unsigned integer")
    number = int(value)
    if number > U32_MAX:
        raise ParseError(field, value, "out of range")
    return number


def _optional_key(value: int | None) -> tuple[int, ...]:
    return (0,) if value is None else (1, value)


class _OrderedModel(BaseModel):
    """Frozen model ordered by ``sort_key()`` against its ordering family."""

    model_config = ConfigDict(frozen=True)

    def sort_key(self) -> tuple[Any, ...]:
        raise NotImplementedError

    def _ordering_family(self) -> type:
        return type(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, self._ordering_family()):
            return NotImplemented
        return self.sort_key() < other.sort_key()

    def __le__(self, other: object) -> bool:
        if not isinstance(other, self._ordering_family()):
            return NotImplemented
        return self.sort_key() <= other.sort_key()

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, self._ordering_family()):
            return NotImplemented
        return self.sort_key() > other.sort_key()

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, self._ordering_family()):
            return NotImplemented
        return self.sort_key() >= other.sort_key()


class PreReleaseKind(str, Enum):
    OTHER = "other"
    NUMERIC = "numeric"
    NONE = "none"


_PRE_RELEASE_RANK = {
    PreReleaseKind.OTHER: 0,
    PreReleaseKind.NUMERIC: 1,
    PreReleaseKind.NONE: 2,
}


class PreRelease(_OrderedModel):
    """Pre-release tag. Ordered ``Other < Numeric < None``."""

    kind: PreReleaseKind = PreReleaseKind.NONE
    value: Union[U32, str, None] = None

    @model_validator(mode="after")
    def _validate_value(self) -> "PreRelease":
        if self.kind == PreReleaseKind.NONE and self.value is not None:
            raise ValueError("a missing pre-release cannot carry a value")
        if self.kind == PreReleaseKind.NUMERIC and not isinstance(self.value, int):
            raise ValueError("a numeric pre-release needs an integer value")
        if self.kind == PreReleaseKind.OTHER and (not isinstance(self.value, str) or not self.value):
            raise ValueError("a named pre-release needs a non-empty tag")
        return self

    @classmethod
    def none(cls) -> "PreRelease":
        return cls()

    @classmethod
    def numeric(cls, number: int) -> "PreRelease":
        return cls(kind=PreReleaseKind.NUMERIC, value=number)

    @classmethod
    def other(cls, tag: str) -> "PreRelease":
        return cls(kind=PreReleaseKind.OTHER, value=tag)

    @classmethod
    def parse(cls, text: str) -> "PreRelease":
        """All digits without a leading zero (or exactly ``0``) is numeric, anything else is a tag."""
        if not text:
            raise ParseError("pre-release", text, "value is empty")
        if text.isascii() and text.isdigit() and (text == "0" or not text.startswith("0")):
            return cls.numeric(_parse_number(text, "pre-release"))
        return cls.other(text)

    @property
    def is_none(self) -> bool:
        return self.kind == PreReleaseKind.NONE

    def sort_key(self) -> tuple[Any, ...]:
        rank = _PRE_RELEASE_RANK[self.kind]
        if self.kind == PreReleaseKind.NONE:
            return (rank,)
        return (rank, self.value)

    def __str__(self) -> str:
        return "" if self.value is None else str(self.value)


class JavaVersion(_OrderedModel):
    """Full identity of a JDK build; either :class:`OldScheme` or :class:`NewScheme`."""

    def _ordering_family(self) -> type:
        return JavaVersion

    @classmethod
    def parse(cls, text: str) -> "JavaVersion":
        return parse_version(text)

    @property
    def key(self) -> "VersionKey":
        return VersionKey.from_version(self)


class OldScheme(JavaVersion):
    """Legacy ``1.x`` version. The leading ``1`` is implied."""

    minor: U32
    patch: U32
    update: U32 = 0
    build: U32 | None = None

    def sort_key(self) -> tuple[Any, ...]:
        return (0, self.minor, self.patch, self.update, _optional_key(self.build))

    def __str__(self) -> str:
        text = f"1.{self.minor}.{self.patch}"
        if self.update != 0:
            text += f"_{self.update}"
        if self.build is not None:
            text += f"-b{self.build:02d}"
        return text


class NewScheme(JavaVersion):
    """JEP 223 / JEP 322 version. ``opt`` takes no part in ordering."""

    feature: U32
    interim: U32 = 0
    update: U32 = 0
    patch: U32 = 0
    trailing: tuple[U32, ...] = ()
    pre_release: PreRelease = Field(default_factory=PreRelease.none)
    build: U32 | None = None
    opt: str | None = None

    def sort_key(self) -> tuple[Any, ...]:
        return (
            1,
            self.feature,
            self.interim,
            self.update,
            self.patch,
            self.trailing,
            self.pre_release.sort_key(),
            _optional_key(self.build),
        )

    def __str__(self) -> str:
        has_trailing = bool(self.trailing)
        has_patch = self.patch != 0 or has_trailing
        has_update = self.update != 0 or has_patch
        text = str(self.feature)
        if self.interim != 0 or has_update:
            text += f".{self.interim}"
        if has_update:
            text += f".{self.update}"
        if has_patch:
            text += f".{self.patch}"
        for part in self.trailing:
            text += f".{part}"
        if not self.pre_release.is_none:
            text += f"-{self.pre_release}"
        if self.build is not None:
            text += f"+{self.build}"
        if self.opt is not None:
            if self.pre_release.is_none and self.build is None:
                text += "+"
            text += f"-{self.opt}"
        return text


class VersionKey(_OrderedModel):
    """What a user requests and installs: the major version plus any pre-release tag."""

    major: U32
    pre_release: PreRelease = Field(default_factory=PreRelease.none)

    @classmethod
    def parse(cls, text: str) -> "VersionKey":
        return parse_key(text)

    @classmethod
    def from_version(cls, version: JavaVersion) -> "VersionKey":
        if isinstance(version, OldScheme):
            return cls(major=version.minor)
        if isinstance(version, NewScheme):
            return cls(major=version.feature, pre_release=version.pre_release)
        raise TypeError(f"unsupported version type: {type(version).__name__}")

    def sort_key(self) -> tuple[Any, ...]:
        return (self.major, self.pre_release.sort_key())

    def __str__(self) -> str:
        if self.pre_release.is_none:
            return str(self.major)
        return f"{self.major}-{self.pre_release}"


def parse_version(text: str) -> JavaVersion:
    """Parse a full Java version string, raising :class:`ParseError` on malformed input."""
    match = _EXTRA_SEPARATOR_RE.search(text)
    if match is None:
        numbers, extra = text, None
    else:
        numbers, extra = text[: match.start()], text[match.start() :]

    first, *rest = numbers.split(".")
    if first == "1":
        return _parse_old_scheme(rest, extra)
    return _parse_new_scheme(first, rest, extra)


def _parse_old_scheme(parts: list[str], extra: str | None) -> OldScheme:
    if len(parts) < 1:
        raise ParseError("minor", "", "missing minor version")
    if len(parts) < 2:
        raise ParseError("patch", "", "missing patch version")
    if len(parts) > 2:
        raise ParseError("version", ".".join(["1", *parts]), "too many version parts")
    minor = _parse_number(parts[0], "minor")
    patch = _parse_number(parts[1], "patch")

    update = 0
    build: int | None = None
    if extra is not None:
        if extra.startswith("_"):
            update_text, build_text = _split_optional(extra[1:], "-")
            update = _parse_number(update_text, "update")
        elif extra.startswith("-"):
            build_text = extra[1:]
        else:
            raise ParseError("extra", extra, "legacy versions continue with '_' or '-'")
        if build_text is not None:
            build = _parse_old_build(build_text)

    return OldScheme(minor=minor, patch=patch, update=update, build=build)


def _parse_old_build(text: str) -> int:
    if not text.startswith("b"):
        raise ParseError("build", text, "build must start with 'b'")
    digits = text[2:] if text.startswith("b0") else text[1:]
    return _parse_number(digits, "build")


def _parse_new_scheme(first: str, parts: list[str], extra: str | None) -> NewScheme:
    if not (first.isascii() and first.isdigit()):
        raise ParseError("feature", first, "must be numeric")
    if first.startswith("0"):
        raise ParseError("feature", first, "cannot start with 0")
    feature = _parse_number(first, "feature")
    if parts and parts[-1] == "0":
        raise ParseError("version", ".".join([first, *parts]), "last part cannot be 0")

    names = ("interim", "update", "patch")
    positional = [_parse_number(part, name) for name, part in zip(names, parts)]
    positional.extend([0] * (len(names) - len(positional)))
    trailing = tuple(_parse_number(part, "trailing") for part in parts[len(names) :])

    pre_release, build, opt = _parse_new_scheme_extra(extra)
    return NewScheme(
        feature=feature,
        interim=positional[0],
        update=positional[1],
        patch=positional[2],
        trailing=trailing,
        pre_release=pre_release,
        build=build,
        opt=opt,
    )


def _parse_new_scheme_extra(extra: str | None) -> tuple[PreRelease, int | None, str | None]:
    if extra is None:
        return PreRelease.none(), None, None
    if extra.startswith("+-"):
        # +-OPT
        return PreRelease.none(), None, extra[2:]
    if extra.startswith("+"):
        # +BUILD(-OPT)?
        build_text, opt = _split_optional(extra[1:], "-")
        return PreRelease.none(), _parse_number(build_text, "build"), opt
    if extra.startswith("-"):
        # -PRE+BUILD(-OPT)? or -PRE(-OPT)?
        pre_and_build, opt = _split_optional(extra[1:], "-")
        pre_text, build_text = _split_optional(pre_and_build, "+")
        build = None if build_text is None else _parse_number(build_text, "build")
        return PreRelease.parse(pre_text), build, opt
    raise ParseError("extra", extra, "must start with '+' or '-'")


def parse_key(text: str) -> VersionKey:
    """Parse ``MAJOR`` or ``MAJOR-PRE``."""
    major_text, pre_text = _split_optional(text, "-")
    major = _parse_number(major_text, "major")
    if pre_text is None:
        return VersionKey(major=major)
    return VersionKey(major=major, pre_release=PreRelease.parse(pre_text))


def compare(a: JavaVersion, b: JavaVersion) -> int:
    """Return -1, 0 or 1. ``opt`` tags never affect the result."""
    key_a = a.sort_key()
    key_b = b.sort_key()
    return (key_a > key_b) - (key_a < key_b)
