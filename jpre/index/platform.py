"""Host platform detection, expressed in the package index's vocabulary."""

from __future__ import annotations

import glob
import platform
from typing import NamedTuple

from jpre.config import JpreConfig
from jpre.core.errors import UnsupportedPlatformError

_ARCH_MAP = {
    "x86_64": "x64",
    "amd64": "x64",
    "x64": "x64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "x86": "x86",
    "i386": "x86",
    "i686": "x86",
}

_OS_MAP = {
    "darwin": "macos",
    "linux": "linux",
    "windows": "windows",
}

_MUSL_LOADER_GLOB = "/lib/ld-musl-*"


class PlatformTarget(NamedTuple):
    operating_system: str
    architecture: str
    libc: str

    @property
    def is_linux(self) -> bool:
        return self.operating_system in {"linux", "linux-musl"}

    @property
    def is_macos(self) -> bool:
        return self.operating_system == "macos"


def normalize_arch(machine: str) -> str:
    value = _ARCH_MAP.get(machine.strip().lower())
    if value is None:
        raise UnsupportedPlatformError(
            f"Unsupported architecture '{machine}'. Set forced_architecture in the config file."
        )
    return value


def normalize_os(system: str, libc: str) -> str:
    value = _OS_MAP.get(system.strip().lower())
    if value is None:
        raise UnsupportedPlatformError(
            f"Unsupported operating system '{system}'. Set forced_os in the config file."
        )
    if value == "linux" and libc == "musl":
        return "linux-musl"
    return value


def detect_libc(system: str | None = None) -> str:
    system = (system if system is not None else platform.system()).lower()
    if system == "windows":
        return "windows"
    if system == "darwin":
        return "libc"
    name, _ = platform.libc_ver()
    if name == "glibc":
        return "glibc"
    if glob.glob(_MUSL_LOADER_GLOB):
        return "musl"
    return "glibc"


def detect_platform(config: JpreConfig) -> PlatformTarget:
    """Return the target platform; each ``forced_*`` config value overrides its own field."""
    system = platform.system()
    libc = config.forced_libc or detect_libc(system)
    operating_system = config.forced_os or normalize_os(system, libc)
    architecture = config.forced_architecture or normalize_arch(platform.machine())
    return PlatformTarget(operating_system, architecture, libc)
