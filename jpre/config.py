"""On-disk layout and the YAML configuration file."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

import yaml
from platformdirs import PlatformDirs
from pydantic import BaseModel, Field, ValidationError, field_validator

from jpre.core.errors import ConfigError
from jpre.core.java_version import VersionKey, parse_key

logger = logging.getLogger(__name__)

APP_NAME = "jpre"
HOME_ENV_VAR = "JPRE_HOME"
CONFIG_SCHEMA_VERSION = 1
DEFAULT_DISTRIBUTIONS = ("temurin",)

_CONFIG_FILENAME = "config.yaml"
_JDKS_DIRNAME = "jdks"
_DOWNLOADS_DIRNAME = "downloads"
_CONTEXT_DIRNAME = "java-home-by-pid"


def jpre_home() -> Path | None:
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return Path(override).expanduser().resolve()
    return None


def _dirs() -> PlatformDirs:
    return PlatformDirs(APP_NAME, appauthor=False)


def config_dir() -> Path:
    return jpre_home() or Path(_dirs().user_config_dir)


def cache_dir() -> Path:
    return jpre_home() or Path(_dirs().user_cache_dir)


def state_dir() -> Path:
    return jpre_home() or Path(_dirs().user_state_dir)


def config_file() -> Path:
    return config_dir() / _CONFIG_FILENAME


def jdks_root() -> Path:
    return cache_dir() / _JDKS_DIRNAME


def downloads_root() -> Path:
    return cache_dir() / _DOWNLOADS_DIRNAME


def context_root() -> Path:
    return state_dir() / _CONTEXT_DIRNAME


class JpreConfig(BaseModel):
    """User configuration. ``forced_*`` values replace platform detection field by field."""

    schema_version: int = CONFIG_SCHEMA_VERSION
    default_jdk: str | None = None
    distributions: list[str] = Field(default_factory=lambda: list(DEFAULT_DISTRIBUTIONS), min_length=1)
    forced_architecture: str | None = None
    forced_os: str | None = None
    forced_libc: str | None = None

    @field_validator("default_jdk")
    @classmethod
    def _validate_default_jdk(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return str(parse_key(value.strip()))

    @field_validator("distributions")
    @classmethod
    def _validate_distributions(cls, value: list[str]) -> list[str]:
        cleaned: list[str] = []
        for name in value:
            stripped = str(name).strip()
            if not stripped:
                raise ValueError("distribution names cannot be empty")
            if stripped not in cleaned:
                cleaned.append(stripped)
        return cleaned

    @field_validator("forced_architecture", "forced_os", "forced_libc")
    @classmethod
    def _blank_is_unset(cls, value: str | None) -> str | None:
        if value is None:
            return None
        stripped = value.strip()
        return stripped or None

    @property
    def default_key(self) -> VersionKey | None:
        if self.default_jdk is None:
            return None
        return parse_key(self.default_jdk)


def _migrate_integer_default_jdk(raw: dict[str, Any]) -> dict[str, Any]:
    value = raw.get("default_jdk")
    if isinstance(value, int) and not isinstance(value, bool):
        raw = dict(raw)
        raw["default_jdk"] = str(value)
    return raw


def _migrate_single_distribution(raw: dict[str, Any]) -> dict[str, Any]:
    if "distribution" not in raw:
        return raw
    raw = dict(raw)
    legacy = raw.pop("distribution")
    if "distributions" not in raw and isinstance(legacy, str) and legacy.strip():
        raw["distributions"] = [legacy.strip()]
    return raw


def _migrate_schema_version(raw: dict[str, Any]) -> dict[str, Any]:
    if "schema_version" in raw:
        return raw
    raw = dict(raw)
    raw["schema_version"] = CONFIG_SCHEMA_VERSION
    return raw


_MIGRATIONS: tuple[Callable[[dict[str, Any]], dict[str, Any]], ...] = (
    _migrate_integer_default_jdk,
    _migrate_single_distribution,
    _migrate_schema_version,
)


def migrate_config(raw: dict[str, Any]) -> tuple[bool, dict[str, Any]]:
    """Upgrade legacy config shapes. Returns ``(changed, migrated)`` and never mutates ``raw``."""
    migrated = dict(raw)
    for step in _MIGRATIONS:
        migrated = step(migrated)
    return migrated != raw, migrated


def read_yaml_file(path: str | Path) -> Any:
    with Path(path).open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle)


def write_yaml_file(path: str | Path, data: Any) -> None:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(data, handle, sort_keys=False)


def load_config(path: str | Path | None = None) -> JpreConfig:
    """Read the config file, creating it with defaults when it does not exist yet."""
    target = Path(path) if path is not None else config_file()
    if not target.exists():
        config = JpreConfig()
        save_config(config, target)
        return config

    try:
        parsed = read_yaml_file(target)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config file {target} is not valid YAML: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Unable to read config file {target}: {exc}") from exc

    if parsed is None:
        parsed = {}
    if not isinstance(parsed, dict):
        raise ConfigError(f"Config file {target} must contain a mapping")

    changed, migrated = migrate_config(parsed)
    try:
        config = JpreConfig.model_validate(migrated)
    except ValidationError as exc:
        raise ConfigError(f"Invalid config file {target}: {exc}") from exc

    if changed:
        logger.info("Migrated legacy config file %s", target)
        save_config(config, target)
    return config


def save_config(config: JpreConfig, path: str | Path | None = None) -> None:
    target = Path(path) if path is not None else config_file()
    write_yaml_file(target, config.model_dump(mode="json"))
