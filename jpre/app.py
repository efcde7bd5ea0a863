"""The jpre API: one object wiring config, package index, JDK store and context binding."""

from __future__ import annotations

import logging
from pathlib import Path

from jpre import config as config_module
from jpre.config import JpreConfig
from jpre.context import ContextBinding, get_context_id
from jpre.core.errors import ConfigError, DistributionNotFoundError
from jpre.core.java_version import JavaVersion, VersionKey, parse_key
from jpre.index.base import PackageIndex, validate_distribution_names
from jpre.index.foojay import FoojayClient
from jpre.index.models import DistributionInfo
from jpre.jdks.download import Downloader, ProgressCallback
from jpre.jdks.manager import JdkManager, UpdateCheck

logger = logging.getLogger(__name__)

UPDATE_ALL = "all"
DEFAULT_TARGET = "default"


class Jpre:
    """Facade over the JDK store for one context. Build it once and pass it around."""

    def __init__(
        self,
        *,
        config: JpreConfig,
        index: PackageIndex,
        manager: JdkManager,
        context: ContextBinding,
        config_path: str | Path | None = None,
    ) -> None:
        self.config = config
        self.index = index
        self.manager = manager
        self.context = context
        self.config_path = Path(config_path) if config_path is not None else None

    @classmethod
    def from_environment(
        cls,
        *,
        index: PackageIndex | None = None,
        downloader: Downloader | None = None,
        progress: ProgressCallback | None = None,
        context_id: str | None = None,
    ) -> "Jpre":
        config_path = config_module.config_file()
        config = config_module.load_config(config_path)
        index = index if index is not None else FoojayClient()
        manager = JdkManager(
            index,
            store_root=config_module.jdks_root(),
            downloads_root=config_module.downloads_root(),
            downloader=downloader,
            progress=progress,
        )
        context = ContextBinding(manager, config_module.context_root(), context_id or get_context_id())
        return cls(config=config, index=index, manager=manager, context=context, config_path=config_path)

    def close(self) -> None:
        for resource in (self.index, self.manager.downloader):
            close = getattr(resource, "close", None)
            if callable(close):
                close()

    def __enter__(self) -> "Jpre":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        self.close()

    # JDK store

    def get_path(self, key: VersionKey) -> Path:
        return self.manager.get_path(self.config, key)

    def install(self, key: VersionKey) -> Path:
        return self.manager.install(self.config, key)

    def remove(self, key: VersionKey) -> Path:
        """Delete an install, first unbinding every context that points there."""
        path = self.manager.jdk_path(key)
        for context_id in self.context.clear_all_pointing_to(path):
            logger.info("Cleared context %s, which pointed at JDK %s", context_id, key)
        return self.manager.remove(key)

    def list_installed(self) -> list[VersionKey]:
        return self.manager.list_installed()

    def get_full_version(self, key: VersionKey) -> JavaVersion:
        return self.manager.get_full_version(key)

    def check_update(self, key: VersionKey) -> UpdateCheck:
        return self.manager.check_update(self.config, key)

    def update(self, key: VersionKey, *, force: bool = False) -> tuple[UpdateCheck, Path | None]:
        return self.manager.update(self.config, key, force=force)

    def update_targets(self, target: str) -> list[VersionKey]:
        """Installed keys selected by ``all``, ``default`` or a version key."""
        installed = self.list_installed()
        if target == UPDATE_ALL:
            return installed
        key = self.default_key() if target == DEFAULT_TARGET else parse_key(target)
        return [item for item in installed if item == key]

    # Context binding

    def bind_context(self, key: VersionKey) -> Path:
        return self.context.bind(self.config, key)

    def current_context(self) -> JavaVersion | None:
        return self.context.current()

    def clear_context(self) -> None:
        self.context.clear()

    def java_home(self) -> Path:
        """Reset this context to the default JDK (if any) and return the link path to export as ``JAVA_HOME``."""
        self.context.clear()
        default = self.config.default_key
        if default is not None:
            self.context.bind(self.config, default)
        return self.context.link_path

    # Package index

    def list_distributions(self) -> list[DistributionInfo]:
        return self.index.list_distributions()

    def list_version_keys(self, distribution: str | None = None) -> list[VersionKey]:
        return self.index.list_version_keys(distribution or self.config.distributions[0])

    def latest_version(self, distribution: str, major: int) -> str | None:
        return self.index.latest_version(distribution, major, self.config)

    # Configuration

    def default_key(self) -> VersionKey:
        default = self.config.default_key
        if default is None:
            raise ConfigError("No default JDK set. Run `jpre set-default <version>` first.")
        return default

    def resolve_target(self, target: str) -> VersionKey:
        if target == DEFAULT_TARGET:
            return self.default_key()
        return parse_key(target)

    def set_default(self, key: VersionKey) -> bool:
        """Make ``key`` the default JDK, installing it if needed. Returns ``False`` when unchanged."""
        if self.config.default_key == key:
            return False
        self.get_path(key)
        self._save(self.config.model_copy(update={"default_jdk": str(key)}))
        return True

    def set_distributions(self, names: list[str]) -> bool:
        """Replace the distribution priority list after checking every name against the index."""
        if not names:
            raise ConfigError("At least one distribution is required")
        if list(names) == self.config.distributions:
            return False
        distributions = self.list_distributions()
        missing = sorted(validate_distribution_names(list(names), distributions))
        if missing:
            raise DistributionNotFoundError(", ".join(missing), available=[info.name for info in distributions])
        self._save(JpreConfig.model_validate({**self.config.model_dump(), "distributions": list(names)}))
        return True

    def _save(self, config: JpreConfig) -> None:
        config_module.save_config(config, self.config_path)
        self.config = config
