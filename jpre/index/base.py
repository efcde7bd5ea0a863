"""Package index capability and distribution fallback."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from jpre.config import JpreConfig
from jpre.core.errors import AllDistributionsFailedError, JpreError
from jpre.core.java_version import VersionKey
from jpre.index.models import DistributionInfo, PackageCandidate

logger = logging.getLogger(__name__)


class PackageIndex(ABC):
    """Remote catalogue of downloadable JDK builds."""

    @abstractmethod
    def list_distributions(self) -> list[DistributionInfo]:
        raise NotImplementedError

    @abstractmethod
    def list_version_keys(self, distribution: str) -> list[VersionKey]:
        raise NotImplementedError

    @abstractmethod
    def resolve_package(self, config: JpreConfig, distribution: str, key: VersionKey) -> PackageCandidate:
        raise NotImplementedError

    @abstractmethod
    def latest_version(self, distribution: str, major: int, config: JpreConfig | None = None) -> str | None:
        raise NotImplementedError


def validate_distribution_names(names: list[str], distributions: list[DistributionInfo]) -> list[str]:
    """Return the names that match neither a distribution name nor one of its synonyms."""
    return [name for name in names if not any(info.matches(name) for info in distributions)]


def resolve_with_priority(index: PackageIndex, config: JpreConfig, key: VersionKey) -> PackageCandidate:
    """Try each configured distribution in order; the first that resolves wins."""
    failures: list[tuple[str, JpreError]] = []
    for distribution in config.distributions:
        try:
            candidate = index.resolve_package(config, distribution, key)
        except JpreError as exc:
            logger.info("Distribution %s could not provide JDK %s: %s", distribution, key, exc)
            failures.append((distribution, exc))
            continue
        logger.debug("Resolved JDK %s from %s: %s", key, distribution, candidate.java_version)
        return candidate
    raise AllDistributionsFailedError(key, failures)
