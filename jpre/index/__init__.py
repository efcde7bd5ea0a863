"""Remote package index access."""

from jpre.index.base import PackageIndex, resolve_with_priority, validate_distribution_names
from jpre.index.foojay import FoojayClient
from jpre.index.models import ArchiveType, ChecksumType, DistributionInfo, PackageCandidate

__all__ = [
    "ArchiveType",
    "ChecksumType",
    "DistributionInfo",
    "FoojayClient",
    "PackageCandidate",
    "PackageIndex",
    "resolve_with_priority",
    "validate_distribution_names",
]
