"""Client for the foojay disco API."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from jpre.config import JpreConfig
from jpre.core.checksum import parse_checksum_text
from jpre.core.errors import (
    DistributionNotFoundError,
    MalformedResponseError,
    NoCandidateError,
    ParseError,
    RemoteIndexError,
    TransportError,
)
from jpre.core.java_version import PreReleaseKind, VersionKey, compare, parse_version
from jpre.index.base import PackageIndex
from jpre.index.models import ArchiveType, ChecksumType, DistributionInfo, PackageCandidate
from jpre.index.platform import PlatformTarget, detect_platform
from jpre.version import __version__

logger = logging.getLogger(__name__)

FOOJAY_BASE_URL = "https://api.foojay.io/disco/v3.0"
DISTRIBUTION_NOT_FOUND_MESSAGE = "Requested distribution not found"
_CHECKSUM_PROBE_SUFFIXES = (".sha256", ".sha256.text")


def new_http_client(*, timeout_seconds: float = 30.0, **kwargs: Any) -> httpx.Client:
    """Shared ``httpx.Client`` factory for index queries and downloads."""
    headers = dict(kwargs.pop("headers", {}))
    headers.setdefault("User-Agent", f"jpre/{__version__}")
    return httpx.Client(
        timeout=httpx.Timeout(timeout_seconds, connect=timeout_seconds),
        follow_redirects=True,
        headers=headers,
        **kwargs,
    )


def release_status(key: VersionKey) -> str:
    if key.pre_release.kind == PreReleaseKind.NONE:
        return "ga"
    return str(key.pre_release)


class FoojayClient(PackageIndex):
    """Package index backed by https://api.foojay.io."""

    def __init__(
        self,
        *,
        base_url: str = FOOJAY_BASE_URL,
        client: httpx.Client | None = None,
        timeout_seconds: float = 30.0,
    ) -> None:
        self.base_url = self._normalize_base_url(base_url)
        self._client = client if client is not None else new_http_client(timeout_seconds=timeout_seconds)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "FoojayClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        self.close()

    def list_distributions(self) -> list[DistributionInfo]:
        items = self._request_result(
            "/distributions",
            params={"include_versions": "false", "include_synonyms": "true"},
        )
        distributions: list[DistributionInfo] = []
        for item in items:
            try:
                distributions.append(DistributionInfo.model_validate(item))
            except ValidationError as exc:
                raise MalformedResponseError(f"Unexpected distribution entry from package index: {exc}") from exc
        return sorted(distributions)

    def list_version_keys(self, distribution: str) -> list[VersionKey]:
        item = self._request_single(
            f"/distributions/{distribution}",
            params={"latest_per_update": "true"},
        )
        versions = item.get("versions")
        if not isinstance(versions, list):
            raise MalformedResponseError(f"Distribution {distribution} response is missing 'versions'")

        keys: set[VersionKey] = set()
        for raw in versions:
            try:
                keys.add(parse_version(str(raw)).key)
            except ParseError as exc:
                logger.debug("Skipping unparseable version %r of %s: %s", raw, distribution, exc)
        return sorted(keys)

    def resolve_package(self, config: JpreConfig, distribution: str, key: VersionKey) -> PackageCandidate:
        target = detect_platform(config)
        items = self._request_result("/packages", params=self._package_query(target, distribution, key))

        for item in items:
            candidate = self._candidate_from_entry(distribution, item)
            if candidate is not None:
                return candidate
        raise NoCandidateError(distribution, key)

    def latest_version(self, distribution: str, major: int, config: JpreConfig | None = None) -> str | None:
        target = detect_platform(config or JpreConfig())
        params = self._package_query(target, distribution, VersionKey(major=major))
        try:
            items = self._request_result("/packages", params=params)
        except RemoteIndexError as exc:
            if exc.status_code == 404:
                return None
            raise

        best = None
        for item in items:
            raw = item.get("java_version") if isinstance(item, dict) else None
            try:
                version = parse_version(str(raw))
            except ParseError as exc:
                logger.debug("Skipping unparseable version %r: %s", raw, exc)
                continue
            if best is None or compare(version, best) > 0:
                best = version
        return None if best is None else str(best)

    def _package_query(self, target: PlatformTarget, distribution: str, key: VersionKey) -> dict[str, str]:
        params = {
            "package_type": "jdk",
            "with_javafx_if_available": "true",
            "directly_downloadable": "true",
            "jdk_version": str(key.major),
            "release_status": release_status(key),
            "distribution": distribution,
            "operating_system": target.operating_system,
            "architecture": target.architecture,
        }
        if target.is_linux:
            params["libc_type"] = target.libc
        return params

    def _candidate_from_entry(self, distribution: str, item: Any) -> PackageCandidate | None:
        if not isinstance(item, dict) or not item.get("latest_build_available"):
            return None

        archive_type = ArchiveType.from_name(item.get("archive_type"))
        if archive_type is None:
            logger.debug("Unknown archive type: %s", item.get("archive_type"))
            return None

        links = item.get("links")
        pkg_info_uri = links.get("pkg_info_uri") if isinstance(links, dict) else None
        if not isinstance(pkg_info_uri, str) or not pkg_info_uri:
            logger.debug("Package entry %s has no pkg_info_uri", item.get("filename"))
            return None

        info = self._request_single(pkg_info_uri)
        download_uri = info.get("direct_download_uri")
        if not isinstance(download_uri, str) or not download_uri:
            raise MalformedResponseError(f"Package info {pkg_info_uri} is missing 'direct_download_uri'")

        checksum = str(info.get("checksum") or "")
        raw_checksum_type = str(info.get("checksum_type") or "")
        if not raw_checksum_type.strip():
            probed = self._probe_checksum(download_uri)
            if probed is not None:
                checksum, raw_checksum_type = probed, ChecksumType.SHA256.value

        checksum_type = ChecksumType.from_name(raw_checksum_type)
        if checksum_type is None:
            logger.debug("Unknown checksum type: %r", raw_checksum_type)
            return None

        try:
            return PackageCandidate(
                distribution=distribution,
                java_version=str(item.get("java_version")),
                archive_type=archive_type,
                download_uri=download_uri,
                checksum=checksum,
                checksum_type=checksum_type,
                filename=str(item.get("filename") or ""),
                latest_build_available=True,
                size=item.get("size"),
            )
        except (ValidationError, ParseError) as exc:
            logger.debug("Skipping package %s: %s", item.get("filename"), exc)
            return None

    def _probe_checksum(self, download_uri: str) -> str | None:
        for suffix in _CHECKSUM_PROBE_SUFFIXES:
            url = f"{download_uri}{suffix}"
            try:
                response = self._client.get(url)
            except httpx.HTTPError as exc:
                logger.debug("Checksum probe %s failed: %s", url, exc)
                continue
            if not response.is_success:
                logger.debug("Checksum probe %s returned %s", url, response.status_code)
                continue
            checksum = parse_checksum_text(response.text, ChecksumType.SHA256.value)
            if checksum is not None:
                return checksum
        return None

    def _request_single(self, path: str, *, params: dict[str, str] | None = None) -> dict[str, Any]:
        items = self._request_result(path, params=params)
        if len(items) != 1 or not isinstance(items[0], dict):
            raise MalformedResponseError(f"Expected exactly one result from {path}, got {len(items)}")
        return items[0]

    def _request_result(self, path: str, *, params: dict[str, str] | None = None) -> list[Any]:
        url = path if path.startswith(("http://", "https://")) else f"{self.base_url}{path}"
        logger.debug("GET %s params=%s", url, params)
        try:
            response = self._client.get(url, params=params)
        except httpx.HTTPError as exc:
            raise TransportError(f"Unable to reach package index at {url}: {exc}") from exc

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if response.status_code >= 400:
            message = payload.get("message") if isinstance(payload, dict) else None
            if message == DISTRIBUTION_NOT_FOUND_MESSAGE:
                distribution = (params or {}).get("distribution") or path.rstrip("/").rsplit("/", 1)[-1]
                raise DistributionNotFoundError(distribution)
            raise RemoteIndexError(self._format_http_error(response, message), status_code=response.status_code)

        if not isinstance(payload, dict):
            raise MalformedResponseError(f"Package index response is not valid JSON for GET {url}")
        result = payload.get("result")
        if not isinstance(result, list):
            raise MalformedResponseError(f"Package index response for GET {url} has no 'result' list")
        return result

    def _format_http_error(self, response: httpx.Response, message: str | None) -> str:
        detail = message or response.text.strip() or "unknown error"
        reason = response.reason_phrase or "Error"
        return f"Package index request failed ({response.status_code} {reason}): {detail}"

    def _normalize_base_url(self, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("package index URL cannot be empty")
        return cleaned.rstrip("/")
