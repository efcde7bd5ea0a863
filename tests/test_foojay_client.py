from typing import Any

import httpx
import pytest

from jpre.config import JpreConfig
from jpre.core.errors import (
    AllDistributionsFailedError,
    DistributionNotFoundError,
    MalformedResponseError,
    NoCandidateError,
    RemoteIndexError,
    TransportError,
)
from jpre.core.java_version import parse_key
from jpre.index.base import resolve_with_priority, validate_distribution_names
from jpre.index.foojay import FoojayClient
from jpre.index.models import ArchiveType, ChecksumType

BASE = "https://index.test/disco/v3.0"
SHA = "ab" * 32

LINUX = JpreConfig(forced_os="linux", forced_architecture="x64", forced_libc="glibc")


def _ok(result: list[Any]) -> httpx.Response:
    return httpx.Response(200, json={"result": result, "message": ""})


def _client(routes: dict[str, Any], seen: list[httpx.Request] | None = None) -> FoojayClient:
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        url = f"{request.url.scheme}://{request.url.host}{request.url.path}"
        route = routes.get(url)
        if route is None:
            return httpx.Response(404, text="no route")
        if callable(route):
            return route(request)
        return route

    return FoojayClient(base_url=BASE + "/", client=httpx.Client(transport=httpx.MockTransport(handler)))


def _package(distribution: str, version: str, **overrides: Any) -> dict[str, Any]:
    entry = {
        "distribution": distribution,
        "java_version": version,
        "archive_type": "tar.gz",
        "filename": f"{distribution}-{version}.tar.gz",
        "latest_build_available": True,
        "size": 1024,
        "links": {"pkg_info_uri": f"https://index.test/ids/{distribution}-{version}"},
    }
    entry.update(overrides)
    return entry


def _info(uri: str, checksum: str = SHA, checksum_type: str = "sha256") -> httpx.Response:
    return _ok([{"direct_download_uri": uri, "checksum": checksum, "checksum_type": checksum_type}])


def test_list_distributions_sorted_with_synonyms() -> None:
    routes = {
        f"{BASE}/distributions": _ok(
            [
                {"name": "zulu", "synonyms": ["zulu", "ZULU"]},
                {"name": "temurin", "synonyms": ["temurin", "adoptium"], "versions": []},
            ]
        )
    }
    with _client(routes) as client:
        distributions = client.list_distributions()

    assert [d.name for d in distributions] == ["temurin", "zulu"]
    assert distributions[0].synonyms == ("temurin", "adoptium")
    assert validate_distribution_names(["adoptium", "zulu", "nope"], distributions) == ["nope"]


def test_list_version_keys_deduplicates_and_skips_garbage() -> None:
    routes = {
        f"{BASE}/distributions/temurin": _ok(
            [{"name": "temurin", "versions": ["21.0.1+12", "21+35", "17.0.9+9", "22-ea+20", "garbage", "1.8.0_392"]}]
        )
    }
    with _client(routes) as client:
        keys = client.list_version_keys("temurin")

    assert [str(k) for k in keys] == ["8", "17", "21", "22-ea"]


def test_resolve_package_skips_unusable_entries_and_sends_platform_query() -> None:
    seen: list[httpx.Request] = []
    routes = {
        f"{BASE}/packages": _ok(
            [
                _package("temurin", "17.0.9+9", latest_build_available=False),
                _package("temurin", "17.0.9+9", archive_type="msi"),
                _package("temurin", "17.0.9+9", links={}),
                _package("temurin", "17.0.8+7"),
            ]
        ),
        "https://index.test/ids/temurin-17.0.8+7": _info("https://dl.test/temurin-17.0.8.tar.gz"),
    }
    with _client(routes, seen) as client:
        candidate = client.resolve_package(LINUX, "temurin", parse_key("17"))

    assert str(candidate.java_version) == "17.0.8+7"
    assert candidate.archive_type == ArchiveType.TAR_GZ
    assert candidate.checksum_type == ChecksumType.SHA256
    assert candidate.download_uri == "https://dl.test/temurin-17.0.8.tar.gz"

    query = dict(seen[0].url.params)
    assert query["jdk_version"] == "17"
    assert query["release_status"] == "ga"
    assert query["distribution"] == "temurin"
    assert query["operating_system"] == "linux"
    assert query["architecture"] == "x64"
    assert query["libc_type"] == "glibc"


def test_resolve_package_omits_libc_off_linux_and_passes_pre_release_status() -> None:
    seen: list[httpx.Request] = []
    routes = {
        f"{BASE}/packages": _ok([_package("zulu", "22-ea+20", archive_type="zip")]),
        "https://index.test/ids/zulu-22-ea+20": _info("https://dl.test/zulu-22.zip"),
    }
    config = JpreConfig(forced_os="macos", forced_architecture="arm64", forced_libc="libc")
    with _client(routes, seen) as client:
        candidate = client.resolve_package(config, "zulu", parse_key("22-ea"))

    assert candidate.archive_type == ArchiveType.ZIP
    query = dict(seen[0].url.params)
    assert query["release_status"] == "ea"
    assert "libc_type" not in query


def test_missing_checksum_type_probes_sidecar_files() -> None:
    download = "https://dl.test/temurin-21.tar.gz"
    routes = {
        f"{BASE}/packages": _ok([_package("temurin", "21.0.1+12")]),
        "https://index.test/ids/temurin-21.0.1+12": _info(download, checksum="", checksum_type=""),
        f"{download}.sha256": httpx.Response(404),
        f"{download}.sha256.text": httpx.Response(200, text=f"{SHA.upper()}  temurin-21.tar.gz\n"),
    }
    with _client(routes) as client:
        candidate = client.resolve_package(LINUX, "temurin", parse_key("21"))

    assert candidate.checksum == SHA
    assert candidate.checksum_type == ChecksumType.SHA256


def test_candidates_with_bad_checksums_are_skipped() -> None:
    routes = {
        f"{BASE}/packages": _ok([_package("temurin", "21.0.1+12")]),
        "https://index.test/ids/temurin-21.0.1+12": _info("https://dl.test/x.tar.gz", checksum="abc"),
    }
    with _client(routes) as client:
        with pytest.raises(NoCandidateError):
            client.resolve_package(LINUX, "temurin", parse_key("21"))


def test_unknown_distribution_maps_to_typed_error() -> None:
    routes = {
        f"{BASE}/packages": httpx.Response(400, json={"result": [], "message": "Requested distribution not found"}),
    }
    with _client(routes) as client:
        with pytest.raises(DistributionNotFoundError) as excinfo:
            client.resolve_package(LINUX, "nonsense", parse_key("17"))

    assert excinfo.value.distribution == "nonsense"
    assert excinfo.value.user_correctable


def test_http_and_payload_failures() -> None:
    routes = {
        f"{BASE}/distributions": httpx.Response(500, text="boom"),
        f"{BASE}/distributions/temurin": httpx.Response(200, text="<html>"),
    }
    with _client(routes) as client:
        with pytest.raises(RemoteIndexError) as excinfo:
            client.list_distributions()
        assert excinfo.value.status_code == 500
        assert "500" in str(excinfo.value)

        with pytest.raises(MalformedResponseError):
            client.list_version_keys("temurin")


def test_connection_failures_become_transport_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = FoojayClient(base_url=BASE, client=httpx.Client(transport=httpx.MockTransport(handler)))
    with pytest.raises(TransportError):
        client.list_distributions()


def test_latest_version_picks_maximum_and_maps_404_to_none() -> None:
    routes = {
        f"{BASE}/packages": _ok(
            [
                {"java_version": "17.0.8+7"},
                {"java_version": "17.0.10+7"},
                {"java_version": "not-a-version"},
                {"java_version": "17.0.9+9"},
            ]
        )
    }
    with _client(routes) as client:
        assert client.latest_version("temurin", 17, LINUX) == "17.0.10+7"

    with _client({f"{BASE}/packages": httpx.Response(404, json={"message": "nothing"})}) as client:
        assert client.latest_version("temurin", 17, LINUX) is None

    with _client({f"{BASE}/packages": _ok([])}) as client:
        assert client.latest_version("temurin", 17, LINUX) is None


def test_priority_fallback_uses_next_distribution() -> None:
    def packages(request: httpx.Request) -> httpx.Response:
        if request.url.params["distribution"] == "zulu":
            return _ok([])
        return _ok([_package("temurin", "17.0.9+9")])

    routes = {
        f"{BASE}/packages": packages,
        "https://index.test/ids/temurin-17.0.9+9": _info("https://dl.test/t.tar.gz"),
    }
    config = LINUX.model_copy(update={"distributions": ["zulu", "temurin"]})
    with _client(routes) as client:
        candidate = resolve_with_priority(client, config, parse_key("17"))

    assert candidate.distribution == "temurin"


def test_priority_fallback_aggregates_every_failure() -> None:
    def packages(request: httpx.Request) -> httpx.Response:
        if request.url.params["distribution"] == "nonsense":
            return httpx.Response(400, json={"message": "Requested distribution not found"})
        return _ok([])

    config = LINUX.model_copy(update={"distributions": ["nonsense", "temurin"]})
    with _client({f"{BASE}/packages": packages}) as client:
        with pytest.raises(AllDistributionsFailedError) as excinfo:
            resolve_with_priority(client, config, parse_key("17"))

    failures = excinfo.value.failures
    assert [name for name, _ in failures] == ["nonsense", "temurin"]
    assert isinstance(failures[0][1], DistributionNotFoundError)
    assert isinstance(failures[1][1], NoCandidateError)
    assert not excinfo.value.user_correctable
    assert "nonsense" in str(excinfo.value) and "temurin" in str(excinfo.value)
