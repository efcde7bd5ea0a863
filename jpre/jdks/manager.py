"""Local JDK store: resolve, download, verify, extract and commit installs."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from jpre.config import JpreConfig
from jpre.core.checksum import ChecksumVerifier
from jpre.core.errors import FilesystemError, NotInstalledError, ParseError
from jpre.core.java_version import JavaVersion, VersionKey, compare, parse_key, parse_version
from jpre.index.base import PackageIndex, resolve_with_priority
from jpre.index.models import PackageCandidate
from jpre.index.platform import detect_platform
from jpre.jdks.archive import extract_archive, locate_jdk_root
from jpre.jdks.download import Downloader, HttpDownloader, ProgressCallback

logger = logging.getLogger(__name__)

MARKER_FILENAME = ".jdk_marker_with_version"
_UNPACK_PREFIX = ".unpack-"


class UpdateCheck(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: VersionKey
    installed: JavaVersion | None
    latest: JavaVersion
    update_available: bool


def _cleanup(path: Path, what: str) -> None:
    """Best-effort removal; failures are logged and never raised."""
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        elif path.exists() or path.is_symlink():
            path.unlink()
    except OSError as exc:
        logger.warning("Failed to clean up %s %s: %s", what, path, exc)


class JdkManager:
    """Owns ``store_root/<key>`` directories and the marker that proves an install completed."""

    def __init__(
        self,
        index: PackageIndex,
        *,
        store_root: str | Path,
        downloads_root: str | Path,
        downloader: Downloader | None = None,
        progress: ProgressCallback | None = None,
    ) -> None:
        self.index = index
        self.store_root = Path(store_root)
        self.downloads_root = Path(downloads_root)
        self.downloader = downloader if downloader is not None else HttpDownloader()
        self.progress = progress

    def jdk_path(self, key: VersionKey) -> Path:
        return self.store_root / str(key)

    def is_installed(self, key: VersionKey) -> bool:
        return (self.jdk_path(key) / MARKER_FILENAME).is_file()

    def get_path(self, config: JpreConfig, key: VersionKey) -> Path:
        """Return the install path for ``key``, installing it first when no marker is present."""
        if self.is_installed(key):
            return self.jdk_path(key)
        return self.install(config, key)

    def install(self, config: JpreConfig, key: VersionKey) -> Path:
        install_path = self.jdk_path(key)
        if install_path.exists() or install_path.is_symlink():
            logger.info("Removing previous install of JDK %s at %s", key, install_path)
            self._remove_tree(install_path)

        candidate = resolve_with_priority(self.index, config, key)
        logger.info(
            "Installing JDK %s (%s %s) from %s",
            key,
            candidate.distribution,
            candidate.java_version,
            candidate.download_uri,
        )
        target = detect_platform(config)

        self._ensure_dir(self.store_root)
        self._ensure_dir(self.downloads_root)

        archive_path = self._download(candidate)
        try:
            self._unpack_and_commit(candidate, archive_path, install_path, macos=target.is_macos)
        finally:
            _cleanup(archive_path, "downloaded archive")

        self._write_marker(install_path, candidate.java_version)
        logger.info("Installed JDK %s at %s", key, install_path)
        return install_path

    def list_installed(self) -> list[VersionKey]:
        if not self.store_root.is_dir():
            return []
        keys: list[VersionKey] = []
        for entry in self.store_root.iterdir():
            if not entry.is_dir():
                continue
            try:
                key = parse_key(entry.name)
            except ParseError:
                continue
            if (entry / MARKER_FILENAME).is_file():
                keys.append(key)
        return sorted(keys)

    def get_full_version(self, key: VersionKey) -> JavaVersion:
        version = self.full_version_from_path(self.jdk_path(key))
        if version is None:
            raise NotInstalledError(key)
        return version

    def full_version_from_path(self, path: str | Path) -> JavaVersion | None:
        marker = Path(path) / MARKER_FILENAME
        if not marker.is_file():
            return None
        try:
            content = marker.read_text(encoding="utf-8")
        except OSError as exc:
            raise FilesystemError("Could not read install marker", marker) from exc
        return parse_version(content.strip())

    def remove(self, key: VersionKey) -> Path:
        path = self.jdk_path(key)
        if not (path.exists() or path.is_symlink()):
            raise NotInstalledError(key)
        self._remove_tree(path)
        logger.info("Removed JDK %s from %s", key, path)
        return path

    def check_update(self, config: JpreConfig, key: VersionKey) -> UpdateCheck:
        installed = self.full_version_from_path(self.jdk_path(key))
        candidate = resolve_with_priority(self.index, config, key)
        latest = candidate.java_version
        update_available = installed is None or compare(latest, installed) > 0
        return UpdateCheck(key=key, installed=installed, latest=latest, update_available=update_available)

    def update(self, config: JpreConfig, key: VersionKey, *, force: bool = False) -> tuple[UpdateCheck, Path | None]:
        """Reinstall ``key`` when a newer build exists (or always, with ``force``)."""
        check = self.check_update(config, key)
        if not (force or check.update_available):
            return check, None
        return check, self.install(config, key)

    def _download(self, candidate: PackageCandidate) -> Path:
        suffix = f".{candidate.archive_type.value}"
        try:
            fd, name = tempfile.mkstemp(dir=self.downloads_root, prefix="jdk-", suffix=suffix)
        except OSError as exc:
            raise FilesystemError("Could not create download file", self.downloads_root) from exc
        archive_path = Path(name)
        try:
            with os.fdopen(fd, "wb") as handle:
                verifier = ChecksumVerifier(candidate.checksum, candidate.checksum_type.value, handle)
                self.downloader.download(candidate.download_uri, verifier, on_progress=self.progress)
            verifier.verify(source=candidate.download_uri)
        except OSError as exc:
            _cleanup(archive_path, "downloaded archive")
            raise FilesystemError("Could not write download file", archive_path) from exc
        except BaseException:
            _cleanup(archive_path, "downloaded archive")
            raise
        logger.debug("Downloaded %s (%d bytes, %s verified)", archive_path, verifier.bytes_written, verifier.algorithm)
        return archive_path

    def _unpack_and_commit(self, candidate: PackageCandidate, archive_path: Path, install_path: Path, *, macos: bool) -> None:
        try:
            unpack_dir = Path(tempfile.mkdtemp(dir=self.store_root, prefix=_UNPACK_PREFIX))
        except OSError as exc:
            raise FilesystemError("Could not create unpack directory", self.store_root) from exc
        try:
            extract_archive(archive_path, candidate.archive_type, unpack_dir)
            jdk_root = locate_jdk_root(unpack_dir, macos=macos)
            try:
                os.rename(jdk_root, install_path)
            except OSError as exc:
                raise FilesystemError(f"Could not move JDK into place from {jdk_root}", install_path) from exc
        finally:
            if unpack_dir.exists():
                _cleanup(unpack_dir, "unpack directory")

    def _write_marker(self, install_path: Path, version: JavaVersion) -> None:
        tmp_path: Path | None = None
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=install_path,
                prefix=f"{MARKER_FILENAME}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                tmp_path = Path(handle.name)
                handle.write(str(version))
            os.replace(tmp_path, install_path / MARKER_FILENAME)
        except OSError as exc:
            if tmp_path is not None:
                _cleanup(tmp_path, "marker temp file")
            raise FilesystemError("Could not write install marker", install_path / MARKER_FILENAME) from exc

    def _remove_tree(self, path: Path) -> None:
        try:
            if path.is_dir() and not path.is_symlink():
                shutil.rmtree(path)
            else:
                path.unlink()
        except OSError as exc:
            raise FilesystemError("Could not remove", path) from exc

    @staticmethod
    def _ensure_dir(path: Path) -> None:
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FilesystemError("Could not create directory", path) from exc
