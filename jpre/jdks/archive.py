"""Safe extraction of JDK archives and JDK root detection."""

from __future__ import annotations

import logging
import os
import posixpath
import re
import shutil
import stat
import tarfile
import zipfile
import zlib
from collections.abc import Callable
from pathlib import Path
from typing import IO

from jpre.core.errors import ArchiveError, FilesystemError
from jpre.index.models import ArchiveType

logger = logging.getLogger(__name__)

MACOS_BUNDLE_HOME = Path("Contents") / "Home"
_JAVA_EXECUTABLES = ("java", "java.exe")
_DRIVE_RE = re.compile(r"^[A-Za-z]:")


def normalize_member_path(member: str) -> str | None:
    """Return a clean relative POSIX path for ``member``, ``""`` for the root, or ``None`` if it is unsafe."""
    normalized = (member or "").replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    if not normalized:
        return ""
    if normalized.startswith("/") or _DRIVE_RE.match(normalized):
        return None
    parts = [part for part in normalized.split("/") if part not in {"", "."}]
    if any(part == ".." for part in parts):
        return None
    return "/".join(parts)


def _link_stays_inside(entry: str, linkname: str, *, relative_to_entry: bool) -> bool:
    cleaned = (linkname or "").replace("\\", "/").strip()
    if not cleaned or cleaned.startswith("/") or _DRIVE_RE.match(cleaned):
        return False
    base = posixpath.dirname(entry) if relative_to_entry else ""
    combined = posixpath.normpath(posixpath.join(base, cleaned))
    return combined != ".." and not combined.startswith("../")


class _Extractor:
    """Writes validated entries under ``dest``; unsafe entries are skipped with a warning."""

    def __init__(self, archive: Path, dest: Path) -> None:
        self.archive = archive
        self.dest = dest
        self.extracted = 0
        self.skipped = 0

    def contains(self, path: Path) -> bool:
        dest_real = self.dest.resolve()
        path_real = path.resolve()
        return path_real == dest_real or dest_real in path_real.parents

    def skip(self, member: str, reason: str) -> None:
        self.skipped += 1
        logger.warning("Skipping archive entry %r in %s: %s", member, self.archive.name, reason)

    def target_for(self, member: str) -> tuple[str, Path] | None:
        entry = normalize_member_path(member)
        if entry is None:
            self.skip(member, "path escapes the extraction directory")
            return None
        if not entry:
            return None
        parent = self._safe_parent(entry)
        if parent is None:
            self.skip(member, "parent directory is a symlink or a file")
            return None
        return entry, parent / posixpath.basename(entry)

    def _safe_parent(self, entry: str) -> Path | None:
        current = self.dest
        for part in entry.split("/")[:-1]:
            current = current / part
            if current.is_symlink() or (current.exists() and not current.is_dir()):
                return None
            if not current.exists():
                self._wrap_os(current.mkdir, current)
        return current

    def make_dir(self, member: str, target: Path) -> None:
        if target.is_symlink() or (target.exists() and not target.is_dir()):
            self.skip(member, "directory collides with an existing entry")
            return
        self._wrap_os(lambda: target.mkdir(exist_ok=True), target)
        self.extracted += 1

    def write_file(self, target: Path, source: IO[bytes], mode: int) -> None:
        def _write() -> None:
            if target.is_symlink():
                target.unlink()
            with target.open("wb") as out:
                shutil.copyfileobj(source, out)
            if mode:
                os.chmod(target, mode & 0o777)

        self._wrap_os(_write, target)
        self.extracted += 1

    def make_symlink(self, target: Path, linkname: str) -> None:
        def _link() -> None:
            if target.is_symlink() or target.exists():
                target.unlink()
            os.symlink(linkname, target)

        self._wrap_os(_link, target)
        self.extracted += 1

    def make_hardlink(self, target: Path, source: Path) -> None:
        def _link() -> None:
            if target.is_symlink() or target.exists():
                target.unlink()
            os.link(source, target)

        self._wrap_os(_link, target)
        self.extracted += 1

    @staticmethod
    def _wrap_os(action: Callable[[], object], path: Path) -> None:
        try:
            action()
        except OSError as exc:
            raise FilesystemError(f"Failed to extract archive entry ({exc.strerror or exc})", path) from exc


def _extract_tar_gz(extractor: _Extractor) -> None:
    # Streaming mode: members must be consumed in order.
    with tarfile.open(extractor.archive, mode="r|gz") as tf:
        for member in tf:
            resolved = extractor.target_for(member.name)
            if resolved is None:
                continue
            entry, target = resolved

            if member.isdir():
                extractor.make_dir(member.name, target)
            elif member.issym():
                if not _link_stays_inside(entry, member.linkname, relative_to_entry=True):
                    extractor.skip(member.name, f"symlink target {member.linkname!r} escapes the extraction directory")
                    continue
                extractor.make_symlink(target, member.linkname)
            elif member.islnk():
                if not _link_stays_inside(entry, member.linkname, relative_to_entry=False):
                    extractor.skip(member.name, f"hardlink target {member.linkname!r} escapes the extraction directory")
                    continue
                link_entry = normalize_member_path(member.linkname)
                source = extractor.dest / link_entry if link_entry else None
                if source is None or not source.is_file() or source.is_symlink() or not extractor.contains(source):
                    extractor.skip(member.name, f"hardlink target {member.linkname!r} was not extracted")
                    continue
                extractor.make_hardlink(target, source)
            elif member.isreg():
                file_obj = tf.extractfile(member)
                if file_obj is None:
                    extractor.skip(member.name, "entry has no data")
                    continue
                with file_obj:
                    extractor.write_file(target, file_obj, member.mode)
            else:
                extractor.skip(member.name, "unsupported entry type")


def _extract_zip(extractor: _Extractor) -> None:
    with zipfile.ZipFile(extractor.archive) as zf:
        for info in zf.infolist():
            resolved = extractor.target_for(info.filename)
            if resolved is None:
                continue
            entry, target = resolved

            mode = (info.external_attr >> 16) & 0xFFFF
            if info.is_dir():
                extractor.make_dir(info.filename, target)
            elif stat.S_ISLNK(mode):
                linkname = zf.read(info).decode("utf-8", errors="replace")
                if not _link_stays_inside(entry, linkname, relative_to_entry=True):
                    extractor.skip(info.filename, f"symlink target {linkname!r} escapes the extraction directory")
                    continue
                extractor.make_symlink(target, linkname)
            else:
                with zf.open(info, "r") as src:
                    extractor.write_file(target, src, mode & 0o777)


def extract_archive(archive: str | Path, archive_type: ArchiveType, dest: str | Path) -> int:
    """Extract ``archive`` into ``dest`` and return the number of entries written.

    Entries that would land outside ``dest`` (absolute paths, ``..`` segments,
    links pointing outward, writes through symlinked parents) are skipped with
    a warning. An archive that yields nothing usable raises :class:`ArchiveError`.
    """
    archive_path = Path(archive)
    dest_path = Path(dest)
    dest_path.mkdir(parents=True, exist_ok=True)
    extractor = _Extractor(archive_path, dest_path)

    try:
        if archive_type == ArchiveType.TAR_GZ:
            _extract_tar_gz(extractor)
        elif archive_type == ArchiveType.ZIP:
            _extract_zip(extractor)
        else:
            raise ArchiveError(f"Unsupported archive type {archive_type!r} for {archive_path.name}")
    except (tarfile.TarError, zipfile.BadZipFile, zlib.error, EOFError) as exc:
        raise ArchiveError(f"Unreadable {archive_type.value} archive {archive_path.name}: {exc}") from exc
    except OSError as exc:
        # gzip.BadGzipFile and read failures on the archive itself.
        raise ArchiveError(f"Unreadable {archive_type.value} archive {archive_path.name}: {exc}") from exc

    if extractor.extracted == 0:
        raise ArchiveError(
            f"Archive {archive_path.name} contained no extractable entries ({extractor.skipped} skipped)"
        )
    logger.debug("Extracted %d entries from %s (%d skipped)", extractor.extracted, archive_path.name, extractor.skipped)
    return extractor.extracted


def find_java_executable(home: Path) -> Path | None:
    for name in _JAVA_EXECUTABLES:
        candidate = home / "bin" / name
        if candidate.is_file() and os.access(candidate, os.X_OK):
            return candidate
    return None


def locate_jdk_root(unpack_dir: str | Path, *, macos: bool = False) -> Path:
    """Find the directory that acts as ``JAVA_HOME`` inside a freshly extracted archive.

    Dot-named entries are ignored. A single top-level entry is descended into,
    and on macOS a ``Contents/Home`` bundle path is followed when present.
    """
    root = Path(unpack_dir)
    try:
        entries = [entry for entry in root.iterdir() if not entry.name.startswith(".")]
    except OSError as exc:
        raise FilesystemError("Could not read JDK unpack directory", root) from exc

    base_dir = entries[0] if len(entries) == 1 else root
    candidate = base_dir
    if macos and (base_dir / MACOS_BUNDLE_HOME).is_dir():
        candidate = base_dir / MACOS_BUNDLE_HOME

    if find_java_executable(candidate) is None:
        raise ArchiveError(f"Could not find an executable bin/java in {root}, tried {candidate}")
    return candidate
