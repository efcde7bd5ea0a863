import io
import stat
import tarfile
import zipfile
from pathlib import Path

import pytest

from jpre.core.errors import ArchiveError
from jpre.index.models import ArchiveType
from jpre.jdks.archive import extract_archive, locate_jdk_root, normalize_member_path

JAVA_SCRIPT = b"#!/bin/sh\necho 'openjdk version \"17.0.2\"'\n"


def _file(name: str, data: bytes, mode: int = 0o644) -> tuple[tarfile.TarInfo, bytes]:
    info = tarfile.TarInfo(name)
    info.size = len(data)
    info.mode = mode
    return info, data


def _dir(name: str) -> tuple[tarfile.TarInfo, None]:
    info = tarfile.TarInfo(name)
    info.type = tarfile.DIRTYPE
    info.mode = 0o755
    return info, None


def _link(name: str, target: str, *, hard: bool = False) -> tuple[tarfile.TarInfo, None]:
    info = tarfile.TarInfo(name)
    info.type = tarfile.LNKTYPE if hard else tarfile.SYMTYPE
    info.linkname = target
    return info, None


def _write_tar(path: Path, entries: list) -> Path:
    with tarfile.open(path, "w:gz") as tf:
        for info, data in entries:
            tf.addfile(info, io.BytesIO(data) if data is not None else None)
    return path


def _jdk_entries(top: str = "jdk-17.0.2+8") -> list:
    return [
        _dir(f"{top}/"),
        _dir(f"{top}/bin/"),
        _file(f"{top}/bin/java", JAVA_SCRIPT, mode=0o755),
        _file(f"{top}/release", b'JAVA_VERSION="17.0.2"\n'),
    ]


def test_normalize_member_path() -> None:
    assert normalize_member_path("./jdk/bin/java") == "jdk/bin/java"
    assert normalize_member_path("jdk//bin/./java") == "jdk/bin/java"
    assert normalize_member_path("jdk\\bin\\java.exe") == "jdk/bin/java.exe"
    assert normalize_member_path("./") == ""
    assert normalize_member_path("/etc/passwd") is None
    assert normalize_member_path("C:/Windows/system32") is None
    assert normalize_member_path("jdk/../../etc/passwd") is None


def test_extracts_tar_gz_and_keeps_executable_bit(tmp_path: Path) -> None:
    archive = _write_tar(tmp_path / "jdk.tar.gz", _jdk_entries())
    dest = tmp_path / "out"

    count = extract_archive(archive, ArchiveType.TAR_GZ, dest)

    java = dest / "jdk-17.0.2+8" / "bin" / "java"
    assert count == 4
    assert java.read_bytes() == JAVA_SCRIPT
    assert java.stat().st_mode & stat.S_IXUSR


def test_traversal_and_absolute_entries_are_skipped(tmp_path: Path) -> None:
    entries = _jdk_entries() + [
        _file("../../escaped.txt", b"nope"),
        _file("jdk-17.0.2+8/../../escaped2.txt", b"nope"),
        _file("/tmp/jpre-absolute.txt", b"nope"),
    ]
    archive = _write_tar(tmp_path / "jdk.tar.gz", entries)
    dest = tmp_path / "a" / "b" / "out"

    count = extract_archive(archive, ArchiveType.TAR_GZ, dest)

    assert count == 4
    assert not (tmp_path / "escaped.txt").exists()
    assert not (tmp_path / "a" / "escaped2.txt").exists()
    assert sorted(p.name for p in dest.iterdir()) == ["jdk-17.0.2+8"]


def test_links_pointing_outside_are_skipped(tmp_path: Path) -> None:
    outside = tmp_path / "outside"
    outside.mkdir()
    entries = _jdk_entries() + [
        _link("jdk-17.0.2+8/lib/evil", "../../../outside"),
        _link("jdk-17.0.2+8/abs", "/etc/passwd"),
        _link("jdk-17.0.2+8/hard", "../outside/secret", hard=True),
        _link("jdk-17.0.2+8/bin/javaw", "java"),
    ]
    archive = _write_tar(tmp_path / "jdk.tar.gz", entries)
    dest = tmp_path / "out"

    extract_archive(archive, ArchiveType.TAR_GZ, dest)

    home = dest / "jdk-17.0.2+8"
    assert not (home / "lib" / "evil").is_symlink()
    assert not (home / "abs").is_symlink()
    assert not (home / "hard").exists()
    assert (home / "bin" / "javaw").is_symlink()


def test_writes_through_symlinked_parent_are_skipped(tmp_path: Path) -> None:
    outside = tmp_path / "outside"
    outside.mkdir()
    entries = _jdk_entries() + [
        _link("jdk-17.0.2+8/conf", "bin"),
        _file("jdk-17.0.2+8/conf/payload", b"nope"),
    ]
    archive = _write_tar(tmp_path / "jdk.tar.gz", entries)
    dest = tmp_path / "out"

    extract_archive(archive, ArchiveType.TAR_GZ, dest)

    assert not (dest / "jdk-17.0.2+8" / "bin" / "payload").exists()


def test_hardlink_inside_archive_is_created(tmp_path: Path) -> None:
    entries = _jdk_entries() + [_link("jdk-17.0.2+8/bin/java2", "jdk-17.0.2+8/bin/java", hard=True)]
    archive = _write_tar(tmp_path / "jdk.tar.gz", entries)
    dest = tmp_path / "out"

    extract_archive(archive, ArchiveType.TAR_GZ, dest)

    assert (dest / "jdk-17.0.2+8" / "bin" / "java2").read_bytes() == JAVA_SCRIPT


def test_extracts_zip_archives(tmp_path: Path) -> None:
    archive = tmp_path / "jdk.zip"
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr("jdk-17/bin/", "")
        info = zipfile.ZipInfo("jdk-17/bin/java")
        info.external_attr = (stat.S_IFREG | 0o755) << 16
        zf.writestr(info, JAVA_SCRIPT)
        zf.writestr("../escaped.txt", "nope")
    dest = tmp_path / "out"

    extract_archive(archive, ArchiveType.ZIP, dest)

    java = dest / "jdk-17" / "bin" / "java"
    assert java.read_bytes() == JAVA_SCRIPT
    assert java.stat().st_mode & stat.S_IXUSR
    assert not (tmp_path / "escaped.txt").exists()


def test_corrupt_or_empty_archives_raise(tmp_path: Path) -> None:
    garbage = tmp_path / "garbage.tar.gz"
    garbage.write_bytes(b"definitely not gzip")
    with pytest.raises(ArchiveError):
        extract_archive(garbage, ArchiveType.TAR_GZ, tmp_path / "out1")

    only_unsafe = _write_tar(tmp_path / "unsafe.tar.gz", [_file("../x", b"x")])
    with pytest.raises(ArchiveError):
        extract_archive(only_unsafe, ArchiveType.TAR_GZ, tmp_path / "out2")

    bad_zip = tmp_path / "bad.zip"
    bad_zip.write_bytes(b"PK not really")
    with pytest.raises(ArchiveError):
        extract_archive(bad_zip, ArchiveType.ZIP, tmp_path / "out3")


def _make_home(home: Path) -> Path:
    (home / "bin").mkdir(parents=True)
    java = home / "bin" / "java"
    java.write_bytes(JAVA_SCRIPT)
    java.chmod(0o755)
    return home


def test_locate_root_descends_into_single_entry_and_ignores_dot_entries(tmp_path: Path) -> None:
    home = _make_home(tmp_path / "jdk-17.0.2+8")
    (tmp_path / "._jdk-17.0.2+8").write_text("resource fork")

    assert locate_jdk_root(tmp_path) == home


def test_locate_root_uses_unpack_dir_for_flat_archives(tmp_path: Path) -> None:
    _make_home(tmp_path)
    (tmp_path / "lib").mkdir()

    assert locate_jdk_root(tmp_path) == tmp_path


def test_locate_root_follows_macos_bundle(tmp_path: Path) -> None:
    bundle_home = _make_home(tmp_path / "jdk-17.jdk" / "Contents" / "Home")

    assert locate_jdk_root(tmp_path, macos=True) == bundle_home
    with pytest.raises(ArchiveError):
        locate_jdk_root(tmp_path, macos=False)


def test_locate_root_requires_executable_java(tmp_path: Path) -> None:
    home = tmp_path / "jdk"
    (home / "bin").mkdir(parents=True)
    (home / "bin" / "java").write_text("not executable")
    (home / "bin" / "java").chmod(0o644)

    with pytest.raises(ArchiveError):
        locate_jdk_root(tmp_path)
