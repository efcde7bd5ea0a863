"""Local JDK installs."""

from jpre.jdks.archive import extract_archive, locate_jdk_root
from jpre.jdks.download import HttpDownloader
from jpre.jdks.manager import MARKER_FILENAME, JdkManager, UpdateCheck

__all__ = [
    "MARKER_FILENAME",
    "HttpDownloader",
    "JdkManager",
    "UpdateCheck",
    "extract_archive",
    "locate_jdk_root",
]
