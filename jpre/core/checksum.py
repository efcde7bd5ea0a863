from __future__ import annotations

import hashlib
import re
from typing import BinaryIO

from jpre.core.errors import ChecksumMismatchError

SUPPORTED_ALGORITHMS = {"sha256": 64, "sha512": 128}

_HEX_PATTERNS = {
    algorithm: re.compile(rf"\b([A-Fa-f0-9]{{{length}}})\b") for algorithm, length in SUPPORTED_ALGORITHMS.items()
}


def parse_checksum_text(text: str, algorithm: str = "sha256") -> str | None:
    """Return the first hex digest found in a checksum file body.

    Accepts ``<hex>  filename`` (coreutils), ``SHA256 (filename) = <hex>`` (BSD)
    and a bare digest.
    """
    pattern = _HEX_PATTERNS.get(algorithm.lower().strip())
    if pattern is None:
        raise ValueError(f"unsupported checksum algorithm: {algorithm}")
    for raw in (text or "").splitlines():
        line = raw.strip()
        if not line:
            continue
        match = pattern.search(line)
        if match:
            return match.group(1).lower()
    return None


class ChecksumVerifier:
    """Hashes bytes on their way into ``sink`` and checks the digest at the end."""

    def __init__(self, expected_hex: str, algorithm: str, sink: BinaryIO) -> None:
        algo = (algorithm or "").lower().strip()
        if algo not in SUPPORTED_ALGORITHMS:
            raise ValueError(f"unsupported checksum algorithm: {algorithm}")
        expected = (expected_hex or "").strip().lower()
        if len(expected) != SUPPORTED_ALGORITHMS[algo] or not re.fullmatch(r"[0-9a-f]+", expected):
            raise ValueError(f"malformed {algo} checksum: {expected_hex!r}")
        self.algorithm = algo
        self.expected = expected
        self._hasher = hashlib.new(algo)
        self._sink = sink
        self.bytes_written = 0

    def write(self, chunk: bytes) -> int:
        self._hasher.update(chunk)
        written = self._sink.write(chunk)
        self.bytes_written += len(chunk)
        return len(chunk) if written is None else written

    @property
    def hexdigest(self) -> str:
        return self._hasher.hexdigest()

    def verify(self, source: str = "download") -> None:
        actual = self.hexdigest
        if actual != self.expected:
            raise ChecksumMismatchError(source, self.expected, actual)
