import hashlib
import io

import pytest

from jpre.core.checksum import ChecksumVerifier, parse_checksum_text
from jpre.core.errors import ChecksumMismatchError


def test_verifier_passes_bytes_through_and_accepts_matching_digest() -> None:
    payload = b"jdk archive bytes" * 100
    sink = io.BytesIO()
    verifier = ChecksumVerifier(hashlib.sha256(payload).hexdigest().upper(), "SHA256", sink)

    for start in range(0, len(payload), 7):
        verifier.write(payload[start : start + 7])
    verifier.verify()

    assert sink.getvalue() == payload
    assert verifier.bytes_written == len(payload)


def test_verifier_supports_sha512() -> None:
    payload = b"abc"
    verifier = ChecksumVerifier(hashlib.sha512(payload).hexdigest(), "sha512", io.BytesIO())
    verifier.write(payload)
    verifier.verify()


def test_single_corrupted_byte_fails_verification() -> None:
    payload = bytearray(b"x" * 4096)
    expected = hashlib.sha256(bytes(payload)).hexdigest()
    payload[1000] ^= 0x01

    verifier = ChecksumVerifier(expected, "sha256", io.BytesIO())
    verifier.write(bytes(payload))

    with pytest.raises(ChecksumMismatchError) as excinfo:
        verifier.verify(source="https://example.test/jdk.tar.gz")

    assert excinfo.value.expected == expected
    assert excinfo.value.actual == hashlib.sha256(bytes(payload)).hexdigest()
    assert "https://example.test/jdk.tar.gz" in str(excinfo.value)


def test_unsupported_or_malformed_checksums_are_rejected() -> None:
    with pytest.raises(ValueError):
        ChecksumVerifier("00" * 16, "md5", io.BytesIO())
    with pytest.raises(ValueError):
        ChecksumVerifier("abc", "sha256", io.BytesIO())
    with pytest.raises(ValueError):
        ChecksumVerifier("zz" * 32, "sha256", io.BytesIO())


def test_parse_checksum_text_accepts_common_formats() -> None:
    digest = "a" * 64
    assert parse_checksum_text(f"{digest}  OpenJDK17U-jdk_x64_linux.tar.gz\n") == digest
    assert parse_checksum_text(f"SHA256 (jdk.tar.gz) = {digest.upper()}") == digest
    assert parse_checksum_text(f"\n\n{digest}\n") == digest
    assert parse_checksum_text("not a checksum") is None
