"""Unit tests for checksum validation module."""

import hashlib
import io

import pytest

from ipfs_registry.cache.validation import (
    ChecksumMismatchError,
    checksums_match,
    compute_checksum,
    normalize_checksum,
    verify_checksum,
)

HELLO_SHA256 = "dffd6021bb2bd5b0af676290809ec3a53191dd81c7f70a4b28688a362182986f"


class TestChecksumComputation:
    """Test checksum computation functions."""

    def test_compute_sha256_from_stream(self):
        """Test SHA256 checksum of a stream."""
        checksum = compute_checksum(io.BytesIO(b"Hello, World!"))
        assert checksum == HELLO_SHA256

    def test_compute_checksum_across_chunks(self):
        """Test that chunked reads hash the whole stream."""
        data = b"X" * (3 * 64 * 1024 + 17)
        expected = hashlib.sha256(data).hexdigest()

        assert compute_checksum(io.BytesIO(data)) == expected
        assert compute_checksum(io.BytesIO(data), chunk_size=7) == expected

    def test_compute_checksum_starts_at_current_position(self):
        """Test that hashing reads from the stream's current position."""
        stream = io.BytesIO(b"skipHello, World!")
        stream.seek(4)

        assert compute_checksum(stream) == HELLO_SHA256

    def test_compute_checksum_empty_stream(self):
        """Test checksum of empty content."""
        assert compute_checksum(io.BytesIO(b"")) == hashlib.sha256(b"").hexdigest()


class TestChecksumNormalization:
    """Test checksum normalization and comparison."""

    def test_normalize_lowercases_and_strips(self):
        """Test that case and surrounding whitespace are normalized."""
        assert normalize_checksum(f"  {HELLO_SHA256.upper()}\n") == HELLO_SHA256

    @pytest.mark.parametrize(
        "value",
        ["", "abc", "g" * 64, HELLO_SHA256 + "0", "sha256:" + HELLO_SHA256],
    )
    def test_normalize_rejects_invalid(self, value):
        """Test that non-sha256 values are rejected."""
        with pytest.raises(ValueError, match="Invalid sha256 checksum"):
            normalize_checksum(value)

    def test_checksums_match_case_insensitive(self):
        """Test that comparison ignores hex case."""
        assert checksums_match(HELLO_SHA256, HELLO_SHA256.upper()) is True
        assert checksums_match(HELLO_SHA256, "0" * 64) is False


class TestChecksumVerification:
    """Test checksum verification."""

    def test_verify_checksum_success(self):
        """Test verification returns the computed digest."""
        result = verify_checksum(io.BytesIO(b"Hello, World!"), HELLO_SHA256, "hello")
        assert result == HELLO_SHA256

    def test_verify_checksum_mismatch(self):
        """Test verification failure names the artifact."""
        with pytest.raises(ChecksumMismatchError, match="checksum of `hello v1`"):
            verify_checksum(io.BytesIO(b"Hello, World!"), "0" * 64, "hello v1")
