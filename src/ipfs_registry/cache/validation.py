"""Checksum verification for cached artifacts."""

import hashlib
import re
from typing import BinaryIO

CHUNK_SIZE = 64 * 1024

_SHA256_HEX = re.compile(r"^[0-9a-f]{64}$")


class CacheValidationError(Exception):
    """Base exception for cache validation errors."""

    pass


class ChecksumMismatchError(CacheValidationError):
    """Raised when checksum validation fails."""

    pass


def normalize_checksum(checksum: str) -> str:
    """Normalize a hex SHA-256 checksum for comparison.

    Args:
        checksum: Hex digest, any case, optional surrounding whitespace

    Returns:
        Lower-case hex digest

    Raises:
        ValueError: If the value is not a 64 character hex string
    """
    normalized = checksum.strip().lower()
    if not _SHA256_HEX.match(normalized):
        raise ValueError(f"Invalid sha256 checksum: '{checksum}'")
    return normalized


def compute_checksum(stream: BinaryIO, chunk_size: int = CHUNK_SIZE) -> str:
    """Compute the SHA-256 digest of a stream from its current position.

    The stream is read in fixed-size chunks until end of stream.

    Args:
        stream: Binary file-like object
        chunk_size: Bytes per read

    Returns:
        Lower-case hex digest
    """
    hasher = hashlib.sha256()
    while chunk := stream.read(chunk_size):
        hasher.update(chunk)
    return hasher.hexdigest()


def checksums_match(actual: str, expected: str) -> bool:
    """Compare two hex digests after normalization."""
    return normalize_checksum(actual) == normalize_checksum(expected)


def verify_checksum(
    stream: BinaryIO,
    expected_checksum: str,
    label: str,
    chunk_size: int = CHUNK_SIZE,
) -> str:
    """Verify that a stream hashes to the expected checksum.

    Args:
        stream: Binary file-like object, read from its current position
        expected_checksum: Expected hex digest
        label: Human-readable name used in the error message
        chunk_size: Bytes per read

    Returns:
        The computed (normalized) digest

    Raises:
        ChecksumMismatchError: If the digests differ
    """
    actual = compute_checksum(stream, chunk_size)
    if not checksums_match(actual, expected_checksum):
        raise ChecksumMismatchError(
            f"failed to verify the checksum of `{label}`: "
            f"expected {normalize_checksum(expected_checksum)}, got {actual}"
        )
    return actual
