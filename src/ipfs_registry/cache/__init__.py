"""Local on-disk cache for registry artifacts.

Key components:
- CacheStore: Locked slot access under a registry cache root
- CacheConfig: Configuration management
- CacheMetadata: Verified-digest ledger and statistics
- validation: Streaming SHA-256 checksum verification
"""

from ipfs_registry.cache.config import CacheConfig
from ipfs_registry.cache.metadata import CacheMetadata
from ipfs_registry.cache.store import (
    CacheError,
    CacheLockError,
    CachePermissionError,
    CacheStore,
    LockedFile,
    SlotNotFoundError,
)
from ipfs_registry.cache.validation import (
    CacheValidationError,
    ChecksumMismatchError,
)

__all__ = [
    "CacheStore",
    "CacheConfig",
    "CacheMetadata",
    "LockedFile",
    "CacheError",
    "CachePermissionError",
    "CacheLockError",
    "SlotNotFoundError",
    "CacheValidationError",
    "ChecksumMismatchError",
]
