"""Cache metadata management."""

import json
import logging
import os
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

from filelock import FileLock

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "1.0"


def _is_valid(data: Any) -> bool:
    return (
        isinstance(data, dict)
        and isinstance(data.get("items"), dict)
        and isinstance(data.get("stats"), dict)
    )


class CacheMetadata:
    """Manages cache metadata for a registry cache root.

    The metadata file (.cache_meta.json) tracks:
    - Registry information (name)
    - Per-artifact verification records (checksum, size, timestamps)
    - Cache statistics (hits, misses, fetches, checksum failures)

    The file is advisory: artifacts on disk remain the source of truth for
    whether a slot is populated. Every change re-reads the file under
    ``.locks/.cache_meta.lock`` so concurrent processes do not drop each
    other's updates.
    """

    def __init__(self, cache_dir: Path, registry_name: str, lock_timeout: float = 30.0):
        """Initialize cache metadata manager.

        Args:
            cache_dir: Directory where cache metadata is stored
            registry_name: Name of the registry owning the cache
            lock_timeout: Seconds to wait for the metadata lock
        """
        self.cache_dir = Path(cache_dir)
        self.registry_name = registry_name
        self.meta_path = self.cache_dir / ".cache_meta.json"
        self.lock_path = self.cache_dir / ".locks" / ".cache_meta.lock"
        self.lock_timeout = lock_timeout
        self._data: Dict[str, Any] = {}
        self._load()

    def _load(self) -> None:
        """Load metadata from file or create new."""
        if not self.meta_path.exists():
            self._initialize_new()
            return

        try:
            with open(self.meta_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (ValueError, OSError) as e:
            # Corrupted metadata, start fresh
            logger.warning(f"Discarding unreadable cache metadata {self.meta_path}: {e}")
            self._initialize_new()
            return

        if not _is_valid(data):
            logger.warning(f"Discarding malformed cache metadata {self.meta_path}")
            self._initialize_new()
            return

        self._data = data

    def _initialize_new(self) -> None:
        """Initialize new metadata structure."""
        self._data = {
            "schema_version": SCHEMA_VERSION,
            "registry_name": self.registry_name,
            "created_at": datetime.now(timezone.utc).isoformat(),
            "items": {},
            "stats": {
                "cache_hits": 0,
                "cache_misses": 0,
                "fetches": 0,
                "checksum_failures": 0,
            },
        }

    def save(self) -> None:
        """Save metadata to file, replacing it atomically."""
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        temp_path = self.meta_path.with_suffix(f".{os.getpid()}.tmp")
        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(self._data, f, indent=2)
        os.replace(temp_path, self.meta_path)

    @contextmanager
    def _update(self) -> Iterator[Dict[str, Any]]:
        """Re-read the file under the metadata lock, yield it, then save."""
        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        with FileLock(self.lock_path, timeout=self.lock_timeout):
            self._load()
            yield self._data
            self.save()

    def get_item(self, filename: str) -> Optional[Dict[str, Any]]:
        """Get metadata for an artifact.

        Args:
            filename: Artifact filename

        Returns:
            Item metadata dict or None if never verified
        """
        self._load()
        item = self._data["items"].get(filename)
        return item if isinstance(item, dict) else None

    def set_item(self, filename: str, checksum: str, size_bytes: int) -> None:
        """Record a verified artifact.

        Args:
            filename: Artifact filename
            checksum: Verified hex digest
            size_bytes: Size of cached file
        """
        now = datetime.now(timezone.utc).isoformat()

        with self._update() as data:
            item = data["items"].get(filename)
            if not isinstance(item, dict):
                item = {"access_count": 0}
            item.update(
                {
                    "checksum": checksum,
                    "size_bytes": size_bytes,
                    "cached_at": now,
                    "last_accessed": now,
                }
            )
            data["items"][filename] = item

    def update_access(self, filename: str) -> None:
        """Update access statistics for an artifact.

        Args:
            filename: Artifact filename
        """
        with self._update() as data:
            item = data["items"].get(filename)
            if isinstance(item, dict):
                item["access_count"] = item.get("access_count", 0) + 1
                item["last_accessed"] = datetime.now(timezone.utc).isoformat()

    def remove_item(self, filename: str) -> None:
        """Remove an artifact record.

        Args:
            filename: Artifact filename
        """
        with self._update() as data:
            data["items"].pop(filename, None)

    def _bump(self, key: str) -> None:
        with self._update() as data:
            data["stats"][key] = data["stats"].get(key, 0) + 1

    def record_cache_hit(self) -> None:
        """Record a cache hit in statistics."""
        self._bump("cache_hits")

    def record_cache_miss(self) -> None:
        """Record a cache miss in statistics."""
        self._bump("cache_misses")

    def record_fetch(self) -> None:
        """Record an invocation of the content fetcher."""
        self._bump("fetches")

    def record_checksum_failure(self) -> None:
        """Record a failed checksum verification."""
        self._bump("checksum_failures")

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics.

        Returns:
            Statistics dict with cache metrics
        """
        self._load()
        stats = self._data["stats"].copy()
        items = [item for item in self._data["items"].values() if isinstance(item, dict)]
        stats["total_items"] = len(items)
        stats["total_size_bytes"] = sum(item.get("size_bytes", 0) for item in items)
        return stats
