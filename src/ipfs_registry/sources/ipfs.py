"""Registry that retrieves its index and artifacts from IPFS."""

import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from ipfs_registry.cache.config import CacheConfig, get_global_config
from ipfs_registry.cache.metadata import CacheMetadata
from ipfs_registry.cache.store import CacheStore, LockedFile, SlotNotFoundError
from ipfs_registry.cache.validation import (
    ChecksumMismatchError,
    normalize_checksum,
    verify_checksum,
)
from ipfs_registry.fetcher import ContentFetcher, FetchError, IpgetFetcher, join_remote
from ipfs_registry.package import PackageId
from ipfs_registry.shell import Shell
from ipfs_registry.sources.base import RegistryConfig, RegistryData
from ipfs_registry.sources.local import LocalRegistry

logger = logging.getLogger(__name__)


class IpfsRegistry(RegistryData):
    """Registry data source backed by content on IPFS.

    Artifacts are fetched into a per-registry cache directory, verified against
    the caller's sha256 checksum, and served from disk afterwards. The index is
    fetched into ``<cache root>/index`` and validated by a LocalRegistry over the
    same directory.

    A non-empty cached artifact is trusted without re-hashing unless
    ``CacheConfig.verify_cached`` is set. A slot that fails verification stays on
    disk until evicted.

    Examples:
        >>> registry = IpfsRegistry("/ipfs/QmRoot", "my-registry")
        >>> registry.update_index()
        >>> with registry.download(PackageId("serde", "1.0.0"), checksum) as crate:
        ...     data = crate.read()
    """

    def __init__(
        self,
        ipfs_path: str,
        name: str,
        config: Optional[CacheConfig] = None,
        fetcher: Optional[ContentFetcher] = None,
        shell: Optional[Shell] = None,
        local_registry: Optional[LocalRegistry] = None,
    ):
        """Initialize the registry.

        No filesystem access happens here; directories are created on first use.

        Args:
            ipfs_path: Remote content root (e.g. '/ipfs/<cid>' or '/ipns/<name>')
            name: Registry name, used as the cache subdirectory
            config: Cache configuration (uses global if None)
            fetcher: Content fetcher (defaults to ipget)
            shell: Status output
            local_registry: Local data store over the cache root
        """
        self.ipfs_path = ipfs_path
        self.name = name
        self.cache_config = config or get_global_config()
        self.local_root = self.cache_config.registry_root(name)
        self.fetcher = fetcher or IpgetFetcher(self.cache_config.fetch_command)
        self.shell = shell or Shell()
        self.store = CacheStore(self.local_root, lock_timeout=self.cache_config.lock_timeout)
        self.local_registry = local_registry or LocalRegistry(
            self.local_root,
            name,
            shell=self.shell,
            lock_timeout=self.cache_config.lock_timeout,
            chunk_size=self.cache_config.chunk_size,
        )
        self._metadata: Optional[CacheMetadata] = None

    @property
    def metadata(self) -> CacheMetadata:
        if self._metadata is None:
            self._metadata = CacheMetadata(
                self.local_root, self.name, lock_timeout=self.cache_config.lock_timeout
            )
        return self._metadata

    def _record(self, update: str, *args: Any) -> None:
        """Apply a CacheMetadata update by name; failures are logged, never raised."""
        try:
            getattr(self.metadata, update)(*args)
        except Exception as e:
            logger.warning(f"Cache metadata update failed for registry '{self.name}': {e}")

    # ------------------------------------------------------------------
    # Delegated data-source operations
    # ------------------------------------------------------------------

    def index_path(self) -> Path:
        return self.local_registry.index_path()

    def load(self, root: Path, path: Path, data: Callable[[bytes], None]) -> None:
        self.local_registry.load(root, path, data)

    def config(self) -> Optional[RegistryConfig]:
        # IPFS registries don't expose a remote API
        return None

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    def _fetch(
        self,
        remote_id: str,
        destination: Path,
        on_failure: Optional[Callable[[], None]] = None,
    ) -> None:
        """Run the content fetcher, applying the fetch failure policy."""
        self._record("record_fetch")
        try:
            self.fetcher.fetch(remote_id, destination)
        except FetchError as e:
            if not self.cache_config.check_fetch_status:
                logger.warning(f"Ignoring fetch failure for {remote_id}: {e}")
                return
            if on_failure is not None:
                try:
                    on_failure()
                except OSError as cleanup_error:
                    logger.warning(f"Failed to reset {destination}: {cleanup_error}")
            raise

    def update_index(self) -> None:
        """Fetch the index from IPFS, then validate it as a local registry.

        The fetch always runs, even when an index is already present.

        Raises:
            FetchError: If the fetch fails and check_fetch_status is set
            RegistryError: If no valid index directory results
        """
        # TODO: refresh /ipns roots by resolving the name before fetching
        index = self.local_registry.index_path()
        self.store.ensure_root()
        self.shell.status("Updating", f"IPFS index `{self.ipfs_path}`")
        self._fetch(join_remote(self.ipfs_path, "index"), index)
        self.local_registry.update_index()

    def download(self, pkg: PackageId, checksum: str) -> LockedFile:
        """Return a locked handle to a verified artifact, fetching it if needed.

        Args:
            pkg: Package to download
            checksum: Expected hex sha256 (case-insensitive)

        Returns:
            LockedFile positioned at offset zero; the caller closes it

        Raises:
            ValueError: If checksum is not a sha256 hex digest
            ChecksumMismatchError: If the fetched artifact does not match
            FetchError: If the fetch fails and check_fetch_status is set
            CacheError: If the slot cannot be read or written
        """
        expected = normalize_checksum(checksum)
        filename = pkg.filename

        try:
            dst = self.store.open_ro(filename, filename)
        except SlotNotFoundError:
            dst = None
        if dst is not None:
            if dst.size() > 0:
                return self._cache_hit(pkg, dst, expected)
            dst.close()

        dst = self.store.open_rw(filename, filename)
        try:
            # Another process may have filled the slot since open_ro
            if dst.size() > 0:
                return self._cache_hit(pkg, dst, expected)

            self._record("record_cache_miss")
            self.shell.status("Retrieving from IPFS", pkg)
            self._fetch(join_remote(self.ipfs_path, filename), dst.path, dst.discard)

            self.shell.status("Unpacking", pkg)
            dst.reopen()
            try:
                actual = verify_checksum(
                    dst, expected, str(pkg), self.cache_config.chunk_size
                )
            except ChecksumMismatchError as e:
                logger.error(f"{e}; corrupt artifact left at {dst.path}")
                self._record("record_checksum_failure")
                raise

            self._record("set_item", filename, actual, dst.size())
            dst.seek(0)
            return dst
        except BaseException:
            dst.close()
            raise

    def _cache_hit(self, pkg: PackageId, dst: LockedFile, expected: str) -> LockedFile:
        if self.cache_config.verify_cached:
            try:
                verify_checksum(dst, expected, str(pkg), self.cache_config.chunk_size)
                dst.seek(0)
            except BaseException:
                dst.close()
                raise
        self._record("record_cache_hit")
        self._record("update_access", pkg.filename)
        return dst

    # ------------------------------------------------------------------
    # Cache inspection and eviction
    # ------------------------------------------------------------------

    def get_status(self, pkg: PackageId) -> Optional[Dict[str, Any]]:
        """Get cache status for a package.

        Args:
            pkg: Package to inspect

        Returns:
            Status dict, or None if no slot exists
        """
        size = self.store.slot_size(pkg.filename)
        if size is None:
            return None

        item = self.metadata.get_item(pkg.filename) or {}
        return {
            "package": str(pkg),
            "cache_path": str(self.store.path_unlocked(pkg.filename)),
            "size_bytes": size,
            "populated": size > 0,
            "verified_checksum": item.get("checksum"),
            "cached_at": item.get("cached_at"),
            "last_accessed": item.get("last_accessed"),
            "access_count": item.get("access_count", 0),
        }

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics.

        Returns:
            Statistics dict
        """
        stats = self.metadata.get_stats()
        stats["registry"] = self.name
        stats["ipfs_path"] = self.ipfs_path
        stats["cache_dir"] = str(self.local_root)

        total_requests = stats["cache_hits"] + stats["cache_misses"]
        stats["cache_hit_rate"] = (
            stats["cache_hits"] / total_requests if total_requests > 0 else 0.0
        )
        return stats

    def evict(self, pkg: PackageId) -> bool:
        """Remove a package's slot and its metadata record.

        Args:
            pkg: Package to evict

        Returns:
            True if a cached file was removed
        """
        removed = self.store.remove(pkg.filename, pkg.filename)
        self._record("remove_item", pkg.filename)
        if removed:
            logger.info(f"Evicted {pkg} from {self.local_root}")
        return removed
