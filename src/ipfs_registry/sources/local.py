"""Registry backed by a plain local directory."""

import logging
from pathlib import Path
from typing import Callable, Optional, Union

from ipfs_registry.cache.store import CacheStore, LockedFile, SlotNotFoundError
from ipfs_registry.cache.validation import CHUNK_SIZE, normalize_checksum, verify_checksum
from ipfs_registry.package import PackageId
from ipfs_registry.shell import Shell
from ipfs_registry.sources.base import RegistryConfig, RegistryData, RegistryError

logger = logging.getLogger(__name__)


class LocalRegistry(RegistryData):
    """A registry whose index and artifacts already live on local disk.

    Layout::

        root/
            index/                  # registry index
            <name>-<version>.crate  # artifacts
    """

    def __init__(
        self,
        root: Union[str, Path],
        name: str,
        shell: Optional[Shell] = None,
        lock_timeout: float = 300.0,
        chunk_size: int = CHUNK_SIZE,
    ):
        self.root = Path(root)
        self.name = name
        self.shell = shell or Shell()
        self.chunk_size = chunk_size
        self.store = CacheStore(self.root, lock_timeout=lock_timeout)
        self._index_path = self.root / "index"

    def index_path(self) -> Path:
        return self._index_path

    def load(self, root: Path, path: Path, data: Callable[[bytes], None]) -> None:
        file_path = Path(root) / path
        try:
            content = file_path.read_bytes()
        except FileNotFoundError as e:
            raise RegistryError(f"failed to read `{file_path}`: file not found") from e
        except OSError as e:
            raise RegistryError(f"failed to read `{file_path}`: {e}") from e
        data(content)

    def config(self) -> Optional[RegistryConfig]:
        # Local registries have no remote API
        return None

    def update_index(self) -> None:
        """Check that the index directory is present.

        Local registries are never updated, only validated.

        Raises:
            RegistryError: If the index path is not a directory
        """
        if not self._index_path.is_dir():
            raise RegistryError(
                f"local registry path is not a directory: {self._index_path}"
            )
        logger.debug(f"Index for registry '{self.name}' found at {self._index_path}")

    def download(self, pkg: PackageId, checksum: str) -> LockedFile:
        expected = normalize_checksum(checksum)
        try:
            crate = self.store.open_ro(pkg.filename, pkg.filename)
        except SlotNotFoundError as e:
            raise RegistryError(
                f"crate {pkg} not found in local registry at {self.root}"
            ) from e

        self.shell.status("Unpacking", pkg)
        try:
            verify_checksum(crate, expected, str(pkg), self.chunk_size)
            crate.seek(0)
        except Exception:
            crate.close()
            raise
        return crate
