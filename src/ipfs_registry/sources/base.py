"""Registry data source interface.

Every registry backend (local directory, IPFS, ...) implements RegistryData so
that callers can index, load, and download packages without knowing where the
bytes come from.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from ipfs_registry.cache.store import LockedFile
from ipfs_registry.package import PackageId


class RegistryError(Exception):
    """Raised when a registry cannot serve an index or package."""

    pass


@dataclass(frozen=True)
class RegistryConfig:
    """Remote API configuration advertised by a registry.

    Attributes:
        dl: Download URL template
        api: Base URL of the registry web API, if any
    """

    dl: str
    api: Optional[str] = None


class RegistryData(ABC):
    """Abstract base class for registry data sources."""

    @abstractmethod
    def index_path(self) -> Path:
        """Local directory holding the registry index."""
        pass

    @abstractmethod
    def load(self, root: Path, path: Path, data: Callable[[bytes], None]) -> None:
        """Read an index file and pass its bytes to ``data``.

        Args:
            root: Index root directory
            path: File path relative to root
            data: Callback receiving the file content
        """
        pass

    @abstractmethod
    def config(self) -> Optional[RegistryConfig]:
        """Remote API configuration, or None if the registry has none."""
        pass

    @abstractmethod
    def update_index(self) -> None:
        """Bring the local index up to date."""
        pass

    @abstractmethod
    def download(self, pkg: PackageId, checksum: str) -> LockedFile:
        """Return a verified, locked handle to a package artifact.

        Args:
            pkg: Package to download
            checksum: Expected hex sha256 of the artifact

        Returns:
            LockedFile positioned at offset zero
        """
        pass
