"""ipfs_registry: Cached, checksum-verified package downloads from IPFS registries."""

__version__ = "0.1.0"

from ipfs_registry.cache.config import CacheConfig
from ipfs_registry.fetcher import ContentFetcher, FetchError, IpgetFetcher
from ipfs_registry.package import PackageId
from ipfs_registry.sources import IpfsRegistry, LocalRegistry, RegistryData

__all__ = [
    "CacheConfig",
    "ContentFetcher",
    "FetchError",
    "IpfsRegistry",
    "IpgetFetcher",
    "LocalRegistry",
    "PackageId",
    "RegistryData",
    "__version__",
]
