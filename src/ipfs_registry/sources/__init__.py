"""Registry data sources.

This module provides the RegistryData interface and its local and IPFS
implementations.
"""

from ipfs_registry.sources.base import RegistryConfig, RegistryData, RegistryError
from ipfs_registry.sources.ipfs import IpfsRegistry
from ipfs_registry.sources.local import LocalRegistry

__all__ = [
    "RegistryData",
    "RegistryConfig",
    "RegistryError",
    "LocalRegistry",
    "IpfsRegistry",
]
