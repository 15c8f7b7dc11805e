"""Cache configuration management."""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

DEFAULT_CACHE_DIR = Path.home() / ".ipfs_registry"


def _env_flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class CacheConfig:
    """Configuration for the registry cache and content fetcher.

    Attributes:
        cache_dir: Root directory for cache storage. Each registry gets its own
            cache_dir/{registry_name} subdirectory.
        fetch_command: Executable used to retrieve content from IPFS
        lock_timeout: Seconds to wait for a slot lock (-1 waits forever)
        chunk_size: Bytes read per chunk while hashing
        check_fetch_status: If True, a failed fetch truncates the slot and
            raises; if False, the failure is logged and the checksum step
            decides
        verify_cached: If True, re-hash cached artifacts on every cache hit
    """

    cache_dir: Path = DEFAULT_CACHE_DIR
    fetch_command: str = "ipget"
    lock_timeout: float = 300.0
    chunk_size: int = 64 * 1024
    check_fetch_status: bool = True
    verify_cached: bool = False

    def __post_init__(self):
        """Ensure cache_dir is an expanded Path object."""
        if self.cache_dir is None:
            self.cache_dir = DEFAULT_CACHE_DIR
        self.cache_dir = Path(self.cache_dir).expanduser()
        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")

    def registry_root(self, name: str) -> Path:
        """Cache root for a named registry."""
        return self.cache_dir / name

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "CacheConfig":
        """Load configuration from file.

        Args:
            config_path: Path to config file. If None, uses default location.

        Returns:
            CacheConfig instance
        """
        if config_path is None:
            config_path = DEFAULT_CACHE_DIR / "config.json"

        if not config_path.exists():
            return cls()

        with open(config_path, "r") as f:
            data = json.load(f)

        if "cache_dir" in data:
            data["cache_dir"] = Path(data["cache_dir"])

        return cls(**data)

    def save(self, config_path: Optional[Path] = None) -> None:
        """Save configuration to file.

        Args:
            config_path: Path to config file. If None, uses default location.
        """
        if config_path is None:
            config_path = self.cache_dir / "config.json"

        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "cache_dir": str(self.cache_dir),
            "fetch_command": self.fetch_command,
            "lock_timeout": self.lock_timeout,
            "chunk_size": self.chunk_size,
            "check_fetch_status": self.check_fetch_status,
            "verify_cached": self.verify_cached,
        }

        with open(config_path, "w") as f:
            json.dump(data, f, indent=2)

    @classmethod
    def from_env(cls) -> "CacheConfig":
        """Create configuration from environment variables.

        Environment variables:
            IPFS_REGISTRY_CACHE_DIR: Cache directory path
            IPFS_REGISTRY_FETCH_COMMAND: Fetch executable
            IPFS_REGISTRY_LOCK_TIMEOUT: Lock timeout in seconds
            IPFS_REGISTRY_CHECK_FETCH_STATUS: Fail fast on fetch errors (true/false)
            IPFS_REGISTRY_VERIFY_CACHED: Re-hash on cache hits (true/false)

        Returns:
            CacheConfig instance
        """
        config = cls()

        if os.getenv("IPFS_REGISTRY_CACHE_DIR"):
            config.cache_dir = Path(os.getenv("IPFS_REGISTRY_CACHE_DIR")).expanduser()

        if os.getenv("IPFS_REGISTRY_FETCH_COMMAND"):
            config.fetch_command = os.getenv("IPFS_REGISTRY_FETCH_COMMAND")

        if os.getenv("IPFS_REGISTRY_LOCK_TIMEOUT"):
            config.lock_timeout = float(os.getenv("IPFS_REGISTRY_LOCK_TIMEOUT"))

        if os.getenv("IPFS_REGISTRY_CHECK_FETCH_STATUS"):
            config.check_fetch_status = _env_flag(
                os.getenv("IPFS_REGISTRY_CHECK_FETCH_STATUS", "")
            )

        if os.getenv("IPFS_REGISTRY_VERIFY_CACHED"):
            config.verify_cached = _env_flag(os.getenv("IPFS_REGISTRY_VERIFY_CACHED", ""))

        return config


# Global cache configuration instance
_global_config: Optional[CacheConfig] = None


def get_global_config() -> CacheConfig:
    """Get global cache configuration.

    A config file at the default location wins over the environment.

    Returns:
        Global CacheConfig instance
    """
    global _global_config
    if _global_config is None:
        config_path = DEFAULT_CACHE_DIR / "config.json"
        if config_path.exists():
            _global_config = CacheConfig.load(config_path)
        else:
            _global_config = CacheConfig.from_env()
    return _global_config


def set_global_config(config: Optional[CacheConfig]) -> None:
    """Set global cache configuration.

    Args:
        config: CacheConfig instance to use globally, or None to reset
    """
    global _global_config
    _global_config = config
