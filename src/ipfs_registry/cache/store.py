"""Locked on-disk slots for cached registry artifacts."""

import logging
import os
from pathlib import Path
from typing import Optional, Union

from filelock import FileLock, Timeout

logger = logging.getLogger(__name__)


class CacheError(Exception):
    """Base exception for cache-related errors."""

    pass


class CachePermissionError(CacheError):
    """Raised when cache directory permissions are insufficient."""

    pass


class CacheLockError(CacheError):
    """Raised when unable to acquire cache lock."""

    pass


class SlotNotFoundError(CacheError):
    """Raised when a read-only open targets a slot that does not exist."""

    pass


class LockedFile:
    """An open cache slot holding its advisory lock.

    The lock is released when the file is closed. Use as a context manager or
    call close() explicitly.
    """

    def __init__(self, path: Path, lock: FileLock, mode: str, display_name: str):
        self.path = path
        self.display_name = display_name
        self._lock = lock
        self._mode = mode
        self.file = open(path, mode)

    @property
    def closed(self) -> bool:
        return self.file.closed

    def size(self) -> int:
        """Current length of the backing file in bytes."""
        return os.fstat(self.file.fileno()).st_size

    def read(self, size: int = -1) -> bytes:
        try:
            return self.file.read(size)
        except OSError as e:
            raise CacheError(f"failed to read `{self.path}`: {e}") from e

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        return self.file.seek(offset, whence)

    def tell(self) -> int:
        return self.file.tell()

    def discard(self) -> None:
        """Empty the slot on disk so it reads as never fetched."""
        self.file.close()
        with open(self.path, "wb"):
            pass
        self.file = open(self.path, self._mode)

    def reopen(self) -> None:
        """Re-open the backing path from offset zero, keeping the lock.

        External writers may replace the file instead of writing through our
        descriptor, so the handle is refreshed before reading their output.
        """
        self.file.close()
        try:
            self.file = open(self.path, self._mode)
        except OSError as e:
            raise CacheError(f"failed to open `{self.path}`: {e}") from e

    def close(self) -> None:
        """Close the file and release the lock."""
        try:
            if not self.file.closed:
                self.file.close()
        finally:
            if self._lock.is_locked:
                self._lock.release()

    def __enter__(self) -> "LockedFile":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"LockedFile({str(self.path)!r}, mode={self._mode!r})"


class CacheStore:
    """A directory of lockable, named artifact slots.

    Every slot is guarded by an advisory lock file under ``root/.locks``.
    Locks are only honored by processes that also go through a CacheStore.

    Examples:
        >>> store = CacheStore(Path("/tmp/cache/my-registry"))
        >>> with store.open_rw("serde-1.0.0.crate", "serde v1.0.0") as slot:
        ...     slot.size()
        0
    """

    def __init__(self, root: Union[str, Path], lock_timeout: float = 300.0):
        """Initialize cache store.

        Args:
            root: Directory that holds the slots (created lazily)
            lock_timeout: Seconds to wait for a slot lock (-1 waits forever)
        """
        self.root = Path(root)
        self.lock_dir = self.root / ".locks"
        self.lock_timeout = lock_timeout

    def path_unlocked(self, relative_path: Union[str, Path]) -> Path:
        """Absolute path of a slot, without taking its lock."""
        return self.root / relative_path

    def _get_lock_path(self, relative_path: Union[str, Path]) -> Path:
        flat = Path(relative_path).as_posix().replace("/", "_")
        return self.lock_dir / f"{flat}.lock"

    def _ensure_dir(self, path: Path) -> None:
        try:
            path.mkdir(parents=True, exist_ok=True)
        except PermissionError as e:
            raise CachePermissionError(
                f"Cannot create cache directory {path}: {e}"
            ) from e
        except OSError as e:
            raise CacheError(f"Cannot create cache directory {path}: {e}") from e

    def ensure_root(self) -> Path:
        """Create the store root if needed and return it."""
        self._ensure_dir(self.root)
        return self.root

    def _acquire(self, relative_path: Union[str, Path], display_name: str) -> FileLock:
        self._ensure_dir(self.lock_dir)
        lock = FileLock(self._get_lock_path(relative_path))
        try:
            lock.acquire(timeout=0)
            return lock
        except Timeout:
            logger.info(f"Blocking waiting for file lock on {display_name}")
        try:
            lock.acquire(timeout=self.lock_timeout)
        except Timeout as e:
            raise CacheLockError(
                f"Timeout acquiring lock for {display_name} "
                f"after {self.lock_timeout} seconds"
            ) from e
        return lock

    def _open(
        self, path: Path, lock: FileLock, display_name: str, mode: str
    ) -> LockedFile:
        try:
            return LockedFile(path, lock, mode, display_name)
        except FileNotFoundError as e:
            lock.release()
            raise SlotNotFoundError(f"No cached file for {display_name} at {path}") from e
        except PermissionError as e:
            lock.release()
            raise CachePermissionError(f"Cannot open cache file {path}: {e}") from e
        except OSError as e:
            lock.release()
            raise CacheError(f"failed to open `{path}`: {e}") from e

    def open_ro(self, relative_path: Union[str, Path], display_name: str) -> LockedFile:
        """Open an existing slot for reading.

        Args:
            relative_path: Slot path relative to the store root
            display_name: Name used in lock and error messages

        Returns:
            Locked read-only file positioned at offset zero

        Raises:
            SlotNotFoundError: If the slot does not exist
            CacheLockError: If the lock cannot be acquired in time
        """
        path = self.path_unlocked(relative_path)
        if not path.is_file():
            raise SlotNotFoundError(f"No cached file for {display_name} at {path}")
        lock = self._acquire(relative_path, display_name)
        return self._open(path, lock, display_name, "rb")

    def open_rw(self, relative_path: Union[str, Path], display_name: str) -> LockedFile:
        """Open a slot for reading and writing, creating it if absent.

        Existing content is never truncated.

        Args:
            relative_path: Slot path relative to the store root
            display_name: Name used in lock and error messages

        Returns:
            Locked read-write file positioned at offset zero

        Raises:
            CacheLockError: If the lock cannot be acquired in time
            CachePermissionError: If the slot cannot be created
        """
        path = self.path_unlocked(relative_path)
        self._ensure_dir(path.parent)
        lock = self._acquire(relative_path, display_name)
        try:
            # Create without truncating; a concurrent writer may have filled it
            with open(path, "ab"):
                pass
        except PermissionError as e:
            lock.release()
            raise CachePermissionError(f"Cannot create cache file {path}: {e}") from e
        except OSError as e:
            lock.release()
            raise CacheError(f"failed to create `{path}`: {e}") from e
        return self._open(path, lock, display_name, "r+b")

    def remove(self, relative_path: Union[str, Path], display_name: str) -> bool:
        """Delete a slot under its lock.

        Args:
            relative_path: Slot path relative to the store root
            display_name: Name used in lock and error messages

        Returns:
            True if a file was removed
        """
        path = self.path_unlocked(relative_path)
        lock = self._acquire(relative_path, display_name)
        try:
            if path.exists():
                path.unlink()
                return True
            return False
        except OSError as e:
            raise CacheError(f"failed to remove `{path}`: {e}") from e
        finally:
            lock.release()

    def slot_size(self, relative_path: Union[str, Path]) -> Optional[int]:
        """Size of a slot's backing file without locking, or None if absent."""
        path = self.path_unlocked(relative_path)
        try:
            return path.stat().st_size
        except FileNotFoundError:
            return None
