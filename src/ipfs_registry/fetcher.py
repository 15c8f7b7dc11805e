"""Content fetchers that materialize remote content at a local path."""

import logging
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Union

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """Raised when a content fetcher reports failure."""

    pass


class ContentFetcher(ABC):
    """Capability that populates a local destination from a remote identifier.

    Implementations block until the content is written (or the attempt fails)
    and raise FetchError to report failure.
    """

    @abstractmethod
    def fetch(self, remote_id: str, destination: Union[str, Path]) -> None:
        """Populate ``destination`` with the content addressed by ``remote_id``.

        Args:
            remote_id: Remote content identifier (e.g. '/ipfs/<cid>/index')
            destination: Local file or directory path to write

        Raises:
            FetchError: If the content could not be retrieved
        """
        pass


class IpgetFetcher(ContentFetcher):
    """Fetches content by running the ``ipget`` executable.

    Invoked as ``ipget <remote_id> -o <destination>``.

    Examples:
        >>> fetcher = IpgetFetcher()
        >>> fetcher.fetch("/ipfs/Qm.../index", "/tmp/cache/index")
    """

    def __init__(self, command: str = "ipget", extra_args: Optional[List[str]] = None):
        """Initialize the fetcher.

        Args:
            command: Executable name or path
            extra_args: Additional arguments placed before the remote identifier
        """
        self.command = command
        self.extra_args = list(extra_args or [])

    def build_args(self, remote_id: str, destination: Union[str, Path]) -> List[str]:
        return [self.command, *self.extra_args, remote_id, "-o", str(destination)]

    def fetch(self, remote_id: str, destination: Union[str, Path]) -> None:
        args = self.build_args(remote_id, destination)
        try:
            result = subprocess.run(args, capture_output=True, text=True)
        except FileNotFoundError as e:
            raise FetchError(
                f"failed to execute `{self.command}`: executable not found"
            ) from e
        except OSError as e:
            raise FetchError(f"failed to execute `{self.command}`: {e}") from e

        logger.debug(
            f"{self.command} output for {remote_id}: "
            f"status={result.returncode} stdout={result.stdout!r} stderr={result.stderr!r}"
        )

        if result.returncode != 0:
            detail = (result.stderr or result.stdout or "").strip()
            raise FetchError(
                f"`{self.command}` failed to retrieve {remote_id} "
                f"(exit status {result.returncode}): {detail}"
            )


def join_remote(root: str, *parts: str) -> str:
    """Resolve a content identifier against a remote root.

    Examples:
        >>> join_remote("/ipfs/QmRoot/", "index")
        '/ipfs/QmRoot/index'
    """
    pieces = [root.rstrip("/")] + [str(p).strip("/") for p in parts]
    return "/".join(pieces)
