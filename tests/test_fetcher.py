"""Tests for content fetchers."""

import subprocess
from unittest.mock import patch

import pytest

from ipfs_registry.fetcher import FetchError, IpgetFetcher, join_remote


def completed(args, returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(args, returncode, stdout, stderr)


class TestIpgetFetcher:
    """Test the ipget-backed fetcher."""

    def test_invokes_ipget_with_output_path(self, tmp_path):
        """Test the command line passed to ipget."""
        dest = tmp_path / "serde-1.0.0.crate"

        with patch("ipfs_registry.fetcher.subprocess.run") as mock_run:
            mock_run.side_effect = lambda args, **kwargs: completed(args)
            IpgetFetcher().fetch("/ipfs/QmRoot/serde-1.0.0.crate", dest)

        args = mock_run.call_args[0][0]
        assert args == ["ipget", "/ipfs/QmRoot/serde-1.0.0.crate", "-o", str(dest)]
        assert mock_run.call_args[1]["capture_output"] is True

    def test_custom_command_and_args(self, tmp_path):
        """Test a custom executable and extra arguments."""
        fetcher = IpgetFetcher("/opt/ipget", extra_args=["--node", "local"])

        assert fetcher.build_args("/ipfs/QmRoot/index", tmp_path / "index") == [
            "/opt/ipget",
            "--node",
            "local",
            "/ipfs/QmRoot/index",
            "-o",
            str(tmp_path / "index"),
        ]

    def test_nonzero_exit_raises(self, tmp_path):
        """Test that a failing ipget is reported."""
        with patch("ipfs_registry.fetcher.subprocess.run") as mock_run:
            mock_run.side_effect = lambda args, **kwargs: completed(
                args, returncode=1, stderr="context deadline exceeded"
            )
            with pytest.raises(FetchError, match="context deadline exceeded"):
                IpgetFetcher().fetch("/ipfs/QmRoot/index", tmp_path / "index")

    def test_missing_executable_raises(self, tmp_path):
        """Test that a missing ipget binary is reported."""
        with patch(
            "ipfs_registry.fetcher.subprocess.run", side_effect=FileNotFoundError()
        ):
            with pytest.raises(FetchError, match="executable not found"):
                IpgetFetcher("no-such-ipget").fetch("/ipfs/QmRoot/x", tmp_path / "x")


class TestJoinRemote:
    """Test remote identifier resolution."""

    def test_join(self):
        """Test joining a content path to the remote root."""
        assert join_remote("/ipfs/QmRoot", "index") == "/ipfs/QmRoot/index"

    def test_join_strips_duplicate_separators(self):
        """Test that stray slashes are collapsed."""
        assert join_remote("/ipfs/QmRoot/", "/a-1.crate") == "/ipfs/QmRoot/a-1.crate"
