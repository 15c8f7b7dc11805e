"""Tests for CLI commands.

These tests verify:
- fetch/update-index drive ipget and report results
- Cache inspection and eviction commands
- Error handling and exit codes
"""

import hashlib
import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from ipfs_registry.cache import config as config_module
from ipfs_registry.cache.config import CacheConfig
from ipfs_registry.cli.main import cli

ROOT = "/ipfs/QmRoot"
CRATE = b"cli crate bytes"
CHECKSUM = hashlib.sha256(CRATE).hexdigest()


def fake_ipget(args, **kwargs):
    """Stand-in for subprocess.run that materializes ipget output."""
    remote_id, destination = args[-3], Path(args[-1])
    if remote_id.endswith("/index"):
        destination.mkdir(parents=True, exist_ok=True)
        (destination / "config.json").write_text("{}")
    else:
        destination.write_bytes(CRATE)
    return subprocess.CompletedProcess(args, 0, "", "")


@pytest.fixture(autouse=True)
def isolated_global_config(tmp_path, monkeypatch):
    """Keep the CLI away from the user's real cache configuration."""
    monkeypatch.setattr(
        config_module, "_global_config", CacheConfig(cache_dir=tmp_path / "default")
    )


@pytest.fixture
def base_args(tmp_path):
    return ["--cache-dir", str(tmp_path / "cache"), "--ipfs-path", ROOT, "-q"]


class TestFetch:
    """Test fetch command."""

    def test_fetch_prints_cached_path(self, tmp_path, base_args):
        """Test fetching a package via CLI."""
        runner = CliRunner()
        with patch("ipfs_registry.fetcher.subprocess.run", side_effect=fake_ipget):
            result = runner.invoke(cli, base_args + ["fetch", "serde@1.0.0", CHECKSUM])

        assert result.exit_code == 0
        assert "serde-1.0.0.crate" in result.output
        cached = tmp_path / "cache" / "ipfs" / "serde-1.0.0.crate"
        assert cached.read_bytes() == CRATE

    def test_fetch_checksum_mismatch(self, base_args):
        """Test that verification failures exit non-zero."""
        runner = CliRunner()
        with patch("ipfs_registry.fetcher.subprocess.run", side_effect=fake_ipget):
            result = runner.invoke(cli, base_args + ["fetch", "serde@1.0.0", "0" * 64])

        assert result.exit_code == 1
        assert "failed to verify the checksum" in result.output

    def test_fetch_ipget_failure(self, base_args):
        """Test that ipget errors are reported."""
        runner = CliRunner()
        with patch(
            "ipfs_registry.fetcher.subprocess.run",
            side_effect=lambda args, **kwargs: subprocess.CompletedProcess(
                args, 1, "", "no route"
            ),
        ):
            result = runner.invoke(cli, base_args + ["fetch", "serde@1.0.0", CHECKSUM])

        assert result.exit_code == 1
        assert "Error" in result.output

    def test_fetch_requires_ipfs_path(self, tmp_path, monkeypatch):
        """Test that fetch without an IPFS root is rejected."""
        monkeypatch.delenv("IPFS_REGISTRY_ROOT", raising=False)
        runner = CliRunner()
        result = runner.invoke(
            cli,
            ["--cache-dir", str(tmp_path), "fetch", "serde@1.0.0", CHECKSUM],
        )

        assert result.exit_code != 0
        assert "No IPFS root given" in result.output

    def test_ipfs_path_from_environment(self, tmp_path, monkeypatch):
        """Test that IPFS_REGISTRY_ROOT supplies the root."""
        monkeypatch.setenv("IPFS_REGISTRY_ROOT", ROOT)
        runner = CliRunner()
        with patch(
            "ipfs_registry.fetcher.subprocess.run", side_effect=fake_ipget
        ) as mock_run:
            result = runner.invoke(
                cli,
                ["--cache-dir", str(tmp_path), "-q", "fetch", "serde@1.0.0", CHECKSUM],
            )

        assert result.exit_code == 0
        assert mock_run.call_args[0][0][1] == f"{ROOT}/serde-1.0.0.crate"

    @pytest.mark.parametrize(
        "package, message",
        [
            ("serde", "Expected 'name@version'"),
            ("../../etc@1.0.0", "not a valid path component"),
            ("serde@..", "not a valid path component"),
        ],
    )
    def test_fetch_rejects_bad_package(self, tmp_path, base_args, package, message):
        """Test that malformed or path-escaping packages never reach ipget."""
        runner = CliRunner()
        with patch("ipfs_registry.fetcher.subprocess.run") as mock_run:
            result = runner.invoke(cli, base_args + ["fetch", package, CHECKSUM])

        assert result.exit_code == 2
        assert message in result.output
        mock_run.assert_not_called()
        assert not (tmp_path / "etc-1.0.0.crate").exists()


class TestUpdateIndex:
    """Test update-index command."""

    def test_update_index(self, tmp_path, base_args):
        """Test index synchronization via CLI."""
        runner = CliRunner()
        with patch("ipfs_registry.fetcher.subprocess.run", side_effect=fake_ipget):
            result = runner.invoke(cli, base_args + ["update-index"])

        assert result.exit_code == 0
        assert "Index ready" in result.output
        assert (tmp_path / "cache" / "ipfs" / "index" / "config.json").exists()


class TestCacheCommands:
    """Test status, stats, and evict commands."""

    def fetch(self, base_args):
        runner = CliRunner()
        with patch("ipfs_registry.fetcher.subprocess.run", side_effect=fake_ipget):
            result = runner.invoke(cli, base_args + ["fetch", "serde@1.0.0", CHECKSUM])
        assert result.exit_code == 0

    def test_status_not_cached(self, base_args):
        """Test status of an uncached package."""
        result = CliRunner().invoke(cli, base_args + ["status", "serde@1.0.0"])

        assert result.exit_code == 0
        assert "not cached" in result.output

    def test_status_cached(self, base_args):
        """Test status of a cached package."""
        self.fetch(base_args)
        result = CliRunner().invoke(cli, base_args + ["status", "serde@1.0.0"])

        assert result.exit_code == 0
        assert "verified_checksum" in result.output

    def test_stats(self, base_args):
        """Test cache statistics output."""
        self.fetch(base_args)
        result = CliRunner().invoke(cli, base_args + ["stats"])

        assert result.exit_code == 0
        assert "Cache misses" in result.output

    def test_evict(self, tmp_path, base_args):
        """Test evicting a cached package."""
        self.fetch(base_args)
        result = CliRunner().invoke(cli, base_args + ["evict", "serde@1.0.0"])

        assert result.exit_code == 0
        assert "Evicted serde v1.0.0" in result.output
        assert not (tmp_path / "cache" / "ipfs" / "serde-1.0.0.crate").exists()

    def test_evict_not_cached(self, base_args):
        """Test evicting a package that is not cached."""
        result = CliRunner().invoke(cli, base_args + ["evict", "serde@1.0.0"])

        assert result.exit_code == 0
        assert "not cached" in result.output
