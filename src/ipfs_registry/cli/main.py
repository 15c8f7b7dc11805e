"""Main CLI entry point for ipfs-registry.

Provides command-line access to package downloads, index updates, and the
local artifact cache.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from ipfs_registry.cache.config import CacheConfig, get_global_config
from ipfs_registry.cache.validation import ChecksumMismatchError
from ipfs_registry.package import PackageId
from ipfs_registry.shell import Shell
from ipfs_registry.sources.ipfs import IpfsRegistry

# Global console for Rich output
console = Console()

DEFAULT_REGISTRY_NAME = "ipfs"


class PackageIdType(click.ParamType):
    """Click parameter accepting ``name@version``."""

    name = "name@version"

    def convert(self, value, param, ctx):
        if isinstance(value, PackageId):
            return value
        try:
            return PackageId.parse(value)
        except ValueError as e:
            self.fail(str(e), param, ctx)


PACKAGE = PackageIdType()


def build_config(cache_dir: Optional[str]) -> CacheConfig:
    """Resolve cache configuration.

    Priority:
    1. Explicit --cache-dir flag (over the global config)
    2. Global config (config file, then environment variables)

    Args:
        cache_dir: Cache directory from CLI context

    Returns:
        CacheConfig instance
    """
    base = get_global_config()
    if not cache_dir:
        return base
    return CacheConfig(
        cache_dir=Path(cache_dir),
        fetch_command=base.fetch_command,
        lock_timeout=base.lock_timeout,
        chunk_size=base.chunk_size,
        check_fetch_status=base.check_fetch_status,
        verify_cached=base.verify_cached,
    )


def open_registry(obj: dict, require_root: bool = True) -> IpfsRegistry:
    """Build the registry described by the CLI context.

    Raises:
        click.ClickException: If an IPFS root is required but missing
    """
    ipfs_path = obj.get("ipfs_path")
    if require_root and not ipfs_path:
        raise click.ClickException(
            "No IPFS root given; use --ipfs-path or set IPFS_REGISTRY_ROOT"
        )
    return IpfsRegistry(
        ipfs_path or "",
        obj["registry"],
        config=build_config(obj.get("cache_dir")),
        shell=Shell(quiet=obj.get("quiet", False)),
    )


@click.group()
@click.option(
    "--cache-dir",
    type=click.Path(),
    help="Cache root (default: ~/.ipfs_registry or IPFS_REGISTRY_CACHE_DIR)",
)
@click.option(
    "--registry",
    "-r",
    default=lambda: os.environ.get("IPFS_REGISTRY_NAME", DEFAULT_REGISTRY_NAME),
    show_default="ipfs",
    help="Registry name (cache subdirectory)",
)
@click.option(
    "--ipfs-path",
    envvar="IPFS_REGISTRY_ROOT",
    help="Remote content root, e.g. /ipfs/<cid> (or IPFS_REGISTRY_ROOT)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--quiet", "-q", is_flag=True, help="Suppress status output")
@click.pass_context
def cli(ctx, cache_dir, registry, ipfs_path, verbose, quiet):
    """ipfs-registry - Fetch and verify packages from an IPFS registry."""
    ctx.ensure_object(dict)
    ctx.obj["cache_dir"] = cache_dir
    ctx.obj["registry"] = registry
    ctx.obj["ipfs_path"] = ipfs_path
    ctx.obj["quiet"] = quiet

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command("fetch")
@click.argument("pkg", metavar="PACKAGE", type=PACKAGE)
@click.argument("checksum")
@click.pass_context
def fetch(ctx, pkg, checksum):
    """Download and verify PACKAGE (name@version), printing its cached path.

    Example:
        ipfs-registry --ipfs-path /ipfs/QmRoot fetch serde@1.0.0 <sha256>
    """
    try:
        registry = open_registry(ctx.obj)
        with registry.download(pkg, checksum) as crate:
            path = crate.path
        console.print(str(path), soft_wrap=True)

    except click.ClickException:
        raise
    except ChecksumMismatchError as e:
        console.print(f"[red]✗[/red] {e}", style="red")
        console.print("  Remove the corrupt artifact with `ipfs-registry evict`.")
        sys.exit(1)
    except Exception as e:
        console.print(f"[red]✗[/red] Error: {e}", style="red")
        sys.exit(1)


@cli.command("update-index")
@click.pass_context
def update_index(ctx):
    """Fetch the registry index and validate it.

    Example:
        ipfs-registry --ipfs-path /ipfs/QmRoot update-index
    """
    try:
        registry = open_registry(ctx.obj)
        registry.update_index()
        console.print(f"[green]✓[/green] Index ready at {registry.index_path()}")

    except click.ClickException:
        raise
    except Exception as e:
        console.print(f"[red]✗[/red] Error: {e}", style="red")
        sys.exit(1)


@cli.command("status")
@click.argument("pkg", metavar="PACKAGE", type=PACKAGE)
@click.pass_context
def status(ctx, pkg):
    """Show cache status for a package.

    Example:
        ipfs-registry status serde@1.0.0
    """
    try:
        registry = open_registry(ctx.obj, require_root=False)
        info = registry.get_status(pkg)

        if info is None:
            console.print(f"[yellow]{pkg} is not cached[/yellow]")
            return

        table = Table(title=f"Cache status: {pkg}")
        table.add_column("Field", style="cyan", no_wrap=True)
        table.add_column("Value", style="white")
        for key in (
            "cache_path",
            "size_bytes",
            "populated",
            "verified_checksum",
            "cached_at",
            "last_accessed",
            "access_count",
        ):
            value = info.get(key)
            table.add_row(key, "" if value is None else str(value))

        console.print(table)

    except Exception as e:
        console.print(f"[red]✗[/red] Error: {e}", style="red")
        sys.exit(1)


@cli.command("stats")
@click.pass_context
def stats(ctx):
    """Show cache statistics for the registry.

    Example:
        ipfs-registry -r my-registry stats
    """
    try:
        registry = open_registry(ctx.obj, require_root=False)
        data = registry.get_stats()

        table = Table(title=f"Cache statistics: {registry.name}")
        table.add_column("Metric", style="cyan", no_wrap=True)
        table.add_column("Value", justify="right", style="green")
        table.add_row("Artifacts", str(data["total_items"]))
        table.add_row("Size (bytes)", str(data["total_size_bytes"]))
        table.add_row("Cache hits", str(data["cache_hits"]))
        table.add_row("Cache misses", str(data["cache_misses"]))
        table.add_row("Fetches", str(data["fetches"]))
        table.add_row("Checksum failures", str(data["checksum_failures"]))
        table.add_row("Hit rate", f"{data['cache_hit_rate']:.0%}")

        console.print(table)

    except Exception as e:
        console.print(f"[red]✗[/red] Error: {e}", style="red")
        sys.exit(1)


@cli.command("evict")
@click.argument("pkg", metavar="PACKAGE", type=PACKAGE)
@click.pass_context
def evict(ctx, pkg):
    """Remove a cached package so the next fetch retrieves it again.

    Example:
        ipfs-registry evict serde@1.0.0
    """
    try:
        registry = open_registry(ctx.obj, require_root=False)

        if registry.evict(pkg):
            console.print(f"[green]✓[/green] Evicted {pkg}")
        else:
            console.print(f"[yellow]{pkg} is not cached[/yellow]")

    except Exception as e:
        console.print(f"[red]✗[/red] Error: {e}", style="red")
        sys.exit(1)


if __name__ == "__main__":
    cli()
