"""Command-line interface for ipfs-registry."""
