"""Append-only SHA-256 Merkle trees, hashes and inclusion paths."""

__version__ = "0.1.0"