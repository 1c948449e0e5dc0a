"""
Content hashing for materialized media files.

SHA-256 over the downloaded bytes. The first 6 hex characters (hash6) go into
the stored filename so identical names with different content never collide.
"""

from __future__ import annotations

import hashlib


HASH_ALGORITHM = "sha256"
HASH6_LENGTH = 6


def compute_bytes_hash(data: bytes) -> str:
    """Lowercase hex SHA-256 of `data`."""
    return hashlib.new(HASH_ALGORITHM, data).hexdigest()


def compute_hash6(full_hash: str) -> str:
    """
    First 6 characters of a hex digest.

    Raises:
        ValueError: If the digest is shorter than 6 characters.
    """
    if len(full_hash) < HASH6_LENGTH:
        raise ValueError(
            f"Hash must be at least {HASH6_LENGTH} characters, got {len(full_hash)}"
        )
    return full_hash[:HASH6_LENGTH].lower()
