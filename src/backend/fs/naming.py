"""
Stored media file naming.

Filename format: <safe-name>-<hash6>.<ext>

- safe-name: the display name reduced to [A-Za-z0-9._-], "file" when empty
- hash6: first 6 characters of the content hash
- ext: extension from the descriptor, else from the URL path, else "bin"
"""

from __future__ import annotations

import re
from pathlib import PurePosixPath
from typing import Optional
from urllib.parse import unquote, urlsplit


DEFAULT_STEM = "file"
DEFAULT_EXTENSION = "bin"
MAX_STEM_LENGTH = 80

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")
_HASH6_PATTERN = re.compile(r"^[a-f0-9]{6}$")


def sanitize_stem(name: Optional[str]) -> str:
    """Filesystem-safe stem from a display name (extension stripped)."""
    if not name:
        return DEFAULT_STEM
    stem = PurePosixPath(name.strip()).stem if "." in name else name.strip()
    stem = _UNSAFE_CHARS.sub("_", stem).strip("._-")
    if not stem:
        return DEFAULT_STEM
    return stem[:MAX_STEM_LENGTH]


def normalize_extension(extension: Optional[str]) -> Optional[str]:
    """'.PNG' -> 'png'; empty or unsafe values -> None."""
    if not extension:
        return None
    ext = extension.strip().lstrip(".").lower()
    if not ext or not re.fullmatch(r"[a-z0-9]{1,10}", ext):
        return None
    return ext


def get_extension_from_url(url: str) -> Optional[str]:
    path = unquote(urlsplit(url).path)
    return normalize_extension(PurePosixPath(path).suffix)


def generate_media_filename(
    name: Optional[str],
    hash6: str,
    extension: Optional[str],
    *,
    url: str = "",
) -> str:
    """
    Args:
        name: Display name of the media item.
        hash6: First 6 characters of the content hash.
        extension: Extension with or without leading dot.
        url: Source URL, used when `extension` is missing.

    Raises:
        ValueError: If hash6 is not 6 lowercase hex characters.
    """
    if not _HASH6_PATTERN.match(hash6 or ""):
        raise ValueError(f"hash6 must be exactly 6 hex characters, got {hash6!r}")

    ext = normalize_extension(extension) or get_extension_from_url(url) or DEFAULT_EXTENSION
    return f"{sanitize_stem(name)}-{hash6}.{ext}"
