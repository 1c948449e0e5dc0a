"""
File system utilities for stored media.

Provides:
- Download root management and atomic writes (storage.py)
- File naming conventions (naming.py)
- Content hashing (hashing.py)
"""

from .storage import MediaStorage
from .naming import generate_media_filename, get_extension_from_url, normalize_extension, sanitize_stem
from .hashing import compute_bytes_hash, compute_hash6

__all__ = [
    "MediaStorage",
    "generate_media_filename",
    "get_extension_from_url",
    "normalize_extension",
    "sanitize_stem",
    "compute_bytes_hash",
    "compute_hash6",
]
