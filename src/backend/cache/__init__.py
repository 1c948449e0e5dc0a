"""
Key-value stores holding media sync cache records.
"""

from .store import CacheStore, JsonCacheStore, MemoryCacheStore

__all__ = [
    "CacheStore",
    "JsonCacheStore",
    "MemoryCacheStore",
]
