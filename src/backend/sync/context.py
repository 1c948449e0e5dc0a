"""
Injected dependencies and per-run results for a media sync.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Union

from src.shared.media.models import DEFAULT_CACHE_KEY_PREFIX

from ..cache.store import CacheStore
from ..fetcher.remote_file import AuthContext, DownloadRequest
from ..nodes.registry import create_node_id as default_create_node_id


# Returns a FileNode-like object (with `.id`), a bare id string, or None.
DownloadFunc = Callable[[DownloadRequest], Awaitable[Any]]
TouchFunc = Callable[[str], Union[None, bool, Awaitable[Any]]]


@dataclass
class SyncReport:
    """Side table of resolved handles plus counters for one run."""
    handles: dict[str, str] = field(default_factory=dict)
    cache_hits: int = 0
    downloaded: int = 0
    missing: int = 0

    @property
    def total_resolved(self) -> int:
        return self.cache_hits + self.downloaded

    def record(self, image_id: Any, handle: str, *, from_cache: bool) -> None:
        self.handles[str(image_id)] = handle
        if from_cache:
            self.cache_hits += 1
        else:
            self.downloaded += 1

    def to_dict(self) -> dict:
        return {
            "cache_hits": self.cache_hits,
            "downloaded": self.downloaded,
            "missing": self.missing,
            "total_resolved": self.total_resolved,
        }


@dataclass
class SyncContext:
    """
    Attributes:
        api_url: Base URL prepended to relative image URLs.
        cache: Store holding cache records across runs.
        download: Collaborator that materializes a file; None means no handle.
        touch_node: Marks a reused handle live for this run (sync or async);
            returning False rejects the handle and forces a download.
        create_node_id: Id minting, available to the download collaborator.
        auth: Credentials forwarded with every download.
        cache_key_prefix: Namespace of cache keys.
        parallel_siblings: Gather children of one node instead of awaiting in order.
        max_concurrent: Max entities traversed at once (None = unbounded).
    """
    api_url: str
    cache: CacheStore
    download: DownloadFunc
    touch_node: TouchFunc
    create_node_id: Callable[[str], str] = default_create_node_id
    auth: AuthContext = field(default_factory=AuthContext)
    cache_key_prefix: str = DEFAULT_CACHE_KEY_PREFIX
    parallel_siblings: bool = False
    max_concurrent: Optional[int] = None
    report: SyncReport = field(default_factory=SyncReport)

    async def touch(self, node_id: str) -> bool:
        """Returns False when the node collaborator reports the id as unknown."""
        result = self.touch_node(node_id)
        if asyncio.iscoroutine(result):
            result = await result
        return result is not False
