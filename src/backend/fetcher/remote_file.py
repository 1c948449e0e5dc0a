"""
Remote file materialization.

Fetches a URL, stores the bytes under the download root and registers a
FileNode for the stored file. This is the download collaborator injected into
the media sync context.

Outcomes:
- success -> FileNode (its id is the local file handle)
- 404/410 -> None, logged; the content item simply has no image
- anything else -> RemoteFileError after transient statuses are retried
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from ..fs.hashing import compute_bytes_hash, compute_hash6
from ..fs.naming import generate_media_filename
from ..fs.storage import MediaStorage
from ..net.retry import RetryConfig, RetryableError, with_retry_async
from ..nodes.registry import FileNode, FileNodeRegistry, create_node_id


DEFAULT_USER_AGENT = "content-media-sync/0.1"
DEFAULT_TIMEOUT_S = 30.0

# Statuses meaning "the file is gone", reported as no handle instead of an error.
MISSING_STATUS_CODES = frozenset({404, 410})

logger = logging.getLogger(__name__)


class RemoteFileError(Exception):
    """A remote file could not be fetched or stored."""

    def __init__(self, message: str, *, url: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


@dataclass(frozen=True)
class AuthContext:
    """Credentials forwarded to the file download as a Bearer header."""
    token: Optional[str] = None

    def headers(self) -> dict[str, str]:
        if self.token:
            return {"Authorization": f"Bearer {self.token}"}
        return {}


@dataclass(frozen=True)
class DownloadRequest:
    url: str
    extension: Optional[str] = None
    name: Optional[str] = None
    auth: AuthContext = field(default_factory=AuthContext)


FetchFunc = Callable[[Request, float], bytes]


def _urlopen_bytes(request: Request, timeout_s: float) -> bytes:
    with urlopen(request, timeout=timeout_s) as resp:
        return resp.read()


class RemoteFileFetcher:
    """
    Usage:
        fetcher = RemoteFileFetcher(
            storage=MediaStorage(download_root),
            registry=registry,
        )
        node = await fetcher.download(DownloadRequest(url=..., extension=".png", name="a"))
    """

    def __init__(
        self,
        *,
        storage: MediaStorage,
        registry: FileNodeRegistry,
        create_node_id: Callable[[str], str] = create_node_id,
        retry: Optional[RetryConfig] = None,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        fetch_func: Optional[FetchFunc] = None,
    ) -> None:
        self._storage = storage
        self._registry = registry
        self._create_node_id = create_node_id
        self._retry = retry or RetryConfig()
        self._timeout_s = timeout_s
        self._fetch_func = fetch_func or _urlopen_bytes

    async def __call__(self, request: DownloadRequest) -> Optional[FileNode]:
        return await self.download(request)

    async def download(self, request: DownloadRequest) -> Optional[FileNode]:
        try:
            content = await with_retry_async(
                lambda: asyncio.to_thread(self._fetch, request),
                config=self._retry,
            )
        except HTTPError as exc:
            if exc.code in MISSING_STATUS_CODES:
                logger.warning("Remote file missing (HTTP %d): %s", exc.code, request.url)
                return None
            raise RemoteFileError(
                f"HTTP {exc.code} fetching {request.url}", url=request.url, status_code=exc.code
            ) from exc
        except RetryableError as exc:
            raise RemoteFileError(
                f"{exc} fetching {request.url}", url=request.url, status_code=exc.status_code
            ) from exc
        except URLError as exc:
            raise RemoteFileError(f"{exc.reason} fetching {request.url}", url=request.url) from exc

        return await asyncio.to_thread(self._store, request, content)

    def _fetch(self, request: DownloadRequest) -> bytes:
        headers = {"User-Agent": DEFAULT_USER_AGENT, "Accept": "*/*"}
        headers.update(request.auth.headers())
        return self._fetch_func(Request(request.url, headers=headers), self._timeout_s)

    def _store(self, request: DownloadRequest, content: bytes) -> FileNode:
        content_hash = compute_bytes_hash(content)
        filename = generate_media_filename(
            request.name,
            compute_hash6(content_hash),
            request.extension,
            url=request.url,
        )
        path = self._storage.write_atomic(filename, content)

        node = FileNode(
            id=self._create_node_id(str(path)),
            url=request.url,
            path=str(path),
            name=request.name or path.stem,
            extension=path.suffix.lstrip("."),
            content_hash=content_hash,
            size=len(content),
            created_at=FileNode.now_iso(),
        )
        return self._registry.create_node(node)
