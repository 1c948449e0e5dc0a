"""
Image resolver: reuse a previously materialized file or fetch a fresh one.

Cache protocol, per image:
1. key = <prefix><image id>
2. a stored record whose revision marker equals the descriptor's marker is a
   hit: touch the stored node, no download (a rejected touch is a miss)
3. otherwise download; a node means overwrite the record, None means leave
   the descriptor alone and write nothing
4. attach the node id under LOCAL_FILE_FIELD when one was obtained

The caller's mapping is mutated in place; the handle is also recorded in the
run's SyncReport.
"""

from __future__ import annotations

import logging
from typing import Any, MutableMapping, Optional

from src.shared.media.models import LOCAL_FILE_FIELD, CacheRecord, ImageDescriptor, media_cache_key
from src.shared.media.urls import build_image_url

from ..fetcher.remote_file import DownloadRequest
from .context import SyncContext


logger = logging.getLogger(__name__)


def _handle_of(result: Any) -> Optional[str]:
    if result is None:
        return None
    if isinstance(result, str):
        return result or None
    node_id = getattr(result, "id", None)
    return str(node_id) if node_id else None


async def resolve_image(raw: MutableMapping[str, Any], ctx: SyncContext) -> Optional[str]:
    image = ImageDescriptor.from_mapping(raw)
    cache_key = media_cache_key(image.id, ctx.cache_key_prefix)
    cached = CacheRecord.from_persist_dict(await ctx.cache.get(cache_key))
    marker = image.revision_marker

    handle: Optional[str] = None
    if cached is not None and cached.matches(marker):
        if await ctx.touch(cached.file_node_id):
            handle = cached.file_node_id
            ctx.report.record(image.id, handle, from_cache=True)
            logger.debug("cache hit %s -> %s", cache_key, handle)
        else:
            logger.info("cached node %s for %s is gone, downloading again", cached.file_node_id, cache_key)

    if handle is None:
        request = DownloadRequest(
            url=build_image_url(image, ctx.api_url),
            extension=image.ext,
            name=image.name,
            auth=ctx.auth,
        )
        logger.debug("cache miss %s, downloading %s", cache_key, request.url)
        handle = _handle_of(await ctx.download(request))

        if handle is None:
            ctx.report.missing += 1
            return None

        await ctx.cache.set(cache_key, CacheRecord(file_node_id=handle, updated_at=marker).to_persist_dict())
        ctx.report.record(image.id, handle, from_cache=False)

    raw[LOCAL_FILE_FIELD] = handle
    return handle
