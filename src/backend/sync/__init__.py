"""
Media sync: resolve every image reachable from a set of content records.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Sequence

from .context import SyncContext, SyncReport
from .resolver import resolve_image
from .traversal import traverse


logger = logging.getLogger(__name__)


async def download_media_files(entities: Sequence[Any], ctx: SyncContext) -> SyncReport:
    """
    Traverse all entities concurrently and resolve their images.

    Every traversal runs to completion; afterwards the first failure (in entity
    order) is raised. Entities whose traversal succeeded keep their attached
    local file references either way.
    """
    semaphore = asyncio.Semaphore(ctx.max_concurrent) if ctx.max_concurrent else None

    async def _one(entity: Any) -> None:
        if semaphore is None:
            await traverse(entity, ctx)
            return
        async with semaphore:
            await traverse(entity, ctx)

    results = await asyncio.gather(*(_one(e) for e in entities), return_exceptions=True)

    failures = [r for r in results if isinstance(r, BaseException)]
    if failures:
        logger.warning("media sync: %d/%d entities failed", len(failures), len(results))
        raise failures[0]

    return ctx.report


__all__ = [
    "SyncContext",
    "SyncReport",
    "download_media_files",
    "resolve_image",
    "traverse",
]
