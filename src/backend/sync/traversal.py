"""
Depth-first walk over arbitrary content records.

Images are resolved and not descended into; sequences and mappings (and plain
objects) are walked child by child; scalars and None are leaves. Input is
assumed acyclic.
"""

from __future__ import annotations

import asyncio
from typing import Any

from src.shared.media.models import ValueKind, classify_value, iter_children

from .context import SyncContext
from .resolver import resolve_image


async def traverse(value: Any, ctx: SyncContext) -> None:
    kind = classify_value(value)

    if kind == ValueKind.IMAGE:
        await resolve_image(value, ctx)
        return

    children = iter_children(value, kind)
    if not children:
        return

    if ctx.parallel_siblings:
        # Every sibling settles before the first failure is raised.
        results = await asyncio.gather(
            *(traverse(child, ctx) for child in children), return_exceptions=True
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        return

    for child in children:
        await traverse(child, ctx)
