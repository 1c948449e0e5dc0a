"""
API routes for running a media sync.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from src.backend.fetcher.remote_file import RemoteFileError
from src.backend.pipeline.media_sync import run_media_sync
from src.backend.settings.store import SettingsStore


class SyncIn(BaseModel):
    entities: list[Any] = Field(default_factory=list)
    sweep: bool = False
    delete_files: bool = False


class SyncStatsOut(BaseModel):
    cache_hits: int
    downloaded: int
    missing: int
    total_resolved: int


class SyncOut(BaseModel):
    entities: list[Any]
    handles: dict[str, str]
    stats: SyncStatsOut


def create_sync_router(*, store: SettingsStore, base_dir: Path) -> APIRouter:
    router = APIRouter(prefix="/api/sync", tags=["sync"])
    # Runs share the node registry and cache files; one at a time.
    run_lock = asyncio.Lock()

    @router.post("", response_model=SyncOut)
    async def run_sync(body: SyncIn) -> SyncOut:
        entities = body.entities
        try:
            async with run_lock:
                report = await run_media_sync(
                    entities,
                    store=store,
                    base_dir=base_dir,
                    sweep=body.sweep,
                    delete_files=body.delete_files,
                )
        except RemoteFileError as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc

        return SyncOut(
            entities=entities,
            handles=dict(report.handles),
            stats=SyncStatsOut(**report.to_dict()),
        )

    return router
