from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Optional, Sequence

from src.backend.cache.store import CacheStore, JsonCacheStore
from src.backend.fetcher.remote_file import AuthContext, RemoteFileFetcher
from src.backend.fs.storage import MediaStorage
from src.backend.nodes.registry import FileNodeRegistry, create_node_id
from src.backend.settings.models import SyncSettings
from src.backend.settings.store import SettingsStore
from src.backend.sync import SyncContext, SyncReport, download_media_files
from src.backend.sync.context import DownloadFunc


logger = logging.getLogger(__name__)


def _resolve_path(raw: str, *, base: Path) -> Path:
    p = Path(raw).expanduser()
    if not p.is_absolute():
        p = (base / p).resolve()
    return p


def build_sync_context(
    settings: SyncSettings,
    *,
    cache: CacheStore,
    registry: FileNodeRegistry,
    base_dir: Path,
    download: Optional[DownloadFunc] = None,
) -> SyncContext:
    """
    Wire settings into a SyncContext. Without `download`, files are fetched by
    a RemoteFileFetcher writing under the configured download root.
    """
    auth = AuthContext(token=settings.credentials.token) if settings.credentials_configured() else AuthContext()

    if download is None:
        download = RemoteFileFetcher(
            storage=MediaStorage(_resolve_path(settings.download_root, base=base_dir)),
            registry=registry,
            create_node_id=create_node_id,
            retry=settings.get_retry(),
        )

    return SyncContext(
        api_url=settings.api_url,
        cache=cache,
        download=download,
        touch_node=registry.touch_node,
        create_node_id=create_node_id,
        auth=auth,
        cache_key_prefix=settings.cache_key_prefix,
        parallel_siblings=settings.parallel_siblings,
        max_concurrent=settings.max_concurrent,
    )


async def run_media_sync(
    entities: Sequence[Any],
    *,
    store: SettingsStore,
    base_dir: Path,
    sweep: bool = False,
    delete_files: bool = False,
    download: Optional[DownloadFunc] = None,
) -> SyncReport:
    """
    One sync run: load settings -> open cache and node registry -> resolve
    images -> persist the registry (and optionally drop nodes not used this run).

    The registry is saved even when the run fails so nodes created by
    successful downloads are not forgotten. Sweeping only happens on success.
    """
    settings = store.load()
    cache = JsonCacheStore(path=_resolve_path(settings.cache_path, base=base_dir))
    registry = FileNodeRegistry(path=_resolve_path(settings.nodes_path, base=base_dir))
    await asyncio.to_thread(registry.load)
    registry.begin_run()

    ctx = build_sync_context(settings, cache=cache, registry=registry, base_dir=base_dir, download=download)
    try:
        report = await download_media_files(entities, ctx)
        if sweep:
            registry.sweep(delete_files=delete_files)
    finally:
        await asyncio.to_thread(registry.save)

    logger.info(
        "media sync done: %d entities, %d cache hits, %d downloaded, %d missing",
        len(entities),
        report.cache_hits,
        report.downloaded,
        report.missing,
    )
    return report
