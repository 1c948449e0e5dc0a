"""
Persistent key-value cache for media sync records.

The sync core only needs `get` and `set`; both are coroutines so a store can
suspend on I/O. `JsonCacheStore` keeps the whole map in memory and rewrites a
single JSON file (temp file + replace) after every change.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Optional, Protocol


logger = logging.getLogger(__name__)


class CacheStore(Protocol):
    async def get(self, key: str) -> Optional[Any]:
        ...

    async def set(self, key: str, value: Any) -> None:
        ...


class MemoryCacheStore:
    """Dict-backed store; contents live for the lifetime of the object."""

    def __init__(self, initial: Optional[dict[str, Any]] = None) -> None:
        self._data: dict[str, Any] = dict(initial or {})

    async def get(self, key: str) -> Optional[Any]:
        return self._data.get(key)

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def keys(self) -> list[str]:
        return list(self._data.keys())

    def snapshot(self) -> dict[str, Any]:
        return dict(self._data)


class JsonCacheStore:
    """
    JSON-file backed store.

    Usage:
        cache = JsonCacheStore(path=data_dir / "media-cache.json")
        record = await cache.get("strapi-media-5")
        await cache.set("strapi-media-5", {"fileNodeID": "...", "updatedAt": "..."})

    A missing or unreadable file starts an empty cache. Write errors propagate.
    """

    def __init__(self, *, path: Path) -> None:
        self._path = Path(path)
        self._lock = asyncio.Lock()
        self._data: Optional[dict[str, Any]] = None

    @property
    def path(self) -> Path:
        return self._path

    async def get(self, key: str) -> Optional[Any]:
        async with self._lock:
            data = await self._ensure_loaded()
            return data.get(key)

    async def set(self, key: str, value: Any) -> None:
        async with self._lock:
            data = await self._ensure_loaded()
            data[key] = value
            await asyncio.to_thread(self._write, dict(data))

    async def delete(self, key: str) -> None:
        async with self._lock:
            data = await self._ensure_loaded()
            if data.pop(key, None) is not None:
                await asyncio.to_thread(self._write, dict(data))

    async def keys(self) -> list[str]:
        async with self._lock:
            data = await self._ensure_loaded()
            return list(data.keys())

    async def _ensure_loaded(self) -> dict[str, Any]:
        if self._data is None:
            self._data = await asyncio.to_thread(self._read)
        return self._data

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable cache file %s: %s", self._path, exc)
            return {}
        if not isinstance(raw, dict):
            return {}
        return raw

    def _write(self, payload: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(payload, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")
        tmp_path.replace(self._path)
