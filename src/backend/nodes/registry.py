"""
File node registry with per-run liveness tracking.

Every materialized file is registered as a FileNode. A sync run starts with
`begin_run()`; nodes that are created or touched during the run are live, and
`sweep()` garbage-collects the rest.
"""

from __future__ import annotations

import json
import logging
import threading
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional


# Namespace for deterministic node ids (uuid5 over a seed string).
NODE_ID_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_URL, "content-media-sync/file-node")

logger = logging.getLogger(__name__)


def create_node_id(seed: str, *, namespace: uuid.UUID = NODE_ID_NAMESPACE) -> str:
    """Same seed, same id: re-materializing a file at the same path keeps its id."""
    return str(uuid.uuid5(namespace, str(seed)))


@dataclass(frozen=True)
class FileNode:
    id: str
    url: str
    path: str
    name: str
    extension: str
    content_hash: str
    size: int
    created_at: str

    @staticmethod
    def now_iso() -> str:
        return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")

    def to_persist_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_persist_dict(cls, data: dict[str, Any]) -> "FileNode":
        try:
            size = int(data.get("size", 0) or 0)
        except (TypeError, ValueError):
            size = 0
        return cls(
            id=str(data["id"]),
            url=str(data.get("url", "") or ""),
            path=str(data.get("path", "") or ""),
            name=str(data.get("name", "") or ""),
            extension=str(data.get("extension", "") or ""),
            content_hash=str(data.get("content_hash", "") or ""),
            size=size,
            created_at=str(data.get("created_at", "") or ""),
        )


class FileNodeRegistry:
    """
    Usage:
        registry = FileNodeRegistry(path=data_dir / "file-nodes.json")
        registry.load()
        registry.begin_run()
        ...  # create_node / touch_node during the sync
        removed = registry.sweep()
        registry.save()

    Without a path the registry is in-memory only.
    """

    def __init__(self, *, path: Optional[Path] = None) -> None:
        self._path = Path(path) if path is not None else None
        self._lock = threading.RLock()
        self._nodes: dict[str, FileNode] = {}
        self._touched: set[str] = set()

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    @property
    def touched(self) -> frozenset[str]:
        return frozenset(self._touched)

    def ids(self) -> list[str]:
        with self._lock:
            return sorted(self._nodes)

    def get(self, node_id: str) -> Optional[FileNode]:
        return self._nodes.get(node_id)

    def begin_run(self) -> None:
        with self._lock:
            self._touched.clear()

    def create_node(self, node: FileNode) -> FileNode:
        with self._lock:
            self._nodes[node.id] = node
            self._touched.add(node.id)
        return node

    def touch_node(self, node_id: str) -> bool:
        """Mark a node live for this run. Returns False for unknown ids."""
        with self._lock:
            if node_id not in self._nodes:
                logger.warning("touch for unknown file node %s", node_id)
                return False
            self._touched.add(node_id)
            return True

    def untouched(self) -> list[FileNode]:
        with self._lock:
            return [n for nid, n in self._nodes.items() if nid not in self._touched]

    def sweep(self, *, delete_files: bool = False) -> list[FileNode]:
        """
        Remove nodes not touched since `begin_run()`.

        Args:
            delete_files: Also unlink the node's file from disk.

        Returns:
            The removed nodes.
        """
        with self._lock:
            stale = self.untouched()
            for node in stale:
                del self._nodes[node.id]
                if delete_files and node.path:
                    try:
                        Path(node.path).unlink()
                    except FileNotFoundError:
                        pass
                    except OSError as exc:
                        logger.warning("failed to delete stale file %s: %s", node.path, exc)

        if stale:
            logger.info("swept %d stale file node(s)", len(stale))
        return stale

    def load(self) -> int:
        """Load persisted nodes. Missing or corrupt files load nothing."""
        if self._path is None or not self._path.exists():
            return 0

        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable node registry %s: %s", self._path, exc)
            return 0

        items = raw.get("nodes") if isinstance(raw, dict) else None
        if not isinstance(items, list):
            return 0

        loaded = 0
        with self._lock:
            for item in items:
                if not isinstance(item, dict) or "id" not in item:
                    continue
                node = FileNode.from_persist_dict(item)
                self._nodes[node.id] = node
                loaded += 1
        return loaded

    def save(self) -> None:
        if self._path is None:
            return

        with self._lock:
            payload = {
                "version": 1,
                "nodes": [self._nodes[nid].to_persist_dict() for nid in sorted(self._nodes)],
            }
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
            tmp_path.write_text(json.dumps(payload, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")
            tmp_path.replace(self._path)
