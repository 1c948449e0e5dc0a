"""
API routes for inspecting registered file nodes.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from .registry import FileNodeRegistry


class NodeListOut(BaseModel):
    count: int
    ids: list[str]


class FileNodeOut(BaseModel):
    id: str
    url: str
    path: str
    name: str
    extension: str
    content_hash: str
    size: int
    created_at: str


def create_nodes_router(*, nodes_path: Callable[[], Path]) -> APIRouter:
    """`nodes_path` is re-evaluated per request so settings changes apply."""
    router = APIRouter(prefix="/api/nodes", tags=["nodes"])

    def _load() -> FileNodeRegistry:
        registry = FileNodeRegistry(path=nodes_path())
        registry.load()
        return registry

    @router.get("", response_model=NodeListOut)
    def list_nodes() -> NodeListOut:
        registry = _load()
        ids = registry.ids()
        return NodeListOut(count=len(ids), ids=ids)

    @router.get("/{node_id}", response_model=FileNodeOut)
    def get_node(node_id: str) -> FileNodeOut:
        node = _load().get(node_id)
        if node is None:
            raise HTTPException(status_code=404, detail=f"Unknown file node: {node_id}")
        return FileNodeOut(**node.to_persist_dict())

    return router
