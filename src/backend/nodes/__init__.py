"""
File node registration and liveness tracking.
"""

from .registry import FileNode, FileNodeRegistry, create_node_id

__all__ = [
    "FileNode",
    "FileNodeRegistry",
    "create_node_id",
]
