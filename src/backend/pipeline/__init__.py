"""
Media sync pipeline wiring: settings -> stores -> sync run.
"""

from .media_sync import build_sync_context, run_media_sync

__all__ = [
    "build_sync_context",
    "run_media_sync",
]
