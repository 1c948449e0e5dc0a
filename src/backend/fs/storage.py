"""
Download root management for materialized media files.

Directory structure:
    <download_root>/<safe-name>-<hash6>.<ext>
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path


class MediaStorage:
    """Flat directory of stored media files."""

    def __init__(self, download_root: Path):
        self._download_root = Path(download_root).resolve()

    @property
    def download_root(self) -> Path:
        return self._download_root

    def ensure_root(self) -> Path:
        """
        Raises:
            OSError: If the directory cannot be created.
        """
        self._download_root.mkdir(parents=True, exist_ok=True)
        return self._download_root

    def path_for(self, filename: str) -> Path:
        if not filename or "/" in filename or "\\" in filename or filename in (".", ".."):
            raise ValueError(f"invalid media filename: {filename!r}")
        return self._download_root / filename

    def list_files(self) -> list[Path]:
        if not self._download_root.exists():
            return []
        return [f for f in self._download_root.iterdir() if f.is_file() and not f.name.startswith(".")]

    def write_atomic(self, filename: str, content: bytes) -> Path:
        """Write to a temp file next to the target, then replace."""
        final_path = self.path_for(filename)
        self.ensure_root()
        fd, tmp_path_str = tempfile.mkstemp(
            dir=str(final_path.parent),
            prefix=f".{final_path.name}.",
            suffix=".tmp",
        )
        tmp_path = Path(tmp_path_str)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, final_path)
        finally:
            try:
                tmp_path.unlink()
            except FileNotFoundError:
                pass
        return final_path
