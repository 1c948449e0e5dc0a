from __future__ import annotations

from pathlib import Path
from typing import Optional

from fastapi import FastAPI

from .nodes.api import create_nodes_router
from .settings.api import create_settings_router
from .settings.store import SettingsStore
from .sync.api import create_sync_router


def _repo_root() -> Path:
    return Path(__file__).resolve().parents[2]


def create_app(*, repo_root: Optional[Path] = None) -> FastAPI:
    repo_root = repo_root or _repo_root()
    config_path = repo_root / "data" / "config.json"

    store = SettingsStore(path=config_path)

    def nodes_path() -> Path:
        p = Path(store.load().nodes_path).expanduser()
        return p if p.is_absolute() else (repo_root / p).resolve()

    app = FastAPI(title="content-media-sync")
    app.include_router(create_settings_router(store=store, repo_root=repo_root))
    app.include_router(create_sync_router(store=store, base_dir=repo_root))
    app.include_router(create_nodes_router(nodes_path=nodes_path))

    app.state.settings_store = store
    app.state.repo_root = repo_root
    return app


app = create_app()
