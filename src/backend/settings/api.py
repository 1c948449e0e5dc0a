from __future__ import annotations

import tempfile
from pathlib import Path
from urllib.parse import urlsplit

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from ..net.retry import RetryConfig
from .models import ApiCredentials, SyncSettings
from .store import SettingsStore


class ApiUrlIn(BaseModel):
    api_url: str = Field(min_length=1)


class CredentialsIn(BaseModel):
    token: str = Field(min_length=1)


class DownloadRootIn(BaseModel):
    download_root: str = Field(min_length=1)


class MaxConcurrentIn(BaseModel):
    max_concurrent: int = Field(ge=1, le=100)


class RetryIn(BaseModel):
    max_retries: int = Field(ge=0, le=10, default=2)
    base_delay_s: float = Field(ge=0.0, le=60.0, default=1.0)
    max_delay_s: float = Field(ge=0.0, le=300.0, default=30.0)
    enabled: bool = True


class RetryOut(BaseModel):
    max_retries: int
    base_delay_s: float
    max_delay_s: float
    enabled: bool


class SettingsOut(BaseModel):
    api_url: str
    token_configured: bool
    download_root: str
    cache_path: str
    nodes_path: str
    cache_key_prefix: str
    max_concurrent: int
    parallel_siblings: bool
    retry: RetryOut


def _public_settings(settings: SyncSettings) -> SettingsOut:
    retry = settings.get_retry()
    return SettingsOut(
        api_url=settings.api_url,
        token_configured=settings.credentials_configured(),
        download_root=settings.download_root,
        cache_path=settings.cache_path,
        nodes_path=settings.nodes_path,
        cache_key_prefix=settings.cache_key_prefix,
        max_concurrent=settings.max_concurrent,
        parallel_siblings=settings.parallel_siblings,
        retry=RetryOut(
            max_retries=retry.max_retries,
            base_delay_s=retry.base_delay_s,
            max_delay_s=retry.max_delay_s,
            enabled=retry.enabled,
        ),
    )


def _validate_api_url(raw: str) -> str:
    url = raw.strip()
    parts = urlsplit(url)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ValueError("API URL must be an absolute http(s) URL")
    return url.rstrip("/")


def _resolve_download_root(download_root: str, *, repo_root: Path) -> Path:
    raw = download_root.strip()
    if not raw:
        raise ValueError("Download root must not be empty")

    p = Path(raw).expanduser()
    if not p.is_absolute():
        p = (repo_root / p).resolve()
    return p


def _ensure_dir_writable(path: Path) -> None:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ValueError(f"Cannot create directory: {exc}") from exc

    if not path.is_dir():
        raise ValueError("Download root is not a directory")

    try:
        with tempfile.NamedTemporaryFile(prefix=".cms_write_test_", dir=str(path), delete=True):
            pass
    except PermissionError as exc:
        raise ValueError("Download root is not writable") from exc
    except OSError as exc:
        raise ValueError(f"Cannot write to download root: {exc}") from exc


def create_settings_router(*, store: SettingsStore, repo_root: Path) -> APIRouter:
    router = APIRouter(prefix="/api/settings", tags=["settings"])

    @router.get("", response_model=SettingsOut)
    def get_settings() -> SettingsOut:
        return _public_settings(store.load())

    @router.post("/api-url", response_model=SettingsOut)
    def set_api_url(body: ApiUrlIn) -> SettingsOut:
        try:
            url = _validate_api_url(body.api_url)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        updated = store.set_value(key="api_url", value=url)
        return _public_settings(updated)

    @router.post("/credentials", response_model=SettingsOut)
    def set_credentials(body: CredentialsIn) -> SettingsOut:
        creds = ApiCredentials(token=body.token.strip())

        def mutate(settings: SyncSettings) -> SyncSettings:
            settings.credentials = creds
            return settings

        updated = store.update(mutator=mutate)
        return _public_settings(updated)

    @router.delete("/credentials", response_model=SettingsOut)
    def clear_credentials() -> SettingsOut:
        return _public_settings(store.clear_credentials())

    @router.post("/download-root", response_model=SettingsOut)
    def set_download_root(body: DownloadRootIn) -> SettingsOut:
        try:
            root = _resolve_download_root(body.download_root, repo_root=repo_root)
            _ensure_dir_writable(root)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        updated = store.set_value(key="download_root", value=str(root))
        return _public_settings(updated)

    @router.post("/max-concurrent", response_model=SettingsOut)
    def set_max_concurrent(body: MaxConcurrentIn) -> SettingsOut:
        updated = store.set_value(key="max_concurrent", value=body.max_concurrent)
        return _public_settings(updated)

    @router.post("/retry", response_model=SettingsOut)
    def set_retry(body: RetryIn) -> SettingsOut:
        retry = RetryConfig(
            max_retries=body.max_retries,
            base_delay_s=body.base_delay_s,
            max_delay_s=body.max_delay_s,
            enabled=body.enabled,
        )

        def mutate(settings: SyncSettings) -> SyncSettings:
            settings.retry = retry
            return settings

        updated = store.update(mutator=mutate)
        return _public_settings(updated)

    return router
