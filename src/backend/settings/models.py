from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from src.shared.media.models import DEFAULT_CACHE_KEY_PREFIX

from ..net.retry import RetryConfig


DEFAULT_API_URL = "http://localhost:1337"
DEFAULT_DOWNLOAD_ROOT = "downloads"
DEFAULT_CACHE_PATH = "data/media-cache.json"
DEFAULT_NODES_PATH = "data/file-nodes.json"
DEFAULT_MAX_CONCURRENT = 3


@dataclass(frozen=True)
class ApiCredentials:
    token: str

    def is_complete(self) -> bool:
        return bool(self.token.strip())

    def to_persist_dict(self) -> dict[str, Any]:
        return {"token": self.token}

    @classmethod
    def from_persist_dict(cls, data: dict[str, Any]) -> "ApiCredentials":
        return cls(token=str(data.get("token", "") or ""))


def _str_or_default(value: Any, default: str) -> str:
    text = str(value or "").strip()
    return text or default


@dataclass
class SyncSettings:
    api_url: str = DEFAULT_API_URL
    credentials: Optional[ApiCredentials] = None
    download_root: str = DEFAULT_DOWNLOAD_ROOT
    cache_path: str = DEFAULT_CACHE_PATH
    nodes_path: str = DEFAULT_NODES_PATH
    cache_key_prefix: str = DEFAULT_CACHE_KEY_PREFIX
    max_concurrent: int = DEFAULT_MAX_CONCURRENT
    parallel_siblings: bool = False
    retry: Optional[RetryConfig] = None

    def credentials_configured(self) -> bool:
        return self.credentials is not None and self.credentials.is_complete()

    def get_retry(self) -> RetryConfig:
        """Get retry config, using defaults if not set."""
        return self.retry or RetryConfig()

    def to_persist_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "version": 1,
            "api_url": self.api_url,
            "download_root": self.download_root,
            "cache_path": self.cache_path,
            "nodes_path": self.nodes_path,
            "cache_key_prefix": self.cache_key_prefix,
            "max_concurrent": self.max_concurrent,
            "parallel_siblings": self.parallel_siblings,
        }
        if self.credentials is not None:
            data["credentials"] = self.credentials.to_persist_dict()
        if self.retry is not None:
            data["retry"] = self.retry.to_persist_dict()
        return data

    @classmethod
    def from_persist_dict(cls, data: dict[str, Any]) -> "SyncSettings":
        raw_creds = data.get("credentials")
        credentials = None
        if isinstance(raw_creds, dict):
            credentials = ApiCredentials.from_persist_dict(raw_creds)

        try:
            max_concurrent = int(data.get("max_concurrent", DEFAULT_MAX_CONCURRENT) or DEFAULT_MAX_CONCURRENT)
        except (TypeError, ValueError):
            max_concurrent = DEFAULT_MAX_CONCURRENT
        if max_concurrent < 1:
            max_concurrent = DEFAULT_MAX_CONCURRENT

        raw_retry = data.get("retry")
        retry = None
        if isinstance(raw_retry, dict):
            retry = RetryConfig.from_persist_dict(raw_retry)

        # An empty prefix is allowed; only a missing one falls back.
        prefix = data.get("cache_key_prefix", DEFAULT_CACHE_KEY_PREFIX)
        if not isinstance(prefix, str):
            prefix = DEFAULT_CACHE_KEY_PREFIX

        return cls(
            api_url=_str_or_default(data.get("api_url"), DEFAULT_API_URL),
            credentials=credentials,
            download_root=_str_or_default(data.get("download_root"), DEFAULT_DOWNLOAD_ROOT),
            cache_path=_str_or_default(data.get("cache_path"), DEFAULT_CACHE_PATH),
            nodes_path=_str_or_default(data.get("nodes_path"), DEFAULT_NODES_PATH),
            cache_key_prefix=prefix,
            max_concurrent=max_concurrent,
            parallel_siblings=bool(data.get("parallel_siblings", False)),
            retry=retry,
        )
