"""
Exponential backoff for transient transport errors (429, 5xx).

Used by the remote file fetcher only; the media sync core never retries.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Set, TypeVar

DEFAULT_MAX_RETRIES = 2
DEFAULT_BASE_DELAY_S = 1.0
DEFAULT_MAX_DELAY_S = 30.0
DEFAULT_JITTER_FACTOR = 0.25

DEFAULT_RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})

T = TypeVar("T")
logger = logging.getLogger(__name__)


class RetryableError(Exception):
    """
    Transport error that may succeed on a later attempt.

    Attributes:
        status_code: Optional HTTP status code.
        should_retry: Whether this error should trigger another attempt.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        should_retry: bool = True,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.should_retry = should_retry


@dataclass
class RetryConfig:
    """
    Attributes:
        max_retries: Additional attempts after the first one (0 = no retries).
        base_delay_s: Delay before the first retry.
        max_delay_s: Cap for the exponential delay.
        jitter_factor: Random jitter as a fraction of the computed delay.
        retryable_status_codes: HTTP statuses worth another attempt.
        enabled: If False, the call is made exactly once.
    """
    max_retries: int = DEFAULT_MAX_RETRIES
    base_delay_s: float = DEFAULT_BASE_DELAY_S
    max_delay_s: float = DEFAULT_MAX_DELAY_S
    jitter_factor: float = DEFAULT_JITTER_FACTOR
    retryable_status_codes: Set[int] = field(
        default_factory=lambda: set(DEFAULT_RETRYABLE_STATUS_CODES)
    )
    enabled: bool = True

    def to_persist_dict(self) -> dict:
        return {
            "max_retries": self.max_retries,
            "base_delay_s": self.base_delay_s,
            "max_delay_s": self.max_delay_s,
            "jitter_factor": self.jitter_factor,
            "retryable_status_codes": sorted(self.retryable_status_codes),
            "enabled": self.enabled,
        }

    @classmethod
    def from_persist_dict(cls, data: dict) -> "RetryConfig":
        def _num(key: str, default: float, cast: Callable[[Any], Any]) -> Any:
            try:
                return cast(data.get(key, default))
            except (TypeError, ValueError):
                return default

        max_retries = _num("max_retries", DEFAULT_MAX_RETRIES, int)
        base_delay = _num("base_delay_s", DEFAULT_BASE_DELAY_S, float)
        max_delay = _num("max_delay_s", DEFAULT_MAX_DELAY_S, float)
        jitter_factor = _num("jitter_factor", DEFAULT_JITTER_FACTOR, float)

        codes: Set[int] = set()
        raw_codes = data.get("retryable_status_codes")
        if isinstance(raw_codes, (list, tuple)):
            for code in raw_codes:
                try:
                    codes.add(int(code))
                except (TypeError, ValueError):
                    continue
        if not codes:
            codes = set(DEFAULT_RETRYABLE_STATUS_CODES)

        return cls(
            max_retries=max(0, max_retries),
            base_delay_s=max(0.0, base_delay),
            max_delay_s=max(0.0, max_delay),
            jitter_factor=max(0.0, min(1.0, jitter_factor)),
            retryable_status_codes=codes,
            enabled=bool(data.get("enabled", True)),
        )

    def compute_delay(self, attempt: int) -> float:
        """base * 2^attempt, capped at max_delay_s, plus jitter."""
        delay = min(self.base_delay_s * (2 ** attempt), self.max_delay_s)
        return delay + delay * random.uniform(0, self.jitter_factor)

    def is_retryable(self, exc: BaseException) -> bool:
        if isinstance(exc, RetryableError):
            return exc.should_retry
        status = extract_status_code(exc)
        return status is not None and status in self.retryable_status_codes


async def with_retry_async(
    func: Callable[[], Awaitable[T]],
    *,
    config: Optional[RetryConfig] = None,
) -> T:
    """
    Await `func()` and retry it on retryable errors.

    Raises:
        The last exception once retries are exhausted, or immediately for
        non-retryable errors.
    """
    cfg = config or RetryConfig()
    attempts = cfg.max_retries + 1 if cfg.enabled else 1

    for attempt in range(attempts):
        try:
            return await func()
        except Exception as exc:
            if attempt + 1 >= attempts or not cfg.is_retryable(exc):
                raise
            delay = cfg.compute_delay(attempt)
            logger.warning(
                "Retry %d/%d after %.2fs: %s",
                attempt + 1,
                cfg.max_retries,
                delay,
                exc,
            )
            await asyncio.sleep(delay)

    raise RuntimeError("Retry logic error: no result or exception")


def extract_status_code(exc: BaseException) -> Optional[int]:
    """HTTP status from RetryableError, urllib HTTPError or response-carrying errors."""
    for attr in ("status_code", "code", "status"):
        value = getattr(exc, attr, None)
        if value is None:
            continue
        try:
            return int(value)
        except (TypeError, ValueError):
            continue

    response = getattr(exc, "response", None)
    if response is not None and getattr(response, "status_code", None) is not None:
        try:
            return int(response.status_code)
        except (TypeError, ValueError):
            pass
    return None
