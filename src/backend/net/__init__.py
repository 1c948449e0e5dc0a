"""
Network utilities: retry with exponential backoff for the file fetcher.
"""

from .retry import (
    RetryConfig,
    RetryableError,
    extract_status_code,
    with_retry_async,
)

__all__ = [
    "RetryConfig",
    "RetryableError",
    "extract_status_code",
    "with_retry_async",
]
