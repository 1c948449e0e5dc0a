"""
Media descriptor models and source URL construction (pure logic).
"""

from .models import (
    DEFAULT_CACHE_KEY_PREFIX,
    LOCAL_FILE_FIELD,
    CacheRecord,
    CustomTransform,
    ImageDescriptor,
    ValueKind,
    classify_value,
    iter_children,
    media_cache_key,
)
from .urls import build_image_url

__all__ = [
    "DEFAULT_CACHE_KEY_PREFIX",
    "LOCAL_FILE_FIELD",
    "CacheRecord",
    "CustomTransform",
    "ImageDescriptor",
    "ValueKind",
    "classify_value",
    "iter_children",
    "media_cache_key",
    "build_image_url",
]
