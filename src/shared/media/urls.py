"""
Source URL construction for image descriptors.

Relative upload paths are resolved against the API base URL. Optional custom
transforms target Cloudinary-style delivery URLs:

    https://res.cloudinary.com/<cloud>/image/upload/<slot>/<file>

where <slot> holds a version (v123) or a transformation (w_200,c_scale).
Segments are located by name rather than by position; URLs that do not have
this shape are returned without the resize.
"""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urlsplit, urlunsplit

from .models import CustomTransform, ImageDescriptor


ABSOLUTE_SCHEMES = frozenset({"http", "https"})
DELIVERY_SEGMENT = "upload"

logger = logging.getLogger(__name__)


def is_absolute_url(url: str) -> bool:
    return urlsplit(url).scheme.lower() in ABSOLUTE_SCHEMES


def join_api_url(api_url: str, url: str) -> str:
    if is_absolute_url(url):
        return url
    if not api_url:
        return url
    return api_url.rstrip("/") + "/" + url.lstrip("/")


def build_transformation(custom: CustomTransform) -> str:
    """w_<W>,h_<H>,c_scale with missing dimensions omitted."""
    parts = []
    if custom.width is not None:
        parts.append(f"w_{custom.width}")
    if custom.height is not None:
        parts.append(f"h_{custom.height}")
    parts.append("c_scale")
    return ",".join(parts)


def replace_extension(filename: str, fmt: str) -> str:
    stem, dot, _ = filename.rpartition(".")
    if not dot:
        stem = filename
    return f"{stem}.{fmt}"


def _apply_resize(segments: list[str], transformation: str) -> Optional[list[str]]:
    try:
        upload_idx = segments.index(DELIVERY_SEGMENT)
    except ValueError:
        return None

    file_idx = len(segments) - 1
    if file_idx <= upload_idx:
        return None

    result = list(segments)
    if file_idx - upload_idx >= 2:
        result[upload_idx + 1] = transformation
    else:
        result.insert(upload_idx + 1, transformation)
    return result


def apply_custom_transform(url: str, custom: CustomTransform) -> str:
    parts = urlsplit(url)
    segments = parts.path.split("/")

    if custom.has_resize():
        resized = _apply_resize(segments, build_transformation(custom))
        if resized is None:
            logger.debug("No %r segment in %s, skipping resize", DELIVERY_SEGMENT, url)
        else:
            segments = resized

    if custom.format and segments and segments[-1]:
        segments[-1] = replace_extension(segments[-1], custom.format)

    return urlunsplit(parts._replace(path="/".join(segments)))


def build_image_url(image: ImageDescriptor, api_url: str) -> str:
    """Fully-qualified source URL for a descriptor, with custom transforms applied."""
    source_url = join_api_url(api_url, image.url)
    if image.custom is None:
        return source_url
    return apply_custom_transform(source_url, image.custom)
