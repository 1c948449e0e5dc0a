"""
Media domain models (pure logic layer).

Content records arrive from the upstream API as untyped JSON-like trees. This
module gives the traversal a single explicit discriminator (`classify_value`)
and gives the resolver structured views of an image descriptor and of the
persisted cache record.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional


# Field attached to a resolved image descriptor, pointing at the local file node.
LOCAL_FILE_FIELD = "localFile___NODE"

# Presence of this key marks a mapping as an image descriptor.
MIME_FIELD = "mime"

DEFAULT_CACHE_KEY_PREFIX = "strapi-media-"


class ValueKind(str, Enum):
    IMAGE = "image"
    SEQUENCE = "sequence"
    MAPPING = "mapping"
    SCALAR = "scalar"


_SCALAR_TYPES = (str, bytes, bytearray, int, float, bool, type(None))
_SEQUENCE_TYPES = (list, tuple, set, frozenset)


def classify_value(value: Any) -> ValueKind:
    """
    Classify a visited value for the traversal.

    Order matters: a mapping carrying a `mime` key is an image even though it is
    also a mapping. Plain objects with attributes are walked like mappings.
    """
    if isinstance(value, Mapping):
        if MIME_FIELD in value:
            return ValueKind.IMAGE
        return ValueKind.MAPPING
    if isinstance(value, _SCALAR_TYPES):
        return ValueKind.SCALAR
    if isinstance(value, _SEQUENCE_TYPES):
        return ValueKind.SEQUENCE
    if isinstance(value, type):
        return ValueKind.SCALAR
    if hasattr(value, "__dict__"):
        return ValueKind.MAPPING
    return ValueKind.SCALAR


def iter_children(value: Any, kind: ValueKind) -> list[Any]:
    """Child values of a SEQUENCE or MAPPING node."""
    if kind == ValueKind.SEQUENCE:
        return list(value)
    if kind == ValueKind.MAPPING:
        if isinstance(value, Mapping):
            return list(value.values())
        return list(vars(value).values())
    return []


def _optional_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class CustomTransform:
    """Resize/format overrides used only when building the source URL."""
    width: Optional[int] = None
    height: Optional[int] = None
    format: Optional[str] = None

    def has_resize(self) -> bool:
        return self.width is not None or self.height is not None

    def is_empty(self) -> bool:
        return not self.has_resize() and self.format is None

    @staticmethod
    def from_mapping(data: Mapping[str, Any]) -> "CustomTransform":
        fmt = _optional_str(data.get("format"))
        return CustomTransform(
            width=_optional_int(data.get("width")),
            height=_optional_int(data.get("height")),
            format=(fmt.lstrip(".") if fmt else None),
        )


def _is_populated(value: Any) -> bool:
    return value is not None and value != ""


@dataclass(frozen=True)
class ImageDescriptor:
    """
    Structured, read-only view over a raw image mapping.

    The raw mapping is kept so the resolver can attach the local file field to
    the caller's record.
    """
    id: Any
    mime: Optional[str]
    url: str
    ext: Optional[str] = None
    name: Optional[str] = None
    updated_at: Any = None          # "updatedAt"
    updated_at_legacy: Any = None   # "updated_at"
    custom: Optional[CustomTransform] = None
    raw: Any = field(default=None, repr=False, compare=False)

    @property
    def revision_marker(self) -> Any:
        """`updatedAt` when populated, else `updated_at`, else None."""
        if _is_populated(self.updated_at):
            return self.updated_at
        if _is_populated(self.updated_at_legacy):
            return self.updated_at_legacy
        return None

    @staticmethod
    def from_mapping(data: Mapping[str, Any]) -> "ImageDescriptor":
        raw_custom = data.get("__custom", data.get("custom"))
        custom = None
        if isinstance(raw_custom, Mapping):
            custom = CustomTransform.from_mapping(raw_custom)
            if custom.is_empty():
                custom = None

        url = data.get("url")
        return ImageDescriptor(
            id=data.get("id"),
            mime=_optional_str(data.get(MIME_FIELD)),
            url=(str(url) if url is not None else ""),
            ext=_optional_str(data.get("ext")),
            name=_optional_str(data.get("name")),
            updated_at=data.get("updatedAt"),
            updated_at_legacy=data.get("updated_at"),
            custom=custom,
            raw=data,
        )


def media_cache_key(image_id: Any, prefix: str = DEFAULT_CACHE_KEY_PREFIX) -> str:
    return f"{prefix}{image_id}"


@dataclass(frozen=True)
class CacheRecord:
    """Persisted `{fileNodeID, updatedAt}` pair for one image."""
    file_node_id: Optional[str]
    updated_at: Any = None

    def matches(self, revision_marker: Any) -> bool:
        """
        Reusable iff a node id was stored and the markers are strictly equal.

        A missing marker never matches, so descriptors without one always
        re-download.
        """
        if not self.file_node_id:
            return False
        if revision_marker is None:
            return False
        return self.updated_at == revision_marker

    def to_persist_dict(self) -> dict[str, Any]:
        return {
            "fileNodeID": self.file_node_id,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_persist_dict(cls, data: Any) -> Optional["CacheRecord"]:
        if not isinstance(data, Mapping):
            return None
        node_id = data.get("fileNodeID")
        return cls(
            file_node_id=(str(node_id) if node_id else None),
            updated_at=data.get("updatedAt"),
        )
