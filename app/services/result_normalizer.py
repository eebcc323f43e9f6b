"""
Normalizes provider result payloads into a uniform image list.

Edit models report outputs either as a plural `images` list or as a single
`image` object. The payload is classified first, then each shape is handled
explicitly. A completed job with no outputs (e.g. content-filtered) yields an
empty list, not an error.
"""
from enum import Enum
from typing import Any, List, Optional

from app.core.logging import get_safe_logger
from app.schemas.image_job import ImageDescriptor

logger = get_safe_logger(__name__)


class ResultShape(str, Enum):
    PLURAL = "plural"
    SINGULAR = "singular"
    EMPTY = "empty"


def classify_result(payload: Any) -> ResultShape:
    """A populated plural list wins over a singular object."""
    if not isinstance(payload, dict):
        return ResultShape.EMPTY

    images = payload.get("images")
    if isinstance(images, list) and images:
        return ResultShape.PLURAL

    if isinstance(payload.get("image"), dict):
        return ResultShape.SINGULAR

    return ResultShape.EMPTY


def _coerce_str_or_none(v: Any) -> Optional[str]:
    if isinstance(v, str):
        s = v.strip()
        return s if s else None
    return None


def _coerce_int_or_none(v: Any) -> Optional[int]:
    # bool is an int subclass; never a valid size
    if isinstance(v, bool):
        return None
    if isinstance(v, int):
        return v
    if isinstance(v, float) and v.is_integer():
        return int(v)
    return None


def to_descriptor(raw: Any) -> Optional[ImageDescriptor]:
    """Map one provider image object; None when it has no usable URL."""
    if not isinstance(raw, dict):
        return None
    url = _coerce_str_or_none(raw.get("url"))
    if url is None:
        return None
    return ImageDescriptor(
        url=url,
        content_type=_coerce_str_or_none(raw.get("content_type")),
        file_name=_coerce_str_or_none(raw.get("file_name")),
        file_size_bytes=_coerce_int_or_none(raw.get("file_size")),
        width=_coerce_int_or_none(raw.get("width")),
        height=_coerce_int_or_none(raw.get("height")),
    )


def normalize_result(payload: Any) -> List[ImageDescriptor]:
    """Produce an ordered descriptor list in provider order."""
    shape = classify_result(payload)

    if shape == ResultShape.PLURAL:
        raw_images = payload["images"]
    elif shape == ResultShape.SINGULAR:
        raw_images = [payload["image"]]
    elif shape == ResultShape.EMPTY:
        raw_images = []
    else:
        raise AssertionError(f"Unhandled result shape: {shape}")

    descriptors = []
    for raw in raw_images:
        descriptor = to_descriptor(raw)
        if descriptor is None:
            logger.warning("Skipping provider image without url", shape=shape.value)
            continue
        descriptors.append(descriptor)

    return descriptors
