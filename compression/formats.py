"""
Output format classification.

Decides whether a format honours a quality parameter and maps format
identifiers to the file extensions OpenCV encodes by.
"""

import logging
from enum import Enum
from typing import Dict


logger = logging.getLogger(__name__)


class FormatKind(Enum):
    """Whether an encoder trades a quality knob for output size."""
    QUALITYLESS = "qualityless"
    QUALITY_ADJUSTABLE = "quality-adjustable"


JPEG = "image/jpeg"
PNG = "image/png"
WEBP = "image/webp"

# Known formats; anything else falls back to quality-adjustable
FORMAT_KINDS: Dict[str, FormatKind] = {
    JPEG: FormatKind.QUALITY_ADJUSTABLE,
    "image/jpg": FormatKind.QUALITY_ADJUSTABLE,
    WEBP: FormatKind.QUALITY_ADJUSTABLE,
    PNG: FormatKind.QUALITYLESS,
}

EXTENSIONS: Dict[str, str] = {
    JPEG: ".jpg",
    "image/jpg": ".jpg",
    WEBP: ".webp",
    PNG: ".png",
}

FORMAT_LABELS: Dict[str, str] = {
    JPEG: "JPEG",
    WEBP: "WebP",
    PNG: "PNG",
}


def normalize_format(fmt: str) -> str:
    """Lower-case and strip a format identifier."""
    return (fmt or "").strip().lower()


def classify_format(fmt: str) -> FormatKind:
    """
    Classify a format identifier.

    Unknown identifiers are treated as quality-adjustable.

    Args:
        fmt: MIME-style identifier such as "image/jpeg"

    Returns:
        FormatKind for the identifier
    """
    key = normalize_format(fmt)
    kind = FORMAT_KINDS.get(key)
    if kind is None:
        logger.debug("Unknown format %r, assuming quality is adjustable", fmt)
        return FormatKind.QUALITY_ADJUSTABLE
    return kind


def is_quality_adjustable(fmt: str) -> bool:
    """Return True if the format honours a quality parameter."""
    return classify_format(fmt) is FormatKind.QUALITY_ADJUSTABLE


def extension_for(fmt: str) -> str:
    """Return the encoder file extension for a format identifier."""
    key = normalize_format(fmt)
    if key in EXTENSIONS:
        return EXTENSIONS[key]
    subtype = key.split("/")[-1] or "jpg"
    return f".{subtype}"
