"""
Common image utility functions for the compressor.
Decoding, upload validation, resizing and display helpers.
"""

import io
import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Tuple, Union

import cv2
import numpy as np
from PIL import Image, UnidentifiedImageError

from compression.exceptions import InvalidRequest


SIZE_UNITS = {"B": 1, "KB": 1024, "MB": 1024 * 1024, "GB": 1024 * 1024 * 1024}


@dataclass(frozen=True)
class Dimensions:
    """Resize to explicit dimensions."""
    width: Optional[int] = None
    height: Optional[int] = None
    maintain_aspect: bool = True


@dataclass(frozen=True)
class Percentage:
    """Resize by a percentage of the original dimensions."""
    scale: float


ResizeSpec = Union[Dimensions, Percentage]


@dataclass
class RasterResult:
    """Pixel buffer produced by rasterize()."""
    bitmap: np.ndarray
    width: int
    height: int


def load_image(source: Union[str, bytes, io.BytesIO, np.ndarray]) -> np.ndarray:
    """
    Load image from various sources.

    Args:
        source: File path, bytes, BytesIO stream, or numpy array

    Returns:
        BGR numpy array
    """
    if isinstance(source, np.ndarray):
        return source

    if isinstance(source, str):
        image = cv2.imread(source, cv2.IMREAD_COLOR)
        if image is None:
            raise InvalidRequest(f"Could not load image from: {source}")
        return image

    if isinstance(source, (bytes, bytearray)):
        nparr = np.frombuffer(source, np.uint8)
        image = cv2.imdecode(nparr, cv2.IMREAD_COLOR) if nparr.size else None
        if image is None:
            raise InvalidRequest("Could not decode image from bytes")
        return image

    if hasattr(source, 'read'):
        if hasattr(source, 'seek'):
            source.seek(0)
        return load_image(source.read())

    raise InvalidRequest(f"Unsupported image source type: {type(source)}")


def detect_mime_type(data: bytes) -> Optional[str]:
    """
    Identify an image's MIME type from its content.

    Returns:
        MIME type such as "image/png", or None if Pillow cannot identify it
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            return Image.MIME.get(img.format)
    except (UnidentifiedImageError, OSError):
        return None


def validate_upload(data: bytes,
                    mime_type: Optional[str],
                    allowed_types: Iterable[str],
                    max_bytes: int) -> str:
    """
    Check an uploaded file's type and size.

    Args:
        data: Raw file contents
        mime_type: Declared MIME type (detected from content when None)
        allowed_types: Accepted MIME types
        max_bytes: Largest accepted upload

    Returns:
        The effective MIME type
    """
    allowed = [t.lower() for t in allowed_types]
    if mime_type is None:
        mime_type = detect_mime_type(data)
    if mime_type is None or mime_type.lower() not in allowed:
        raise InvalidRequest(
            f"Unsupported file type: {mime_type}. Please use JPEG, PNG, or WEBP."
        )
    if len(data) > max_bytes:
        raise InvalidRequest(
            f"File too large: {format_file_size(len(data))}. "
            f"Maximum size is {format_file_size(max_bytes)}."
        )
    return mime_type.lower()


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def resolve_dimensions(width: int, height: int,
                       resize: Optional[ResizeSpec] = None) -> Tuple[int, int]:
    """
    Work out output dimensions for a resize request.

    Args:
        width: Source width
        height: Source height
        resize: Dimensions, Percentage, or None to keep the source size

    Returns:
        (target_width, target_height), each at least 1
    """
    if resize is None:
        return width, height

    if isinstance(resize, Percentage):
        if resize.scale <= 0:
            raise InvalidRequest(f"Scale percentage must be positive, got {resize.scale}")
        new_w = _round_half_up(width * resize.scale / 100)
        new_h = _round_half_up(height * resize.scale / 100)
    elif isinstance(resize, Dimensions):
        for name in ("width", "height"):
            value = getattr(resize, name)
            if value is not None and value <= 0:
                raise InvalidRequest(f"Target {name} must be positive, got {value}")

        if resize.width is None and resize.height is None:
            return width, height

        if not resize.maintain_aspect:
            new_w = resize.width or width
            new_h = resize.height or height
        elif resize.width and resize.height:
            # Fit within the box
            ratio = min(resize.width / width, resize.height / height)
            new_w = _round_half_up(width * ratio)
            new_h = _round_half_up(height * ratio)
        elif resize.width:
            new_w = resize.width
            new_h = _round_half_up(resize.width / (width / height))
        else:
            new_h = resize.height
            new_w = _round_half_up(resize.height * (width / height))
    else:
        raise InvalidRequest(f"Unsupported resize spec: {type(resize)}")

    return max(1, new_w), max(1, new_h)


def rasterize(image: np.ndarray, resize: Optional[ResizeSpec] = None) -> RasterResult:
    """
    Produce a pixel buffer at the requested resolution.

    Always returns a new array; the source image is not modified.

    Args:
        image: BGR numpy array
        resize: Optional resize request

    Returns:
        RasterResult with bitmap and its dimensions
    """
    h, w = image.shape[:2]
    new_w, new_h = resolve_dimensions(w, h, resize)

    if (new_w, new_h) == (w, h):
        return RasterResult(bitmap=image.copy(), width=w, height=h)

    # Choose interpolation based on scaling direction
    if new_w < w or new_h < h:
        interp = cv2.INTER_AREA
    else:
        interp = cv2.INTER_LANCZOS4

    bitmap = cv2.resize(image, (new_w, new_h), interpolation=interp)
    return RasterResult(bitmap=bitmap, width=new_w, height=new_h)


def to_bytes(size: float, unit: str = "KB") -> int:
    """
    Convert a size in KB/MB to bytes (1024 based).

    Args:
        size: Size in the given unit
        unit: B, KB, MB or GB

    Returns:
        Size in whole bytes
    """
    key = unit.strip().upper()
    if key not in SIZE_UNITS:
        raise InvalidRequest(f"Unknown size unit: {unit}")
    return int(round(size * SIZE_UNITS[key]))


def format_file_size(num_bytes: int) -> str:
    """Format a byte count for display, e.g. "1.5 KB"."""
    if num_bytes <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB"]
    i = 0
    while num_bytes >= 1024 ** (i + 1) and i < len(units) - 1:
        i += 1
    text = f"{num_bytes / 1024 ** i:.1f}".rstrip("0").rstrip(".")
    return f"{text} {units[i]}"


def default_target_kb(size_bytes: int, minimum_kb: int = 100) -> int:
    """Suggested target for an upload: half its size in KB, at least minimum_kb."""
    return max(minimum_kb, size_bytes // 1024 // 2)


def bgr_to_pil(image: np.ndarray) -> Image.Image:
    """
    Convert BGR numpy array to PIL Image.

    Args:
        image: BGR numpy array

    Returns:
        PIL Image (RGB)
    """
    rgb = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
    return Image.fromarray(rgb)


def get_image_info(image: np.ndarray) -> Dict[str, Any]:
    """Width, height and channel count of an image."""
    h, w = image.shape[:2]
    channels = image.shape[2] if len(image.shape) > 2 else 1
    return {
        "width": w,
        "height": h,
        "channels": channels,
        "aspect_ratio": round(w / h, 3),
    }
