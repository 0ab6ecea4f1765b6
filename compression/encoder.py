"""
OpenCV-backed encoder used by the size-targeting search.

The search treats the encoder as a black box: an awaitable
``encode(bitmap, format, quality) -> bytes`` with quality in [0, 1].
"""

import asyncio
from typing import Any, Awaitable, Callable, List

import cv2
import numpy as np

from .formats import extension_for, is_quality_adjustable, normalize_format


# encode(bitmap, format, quality) -> encoded bytes
Encoder = Callable[[Any, str, float], Awaitable[bytes]]


def quality_to_percent(quality: float) -> int:
    """Map a [0, 1] quality to the 1-100 integer scale OpenCV expects."""
    return max(1, min(100, int(round(quality * 100))))


class OpenCVEncoder:
    """
    Encodes BGR numpy arrays with ``cv2.imencode``.

    Encoding runs in a worker thread so the search can await it without
    blocking the event loop.
    """

    def __init__(self, png_compression: int = 9):
        """
        Initialize encoder.

        Args:
            png_compression: zlib level (0-9) for lossless PNG output
        """
        self.png_compression = png_compression

    def encode_params(self, fmt: str, quality: float) -> List[int]:
        """Build the ``cv2.imencode`` parameter list for a format."""
        key = normalize_format(fmt)
        if not is_quality_adjustable(key):
            return [cv2.IMWRITE_PNG_COMPRESSION, self.png_compression]
        if key == "image/webp":
            return [cv2.IMWRITE_WEBP_QUALITY, quality_to_percent(quality)]
        return [cv2.IMWRITE_JPEG_QUALITY, quality_to_percent(quality)]

    def encode_sync(self, bitmap: np.ndarray, fmt: str, quality: float) -> bytes:
        """
        Encode a bitmap synchronously.

        Args:
            bitmap: BGR numpy array
            fmt: Output format identifier
            quality: Quality in [0, 1]

        Returns:
            Encoded image bytes
        """
        success, buffer = cv2.imencode(extension_for(fmt), bitmap,
                                       self.encode_params(fmt, quality))
        if not success:
            raise ValueError(f"OpenCV could not encode image as {fmt}")
        return buffer.tobytes()

    async def __call__(self, bitmap: np.ndarray, fmt: str, quality: float) -> bytes:
        return await asyncio.to_thread(self.encode_sync, bitmap, fmt, quality)
