"""
End-to-end compression flow: validate, decode, resize, search.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from utils.image_utils import (
    ResizeSpec,
    load_image,
    rasterize,
    to_bytes,
    validate_upload,
)

from .encoder import Encoder, OpenCVEncoder
from .target_size import (
    Attempt,
    ProgressCallback,
    ProgressReporter,
    SearchSettings,
    TargetSizeCompressor,
    scaled_progress,
)


logger = logging.getLogger(__name__)


@dataclass
class CompressionOptions:
    """What the caller asked for."""
    target_size: float
    size_unit: str = "KB"
    format: str = "image/jpeg"
    resize: Optional[ResizeSpec] = None
    mime_type: Optional[str] = None


@dataclass
class CompressionOutcome:
    """Result of compress_image()."""
    payload: bytes = field(repr=False)
    quality: float
    iterations: int
    feasible: bool
    original_size: int
    compressed_size: int
    compression_ratio: float  # Percent saved, negative if the file grew
    format: str
    dimensions: Tuple[int, int]
    target_bytes: int
    attempts: Tuple[Attempt, ...] = ()


def compression_ratio(original_size: int, compressed_size: int) -> float:
    """Percentage of the original size saved, to one decimal."""
    if original_size <= 0:
        return 0.0
    return round((original_size - compressed_size) / original_size * 100, 1)


async def compress_image(data: bytes,
                         options: CompressionOptions,
                         on_progress: Optional[ProgressCallback] = None,
                         config: Optional[Dict[str, Any]] = None,
                         encoder: Optional[Encoder] = None) -> CompressionOutcome:
    """
    Compress an uploaded image towards a target size.

    Args:
        data: Raw uploaded file contents
        options: Target size, format and optional resize
        on_progress: Optional callback(percentage, message)
        config: Effective configuration (default: config.load_config())
        encoder: Encoder override, mainly for tests

    Returns:
        CompressionOutcome with the encoded bytes and statistics
    """
    if config is None:
        from config import load_config
        config = load_config()

    progress = ProgressReporter(on_progress)
    upload = config["upload"]

    validate_upload(data, options.mime_type, upload["allowed_types"], upload["max_bytes"])
    target_bytes = to_bytes(options.target_size, options.size_unit)

    progress(10, "Loading image...")
    image = load_image(data)

    progress(25, "Processing image...")
    raster = rasterize(image, options.resize)
    logger.info("Rasterized %dx%d -> %dx%d", image.shape[1], image.shape[0],
                raster.width, raster.height)

    progress(40, "Starting compression optimization...")

    if encoder is None:
        encoder = OpenCVEncoder(config.get("encoder", {}).get("png_compression", 9))
    compressor = TargetSizeCompressor(encoder, SearchSettings.from_config(config))
    request = compressor.build_request(raster.bitmap, options.format, target_bytes)
    result = await compressor.search(request, scaled_progress(progress, 40, 90))

    progress(100, "Compression completed successfully!")

    return CompressionOutcome(
        payload=result.payload,
        quality=result.quality,
        iterations=result.iterations_used,
        feasible=result.feasible,
        original_size=len(data),
        compressed_size=result.size_bytes,
        compression_ratio=compression_ratio(len(data), result.size_bytes),
        format=options.format,
        dimensions=(raster.width, raster.height),
        target_bytes=target_bytes,
        attempts=result.attempts,
    )
