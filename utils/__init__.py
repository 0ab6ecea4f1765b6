"""Utility modules for image handling and visualization."""

from .image_utils import (
    Dimensions,
    Percentage,
    ResizeSpec,
    RasterResult,
    load_image,
    validate_upload,
    rasterize,
    resolve_dimensions,
    to_bytes,
    format_file_size,
    default_target_kb,
    bgr_to_pil,
    get_image_info,
)
from .visualization import (
    plot_search_trace,
    create_size_comparison
)

__all__ = [
    'Dimensions',
    'Percentage',
    'ResizeSpec',
    'RasterResult',
    'load_image',
    'validate_upload',
    'rasterize',
    'resolve_dimensions',
    'to_bytes',
    'format_file_size',
    'default_target_kb',
    'bgr_to_pil',
    'get_image_info',
    'plot_search_trace',
    'create_size_comparison'
]
