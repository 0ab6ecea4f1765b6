"""Target-size compression modules.

The end-to-end flow lives in compression.pipeline, which depends on utils.
"""

from .exceptions import CompressionError, InvalidRequest, EncodingFailure
from .formats import FormatKind, classify_format, is_quality_adjustable
from .encoder import OpenCVEncoder
from .target_size import (
    SearchSettings,
    SearchRequest,
    Candidate,
    SearchState,
    SearchResult,
    TargetSizeCompressor,
    scaled_progress,
    search,
    compress_to_target_size,
)

__all__ = [
    'CompressionError',
    'InvalidRequest',
    'EncodingFailure',
    'FormatKind',
    'classify_format',
    'is_quality_adjustable',
    'OpenCVEncoder',
    'SearchSettings',
    'SearchRequest',
    'Candidate',
    'SearchState',
    'SearchResult',
    'TargetSizeCompressor',
    'scaled_progress',
    'search',
    'compress_to_target_size',
]
