"""
Error types raised by the compression core.
"""

from typing import Optional


class CompressionError(Exception):
    """Base class for failures raised by the compression core."""


class InvalidRequest(CompressionError, ValueError):
    """A request was rejected before any encoding was attempted."""


class EncodingFailure(CompressionError):
    """
    The encoder rejected or raised for a bitmap/format/quality combination.
    
    Attributes:
        quality: Quality value that was being attempted
        iteration: Bisection iteration (0 for the pre-check, 1 for the floor
            and qualityless encodes)
        format: Output format identifier
    """
    
    def __init__(self, quality: float, iteration: int,
                 format: Optional[str] = None, reason: str = ""):
        self.quality = quality
        self.iteration = iteration
        self.format = format
        message = f"Encoding failed at quality {quality:.3f} (iteration {iteration})"
        if format:
            message += f" for {format}"
        if reason:
            message += f": {reason}"
        super().__init__(message)
