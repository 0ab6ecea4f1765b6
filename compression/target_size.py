"""
Target file size compression.
Finds an encoder quality whose output lands near a requested byte count
using a feasibility pre-check followed by a bounded binary search.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Tuple

from .encoder import Encoder, OpenCVEncoder
from .exceptions import EncodingFailure, InvalidRequest
from .formats import is_quality_adjustable


logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float, str], None]

# Share of the progress range used by bisection iterations; the last 10% is
# reserved for the completion message.
SEARCH_PROGRESS_SPAN = 90.0

# Attempt phases
PHASE_SINGLE = "single"
PHASE_PRECHECK = "precheck"
PHASE_FLOOR = "floor"
PHASE_SEARCH = "search"


@dataclass(frozen=True)
class SearchSettings:
    """Tunable constants of the size-targeting search."""
    max_iterations: int = 12
    tolerance_fraction: float = 0.05
    precheck_quality: float = 0.9
    floor_quality: float = 0.1
    ceiling_quality: float = 1.0
    bisection_margin: float = 0.01

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "SearchSettings":
        """Build settings from the "search" section of a config dict."""
        section = config.get("search", config)
        known = {k: section[k] for k in cls.__dataclass_fields__ if k in section}
        settings = cls(**known)
        settings.validate()
        return settings

    def validate(self) -> None:
        for name in ("precheck_quality", "floor_quality", "ceiling_quality"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise InvalidRequest(f"{name} must be within [0, 1], got {value}")
        if self.floor_quality > self.ceiling_quality:
            raise InvalidRequest(
                f"floor_quality {self.floor_quality} exceeds ceiling_quality {self.ceiling_quality}"
            )
        if not 0.0 < self.bisection_margin < 1.0:
            raise InvalidRequest(f"bisection_margin must be within (0, 1), got {self.bisection_margin}")
        if self.max_iterations <= 0:
            raise InvalidRequest(f"max_iterations must be positive, got {self.max_iterations}")
        if not 0.0 <= self.tolerance_fraction <= 1.0:
            raise InvalidRequest(
                f"tolerance_fraction must be within [0, 1], got {self.tolerance_fraction}"
            )


@dataclass(frozen=True)
class SearchRequest:
    """A single size-targeting request. Not modified while a search runs."""
    bitmap: Any
    format: str
    target_bytes: int
    max_iterations: int = 12
    tolerance_fraction: float = 0.05

    def validate(self) -> None:
        """Raise InvalidRequest for malformed requests."""
        if self.bitmap is None:
            raise InvalidRequest("bitmap is required")
        if not _is_positive_int(self.target_bytes):
            raise InvalidRequest(f"target_bytes must be a positive integer, got {self.target_bytes!r}")
        if not _is_positive_int(self.max_iterations):
            raise InvalidRequest(
                f"max_iterations must be a positive integer, got {self.max_iterations!r}"
            )
        if not 0.0 <= self.tolerance_fraction <= 1.0:
            raise InvalidRequest(
                f"tolerance_fraction must be within [0, 1], got {self.tolerance_fraction!r}"
            )

    @property
    def tolerance_bytes(self) -> float:
        return self.target_bytes * self.tolerance_fraction


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


@dataclass(frozen=True)
class Candidate:
    """One encoder output."""
    quality: float
    size_bytes: int
    payload: bytes = field(repr=False)

    def error(self, target_bytes: int) -> int:
        """Absolute distance from the target size in bytes."""
        return abs(self.size_bytes - target_bytes)


class Attempt(NamedTuple):
    """Trace entry for one encoder call."""
    phase: str
    quality: float
    size_bytes: int


@dataclass
class SearchState:
    """Mutable state of one in-flight search."""
    lower_bound: float
    upper_bound: float
    best_candidate: Optional[Candidate] = None
    iteration_count: int = 0
    attempts: List[Attempt] = field(default_factory=list)

    def offer(self, candidate: Candidate, target_bytes: int) -> bool:
        """
        Keep the candidate if it is strictly closer to the target than the
        current best.

        Returns:
            True if the candidate became the new best
        """
        if (self.best_candidate is None or
                candidate.error(target_bytes) < self.best_candidate.error(target_bytes)):
            self.best_candidate = candidate
            return True
        return False


@dataclass(frozen=True)
class SearchResult:
    """Outcome of a size-targeting search."""
    candidate: Candidate
    iterations_used: int
    feasible: bool
    attempts: Tuple[Attempt, ...] = ()

    @property
    def quality(self) -> float:
        return self.candidate.quality

    @property
    def size_bytes(self) -> int:
        return self.candidate.size_bytes

    @property
    def payload(self) -> bytes:
        return self.candidate.payload

    @property
    def tested_qualities(self) -> List[float]:
        """Qualities sampled by the bisection loop, in order."""
        return [a.quality for a in self.attempts if a.phase == PHASE_SEARCH]


class ProgressReporter:
    """
    Forwards progress to an optional callback, clamped to [0, 100] and
    never decreasing.
    """

    def __init__(self, callback: Optional[ProgressCallback] = None):
        self.callback = callback
        self.last = 0.0

    def __call__(self, percentage: float, message: str) -> None:
        if self.callback is None:
            return
        percentage = max(self.last, min(100.0, max(0.0, float(percentage))))
        self.last = percentage
        self.callback(percentage, message)


def scaled_progress(callback: Optional[ProgressCallback],
                    start: float, end: float) -> Optional[ProgressCallback]:
    """
    Map a nested phase's 0-100 progress into [start, end] of the caller's
    range.

    Args:
        callback: Outer progress callback (None stays None)
        start: Outer percentage at which the phase begins
        end: Outer percentage at which the phase ends

    Returns:
        Callback accepting 0-100 progress for the phase
    """
    if callback is None:
        return None

    span = end - start

    def report(percentage: float, message: str) -> None:
        callback(start + percentage * span / 100.0, message)

    return report


class TargetSizeCompressor:
    """
    Re-encodes a bitmap so its size lands near a target byte count.

    Features:
    - Single pass-through encode for formats without a quality knob
    - Feasibility pre-check before committing to the search
    - Binary search over quality with tolerance early-exit
    """

    def __init__(self, encoder: Optional[Encoder] = None,
                 settings: Optional[SearchSettings] = None):
        """
        Initialize compressor.

        Args:
            encoder: Awaitable encode(bitmap, format, quality) -> bytes
            settings: Search constants (default: SearchSettings())
        """
        self.encoder = encoder if encoder is not None else OpenCVEncoder()
        self.settings = settings if settings is not None else SearchSettings()
        self.settings.validate()

    def build_request(self, bitmap: Any, fmt: str, target_bytes: int,
                      max_iterations: Optional[int] = None,
                      tolerance_fraction: Optional[float] = None) -> SearchRequest:
        """Create a request, filling unset limits from the settings."""
        return SearchRequest(
            bitmap=bitmap,
            format=fmt,
            target_bytes=target_bytes,
            max_iterations=self.settings.max_iterations if max_iterations is None else max_iterations,
            tolerance_fraction=(self.settings.tolerance_fraction
                                if tolerance_fraction is None else tolerance_fraction),
        )

    async def _encode(self, request: SearchRequest, state: SearchState,
                      quality: float, iteration: int, phase: str) -> Candidate:
        try:
            payload = bytes(await self.encoder(request.bitmap, request.format, quality))
        except Exception as e:
            raise EncodingFailure(quality, iteration, request.format, str(e)) from e

        candidate = Candidate(quality=quality, size_bytes=len(payload), payload=payload)
        state.attempts.append(Attempt(phase, quality, candidate.size_bytes))
        logger.debug("%s encode: quality=%.4f size=%d target=%d",
                     phase, quality, candidate.size_bytes, request.target_bytes)
        return candidate

    def _result(self, state: SearchState, candidate: Candidate,
                iterations: int, feasible: bool) -> SearchResult:
        logger.info("Search finished: quality=%.4f size=%d iterations=%d feasible=%s",
                    candidate.quality, candidate.size_bytes, iterations, feasible)
        return SearchResult(candidate=candidate, iterations_used=iterations,
                            feasible=feasible, attempts=tuple(state.attempts))

    async def search(self, request: SearchRequest,
                     on_progress: Optional[ProgressCallback] = None) -> SearchResult:
        """
        Find a quality whose encoded size is within tolerance of the target.

        Args:
            request: What to encode and how large it should be
            on_progress: Optional callback(percentage, message)

        Returns:
            SearchResult with the chosen candidate and metadata
        """
        request.validate()
        settings = self.settings
        progress = ProgressReporter(on_progress)
        state = SearchState(lower_bound=settings.floor_quality,
                            upper_bound=settings.ceiling_quality)
        target = request.target_bytes

        # Formats without a quality knob are encoded once as-is
        if not is_quality_adjustable(request.format):
            candidate = await self._encode(request, state, 1.0, 1, PHASE_SINGLE)
            state.offer(candidate, target)
            progress(100, f"{request.format} processed (quality adjustment not applicable)")
            return self._result(state, candidate, 1, True)

        progress(0, "Starting intelligent compression...")

        # Pre-check and floor encodes never become the best candidate; only
        # bisection samples compete for it.
        precheck = await self._encode(request, state, settings.precheck_quality, 0, PHASE_PRECHECK)
        if precheck.size_bytes > target:
            floor = await self._encode(request, state, settings.floor_quality, 1, PHASE_FLOOR)
            if floor.size_bytes > target:
                # The floor cannot be crossed: the floor encode is the answer
                progress(100, f"Compression completed: {floor.quality * 100:.1f}% quality")
                return self._result(state, floor, 1, False)

        tolerance = request.tolerance_bytes
        margin = settings.bisection_margin

        while (state.lower_bound <= state.upper_bound and
               state.iteration_count < request.max_iterations):
            state.iteration_count += 1
            quality = (state.lower_bound + state.upper_bound) / 2

            progress(state.iteration_count / request.max_iterations * SEARCH_PROGRESS_SPAN,
                     f"Optimizing quality: {quality * 100:.1f}%")

            candidate = await self._encode(request, state, quality,
                                           state.iteration_count, PHASE_SEARCH)
            state.offer(candidate, target)

            if candidate.error(target) <= tolerance:
                progress(100, f"Optimal quality found: {quality * 100:.1f}%")
                return self._result(state, candidate, state.iteration_count, True)

            if candidate.size_bytes > target:
                state.upper_bound = quality - margin
            else:
                state.lower_bound = quality + margin

        best = state.best_candidate
        progress(100, f"Compression completed: {best.quality * 100:.1f}% quality")
        return self._result(state, best, state.iteration_count, False)


async def search(bitmap: Any,
                 target_bytes: int,
                 format: str,
                 max_iterations: int = 12,
                 tolerance_fraction: float = 0.05,
                 on_progress: Optional[ProgressCallback] = None,
                 encoder: Optional[Encoder] = None) -> SearchResult:
    """
    Search for an encoding of ``bitmap`` close to ``target_bytes``.

    Args:
        bitmap: Encodable surface (BGR numpy array for the default encoder)
        target_bytes: Desired output size in bytes
        format: Output format identifier, e.g. "image/jpeg"
        max_iterations: Bisection iteration cap
        tolerance_fraction: Acceptable deviation as a fraction of the target
        on_progress: Optional callback(percentage, message)
        encoder: Encoder to use (default: OpenCVEncoder)

    Returns:
        SearchResult
    """
    compressor = TargetSizeCompressor(encoder)
    request = SearchRequest(bitmap=bitmap, format=format, target_bytes=target_bytes,
                            max_iterations=max_iterations,
                            tolerance_fraction=tolerance_fraction)
    return await compressor.search(request, on_progress)


def compress_to_target_size(bitmap: Any,
                            target_bytes: int,
                            format: str = "image/jpeg",
                            tolerance_fraction: float = 0.05) -> Tuple[bytes, int, float]:
    """
    Convenience function to compress a bitmap to a target size.

    Must not be called from inside a running event loop.

    Returns:
        Tuple of (encoded_bytes, size_bytes, quality_used)
    """
    result = asyncio.run(search(bitmap, target_bytes, format,
                                tolerance_fraction=tolerance_fraction))
    return result.payload, result.size_bytes, result.quality
