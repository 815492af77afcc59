"""Pure compression search plan.

Every function here is a deterministic transformation with no I/O and no
image library.  The :class:`ImageCompressor` walks the plan produced by
:func:`compression_attempts` and stops at the first encode that fits.

Plan order:

1. **Initial guess**: scale from the byte ratio, quality 85.
2. **Ladder**: descending scales, several qualities per scale.
3. **Last resort**: tiny and low quality, accepted regardless of size.
"""

from __future__ import annotations

import math
from collections.abc import Iterator

from blossom_media.core.models import CompressionAttempt, ImageMediaType

SAFETY_MARGIN: float = 0.85
"""Fraction of the theoretical scale kept to absorb encoder overhead."""

INITIAL_QUALITY: int = 85

LADDER_SCALES: tuple[float, ...] = (0.7, 0.5, 0.4, 0.3, 0.2)
LADDER_QUALITIES: tuple[int, ...] = (80, 70, 60, 50, 40)

LAST_RESORT = CompressionAttempt(scale=0.15, quality=30)


def initial_scale(size: int, size_limit: int) -> float:
    """Scale factor expected to bring *size* bytes under *size_limit*.

    Byte size grows roughly with pixel area, so the linear scale is the
    square root of the byte ratio.
    """
    if size <= 0:
        return 1.0
    return math.sqrt(size_limit / size) * SAFETY_MARGIN


def ladder() -> Iterator[CompressionAttempt]:
    """Yield the fixed ladder, scale-major, in descending order."""
    for scale in LADDER_SCALES:
        for quality in LADDER_QUALITIES:
            yield CompressionAttempt(scale=scale, quality=quality)


def compression_attempts(size: int, size_limit: int) -> Iterator[CompressionAttempt]:
    """Yield the initial guess followed by the ladder.

    The last resort is not included; callers apply it once the iterator
    is exhausted.
    """
    yield CompressionAttempt(scale=initial_scale(size, size_limit), quality=INITIAL_QUALITY)
    yield from ladder()


def scaled_width(width: int, scale: float) -> int:
    """Target width for *scale*, never enlarged and never below one pixel."""
    if scale >= 1.0:
        return width
    return max(1, round(width * scale))


# ---------------------------------------------------------------------------
# Format policy
# ---------------------------------------------------------------------------

def primary_format(media_type: ImageMediaType) -> str:
    """Encoder format tried first for *media_type*.

    PNG stays lossless and GIF is flattened to a static PNG; every other
    type goes straight to JPEG.
    """
    if media_type in (ImageMediaType.PNG, ImageMediaType.GIF):
        return "PNG"
    return "JPEG"


def allows_jpeg_fallback(media_type: ImageMediaType) -> bool:
    """Whether an oversized lossless encode may be retried as JPEG."""
    return primary_format(media_type) == "PNG"


def media_type_for_format(image_format: str) -> ImageMediaType:
    return ImageMediaType.PNG if image_format == "PNG" else ImageMediaType.JPEG
