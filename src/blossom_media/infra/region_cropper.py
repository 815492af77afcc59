"""Crop an image to a user-selected, normalized region."""

from __future__ import annotations

import math

from blossom_media.core.models import CropRegion
from blossom_media.core.protocols import ImageCodec
from blossom_media.exceptions import InvalidCropRegionError


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _edge(start: int, fraction: float, size: int) -> int:
    # CropRegion keeps start + fraction within 1, so rounding overruns by
    # at most one pixel.
    return min(start + _round_half_up(fraction * size), size)


def pixel_box(
    region: CropRegion,
    width: int,
    height: int,
) -> tuple[int, int, int, int]:
    """Convert *region* to a ``(left, top, right, bottom)`` box for one image.

    Rounding can push the right/bottom edge one pixel past the image; that
    pixel is trimmed.  A box that rounds to zero width or height is
    rejected.  Regions running past the edge never get here:
    :class:`CropRegion` refuses them.
    """
    left = _round_half_up(region.x * width)
    top = _round_half_up(region.y * height)
    right = _edge(left, region.width, width)
    bottom = _edge(top, region.height, height)

    if right <= left or bottom <= top:
        raise InvalidCropRegionError(
            f"Crop region {region} is empty on a {width}x{height} image.",
            hint="Select a larger area.",
        )
    return left, top, right, bottom


class RegionCropper:
    """Crop against the measured size of each buffer, never a cached one."""

    def __init__(self, codec: ImageCodec) -> None:
        self._codec: ImageCodec = codec

    def crop(self, data: bytes, region: CropRegion) -> bytes:
        """Return *data* cut down to *region*, in the input's format.

        Raises
        ------
        InvalidCropRegionError
            When the region rounds to zero area on this image.
        ImageProcessingError
            When *data* cannot be decoded.
        """
        width, height = self._codec.measure(data)
        return self._codec.crop(data, pixel_box(region, width, height))
