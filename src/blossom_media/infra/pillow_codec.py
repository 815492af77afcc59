"""Pillow-backed implementation of :class:`~blossom_media.core.protocols.ImageCodec`.

This module is the **only** place that imports :mod:`PIL`.  Decoder and
encoder errors are re-raised as
:class:`~blossom_media.exceptions.ImageProcessingError`.
"""

from __future__ import annotations

import io
from collections.abc import Iterator
from contextlib import contextmanager

from PIL import Image, UnidentifiedImageError

from blossom_media.core.compression_plan import scaled_width
from blossom_media.exceptions import ImageProcessingError

_JPEG_CROP_QUALITY = 95


@contextmanager
def _opened(data: bytes) -> Iterator[Image.Image]:
    """Open *data* as an image, mapping Pillow errors to ours."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            yield img
    except UnidentifiedImageError as exc:
        raise ImageProcessingError("Unrecognised image data.") from exc
    except (OSError, ValueError, Image.DecompressionBombError) as exc:
        raise ImageProcessingError(f"Could not decode image: {exc}") from exc


class PillowImageCodec:
    """Measure, resize, re-encode and crop images with Pillow.

    Multi-frame inputs (animated GIF, WebP) are reduced to their first
    frame; nothing here preserves animation.
    """

    def measure(self, data: bytes) -> tuple[int, int]:
        with _opened(data) as img:
            return img.size

    def encode(
        self,
        data: bytes,
        *,
        scale: float,
        image_format: str,
        quality: int,
    ) -> bytes:
        with _opened(data) as img:
            width, height = img.size
            target_width = scaled_width(width, scale)
            if target_width != width:
                target_height = max(1, round(height * target_width / width))
                img = img.resize((target_width, target_height), Image.Resampling.LANCZOS)
            return _save(img, image_format, quality)

    def crop(self, data: bytes, box: tuple[int, int, int, int]) -> bytes:
        with _opened(data) as img:
            image_format = img.format or "PNG"
            return _save(img.crop(box), image_format, _JPEG_CROP_QUALITY)


def _save(img: Image.Image, image_format: str, quality: int) -> bytes:
    buffer = io.BytesIO()
    try:
        if image_format == "JPEG":
            if img.mode not in ("RGB", "L"):
                img = img.convert("RGB")
            img.save(buffer, format="JPEG", quality=quality, optimize=True)
        elif image_format == "PNG":
            img.save(buffer, format="PNG", optimize=True, compress_level=9)
        else:
            img.save(buffer, format=image_format)
    except (OSError, ValueError, KeyError) as exc:
        raise ImageProcessingError(f"Could not encode {image_format}: {exc}") from exc
    return buffer.getvalue()
