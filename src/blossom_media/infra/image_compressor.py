"""Shrink images below an API payload budget and cache the result on disk.

The search follows :mod:`blossom_media.core.compression_plan`: one
educated guess, then a fixed ladder, then an unconditional last resort.
Compressed artifacts are written next to their source as
``<source name>.compressed.<ext>``, so two sources that share a stem
never share an artifact.

Cache assumption
----------------
Sources are treated as immutable once written (extracted frames get a
unique name per capture).  A changed file at the same path keeps being
served from its stale artifact until the source is deleted; the cache
deliberately does not hash contents.
"""

from __future__ import annotations

import base64
import logging
from pathlib import Path

from blossom_media.core import compression_plan as plan
from blossom_media.core.models import (
    ApiImage,
    CompressionAttempt,
    CompressionResult,
    ImageMediaType,
)
from blossom_media.core.protocols import ImageCodec
from blossom_media.exceptions import ImageProcessingError, ImageSourceMissingError

logger = logging.getLogger(__name__)

COMPRESSED_MARKER = "compressed"

_EXTENSION_MEDIA_TYPES: dict[str, ImageMediaType] = {
    "jpg": ImageMediaType.JPEG,
    "jpeg": ImageMediaType.JPEG,
    "gif": ImageMediaType.GIF,
    "webp": ImageMediaType.WEBP,
    "png": ImageMediaType.PNG,
}


def media_type_from_filename(filename: str | Path) -> ImageMediaType:
    """Infer the media type from the extension; unknown means PNG."""
    ext = Path(filename).suffix.lstrip(".").lower()
    return _EXTENSION_MEDIA_TYPES.get(ext, ImageMediaType.PNG)


def compressed_path(source: Path, media_type: ImageMediaType | None = None) -> Path:
    """Artifact path for *source*, with the extension of *media_type*.

    ``frame.png`` → ``frame.png.compressed.png``, or
    ``frame.png.compressed.jpeg`` when the compressed format is JPEG.
    """
    if media_type is not None:
        ext = media_type.extension
    else:
        ext = source.suffix.lstrip(".") or ImageMediaType.PNG.extension
    return source.with_name(f"{source.name}.{COMPRESSED_MARKER}.{ext}")


class ImageCompressor:
    """Progressive resize/quality search with a per-file artifact cache.

    Parameters
    ----------
    codec:
        Any object satisfying the :class:`ImageCodec` protocol.
    size_limit:
        Default byte budget used when callers pass none.
    """

    def __init__(self, codec: ImageCodec, *, size_limit: int) -> None:
        if size_limit <= 0:
            raise ValueError("size_limit must be positive")
        self._codec: ImageCodec = codec
        self._size_limit: int = size_limit

    @property
    def size_limit(self) -> int:
        return self._size_limit

    # ------------------------------------------------------------------
    # In-memory search
    # ------------------------------------------------------------------

    def compress(
        self,
        data: bytes,
        media_type: ImageMediaType,
        size_limit: int | None = None,
    ) -> CompressionResult:
        """Return *data* re-encoded to at most *size_limit* bytes.

        Inputs already within budget come back byte-identical.  When even
        the last-resort encode is too large it is still returned, with
        ``within_limit=False``; callers decide whether to send it.

        Raises
        ------
        ImageProcessingError
            When *data* cannot be decoded or re-encoded.
        """
        limit = self._size_limit if size_limit is None else size_limit
        media_type = ImageMediaType(media_type)

        if len(data) <= limit:
            return CompressionResult(
                data=data,
                media_type=media_type,
                original_size=len(data),
                attempt=None,
                within_limit=True,
            )

        for attempt in plan.compression_attempts(len(data), limit):
            encoded, encoded_type = self._try(data, media_type, attempt, limit)
            if len(encoded) <= limit:
                logger.debug(
                    "compressed %d -> %d bytes at scale=%.3f quality=%d",
                    len(data), len(encoded), attempt.scale, attempt.quality,
                )
                return CompressionResult(
                    data=encoded,
                    media_type=encoded_type,
                    original_size=len(data),
                    attempt=attempt,
                    within_limit=True,
                )

        encoded, encoded_type = self._try(data, media_type, plan.LAST_RESORT, limit)
        within = len(encoded) <= limit
        if not within:
            logger.warning(
                "last-resort compression still over budget: %d > %d bytes",
                len(encoded), limit,
            )
        return CompressionResult(
            data=encoded,
            media_type=encoded_type,
            original_size=len(data),
            attempt=plan.LAST_RESORT,
            within_limit=within,
            last_resort=True,
        )

    def _try(
        self,
        data: bytes,
        media_type: ImageMediaType,
        attempt: CompressionAttempt,
        limit: int,
    ) -> tuple[bytes, ImageMediaType]:
        image_format = plan.primary_format(media_type)
        encoded = self._codec.encode(
            data, scale=attempt.scale, image_format=image_format, quality=attempt.quality,
        )
        if len(encoded) > limit and plan.allows_jpeg_fallback(media_type):
            image_format = "JPEG"
            encoded = self._codec.encode(
                data, scale=attempt.scale, image_format=image_format, quality=attempt.quality,
            )
        return encoded, plan.media_type_for_format(image_format)

    # ------------------------------------------------------------------
    # File-level cache
    # ------------------------------------------------------------------

    def cached_artifact(self, source: Path) -> Path | None:
        """Existing compressed artifact for *source*, in any output format.

        Only artifacts named after the full source file name match;
        ``photo.gif`` never sees ``photo.png``'s artifact.
        """
        candidates = [compressed_path(source, media) for media in ImageMediaType]
        for candidate in candidates:
            if candidate.is_file():
                return candidate
        return None

    def compress_file(
        self,
        source: Path,
        size_limit: int | None = None,
    ) -> tuple[bytes, ImageMediaType, CompressionResult | None]:
        """Compress the image at *source*, reusing a cached artifact.

        Returns ``(data, media_type, result)`` where *result* is ``None``
        when the bytes came from the artifact cache.

        Raises
        ------
        ImageSourceMissingError
            When *source* does not exist.
        ImageProcessingError
            When the image cannot be processed or the artifact written.
        """
        if not source.is_file():
            raise ImageSourceMissingError(f"Image not found: {source}")

        cached = self.cached_artifact(source)
        if cached is not None:
            logger.debug("compressed artifact hit %s", cached.name)
            try:
                return cached.read_bytes(), media_type_from_filename(cached), None
            except OSError as exc:
                raise ImageProcessingError(f"Cannot read {cached}: {exc}") from exc

        try:
            original = source.read_bytes()
        except FileNotFoundError as exc:
            raise ImageSourceMissingError(f"Image not found: {source}") from exc
        except OSError as exc:
            raise ImageProcessingError(f"Cannot read {source}: {exc}") from exc

        result = self.compress(original, media_type_from_filename(source), size_limit)
        if not result.was_compressed:
            return result.data, result.media_type, result

        target = compressed_path(source, result.media_type)
        try:
            target.write_bytes(result.data)
        except OSError as exc:
            raise ImageProcessingError(f"Cannot write {target}: {exc}") from exc
        return result.data, result.media_type, result

    def prepare_image_for_api(
        self,
        source: Path,
        size_limit: int | None = None,
    ) -> ApiImage:
        """Load *source* as a base64 payload that fits the API budget."""
        data, media_type, result = self.compress_file(source, size_limit)
        if result is None:
            return ApiImage(
                base64=base64.b64encode(data).decode("ascii"),
                media_type=media_type,
                was_compressed=True,
                original_size=0,
                final_size=len(data),
            )
        return ApiImage(
            base64=base64.b64encode(data).decode("ascii"),
            media_type=media_type,
            was_compressed=result.was_compressed,
            original_size=result.original_size,
            final_size=len(data),
        )
