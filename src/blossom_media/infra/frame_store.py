"""Persist extracted frames under ``frames/`` and hand back file names.

The persistence layer records only the file name; bytes stay on disk.
Names follow ``<videoId>-<timestampMs>-<createdAtMs>.<ext>``, unique per
capture, which is what lets the compressed-artifact cache assume an
immutable source.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path

from blossom_media.core.models import FrameQuality
from blossom_media.exceptions import BlossomMediaError

logger = logging.getLogger(__name__)


class FrameStore:
    """Filesystem store for captured frames."""

    def __init__(self, directory: Path) -> None:
        self._directory: Path = directory

    @property
    def directory(self) -> Path:
        return self._directory

    @staticmethod
    def frame_filename(
        video_id: str,
        timestamp_seconds: float,
        created_at: float,
        quality: FrameQuality = FrameQuality.ARCHIVAL,
    ) -> str:
        timestamp_ms = round(timestamp_seconds * 1000)
        created_ms = round(created_at * 1000)
        return f"{video_id}-{timestamp_ms}-{created_ms}.{quality.extension}"

    def save(
        self,
        video_id: str,
        timestamp_seconds: float,
        data: bytes,
        *,
        quality: FrameQuality = FrameQuality.ARCHIVAL,
        created_at: float | None = None,
    ) -> str:
        """Write *data* and return the new file name."""
        if "/" in video_id or "\\" in video_id:
            raise BlossomMediaError(f"Invalid video id: {video_id!r}")
        stamp = time.time() if created_at is None else created_at
        filename = self.frame_filename(video_id, timestamp_seconds, stamp, quality)
        path = self._directory / filename
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            raise BlossomMediaError(f"Cannot save frame {path}: {exc}") from exc
        logger.debug("saved frame %s (%d bytes)", filename, len(data))
        return filename

    def path_for(self, filename: str) -> Path:
        """Absolute path of a stored frame; rejects names with separators."""
        if not filename or Path(filename).name != filename or filename in (".", ".."):
            raise BlossomMediaError(f"Invalid frame filename: {filename!r}")
        return self._directory / filename

    def load(self, filename: str) -> bytes:
        path = self.path_for(filename)
        try:
            return path.read_bytes()
        except OSError as exc:
            raise BlossomMediaError(f"Cannot read frame {path}: {exc}") from exc
