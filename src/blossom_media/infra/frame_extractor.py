"""Extract one still frame from a remote video with the provisioned ffmpeg.

The frame is piped from ffmpeg's stdout straight into memory; nothing is
written to disk here.  Signed stream URLs can expire between resolution
and use, so an authorization failure invalidates the cached URL and the
whole resolve-then-extract sequence runs exactly once more.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from pathlib import Path

from blossom_media.core.failure_classifier import classify_failure
from blossom_media.core.models import FailureKind, FrameQuality
from blossom_media.core.protocols import FailureClassifier, ProcessRunner
from blossom_media.exceptions import (
    AuthorizationExpiredError,
    ExtractionError,
    InvalidTimestampError,
    ProcessExecutionError,
)
from blossom_media.infra.stream_resolver import StreamUrlResolver

logger = logging.getLogger(__name__)

DEFAULT_JPEG_QSCALE = 4
"""ffmpeg ``-q:v`` for API frames: 2 (best) … 31 (worst)."""


class FrameExtractor:
    """Grab a frame at an arbitrary timestamp.

    Parameters
    ----------
    ffmpeg_path:
        Zero-argument callable returning the ffmpeg binary path.
    resolver:
        Stream URL resolver shared with the rest of the process.
    runner:
        Process runner used to spawn ffmpeg.
    classify:
        Maps ffmpeg stderr to a :class:`FailureKind`; swap it to change
        the authorization-expiry signatures.
    timeout:
        Seconds allowed for one ffmpeg invocation.
    jpeg_qscale:
        ``-q:v`` value used for :attr:`FrameQuality.API` frames.
    """

    def __init__(
        self,
        ffmpeg_path: Callable[[], Path],
        resolver: StreamUrlResolver,
        runner: ProcessRunner,
        *,
        classify: FailureClassifier = classify_failure,
        timeout: float = 60.0,
        jpeg_qscale: int = DEFAULT_JPEG_QSCALE,
    ) -> None:
        if not 2 <= jpeg_qscale <= 31:
            raise ValueError("jpeg_qscale must be within 2..31")
        self._ffmpeg_path = ffmpeg_path
        self._resolver: StreamUrlResolver = resolver
        self._runner: ProcessRunner = runner
        self._classify: FailureClassifier = classify
        self._timeout: float = timeout
        self._jpeg_qscale: int = jpeg_qscale

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def extract_frame(
        self,
        video_id: str,
        timestamp_seconds: float,
        quality: FrameQuality = FrameQuality.API,
    ) -> bytes:
        """Return the encoded frame of *video_id* at *timestamp_seconds*.

        The timestamp is not checked against the video's duration; ffmpeg
        fails on its own when it is out of range.

        Raises
        ------
        InvalidTimestampError
            If *timestamp_seconds* is negative or not finite.
        ResolutionError
            If the stream URL cannot be resolved.
        AuthorizationExpiredError
            If the URL is rejected again after one fresh resolution.
        ExtractionError
            For every other transcoder failure.
        """
        if not math.isfinite(timestamp_seconds) or timestamp_seconds < 0:
            raise InvalidTimestampError(
                f"Timestamp must be a finite number >= 0, got {timestamp_seconds}.",
            )
        quality = FrameQuality(quality)

        try:
            return self._attempt(video_id, timestamp_seconds, quality)
        except AuthorizationExpiredError as exc:
            lines = exc.stderr.strip().splitlines()
            logger.warning(
                "stream url for %s rejected, re-resolving once: %s",
                video_id,
                lines[-1] if lines else "no detail",
            )
            self._resolver.invalidate(video_id, quality.tier)

        return self._attempt(video_id, timestamp_seconds, quality)

    # ------------------------------------------------------------------
    # Process invocation
    # ------------------------------------------------------------------

    def build_argv(
        self,
        ffmpeg: Path,
        stream_url: str,
        timestamp_seconds: float,
        quality: FrameQuality,
    ) -> list[str]:
        """ffmpeg arguments; ``-ss`` precedes ``-i`` for a fast input seek."""
        argv = [
            str(ffmpeg),
            "-hide_banner",
            "-loglevel", "error",
            "-ss", f"{timestamp_seconds:.3f}",
            "-i", stream_url,
            "-frames:v", "1",
            "-f", "image2pipe",
        ]
        if quality is FrameQuality.ARCHIVAL:
            argv += ["-vcodec", "png"]
        else:
            argv += ["-vcodec", "mjpeg", "-q:v", str(self._jpeg_qscale)]
        argv.append("-")
        return argv

    def _attempt(
        self,
        video_id: str,
        timestamp_seconds: float,
        quality: FrameQuality,
    ) -> bytes:
        ffmpeg = self._ffmpeg_path()
        stream_url = self._resolver.resolve(video_id, quality.tier)
        argv = self.build_argv(ffmpeg, stream_url, timestamp_seconds, quality)

        try:
            result = self._runner.run(argv, timeout=self._timeout)
        except ProcessExecutionError as exc:
            raise ExtractionError(
                f"Failed to extract frame: {exc}",
                hint=exc.hint,
            ) from exc

        if result.ok and result.stdout:
            return result.stdout

        stderr = result.stderr
        detail = stderr.strip() or (
            "ffmpeg produced no output" if result.ok else "Unknown error"
        )
        message = f"Failed to extract frame at {timestamp_seconds}s of {video_id}: {detail}"

        if self._classify(stderr) is FailureKind.AUTH_EXPIRED:
            raise AuthorizationExpiredError(message, stderr=stderr)
        raise ExtractionError(message, stderr=stderr)
