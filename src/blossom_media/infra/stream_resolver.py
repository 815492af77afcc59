"""Resolve direct, short-lived media URLs with the provisioned yt-dlp.

Resolution spawns a process and takes seconds, so results are cached per
``(video_id, tier)`` for hours.  Consumers that see the URL rejected call
:meth:`StreamUrlResolver.invalidate` to force a fresh resolution.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from blossom_media.core.models import QualityTier
from blossom_media.core.protocols import ProcessRunner
from blossom_media.core.url_cache import StreamUrlCache
from blossom_media.exceptions import ProcessExecutionError, RETRY_HINT, ResolutionError

logger = logging.getLogger(__name__)

WATCH_URL = "https://www.youtube.com/watch?v={video_id}"


def watch_url(video_id: str) -> str:
    return WATCH_URL.format(video_id=video_id)


class StreamUrlResolver:
    """Cached ``video_id`` → direct stream URL lookup.

    Parameters
    ----------
    ytdlp_path:
        Zero-argument callable returning the yt-dlp binary path.  It is
        called only on a cache miss, so provisioning happens lazily.
    runner:
        Process runner used to spawn yt-dlp.
    cache:
        The cache object this resolver owns.
    timeout:
        Seconds allowed for one yt-dlp invocation.
    """

    def __init__(
        self,
        ytdlp_path: Callable[[], Path],
        runner: ProcessRunner,
        cache: StreamUrlCache,
        *,
        timeout: float = 30.0,
    ) -> None:
        self._ytdlp_path = ytdlp_path
        self._runner: ProcessRunner = runner
        self._cache: StreamUrlCache = cache
        self._timeout: float = timeout

    @property
    def cache(self) -> StreamUrlCache:
        return self._cache

    def resolve(self, video_id: str, tier: QualityTier) -> str:
        """Return a playable direct URL for *video_id* at *tier*.

        Raises
        ------
        ResolutionError
            When yt-dlp exits non-zero, times out or prints nothing.
        """
        cached = self._cache.get(video_id, tier)
        if cached is not None:
            logger.debug("stream url cache hit for %s/%s", video_id, tier.value)
            return cached

        url = self._spawn(video_id, tier)
        self._cache.put(video_id, tier, url)
        return url

    def invalidate(self, video_id: str, tier: QualityTier) -> None:
        """Forget the cached URL so the next :meth:`resolve` spawns yt-dlp."""
        if self._cache.invalidate(video_id, tier):
            logger.debug("invalidated stream url for %s/%s", video_id, tier.value)

    # ------------------------------------------------------------------
    # Process invocation
    # ------------------------------------------------------------------

    @staticmethod
    def build_argv(ytdlp: Path, video_id: str, tier: QualityTier) -> list[str]:
        """yt-dlp arguments that print only the direct URL on stdout."""
        return [
            str(ytdlp),
            "--get-url",
            "--format", tier.format_selector,
            "--no-warnings",
            "--no-playlist",
            "--quiet",
            watch_url(video_id),
        ]

    def _spawn(self, video_id: str, tier: QualityTier) -> str:
        argv = self.build_argv(self._ytdlp_path(), video_id, tier)
        logger.debug("resolving stream url for %s/%s", video_id, tier.value)

        try:
            result = self._runner.run(argv, timeout=self._timeout)
        except ProcessExecutionError as exc:
            raise ResolutionError(
                f"Failed to get video stream URL: {exc}",
                hint=RETRY_HINT,
            ) from exc

        url = _first_line(result.stdout_text)
        if not result.ok or not url:
            detail = result.stderr.strip() or "Unknown error"
            raise ResolutionError(
                f"Failed to get video stream URL (exit {result.returncode}): {detail}",
                hint=RETRY_HINT,
            )
        return url


def _first_line(text: str) -> str:
    for line in text.splitlines():
        stripped = line.strip()
        if stripped:
            return stripped
    return ""
