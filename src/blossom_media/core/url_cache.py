"""Time-bounded cache of resolved stream URLs.

The cache is an explicit object owned by one
:class:`~blossom_media.infra.stream_resolver.StreamUrlResolver`; TTL and
clock are injected so tests can drive expiry without sleeping.

Concurrent writers are not locked out: the last write wins, which is
harmless because resolutions of the same key are interchangeable.
"""

from __future__ import annotations

import time

from blossom_media.core.models import QualityTier, StreamUrlCacheEntry
from blossom_media.core.protocols import Clock

CacheKey = tuple[str, QualityTier]


class StreamUrlCache:
    """Map of ``(video_id, tier)`` to a URL with an expiry timestamp.

    Parameters
    ----------
    ttl:
        Seconds an entry remains usable after :meth:`put`.
    clock:
        Zero-argument callable returning the current time in seconds.
    """

    def __init__(self, ttl: float, clock: Clock = time.time) -> None:
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        self._ttl: float = ttl
        self._clock: Clock = clock
        self._entries: dict[CacheKey, StreamUrlCacheEntry] = {}

    def get(self, video_id: str, tier: QualityTier) -> str | None:
        """Return the cached URL, or ``None`` when absent or expired."""
        key = (video_id, tier)
        entry = self._entries.get(key)
        if entry is None:
            return None
        if not entry.is_fresh(self._clock()):
            self._entries.pop(key, None)
            return None
        return entry.url

    def put(self, video_id: str, tier: QualityTier, url: str) -> StreamUrlCacheEntry:
        entry = StreamUrlCacheEntry(url=url, expires_at=self._clock() + self._ttl)
        self._entries[(video_id, tier)] = entry
        return entry

    def invalidate(self, video_id: str, tier: QualityTier) -> bool:
        """Drop the entry; return whether one was present."""
        return self._entries.pop((video_id, tier), None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries
