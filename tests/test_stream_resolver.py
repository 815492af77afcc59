"""Tests for the stream URL cache and resolver.

yt-dlp is faked at the runner boundary and time is driven by
:class:`FakeClock`, so expiry is tested without sleeping.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from blossom_media.core.models import QualityTier
from blossom_media.core.url_cache import StreamUrlCache
from blossom_media.exceptions import ProcessExecutionError, RETRY_HINT, ResolutionError
from blossom_media.infra.stream_resolver import StreamUrlResolver, watch_url

from conftest import FakeClock, FakeRunner, failed, ok

YTDLP = Path("/data/bin/yt-dlp")
TTL = 4 * 60 * 60


def _resolver(runner: FakeRunner, clock: FakeClock, ytdlp_path=None) -> StreamUrlResolver:
    return StreamUrlResolver(
        ytdlp_path or (lambda: YTDLP),
        runner,
        StreamUrlCache(TTL, clock=clock),
        timeout=5.0,
    )


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------

class TestStreamUrlCache:
    def test_get_missing_returns_none(self, clock: FakeClock) -> None:
        assert StreamUrlCache(TTL, clock=clock).get("abc", QualityTier.API) is None

    def test_put_then_get(self, clock: FakeClock) -> None:
        cache = StreamUrlCache(TTL, clock=clock)
        entry = cache.put("abc", QualityTier.API, "https://u")

        assert entry.expires_at == clock.now + TTL
        assert cache.get("abc", QualityTier.API) == "https://u"

    def test_tiers_are_independent(self, clock: FakeClock) -> None:
        cache = StreamUrlCache(TTL, clock=clock)
        cache.put("abc", QualityTier.API, "https://api")

        assert cache.get("abc", QualityTier.ARCHIVAL) is None
        assert ("abc", QualityTier.API) in cache

    def test_entry_expires_after_ttl(self, clock: FakeClock) -> None:
        cache = StreamUrlCache(TTL, clock=clock)
        cache.put("abc", QualityTier.API, "https://u")

        clock.advance(TTL - 1)
        assert cache.get("abc", QualityTier.API) == "https://u"
        clock.advance(1)
        assert cache.get("abc", QualityTier.API) is None
        assert len(cache) == 0

    def test_invalidate(self, clock: FakeClock) -> None:
        cache = StreamUrlCache(TTL, clock=clock)
        cache.put("abc", QualityTier.API, "https://u")

        assert cache.invalidate("abc", QualityTier.API) is True
        assert cache.invalidate("abc", QualityTier.API) is False

    def test_clear(self, clock: FakeClock) -> None:
        cache = StreamUrlCache(TTL, clock=clock)
        cache.put("a", QualityTier.API, "1")
        cache.put("b", QualityTier.ARCHIVAL, "2")
        cache.clear()
        assert len(cache) == 0

    @pytest.mark.parametrize("ttl", [0, -5])
    def test_non_positive_ttl_rejected(self, ttl: float) -> None:
        with pytest.raises(ValueError):
            StreamUrlCache(ttl)


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------

class TestResolve:
    def test_returns_first_stdout_line(self, clock: FakeClock) -> None:
        runner = FakeRunner(yt_dlp=[ok("\nhttps://stream.example/v.mp4\nhttps://audio\n")])

        url = _resolver(runner, clock).resolve("abc123", QualityTier.API)

        assert url == "https://stream.example/v.mp4"

    def test_second_call_is_served_from_cache(self, clock: FakeClock) -> None:
        runner = FakeRunner(yt_dlp=[ok("https://stream.example/v.mp4\n")])
        resolver = _resolver(runner, clock)

        resolver.resolve("abc123", QualityTier.API)
        resolver.resolve("abc123", QualityTier.API)

        assert len(runner.calls_to("yt-dlp")) == 1

    def test_cache_hit_does_not_touch_provisioning(self, clock: FakeClock) -> None:
        runner = FakeRunner(yt_dlp=[ok("https://u\n")])
        ytdlp_path = MagicMock(return_value=YTDLP)
        resolver = _resolver(runner, clock, ytdlp_path)

        resolver.resolve("abc", QualityTier.API)
        resolver.resolve("abc", QualityTier.API)

        ytdlp_path.assert_called_once_with()

    def test_each_tier_resolves_separately(self, clock: FakeClock) -> None:
        runner = FakeRunner(yt_dlp=[ok("https://api\n"), ok("https://archival\n")])
        resolver = _resolver(runner, clock)

        assert resolver.resolve("abc", QualityTier.API) == "https://api"
        assert resolver.resolve("abc", QualityTier.ARCHIVAL) == "https://archival"
        assert len(runner.calls) == 2

    def test_expired_entry_spawns_again(self, clock: FakeClock) -> None:
        runner = FakeRunner(yt_dlp=[ok("https://old\n"), ok("https://new\n")])
        resolver = _resolver(runner, clock)

        resolver.resolve("abc", QualityTier.API)
        clock.advance(TTL + 1)

        assert resolver.resolve("abc", QualityTier.API) == "https://new"

    def test_invalidate_forces_fresh_resolution(self, clock: FakeClock) -> None:
        runner = FakeRunner(yt_dlp=[ok("https://old\n"), ok("https://new\n")])
        resolver = _resolver(runner, clock)

        resolver.resolve("abc", QualityTier.API)
        resolver.invalidate("abc", QualityTier.API)

        assert resolver.resolve("abc", QualityTier.API) == "https://new"

    def test_invalidate_unknown_key_is_noop(self, clock: FakeClock) -> None:
        _resolver(FakeRunner(), clock).invalidate("nothing", QualityTier.API)


class TestArgv:
    def test_api_selector(self) -> None:
        argv = StreamUrlResolver.build_argv(YTDLP, "abc123", QualityTier.API)

        assert argv == [
            str(YTDLP),
            "--get-url",
            "--format", "best[height<=720]/bestvideo[height<=720]",
            "--no-warnings",
            "--no-playlist",
            "--quiet",
            "https://www.youtube.com/watch?v=abc123",
        ]

    def test_archival_selector(self) -> None:
        argv = StreamUrlResolver.build_argv(YTDLP, "abc123", QualityTier.ARCHIVAL)
        assert argv[argv.index("--format") + 1] == (
            "bestvideo[height<=1080]/best[height<=1080]/best"
        )

    def test_watch_url(self) -> None:
        assert watch_url("dQw4w9WgXcQ") == "https://www.youtube.com/watch?v=dQw4w9WgXcQ"


class TestFailures:
    def test_non_zero_exit_carries_stderr(self, clock: FakeClock) -> None:
        runner = FakeRunner(yt_dlp=[failed("ERROR: Video unavailable")])

        with pytest.raises(ResolutionError, match="Video unavailable") as info:
            _resolver(runner, clock).resolve("gone", QualityTier.API)
        assert info.value.hint == RETRY_HINT

    def test_empty_stderr_reports_unknown_error(self, clock: FakeClock) -> None:
        runner = FakeRunner(yt_dlp=[failed("")])

        with pytest.raises(ResolutionError, match="Unknown error"):
            _resolver(runner, clock).resolve("gone", QualityTier.API)

    def test_empty_stdout_is_failure(self, clock: FakeClock) -> None:
        runner = FakeRunner(yt_dlp=[ok("  \n")])

        with pytest.raises(ResolutionError):
            _resolver(runner, clock).resolve("abc", QualityTier.API)

    def test_failure_is_not_cached(self, clock: FakeClock) -> None:
        runner = FakeRunner(yt_dlp=[failed("ERROR: throttled"), ok("https://u\n")])
        resolver = _resolver(runner, clock)

        with pytest.raises(ResolutionError):
            resolver.resolve("abc", QualityTier.API)
        assert resolver.resolve("abc", QualityTier.API) == "https://u"

    def test_timeout_maps_to_resolution_error(self, clock: FakeClock) -> None:
        runner = FakeRunner(yt_dlp=[ProcessExecutionError("yt-dlp timed out after 5s")])

        with pytest.raises(ResolutionError, match="timed out"):
            _resolver(runner, clock).resolve("abc", QualityTier.API)
