"""Classify transcoder failures from their diagnostic text.

ffmpeg reports an expired or revoked signed URL only through stderr, so
the retry policy keys off substrings.  The signatures live in one tuple
so they can change without touching the retry logic.
"""

from __future__ import annotations

from blossom_media.core.models import FailureKind

AUTH_EXPIRY_SIGNALS: tuple[str, ...] = (
    "403 forbidden",
    "server returned 403",
    "http error 403",
    "401 unauthorized",
    "server returned 401",
    "http error 401",
    "410 gone",
    "server returned 410",
    "signature expired",
    "access denied",
)


def classify_failure(stderr: str) -> FailureKind:
    """Return :attr:`FailureKind.AUTH_EXPIRED` for authorization failures."""
    text = stderr.lower()
    if any(signal in text for signal in AUTH_EXPIRY_SIGNALS):
        return FailureKind.AUTH_EXPIRED
    return FailureKind.OTHER
