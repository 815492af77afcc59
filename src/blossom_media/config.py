"""Runtime configuration.

Everything the library needs to know about the host lives in one frozen
:class:`MediaConfig`.  Values come from keyword arguments in tests and
from ``BLOSSOM_*`` environment variables in the application.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_IMAGE_SIZE_LIMIT: int = 2 * 1024 * 1024
DEFAULT_STREAM_URL_TTL: float = 4 * 60 * 60
DEFAULT_DOWNLOAD_TIMEOUT: float = 120.0
DEFAULT_RESOLVE_TIMEOUT: float = 30.0
DEFAULT_PROCESS_TIMEOUT: float = 60.0


def _default_data_dir() -> Path:
    return Path.home() / ".blossom"


@dataclass(frozen=True, slots=True)
class MediaConfig:
    """Paths, budgets and timeouts shared by every component.

    Attributes
    ----------
    data_dir : Path
        Application data directory; all provisioned assets and frames
        live below it.
    image_size_limit : int
        Byte budget for images sent upstream.
    stream_url_ttl : float
        Seconds a resolved stream URL stays in the cache.
    download_timeout : float
        Per-request timeout for asset downloads.
    resolve_timeout : float
        Timeout for one yt-dlp resolution.
    process_timeout : float
        Timeout for one ffmpeg frame extraction.
    """

    data_dir: Path = field(default_factory=_default_data_dir)
    image_size_limit: int = DEFAULT_IMAGE_SIZE_LIMIT
    stream_url_ttl: float = DEFAULT_STREAM_URL_TTL
    download_timeout: float = DEFAULT_DOWNLOAD_TIMEOUT
    resolve_timeout: float = DEFAULT_RESOLVE_TIMEOUT
    process_timeout: float = DEFAULT_PROCESS_TIMEOUT

    @property
    def frames_dir(self) -> Path:
        return self.data_dir / "frames"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> MediaConfig:
        """Build a config from ``BLOSSOM_*`` variables.

        Unset variables keep their defaults.  Malformed numbers raise
        :class:`ValueError` so a typo in the environment is loud.
        """
        env = os.environ if environ is None else environ

        raw_dir = env.get("BLOSSOM_DATA_DIR")
        data_dir = Path(raw_dir).expanduser() if raw_dir else _default_data_dir()

        return cls(
            data_dir=data_dir,
            image_size_limit=int(
                env.get("BLOSSOM_IMAGE_SIZE_LIMIT", DEFAULT_IMAGE_SIZE_LIMIT)
            ),
            stream_url_ttl=float(
                env.get("BLOSSOM_STREAM_URL_TTL", DEFAULT_STREAM_URL_TTL)
            ),
            download_timeout=float(
                env.get("BLOSSOM_DOWNLOAD_TIMEOUT", DEFAULT_DOWNLOAD_TIMEOUT)
            ),
            resolve_timeout=float(
                env.get("BLOSSOM_RESOLVE_TIMEOUT", DEFAULT_RESOLVE_TIMEOUT)
            ),
            process_timeout=float(
                env.get("BLOSSOM_PROCESS_TIMEOUT", DEFAULT_PROCESS_TIMEOUT)
            ),
        )
