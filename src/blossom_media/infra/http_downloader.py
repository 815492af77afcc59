"""``requests``-backed implementation of :class:`~blossom_media.core.protocols.Downloader`.

Downloads stream to disk in chunks and report progress with the same
dict shape as yt-dlp progress hooks, so the CLI progress bar works for
both.  All ``requests`` and filesystem errors become
:class:`~blossom_media.exceptions.ProvisioningError`.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from pathlib import Path

import requests

from blossom_media.core.protocols import ProgressCallback
from blossom_media.exceptions import ProvisioningError, RETRY_HINT

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 1024 * 1024


class RequestsDownloader:
    """Fetch URLs with a shared :class:`requests.Session`.

    Redirects are followed (GitHub release assets redirect to a CDN).
    There are no retries here: a failed download fails the provisioning
    run, and the next run starts over.

    ``requests`` applies *timeout* to the connect and to each read, so a
    server trickling bytes would never trip it.  *timeout* also bounds the
    whole transfer, measured with *clock*.
    """

    def __init__(
        self,
        session: requests.Session | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._session: requests.Session = session or requests.Session()
        self._clock: Callable[[], float] = clock

    def fetch(
        self,
        url: str,
        destination: Path,
        *,
        timeout: float,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        logger.debug("GET %s -> %s", url, destination)
        downloaded = 0
        deadline = self._clock() + timeout
        try:
            with self._session.get(
                url, stream=True, timeout=timeout, allow_redirects=True,
            ) as response:
                response.raise_for_status()
                total = _content_length(response)
                with destination.open("wb") as fh:
                    for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
                        if self._clock() > deadline:
                            raise ProvisioningError(
                                f"Download of {url} did not finish within {timeout:g}s.",
                                hint=RETRY_HINT,
                            )
                        if not chunk:
                            continue
                        fh.write(chunk)
                        downloaded += len(chunk)
                        if progress_callback is not None:
                            progress_callback({
                                "status": "downloading",
                                "downloaded_bytes": downloaded,
                                "total_bytes": total,
                                "filename": destination.name,
                            })
        except requests.RequestException as exc:
            raise ProvisioningError(
                f"Failed to download {url}: {exc}",
                hint=RETRY_HINT,
            ) from exc
        except OSError as exc:
            raise ProvisioningError(
                f"Failed to write {destination}: {exc}",
            ) from exc

        if downloaded == 0:
            raise ProvisioningError(f"Download of {url} returned an empty body.")

        if progress_callback is not None:
            progress_callback({"status": "finished", "filename": destination.name})


def _content_length(response: requests.Response) -> int | None:
    raw = response.headers.get("Content-Length")
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None
