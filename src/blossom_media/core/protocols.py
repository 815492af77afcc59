"""Protocols (interfaces) consumed across layers.

These define the contracts that infrastructure adapters must satisfy.
Components depend on these protocols, so tests substitute fakes for the
network, the process table and the clock without patching modules.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from blossom_media.core.models import FailureKind

ProgressCallback = Callable[[dict[str, Any]], None]
"""Receives ``{"status", "downloaded_bytes", "total_bytes", "filename"}`` dicts."""

Clock = Callable[[], float]
"""Returns the current wall-clock time in seconds."""

FailureClassifier = Callable[[str], FailureKind]
"""Maps transcoder stderr text to a :class:`FailureKind`."""


@dataclass(frozen=True, slots=True)
class ProcessResult:
    """Captured outcome of one finished child process."""

    returncode: int
    stdout: bytes
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def stdout_text(self) -> str:
        return self.stdout.decode("utf-8", errors="replace")


class ProcessRunner(Protocol):
    """Contract for spawning a child process and capturing its pipes."""

    def run(self, argv: Sequence[str], *, timeout: float) -> ProcessResult:
        """Run *argv* to completion.

        Non-zero exit codes are reported in the result, not raised.

        Raises
        ------
        ProcessExecutionError
            When the process cannot be started or exceeds *timeout*.
        """
        ...  # pragma: no cover


class Downloader(Protocol):
    """Contract for fetching a remote artifact to a local file."""

    def fetch(
        self,
        url: str,
        destination: Path,
        *,
        timeout: float,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        """Download *url* into *destination*, overwriting it.

        Raises
        ------
        ProvisioningError
            On any network or HTTP failure.
        """
        ...  # pragma: no cover


class ImageCodec(Protocol):
    """Contract for the image library used by compression and cropping."""

    def measure(self, data: bytes) -> tuple[int, int]:
        """Return ``(width, height)`` of the encoded image *data*."""
        ...  # pragma: no cover

    def encode(
        self,
        data: bytes,
        *,
        scale: float,
        image_format: str,
        quality: int,
    ) -> bytes:
        """Resize *data* by *scale* and encode it as *image_format*.

        ``image_format`` is ``"JPEG"`` or ``"PNG"``; ``quality`` only
        applies to JPEG.
        """
        ...  # pragma: no cover

    def crop(self, data: bytes, box: tuple[int, int, int, int]) -> bytes:
        """Cut the ``(left, top, right, bottom)`` pixel box out of *data*."""
        ...  # pragma: no cover
