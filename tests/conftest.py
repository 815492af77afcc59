"""Shared pytest fixtures and fakes for the blossom-media test suite.

Guidelines
----------
* No internet access in any test.
* No real child processes: yt-dlp, ffmpeg and codesign are faked at the
  :class:`ProcessRunner` boundary.
* Images are generated in-test with Pillow.
"""

from __future__ import annotations

import io
import random
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import pytest
from PIL import Image

from blossom_media.core.protocols import ProcessResult
from blossom_media.exceptions import ProvisioningError


# ---------------------------------------------------------------------------
# Process runner
# ---------------------------------------------------------------------------

class FakeRunner:
    """Scripted :class:`ProcessRunner` keyed by executable base name.

    Each program maps to a list of outcomes consumed in order; the last
    outcome repeats.  An outcome is a :class:`ProcessResult` or an
    exception instance to raise.
    """

    def __init__(self, **scripts: Sequence[ProcessResult | Exception]) -> None:
        self._scripts: dict[str, list[ProcessResult | Exception]] = {
            name.replace("_", "-"): list(outcomes) for name, outcomes in scripts.items()
        }
        self.calls: list[list[str]] = []

    def script(self, program: str, *outcomes: ProcessResult | Exception) -> None:
        self._scripts[program] = list(outcomes)

    def run(self, argv: Sequence[str], *, timeout: float) -> ProcessResult:
        args = [str(a) for a in argv]
        self.calls.append(args)
        program = Path(args[0]).name.removesuffix(".exe")
        outcomes = self._scripts.get(program)
        if not outcomes:
            raise AssertionError(f"unexpected spawn of {program}")
        outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def calls_to(self, program: str) -> list[list[str]]:
        return [c for c in self.calls if Path(c[0]).name.removesuffix(".exe") == program]


def ok(stdout: bytes | str = b"", stderr: str = "") -> ProcessResult:
    data = stdout.encode() if isinstance(stdout, str) else stdout
    return ProcessResult(returncode=0, stdout=data, stderr=stderr)


def failed(stderr: str, returncode: int = 1, stdout: bytes = b"") -> ProcessResult:
    return ProcessResult(returncode=returncode, stdout=stdout, stderr=stderr)


# ---------------------------------------------------------------------------
# Downloader
# ---------------------------------------------------------------------------

class FakeDownloader:
    """Serves canned payloads by URL and records every fetch."""

    def __init__(self, payloads: dict[str, bytes] | None = None) -> None:
        self.payloads: dict[str, bytes] = dict(payloads or {})
        self.fetched: list[str] = []
        self.fail_on: set[str] = set()

    def fetch(
        self,
        url: str,
        destination: Path,
        *,
        timeout: float,
        progress_callback: Callable[[dict[str, Any]], None] | None = None,
    ) -> None:
        self.fetched.append(url)
        if url in self.fail_on:
            raise ProvisioningError(f"Failed to download {url}: 404")
        destination.write_bytes(self.payloads.get(url, b"\x7fELF fake binary"))
        if progress_callback is not None:
            progress_callback({"status": "finished", "filename": destination.name})


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------

class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------

def noise_image(width: int, height: int, *, seed: int = 7, mode: str = "RGB") -> Image.Image:
    """Incompressible random-pixel image."""
    channels = len(mode)
    rng = random.Random(seed)
    return Image.frombytes(mode, (width, height), rng.randbytes(width * height * channels))


def encode(img: Image.Image, image_format: str, **params: Any) -> bytes:
    buffer = io.BytesIO()
    img.save(buffer, format=image_format, **params)
    return buffer.getvalue()


def decode(data: bytes) -> Image.Image:
    img = Image.open(io.BytesIO(data))
    img.load()
    return img


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def downloader() -> FakeDownloader:
    return FakeDownloader()
