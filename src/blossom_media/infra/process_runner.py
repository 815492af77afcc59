"""Subprocess-backed implementation of :class:`~blossom_media.core.protocols.ProcessRunner`.

This module is the **only** place that calls :mod:`subprocess`.  Launch
failures and timeouts are re-raised as
:class:`~blossom_media.exceptions.ProcessExecutionError`; non-zero exit
codes are data, returned in the :class:`ProcessResult`.
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Sequence

from blossom_media.core.protocols import ProcessResult
from blossom_media.exceptions import ProcessExecutionError

logger = logging.getLogger(__name__)


class SubprocessRunner:
    """Run a child process with both pipes captured in memory.

    stdout stays raw bytes (frames are binary); stderr is decoded leniently
    because it only ever feeds diagnostics.
    """

    def run(self, argv: Sequence[str], *, timeout: float) -> ProcessResult:
        args = [str(arg) for arg in argv]
        logger.debug("spawn %s (timeout=%ss)", args[0], timeout)

        try:
            completed = subprocess.run(
                args,
                capture_output=True,
                timeout=timeout,
                check=False,
                stdin=subprocess.DEVNULL,
            )
        except subprocess.TimeoutExpired as exc:
            raise ProcessExecutionError(
                f"{args[0]} timed out after {timeout:g}s",
            ) from exc
        except OSError as exc:
            raise ProcessExecutionError(
                f"Could not start {args[0]}: {exc}",
                hint="The binary may be missing or not executable; re-run provisioning.",
            ) from exc

        return ProcessResult(
            returncode=completed.returncode,
            stdout=completed.stdout or b"",
            stderr=(completed.stderr or b"").decode("utf-8", errors="replace"),
        )
