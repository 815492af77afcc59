"""Rich-based progress display driven by download progress callbacks.

This module bridges the downloader's ``progress_callback`` dicts with a
Rich :class:`~rich.progress.Progress` bar.  The infra layer only emits
the raw dicts; rendering happens here.

Design
------
* One Rich task per downloaded file, keyed by file name.
* Shutdown-safe: calls after :meth:`RichProgressHook.stop` are ignored.
* No ``print()``; Rich handles all rendering.
"""

from __future__ import annotations

from typing import Any

from blossom_media.cli.console import get_rich_console
from blossom_media.exceptions import MissingDependencyError


class RichProgressHook:
    """Callable progress-hook adapter for Rich.

    Usage::

        with RichProgressHook() as hook:
            toolkit = MediaToolkit.from_config(config, progress_callback=hook)
            toolkit.video_tools.paths()
    """

    def __init__(self) -> None:
        try:
            from rich.progress import (
                BarColumn,
                DownloadColumn,
                Progress,
                SpinnerColumn,
                TextColumn,
                TransferSpeedColumn,
            )
        except ModuleNotFoundError as exc:
            raise MissingDependencyError(
                "rich is not installed. Install with: pip install rich",
            ) from exc

        self._progress: Any = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            DownloadColumn(),
            TransferSpeedColumn(),
            console=get_rich_console(),
            transient=False,
        )
        self._tasks: dict[str, Any] = {}
        self._started: bool = False

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    def __enter__(self) -> RichProgressHook:
        self.start()
        return self

    def __exit__(self, *_args: object) -> None:
        self.stop()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the Rich progress display."""
        if not self._started:
            self._progress.start()
            self._started = True

    def stop(self) -> None:
        """Stop the Rich progress display (idempotent)."""
        if self._started:
            self._progress.stop()
            self._started = False

    # ------------------------------------------------------------------
    # Hook callback
    # ------------------------------------------------------------------

    def __call__(self, d: dict[str, Any]) -> None:
        """Downloader progress callback.

        Parameters
        ----------
        d:
            A dict with at least ``"status"`` (``"downloading"`` or
            ``"finished"``) and ``"filename"``.
        """
        if not self._started:
            return

        status: str = d.get("status", "")
        if status == "downloading":
            self._handle_downloading(d)
        elif status == "finished":
            self._handle_finished(d)

    # ------------------------------------------------------------------
    # Internal handlers
    # ------------------------------------------------------------------

    def _handle_downloading(self, d: dict[str, Any]) -> None:
        name = _display_name(d.get("filename"))
        total = _safe_int(d.get("total_bytes"))
        downloaded = _safe_int(d.get("downloaded_bytes")) or 0

        task_id = self._tasks.get(name)
        if task_id is None:
            task_id = self._progress.add_task(name, total=total)
            self._tasks[name] = task_id

        if total is not None:
            self._progress.update(task_id, total=total, completed=downloaded)
        else:
            self._progress.update(task_id, completed=downloaded)

    def _handle_finished(self, d: dict[str, Any]) -> None:
        task_id = self._tasks.get(_display_name(d.get("filename")))
        if task_id is None:
            return
        task = self._progress.tasks[task_id]
        if task.total is not None:
            self._progress.update(task_id, completed=task.total)


# ---------------------------------------------------------------------------
# Utility
# ---------------------------------------------------------------------------

def _display_name(filename: object) -> str:
    name = str(filename or "download")
    name = name.removesuffix(".download")
    if len(name) > 50:
        name = name[:47] + "..."
    return name


def _safe_int(value: object) -> int | None:
    """Convert *value* to ``int`` or return ``None``."""
    if value is None or isinstance(value, bool):
        return None
    try:
        if isinstance(value, (int, float, str)):
            return int(value)
        return None
    except (TypeError, ValueError):
        return None
