"""CLI console helpers with optional Rich support.

Rich is imported lazily so bootstrap paths (``--help``, ``--version``)
keep working when it is not installed.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

from blossom_media.exceptions import MissingDependencyError


def _load_rich_console_class() -> type[Any]:
    """Return ``rich.console.Console`` or raise ``MissingDependencyError``."""
    try:
        from rich.console import Console
    except ModuleNotFoundError as exc:
        raise MissingDependencyError(
            "rich is not installed. Install with: pip install rich",
        ) from exc
    return Console


def get_rich_console() -> Any:
    """Create a Rich console instance targeting stderr."""
    console_class = _load_rich_console_class()
    return console_class(stderr=True)


class _ConsoleProxy:
    """Minimal ``print``-compatible proxy with Rich fallback."""

    def print(self, *objects: object) -> None:
        """Render with Rich when available, else plain stderr print."""
        try:
            rich_console = get_rich_console()
        except MissingDependencyError:
            print(*objects, file=sys.stderr)
            return
        rich_console.print(*objects)


console = _ConsoleProxy()


def configure_logging(verbose: bool = False) -> None:
    """Route library logs to stderr, through Rich when it is installed."""
    level = logging.DEBUG if verbose else logging.INFO
    try:
        from rich.logging import RichHandler

        rich_console = get_rich_console()
    except (ModuleNotFoundError, MissingDependencyError):
        logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
        return
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=rich_console, show_path=False)],
    )
