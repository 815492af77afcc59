"""Process exit statuses returned by ``blossom-media``.

Scripts that provision tools or capture frames branch on these values,
so every handler and the error boundary in :mod:`blossom_media.cli.app`
return one of them.
"""

from __future__ import annotations

SUCCESS: int = 0
"""The command finished; frames, artifacts or tools are in place."""

GENERAL_ERROR: int = 1
"""A :class:`~blossom_media.exceptions.BlossomMediaError` stopped the command
(failed download, expired stream, bad crop, missing image).  Its message
and hint were printed to stderr."""

UNEXPECTED_ERROR: int = 2
"""Anything else escaped the handlers; the traceback type was printed."""

KEYBOARD_INTERRUPT: int = 130
"""Ctrl+C, reported as 128 + SIGINT the way shells do."""
