"""Allow ``python -m blossom_media`` invocation.

Delegates to the CLI error-boundary entry point so that
``python -m blossom_media`` behaves identically to the ``blossom-media``
console script.
"""

from __future__ import annotations

from blossom_media.cli.app import cli

if __name__ == "__main__":
    cli()
