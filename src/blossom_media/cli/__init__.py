"""CLI layer — operator commands, Rich rendering and the error boundary.

This package is the outermost layer.  It may import from ``core``,
``infra`` and the package root, but no other layer may import from
``cli``.
"""
