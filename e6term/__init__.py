"""Public package surface for e6term.

Exports ``main`` for programmatic CLI invocation.
Most implementation lives in submodules under ``e6term``.
"""

from __future__ import annotations


def main(*args, **kwargs):
    """Lazily import CLI entrypoint to keep package imports lightweight."""
    from .cli import main as _main

    return _main(*args, **kwargs)

__all__ = ["main"]
