# src/__init__.py — v1
"""depcontext: dependency validation and context aggregation cache."""

from depcontext.version import __version__

__all__ = ["__version__"]
