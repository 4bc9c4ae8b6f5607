"""Credential loaders.

:class:`Loader` defines how credentials are fetched; :class:`PathLoader` is
the default implementation reading PEM files from disk.
"""
from __future__ import annotations

from rotating_tls.loader.base import Loader
from rotating_tls.loader.path import PathLoader

__all__ = [
    "Loader",
    "PathLoader",
]
