"""Phantom Catalog - multi-source game catalog and artwork pipeline."""

from __future__ import annotations

from phantom.version import __app_name__, __version__

__all__ = ["__app_name__", "__version__"]
