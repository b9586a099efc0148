"""Exception types raised across the catalog and artwork layers."""

from __future__ import annotations

__all__ = [
    "AssetImportError",
    "AssetNotFoundError",
    "LibraryIndexNotFoundError",
    "PhantomError",
    "ScanConfigurationError",
]


class PhantomError(Exception):
    """Base class for all application errors."""


class LibraryIndexNotFoundError(PhantomError):
    """No Steam libraryfolders.vdf could be located."""


class ScanConfigurationError(PhantomError):
    """A scan was requested with an unusable root, platform or emulator."""


class AssetNotFoundError(PhantomError):
    """Neither the requested image nor any fallback template exists."""


class AssetImportError(PhantomError):
    """An artwork import could not write to its target directory."""
