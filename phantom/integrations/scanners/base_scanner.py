"""Abstract base class for catalog source scanners.

Every scanner inherits from BaseScanner and implements origin_name() and
scan(). Scanners may raise configuration errors; the service layer turns
them into failed ScanResults.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path

from phantom.core.models import ItemRecord, ScanOptions

__all__ = ["BaseScanner"]

logger = logging.getLogger("phantom.scanners")


class BaseScanner(ABC):
    """Abstract base class for source scanners.

    Provides the per-item asset directory layout shared by all origins.
    """

    def __init__(self, assets_dir: Path) -> None:
        """Initializes the scanner.

        Args:
            assets_dir: Root under which each item gets its own asset folder.
        """
        self.assets_dir = assets_dir

    @abstractmethod
    def origin_name(self) -> str:
        """Return the origin tag written to ItemRecord.source."""

    @abstractmethod
    def scan(self, options: ScanOptions | None = None) -> list[ItemRecord]:
        """Enumerate the installed items of this origin.

        Args:
            options: Caller opt-ins for normally filtered categories.

        Returns:
            Normalized items, empty if nothing was found.
        """

    def asset_dir_for(self, item_id: str, create: bool = False) -> Path:
        """Return the asset folder of an item.

        Args:
            item_id: Catalog id of the item.
            create: Create the folder if it is missing.

        Returns:
            Path of ``<assets_dir>/<item_id>``.
        """
        path = self.assets_dir / item_id
        if create:
            try:
                path.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                logger.warning("Cannot create asset folder %s: %s", path, e)
        return path
