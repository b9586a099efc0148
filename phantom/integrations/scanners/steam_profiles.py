"""Steam profile discovery.

A Steam install can hold several local profiles under ``userdata/``. Custom
artwork lives in each profile's ``config/grid`` folder; the profile with the
most grid images is almost always the one actually in use, so it is searched
first.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

logger = logging.getLogger("phantom.steam_profiles")

__all__ = ["IMAGE_EXTENSIONS", "ProfileCache", "list_profile_dirs"]

IMAGE_EXTENSIONS = frozenset({".png", ".jpg", ".jpeg", ".webp", ".gif"})


def list_profile_dirs(steam_path: Path) -> list[Path]:
    """Return every numeric ``userdata/<account id>`` directory."""
    userdata = steam_path / "userdata"
    if not userdata.is_dir():
        return []
    try:
        return sorted(p for p in userdata.iterdir() if p.is_dir() and p.name.isdigit())
    except OSError as e:
        logger.warning("Cannot list %s: %s", userdata, e)
        return []


def _count_images(grid_dir: Path) -> int:
    try:
        return sum(1 for p in grid_dir.iterdir() if p.suffix.lower() in IMAGE_EXTENSIONS)
    except OSError:
        return 0


class ProfileCache:
    """Process-lifetime cache of grid folders ordered heaviest first.

    The ordering is computed on first use per Steam root and reused by every
    later scan until ``invalidate()`` is called.
    """

    def __init__(self) -> None:
        self._grid_dirs: dict[Path, list[Path]] = {}
        self._lock = threading.Lock()

    def grid_dirs(self, steam_path: Path) -> list[Path]:
        """Return existing grid folders, the one holding most images first.

        Args:
            steam_path: Steam installation root.
        """
        with self._lock:
            cached = self._grid_dirs.get(steam_path)
            if cached is not None:
                return list(cached)

        found = []
        for profile in list_profile_dirs(steam_path):
            grid = profile / "config" / "grid"
            if grid.is_dir():
                found.append((_count_images(grid), grid))
        # sort is stable, ties keep account-id order
        ordered = [grid for _, grid in sorted(found, key=lambda pair: -pair[0])]

        if ordered:
            logger.debug("Heaviest grid folder: %s", ordered[0])

        with self._lock:
            self._grid_dirs[steam_path] = ordered
        return list(ordered)

    def invalidate(self) -> None:
        with self._lock:
            self._grid_dirs.clear()
