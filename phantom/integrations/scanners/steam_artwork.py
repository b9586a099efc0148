"""
Artwork lookup for Steam titles.

Searches the profile grid folders (custom artwork) and the client's library
cache first and copies a hit into the item's asset folder. When nothing is
available locally the CDN image is downloaded on the background queue; the
scan never waits for it.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

import requests

from phantom.core.background import BackgroundQueue

logger = logging.getLogger("phantom.steam_artwork")

__all__ = ["CDN_BASE", "SteamArtwork", "cdn_url", "destination_name"]

CDN_BASE = "https://shared.akamai.steamstatic.com/store_item_assets/steam/apps"

# role -> (grid file stem format, library cache file name, CDN file name)
_ROLE_SOURCES: dict[str, tuple[str, str, str]] = {
    "cover": ("{app_id}p", "library_600x900.jpg", "library_600x900.jpg"),
    "banner": ("{app_id}", "header.jpg", "header.jpg"),
    "logo": ("{app_id}_logo", "logo.png", "logo.png"),
    "hero": ("{app_id}_hero", "library_hero.jpg", "library_hero.jpg"),
}

_GRID_EXTENSIONS = (".png", ".jpg", ".jpeg", ".webp", ".gif")


def cdn_url(app_id: str, role: str) -> str:
    """Return the public CDN URL of a role image."""
    return f"{CDN_BASE}/{app_id}/{_ROLE_SOURCES[role][2]}"


def destination_name(role: str, source: str) -> str:
    """Return ``<role>.png`` if the source is a PNG, otherwise ``<role>.jpg``."""
    return f"{role}.png" if source.lower().endswith(".png") else f"{role}.jpg"


class SteamArtwork:
    """Collects the four artwork roles of Steam titles into asset folders."""

    def __init__(
        self,
        steam_path: Path,
        grid_dirs: list[Path],
        queue: BackgroundQueue | None = None,
        session: requests.Session | None = None,
        timeout: float = 10.0,
    ):
        """
        Initializes the SteamArtwork helper.

        Args:
            steam_path (Path): Steam installation root.
            grid_dirs (list[Path]): Profile grid folders in search order.
            queue (BackgroundQueue | None): Queue for CDN downloads. Without a
                queue, missing artwork is simply not fetched.
            session (requests.Session | None): HTTP session for downloads.
            timeout (float): Download timeout in seconds.
        """
        self.grid_dirs = grid_dirs
        self.library_cache = steam_path / "appcache" / "librarycache"
        self.queue = queue
        self.session = session or requests.Session()
        self.timeout = timeout

    def find_local(self, app_id: str, role: str) -> Path | None:
        """Locate a role image on disk.

        Search order: every grid folder, then the flat library cache layout
        (``<id>_library_600x900.jpg``), then the per-app layout
        (``<id>/library_600x900.jpg``).
        """
        grid_stem, cache_name, _ = _ROLE_SOURCES[role]
        stem = grid_stem.format(app_id=app_id)

        for grid in self.grid_dirs:
            for ext in _GRID_EXTENSIONS:
                candidate = grid / f"{stem}{ext}"
                if candidate.is_file():
                    return candidate

        for candidate in (
            self.library_cache / f"{app_id}_{cache_name}",
            self.library_cache / app_id / cache_name,
        ):
            if candidate.is_file():
                return candidate
        return None

    def collect(self, app_id: str, asset_dir: Path) -> dict[str, str]:
        """Make sure every role image is (or will be) in ``asset_dir``.

        Args:
            app_id: Steam app id.
            asset_dir: The item's asset folder.

        Returns:
            Mapping role -> expected destination path. The path may not exist
            yet when a background download is still pending.
        """
        try:
            asset_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning("Cannot create asset folder for %s: %s", app_id, e)
            return {}

        paths: dict[str, str] = {}
        for role in _ROLE_SOURCES:
            local = self.find_local(app_id, role)
            if local is not None:
                dest = asset_dir / destination_name(role, local.name)
                if not dest.exists():
                    try:
                        shutil.copy2(local, dest)
                    except OSError as e:
                        logger.warning("Failed to copy %s for %s: %s", role, app_id, e)
                paths[role] = str(dest)
                continue

            url = cdn_url(app_id, role)
            dest = asset_dir / destination_name(role, url)
            if not dest.exists() and self.queue is not None:
                self.queue.submit(f"cdn:{app_id}:{role}", self.download, url, dest)
            paths[role] = str(dest)
        return paths

    def download(self, url: str, dest: Path) -> bool:
        """Fetch ``url`` into ``dest`` (complete file, then rename).

        Returns:
            True if the file was written.
        """
        headers = {"User-Agent": "PhantomCatalog/1.0"}
        response = self.session.get(url, headers=headers, timeout=self.timeout)
        if response.status_code != 200:
            logger.debug("CDN returned HTTP %s for %s", response.status_code, url)
            return False

        tmp = dest.with_name(dest.name + ".part")
        with open(tmp, "wb") as f:
            f.write(response.content)
        os.replace(tmp, dest)
        logger.debug("Downloaded %s", dest)
        return True
