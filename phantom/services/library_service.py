"""Boundary service for the catalog and the artwork pipeline.

LibraryService owns the process-lifetime collaborators (catalog store, tag
cache, profile cache, background queue) and exposes every operation a front
end needs. Scans never raise: failures come back as ``ScanResult`` objects
with an error message.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import requests

from phantom.assets.proxy_cache import ProxyCache
from phantom.assets.resolver import AssetResolver
from phantom.assets.transcoder import ROLE_SPECS, ImageTranscoder
from phantom.config import Config, config
from phantom.core.background import BackgroundQueue
from phantom.core.db import CatalogStore
from phantom.core.errors import AssetImportError, PhantomError
from phantom.core.models import GroupRecord, ScanOptions, ScanResult
from phantom.core.tag_cache import TagCache
from phantom.integrations.scanners.base_scanner import BaseScanner
from phantom.integrations.scanners.registry_scanner import OSRegistryScanner
from phantom.integrations.scanners.rom_scanner import RomScanner
from phantom.integrations.scanners.steam_profiles import ProfileCache
from phantom.integrations.scanners.steam_scanner import SteamLibraryScanner
from phantom.integrations.steam_store import SteamStoreTags

__all__ = ["LibraryService"]

logger = logging.getLogger("phantom.library_service")

# Roles whose artwork keeps transparency
_ALPHA_ROLES = frozenset({"logo", "icon"})


class LibraryService:
    """Catalog ingestion, persistence and artwork serving.

    Args:
        cfg: Configuration to read paths and tunables from.
        registry_runner: Replacement package enumerator for the store scan.
        tag_lookup: Replacement remote tag source; defaults to the Steam
            Store when tag lookups are enabled.
        session: HTTP session used for artwork imports.
    """

    def __init__(
        self,
        cfg: Config = config,
        registry_runner: Callable[[], str] | None = None,
        tag_lookup: SteamStoreTags | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.cfg = cfg
        cfg.ensure_dirs()

        self.store = CatalogStore(cfg.DB_FILE)
        self.tag_cache = TagCache(cfg.TAG_CACHE_FILE)
        self.profile_cache = ProfileCache()
        self.queue = BackgroundQueue(max_workers=cfg.BACKGROUND_WORKERS)
        self.session = session or requests.Session()

        if tag_lookup is None and cfg.TAG_LOOKUP_ENABLED:
            tag_lookup = SteamStoreTags(timeout=cfg.TAG_LOOKUP_TIMEOUT, min_interval=cfg.TAG_LOOKUP_INTERVAL)
        self.tag_lookup = tag_lookup
        self.registry_runner = registry_runner

        self.resolver = AssetResolver(cfg.ASSETS_DIR, cfg.TEMPLATES_DIR, cfg.WIDE_TEMPLATE_MIN_WIDTH)
        self.transcoder = ImageTranscoder()
        self.proxy_cache = ProxyCache(
            cfg.CACHE_DIR,
            self.transcoder,
            version=cfg.CACHE_FORMAT_VERSION,
            max_bytes=int(cfg.PROXY_CACHE_MAX_MB) * 1024 * 1024,
        )

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def _run_scan(self, label: str, scanner_factory: Callable[[], BaseScanner], options: ScanOptions | None) -> ScanResult:
        try:
            items = scanner_factory().scan(options or ScanOptions())
        except PhantomError as e:
            logger.warning("%s scan failed: %s", label, e)
            return ScanResult.failed(str(e))
        except Exception as e:
            logger.exception("Unexpected error during %s scan", label)
            return ScanResult.failed(f"{label} scan failed: {e}")
        return ScanResult(success=True, items=items)

    def scan_steam(self, options: ScanOptions | None = None) -> ScanResult:
        """Scan the local Steam libraries."""
        steam_path = self.cfg.STEAM_PATH
        if not steam_path:
            return ScanResult.failed("Steam installation not found")

        def factory() -> BaseScanner:
            return SteamLibraryScanner(
                steam_path,
                self.cfg.ASSETS_DIR,
                self.tag_cache,
                profile_cache=self.profile_cache,
                tag_lookup=self.tag_lookup,
                queue=self.queue,
                software_app_ids=self.cfg.SOFTWARE_APP_IDS,
                software_keywords=self.cfg.SOFTWARE_KEYWORDS,
                software_tags=self.cfg.SOFTWARE_TAGS,
                adult_tags=self.cfg.ADULT_TAGS,
            )

        return self._run_scan("Steam", factory, options)

    def scan_store(self, options: ScanOptions | None = None) -> ScanResult:
        """Scan OS-registered store packages."""
        return self._run_scan(
            "Store",
            lambda: OSRegistryScanner(self.cfg.ASSETS_DIR, runner=self.registry_runner),
            options,
        )

    def scan_roms(self, platform: str, root: Path | str, emulator: str) -> ScanResult:
        """Scan one platform's ROM directory.

        Args:
            platform: Platform id (see emulator_config.PLATFORMS).
            root: ROM directory.
            emulator: Emulator executable used as launch target.
        """
        return self._run_scan(
            "ROM",
            lambda: RomScanner(self.cfg.ASSETS_DIR).configure(platform, root, emulator),
            None,
        )

    # ------------------------------------------------------------------
    # Artwork
    # ------------------------------------------------------------------

    def get_artwork_path(self, raw: str, width: int | None = None, height: int | None = None) -> Path | None:
        """Resolve ``raw`` and return the file to serve at the requested size."""
        resolved = self.resolver.resolve_or_none(raw, width)
        if resolved is None:
            return None
        return self.proxy_cache.get_or_create(resolved, width, height)

    def get_artwork(self, raw: str, width: int | None = None, height: int | None = None) -> bytes | None:
        """Return artwork bytes for ``raw``; None only if nothing can be served."""
        served = self.get_artwork_path(raw, width, height)
        if served is None:
            return None
        try:
            return served.read_bytes()
        except OSError as e:
            logger.error("Cannot read %s: %s", served, e)
            return None

    def import_asset(self, source: str, item_id: str, role: str) -> Path:
        """Copy or download an image into an item's asset folder.

        The image is transcoded to the role geometry and stored as
        ``<role>.png`` (logo, icon) or ``<role>.jpg``.

        Args:
            source: Local path or http(s) URL.
            item_id: Catalog id of the item.
            role: Artwork role.

        Returns:
            Path of the stored artwork.

        Raises:
            AssetImportError: If the role is unknown, the source cannot be
                read or the target folder cannot be created.
        """
        if role not in ROLE_SPECS:
            raise AssetImportError(f"Unknown artwork role: {role}")

        target_dir = self.cfg.ASSETS_DIR / item_id
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise AssetImportError(f"Cannot create {target_dir}: {e}") from e

        dest = target_dir / (f"{role}.png" if role in _ALPHA_ROLES else f"{role}.jpg")

        downloaded = source.startswith(("http://", "https://"))
        if downloaded:
            suffix = Path(urlparse(source).path).suffix.lower() or ".img"
            local = self._download(source, target_dir / f".import-{role}{suffix}")
        else:
            local = self.resolver.find(source)
            if local is None:
                raise AssetImportError(f"Source image not found: {source}")

        try:
            return self.transcoder.transcode(local, dest, role).resolve()
        except OSError as e:
            raise AssetImportError(f"Cannot write {dest}: {e}") from e
        finally:
            if downloaded:
                local.unlink(missing_ok=True)

    def _download(self, url: str, dest: Path) -> Path:
        headers = {"User-Agent": "PhantomCatalog/1.0"}
        try:
            response = self.session.get(url, headers=headers, timeout=15)
            response.raise_for_status()
            dest.write_bytes(response.content)
        except (requests.RequestException, OSError) as e:
            raise AssetImportError(f"Download of {url} failed: {e}") from e
        return dest

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def load_catalog(self) -> list[GroupRecord]:
        return self.store.load()

    def save_catalog(self, groups: Iterable[GroupRecord | dict[str, Any]]) -> None:
        """Replace the stored catalog with ``groups`` (records or legacy dicts)."""
        records = [g if isinstance(g, GroupRecord) else GroupRecord.from_dict(g) for g in groups]
        self.store.replace_all(records)

    def delete_item(self, item_id: str) -> bool:
        """Delete an item and its asset folder."""
        deleted = self.store.delete_item(item_id)
        asset_dir = self.cfg.ASSETS_DIR / item_id
        if asset_dir.is_dir():
            try:
                shutil.rmtree(asset_dir)
            except OSError as e:
                logger.warning("Could not remove %s: %s", asset_dir, e)
        return deleted

    def wipe(self) -> None:
        """Delete the whole catalog, every asset folder and the image cache."""
        self.store.wipe()
        for directory in (self.cfg.ASSETS_DIR, self.cfg.CACHE_DIR):
            if directory.is_dir():
                try:
                    shutil.rmtree(directory)
                except OSError as e:
                    logger.warning("Could not clear %s: %s", directory, e)
        self.cfg.ensure_dirs()

    def record_launch(self, item_id: str) -> bool:
        return self.store.update_last_played(item_id)

    def migrate_legacy(self) -> bool:
        """Import the legacy data.json once, if present."""
        return self.store.migrate_from_json(self.cfg.LEGACY_DATA_FILE)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        self.queue.shutdown(wait_for_tasks=True)
        self.tag_cache.persist()
        self.store.close()

    def __enter__(self) -> LibraryService:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
