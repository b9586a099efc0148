"""
Scans local Steam library folders for installed titles.

Library roots come from libraryfolders.vdf, installed titles from the
appmanifest_*.acf files inside each root. Hidden flags and last-played
times are merged in from every local profile; utilities and adult titles
are filtered unless the caller opts in.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

import vdf

from phantom.config import config
from phantom.core.background import BackgroundQueue
from phantom.core.errors import LibraryIndexNotFoundError
from phantom.core.models import ItemRecord, ScanOptions
from phantom.core.tag_cache import TagCache
from phantom.integrations.scanners.base_scanner import BaseScanner
from phantom.integrations.scanners.classify import is_adult, is_software
from phantom.integrations.scanners.steam_artwork import SteamArtwork
from phantom.integrations.scanners.steam_profiles import ProfileCache, list_profile_dirs
from phantom.integrations.steam_store import SteamStoreTags

logger = logging.getLogger("phantom.steam_scanner")

__all__ = [
    "SteamLibraryScanner",
    "SteamManifest",
    "find_library_index",
    "hidden_ids_from_text",
    "parse_library_paths",
    "parse_manifest",
]

_PATH_RE = re.compile(r'"path"\s+"([^"]+)"', re.IGNORECASE)
_APPID_RE = re.compile(r'"appid"\s+"(\d+)"', re.IGNORECASE)
_NAME_RE = re.compile(r'"name"\s+"([^"]+)"', re.IGNORECASE)
_LAST_UPDATED_RE = re.compile(r'"LastUpdated"\s+"(\d+)"', re.IGNORECASE)
_SECTION_RE = re.compile(r'"(\d+)"\s*\{')
_HIDDEN_RE = re.compile(r'"hidden"\s+"(\d+)"', re.IGNORECASE)


@dataclass(frozen=True)
class SteamManifest:
    """The fields of an appmanifest the catalog cares about."""

    app_id: str
    name: str
    last_updated: int = 0


def find_library_index(steam_path: Path) -> Path:
    """Locate libraryfolders.vdf under a Steam root.

    Raises:
        LibraryIndexNotFoundError: If neither known location exists.
    """
    for candidate in (
        steam_path / "config" / "libraryfolders.vdf",
        steam_path / "steamapps" / "libraryfolders.vdf",
    ):
        if candidate.is_file():
            return candidate
    raise LibraryIndexNotFoundError(f"libraryfolders.vdf not found under {steam_path}")


def parse_library_paths(text: str) -> list[Path]:
    """Extract library roots from libraryfolders.vdf text.

    Only ``"path" "<value>"`` pairs are recognized. Escaped backslashes are
    collapsed so Windows paths come out usable.
    """
    paths: list[Path] = []
    for match in _PATH_RE.finditer(text):
        path = Path(match.group(1).replace("\\\\", "\\"))
        if path not in paths:
            paths.append(path)
    return paths


def parse_manifest(text: str) -> SteamManifest | None:
    """Extract id, name and update time from appmanifest text.

    Returns:
        The manifest, or None when the id or the name is missing.
    """
    appid = _APPID_RE.search(text)
    name = _NAME_RE.search(text)
    if not appid or not name or not name.group(1).strip():
        return None
    updated = _LAST_UPDATED_RE.search(text)
    return SteamManifest(
        app_id=appid.group(1),
        name=name.group(1).strip(),
        last_updated=int(updated.group(1)) if updated else 0,
    )


def _direct_body(text: str, start: int) -> str:
    """Return the text of a section with its nested sub-sections removed.

    ``start`` is the index just after the section's opening brace. A
    truncated section yields whatever was read.
    """
    depth = 1
    parts = []
    segment_start = start
    for i in range(start, len(text)):
        char = text[i]
        if char == "{":
            if depth == 1:
                parts.append(text[segment_start:i])
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                parts.append(text[segment_start:i])
                return "".join(parts)
            if depth == 1:
                segment_start = i + 1
    if depth == 1:
        parts.append(text[segment_start:])
    return "".join(parts)


def hidden_ids_from_text(text: str) -> set[str]:
    """Return ids of app sections carrying a non-zero ``hidden`` key.

    Works for the current sharedconfig.vdf marker and for the legacy
    ``"Hidden" "1"`` flag of localconfig.vdf; the key is matched
    case-insensitively and only directly inside the app's own section.
    """
    hidden = set()
    for match in _SECTION_RE.finditer(text):
        body = _direct_body(text, match.end())
        flag = _HIDDEN_RE.search(body)
        if flag and int(flag.group(1)) != 0:
            hidden.add(match.group(1))
    return hidden


def _get_ci(data: dict, key: str) -> dict:
    """Case-insensitive dict lookup returning {} when absent."""
    if key in data:
        value = data[key]
    else:
        lowered = key.lower()
        value = next((v for k, v in data.items() if k.lower() == lowered), {})
    return value if isinstance(value, dict) else {}


def _get_ci_value(data: dict, key: str):
    lowered = key.lower()
    return next((v for k, v in data.items() if k.lower() == lowered), None)


def _iso(epoch: int) -> str:
    return datetime.fromtimestamp(epoch, tz=timezone.utc).isoformat() if epoch > 0 else ""


class SteamLibraryScanner(BaseScanner):
    """
    Builds catalog items from the local Steam installation.

    Tag lookups only happen when a filter needs them and go through the
    injected TagCache, which is persisted whenever a scan finishes.
    """

    def __init__(
        self,
        steam_path: Path,
        assets_dir: Path,
        tag_cache: TagCache,
        profile_cache: ProfileCache | None = None,
        tag_lookup: SteamStoreTags | None = None,
        queue: BackgroundQueue | None = None,
        software_app_ids: Iterable[str] | None = None,
        software_keywords: Iterable[str] | None = None,
        software_tags: Iterable[str] | None = None,
        adult_tags: Iterable[str] | None = None,
    ):
        """
        Initializes the SteamLibraryScanner.

        Args:
            steam_path (Path): Steam installation root.
            assets_dir (Path): Root of the per-item asset folders.
            tag_cache (TagCache): Persistent tag cache.
            profile_cache (ProfileCache | None): Shared grid-folder ordering.
            tag_lookup (SteamStoreTags | None): Remote tag source; None disables lookups.
            queue (BackgroundQueue | None): Queue for CDN artwork downloads.
            software_app_ids: Ids that are always utilities.
            software_keywords: Name substrings marking utilities.
            software_tags: Store tags marking utilities.
            adult_tags: Store tags marking adult content.
        """
        super().__init__(assets_dir)
        self.steam_path = steam_path
        self.tag_cache = tag_cache
        self.profile_cache = profile_cache or ProfileCache()
        self.tag_lookup = tag_lookup
        self.queue = queue
        self.software_app_ids = frozenset(
            str(i) for i in (software_app_ids if software_app_ids is not None else config.SOFTWARE_APP_IDS)
        )
        self.software_keywords = tuple(software_keywords if software_keywords is not None else config.SOFTWARE_KEYWORDS)
        self.software_tags = tuple(software_tags if software_tags is not None else config.SOFTWARE_TAGS)
        self.adult_tags = tuple(adult_tags if adult_tags is not None else config.ADULT_TAGS)

    def origin_name(self) -> str:
        return "steam"

    def scan(self, options: ScanOptions | None = None) -> list[ItemRecord]:
        """
        Enumerates every installed Steam title.

        Args:
            options (ScanOptions | None): Filter opt-ins.

        Returns:
            list[ItemRecord]: Installed titles that pass the filters.

        Raises:
            LibraryIndexNotFoundError: If no libraryfolders.vdf exists.
        """
        options = options or ScanOptions()
        try:
            return self._scan(options)
        finally:
            self.tag_cache.persist()

    def _scan(self, options: ScanOptions) -> list[ItemRecord]:
        index = find_library_index(self.steam_path)
        try:
            libraries = parse_library_paths(index.read_text(encoding="utf-8", errors="replace"))
        except OSError as e:
            raise LibraryIndexNotFoundError(f"Cannot read {index}: {e}") from e

        logger.info("Scanning %d Steam libraries", len(libraries))
        if not libraries:
            return []

        hidden = set() if options.include_hidden else self.hidden_app_ids()
        last_played = self.last_played_times()
        artwork = SteamArtwork(self.steam_path, self.profile_cache.grid_dirs(self.steam_path), self.queue)

        items: list[ItemRecord] = []
        seen: set[str] = set()
        for manifest_path, manifest in self._iter_manifests(libraries):
            if manifest.app_id in seen:
                continue
            if manifest.app_id in hidden:
                logger.debug("Skipping hidden app %s", manifest.app_id)
                continue
            if self._is_filtered(manifest, manifest_path.name, options):
                continue
            seen.add(manifest.app_id)
            items.append(self._to_item(manifest, artwork, last_played.get(manifest.app_id, 0)))

        logger.info("Steam scan found %d titles", len(items))
        return items

    def _iter_manifests(self, libraries: list[Path]) -> Iterator[tuple[Path, SteamManifest]]:
        for library in libraries:
            steamapps = library / "steamapps"
            if not steamapps.is_dir():
                logger.info("Library path does not exist: %s", steamapps)
                continue
            for manifest_path in sorted(steamapps.glob("appmanifest_*.acf")):
                try:
                    text = manifest_path.read_text(encoding="utf-8", errors="replace")
                except OSError as e:
                    logger.warning("Cannot read %s: %s", manifest_path, e)
                    continue
                manifest = parse_manifest(text)
                if manifest is None:
                    logger.debug("Skipping incomplete manifest %s", manifest_path.name)
                    continue
                yield manifest_path, manifest

    def hidden_app_ids(self) -> set[str]:
        """Union of hidden ids over every local profile."""
        hidden: set[str] = set()
        for profile in list_profile_dirs(self.steam_path):
            for config_file in (
                profile / "7" / "remote" / "sharedconfig.vdf",
                profile / "config" / "localconfig.vdf",
            ):
                if not config_file.is_file():
                    continue
                try:
                    hidden |= hidden_ids_from_text(config_file.read_text(encoding="utf-8", errors="replace"))
                except OSError as e:
                    logger.warning("Cannot read %s: %s", config_file, e)
        return hidden

    def last_played_times(self) -> dict[str, int]:
        """Most recent LastPlayed epoch per app id across all profiles."""
        result: dict[str, int] = {}
        for profile in list_profile_dirs(self.steam_path):
            localconfig = profile / "config" / "localconfig.vdf"
            if not localconfig.is_file():
                continue
            try:
                with open(localconfig, "r", encoding="utf-8", errors="replace") as f:
                    data = vdf.load(f)
            except (OSError, SyntaxError, ValueError) as e:
                logger.warning("Cannot parse %s: %s", localconfig, e)
                continue

            apps = data
            for key in ("UserLocalConfigStore", "Software", "Valve", "Steam", "apps"):
                apps = _get_ci(apps, key)

            for app_id, app_data in apps.items():
                if not isinstance(app_data, dict):
                    continue
                try:
                    played = int(_get_ci_value(app_data, "LastPlayed") or 0)
                except (TypeError, ValueError):
                    continue
                if played > result.get(app_id, 0):
                    result[app_id] = played
        return result

    def _tags_for(self, app_id: str) -> list[str] | None:
        tags = self.tag_cache.get(app_id)
        if tags is not None or self.tag_lookup is None:
            return tags
        fetched = self.tag_lookup.fetch_tags(app_id)
        if fetched is not None:
            self.tag_cache.put(app_id, fetched)
        return fetched

    def _is_filtered(self, manifest: SteamManifest, manifest_name: str, options: ScanOptions) -> bool:
        filter_software = not options.include_software
        filter_adult = not options.include_adult
        if not filter_software and not filter_adult:
            return False

        if filter_software and is_software(
            manifest.app_id,
            manifest.name,
            manifest_name,
            app_ids=self.software_app_ids,
            keywords=self.software_keywords,
        ):
            logger.debug("Skipping utility %s (%s)", manifest.app_id, manifest.name)
            return True

        tags = self._tags_for(manifest.app_id)
        if not tags:
            return False
        if filter_software and is_software(manifest.app_id, manifest.name, tags=tags, software_tags=self.software_tags):
            logger.debug("Skipping utility %s by store tags", manifest.app_id)
            return True
        if filter_adult and is_adult(tags, self.adult_tags):
            logger.debug("Skipping adult title %s", manifest.app_id)
            return True
        return False

    def _to_item(self, manifest: SteamManifest, artwork: SteamArtwork, last_played: int) -> ItemRecord:
        item_id = f"steam_{manifest.app_id}"
        paths = artwork.collect(manifest.app_id, self.asset_dir_for(item_id))
        return ItemRecord(
            id=item_id,
            title=manifest.name,
            exec_path=f"steam://rungameid/{manifest.app_id}",
            source=self.origin_name(),
            cover=paths.get("cover", ""),
            banner=paths.get("banner", ""),
            logo=paths.get("logo", ""),
            hero=paths.get("hero", ""),
            last_played=_iso(last_played),
            last_updated=last_played or manifest.last_updated,
        )
