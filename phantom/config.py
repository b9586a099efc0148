"""
Configuration - Windows & Linux Auto-Detection
Resolves the storage tree, the Steam installation and the classification
keyword lists. Values can be overridden through settings.json or the
environment (.env is honoured through python-dotenv).
"""

from __future__ import annotations

import json
import logging
import os
import platform
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger("phantom.config")


__all__ = [
    "ADULT_TAGS",
    "Config",
    "SOFTWARE_APP_IDS",
    "SOFTWARE_KEYWORDS",
    "SOFTWARE_TAGS",
    "config",
]

# Steamworks redistributables, SteamVR, Wallpaper Engine, etc.
SOFTWARE_APP_IDS: frozenset[str] = frozenset(
    {
        "214850",
        "250820",
        "365670",
        "1486350",
        "431960",
        "388080",
        "993090",
        "331200",
        "228980",
        # Proton / Steam Linux Runtime
        "1887720",
        "1493710",
        "1420170",
        "1070560",
        "1391110",
        "1628350",
        "1826330",
        "2180100",
        "2348590",
    }
)

SOFTWARE_KEYWORDS: tuple[str, ...] = (
    "Steamworks",
    "Redistributable",
    "Soundtrack",
    "Artbook",
    "SDK",
    "Dedicated Server",
    "Benchmark",
    "Tool",
    "Utility",
    "Studio",
    "Editor",
    "Engine",
    "Framework",
    "Application",
    "Software",
    "Demo",
    "Player",
    "Workshop",
    "Server",
    "Client",
    "Driver",
    "Config",
    "Proton",
    "Runtime",
)

SOFTWARE_TAGS: tuple[str, ...] = (
    "Software",
    "Utilities",
    "Design & Illustration",
    "Animation & Modeling",
    "Audio Production",
    "Video Production",
    "Photo Editing",
    "Game Development",
    "Web Publishing",
    "Software Training",
)

ADULT_TAGS: tuple[str, ...] = (
    "Sexual Content",
    "Nudity",
    "NSFW",
    "Hentai",
    "Adult Content",
)


def _default_base_dir() -> Path:
    """Return the storage base directory ($PHANTOM_HOME or the CWD)."""
    env_home = os.getenv("PHANTOM_HOME")
    return Path(env_home).expanduser() if env_home else Path.cwd()


@dataclass
class Config:
    """
    Central configuration handling for the application.
    Manages paths, Steam detection, classification lists and cache settings.
    """

    BASE_DIR: Path | None = None
    RESOURCES_DIR: Path = Path(__file__).parent / "resources"

    # Steam
    STEAM_PATH: Path | None = None

    # Classification (injectable into scanners)
    SOFTWARE_APP_IDS: frozenset[str] = SOFTWARE_APP_IDS
    SOFTWARE_KEYWORDS: tuple[str, ...] = SOFTWARE_KEYWORDS
    SOFTWARE_TAGS: tuple[str, ...] = SOFTWARE_TAGS
    ADULT_TAGS: tuple[str, ...] = ADULT_TAGS

    # Remote tag lookup
    TAG_LOOKUP_ENABLED: bool = True
    TAG_LOOKUP_TIMEOUT: float = 5.0
    TAG_LOOKUP_INTERVAL: float = 1.0

    # Artwork
    WIDE_TEMPLATE_MIN_WIDTH: int = 800
    CACHE_FORMAT_VERSION: str = "3"
    PROXY_CACHE_MAX_MB: int = 0  # 0 = unbounded
    BACKGROUND_WORKERS: int = 4

    def __post_init__(self) -> None:
        """Load .env and settings, then auto-detect Steam."""
        load_dotenv()
        if self.BASE_DIR is None:
            self.BASE_DIR = _default_base_dir()

        env_steam = os.getenv("PHANTOM_STEAM_PATH")
        if env_steam:
            self.STEAM_PATH = Path(env_steam)

        self._load_settings()

        if not self.STEAM_PATH:
            detected = self._find_steam_path()
            if detected:
                self.STEAM_PATH = detected

    # ------------------------------------------------------------------
    # Derived paths
    # ------------------------------------------------------------------

    @property
    def STORAGE_DIR(self) -> Path:
        return self.BASE_DIR / "storage"

    @property
    def ASSETS_DIR(self) -> Path:
        return self.STORAGE_DIR / "assets"

    @property
    def CACHE_DIR(self) -> Path:
        return self.BASE_DIR / "phantom_cache"

    @property
    def DB_FILE(self) -> Path:
        return self.BASE_DIR / "phantom.db"

    @property
    def LEGACY_DATA_FILE(self) -> Path:
        return self.BASE_DIR / "data.json"

    @property
    def TAG_CACHE_FILE(self) -> Path:
        return self.BASE_DIR / "tag_cache.json"

    @property
    def SETTINGS_FILE(self) -> Path:
        return self.BASE_DIR / "settings.json"

    @property
    def TEMPLATES_DIR(self) -> Path:
        return self.RESOURCES_DIR / "templates"

    def ensure_dirs(self) -> None:
        """Create the storage tree if it does not exist yet."""
        for directory in (self.STORAGE_DIR, self.ASSETS_DIR, self.CACHE_DIR):
            directory.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _load_settings(self) -> None:
        """Load settings from JSON file."""
        if not self.SETTINGS_FILE.exists():
            return

        try:
            with open(self.SETTINGS_FILE, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Failed to load settings: %s", e)
            return
        if not isinstance(data, dict):
            logger.error("Ignoring %s: expected a JSON object", self.SETTINGS_FILE.name)
            return

        steam_path = data.get("steam_path")
        if steam_path:
            self.STEAM_PATH = Path(steam_path)

        self.TAG_LOOKUP_ENABLED = data.get("tag_lookup_enabled", self.TAG_LOOKUP_ENABLED)
        self.PROXY_CACHE_MAX_MB = data.get("proxy_cache_max_mb", self.PROXY_CACHE_MAX_MB)

        if data.get("software_keywords"):
            self.SOFTWARE_KEYWORDS = tuple(data["software_keywords"])
        if data.get("software_app_ids"):
            self.SOFTWARE_APP_IDS = frozenset(str(i) for i in data["software_app_ids"])
        if data.get("adult_tags"):
            self.ADULT_TAGS = tuple(data["adult_tags"])

    @staticmethod
    def _find_steam_path() -> Path | None:
        """Auto-detect Steam path on Linux and Windows."""
        system = platform.system()

        if system == "Windows":
            try:
                import winreg

                key = winreg.OpenKey(winreg.HKEY_CURRENT_USER, r"Software\Valve\Steam")
                path_str, _ = winreg.QueryValueEx(key, "SteamPath")
                path = Path(path_str)
                if path.exists():
                    return path
            except OSError:
                # Fallback to standard paths if registry fails
                common_paths = [Path(r"C:\Program Files (x86)\Steam"), Path(r"C:\Program Files\Steam")]
                for p in common_paths:
                    if p.exists():
                        return p

        else:
            paths = [
                Path.home() / ".steam" / "steam",
                Path.home() / ".local" / "share" / "Steam",
            ]
            for p in paths:
                if p.exists():
                    return p.resolve() if p.is_symlink() else p

        return None


# Global instance
config = Config()
