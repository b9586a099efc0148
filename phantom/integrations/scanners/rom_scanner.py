"""Scanner for ROM images of a single emulated platform.

Each ROM (FILE platforms) or each title folder (FOLDER platforms) becomes
one catalog item launched through the given emulator with the ROM path as
its argument.
"""

from __future__ import annotations

import fnmatch
import logging
import os
import re
import unicodedata
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from pathlib import Path

from phantom.core.errors import ScanConfigurationError
from phantom.core.models import ItemRecord, ScanOptions
from phantom.integrations.scanners.base_scanner import BaseScanner
from phantom.integrations.scanners.emulator_config import PlatformDef, ScanMode, get_platform
from phantom.integrations.scanners.sfo_parser import read_sfo_title

__all__ = [
    "DEFAULT_CLEAN_PATTERNS",
    "FOLDER_CLEAN_PATTERNS",
    "RomCandidate",
    "RomScanner",
    "clean_title",
    "slugify",
]

logger = logging.getLogger("phantom.rom_scanner")

# Applied in order. Each entry is (pattern, replacement).
DEFAULT_CLEAN_PATTERNS: tuple[tuple[str, str], ...] = (
    # Trailing extension: "Game.iso"
    (r"\.[A-Za-z0-9]{1,4}$", ""),
    # Tags: (USA), (v1.6), (Disc 1)
    (r"\([^)]*\)", ""),
    # Dump flags and title ids: [!], [01006A800016E000]
    (r"\[[^\]]*\]", ""),
    (r"_", " "),
    # Sort prefixes: "0123 - Game"
    (r"^\d+\s*-\s*", ""),
    (r"\s+", " "),
)

# Folder names carry no extension
FOLDER_CLEAN_PATTERNS: tuple[tuple[str, str], ...] = DEFAULT_CLEAN_PATTERNS[1:]


def clean_title(name: str, patterns: Sequence[tuple[str, str]] = DEFAULT_CLEAN_PATTERNS) -> str:
    """Turn a ROM file or folder name into a display title.

    Examples:
        "Super Mario 64 (USA) [!].z64" -> "Super Mario 64"
        "0042 - Metroid_Prime (Europe).iso" -> "Metroid Prime"

    Args:
        name: File or folder name.
        patterns: Ordered (regex, replacement) pairs.

    Returns:
        The cleaned title, or the stripped input if cleaning left nothing.
    """
    title = name
    for pattern, replacement in patterns:
        title = re.sub(pattern, replacement, title)
    title = title.strip(" -.")
    return title or name.strip()


def slugify(text: str) -> str:
    """Lower-case ASCII slug: accents stripped, other characters become ``_``."""
    decomposed = unicodedata.normalize("NFD", text.lower())
    ascii_only = "".join(c for c in decomposed if not unicodedata.combining(c))
    slug = re.sub(r"[^a-z0-9]", "_", ascii_only)
    slug = re.sub(r"_+", "_", slug)
    return slug.strip("_")


@dataclass(frozen=True)
class RomCandidate:
    """A title found on disk before it is turned into an item."""

    title: str
    payload: Path


def _find_nested(folder: Path, patterns: Sequence[str], max_depth: int = 3) -> Path | None:
    """Return the first file below ``folder`` matching one of ``patterns``.

    Patterns are relative globs compared case-insensitively; they are tried
    in order, so earlier patterns win over later ones.
    """
    relative_files: list[tuple[str, Path]] = []
    for root, dirs, files in os.walk(folder):
        depth = len(Path(root).relative_to(folder).parts)
        if depth >= max_depth:
            dirs[:] = []
        for name in files:
            path = Path(root) / name
            relative_files.append((path.relative_to(folder).as_posix().lower(), path))
    relative_files.sort()

    for pattern in patterns:
        lowered = pattern.lower()
        for relative, path in relative_files:
            if relative.count("/") == lowered.count("/") and fnmatch.fnmatchcase(relative, lowered):
                return path
    return None


class RomScanner(BaseScanner):
    """Scan one platform root for ROMs.

    Args are given per scan so one scanner instance can serve every
    platform.
    """

    def __init__(
        self,
        assets_dir: Path,
        clean_patterns: Sequence[tuple[str, str]] = DEFAULT_CLEAN_PATTERNS,
    ) -> None:
        super().__init__(assets_dir)
        self.clean_patterns = tuple(clean_patterns)
        self._job: tuple[PlatformDef, Path, str] | None = None

    def origin_name(self) -> str:
        return "emulator"

    def configure(self, platform_id: str, root: Path | str, emulator: str) -> RomScanner:
        """Select the platform, ROM root and emulator for the next scan.

        Raises:
            ScanConfigurationError: If the platform is unknown, the root
                directory does not exist or no emulator is given.
        """
        platform = get_platform(platform_id or "")
        if platform is None:
            raise ScanConfigurationError(f"Unknown platform: {platform_id!r}")
        root = Path(root)
        if not root.is_dir():
            raise ScanConfigurationError(f"ROM directory does not exist: {root}")
        if not emulator or not str(emulator).strip():
            raise ScanConfigurationError("No emulator given")
        self._job = (platform, root, emulator)
        return self

    def scan(self, options: ScanOptions | None = None) -> list[ItemRecord]:
        """Scan the configured platform root.

        Returns:
            One item per title; duplicate ids keep the first occurrence.

        Raises:
            ScanConfigurationError: If configure() was not called.
        """
        if self._job is None:
            raise ScanConfigurationError("RomScanner.scan() called before configure()")
        platform, root, emulator = self._job

        if platform.mode is ScanMode.FOLDER:
            candidates = self._scan_folders(platform, root)
        else:
            candidates = self._scan_files(platform, root)

        items: list[ItemRecord] = []
        seen: set[str] = set()
        for candidate in candidates:
            slug = slugify(candidate.title) or slugify(candidate.payload.stem) or "untitled"
            item_id = f"emu_{platform.id}_{slug}"
            if item_id in seen:
                logger.debug("Duplicate title %s at %s", item_id, candidate.payload)
                continue
            seen.add(item_id)
            items.append(
                ItemRecord(
                    id=item_id,
                    title=candidate.title,
                    exec_path=emulator,
                    exec_args=f'"{candidate.payload}"',
                    source=self.origin_name(),
                )
            )

        logger.info("Found %d %s titles in %s", len(items), platform.display, root)
        return items

    def _scan_files(self, platform: PlatformDef, root: Path) -> Iterator[RomCandidate]:
        matches: list[Path] = []
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames.sort()
            for name in filenames:
                if os.path.splitext(name)[1].lower() not in platform.extensions:
                    continue
                if platform.exclude is not None and platform.exclude.search(name):
                    logger.debug("Skipping update/DLC file %s", name)
                    continue
                matches.append(Path(dirpath) / name)

        for path in sorted(matches, key=lambda p: p.as_posix().lower()):
            yield RomCandidate(title=clean_title(path.name, self.clean_patterns), payload=path)

    def _scan_folders(self, platform: PlatformDef, root: Path) -> Iterator[RomCandidate]:
        try:
            folders = sorted((p for p in root.iterdir() if p.is_dir()), key=lambda p: p.name.lower())
        except OSError as e:
            logger.warning("Cannot read directory %s: %s", root, e)
            return

        for folder in folders:
            title = None
            payload = None
            if platform.metadata_patterns:
                metadata = _find_nested(folder, platform.metadata_patterns)
                if metadata is not None:
                    title = read_sfo_title(metadata)
            if platform.payload_patterns:
                payload = _find_nested(folder, platform.payload_patterns)
            yield RomCandidate(
                title=title or clean_title(folder.name, FOLDER_CLEAN_PATTERNS),
                payload=payload or folder,
            )
