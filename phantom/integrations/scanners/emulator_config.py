"""Platform definitions for the ROM scanner.

Provides the frozen PlatformDef dataclass and the registry of supported
platforms: which file extensions belong to a platform, whether a title is a
single file or a whole folder, which files mark updates/DLC, and where the
title metadata and the bootable payload live inside a folder title.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

__all__ = [
    "PLATFORMS",
    "PlatformDef",
    "ScanMode",
    "UPDATE_DLC_PATTERN",
    "get_platform",
]


class ScanMode(Enum):
    """How titles are laid out below a platform root."""

    FILE = "file"
    FOLDER = "folder"


# Update, DLC and patch packages sitting next to the base game
UPDATE_DLC_PATTERN = re.compile(r"(?i)(^|[\s\[(_-])(update|upd|dlc|patch)([\s\])_.-]|$)")


@dataclass(frozen=True)
class PlatformDef:
    """Definition of a supported platform.

    Args:
        id: Platform id used in item ids (e.g. "ps2").
        display: Human-readable platform name.
        extensions: Lower-case ROM file extensions (FILE mode).
        mode: FILE (one file per title) or FOLDER (one folder per title).
        exclude: Pattern for files that are not standalone titles.
        metadata_patterns: Relative globs locating the title metadata file.
        payload_patterns: Relative globs locating the bootable executable.
    """

    id: str
    display: str
    extensions: tuple[str, ...] = ()
    mode: ScanMode = ScanMode.FILE
    exclude: re.Pattern | None = None
    metadata_patterns: tuple[str, ...] = ()
    payload_patterns: tuple[str, ...] = ()


PLATFORMS: dict[str, PlatformDef] = {
    p.id: p
    for p in (
        PlatformDef(
            id="3ds",
            display="Nintendo 3DS",
            extensions=(".3ds", ".cia", ".cci", ".cxi"),
            exclude=UPDATE_DLC_PATTERN,
        ),
        PlatformDef(id="n64", display="Nintendo 64", extensions=(".n64", ".z64", ".v64")),
        PlatformDef(id="nds", display="Nintendo DS", extensions=(".nds",)),
        PlatformDef(id="ngc", display="Nintendo GameCube", extensions=(".iso", ".gcm", ".rvz", ".ciso")),
        PlatformDef(
            id="nsw",
            display="Nintendo Switch",
            extensions=(".nsp", ".xci"),
            exclude=UPDATE_DLC_PATTERN,
        ),
        PlatformDef(id="wii", display="Nintendo Wii", extensions=(".iso", ".wbfs", ".rvz", ".wad")),
        PlatformDef(
            id="wiu",
            display="Nintendo Wii U",
            extensions=(".wud", ".wux", ".wua", ".rpx"),
            exclude=UPDATE_DLC_PATTERN,
        ),
        PlatformDef(id="ps2", display="PlayStation 2", extensions=(".iso", ".chd", ".cso", ".bin")),
        PlatformDef(
            id="ps3",
            display="PlayStation 3",
            mode=ScanMode.FOLDER,
            metadata_patterns=("PS3_GAME/PARAM.SFO", "PARAM.SFO", "*/PS3_GAME/PARAM.SFO", "*/PARAM.SFO"),
            payload_patterns=(
                "PS3_GAME/USRDIR/EBOOT.BIN",
                "USRDIR/EBOOT.BIN",
                "*/PS3_GAME/USRDIR/EBOOT.BIN",
                "*/USRDIR/EBOOT.BIN",
            ),
        ),
        PlatformDef(
            id="ps4",
            display="PlayStation 4",
            extensions=(".pkg",),
            exclude=UPDATE_DLC_PATTERN,
        ),
        PlatformDef(id="psp", display="PlayStation Portable", extensions=(".iso", ".cso", ".pbp")),
        PlatformDef(
            id="psv",
            display="PlayStation Vita",
            mode=ScanMode.FOLDER,
            metadata_patterns=("sce_sys/param.sfo", "*/sce_sys/param.sfo"),
            payload_patterns=("eboot.bin", "*/eboot.bin"),
        ),
    )
}


def get_platform(platform_id: str) -> PlatformDef | None:
    """Look up a platform by id (case-insensitive)."""
    return PLATFORMS.get(platform_id.lower())
