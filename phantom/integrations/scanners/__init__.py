"""Source scanners turning origin-specific installs into ItemRecords."""

from __future__ import annotations

from phantom.integrations.scanners.base_scanner import BaseScanner
from phantom.integrations.scanners.registry_scanner import OSRegistryScanner
from phantom.integrations.scanners.rom_scanner import RomScanner
from phantom.integrations.scanners.steam_scanner import SteamLibraryScanner

__all__ = ["BaseScanner", "OSRegistryScanner", "RomScanner", "SteamLibraryScanner"]
