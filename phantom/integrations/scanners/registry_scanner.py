"""Scanner for games installed as OS application packages (Xbox / Microsoft Store).

Package enumeration is delegated to a runner callable that returns JSON
text; the default runner asks PowerShell on Windows and reports nothing on
other systems. Each package gets an asset folder holding a ``launch.url``
shortcut and a copy of its logo.
"""

from __future__ import annotations

import base64
import json
import logging
import platform
import shutil
import subprocess
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from phantom.core.models import ItemRecord, ScanOptions
from phantom.integrations.scanners.base_scanner import BaseScanner

__all__ = [
    "OSRegistryScanner",
    "RegistryEntry",
    "parse_registry_output",
    "powershell_runner",
    "write_url_shortcut",
]

logger = logging.getLogger("phantom.registry_scanner")

_ENUMERATE_SCRIPT = r"""
$ErrorActionPreference = 'SilentlyContinue'
$packages = Get-AppxPackage | Where-Object { $_.IsFramework -eq $false -and $_.SignatureKind -eq "Store" }
$byFamily = @{}
foreach ($p in $packages) { if ($p.PackageFamilyName) { $byFamily[$p.PackageFamilyName] = $p } }
$games = @()
foreach ($app in Get-StartApps) {
    if (-not $app.AppID.Contains("!")) { continue }
    $pkg = $byFamily[$app.AppID.Split("!")[0]]
    if (-not $pkg) { continue }
    $loc = $pkg.InstallLocation
    if (-not ($loc -and (Test-Path $loc))) { continue }
    $manifest = Join-Path $loc "AppxManifest.xml"
    if (-not (Test-Path $manifest)) { continue }
    $content = Get-Content $manifest -Raw
    if (-not ($content -match "ms-xbl-[a-f0-9]+" -or $content -match "uap:GameMode" -or $content -match 'Category="windows.game"')) { continue }
    $logo = ""
    if ($pkg.Logo) { $candidate = Join-Path $loc $pkg.Logo; if (Test-Path $candidate) { $logo = $candidate } }
    $installed = ""
    try { $installed = (Get-Item $loc).CreationTimeUtc.ToString("o") } catch {}
    $games += [PSCustomObject]@{
        id = $pkg.Name
        title = $app.Name
        execPath = "shell:AppsFolder\" + $app.AppID
        logoPath = $logo
        installDate = $installed
    }
}
ConvertTo-Json -InputObject @($games) -Depth 2
"""


def powershell_runner(timeout: float = 120.0) -> str:
    """Enumerate Store game packages through PowerShell.

    Returns:
        JSON text, ``"[]"`` on non-Windows systems or when PowerShell fails.
    """
    if platform.system() != "Windows" or shutil.which("powershell") is None:
        return "[]"

    encoded = base64.b64encode(_ENUMERATE_SCRIPT.encode("utf-16-le")).decode("ascii")
    try:
        result = subprocess.run(
            ["powershell", "-NoProfile", "-ExecutionPolicy", "Bypass", "-EncodedCommand", encoded],
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except (subprocess.TimeoutExpired, OSError) as e:
        logger.warning("Package enumeration failed: %s", e)
        return "[]"

    if result.returncode != 0:
        logger.warning("PowerShell exited with %d", result.returncode)
        return "[]"
    return result.stdout or "[]"


@dataclass(frozen=True)
class RegistryEntry:
    """One package reported by the runner."""

    id: str
    title: str
    exec_path: str = ""
    logo_path: str = ""
    install_date: str = ""


def _field(record: dict[str, Any], *names: str) -> str:
    lowered = {k.lower(): v for k, v in record.items()}
    for name in names:
        value = lowered.get(name.lower())
        if value:
            return str(value)
    return ""


def parse_registry_output(text: str) -> list[RegistryEntry]:
    """Parse runner output into entries.

    Accepts an array or a single object. Records without an id are dropped;
    malformed or empty output yields an empty list.
    """
    if not text or not text.strip():
        return []
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        logger.warning("Unreadable package list: %s", e)
        return []

    records = data if isinstance(data, list) else [data]
    entries = []
    for record in records:
        if not isinstance(record, dict):
            continue
        entry_id = _field(record, "id").strip()
        if not entry_id:
            continue
        entries.append(
            RegistryEntry(
                id=entry_id,
                title=_field(record, "title", "name") or entry_id,
                exec_path=_field(record, "execPath", "target"),
                logo_path=_field(record, "logoPath", "logo"),
                install_date=_field(record, "installDate"),
            )
        )
    return entries


def write_url_shortcut(path: Path, target: str, icon: str = "") -> None:
    """Create or overwrite an Internet shortcut file."""
    lines = ["[InternetShortcut]", f"URL={target}"]
    if icon:
        lines.extend([f"IconFile={icon}", "IconIndex=0"])
    path.write_text("\r\n".join(lines) + "\r\n", encoding="utf-8")


class OSRegistryScanner(BaseScanner):
    """Scanner for OS-registered game packages."""

    def __init__(self, assets_dir: Path, runner: Callable[[], str] | None = None) -> None:
        """Initializes the scanner.

        Args:
            assets_dir: Root of the per-item asset folders.
            runner: Callable returning the package list as JSON text.
        """
        super().__init__(assets_dir)
        self.runner = runner or powershell_runner

    def origin_name(self) -> str:
        return "xbox"

    def scan(self, options: ScanOptions | None = None) -> list[ItemRecord]:
        """Read installed packages and prepare their shortcuts.

        Returns:
            List of items, empty if enumeration failed.
        """
        try:
            output = self.runner()
        except Exception as e:
            logger.warning("Package runner failed: %s", e)
            return []

        items = []
        seen: set[str] = set()
        for entry in parse_registry_output(output):
            item_id = entry.id if entry.id.startswith("xbox_") else f"xbox_{entry.id}"
            if item_id in seen:
                continue
            seen.add(item_id)
            item = self._prepare(item_id, entry)
            if item is not None:
                items.append(item)

        logger.info("Found %d store packages", len(items))
        return items

    def _prepare(self, item_id: str, entry: RegistryEntry) -> ItemRecord | None:
        asset_dir = self.asset_dir_for(item_id, create=True)
        if not asset_dir.is_dir():
            return None

        logo = ""
        if entry.logo_path and Path(entry.logo_path).is_file():
            dest = asset_dir / "logo.png"
            try:
                shutil.copyfile(entry.logo_path, dest)
                logo = str(dest.resolve())
            except OSError as e:
                logger.warning("Failed to copy logo for %s: %s", item_id, e)

        shortcut = asset_dir / "launch.url"
        target = entry.exec_path or f"shell:AppsFolder\\{entry.id}"
        try:
            write_url_shortcut(shortcut, target, logo or entry.logo_path)
        except OSError as e:
            logger.warning("Failed to write shortcut for %s: %s", item_id, e)
            return None

        return ItemRecord(
            id=item_id,
            title=entry.title,
            exec_path=str(shortcut.resolve()),
            source=self.origin_name(),
            logo=logo,
            install_date=entry.install_date,
        )
