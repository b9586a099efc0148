"""Data models shared by the scanners, the catalog store and the service layer.

ItemRecord and GroupRecord serialize to the camelCase layout of the legacy
data.json file so migrated catalogs and freshly scanned ones look the same.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

__all__ = [
    "ARTWORK_ROLES",
    "GroupRecord",
    "ItemRecord",
    "ScanOptions",
    "ScanResult",
]

ARTWORK_ROLES: tuple[str, ...] = ("cover", "banner", "logo", "hero")


@dataclass
class ItemRecord:
    """One playable item in the catalog.

    Args:
        id: Globally unique, origin-prefixed identifier (e.g. "steam_440").
        title: Display name.
        exec_path: Launch target (file path or URI).
        exec_args: Extra launch arguments.
        source: Origin tag ("steam", "xbox", "emulator", "manual").
        cover: Upright cover artwork path.
        banner: Wide banner artwork path.
        logo: Logo artwork path.
        hero: Hero/background artwork path.
        last_played: ISO-8601 timestamp or empty string.
        install_date: ISO-8601 timestamp or empty string.
        last_updated: Epoch seconds of the last origin update.
    """

    id: str
    title: str
    exec_path: str = ""
    exec_args: str = ""
    source: str = "manual"
    cover: str = ""
    banner: str = ""
    logo: str = ""
    hero: str = ""
    last_played: str = ""
    install_date: str = ""
    last_updated: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Serialize using the legacy camelCase keys."""
        return {
            "id": self.id,
            "title": self.title,
            "execPath": self.exec_path,
            "execArgs": self.exec_args,
            "source": self.source,
            "cover": self.cover,
            "banner": self.banner,
            "logo": self.logo,
            "hero": self.hero,
            "lastPlayed": self.last_played,
            "installDate": self.install_date,
            "lastUpdated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ItemRecord:
        """Build an item from a legacy or API dictionary.

        Missing fields fall back to their defaults; None values become empty.
        """
        return cls(
            id=str(data["id"]),
            title=str(data.get("title") or ""),
            exec_path=data.get("execPath") or "",
            exec_args=data.get("execArgs") or "",
            source=data.get("source") or "manual",
            cover=data.get("cover") or "",
            banner=data.get("banner") or "",
            logo=data.get("logo") or "",
            hero=data.get("hero") or "",
            last_played=data.get("lastPlayed") or "",
            install_date=data.get("installDate") or "",
            last_updated=int(data.get("lastUpdated") or 0),
        )


@dataclass
class GroupRecord:
    """An ordered group of items (a "category" in the launcher).

    Args:
        id: Unique group identifier.
        name: Display name.
        icon: Icon key.
        color: Accent colour.
        enabled: Whether the group is shown.
        items: Ordered member items.
        preferences: Opaque rendering preferences, stored verbatim.
    """

    id: str
    name: str
    icon: str = ""
    color: str = "#ffffff"
    enabled: bool = True
    items: list[ItemRecord] = field(default_factory=list)
    preferences: dict[str, Any] = field(default_factory=dict)

    _KNOWN_KEYS = frozenset({"id", "name", "icon", "color", "enabled", "games"})

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "icon": self.icon,
            "color": self.color,
            "enabled": self.enabled,
            "games": [item.to_dict() for item in self.items],
        }
        data.update(self.preferences)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GroupRecord:
        """Build a group from a legacy category dictionary.

        Every key that is not part of the group's identity is kept as a
        rendering preference.
        """
        games = data.get("games") or []
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            icon=data.get("icon") or "",
            color=data.get("color") or "#ffffff",
            enabled=bool(data.get("enabled", True)),
            items=[ItemRecord.from_dict(g) for g in games if isinstance(g, dict) and g.get("id")],
            preferences={k: v for k, v in data.items() if k not in cls._KNOWN_KEYS},
        )


@dataclass(frozen=True)
class ScanOptions:
    """Caller opt-ins for categories that are filtered out by default."""

    include_hidden: bool = False
    include_software: bool = False
    include_adult: bool = False


@dataclass
class ScanResult:
    """Outcome of an ingestion request.

    Scanners never raise past the service boundary; failures are reported
    with ``success=False`` and a human-readable ``error``.
    """

    success: bool
    items: list[ItemRecord] = field(default_factory=list)
    error: str | None = None

    @classmethod
    def failed(cls, message: str) -> ScanResult:
        return cls(success=False, items=[], error=message)

    def to_dict(self) -> dict[str, Any]:
        if not self.success:
            return {"error": self.error, "games": []}
        return {"games": [item.to_dict() for item in self.items]}
