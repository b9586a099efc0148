"""One-time migration from the legacy data.json catalog.

The legacy file is consumed at most once: it is renamed to ``.bak`` after a
successful (or empty) migration and to ``.err`` when parsing fails, so a
broken file can never trigger a retry on every startup.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from phantom.core.models import GroupRecord

logger = logging.getLogger("phantom.database")

__all__ = ["MigrationMixin", "groups_from_legacy"]


def groups_from_legacy(data: Any) -> list[GroupRecord]:
    """Interpret a legacy data.json payload.

    Args:
        data: Decoded JSON. A bare array is the oldest layout (a flat game
            list); an object carries its groups under ``categories``.

    Returns:
        Groups to import (possibly empty).

    Raises:
        ValueError: If the payload has neither known layout.
    """
    if isinstance(data, list):
        return [
            GroupRecord.from_dict(
                {"id": "all", "name": "ALL GAMES", "icon": "grid", "color": "#ffffff", "enabled": True, "games": data}
            )
        ]
    if isinstance(data, dict):
        categories = data.get("categories") or []
        if not isinstance(categories, list):
            raise ValueError("'categories' is not a list")
        return [GroupRecord.from_dict(cat) for cat in categories]
    raise ValueError(f"Unsupported legacy layout: {type(data).__name__}")


class MigrationMixin:
    """Mixin importing a legacy JSON catalog.

    Requires CatalogQueryMixin: replace_all().
    """

    def migrate_from_json(self, json_path: Path) -> bool:
        """Import ``json_path`` once and mark it consumed.

        Args:
            json_path: Location of the legacy data.json.

        Returns:
            True if groups were imported.
        """
        if not json_path.exists():
            return False

        try:
            raw = json_path.read_text(encoding="utf-8")
            if not raw.strip():
                return False

            logger.info("Found legacy %s, migrating to SQLite", json_path.name)
            groups = groups_from_legacy(json.loads(raw))

            if groups:
                self.replace_all(groups)
            _mark(json_path, ".bak")
            logger.info("Migration complete: %d groups, source renamed to .bak", len(groups))
            return bool(groups)

        except Exception as e:
            logger.error("Legacy migration failed: %s", e)
            _mark(json_path, ".err")
            return False


def _mark(json_path: Path, suffix: str) -> None:
    target = json_path.with_name(json_path.name + suffix)
    try:
        json_path.replace(target)
    except OSError as e:
        logger.error("Could not rename %s to %s: %s", json_path, target.name, e)
