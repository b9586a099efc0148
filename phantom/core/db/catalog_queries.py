"""Catalog read/write operations.

The in-memory caller always holds the complete desired catalog, so writes
replace the whole items/groups/membership subtree inside one transaction
instead of diffing it.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone

from phantom.core.models import GroupRecord, ItemRecord

logger = logging.getLogger("phantom.database")

__all__ = ["CatalogQueryMixin"]

_ITEM_COLUMNS = (
    "id",
    "title",
    "exec_path",
    "exec_args",
    "source",
    "cover",
    "banner",
    "logo",
    "hero",
    "last_played",
    "install_date",
    "last_updated",
)


def _item_params(item: ItemRecord) -> tuple:
    return (
        item.id,
        item.title,
        item.exec_path,
        item.exec_args,
        item.source,
        item.cover,
        item.banner,
        item.logo,
        item.hero,
        item.last_played,
        item.install_date,
        int(item.last_updated or 0),
    )


def _row_to_item(row: sqlite3.Row) -> ItemRecord:
    return ItemRecord(**{col: row[col] for col in _ITEM_COLUMNS})


class CatalogQueryMixin:
    """Mixin providing catalog load/replace/delete operations.

    Requires ConnectionBase attributes: conn.
    """

    def load(self) -> list[GroupRecord]:
        """Load every group with its ordered member items.

        Returns:
            Groups ordered by their submitted position.
        """
        group_rows = self.conn.execute("SELECT * FROM item_groups ORDER BY sort_order ASC").fetchall()
        member_rows = self.conn.execute(
            """
            SELECT gm.group_id AS group_id, i.*
            FROM group_members gm
            JOIN items i ON i.id = gm.item_id
            ORDER BY gm.group_id, gm.position ASC
            """
        ).fetchall()

        members: dict[str, list[ItemRecord]] = {}
        for row in member_rows:
            members.setdefault(row["group_id"], []).append(_row_to_item(row))

        groups: list[GroupRecord] = []
        for row in group_rows:
            try:
                preferences = json.loads(row["preferences"] or "{}")
            except json.JSONDecodeError:
                logger.warning("Discarding unreadable preferences for group %s", row["id"])
                preferences = {}
            groups.append(
                GroupRecord(
                    id=row["id"],
                    name=row["name"],
                    icon=row["icon"],
                    color=row["color"],
                    enabled=bool(row["enabled"]),
                    items=members.get(row["id"], []),
                    preferences=preferences,
                )
            )
        return groups

    def replace_all(self, groups: list[GroupRecord]) -> None:
        """Replace the whole catalog with ``groups`` atomically.

        Items shared by several groups are written once (first occurrence
        wins); group order defines display order. An item listed twice in
        the same group is rejected. On any failure the previous catalog is
        left untouched and the error is re-raised.

        Args:
            groups: The complete desired catalog.
        """
        try:
            with self.conn:
                self.conn.execute("DELETE FROM group_members")
                self.conn.execute("DELETE FROM item_groups")
                self.conn.execute("DELETE FROM items")

                placeholders = ", ".join("?" * len(_ITEM_COLUMNS))
                insert_item = (
                    f"INSERT OR IGNORE INTO items ({', '.join(_ITEM_COLUMNS)}) VALUES ({placeholders})"
                )

                for index, group in enumerate(groups):
                    self.conn.execute(
                        """
                        INSERT INTO item_groups (id, name, icon, color, enabled, sort_order, preferences)
                        VALUES (?, ?, ?, ?, ?, ?, ?)
                        """,
                        (
                            group.id,
                            group.name,
                            group.icon or "",
                            group.color or "#ffffff",
                            1 if group.enabled else 0,
                            index,
                            json.dumps(group.preferences or {}),
                        ),
                    )
                    for position, item in enumerate(group.items):
                        self.conn.execute(insert_item, _item_params(item))
                        self.conn.execute(
                            "INSERT INTO group_members (group_id, item_id, position) VALUES (?, ?, ?)",
                            (group.id, item.id, position),
                        )
        except sqlite3.Error as e:
            logger.error("Catalog replace failed, previous catalog kept: %s", e)
            raise

        logger.info("Catalog replaced: %d groups", len(groups))

    def delete_item(self, item_id: str) -> bool:
        """Delete one item; its memberships are removed by cascade.

        Returns:
            True if a row was deleted.
        """
        with self.conn:
            cursor = self.conn.execute("DELETE FROM items WHERE id = ?", (item_id,))
        return cursor.rowcount > 0

    def wipe(self) -> None:
        """Delete every item, group and membership."""
        with self.conn:
            self.conn.execute("DELETE FROM group_members")
            self.conn.execute("DELETE FROM item_groups")
            self.conn.execute("DELETE FROM items")
        logger.info("Catalog wiped")

    def update_last_played(self, item_id: str, when: datetime | None = None) -> bool:
        """Stamp an item as played now (or at ``when``).

        Returns:
            True if the item exists.
        """
        timestamp = (when or datetime.now(timezone.utc)).isoformat()
        with self.conn:
            cursor = self.conn.execute("UPDATE items SET last_played = ? WHERE id = ?", (timestamp, item_id))
        return cursor.rowcount > 0

    def get_item(self, item_id: str) -> ItemRecord | None:
        row = self.conn.execute("SELECT * FROM items WHERE id = ?", (item_id,)).fetchone()
        return _row_to_item(row) if row else None

    def count_rows(self) -> dict[str, int]:
        """Row counts per catalog table."""
        return {
            table: self.conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
            for table in ("items", "item_groups", "group_members")
        }
