"""Persistent remote-id -> tags cache.

Store tags are rate limited and slow to fetch, so every successful lookup is
kept for the life of the cache file. Entries never expire; deleting the file
is the only way to start over.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path

logger = logging.getLogger("phantom.tag_cache")

__all__ = ["TagCache"]


class TagCache:
    """JSON-backed mapping from a remote catalog id to its tag list.

    The file is read lazily on first access and written back by ``persist()``,
    which the store scanner calls whenever a scan completes.
    """

    def __init__(self, cache_file: Path) -> None:
        """Initializes the cache.

        Args:
            cache_file: Path of the JSON file backing the cache.
        """
        self.cache_file = cache_file
        self._entries: dict[str, list[str]] = {}
        self._loaded = False
        self._version = 0
        self._saved_version = 0
        self._lock = threading.Lock()

    def load(self) -> None:
        """Read the cache file once. Missing or corrupt files yield an empty cache."""
        with self._lock:
            if self._loaded:
                return
            self._loaded = True

            if not self.cache_file.exists():
                return

            try:
                with open(self.cache_file, "r", encoding="utf-8") as f:
                    data = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.warning("Tag cache unreadable, starting empty: %s", e)
                return

            if not isinstance(data, dict):
                logger.warning("Tag cache has unexpected layout, starting empty")
                return

            for remote_id, tags in data.items():
                if isinstance(tags, list):
                    self._entries[str(remote_id)] = [str(t) for t in tags]

            logger.debug("Loaded %d cached tag entries", len(self._entries))

    def get(self, remote_id: str) -> list[str] | None:
        """Return the cached tags, or None when the id was never looked up."""
        self.load()
        with self._lock:
            tags = self._entries.get(str(remote_id))
            return list(tags) if tags is not None else None

    def put(self, remote_id: str, tags: list[str]) -> None:
        self.load()
        with self._lock:
            self._entries[str(remote_id)] = list(tags)
            self._version += 1

    def __len__(self) -> int:
        self.load()
        with self._lock:
            return len(self._entries)

    def persist(self) -> bool:
        """Write the cache back to disk if anything changed.

        Returns:
            True if the file is up to date, False if writing failed.
        """
        with self._lock:
            if self._version == self._saved_version:
                return True
            snapshot = dict(self._entries)
            snapshot_version = self._version

        tmp_file = self.cache_file.with_suffix(self.cache_file.suffix + ".tmp")
        try:
            self.cache_file.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_file, "w", encoding="utf-8") as f:
                json.dump(snapshot, f, indent=1, sort_keys=True)
            os.replace(tmp_file, self.cache_file)
        except OSError as e:
            logger.error("Failed to persist tag cache: %s", e)
            return False

        with self._lock:
            self._saved_version = max(self._saved_version, snapshot_version)
        logger.debug("Persisted %d tag entries to %s", len(snapshot), self.cache_file)
        return True
