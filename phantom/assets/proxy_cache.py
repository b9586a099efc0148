"""
Disk cache of resized artwork.

A cache file name encodes the source's identity (path, modification time,
size) and the requested dimensions, so an edited source automatically maps
to a new entry and stale ones are simply never hit again. The cache
directory can be deleted at any time.
"""

from __future__ import annotations

import hashlib
import logging
import os
import re
import uuid
from pathlib import Path

from phantom.assets.transcoder import ImageTranscoder

logger = logging.getLogger("phantom.proxy_cache")

__all__ = ["ProxyCache", "cache_filename"]

_UNSAFE_RE = re.compile(r"[^A-Za-z0-9\-_]")
_MAX_STEM = 64
_MAX_EXT = 8


def cache_filename(resolved: Path, width: int | None, height: int | None, version: str) -> str:
    """Build ``{safe stem}_{hash}_{w}x{h}{ext}`` for a source image.

    The hash covers the resolved path, mtime (ns), size and the cache format
    version. Unreadable sources hash with zero mtime and size. The stem is
    cut to 64 characters so names stay within file system limits.
    """
    try:
        stat = resolved.stat()
        mtime_ns, size = stat.st_mtime_ns, stat.st_size
    except OSError:
        mtime_ns, size = 0, 0

    identity = f"{resolved}_{mtime_ns}_{size}_{version}"
    digest = hashlib.sha256(identity.encode("utf-8")).hexdigest()[:16]
    ext = resolved.suffix[:_MAX_EXT] or ".png"
    safe_stem = _UNSAFE_RE.sub("_", resolved.stem)[:_MAX_STEM]
    return f"{safe_stem}_{digest}_{width or 'auto'}x{height or 'auto'}{ext}"


def _is_file(path: Path) -> bool:
    try:
        return path.is_file()
    except (OSError, ValueError):
        return False


def _discard(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.debug("Could not remove %s: %s", path, e)


class ProxyCache:
    """Serves resized copies of resolved artwork from a cache directory."""

    def __init__(
        self,
        cache_dir: Path,
        transcoder: ImageTranscoder | None = None,
        version: str = "3",
        max_bytes: int = 0,
    ) -> None:
        """Initializes the cache.

        Args:
            cache_dir: Directory holding cached files; created on demand.
            transcoder: Image resizer.
            version: Cache format version mixed into every file name.
            max_bytes: Size cap enforced by prune(); 0 means unbounded.
        """
        self.cache_dir = cache_dir
        self.transcoder = transcoder or ImageTranscoder()
        self.version = version
        self.max_bytes = max_bytes

    def get_or_create(self, resolved: Path, width: int | None = None, height: int | None = None) -> Path:
        """Return a file to serve for ``resolved`` at the requested size.

        Without dimensions the resolved file itself is returned. If the cache
        cannot be written or resizing fails outright, the original is served.
        """
        if not width and not height:
            return resolved

        cached = self.cache_dir / cache_filename(resolved, width, height, self.version)
        if _is_file(cached):
            if self.max_bytes:
                self._touch(cached)
            return cached

        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning("Cache directory %s not writable, serving original: %s", self.cache_dir, e)
            return resolved

        tmp = self.cache_dir / f".tmp-{uuid.uuid4().hex}-{cached.name}"
        try:
            self.transcoder.resize(resolved, tmp, width, height)
            os.replace(tmp, cached)
        except OSError as e:
            logger.warning("Could not cache %s, serving original: %s", resolved, e)
            _discard(tmp)
            return resolved

        if self.max_bytes:
            self.prune(keep=cached)
        return cached

    @staticmethod
    def _touch(path: Path) -> None:
        try:
            os.utime(path)
        except OSError:
            logger.debug("Could not refresh access time of %s", path)

    def size_bytes(self) -> int:
        if not self.cache_dir.is_dir():
            return 0
        return sum(p.stat().st_size for p in self.cache_dir.iterdir() if p.is_file())

    def prune(self, max_bytes: int | None = None, keep: Path | None = None) -> int:
        """Delete least recently used entries until the cache fits the cap.

        Args:
            max_bytes: Cap to enforce; defaults to the configured one.
            keep: Entry that is never evicted.

        Returns:
            Number of deleted files.
        """
        limit = self.max_bytes if max_bytes is None else max_bytes
        if limit <= 0 or not self.cache_dir.is_dir():
            return 0

        entries = []
        for path in self.cache_dir.iterdir():
            if path == keep or not path.is_file() or path.name.startswith(".tmp-"):
                continue
            try:
                stat = path.stat()
            except OSError:
                continue
            entries.append((max(stat.st_atime, stat.st_mtime), stat.st_size, path))

        total = sum(size for _, size, _ in entries)
        removed = 0
        for _, size, path in sorted(entries, key=lambda entry: entry[0]):
            if total <= limit:
                break
            try:
                path.unlink()
            except OSError as e:
                logger.debug("Could not evict %s: %s", path, e)
                continue
            total -= size
            removed += 1

        if removed:
            logger.info("Pruned %d cached images", removed)
        return removed
