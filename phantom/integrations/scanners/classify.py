"""Utility and adult-content classification for store titles."""

from __future__ import annotations

from collections.abc import Iterable

__all__ = ["is_adult", "is_software"]


def _contains_any(haystack: str, needles: Iterable[str]) -> bool:
    lowered = haystack.lower()
    return any(needle.lower() in lowered for needle in needles if needle)


def _tags_intersect(tags: Iterable[str] | None, markers: Iterable[str]) -> bool:
    if not tags:
        return False
    wanted = {m.lower() for m in markers}
    return any(tag.lower() in wanted for tag in tags)


def is_software(
    app_id: str,
    name: str,
    manifest_name: str = "",
    tags: Iterable[str] | None = None,
    *,
    app_ids: Iterable[str] = (),
    keywords: Iterable[str] = (),
    software_tags: Iterable[str] = (),
) -> bool:
    """Return True if a title is a utility rather than a game.

    Args:
        app_id: Store id of the title.
        name: Display name.
        manifest_name: File name of the manifest the title came from.
        tags: Store tags, if known.
        app_ids: Ids that are always utilities.
        keywords: Case-insensitive substrings marking utilities.
        software_tags: Store tags marking utilities.
    """
    if str(app_id) in set(app_ids):
        return True
    keywords = tuple(keywords)
    if _contains_any(name, keywords) or (manifest_name and _contains_any(manifest_name, keywords)):
        return True
    return _tags_intersect(tags, software_tags)


def is_adult(tags: Iterable[str] | None, adult_tags: Iterable[str]) -> bool:
    """Return True if the store tags mark adult-only content."""
    return _tags_intersect(tags, adult_tags)
