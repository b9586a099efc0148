"""
Turns unreliable artwork path strings into an existing file.

Stored artwork paths come from many places: percent-encoded once or twice by
a front end, written with the other image extension, or recorded under an
older storage location. Resolution tries independent strategies in order
and, when all of them miss, answers with a bundled placeholder template.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Callable
from pathlib import Path, PurePath, PureWindowsPath
from urllib.parse import unquote

from phantom.core.errors import AssetNotFoundError

logger = logging.getLogger("phantom.resolver")

__all__ = [
    "AssetResolver",
    "candidate_paths",
    "exact_match",
    "sibling_stem",
    "storage_rebase",
    "swapped_extension",
]

_LEGACY_ESCAPE_RE = re.compile(r"%u([0-9A-Fa-f]{4})|%([0-9A-Fa-f]{2})")

_PARTIAL_SUFFIX = ".part"

COVER_TEMPLATE = "cover_template.png"
BANNER_TEMPLATE = "banner_template.png"


def _legacy_unescape(value: str) -> str:
    """Decode ``%XX`` as Latin-1 code points and ``%uXXXX`` as UTF-16 units."""

    def replace(match: re.Match) -> str:
        return chr(int(match.group(1) or match.group(2), 16))

    return _LEGACY_ESCAPE_RE.sub(replace, value)


def candidate_paths(raw: str) -> list[str]:
    """Every interpretation of ``raw`` worth probing, in priority order.

    Raw value, its normalized and absolute forms, one and two levels of
    percent-decoding (each also made absolute) and, when ``%`` is present,
    the legacy escape decoding. Duplicates and empty strings are dropped.
    """
    candidates = [raw, os.path.abspath(raw), os.path.normpath(raw)]

    once = unquote(raw)
    candidates += [once, os.path.abspath(once)]
    twice = unquote(once)
    candidates += [twice, os.path.abspath(twice)]

    if "%" in raw:
        candidates.append(_legacy_unescape(raw))

    return list(dict.fromkeys(c for c in candidates if c))


def _is_file(path: Path) -> bool:
    """``Path.is_file`` that answers False for names the OS refuses (too long, NUL)."""
    try:
        return path.is_file()
    except (OSError, ValueError):
        return False


def _is_dir(path: Path) -> bool:
    try:
        return path.is_dir()
    except (OSError, ValueError):
        return False


def exact_match(candidates: list[str]) -> Path | None:
    for candidate in candidates:
        path = Path(candidate)
        if _is_file(path):
            return path
    return None


def swapped_extension(candidates: list[str]) -> Path | None:
    """Find a ``.png`` stored where a ``.jpg`` was recorded, and vice versa."""
    swap = {".jpg": ".png", ".png": ".jpg"}
    for candidate in candidates:
        path = Path(candidate)
        alternative = swap.get(path.suffix.lower())
        if alternative:
            sibling = path.with_suffix(alternative)
            if _is_file(sibling):
                return sibling
    return None


def _parts(candidate: str) -> tuple[str, ...]:
    # Windows separators are accepted on every platform
    return PureWindowsPath(candidate).parts if "\\" in candidate else PurePath(candidate).parts


def _in_storage_tree(candidate: str) -> bool:
    lowered = [p.lower() for p in _parts(candidate)]
    return "storage" in lowered and "assets" in lowered


def storage_rebase(candidates: list[str], assets_dir: Path) -> Path | None:
    """Rebase paths recorded under another ``storage/assets`` root.

    ``.../storage/assets/<item>/<file>`` is looked up as
    ``<assets_dir>/<item>/<file>``.
    """
    for candidate in candidates:
        if not _in_storage_tree(candidate):
            continue
        parts = _parts(candidate)
        if len(parts) < 2:
            continue
        rebased = assets_dir / parts[-2] / parts[-1]
        if _is_file(rebased):
            return rebased
    return None


def _first_with_stem(directory: Path, stem: str) -> Path | None:
    """First file in ``directory`` whose name minus its extension is ``stem``.

    Hidden files and in-flight ``.part`` downloads never match.
    """
    if not _is_dir(directory):
        return None
    try:
        names = sorted(os.listdir(directory))
    except OSError:
        return None
    for name in names:
        if name.startswith(".") or name.endswith(_PARTIAL_SUFFIX):
            continue
        if PurePath(name).stem == stem and _is_file(directory / name):
            return directory / name
    return None


def sibling_stem(candidates: list[str], assets_dir: Path) -> Path | None:
    """Find a file with the same stem and any extension in the asset folder."""
    for candidate in candidates:
        if not _in_storage_tree(candidate):
            continue
        parts = _parts(candidate)
        if len(parts) < 2:
            continue
        stem = PurePath(parts[-1]).stem
        directories = [Path(candidate).parent, assets_dir / parts[-2]]
        for directory in directories:
            found = _first_with_stem(directory, stem)
            if found is not None:
                return found
    return None


class AssetResolver:
    """Resolves artwork path strings to files on disk.

    Strategies are tried in order: exact match, swapped extension, storage
    rebase, sibling stem. A miss falls back to the wide (banner) template
    when the caller hints a width of at least ``wide_min_width`` and to the
    upright (cover) template otherwise.
    """

    def __init__(self, assets_dir: Path, templates_dir: Path, wide_min_width: int = 800) -> None:
        """Initializes the resolver.

        Args:
            assets_dir: Current root of the per-item asset folders.
            templates_dir: Folder holding the placeholder templates.
            wide_min_width: Smallest hinted width that selects the banner template.
        """
        self.assets_dir = assets_dir
        self.templates_dir = templates_dir
        self.wide_min_width = wide_min_width
        self.strategies: list[Callable[[list[str]], Path | None]] = [
            exact_match,
            swapped_extension,
            lambda c: storage_rebase(c, self.assets_dir),
            lambda c: sibling_stem(c, self.assets_dir),
        ]

    def template_for(self, hinted_width: int | None = None) -> Path:
        """Return the placeholder for a request of ``hinted_width``.

        Raises:
            AssetNotFoundError: If the selected template is missing.
        """
        wide = hinted_width is not None and hinted_width >= self.wide_min_width
        template = self.templates_dir / (BANNER_TEMPLATE if wide else COVER_TEMPLATE)
        if not template.is_file():
            raise AssetNotFoundError(f"Placeholder template missing: {template}")
        return template

    def find(self, raw: str) -> Path | None:
        """Run the lookup strategies only; None when every one misses."""
        if not raw:
            return None
        candidates = candidate_paths(raw)
        for strategy in self.strategies:
            found = strategy(candidates)
            if found is not None:
                return found
        return None

    def resolve(self, raw: str, hinted_width: int | None = None) -> Path:
        """Resolve ``raw`` to an existing file or a placeholder template.

        Args:
            raw: Path string as stored or requested.
            hinted_width: Requested output width, used to pick the template.

        Returns:
            An existing file.

        Raises:
            AssetNotFoundError: Only when the fallback template is missing.
        """
        found = self.find(raw)
        if found is not None:
            return found
        logger.debug("No file for %r, serving template", raw)
        return self.template_for(hinted_width)

    def resolve_or_none(self, raw: str, hinted_width: int | None = None) -> Path | None:
        """Like resolve(), but a missing template yields None."""
        try:
            return self.resolve(raw, hinted_width)
        except AssetNotFoundError as e:
            logger.warning("%s", e)
            return None
