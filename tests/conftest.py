# tests/conftest.py
import struct
from pathlib import Path
from typing import Callable, Generator

import pytest
from PIL import Image

from phantom.config import Config
from phantom.core.db import CatalogStore


@pytest.fixture
def test_config(tmp_path) -> Config:
    """Config rooted in a temp dir with a synthetic Steam root and no network lookups."""
    cfg = Config(BASE_DIR=tmp_path / "home", STEAM_PATH=tmp_path / "Steam")
    cfg.STEAM_PATH = tmp_path / "Steam"
    cfg.TAG_LOOKUP_ENABLED = False
    cfg.ensure_dirs()
    return cfg


@pytest.fixture
def catalog_store(tmp_path) -> Generator[CatalogStore, None, None]:
    """CatalogStore backed by a temp file (schema loaded from SQL)."""
    store = CatalogStore(tmp_path / "test_catalog.db")
    yield store
    store.close()


@pytest.fixture
def make_image() -> Callable[..., Path]:
    """Write a solid-colour test image and return its path."""

    def _make(path: Path, size=(100, 100), color=(200, 30, 30), mode="RGB") -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        Image.new(mode, size, color).save(path)
        return path

    return _make


def build_sfo(entries: list[tuple[str, str]]) -> bytes:
    """Build a PARAM.SFO buffer holding UTF-8 string entries."""
    count = len(entries)
    key_table = b""
    data_table = b""
    index = b""
    for key, value in entries:
        encoded = value.encode("utf-8") + b"\x00"
        max_len = (len(encoded) + 3) // 4 * 4
        index += struct.pack("<HHIII", len(key_table), 0x0204, len(encoded), max_len, len(data_table))
        key_table += key.encode("utf-8") + b"\x00"
        data_table += encoded.ljust(max_len, b"\x00")
    key_table = key_table.ljust((len(key_table) + 3) // 4 * 4, b"\x00")

    key_offset = 20 + 16 * count
    data_offset = key_offset + len(key_table)
    header = b"\x00PSF" + struct.pack("<IIII", 0x0101, key_offset, data_offset, count)
    return header + index + key_table + data_table


@pytest.fixture
def sfo_builder() -> Callable[[list[tuple[str, str]]], bytes]:
    return build_sfo


@pytest.fixture
def steam_tree(tmp_path) -> Callable[..., Path]:
    """Create a minimal Steam installation.

    The returned callable takes a mapping of appid -> name (installed in the
    Steam root library) and returns the Steam root.
    """

    def _make(apps: dict[str, str], root: Path | None = None, index_in: str = "config") -> Path:
        steam = root or tmp_path / "Steam"
        steamapps = steam / "steamapps"
        steamapps.mkdir(parents=True, exist_ok=True)
        (steam / index_in).mkdir(parents=True, exist_ok=True)
        escaped = str(steam).replace("\\", "\\\\")
        (steam / index_in / "libraryfolders.vdf").write_text(
            '"libraryfolders"\n{\n\t"0"\n\t{\n\t\t"path"\t\t"%s"\n\t}\n}\n' % escaped,
            encoding="utf-8",
        )
        for app_id, name in apps.items():
            (steamapps / f"appmanifest_{app_id}.acf").write_text(
                '"AppState"\n{\n\t"appid"\t\t"%s"\n\t"name"\t\t"%s"\n\t"LastUpdated"\t\t"1700000000"\n}\n'
                % (app_id, name),
                encoding="utf-8",
            )
        return steam

    return _make
