"""Tests for the resized-artwork disk cache."""

from __future__ import annotations

import os
import re
from unittest.mock import MagicMock

import pytest
from PIL import Image

from phantom.assets.proxy_cache import ProxyCache, cache_filename


@pytest.fixture()
def cache(tmp_path) -> ProxyCache:
    return ProxyCache(tmp_path / "cache", version="3")


class TestCacheFilename:
    """Tests for cache_filename()."""

    def test_format(self, make_image, tmp_path) -> None:
        source = make_image(tmp_path / "My Cover!.png")
        name = cache_filename(source, 300, None, "3")
        assert re.fullmatch(r"My_Cover__[0-9a-f]{16}_300xauto\.png", name)

    def test_version_changes_name(self, make_image, tmp_path) -> None:
        source = make_image(tmp_path / "cover.png")
        assert cache_filename(source, 10, 10, "3") != cache_filename(source, 10, 10, "4")

    def test_missing_source_still_named(self, tmp_path) -> None:
        name = cache_filename(tmp_path / "gone.jpg", 10, 20, "3")
        assert name.endswith("_10x20.jpg")


class TestGetOrCreate:
    """Tests for ProxyCache.get_or_create()."""

    def test_no_dimensions_returns_original(self, cache, make_image, tmp_path) -> None:
        source = make_image(tmp_path / "cover.png")
        assert cache.get_or_create(source) == source
        assert not cache.cache_dir.exists()

    def test_creates_resized_entry(self, cache, make_image, tmp_path) -> None:
        source = make_image(tmp_path / "cover.png", size=(200, 100))

        served = cache.get_or_create(source, 100, None)

        assert served.parent == cache.cache_dir
        with Image.open(served) as img:
            assert img.size == (100, 50)

    def test_same_request_same_file(self, cache, make_image, tmp_path) -> None:
        source = make_image(tmp_path / "cover.png")
        first = cache.get_or_create(source, 50, 50)
        second = cache.get_or_create(source, 50, 50)
        assert first == second
        assert len(list(cache.cache_dir.iterdir())) == 1

    def test_modified_source_gets_new_entry(self, cache, make_image, tmp_path) -> None:
        source = make_image(tmp_path / "cover.png")
        first = cache.get_or_create(source, 50, 50)

        stat = source.stat()
        os.utime(source, ns=(stat.st_atime_ns, stat.st_mtime_ns + 5_000_000_000))
        second = cache.get_or_create(source, 50, 50)

        assert first != second
        assert first.is_file() and second.is_file()

    def test_no_temp_files_left(self, cache, make_image, tmp_path) -> None:
        source = make_image(tmp_path / "cover.png")
        cache.get_or_create(source, 40, 40)
        assert not [p for p in cache.cache_dir.iterdir() if p.name.startswith(".tmp-")]

    def test_unwritable_cache_serves_original(self, make_image, tmp_path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        cache = ProxyCache(blocker / "cache")
        source = make_image(tmp_path / "cover.png")

        assert cache.get_or_create(source, 40, 40) == source

    def test_resize_failure_serves_original(self, make_image, tmp_path) -> None:
        transcoder = MagicMock()
        transcoder.resize.side_effect = OSError("disk full")
        cache = ProxyCache(tmp_path / "cache", transcoder=transcoder)
        source = make_image(tmp_path / "cover.png")

        assert cache.get_or_create(source, 40, 40) == source
        assert list(cache.cache_dir.iterdir()) == []

    def test_long_source_name_is_bounded(self, cache, make_image, tmp_path) -> None:
        source = make_image(tmp_path / ("a" * 240 + ".png"), size=(200, 300))

        served = cache.get_or_create(source, 600, 900)

        assert served.parent == cache.cache_dir
        assert len(served.name) < 128
        with Image.open(served) as img:
            assert img.size == (600, 900)

    def test_corrupt_source_is_cached_as_copy(self, cache, tmp_path) -> None:
        source = tmp_path / "broken.png"
        source.write_bytes(b"garbage")

        served = cache.get_or_create(source, 40, 40)

        assert served.read_bytes() == b"garbage"


class TestPrune:
    """Tests for ProxyCache.prune()."""

    def _fill(self, directory, count: int, size: int = 100) -> list:
        directory.mkdir(parents=True, exist_ok=True)
        paths = []
        for i in range(count):
            path = directory / f"entry{i}.png"
            path.write_bytes(b"x" * size)
            os.utime(path, (1_000_000 + i * 100, 1_000_000 + i * 100))
            paths.append(path)
        return paths

    def test_unbounded_is_noop(self, cache) -> None:
        self._fill(cache.cache_dir, 3)
        assert cache.prune() == 0
        assert cache.size_bytes() == 300

    def test_evicts_least_recently_used(self, cache) -> None:
        paths = self._fill(cache.cache_dir, 3)

        removed = cache.prune(max_bytes=150)

        assert removed == 2
        assert not paths[0].exists()
        assert not paths[1].exists()
        assert paths[2].exists()

    def test_missing_dir(self, tmp_path) -> None:
        cache = ProxyCache(tmp_path / "nope", max_bytes=10)
        assert cache.prune() == 0
        assert cache.size_bytes() == 0

    def test_cap_applied_on_create(self, make_image, tmp_path) -> None:
        cache = ProxyCache(tmp_path / "cache", max_bytes=1)
        self._fill(cache.cache_dir, 2)
        source = make_image(tmp_path / "cover.png")

        served = cache.get_or_create(source, 20, 20)

        assert served.is_file()
        assert not (cache.cache_dir / "entry0.png").exists()
        assert not (cache.cache_dir / "entry1.png").exists()
