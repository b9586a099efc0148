"""Tests for artwork path resolution."""

from __future__ import annotations

from pathlib import Path
from urllib.parse import quote

import pytest

from phantom.assets.resolver import AssetResolver, candidate_paths
from phantom.core.errors import AssetNotFoundError


@pytest.fixture()
def templates_dir(tmp_path, make_image) -> Path:
    directory = tmp_path / "templates"
    make_image(directory / "cover_template.png", size=(60, 90))
    make_image(directory / "banner_template.png", size=(92, 43))
    return directory


@pytest.fixture()
def resolver(tmp_path, templates_dir) -> AssetResolver:
    return AssetResolver(tmp_path / "storage" / "assets", templates_dir, wide_min_width=800)


class TestCandidatePaths:
    """Tests for candidate_paths()."""

    def test_contains_decoded_forms(self) -> None:
        raw = "/data/My%2520Game/cover.jpg"
        candidates = candidate_paths(raw)
        assert candidates[0] == raw
        assert "/data/My%20Game/cover.jpg" in candidates
        assert "/data/My Game/cover.jpg" in candidates

    def test_no_duplicates(self) -> None:
        candidates = candidate_paths("/plain/path.png")
        assert len(candidates) == len(set(candidates))

    def test_legacy_escape(self) -> None:
        assert "/data/caf\u00e9.png" in candidate_paths("/data/caf%E9.png")


class TestAssetResolver:
    """Tests for AssetResolver.resolve()."""

    def test_exact_match(self, resolver, make_image, tmp_path) -> None:
        image = make_image(tmp_path / "art" / "cover.jpg")
        assert resolver.resolve(str(image)) == image

    def test_double_percent_encoded(self, resolver, make_image, tmp_path) -> None:
        image = make_image(tmp_path / "My Games" / "Zelda & Link" / "cover.jpg")
        raw = quote(quote(str(image)))
        assert "%2520" in raw
        assert resolver.resolve(raw) == image

    def test_swapped_extension(self, resolver, make_image, tmp_path) -> None:
        image = make_image(tmp_path / "art" / "logo.png")
        assert resolver.resolve(str(tmp_path / "art" / "logo.jpg")) == image

    def test_storage_rebase(self, resolver, make_image, tmp_path) -> None:
        image = make_image(tmp_path / "storage" / "assets" / "steam_440" / "hero.jpg")
        old = "C:\\OldInstall\\system\\storage\\assets\\steam_440\\hero.jpg"
        assert resolver.resolve(old) == image

    def test_sibling_stem(self, resolver, make_image, tmp_path) -> None:
        image = make_image(tmp_path / "storage" / "assets" / "manual_doom" / "cover.webp")
        assert resolver.resolve(str(tmp_path / "storage" / "assets" / "manual_doom" / "cover.jpg")) == image

    def test_sibling_stem_ignores_partial_download(self, resolver, templates_dir, tmp_path) -> None:
        item_dir = tmp_path / "storage" / "assets" / "steam_1"
        item_dir.mkdir(parents=True)
        (item_dir / "cover.jpg.part").write_bytes(b"half")
        (item_dir / ".import-cover.png").write_bytes(b"temp")

        served = resolver.resolve(str(item_dir / "cover.jpg"), hinted_width=200)

        assert served == templates_dir / "cover_template.png"

    def test_sibling_stem_requires_exact_stem(self, resolver, templates_dir, tmp_path) -> None:
        item_dir = tmp_path / "storage" / "assets" / "steam_1"
        item_dir.mkdir(parents=True)
        (item_dir / "cover.jpg.bak").write_bytes(b"old")
        (item_dir / "cover_old.png").write_bytes(b"old")

        served = resolver.resolve(str(item_dir / "cover.webp"))

        assert served == templates_dir / "cover_template.png"

    @pytest.mark.parametrize("raw", ["x" * 300 + ".jpg", "/data/" + "y" * 400 + "/cover.png", "bad\x00name.png"])
    def test_unusable_name_gets_template(self, resolver, templates_dir, raw) -> None:
        assert resolver.resolve(raw, hinted_width=200) == templates_dir / "cover_template.png"

    def test_overlong_storage_name_gets_template(self, resolver, templates_dir) -> None:
        raw = "/old/storage/assets/steam_1/" + "z" * 300 + ".jpg"
        assert resolver.resolve(raw) == templates_dir / "cover_template.png"

    @pytest.mark.parametrize(
        ("width", "template"),
        [(1000, "banner_template.png"), (800, "banner_template.png"), (200, "cover_template.png"), (None, "cover_template.png")],
    )
    def test_fallback_template(self, resolver, templates_dir, width, template) -> None:
        assert resolver.resolve("/nowhere/missing.jpg", hinted_width=width) == templates_dir / template

    def test_empty_path_gets_template(self, resolver, templates_dir) -> None:
        assert resolver.resolve("") == templates_dir / "cover_template.png"

    def test_missing_template_raises(self, tmp_path) -> None:
        resolver = AssetResolver(tmp_path / "assets", tmp_path / "no-templates")
        with pytest.raises(AssetNotFoundError):
            resolver.resolve("/nowhere/missing.jpg")

    def test_resolve_or_none(self, tmp_path) -> None:
        resolver = AssetResolver(tmp_path / "assets", tmp_path / "no-templates")
        assert resolver.resolve_or_none("/nowhere/missing.jpg") is None

    def test_bundled_templates_exist(self) -> None:
        from phantom.config import config

        from PIL import Image

        with Image.open(config.TEMPLATES_DIR / "cover_template.png") as cover:
            assert cover.size == (600, 900)
        with Image.open(config.TEMPLATES_DIR / "banner_template.png") as banner:
            assert banner.size == (920, 430)
