"""Tests for the Steam library scanner."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from phantom.core.errors import LibraryIndexNotFoundError
from phantom.core.models import ScanOptions
from phantom.core.tag_cache import TagCache
from phantom.integrations.scanners.steam_profiles import ProfileCache
from phantom.integrations.scanners.steam_scanner import (
    SteamLibraryScanner,
    hidden_ids_from_text,
    parse_library_paths,
    parse_manifest,
)

SHAREDCONFIG = """
"UserRoamingConfigStore"
{
	"Software"
	{
		"Valve"
		{
			"Steam"
			{
				"apps"
				{
					"440"
					{
						"tags"
						{
							"0"		"favorite"
						}
						"hidden"		"1"
					}
					"570"
					{
						"hidden"		"0"
					}
					"730"
					{
						"cloud"
						{
							"last_sync_state"		"synchronized"
						}
					}
				}
			}
		}
	}
}
"""

LOCALCONFIG = """
"UserLocalConfigStore"
{
	"Software"
	{
		"Valve"
		{
			"Steam"
			{
				"Apps"
				{
					"440"
					{
						"LastPlayed"		"1710000000"
						"Playtime"		"42"
					}
					"620"
					{
						"Hidden"		"1"
					}
				}
			}
		}
	}
}
"""

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def tag_cache(tmp_path) -> TagCache:
    return TagCache(tmp_path / "tag_cache.json")


@pytest.fixture()
def make_scanner(tmp_path, tag_cache):
    """Build a scanner with fixed classification lists and a mock queue."""

    def _make(steam_path, **kwargs) -> SteamLibraryScanner:
        kwargs.setdefault("queue", MagicMock())
        return SteamLibraryScanner(
            steam_path,
            tmp_path / "assets",
            kwargs.pop("tag_cache", tag_cache),
            software_app_ids=kwargs.pop("software_app_ids", {"228980"}),
            software_keywords=kwargs.pop("software_keywords", ("Redistributable", "Soundtrack")),
            software_tags=kwargs.pop("software_tags", ("Utilities",)),
            adult_tags=kwargs.pop("adult_tags", ("Sexual Content",)),
            **kwargs,
        )

    return _make


def _write(path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


# ===========================================================================
# Parsing helpers
# ===========================================================================


class TestParsing:
    """Tests for the text-level parsers."""

    def test_library_paths_unescape_backslashes(self) -> None:
        text = '"libraryfolders"\n{\n\t"0"\n\t{\n\t\t"path"\t\t"C:\\\\Program Files (x86)\\\\Steam"\n\t}\n}'
        paths = parse_library_paths(text)
        assert [str(p) for p in paths] == ["C:\\Program Files (x86)\\Steam"]

    def test_library_paths_ignore_other_keys(self) -> None:
        text = '"label" "games"\n"path" "/mnt/games"\n"contentid" "123"\n"path" "/mnt/games"'
        assert [str(p) for p in parse_library_paths(text)] == ["/mnt/games"]

    def test_library_paths_empty(self) -> None:
        assert parse_library_paths('"libraryfolders" { }') == []

    def test_manifest_fields(self) -> None:
        text = '"AppState"\n{\n\t"appid"\t\t"440"\n\t"name"\t\t"Team Fortress 2"\n\t"LastUpdated"\t\t"1699999999"\n}'
        manifest = parse_manifest(text)
        assert manifest is not None
        assert (manifest.app_id, manifest.name, manifest.last_updated) == ("440", "Team Fortress 2", 1699999999)

    def test_manifest_missing_name(self) -> None:
        assert parse_manifest('"AppState"\n{\n\t"appid"\t\t"440"\n') is None

    def test_manifest_missing_id(self) -> None:
        assert parse_manifest('"AppState" { "name" "Nameless" }') is None

    def test_hidden_marker_in_sharedconfig(self) -> None:
        assert hidden_ids_from_text(SHAREDCONFIG) == {"440"}

    def test_hidden_legacy_flag_in_localconfig(self) -> None:
        assert hidden_ids_from_text(LOCALCONFIG) == {"620"}

    def test_hidden_truncated_text(self) -> None:
        assert hidden_ids_from_text('"apps" { "10" { "hidden" "1"') == {"10"}


# ===========================================================================
# Scanning
# ===========================================================================


class TestSteamLibraryScanner:
    """Tests for SteamLibraryScanner.scan()."""

    def test_missing_index_raises(self, tmp_path, make_scanner) -> None:
        (tmp_path / "Steam").mkdir()
        with pytest.raises(LibraryIndexNotFoundError):
            make_scanner(tmp_path / "Steam").scan()

    def test_index_in_steamapps(self, steam_tree, make_scanner) -> None:
        steam = steam_tree({"440": "Team Fortress 2"}, index_in="steamapps")
        items = make_scanner(steam).scan()
        assert [i.id for i in items] == ["steam_440"]

    def test_zero_libraries_is_empty(self, tmp_path, make_scanner) -> None:
        steam = tmp_path / "Steam"
        _write(steam / "config" / "libraryfolders.vdf", '"libraryfolders"\n{\n}\n')
        assert make_scanner(steam).scan() == []

    def test_item_fields(self, steam_tree, make_scanner, tmp_path) -> None:
        steam = steam_tree({"440": "Team Fortress 2"})
        (item,) = make_scanner(steam).scan()

        assert item.id == "steam_440"
        assert item.title == "Team Fortress 2"
        assert item.exec_path == "steam://rungameid/440"
        assert item.source == "steam"
        assert item.last_updated == 1700000000
        assert item.cover == str(tmp_path / "assets" / "steam_440" / "cover.jpg")
        assert item.logo.endswith("logo.png")

    def test_truncated_manifest_skipped(self, steam_tree, make_scanner) -> None:
        steam = steam_tree({"440": "Team Fortress 2", "570": "Dota 2"})
        (steam / "steamapps" / "appmanifest_999.acf").write_text('"AppState"\n{\n\t"appid"\t\t"999"\n\t"na')

        items = make_scanner(steam).scan()

        assert sorted(i.id for i in items) == ["steam_440", "steam_570"]

    def test_hidden_apps_filtered(self, steam_tree, make_scanner) -> None:
        steam = steam_tree({"440": "Team Fortress 2", "570": "Dota 2", "620": "Portal 2"})
        _write(steam / "userdata" / "1234" / "7" / "remote" / "sharedconfig.vdf", SHAREDCONFIG)
        _write(steam / "userdata" / "1234" / "config" / "localconfig.vdf", LOCALCONFIG)

        items = make_scanner(steam).scan()
        assert [i.id for i in items] == ["steam_570"]

        items = make_scanner(steam).scan(ScanOptions(include_hidden=True))
        assert sorted(i.id for i in items) == ["steam_440", "steam_570", "steam_620"]

    def test_software_filtered_by_id_and_keyword(self, steam_tree, make_scanner) -> None:
        steam = steam_tree(
            {
                "228980": "Steamworks Common",
                "440": "Team Fortress 2",
                "1000": "Portal 2 Soundtrack",
            }
        )
        assert [i.id for i in make_scanner(steam).scan()] == ["steam_440"]

        included = make_scanner(steam).scan(ScanOptions(include_software=True))
        assert len(included) == 3

    def test_adult_filtered_by_cached_tags(self, steam_tree, make_scanner, tag_cache) -> None:
        steam = steam_tree({"440": "Team Fortress 2", "777": "Spicy Visual Novel"})
        tag_cache.put("777", ["Visual Novel", "Sexual Content"])
        tag_cache.put("440", ["FPS"])

        assert [i.id for i in make_scanner(steam).scan()] == ["steam_440"]
        assert len(make_scanner(steam).scan(ScanOptions(include_adult=True))) == 2

    def test_utility_filtered_by_remote_tags(self, steam_tree, make_scanner, tag_cache) -> None:
        steam = steam_tree({"431960": "Wallpaper Engine"})
        lookup = MagicMock()
        lookup.fetch_tags.return_value = ["Utilities", "Design & Illustration"]

        items = make_scanner(steam, tag_lookup=lookup).scan()

        assert items == []
        lookup.fetch_tags.assert_called_once_with("431960")
        assert tag_cache.get("431960") == ["Utilities", "Design & Illustration"]

    def test_failed_lookup_not_cached(self, steam_tree, make_scanner, tag_cache) -> None:
        steam = steam_tree({"440": "Team Fortress 2"})
        lookup = MagicMock()
        lookup.fetch_tags.return_value = None

        items = make_scanner(steam, tag_lookup=lookup).scan()

        assert [i.id for i in items] == ["steam_440"]
        assert tag_cache.get("440") is None

    def test_no_lookup_when_everything_included(self, steam_tree, make_scanner) -> None:
        steam = steam_tree({"440": "Team Fortress 2"})
        lookup = MagicMock()

        make_scanner(steam, tag_lookup=lookup).scan(ScanOptions(include_software=True, include_adult=True))

        lookup.fetch_tags.assert_not_called()

    def test_tag_cache_persisted_after_scan(self, steam_tree, make_scanner, tag_cache) -> None:
        steam = steam_tree({"440": "Team Fortress 2"})
        lookup = MagicMock()
        lookup.fetch_tags.return_value = ["FPS"]

        make_scanner(steam, tag_lookup=lookup).scan()

        assert tag_cache.cache_file.exists()

    def test_tag_cache_persisted_when_scan_fails(self, tmp_path, make_scanner, tag_cache) -> None:
        (tmp_path / "Steam").mkdir()
        tag_cache.put("1", ["x"])

        with pytest.raises(LibraryIndexNotFoundError):
            make_scanner(tmp_path / "Steam").scan()

        assert tag_cache.cache_file.exists()

    def test_last_played_from_localconfig(self, steam_tree, make_scanner) -> None:
        steam = steam_tree({"440": "Team Fortress 2"})
        _write(steam / "userdata" / "1234" / "config" / "localconfig.vdf", LOCALCONFIG)

        (item,) = make_scanner(steam).scan()

        assert item.last_updated == 1710000000
        assert item.last_played.startswith("2024-03-09")


class TestSteamArtworkCollection:
    """Tests for artwork lookup during a scan."""

    def test_grid_image_copied(self, steam_tree, make_scanner, make_image, tmp_path) -> None:
        steam = steam_tree({"440": "Team Fortress 2"})
        make_image(steam / "userdata" / "1234" / "config" / "grid" / "440p.png")

        (item,) = make_scanner(steam).scan()

        assert item.cover.endswith("cover.png")
        assert (tmp_path / "assets" / "steam_440" / "cover.png").is_file()

    def test_library_cache_flat_layout(self, steam_tree, make_scanner, make_image, tmp_path) -> None:
        steam = steam_tree({"440": "Team Fortress 2"})
        make_image(steam / "appcache" / "librarycache" / "440_header.jpg")

        (item,) = make_scanner(steam).scan()

        assert (tmp_path / "assets" / "steam_440" / "banner.jpg").is_file()
        assert item.banner.endswith("banner.jpg")

    def test_library_cache_per_app_layout(self, steam_tree, make_scanner, make_image, tmp_path) -> None:
        steam = steam_tree({"440": "Team Fortress 2"})
        make_image(steam / "appcache" / "librarycache" / "440" / "library_hero.jpg")

        make_scanner(steam).scan()

        assert (tmp_path / "assets" / "steam_440" / "hero.jpg").is_file()

    def test_missing_artwork_scheduled_on_queue(self, steam_tree, make_scanner) -> None:
        steam = steam_tree({"440": "Team Fortress 2"})
        queue = MagicMock()

        make_scanner(steam, queue=queue).scan()

        urls = sorted(call.args[2] for call in queue.submit.call_args_list)
        assert len(urls) == 4
        assert all(u.startswith("https://shared.akamai.steamstatic.com/store_item_assets/steam/apps/440/") for u in urls)
        assert any(u.endswith("/logo.png") for u in urls)

    def test_existing_destination_not_refetched(self, steam_tree, make_scanner, make_image, tmp_path) -> None:
        steam = steam_tree({"440": "Team Fortress 2"})
        for role in ("cover", "banner", "hero"):
            make_image(tmp_path / "assets" / "steam_440" / f"{role}.jpg")
        make_image(tmp_path / "assets" / "steam_440" / "logo.png")
        queue = MagicMock()

        make_scanner(steam, queue=queue).scan()

        queue.submit.assert_not_called()


class TestProfileCache:
    """Tests for the heaviest-profile ordering."""

    def test_heaviest_grid_first(self, tmp_path, make_image) -> None:
        steam = tmp_path / "Steam"
        for name in ("a.png", "b.jpg", "c.png"):
            make_image(steam / "userdata" / "2222" / "config" / "grid" / name)
        make_image(steam / "userdata" / "1111" / "config" / "grid" / "x.png")

        dirs = ProfileCache().grid_dirs(steam)

        assert [d.parent.parent.name for d in dirs] == ["2222", "1111"]

    def test_result_is_cached(self, tmp_path, make_image) -> None:
        steam = tmp_path / "Steam"
        make_image(steam / "userdata" / "1111" / "config" / "grid" / "x.png")
        cache = ProfileCache()
        first = cache.grid_dirs(steam)

        make_image(steam / "userdata" / "2222" / "config" / "grid" / "y.png")

        assert cache.grid_dirs(steam) == first
        cache.invalidate()
        assert len(cache.grid_dirs(steam)) == 2
