"""Tests for utility / adult classification."""

from __future__ import annotations

from phantom.config import ADULT_TAGS, SOFTWARE_APP_IDS, SOFTWARE_KEYWORDS, SOFTWARE_TAGS
from phantom.integrations.scanners.classify import is_adult, is_software


class TestIsSoftware:
    """Tests for is_software()."""

    def test_known_app_id(self) -> None:
        assert is_software("228980", "Anything", app_ids=SOFTWARE_APP_IDS)

    def test_keyword_is_case_insensitive(self) -> None:
        assert is_software("1", "Some DEDICATED SERVER", keywords=SOFTWARE_KEYWORDS)

    def test_keyword_in_manifest_name(self) -> None:
        assert is_software("1", "Plain", "appmanifest_1_benchmark.acf", keywords=SOFTWARE_KEYWORDS)

    def test_software_tag(self) -> None:
        assert is_software("1", "Plain", tags=["Utilities"], software_tags=SOFTWARE_TAGS)

    def test_regular_game(self) -> None:
        assert not is_software(
            "440",
            "Team Fortress 2",
            "appmanifest_440.acf",
            ["FPS", "Shooter"],
            app_ids=SOFTWARE_APP_IDS,
            keywords=SOFTWARE_KEYWORDS,
            software_tags=SOFTWARE_TAGS,
        )

    def test_injected_keywords_replace_defaults(self) -> None:
        assert not is_software("1", "Level Editor", keywords=("Soundtrack",))


class TestIsAdult:
    """Tests for is_adult()."""

    def test_adult_tag(self) -> None:
        assert is_adult(["Anime", "nudity"], ADULT_TAGS)

    def test_no_tags(self) -> None:
        assert not is_adult(None, ADULT_TAGS)
        assert not is_adult([], ADULT_TAGS)
