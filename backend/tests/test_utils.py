from __future__ import annotations

import pytest

from recipe_site.models.taxonomy import normalize_tag, normalize_tags, tag_slug
from recipe_site.services.utils import join_csv, parse_int, slugify, split_csv, unique_slug


class TestSlugify:
    def test_lowercases_and_hyphenates(self):
        assert slugify("Creamy Mushroom Pasta!") == "creamy-mushroom-pasta"

    def test_strips_accents(self):
        assert slugify("Crème Brûlée") == "creme-brulee"

    def test_empty_when_nothing_ascii(self):
        assert slugify("   ") == ""

    def test_unique_slug_appends_suffix(self):
        s = unique_slug("pasta")
        assert s.startswith("pasta-")
        assert len(s) == len("pasta-") + 6


class TestParseInt:
    @pytest.mark.parametrize(
        "raw, expected",
        [("12", 12), (" 7", 7), ("30min", 30), ("-3", -3), ("abc", 0), ("", 0), (None, 0)],
    )
    def test_lenient(self, raw, expected):
        assert parse_int(raw) == expected

    def test_default_used_when_invalid(self):
        assert parse_int("x", 12) == 12


class TestCsv:
    def test_split_drops_blanks(self):
        assert split_csv("a,,b, c ,") == ["a", "b", "c"]
        assert split_csv(None) == []

    def test_join(self):
        assert join_csv(["a", "", "b"]) == "a,b"


class TestTags:
    def test_normalize_collapses_whitespace(self):
        assert normalize_tag("  weeknight   dinner ") == "weeknight dinner"

    def test_normalize_tags_dedupes_case_insensitively(self):
        assert normalize_tags(["Pasta", "pasta", " PASTA", "quick", ""]) == ["Pasta", "quick"]

    def test_tag_slug(self):
        assert tag_slug("Weeknight Dinner") == "weeknight-dinner"
        assert tag_slug("!!!") == "tag"
