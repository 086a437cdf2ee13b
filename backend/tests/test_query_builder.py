from __future__ import annotations

import re

import bson

from recipe_site.services.query_builder import (
    SearchQuery, build_filter, build_pagination, build_query, build_sort, clamp_limit, clamp_page, contains_regex,
)


class TestFromParams:
    def test_defaults(self):
        q = SearchQuery.from_params({})
        assert (q.q, q.page, q.limit, q.sort) == ("", 1, 12, "newest")
        assert q.tags == ()
        assert q.featured is False

    def test_search_param_is_alias_for_q(self):
        assert SearchQuery.from_params({"search": "pasta"}).q == "pasta"
        assert SearchQuery.from_params({"q": "soup", "search": "pasta"}).q == "soup"

    def test_invalid_numbers_mean_no_constraint(self):
        q = SearchQuery.from_params({"maxTime": "abc", "servings": "-2", "page": "zero", "limit": "x"})
        assert q.max_time == 0
        assert q.servings == 0
        assert q.page == 1
        assert q.limit == 12

    def test_page_and_limit_are_clamped(self):
        q = SearchQuery.from_params({"page": "-4", "limit": "5000"})
        assert q.page == 1
        assert q.limit == 100
        assert clamp_limit(0) == 1

    def test_unknown_sort_falls_back_to_newest(self):
        assert SearchQuery.from_params({"sort": "spiciest"}).sort == "newest"

    def test_featured_only_for_literal_true(self):
        assert SearchQuery.from_params({"featured": "true"}).featured is True
        assert SearchQuery.from_params({"featured": "1"}).featured is False

    def test_tags_split_and_trimmed(self):
        assert SearchQuery.from_params({"tags": "vegan, quick,,"}).tags == ("vegan", "quick")

    def test_skip(self):
        assert SearchQuery.from_params({"page": "3", "limit": "12"}).skip == 24

    def test_huge_numbers_stay_within_int64(self):
        q = SearchQuery.from_params({
            "page": "99999999999999999999", "limit": "100",
            "maxTime": "99999999999999999999", "servings": "99999999999999999999",
        })
        where, _, skip, take = build_query(q)
        assert skip < 2 ** 63
        assert q.page == clamp_page(10 ** 20)
        assert where["total_time"] == {"$lte": 2880}
        assert where["servings"] == {"$gte": 51}
        bson.encode({"filter": where, "skip": skip, "limit": take})


class TestBuildFilter:
    def test_always_published_only(self):
        assert build_filter(SearchQuery()) == {"published": True}

    def test_all_is_same_as_omitted(self):
        with_all = SearchQuery.from_params({"category": "all", "difficulty": "all", "cuisine": "all"})
        assert build_filter(with_all) == build_filter(SearchQuery.from_params({}))
        assert with_all.cache_params() == SearchQuery.from_params({}).cache_params()

    def test_text_matches_title_or_description(self):
        where = build_filter(SearchQuery(q="pasta"))
        assert where["$or"] == [
            {"title": {"$regex": "pasta", "$options": "i"}},
            {"description": {"$regex": "pasta", "$options": "i"}},
        ]

    def test_text_is_escaped(self):
        rx = contains_regex("mac (and) cheese?")["$regex"]
        assert re.search(rx, "Mac (and) cheese? yes", re.I)
        assert not re.search(rx, "mac and cheese", re.I)

    def test_numeric_and_tag_filters(self):
        q = SearchQuery.from_params({
            "category": "desserts", "maxTime": "30", "servings": "4", "tags": "vegan,quick", "featured": "true",
        })
        where = build_filter(q)
        assert where["category"] == "desserts"
        assert where["total_time"] == {"$lte": 30}
        assert where["servings"] == {"$gte": 4}
        assert where["tag_slugs"] == {"$in": ["quick", "vegan"]}
        assert where["featured"] is True

    def test_zero_max_time_is_ignored(self):
        assert "total_time" not in build_filter(SearchQuery.from_params({"maxTime": "0"}))


class TestSortAndPaging:
    def test_sort_has_id_tie_breaker(self):
        assert build_sort("time") == [("total_time", 1), ("_id", 1)]
        assert build_sort("rating") == [("rating", -1), ("_id", 1)]
        assert build_sort("nope") == [("created_at", -1), ("_id", 1)]

    def test_pagination(self):
        assert build_pagination(3, 12) == (24, 12)
        assert build_pagination(0, 0) == (0, 1)

    def test_build_query(self):
        where, sort, skip, take = build_query(SearchQuery.from_params({"q": "pasta", "page": "2"}))
        assert "$or" in where
        assert sort[0] == ("created_at", -1)
        assert (skip, take) == (12, 12)


class TestEcho:
    def test_absent_numbers_echo_as_none(self):
        echo = SearchQuery.from_params({"q": "pasta", "category": "all"}).echo()
        assert echo["maxTime"] is None
        assert echo["servings"] is None
        assert echo["category"] == "all"

    def test_given_numbers_echo_parsed_value(self):
        echo = SearchQuery.from_params({"maxTime": "30abc", "servings": "bad"}).echo()
        assert echo["maxTime"] == 30
        assert echo["servings"] == 0

    def test_cache_params_sort_tags(self):
        a = SearchQuery.from_params({"tags": "b,a"}).cache_params()
        b = SearchQuery.from_params({"tags": "a,b"}).cache_params()
        assert a == b


class TestTagFilter:
    def test_tags_compared_by_slug(self):
        where = build_filter(SearchQuery.from_params({"tags": "Weeknight  Dinner,weeknight dinner,Vegan"}))
        assert where["tag_slugs"] == {"$in": ["vegan", "weeknight-dinner"]}
        assert "tags" not in where
