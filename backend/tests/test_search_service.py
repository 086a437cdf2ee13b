from __future__ import annotations

import asyncio

import pytest

from fakes import BrokenRedis, FailingCollection
from recipe_site.core.errors import RecipeNotFoundError
from recipe_site.services.cache import CacheClient, CacheManager
from recipe_site.services.optimizer import QueryOptimizer
from recipe_site.services.query_builder import SearchQuery
from recipe_site.services.recipes import RecipeWriteService
from recipe_site.services.search_service import RecipeSearchService, build_pagination_meta


def params(**kw) -> SearchQuery:
    return SearchQuery.from_params({k: str(v) for k, v in kw.items()})


@pytest.fixture
def service(recipes, tags, optimizer) -> RecipeSearchService:
    return RecipeSearchService(recipes, tags, optimizer)


class TestPaginationMeta:
    def test_middle_page(self):
        assert build_pagination_meta(2, 12, 25) == {
            "page": 2, "limit": 12, "total": 25, "totalPages": 3, "hasNext": True, "hasPrev": True,
        }

    def test_empty(self):
        meta = build_pagination_meta(1, 12, 0)
        assert meta["totalPages"] == 0
        assert meta["hasNext"] is False
        assert meta["hasPrev"] is False


class TestListAndSearch:
    def test_pasta_first_page(self, service):
        res = asyncio.run(service.search_recipes(params(q="pasta", page=1, limit=12)))
        assert len(res["data"]) == 12
        assert res["pagination"] == {
            "page": 1, "limit": 12, "total": 25, "totalPages": 3, "hasNext": True, "hasPrev": False,
        }
        assert all("pasta" in r["title"].lower() for r in res["data"])
        assert res["query"]["q"] == "pasta"

    def test_last_page_is_partial(self, service):
        res = asyncio.run(service.list_recipes(params(search="pasta", page=3)))
        assert len(res["data"]) == 1
        assert res["pagination"]["hasNext"] is False
        assert res["pagination"]["hasPrev"] is True

    def test_page_beyond_end_is_empty_not_error(self, service):
        res = asyncio.run(service.list_recipes(params(search="pasta", page=9)))
        assert res["data"] == []
        assert res["pagination"]["total"] == 25

    def test_no_matches(self, service):
        res = asyncio.run(service.search_recipes(params(category="desserts", maxTime=15)))
        assert res["data"] == []
        assert res["pagination"]["total"] == 0
        assert res["pagination"]["totalPages"] == 0
        assert res["pagination"]["hasNext"] is False

    def test_category_all_equals_omitted(self, service):
        a = asyncio.run(service.list_recipes(params(category="all")))
        b = asyncio.run(service.list_recipes(params()))
        assert a == b
        assert a["pagination"]["total"] == 27

    def test_unpublished_never_returned(self, service):
        res = asyncio.run(service.list_recipes(params(search="hidden")))
        assert res["pagination"]["total"] == 0

    def test_case_insensitive_and_description_match(self, service):
        res = asyncio.run(service.search_recipes(params(q="WEEKNIGHT", limit=100)))
        assert res["pagination"]["total"] == 27

    def test_tags_match_any(self, service):
        res = asyncio.run(service.list_recipes(params(tags="quick,vegan", limit=100)))
        assert res["pagination"]["total"] == 14

    def test_tags_match_regardless_of_spelling(self, service, recipes, tags, recipe_payload):
        writer = RecipeWriteService(recipes, tags, None)
        asyncio.run(writer.create(dict(recipe_payload, title="Sunday Roast", tags=["Weeknight Dinner"]), author_id="u"))
        asyncio.run(writer.create(dict(recipe_payload, title="Quick Curry", tags=["weeknight  dinner"]), author_id="u"))
        assert [t["slug"] for t in tags.docs].count("weeknight-dinner") == 1
        for spelling in ("Weeknight Dinner", "weeknight dinner", "WEEKNIGHT DINNER"):
            res = asyncio.run(service.search_recipes(params(tags=spelling)))
            assert res["pagination"]["total"] == 2, spelling

    def test_servings_is_minimum(self, service):
        res = asyncio.run(service.list_recipes(params(servings=3, limit=100)))
        slugs = {r["slug"] for r in res["data"]}
        assert "tomato-soup" not in slugs
        assert res["pagination"]["total"] == 26

    def test_max_time_inclusive(self, service):
        res = asyncio.run(service.list_recipes(params(maxTime=15, sort="time", limit=100)))
        assert [r["totalTime"] for r in res["data"]] == [11, 12, 13, 14, 15]

    def test_sort_newest_default(self, service):
        res = asyncio.run(service.list_recipes(params(search="pasta", limit=3)))
        assert [r["slug"] for r in res["data"]] == ["pasta-25", "pasta-24", "pasta-23"]

    def test_pages_do_not_overlap(self, service):
        async def run():
            seen = []
            for page in (1, 2, 3):
                res = await service.list_recipes(params(search="pasta", sort="difficulty", page=page))
                seen += [r["slug"] for r in res["data"]]
            return seen

        seen = asyncio.run(run())
        assert len(seen) == 25
        assert len(set(seen)) == 25

    def test_echo_reflects_raw_params(self, service):
        res = asyncio.run(service.search_recipes(params(q="pasta", category="all", tags="quick")))
        assert res["query"]["category"] == "all"
        assert res["query"]["tags"] == ["quick"]
        assert res["query"]["maxTime"] is None


class TestCaching:
    def test_second_identical_search_served_from_cache(self, service, recipes):
        async def run():
            first = await service.search_recipes(params(q="pasta"))
            calls = dict(recipes.calls)
            second = await service.search_recipes(params(q="pasta"))
            return first, second, calls

        first, second, calls = asyncio.run(run())
        assert first == second
        assert recipes.calls == calls

    def test_list_and_search_use_separate_namespaces(self, service, redis):
        async def run():
            await service.list_recipes(params(search="pasta"))
            await service.search_recipes(params(q="pasta"))

        asyncio.run(run())
        prefixes = sorted(k.split(":")[1] for k in redis.store)
        assert prefixes == ["recipes", "search"]

    def test_cache_outage_still_serves(self, recipes, tags):
        cache = CacheManager(CacheClient(prefix="recipe-website:", client=BrokenRedis()))
        svc = RecipeSearchService(recipes, tags, QueryOptimizer(cache))
        res = asyncio.run(svc.search_recipes(params(q="pasta")))
        assert res["pagination"]["total"] == 25

    def test_without_cache(self, recipes, tags):
        svc = RecipeSearchService(recipes, tags)
        res = asyncio.run(svc.list_recipes(params(category="soups")))
        assert [r["slug"] for r in res["data"]] == ["tomato-soup"]

    def test_database_failure_propagates(self, optimizer):
        svc = RecipeSearchService(FailingCollection(), None, optimizer)
        with pytest.raises(RuntimeError):
            asyncio.run(svc.list_recipes(params()))


class TestSingleRecipe:
    def test_get_recipe(self, service):
        r = asyncio.run(service.get_recipe("pasta-3"))
        assert r["title"] == "Pasta No. 3"
        assert r["totalTime"] == 13
        assert r["createdAt"].startswith("2024-01-01T00:03:00")

    def test_get_unpublished_is_not_found(self, service):
        with pytest.raises(RecipeNotFoundError):
            asyncio.run(service.get_recipe("hidden-pasta"))

    def test_popular_puts_featured_first(self, service):
        res = asyncio.run(service.popular_recipes(3))
        assert res[0]["slug"] == "chocolate-cake"
        assert len(res) == 3

    def test_related_same_category_excluding_self(self, service):
        res = asyncio.run(service.related_recipes("pasta-1", 100))
        slugs = [r["slug"] for r in res]
        assert "pasta-1" not in slugs
        assert len(slugs) == 24

    def test_related_of_missing_recipe(self, service):
        with pytest.raises(RecipeNotFoundError):
            asyncio.run(service.related_recipes("nope"))


class TestTaxonomy:
    def test_categories_counts(self, service):
        res = asyncio.run(service.categories())
        assert res[0] == {"name": "main-course", "count": 25}
        assert {"name": "soups", "count": 1} in res
        assert {"name": "desserts", "count": 1} in res

    def test_tags_only_in_use(self, service):
        res = asyncio.run(service.list_tags())
        assert [t["name"] for t in res] == ["pasta", "quick", "vegan"]
        assert [t["name"] for t in asyncio.run(service.list_tags(1))] == ["pasta"]
