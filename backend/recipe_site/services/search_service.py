# recipe_site/services/search_service.py
# 레시피 조회 서비스
# - 목록/검색: count + page 쿼리 동시 실행(asyncio.gather) → 페이지네이션 봉투
# - 상세/인기/연관/분류: 단건 조회 + 캐시
# 둘 중 하나라도 실패하면 예외 전파 (부분 결과 없음, 재시도 없음)

from __future__ import annotations
import asyncio
import math
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorCollection

from recipe_site.core.errors import RecipeNotFoundError
from recipe_site.db.models.recipe import to_recipe_out
from recipe_site.services.cache import CACHE_TTL, CacheManager
from recipe_site.services.optimizer import QueryOptimizer
from recipe_site.services.query_builder import SearchQuery, build_query

POPULAR_LIMIT = 10
RELATED_LIMIT = 6


def build_pagination_meta(page: int, limit: int, total: int) -> Dict[str, Any]:
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": total_pages,
        "hasNext": page < total_pages,
        "hasPrev": page > 1,
    }


class RecipeSearchService:
    def __init__(
        self,
        recipes: AsyncIOMotorCollection,
        tags: Optional[AsyncIOMotorCollection] = None,
        optimizer: Optional[QueryOptimizer] = None,
    ):
        self.recipes = recipes
        self.tags = tags
        self.optimizer = optimizer or QueryOptimizer()

    @property
    def cache(self) -> Optional[CacheManager]:
        return self.optimizer.cache

    # ------------------------------
    # 목록/검색
    # ------------------------------

    async def _fetch_page(self, query: SearchQuery) -> Dict[str, Any]:
        where, sort, skip, take = build_query(query)
        cursor = self.recipes.find(where).sort(sort).skip(skip).limit(take)
        docs, total = await asyncio.gather(
            cursor.to_list(length=take),
            self.recipes.count_documents(where),
        )
        return {
            "data": [to_recipe_out(d) for d in docs],
            "pagination": build_pagination_meta(query.page, query.limit, total),
        }

    async def list_recipes(self, query: SearchQuery) -> Dict[str, Any]:
        """GET /recipes: {data, pagination}"""
        key = None
        if self.cache is not None:
            key = self.cache.recipes_key({**query.cache_params(), "q": query.q})
        return await self.optimizer.execute(
            lambda: self._fetch_page(query),
            cache_key=key,
            ttl=CACHE_TTL["RECIPES"],
            name="list_recipes",
        )

    async def search_recipes(self, query: SearchQuery) -> Dict[str, Any]:
        """GET /recipes/search: {data, pagination, query}"""
        key = None
        if self.cache is not None:
            key = self.cache.search_key(query.q, query.cache_params())
        envelope = await self.optimizer.execute(
            lambda: self._fetch_page(query),
            cache_key=key,
            ttl=CACHE_TTL["SEARCH_RESULTS"],
            name="search_recipes",
        )
        # 에코는 요청마다 원본 파라미터 기준 (캐시에 넣지 않음)
        return {**envelope, "query": query.echo()}

    # ------------------------------
    # 상세/인기/연관
    # ------------------------------

    async def _find_published(self, slug: str) -> Dict[str, Any]:
        doc = await self.recipes.find_one({"slug": slug, "published": True})
        if not doc:
            raise RecipeNotFoundError(slug)
        return to_recipe_out(doc)

    async def get_recipe(self, slug: str) -> Dict[str, Any]:
        key = self.cache.detail_key(slug) if self.cache is not None else None
        return await self.optimizer.execute(
            lambda: self._find_published(slug),
            cache_key=key,
            ttl=CACHE_TTL["RECIPE_DETAIL"],
            name="get_recipe",
        )

    async def _find_popular(self, limit: int) -> List[Dict[str, Any]]:
        cursor = (
            self.recipes.find({"published": True})
            .sort([("featured", -1), ("rating", -1), ("_id", 1)])
            .limit(limit)
        )
        return [to_recipe_out(d) for d in await cursor.to_list(length=limit)]

    async def popular_recipes(self, limit: int = POPULAR_LIMIT) -> List[Dict[str, Any]]:
        key = self.cache.popular_key(limit) if self.cache is not None else None
        return await self.optimizer.execute(
            lambda: self._find_popular(limit),
            cache_key=key,
            ttl=CACHE_TTL["POPULAR_RECIPES"],
            name="popular_recipes",
        )

    async def _find_related(self, slug: str, limit: int) -> List[Dict[str, Any]]:
        base = await self.get_recipe(slug)
        cursor = (
            self.recipes.find({"published": True, "category": base["category"], "slug": {"$ne": slug}})
            .sort([("rating", -1), ("_id", 1)])
            .limit(limit)
        )
        return [to_recipe_out(d) for d in await cursor.to_list(length=limit)]

    async def related_recipes(self, slug: str, limit: int = RELATED_LIMIT) -> List[Dict[str, Any]]:
        key = self.cache.related_key(slug, limit) if self.cache is not None else None
        return await self.optimizer.execute(
            lambda: self._find_related(slug, limit),
            cache_key=key,
            ttl=CACHE_TTL["RELATED_RECIPES"],
            name="related_recipes",
        )

    # ------------------------------
    # 분류 (카테고리/태그)
    # ------------------------------

    async def _find_categories(self) -> List[Dict[str, Any]]:
        pipeline = [
            {"$match": {"published": True}},
            {"$group": {"_id": "$category", "count": {"$sum": 1}}},
            {"$sort": {"count": -1, "_id": 1}},
        ]
        rows = await self.recipes.aggregate(pipeline).to_list(length=None)
        return [{"name": r["_id"], "count": r["count"]} for r in rows if r.get("_id")]

    async def categories(self) -> List[Dict[str, Any]]:
        key = self.cache.categories_key() if self.cache is not None else None
        return await self.optimizer.execute(
            self._find_categories,
            cache_key=key,
            ttl=CACHE_TTL["CATEGORIES"],
            name="categories",
        )

    async def _find_tags(self, limit: Optional[int]) -> List[Dict[str, Any]]:
        if self.tags is None:
            return []
        cursor = self.tags.find({"count": {"$gt": 0}}).sort([("count", -1), ("name", 1)])
        if limit:
            cursor = cursor.limit(limit)
        rows = await cursor.to_list(length=limit)
        return [{"name": r["name"], "slug": r.get("slug", ""), "count": int(r.get("count") or 0)} for r in rows]

    async def list_tags(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        key = self.cache.tags_key(limit) if self.cache is not None else None
        return await self.optimizer.execute(
            lambda: self._find_tags(limit),
            cache_key=key,
            ttl=CACHE_TTL["TAGS"],
            name="list_tags",
        )

