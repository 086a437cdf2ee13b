# 공용 의존성: 앱 시작 시 만든 캐시/옵티마이저(app.state)와 컬렉션을 서비스로 묶어 주입
from typing import Optional

from fastapi import Depends, HTTPException, Request

from recipe_site.core.auth import CurrentUser, get_current_user
from recipe_site.core.config import settings
from recipe_site.db.init import get_recipes_collection, get_tags_collection
from recipe_site.services.cache import CacheManager
from recipe_site.services.optimizer import QueryOptimizer
from recipe_site.services.recipes import RecipeWriteService
from recipe_site.services.search_service import RecipeSearchService

WRITE_WINDOW = 60 * 60  # 1시간


def get_cache(request: Request) -> Optional[CacheManager]:
    # 캐시 미설정(CACHE_ENABLED=false)이면 None
    return getattr(request.app.state, "cache", None)


def get_optimizer(request: Request) -> QueryOptimizer:
    opt = getattr(request.app.state, "optimizer", None)
    if opt is None:
        opt = QueryOptimizer(get_cache(request), slow_query_ms=settings.SLOW_QUERY_MS)
        request.app.state.optimizer = opt
    return opt


def get_search_service(optimizer: QueryOptimizer = Depends(get_optimizer)) -> RecipeSearchService:
    return RecipeSearchService(get_recipes_collection(), get_tags_collection(), optimizer)


def get_write_service(cache: Optional[CacheManager] = Depends(get_cache)) -> RecipeWriteService:
    return RecipeWriteService(get_recipes_collection(), get_tags_collection(), cache)


async def write_rate_limit(
    user: CurrentUser = Depends(get_current_user),
    cache: Optional[CacheManager] = Depends(get_cache),
) -> CurrentUser:
    # 사용자당 시간당 쓰기 제한. 캐시가 없거나 죽어 있으면 통과
    if cache is None:
        return user
    rl = await cache.check_rate_limit(f"write:{user.id}", settings.WRITE_RATE_LIMIT, WRITE_WINDOW)
    if not rl["allowed"]:
        raise HTTPException(status_code=429, detail="Too many requests")
    return user
