# recipe_site/services/cache.py
# Redis 캐시 래퍼
# - 모든 연산은 best-effort: 캐시 장애 시 get→None, set/delete→False (예외 전파 없음)
# - 클라이언트는 전역 싱글턴이 아니라 앱 시작 시 만들어 주입한다 (app.state.cache)

from __future__ import annotations
import base64
import json
import logging
import time
from typing import Any, Dict, List, Mapping, Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

log = logging.getLogger(__name__)

# TTL(초)
CACHE_TTL: Dict[str, int] = {
    "RECIPES": 3600,          # 1시간
    "RECIPE_DETAIL": 7200,    # 2시간
    "CATEGORIES": 86400,      # 24시간
    "TAGS": 86400,
    "SEARCH_RESULTS": 1800,   # 30분
    "POPULAR_RECIPES": 3600,
    "RELATED_RECIPES": 7200,
    "RATE_LIMIT": 3600,
    "TEMPORARY": 300,
}

# 키 네임스페이스
CACHE_KEYS: Dict[str, str] = {
    "RECIPES": "recipes",
    "RECIPE_DETAIL": "recipe",
    "CATEGORIES": "categories",
    "TAGS": "tags",
    "SEARCH": "search",
    "POPULAR": "popular-recipes",
    "RELATED": "related-recipes",
    "RATE_LIMIT": "rate-limit",
}

_ERRORS = (RedisError, OSError)


class CacheClient:
    """redis.asyncio.Redis 얇은 래퍼. 키 prefix + JSON 직렬화 + 장애 흡수"""

    def __init__(self, url: Optional[str] = None, prefix: str = "", client: Optional[Redis] = None):
        self.url = url
        self.prefix = prefix
        self._client = client
        self.connected = False

    async def connect(self) -> bool:
        if self._client is None:
            if not self.url:
                return False
            self._client = Redis.from_url(self.url, decode_responses=True)
        try:
            await self._client.ping()
            self.connected = True
            log.info("redis connected")
        except _ERRORS as e:
            self.connected = False
            log.warning("redis connect failed: %s", e)
        return self.connected

    async def disconnect(self) -> None:
        if self._client is not None:
            try:
                await self._client.aclose()
            except _ERRORS as e:
                log.warning("redis close failed: %s", e)
        self._client = None
        self.connected = False

    def _k(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def _fail(self, op: str, e: Exception) -> None:
        self.connected = False
        log.warning("redis %s error: %s", op, e)

    async def get(self, key: str) -> Any:
        if self._client is None:
            return None
        try:
            raw = await self._client.get(self._k(key))
        except _ERRORS as e:
            self._fail("get", e)
            return None
        self.connected = True
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            log.warning("redis get: undecodable value at %s", key)
            return None

    async def set(self, key: str, value: Any, ttl: int = CACHE_TTL["TEMPORARY"]) -> bool:
        if self._client is None:
            return False
        try:
            await self._client.setex(self._k(key), ttl, json.dumps(value, default=str))
            return True
        except _ERRORS as e:
            self._fail("set", e)
            return False

    async def delete(self, key: str) -> bool:
        if self._client is None:
            return False
        try:
            await self._client.delete(self._k(key))
            return True
        except _ERRORS as e:
            self._fail("delete", e)
            return False

    async def exists(self, key: str) -> bool:
        if self._client is None:
            return False
        try:
            return await self._client.exists(self._k(key)) == 1
        except _ERRORS as e:
            self._fail("exists", e)
            return False

    async def expire(self, key: str, ttl: int) -> bool:
        if self._client is None:
            return False
        try:
            await self._client.expire(self._k(key), ttl)
            return True
        except _ERRORS as e:
            self._fail("expire", e)
            return False

    async def ttl(self, key: str) -> int:
        if self._client is None:
            return 0
        try:
            return max(0, int(await self._client.ttl(self._k(key))))
        except _ERRORS as e:
            self._fail("ttl", e)
            return 0

    async def keys(self, pattern: str) -> List[str]:
        # prefix 포함된 원본 키 목록 (SCAN)
        if self._client is None:
            return []
        try:
            return [k async for k in self._client.scan_iter(match=self._k(pattern))]
        except _ERRORS as e:
            self._fail("keys", e)
            return []

    async def flush_pattern(self, pattern: str) -> bool:
        if self._client is None:
            return False
        try:
            keys = [k async for k in self._client.scan_iter(match=self._k(pattern))]
            if keys:
                await self._client.delete(*keys)
            return True
        except _ERRORS as e:
            self._fail("flush_pattern", e)
            return False

    async def increment(self, key: str, amount: int = 1) -> int:
        if self._client is None:
            return 0
        try:
            return int(await self._client.incrby(self._k(key), amount))
        except _ERRORS as e:
            self._fail("increment", e)
            return 0

    async def ping(self) -> bool:
        if self._client is None:
            return False
        try:
            ok = bool(await self._client.ping())
        except _ERRORS as e:
            self._fail("ping", e)
            return False
        self.connected = ok
        return ok


class CacheManager:
    """키 규칙 + 엔티티별 TTL + 무효화 정책"""

    def __init__(self, client: CacheClient):
        self.client = client

    @staticmethod
    def generate_key(type_: str, identifier: str, params: Optional[Mapping[str, Any]] = None) -> str:
        # 파라미터는 키 정렬 후 "k=v&k=v" → base64. 삽입 순서와 무관하게 같은 키
        key = f"{type_}:{identifier}"
        if params:
            parts = []
            for k in sorted(params):
                v = params[k]
                if isinstance(v, (list, tuple)):
                    v = ",".join(str(x) for x in v)
                elif isinstance(v, bool):
                    v = "true" if v else "false"
                elif v is None:
                    v = ""
                parts.append(f"{k}={v}")
            encoded = base64.b64encode("&".join(parts).encode("utf-8")).decode("ascii")
            key += f":{encoded}"
        return key

    async def get(self, key: str) -> Any:
        return await self.client.get(key)

    async def set(self, key: str, value: Any, ttl: int = CACHE_TTL["TEMPORARY"]) -> bool:
        return await self.client.set(key, value, ttl)

    async def delete(self, key: str) -> bool:
        return await self.client.delete(key)

    async def exists(self, key: str) -> bool:
        return await self.client.exists(key)

    # --- 레시피 목록/검색 ---
    def recipes_key(self, params: Mapping[str, Any]) -> str:
        return self.generate_key(CACHE_KEYS["RECIPES"], "list", params)

    def search_key(self, q: str, params: Mapping[str, Any]) -> str:
        return self.generate_key(CACHE_KEYS["SEARCH"], q or "all", params)

    async def cache_recipes(self, params: Mapping[str, Any], value: Any) -> bool:
        return await self.client.set(self.recipes_key(params), value, CACHE_TTL["RECIPES"])

    async def get_cached_recipes(self, params: Mapping[str, Any]) -> Any:
        return await self.client.get(self.recipes_key(params))

    async def cache_search_results(self, q: str, params: Mapping[str, Any], value: Any) -> bool:
        return await self.client.set(self.search_key(q, params), value, CACHE_TTL["SEARCH_RESULTS"])

    async def get_cached_search_results(self, q: str, params: Mapping[str, Any]) -> Any:
        return await self.client.get(self.search_key(q, params))

    # --- 상세/인기/연관 ---
    def detail_key(self, slug: str) -> str:
        return self.generate_key(CACHE_KEYS["RECIPE_DETAIL"], slug)

    def popular_key(self, limit: int) -> str:
        return self.generate_key(CACHE_KEYS["POPULAR"], "recipes", {"limit": limit})

    def related_key(self, slug: str, limit: int) -> str:
        return self.generate_key(CACHE_KEYS["RELATED"], slug, {"limit": limit})

    # --- 분류 ---
    def categories_key(self) -> str:
        return self.generate_key(CACHE_KEYS["CATEGORIES"], "all")

    def tags_key(self, limit: Optional[int] = None) -> str:
        return self.generate_key(CACHE_KEYS["TAGS"], "all", {"limit": limit} if limit else None)

    # --- 무효화 ---
    async def invalidate_recipe_cache(self, slug: Optional[str] = None) -> None:
        """
        레시피 쓰기 시 호출.
        목록/검색 키는 필터 전체로 만들어져 역인덱스가 없으므로 prefix 단위로 통째로 지운다.
        """
        if slug:
            await self.client.delete(self.detail_key(slug))
        await self.client.flush_pattern(f"{CACHE_KEYS['RECIPES']}:*")
        await self.client.flush_pattern(f"{CACHE_KEYS['SEARCH']}:*")
        await self.client.flush_pattern(f"{CACHE_KEYS['POPULAR']}:*")
        await self.client.flush_pattern(f"{CACHE_KEYS['RELATED']}:*")

    async def invalidate_taxonomy_cache(self) -> None:
        await self.client.flush_pattern(f"{CACHE_KEYS['CATEGORIES']}:*")
        await self.client.flush_pattern(f"{CACHE_KEYS['TAGS']}:*")

    # --- 요청 제한 (고정 윈도) ---
    async def check_rate_limit(
        self, identifier: str, limit: int, window: int = CACHE_TTL["RATE_LIMIT"]
    ) -> Dict[str, Any]:
        key = self.generate_key(CACHE_KEYS["RATE_LIMIT"], identifier)
        now = time.time()
        count = await self.client.increment(key)
        if count == 0:
            # 캐시 장애 → 제한 없이 통과
            return {"allowed": True, "remaining": limit, "reset_at": now + window}
        if count == 1:
            await self.client.expire(key, window)
        if count > limit:
            ttl = await self.client.ttl(key)
            return {"allowed": False, "remaining": 0, "reset_at": now + ttl}
        return {"allowed": True, "remaining": limit - count, "reset_at": now + window}

    async def health_check(self) -> Dict[str, Any]:
        start = time.perf_counter()
        healthy = await self.client.ping()
        latency_ms = (time.perf_counter() - start) * 1000
        return {"healthy": healthy, "latency_ms": round(latency_ms, 2)}
