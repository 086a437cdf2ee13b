# recipe_site/services/optimizer.py
# 캐시 경유 쿼리 실행 + 간단 메트릭 (히트/미스, 평균 시간, 느린 쿼리)

from __future__ import annotations
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional, TypeVar

from recipe_site.services.cache import CacheManager

log = logging.getLogger(__name__)

T = TypeVar("T")

MAX_SLOW_QUERIES = 100


@dataclass
class QueryMetrics:
    query_count: int = 0
    total_duration: float = 0.0      # ms
    average_duration: float = 0.0    # ms
    slow_queries: Deque[Dict[str, Any]] = field(default_factory=lambda: deque(maxlen=MAX_SLOW_QUERIES))
    cache_hits: int = 0
    cache_misses: int = 0

    def as_dict(self) -> Dict[str, Any]:
        return {
            "queryCount": self.query_count,
            "totalDuration": round(self.total_duration, 2),
            "averageDuration": round(self.average_duration, 2),
            "slowQueries": list(self.slow_queries),
            "cacheHits": self.cache_hits,
            "cacheMisses": self.cache_misses,
        }


class QueryOptimizer:
    """
    캐시 우선 조회 → 미스면 실제 쿼리 실행 후 결과 캐시.
    - cache가 None이면 항상 직접 실행
    - 쿼리 예외는 그대로 전파 (캐시 예외는 CacheClient가 흡수)
    """

    def __init__(self, cache: Optional[CacheManager] = None, slow_query_ms: float = 1000.0):
        self.cache = cache
        self.slow_query_ms = slow_query_ms
        self.metrics = QueryMetrics()

    async def execute(
        self,
        query_fn: Callable[[], Awaitable[T]],
        cache_key: Optional[str] = None,
        ttl: Optional[int] = None,
        enable_cache: bool = True,
        name: str = "unknown",
    ) -> T:
        use_cache = enable_cache and self.cache is not None and bool(cache_key)

        if use_cache:
            cached = await self.cache.get(cache_key)
            if cached is not None:
                self.metrics.cache_hits += 1
                return cached
            self.metrics.cache_misses += 1

        start = time.perf_counter()
        try:
            result = await query_fn()
        finally:
            self._record(name, (time.perf_counter() - start) * 1000)

        if use_cache and result:
            if ttl is None:
                await self.cache.set(cache_key, result)
            else:
                await self.cache.set(cache_key, result, ttl)
        return result

    def _record(self, name: str, duration_ms: float) -> None:
        m = self.metrics
        m.query_count += 1
        m.total_duration += duration_ms
        m.average_duration = m.total_duration / m.query_count
        if duration_ms > self.slow_query_ms:
            log.warning("slow query %s: %.1fms", name, duration_ms)
            m.slow_queries.append({"query": name, "duration": round(duration_ms, 2), "timestamp": time.time()})

    def get_metrics(self) -> Dict[str, Any]:
        return self.metrics.as_dict()

    def reset_metrics(self) -> None:
        self.metrics = QueryMetrics()

    def optimization_suggestions(self) -> List[str]:
        m = self.metrics
        out: List[str] = []
        if m.average_duration > 500:
            out.append("Consider adding database indexes for frequently queried fields")
        if len(m.slow_queries) > 10:
            out.append("Multiple slow queries detected - review query optimization")
        lookups = m.cache_hits + m.cache_misses
        if lookups and m.cache_hits / lookups < 0.5:
            out.append("Low cache hit ratio - consider increasing cache TTL or improving cache keys")
        if m.query_count > 1000:
            out.append("High query count - consider query consolidation and batching")
        return out
