from __future__ import annotations

import asyncio

import pytest

from recipe_site.services.optimizer import QueryOptimizer


class CountingQuery:
    def __init__(self, result):
        self.result = result
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        return self.result


class TestExecute:
    def test_miss_then_hit(self, optimizer):
        query = CountingQuery({"data": [1, 2]})

        async def run():
            first = await optimizer.execute(query, cache_key="recipes:list", ttl=60, name="list")
            second = await optimizer.execute(query, cache_key="recipes:list", ttl=60, name="list")
            return first, second

        first, second = asyncio.run(run())
        assert first == second == {"data": [1, 2]}
        assert query.calls == 1
        m = optimizer.get_metrics()
        assert (m["cacheHits"], m["cacheMisses"], m["queryCount"]) == (1, 1, 1)

    def test_without_cache_always_queries(self):
        opt = QueryOptimizer(None)
        query = CountingQuery([1])

        async def run():
            await opt.execute(query, cache_key="k")
            await opt.execute(query, cache_key="k")

        asyncio.run(run())
        assert query.calls == 2
        assert opt.get_metrics()["cacheHits"] == 0

    def test_cache_can_be_bypassed(self, optimizer):
        query = CountingQuery([1])

        async def run():
            await optimizer.execute(query, cache_key="k", enable_cache=False)
            await optimizer.execute(query, cache_key="k", enable_cache=False)

        asyncio.run(run())
        assert query.calls == 2

    def test_empty_results_are_not_cached(self, optimizer, redis):
        asyncio.run(optimizer.execute(CountingQuery([]), cache_key="k"))
        assert redis.store == {}

    def test_query_errors_propagate_and_are_counted(self, optimizer):
        async def boom():
            raise RuntimeError("db down")

        with pytest.raises(RuntimeError):
            asyncio.run(optimizer.execute(boom, cache_key="k"))
        assert optimizer.get_metrics()["queryCount"] == 1


class TestMetrics:
    def test_slow_queries_recorded(self):
        opt = QueryOptimizer(None, slow_query_ms=-1)
        asyncio.run(opt.execute(CountingQuery([1]), name="slow_one"))
        slow = opt.get_metrics()["slowQueries"]
        assert len(slow) == 1
        assert slow[0]["query"] == "slow_one"

    def test_reset(self, optimizer):
        asyncio.run(optimizer.execute(CountingQuery([1])))
        optimizer.reset_metrics()
        assert optimizer.get_metrics()["queryCount"] == 0

    def test_low_hit_ratio_suggestion(self, optimizer):
        async def run():
            for i in range(3):
                await optimizer.execute(CountingQuery([i]), cache_key=f"k{i}")

        asyncio.run(run())
        assert any("cache hit ratio" in s for s in optimizer.optimization_suggestions())

    def test_no_suggestions_when_idle(self):
        assert QueryOptimizer(None).optimization_suggestions() == []
