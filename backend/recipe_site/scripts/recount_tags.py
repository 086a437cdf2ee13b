# scripts/recount_tags.py
# tags.count 재계산: 공개 레시피 기준 사용 횟수
# 쓰기 경로는 태그를 count=0으로 만들기만 하므로 주기적으로 돌린다
import asyncio
from collections import Counter
from datetime import datetime, timezone
from typing import Dict

from recipe_site.core.config import settings
from recipe_site.db.init import close_db, get_recipes_collection, get_tags_collection, init_db
from recipe_site.models.taxonomy import tag_slug
from recipe_site.services.cache import CacheClient, CacheManager


async def recount_tags(recipes, tags) -> Dict[str, int]:
    """slug별 사용 횟수 반영. 반환값은 {slug: count}"""
    counts: Counter = Counter()
    names: Dict[str, str] = {}
    cursor = recipes.find({"published": True}, {"tags": 1})
    async for doc in cursor:
        for t in doc.get("tags") or []:
            s = tag_slug(t)
            counts[s] += 1
            names.setdefault(s, t)  # 처음 본 표기

    now = datetime.now(timezone.utc)
    # 더 이상 안 쓰는 태그는 지우지 않고 0으로 (필터 목록에서는 count>0만 노출)
    await tags.update_many({"slug": {"$nin": list(counts)}}, {"$set": {"count": 0, "updated_at": now}})
    for s, n in counts.items():
        await tags.update_one(
            {"slug": s},
            {
                "$set": {"count": n, "updated_at": now},
                "$setOnInsert": {"name": names[s], "created_at": now},
            },
            upsert=True,
        )
    return dict(counts)


async def main():
    await init_db()
    try:
        counts = await recount_tags(get_recipes_collection(), get_tags_collection())
        print(f"recounted: {len(counts)} tags")
        for s, n in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))[:20]:
            print("-", s, n)

        if settings.CACHE_ENABLED:
            client = CacheClient(settings.REDIS_URL, prefix=settings.REDIS_KEY_PREFIX)
            await client.connect()
            await CacheManager(client).invalidate_taxonomy_cache()
            await client.disconnect()
    finally:
        await close_db()


if __name__ == "__main__":
    asyncio.run(main())
