# recipe_site/main.py
# 레시피 검색 API 진입점 (uvicorn recipe_site.main:app)
# 시작 시 Mongo → 인덱스 → Redis 캐시 순서로 준비, 캐시는 없어도 뜬다

from __future__ import annotations

import logging
import sys
from asyncio import sleep

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from recipe_site.api.routes_recipes import router as recipes_router
from recipe_site.api.routes_taxonomy import router as taxonomy_router
from recipe_site.core.config import settings
from recipe_site.db.init import close_db, init_db, ping_db
from recipe_site.db.indexes import ensure_indexes
from recipe_site.services.cache import CacheClient, CacheManager
from recipe_site.services.optimizer import QueryOptimizer

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
log = logging.getLogger("recipe_site")

app = FastAPI(title="Recipe Site - API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.FRONTEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 앱 시작/종료 이벤트 핸들러
@app.on_event("startup")
async def on_startup() -> None:
    # 1) DB 먼저 붙는다 (최대 20회, 1초 간격)
    db = None
    for i in range(20):
        try:
            db = await init_db()
            log.info("db ready")
            break
        except Exception as e:
            log.warning("db init retry %d: %s", i + 1, e)
            await sleep(1.0)
    if db is None:
        log.error("db init failed after retries")
        return

    # 2) 인덱스 보장
    try:
        await ensure_indexes()
        log.info("indexes ensured")
    except Exception:
        log.exception("ensure_indexes failed")

    # 3) 캐시: 연결 실패해도 앱은 뜬다 (항상 재계산 모드)
    cache = None
    if settings.CACHE_ENABLED:
        client = CacheClient(settings.REDIS_URL, prefix=settings.REDIS_KEY_PREFIX)
        await client.connect()
        cache = CacheManager(client)
    app.state.cache = cache
    app.state.optimizer = QueryOptimizer(cache, slow_query_ms=settings.SLOW_QUERY_MS)

@app.on_event("shutdown")
async def on_shutdown() -> None:
    cache = getattr(app.state, "cache", None)
    if cache is not None:
        await cache.client.disconnect()
    await close_db()

@app.get("/")
async def root():
    return {"status": "ok"}

@app.get("/health")
async def health():
    ok = {"status": "ok", "db": "ok", "cache": "disabled"}
    if not await ping_db():
        ok["status"] = "degraded"
        ok["db"] = "unavailable"

    cache = getattr(app.state, "cache", None)
    if cache is not None:
        hc = await cache.health_check()
        ok["cache"] = "ok" if hc["healthy"] else "unavailable"
        ok["cacheLatencyMs"] = hc["latency_ms"]

    optimizer = getattr(app.state, "optimizer", None)
    if optimizer is not None:
        ok["queries"] = optimizer.get_metrics()
        ok["suggestions"] = optimizer.optimization_suggestions()
    return ok

# /recipes 는 라우터 자체 prefix, 분류(/categories, /tags)는 루트
app.include_router(recipes_router)
app.include_router(taxonomy_router)
