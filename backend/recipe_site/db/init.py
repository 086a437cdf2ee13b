# recipe_site/db/init.py
# motor 커넥션 수명 관리: 앱 시작 시 1회 연결, 라우터/스크립트는 컬렉션 핸들만 받아 씀
from __future__ import annotations
import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase

from recipe_site.core.config import settings

log = logging.getLogger(__name__)

# 컬렉션 이름
RECIPES = "recipes"
TAGS = "tags"

_client: Optional[AsyncIOMotorClient] = None
_db: Optional[AsyncIOMotorDatabase] = None


async def init_db(uri: Optional[str] = None, name: Optional[str] = None) -> AsyncIOMotorDatabase:
    """이미 붙어 있으면 그대로 반환. ping 실패 시 예외 (startup 재시도 루프가 처리)"""
    global _client, _db
    if _db is not None:
        return _db

    client = AsyncIOMotorClient(uri or settings.MONGO_URI, serverSelectionTimeoutMS=5000)
    db = client[name or settings.MONGO_DB]
    try:
        await db.command("ping")
    except Exception:
        client.close()
        raise
    _client, _db = client, db
    log.info("mongo connected db=%s", db.name)
    return _db


def get_db() -> AsyncIOMotorDatabase:
    if _db is None:
        raise RuntimeError("MongoDB is not initialized yet.")
    return _db


def get_recipes_collection() -> AsyncIOMotorCollection:
    return get_db()[RECIPES]


def get_tags_collection() -> AsyncIOMotorCollection:
    return get_db()[TAGS]


async def ping_db() -> bool:
    # /health 용. 미연결/장애 모두 False
    if _db is None:
        return False
    try:
        await _db.command("ping")
        return True
    except Exception as e:
        log.warning("mongo ping failed: %s", e)
        return False


async def close_db() -> None:
    global _client, _db
    if _client is not None:
        _client.close()
    _client = None
    _db = None
