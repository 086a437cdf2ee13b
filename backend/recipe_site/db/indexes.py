# 컬렉션 인덱스 생성
# 앱 스타트업에서 한 번 ensure_indexes()를 await로 호출한다.

from pymongo import ASCENDING, DESCENDING

from recipe_site.db.init import get_db, RECIPES, TAGS

# 레시피 검색/필터 인덱스
async def ensure_recipe_indexes(db):
    col = db[RECIPES]
    await col.create_index("slug", unique=True)
    await col.create_index([("published", ASCENDING), ("created_at", DESCENDING)])
    await col.create_index([("published", ASCENDING), ("category", ASCENDING)])
    await col.create_index([("published", ASCENDING), ("difficulty", ASCENDING)])
    await col.create_index([("published", ASCENDING), ("cuisine", ASCENDING)])
    await col.create_index([("total_time", ASCENDING)])
    await col.create_index([("servings", ASCENDING)])
    await col.create_index([("rating", DESCENDING)])
    await col.create_index("tag_slugs")

# 태그 컬렉션 인덱스
async def ensure_tag_indexes(db):
    col = db[TAGS]
    await col.create_index("name", unique=True)
    await col.create_index("slug", unique=True)
    await col.create_index([("count", DESCENDING)])

async def ensure_indexes():
    db = get_db()
    await ensure_recipe_indexes(db)
    await ensure_tag_indexes(db)
