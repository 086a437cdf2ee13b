# scripts/seed_recipes.py
# JSON 파일의 레시피 목록 → recipes 컬렉션 벌크 upsert (slug 기준)
# 사용: python -m recipe_site.scripts.seed_recipes data/recipes.json
import asyncio
import json
import os
import sys
from typing import Any, Dict, List, Tuple

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import UpdateOne

from recipe_site.core.config import settings
from recipe_site.core.errors import RecipeValidationError
from recipe_site.db.indexes import ensure_recipe_indexes, ensure_tag_indexes
from recipe_site.db.init import RECIPES, TAGS
from recipe_site.db.models.recipe import build_recipe_doc
from recipe_site.db.models.schemas import RecipeIn
from recipe_site.scripts.recount_tags import recount_tags
from recipe_site.services.recipes import validate_payload
from recipe_site.services.utils import slugify

SEED_AUTHOR = os.getenv("SEED_AUTHOR_ID") or "seed"
BATCH = int(os.getenv("SEED_BATCH", "200"))


def make_seed_ops(items: List[Dict[str, Any]], author_id: str = SEED_AUTHOR) -> Tuple[List[UpdateOne], List[str]]:
    """검증 통과한 항목만 UpdateOne으로. 실패 항목은 (제목: 사유) 목록으로 반환"""
    ops: List[UpdateOne] = []
    errors: List[str] = []
    seen = set()
    for i, item in enumerate(items):
        try:
            payload = validate_payload(RecipeIn, item)
        except RecipeValidationError as e:
            title = item.get("title") if isinstance(item, dict) else None
            errors.append(f"#{i} {title or '?'}: {e.details[0]['path']} {e.details[0]['message']}")
            continue
        slug = slugify(payload.title) or f"recipe-{i}"
        if slug in seen:
            errors.append(f"#{i} {payload.title}: duplicate slug {slug}")
            continue
        seen.add(slug)

        doc = build_recipe_doc(payload, author_id=author_id, slug=slug)
        created_at = doc.pop("created_at")
        ops.append(
            UpdateOne(
                {"slug": slug},
                {
                    # 재실행 시 내용만 최신으로, 생성 시각/평점은 최초 값 유지
                    "$set": {k: v for k, v in doc.items() if k != "rating"},
                    "$setOnInsert": {"created_at": created_at, "rating": None},
                },
                upsert=True,
            )
        )
    return ops, errors


async def seed(db, items: List[Dict[str, Any]]) -> Dict[str, int]:
    ops, errors = make_seed_ops(items)
    for err in errors:
        print("[seed] skip", err)

    matched = upserted = 0
    for i in range(0, len(ops), BATCH):
        res = await db[RECIPES].bulk_write(ops[i : i + BATCH], ordered=False)
        matched += res.matched_count or 0
        upserted += len(res.upserted_ids or {})

    counts = await recount_tags(db[RECIPES], db[TAGS])
    return {"matched": matched, "upserted": upserted, "skipped": len(errors), "tags": len(counts)}


async def main(path: str):
    with open(path, encoding="utf-8") as f:
        items = json.load(f)
    if not isinstance(items, list):
        raise SystemExit("seed file must contain a JSON array of recipes")

    cli = AsyncIOMotorClient(settings.MONGO_URI)
    db = cli[settings.MONGO_DB]
    try:
        await ensure_recipe_indexes(db)
        await ensure_tag_indexes(db)
        print(f"[seed] items={len(items)} db={settings.MONGO_DB}")
        res = await seed(db, items)
        print(f"[seed] done. upserted={res['upserted']} matched={res['matched']} "
              f"skipped={res['skipped']} tags={res['tags']}")
    finally:
        cli.close()


if __name__ == "__main__":
    if len(sys.argv) < 2:
        raise SystemExit("usage: python -m recipe_site.scripts.seed_recipes <recipes.json>")
    asyncio.run(main(sys.argv[1]))
