# recipe_site/services/recipes.py
# 레시피 쓰기 경로: 생성/수정/삭제
# - 입력 검증은 엄격 (실패 시 RecipeValidationError → 400)
# - 태그는 처음 쓰일 때 tags 컬렉션에 생성 (count는 배치 잡이 재계산)
# - 쓰기 후 캐시 무효화: 목록/검색 키는 prefix 단위로 전부 삭제

from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Type, TypeVar

from motor.motor_asyncio import AsyncIOMotorCollection
from pydantic import BaseModel, ValidationError
from pymongo.errors import DuplicateKeyError

from recipe_site.core.errors import RecipeNotFoundError, RecipeValidationError
from recipe_site.db.models.recipe import build_recipe_doc, build_update_set, to_recipe_out
from recipe_site.db.models.schemas import RecipeIn, RecipeUpdateIn
from recipe_site.models.taxonomy import tag_slug
from recipe_site.services.cache import CacheManager
from recipe_site.services.utils import slugify, unique_slug

log = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def _error_details(e: ValidationError) -> List[Dict[str, str]]:
    # 필드 단위 메시지: [{"path": "ingredients.0.name", "message": "..."}]
    out: List[Dict[str, str]] = []
    for err in e.errors(include_url=False, include_context=False, include_input=False):
        path = ".".join(str(p) for p in err.get("loc", ()))
        msg = str(err.get("msg", "Invalid value"))
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        out.append({"path": path, "message": msg})
    return out


def validate_payload(model: Type[M], body: Any) -> M:
    if not isinstance(body, Mapping):
        raise RecipeValidationError([{"path": "", "message": "Request body must be a JSON object"}])
    try:
        return model.model_validate(dict(body))
    except ValidationError as e:
        raise RecipeValidationError(_error_details(e)) from e


class RecipeWriteService:
    def __init__(
        self,
        recipes: AsyncIOMotorCollection,
        tags: AsyncIOMotorCollection,
        cache: Optional[CacheManager] = None,
    ):
        self.recipes = recipes
        self.tags = tags
        self.cache = cache

    async def _slug_for(self, title: str) -> str:
        base = slugify(title) or "recipe"
        if await self.recipes.find_one({"slug": base}, {"_id": 1}):
            return unique_slug(base)
        return base

    async def _ensure_tags(self, names: Iterable[str]) -> None:
        now = datetime.now(timezone.utc)
        for name in names:
            # slug 기준: "Pasta"와 "pasta"는 같은 태그
            await self.tags.update_one(
                {"slug": tag_slug(name)},
                {"$setOnInsert": {"name": name, "count": 0, "created_at": now}},
                upsert=True,
            )

    async def _invalidate(self, slug: Optional[str] = None, taxonomy: bool = False) -> None:
        if self.cache is None:
            return
        await self.cache.invalidate_recipe_cache(slug)
        if taxonomy:
            await self.cache.invalidate_taxonomy_cache()

    async def create(self, body: Any, author_id: str) -> Dict[str, Any]:
        payload = validate_payload(RecipeIn, body)
        slug = await self._slug_for(payload.title)
        doc = build_recipe_doc(payload, author_id=author_id, slug=slug)
        try:
            res = await self.recipes.insert_one(doc)
        except DuplicateKeyError:
            # 동시 생성으로 slug가 겹친 경우 1회만 접미사 붙여 재시도
            doc.pop("_id", None)
            doc["slug"] = unique_slug(slugify(payload.title) or "recipe")
            res = await self.recipes.insert_one(doc)
        doc["_id"] = res.inserted_id

        await self._ensure_tags(doc["tags"])
        await self._invalidate(taxonomy=True)
        log.info("recipe created slug=%s author=%s", doc["slug"], author_id)
        return to_recipe_out(doc)

    async def update(self, slug: str, body: Any) -> Dict[str, Any]:
        payload = validate_payload(RecipeUpdateIn, body)
        current = await self.recipes.find_one({"slug": slug})
        if not current:
            raise RecipeNotFoundError(slug)

        to_set = build_update_set(payload, current)
        await self.recipes.update_one({"_id": current["_id"]}, {"$set": to_set})
        if "tags" in to_set:
            await self._ensure_tags(to_set["tags"])

        taxonomy = any(k in to_set for k in ("tags", "category", "published"))
        await self._invalidate(slug, taxonomy=taxonomy)
        log.info("recipe updated slug=%s fields=%s", slug, sorted(to_set))
        return to_recipe_out({**current, **to_set})

    async def delete(self, slug: str) -> None:
        res = await self.recipes.delete_one({"slug": slug})
        if not res.deleted_count:
            raise RecipeNotFoundError(slug)
        await self._invalidate(slug, taxonomy=True)
        log.info("recipe deleted slug=%s", slug)
