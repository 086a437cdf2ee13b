# 레시피 저장 스키마 (Mongo 문서는 snake_case, 응답은 camelCase)
from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from recipe_site.db.models.schemas import RecipeIn, RecipeUpdateIn
from recipe_site.models.taxonomy import normalize_tags, tag_slug

# 입력 camelCase → 문서 snake_case
_FIELD_MAP = {
    "prepTime": "prep_time",
    "cookTime": "cook_time",
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _image_doc(img: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "url": img.get("url"),
        "alt": img.get("alt"),
        "caption": img.get("caption"),
        "is_primary": bool(img.get("isPrimary")),
    }


def _iso(v: Any) -> Optional[str]:
    if isinstance(v, datetime):
        if v.tzinfo is None:
            v = v.replace(tzinfo=timezone.utc)
        return v.isoformat()
    return str(v) if v else None


def build_recipe_doc(payload: RecipeIn, author_id: str, slug: str) -> Dict[str, Any]:
    """검증된 입력 → 저장 문서. total_time은 항상 prep+cook으로 계산"""
    now = utcnow()
    data = payload.model_dump(exclude_none=True)
    tags = normalize_tags(payload.tags)
    return {
        "title": payload.title,
        "slug": slug,
        "description": payload.description,
        "prep_time": payload.prepTime,
        "cook_time": payload.cookTime,
        "total_time": payload.prepTime + payload.cookTime,
        "servings": payload.servings,
        "difficulty": payload.difficulty,
        "category": payload.category,
        "cuisine": payload.cuisine,
        "ingredients": data.get("ingredients", []),
        "instructions": sorted(data.get("instructions", []), key=lambda i: i["step"]),
        "tags": tags,
        "tag_slugs": [tag_slug(t) for t in tags],
        "images": [_image_doc(i) for i in data.get("images", [])],
        "nutrition": data.get("nutrition"),
        "notes": payload.notes,
        "source": payload.source,
        "published": payload.published,
        "featured": payload.featured,
        "rating": None,
        "author_id": author_id,
        "created_at": now,
        "updated_at": now,
    }


def build_update_set(payload: RecipeUpdateIn, current: Mapping[str, Any]) -> Dict[str, Any]:
    """부분 수정 → $set 문서. prep/cook 둘 중 하나만 바뀌어도 total_time 재계산"""
    data = payload.model_dump(exclude_unset=True, exclude_none=True)
    to_set: Dict[str, Any] = {}
    for k, v in data.items():
        if k == "images":
            to_set["images"] = [_image_doc(i) for i in v]
        elif k == "tags":
            to_set["tags"] = normalize_tags(v)
            to_set["tag_slugs"] = [tag_slug(t) for t in to_set["tags"]]
        elif k == "instructions":
            to_set["instructions"] = sorted(v, key=lambda i: i["step"])
        else:
            to_set[_FIELD_MAP.get(k, k)] = v

    if "prep_time" in to_set or "cook_time" in to_set:
        prep = to_set.get("prep_time", current.get("prep_time") or 0)
        cook = to_set.get("cook_time", current.get("cook_time") or 0)
        to_set["total_time"] = prep + cook

    to_set["updated_at"] = utcnow()
    return to_set


def to_recipe_out(doc: Mapping[str, Any]) -> Dict[str, Any]:
    # 캐시에 그대로 넣을 수 있도록 JSON 직렬화 가능한 dict로 반환
    return {
        "id": str(doc.get("_id") or doc.get("id") or ""),
        "title": doc.get("title", ""),
        "slug": doc.get("slug", ""),
        "description": doc.get("description", "") or "",
        "prepTime": int(doc.get("prep_time") or 0),
        "cookTime": int(doc.get("cook_time") or 0),
        "totalTime": int(doc.get("total_time") or 0),
        "servings": int(doc.get("servings") or 0),
        "difficulty": doc.get("difficulty", "") or "",
        "category": doc.get("category", "") or "",
        "cuisine": doc.get("cuisine", "") or "",
        "ingredients": list(doc.get("ingredients") or []),
        "instructions": list(doc.get("instructions") or []),
        "tags": [str(t) for t in (doc.get("tags") or [])],
        "images": [
            {
                "url": i.get("url"),
                "alt": i.get("alt"),
                "caption": i.get("caption"),
                "isPrimary": bool(i.get("is_primary")),
            }
            for i in (doc.get("images") or [])
        ],
        "nutrition": doc.get("nutrition"),
        "notes": doc.get("notes"),
        "source": doc.get("source"),
        "published": bool(doc.get("published")),
        "featured": bool(doc.get("featured")),
        "rating": doc.get("rating"),
        "authorId": doc.get("author_id"),
        "createdAt": _iso(doc.get("created_at")),
        "updatedAt": _iso(doc.get("updated_at")),
    }
