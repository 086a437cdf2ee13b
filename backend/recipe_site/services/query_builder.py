# recipe_site/services/query_builder.py
# -----------------------------------------------------------------------------
# 검색 파라미터(평평한 문자열 dict) → Mongo 필터/정렬/페이지네이션
# - 파싱은 관대하게: 잘못된 숫자는 0 또는 기본값 → "제약 없음"으로 취급 (400 없음)
# - "all"/빈 값은 필터 생략 (실제 값이 아니라 센티넬)
# - servings는 "최소 인원" (>=) 의미로 통일
# -----------------------------------------------------------------------------

from __future__ import annotations
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from recipe_site.models.taxonomy import (
    ALL, DEFAULT_PAGE_SIZE, DEFAULT_SORT, MAX_PAGE, MAX_PAGE_SIZE, MAX_SERVINGS,
    MAX_TOTAL_MINUTES, SORT_FIELDS, tag_slug,
)
from recipe_site.services.utils import parse_int, split_csv


@dataclass(frozen=True)
class SearchQuery:
    q: str = ""
    category: str = ""
    difficulty: str = ""
    cuisine: str = ""
    max_time: int = 0
    servings: int = 0
    tags: Tuple[str, ...] = field(default_factory=tuple)
    sort: str = DEFAULT_SORT
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE
    featured: bool = False
    # 에코용: 파라미터가 실제로 왔는지
    max_time_given: bool = False
    servings_given: bool = False

    @classmethod
    def from_params(cls, params: Mapping[str, Optional[str]]) -> "SearchQuery":
        """쿼리스트링 → SearchQuery. q가 없으면 search 파라미터를 본다"""
        get = params.get
        sort = (get("sort") or DEFAULT_SORT).strip()
        if sort not in SORT_FIELDS:
            sort = DEFAULT_SORT
        return cls(
            q=(get("q") or get("search") or "").strip(),
            category=(get("category") or "").strip(),
            difficulty=(get("difficulty") or "").strip(),
            cuisine=(get("cuisine") or "").strip(),
            max_time=clamp_max_time(parse_int(get("maxTime"), 0)),
            servings=clamp_servings(parse_int(get("servings"), 0)),
            tags=tuple(split_csv(get("tags"))),
            sort=sort,
            page=clamp_page(parse_int(get("page"), 1)),
            limit=clamp_limit(parse_int(get("limit"), DEFAULT_PAGE_SIZE)),
            featured=get("featured") == "true",
            max_time_given=bool(get("maxTime")),
            servings_given=bool(get("servings")),
        )

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    def cache_params(self) -> Dict[str, Any]:
        # 결과에 영향을 주는 값만 (q는 키 식별자 쪽에 들어감)
        return {
            "category": _active(self.category),
            "difficulty": _active(self.difficulty),
            "cuisine": _active(self.cuisine),
            "maxTime": self.max_time,
            "servings": self.servings,
            "tags": sorted(self.tags),
            "sort": self.sort,
            "page": self.page,
            "limit": self.limit,
            "featured": self.featured,
        }

    def echo(self) -> Dict[str, Any]:
        return {
            "q": self.q,
            "category": self.category,
            "difficulty": self.difficulty,
            "cuisine": self.cuisine,
            "maxTime": self.max_time if self.max_time_given else None,
            "servings": self.servings if self.servings_given else None,
            "tags": list(self.tags),
            "sort": self.sort,
            "featured": self.featured,
        }


def clamp_page(page: int) -> int:
    return min(MAX_PAGE, max(1, page))


def clamp_limit(limit: int) -> int:
    return min(MAX_PAGE_SIZE, max(1, limit))


# 저장 가능한 최대값 이상은 결과가 같으므로 잘라서 BSON int64 범위 유지
def clamp_max_time(minutes: int) -> int:
    return min(MAX_TOTAL_MINUTES, max(0, minutes))


def clamp_servings(servings: int) -> int:
    # MAX_SERVINGS+1: 여전히 아무것도 매치하지 않음
    return min(MAX_SERVINGS + 1, max(0, servings))


def _active(value: str) -> str:
    # "all"/빈 값 → "" (제약 없음)
    v = (value or "").strip()
    return "" if not v or v == ALL else v


def contains_regex(text: str) -> Dict[str, str]:
    """대소문자 무시 부분일치 (정규식 메타문자는 이스케이프)"""
    return {"$regex": re.escape(text), "$options": "i"}


def build_filter(query: SearchQuery) -> Dict[str, Any]:
    where: Dict[str, Any] = {"published": True}

    # 텍스트: 제목 OR 설명 부분일치 (랭킹 없음)
    if query.q:
        where["$or"] = [
            {"title": contains_regex(query.q)},
            {"description": contains_regex(query.q)},
        ]

    for name in ("category", "difficulty", "cuisine"):
        v = _active(getattr(query, name))
        if v:
            where[name] = v

    if query.max_time > 0:
        where["total_time"] = {"$lte": query.max_time}

    if query.servings > 0:
        where["servings"] = {"$gte": query.servings}

    # 태그: 하나라도 겹치면 매치. 표기(대소문자/공백)와 무관하게 slug로 비교
    if query.tags:
        where["tag_slugs"] = {"$in": sorted({tag_slug(t) for t in query.tags})}

    if query.featured:
        where["featured"] = True

    return where


def build_sort(sort: str) -> List[Tuple[str, int]]:
    field_name, direction = SORT_FIELDS.get(sort, SORT_FIELDS[DEFAULT_SORT])
    # _id 보조 정렬: 같은 값끼리 페이지 경계가 흔들리지 않도록
    return [(field_name, direction), ("_id", 1)]


def build_pagination(page: int, limit: int) -> Tuple[int, int]:
    page, limit = clamp_page(page), clamp_limit(limit)
    return (page - 1) * limit, limit


def build_query(query: SearchQuery) -> Tuple[Dict[str, Any], List[Tuple[str, int]], int, int]:
    """(filter, sort, skip, take) 한 번에"""
    skip, take = build_pagination(query.page, query.limit)
    return build_filter(query), build_sort(query.sort), skip, take
