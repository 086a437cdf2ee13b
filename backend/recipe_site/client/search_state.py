# recipe_site/client/search_state.py
# 검색 화면 상태 동기화 (프론트 검색 훅과 같은 계약의 파이썬 클라이언트)
# - 텍스트 입력만 300ms 디바운스, 나머지 필터 변경은 즉시 재조회 + 1페이지로
# - 상태가 확정될 때마다 URL 쿼리스트링을 replace로 갱신 (history 길이 불변)
# - 요청마다 증가하는 시퀀스 번호 → 최신이 아닌 응답은 버린다 (늦게 온 옛 응답이 덮어쓰지 않도록)

from __future__ import annotations
import asyncio
import logging
import math
from dataclasses import dataclass, field, replace as dc_replace
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs, urlencode

import httpx

from recipe_site.models.taxonomy import ALL, DEFAULT_PAGE_SIZE, DEFAULT_SORT
from recipe_site.services.utils import join_csv, parse_int, split_csv

log = logging.getLogger(__name__)

DEBOUNCE_SECONDS = 0.3
ITEMS_PER_PAGE = DEFAULT_PAGE_SIZE


@dataclass(frozen=True)
class RecipeFilters:
    category: str = ALL
    difficulty: str = ALL
    max_time: int = 0
    servings: int = 0
    tags: tuple = field(default_factory=tuple)

    @property
    def is_default(self) -> bool:
        return self == RecipeFilters()


DEFAULT_FILTERS = RecipeFilters()


class SearchLocation:
    """브라우저 주소/히스토리 대용. replace는 마지막 항목만 교체, push는 추가"""

    def __init__(self, path: str = "/recipes", query: str = ""):
        self.path = path
        self.query = query.lstrip("?")
        self.history: List[str] = [self.url]

    @property
    def url(self) -> str:
        return f"{self.path}?{self.query}" if self.query else self.path

    def replace(self, query: str) -> None:
        self.query = query
        self.history[-1] = self.url

    def push(self, query: str) -> None:
        self.query = query
        self.history.append(self.url)


def _first(qs: Dict[str, List[str]], key: str) -> Optional[str]:
    v = qs.get(key)
    return v[0] if v else None


def state_from_query_string(query: str) -> Dict[str, Any]:
    """URL 쿼리스트링 → 초기 상태 (관대 파싱)"""
    qs = parse_qs(query.lstrip("?"), keep_blank_values=False)
    return {
        "query": _first(qs, "q") or "",
        "filters": RecipeFilters(
            category=_first(qs, "category") or ALL,
            difficulty=_first(qs, "difficulty") or ALL,
            max_time=max(0, parse_int(_first(qs, "maxTime"), 0)),
            servings=max(0, parse_int(_first(qs, "servings"), 0)),
            tags=tuple(split_csv(_first(qs, "tags"))),
        ),
        "sort_by": _first(qs, "sort") or DEFAULT_SORT,
        "page": max(1, parse_int(_first(qs, "page"), 1)),
    }


def filter_params(query: str, filters: RecipeFilters, sort_by: str) -> Dict[str, str]:
    # 기본값은 생략
    params: Dict[str, str] = {}
    if query:
        params["q"] = query
    if filters.category != ALL:
        params["category"] = filters.category
    if filters.difficulty != ALL:
        params["difficulty"] = filters.difficulty
    if filters.max_time > 0:
        params["maxTime"] = str(filters.max_time)
    if filters.servings > 0:
        params["servings"] = str(filters.servings)
    if filters.tags:
        params["tags"] = join_csv(filters.tags)
    if sort_by != DEFAULT_SORT:
        params["sort"] = sort_by
    return params


class RecipeSearchState:
    def __init__(
        self,
        client: httpx.AsyncClient,
        location: Optional[SearchLocation] = None,
        endpoint: str = "/recipes/search",
        debounce: float = DEBOUNCE_SECONDS,
        items_per_page: int = ITEMS_PER_PAGE,
        initial_results: Optional[List[Dict[str, Any]]] = None,
    ):
        self.client = client
        self.location = location or SearchLocation()
        self.endpoint = endpoint
        self.debounce = debounce
        self.items_per_page = items_per_page

        # URL이 초기 상태의 원천
        init = state_from_query_string(self.location.query)
        self.query: str = init["query"]
        self.debounced_query: str = init["query"]
        self.filters: RecipeFilters = init["filters"]
        self.sort_by: str = init["sort_by"]
        self.current_page: int = init["page"]

        self.results: List[Dict[str, Any]] = list(initial_results or [])
        self.total_results: int = len(self.results)
        self.is_loading = False
        self.error: Optional[str] = None

        self._seq = 0
        self._debounce_task: Optional[asyncio.Task] = None

    # ------------------------------
    # 계산값
    # ------------------------------

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_results / self.items_per_page)

    @property
    def has_more(self) -> bool:
        return self.current_page < self.total_pages

    @property
    def has_active_filters(self) -> bool:
        return not self.filters.is_default

    @property
    def has_search_query(self) -> bool:
        return len(self.debounced_query) > 0

    @property
    def is_empty(self) -> bool:
        return not self.results and not self.is_loading

    @property
    def search_summary(self) -> str:
        if self.is_loading:
            return "Searching..."
        if self.is_empty:
            return "No recipes found"
        start = (self.current_page - 1) * self.items_per_page + 1
        end = min(self.current_page * self.items_per_page, self.total_results)
        plural = "" if self.total_results == 1 else "s"
        return f"Showing {start}-{end} of {self.total_results} recipe{plural}"

    # ------------------------------
    # 세터 (set_page 외에는 모두 1페이지로)
    # ------------------------------

    async def set_query(self, query: str) -> None:
        """텍스트만 디바운스: 이전 타이머 취소 후 새 타이머"""
        self.query = query
        self.current_page = 1
        self._cancel_debounce()
        self._debounce_task = asyncio.get_running_loop().create_task(self._debounced_settle(query))

    async def set_filters(self, **changes: Any) -> None:
        if "tags" in changes:
            changes["tags"] = tuple(changes["tags"] or ())
        self.filters = dc_replace(self.filters, **changes)
        self.current_page = 1
        await self._settle()

    async def set_sort_by(self, sort_by: str) -> None:
        self.sort_by = sort_by
        self.current_page = 1
        await self._settle()

    async def set_page(self, page: int) -> None:
        self.current_page = max(1, page)
        await self._settle()

    async def clear_filters(self) -> None:
        # 텍스트 검색어는 유지
        self.filters = DEFAULT_FILTERS
        self.current_page = 1
        await self._settle()

    async def clear_search(self) -> None:
        self._cancel_debounce()
        self.query = ""
        self.debounced_query = ""
        self.current_page = 1
        await self._settle()

    async def reset(self) -> None:
        self._cancel_debounce()
        self.query = ""
        self.debounced_query = ""
        self.filters = DEFAULT_FILTERS
        self.sort_by = DEFAULT_SORT
        self.current_page = 1
        await self._settle()

    async def load_from_url(self, query_string: str) -> None:
        """뒤로/앞으로 이동 시: URL 스냅샷으로 상태 복원 후 조회 (URL은 건드리지 않음)"""
        self._cancel_debounce()
        init = state_from_query_string(query_string)
        self.query = self.debounced_query = init["query"]
        self.filters = init["filters"]
        self.sort_by = init["sort_by"]
        self.current_page = init["page"]
        await self.search()

    async def wait_idle(self) -> None:
        # 대기 중인 디바운스 조회가 끝날 때까지
        task = self._debounce_task
        if task is not None and not task.done():
            try:
                await task
            except asyncio.CancelledError:
                pass

    # ------------------------------
    # 내부
    # ------------------------------

    def _cancel_debounce(self) -> None:
        if self._debounce_task is not None and not self._debounce_task.done():
            self._debounce_task.cancel()
        self._debounce_task = None

    async def _debounced_settle(self, query: str) -> None:
        await asyncio.sleep(self.debounce)
        self.debounced_query = query
        await self._settle()

    async def _settle(self) -> None:
        self._update_url()
        await self.search()

    def url_query(self) -> str:
        params = filter_params(self.debounced_query, self.filters, self.sort_by)
        if self.current_page > 1:
            params["page"] = str(self.current_page)
        return urlencode(params)

    def _update_url(self) -> None:
        self.location.replace(self.url_query())

    async def search(self) -> None:
        self._seq += 1
        seq = self._seq
        self.is_loading = True

        params = filter_params(self.debounced_query, self.filters, self.sort_by)
        params["page"] = str(self.current_page)
        params["limit"] = str(self.items_per_page)

        try:
            resp = await self.client.get(self.endpoint, params=params)
            resp.raise_for_status()
            body = resp.json()
            if not isinstance(body, dict):
                raise ValueError(f"unexpected search response: {type(body).__name__}")
            items = list(body.get("data") or [])
            total = int((body.get("pagination") or {}).get("total") or 0)
        except (httpx.HTTPError, ValueError) as e:
            if seq != self._seq:
                return
            log.warning("search error: %s", e)
            self.results = []
            self.total_results = 0
            self.error = "Failed to search recipes"
            self.is_loading = False
            return

        if seq != self._seq:
            # 더 새로운 요청이 이미 나감 → 이 응답은 버림
            log.debug("discarding stale search response seq=%d latest=%d", seq, self._seq)
            return
        self.results = items
        self.total_results = total
        self.error = None
        self.is_loading = False
