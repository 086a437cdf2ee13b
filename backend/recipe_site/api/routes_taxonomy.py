# recipe_site/api/routes_taxonomy.py
# 카테고리/태그 조회: 필터 UI용 (24시간 캐시)

from __future__ import annotations
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from recipe_site.core.deps import get_search_service
from recipe_site.db.models.schemas import CategoryOut, TagOut
from recipe_site.services.search_service import RecipeSearchService

log = logging.getLogger(__name__)

router = APIRouter(tags=["taxonomy"])


@router.get("/categories", response_model=List[CategoryOut])
async def list_categories(svc: RecipeSearchService = Depends(get_search_service)):
    """공개 레시피 기준 카테고리별 개수"""
    try:
        return await svc.categories()
    except Exception:
        log.exception("Error fetching categories")
        raise HTTPException(status_code=500, detail="Failed to fetch categories")


@router.get("/tags", response_model=List[TagOut])
async def list_tags(
    limit: Optional[int] = Query(None, ge=1, le=200, description="상위 N개만"),
    svc: RecipeSearchService = Depends(get_search_service),
):
    try:
        return await svc.list_tags(limit)
    except Exception:
        log.exception("Error fetching tags")
        raise HTTPException(status_code=500, detail="Failed to fetch tags")
