# recipe_site/api/routes_recipes.py
# 레시피 목록/검색/상세 조회 + 관리자 쓰기(생성/수정/삭제)
# 쿼리스트링은 전부 문자열로 받아 관대하게 파싱 (잘못된 값 → 제약 없음, 422 없음)

from __future__ import annotations
import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Request, status

from recipe_site.core.auth import CurrentUser, require_admin
from recipe_site.core.deps import get_search_service, get_write_service, write_rate_limit
from recipe_site.core.errors import RecipeNotFoundError, RecipeValidationError
from recipe_site.db.models.schemas import RecipeListResponse, RecipeOut, RecipeSearchResponse
from recipe_site.services.query_builder import SearchQuery, clamp_limit
from recipe_site.services.recipes import RecipeWriteService
from recipe_site.services.search_service import (
    POPULAR_LIMIT, RELATED_LIMIT, RecipeSearchService,
)
from recipe_site.services.utils import parse_int

log = logging.getLogger(__name__)

router = APIRouter(prefix="/recipes", tags=["recipes"])


def _validation_failed(e: RecipeValidationError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={"error": "Validation failed", "details": e.details},
    )


async def _json_body(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        raise _validation_failed(
            RecipeValidationError([{"path": "", "message": "Request body must be valid JSON"}])
        )


# ------------------------------
# 조회
# ------------------------------

@router.get("", response_model=RecipeListResponse)
async def list_recipes(request: Request, svc: RecipeSearchService = Depends(get_search_service)):
    """필터/정렬/페이지네이션 목록 (텍스트 검색 파라미터: search)"""
    query = SearchQuery.from_params(request.query_params)
    try:
        return await svc.list_recipes(query)
    except Exception:
        log.exception("Error fetching recipes")
        raise HTTPException(status_code=500, detail="Failed to fetch recipes")


# 정적 경로를 먼저 선언 (경로 충돌 방지: /search, /popular → /{slug})
@router.get("/search", response_model=RecipeSearchResponse)
async def search_recipes(request: Request, svc: RecipeSearchService = Depends(get_search_service)):
    """고급 검색 (텍스트 검색 파라미터: q): 적용된 필터를 query로 에코"""
    query = SearchQuery.from_params(request.query_params)
    try:
        return await svc.search_recipes(query)
    except Exception:
        log.exception("Error searching recipes")
        raise HTTPException(status_code=500, detail="Failed to search recipes")


@router.get("/popular", response_model=List[RecipeOut])
async def popular_recipes(request: Request, svc: RecipeSearchService = Depends(get_search_service)):
    limit = clamp_limit(parse_int(request.query_params.get("limit"), POPULAR_LIMIT))
    try:
        return await svc.popular_recipes(limit)
    except Exception:
        log.exception("Error fetching popular recipes")
        raise HTTPException(status_code=500, detail="Failed to fetch recipes")


@router.get("/{slug}", response_model=RecipeOut)
async def get_recipe(slug: str, svc: RecipeSearchService = Depends(get_search_service)):
    try:
        return await svc.get_recipe(slug)
    except RecipeNotFoundError:
        raise HTTPException(status_code=404, detail="Recipe not found")
    except Exception:
        log.exception("Error fetching recipe %s", slug)
        raise HTTPException(status_code=500, detail="Failed to fetch recipe")


@router.get("/{slug}/related", response_model=List[RecipeOut])
async def related_recipes(slug: str, request: Request, svc: RecipeSearchService = Depends(get_search_service)):
    limit = clamp_limit(parse_int(request.query_params.get("limit"), RELATED_LIMIT))
    try:
        return await svc.related_recipes(slug, limit)
    except RecipeNotFoundError:
        raise HTTPException(status_code=404, detail="Recipe not found")
    except Exception:
        log.exception("Error fetching related recipes for %s", slug)
        raise HTTPException(status_code=500, detail="Failed to fetch recipes")


# ------------------------------
# 쓰기 (인증 필요)
# ------------------------------

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_recipe(
    request: Request,
    user: CurrentUser = Depends(write_rate_limit),
    svc: RecipeWriteService = Depends(get_write_service),
) -> Dict[str, Any]:
    body = await _json_body(request)
    try:
        recipe = await svc.create(body, author_id=user.id)
    except RecipeValidationError as e:
        raise _validation_failed(e)
    except Exception:
        log.exception("Error creating recipe")
        raise HTTPException(status_code=500, detail="Failed to create recipe")
    return {"data": RecipeOut(**recipe).model_dump()}


@router.patch("/{slug}")
async def update_recipe(
    slug: str,
    request: Request,
    _: CurrentUser = Depends(require_admin),
    __: CurrentUser = Depends(write_rate_limit),
    svc: RecipeWriteService = Depends(get_write_service),
) -> Dict[str, Any]:
    body = await _json_body(request)
    try:
        recipe = await svc.update(slug, body)
    except RecipeValidationError as e:
        raise _validation_failed(e)
    except RecipeNotFoundError:
        raise HTTPException(status_code=404, detail="Recipe not found")
    except Exception:
        log.exception("Error updating recipe %s", slug)
        raise HTTPException(status_code=500, detail="Failed to update recipe")
    return {"data": RecipeOut(**recipe).model_dump()}


@router.delete("/{slug}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_recipe(
    slug: str,
    _: CurrentUser = Depends(require_admin),
    svc: RecipeWriteService = Depends(get_write_service),
) -> None:
    try:
        await svc.delete(slug)
    except RecipeNotFoundError:
        raise HTTPException(status_code=404, detail="Recipe not found")
    except Exception:
        log.exception("Error deleting recipe %s", slug)
        raise HTTPException(status_code=500, detail="Failed to delete recipe")
