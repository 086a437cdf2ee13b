# recipe_site/db/models/schemas.py
# Pydantic 모델 정의
# RecipeIn / RecipeUpdateIn: 쓰기 경로 입력 (엄격 검증)
# RecipeOut / Pagination / *Response: 프론트 응답 스키마 (camelCase)
from __future__ import annotations
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from recipe_site.models.taxonomy import (
    CATEGORIES, CUISINES, DIFFICULTIES,
    TITLE_MIN, TITLE_MAX, DESCRIPTION_MIN, DESCRIPTION_MAX,
    MAX_INGREDIENTS, MAX_INSTRUCTIONS, MAX_TAGS, MAX_TAG_LEN, MAX_IMAGES,
    MAX_PREP_MINUTES, MAX_COOK_MINUTES, MIN_SERVINGS, MAX_SERVINGS,
)


# ------------------------------
# 입력 조각
# ------------------------------

class IngredientIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=100)
    amount: float = Field(ge=0)
    unit: str = Field(min_length=1, max_length=20)
    notes: Optional[str] = Field(default=None, max_length=200)
    optional: bool = False


class InstructionIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    step: int = Field(ge=1)
    description: str = Field(min_length=1, max_length=500)
    duration: Optional[int] = Field(default=None, ge=0)
    temperature: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = Field(default=None, max_length=200)


class ImageIn(BaseModel):
    url: str = Field(pattern=r"^https?://\S+$")
    alt: str = Field(min_length=1, max_length=200)
    caption: Optional[str] = Field(default=None, max_length=300)
    isPrimary: bool = False


class NutritionIn(BaseModel):
    calories: Optional[float] = Field(default=None, ge=0)
    protein: Optional[float] = Field(default=None, ge=0)
    carbs: Optional[float] = Field(default=None, ge=0)
    fat: Optional[float] = Field(default=None, ge=0)
    fiber: Optional[float] = Field(default=None, ge=0)
    sugar: Optional[float] = Field(default=None, ge=0)
    sodium: Optional[float] = Field(default=None, ge=0)


def _check_choice(value: Optional[str], choices: tuple, label: str) -> Optional[str]:
    if value is not None and value not in choices:
        raise ValueError(f"Invalid {label}")
    return value


def _check_tags(tags: Optional[List[str]]) -> Optional[List[str]]:
    if tags is None:
        return tags
    for t in tags:
        if not t or not t.strip():
            raise ValueError("Tag name is required")
        if len(t) > MAX_TAG_LEN:
            raise ValueError(f"Tag name must be less than {MAX_TAG_LEN} characters")
    return tags


def _check_images(images: Optional[List[ImageIn]]) -> None:
    # 이미지가 있으면 대표 이미지는 정확히 1개
    if not images:
        return
    primary = sum(1 for img in images if img.isPrimary)
    if primary == 0:
        raise ValueError("At least one image must be marked as primary")
    if primary > 1:
        raise ValueError("Only one image can be marked as primary")


def _check_steps(instructions: Optional[List[InstructionIn]]) -> None:
    # 조리 단계 번호는 1부터 연속
    if not instructions or len(instructions) < 2:
        return
    steps = sorted(i.step for i in instructions)
    if steps != list(range(1, len(steps) + 1)):
        raise ValueError("Instruction steps must be sequential starting from 1")


# ------------------------------
# 레시피 입력
# ------------------------------

class RecipeIn(BaseModel):
    # 프론트는 camelCase로 보냄. totalTime은 서버가 prep+cook으로 계산하므로 받지 않음
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    title: str = Field(min_length=TITLE_MIN, max_length=TITLE_MAX)
    description: str = Field(min_length=DESCRIPTION_MIN, max_length=DESCRIPTION_MAX)
    ingredients: List[IngredientIn] = Field(min_length=1, max_length=MAX_INGREDIENTS)
    instructions: List[InstructionIn] = Field(min_length=1, max_length=MAX_INSTRUCTIONS)
    prepTime: int = Field(ge=0, le=MAX_PREP_MINUTES)
    cookTime: int = Field(ge=0, le=MAX_COOK_MINUTES)
    servings: int = Field(ge=MIN_SERVINGS, le=MAX_SERVINGS)
    difficulty: str
    category: str
    cuisine: str
    tags: List[str] = Field(default_factory=list, max_length=MAX_TAGS)
    images: Optional[List[ImageIn]] = Field(default=None, max_length=MAX_IMAGES)
    nutrition: Optional[NutritionIn] = None
    notes: Optional[str] = Field(default=None, max_length=1000)
    source: Optional[str] = Field(default=None, max_length=200)
    featured: bool = False
    published: bool = False

    @field_validator("difficulty")
    @classmethod
    def _v_difficulty(cls, v):
        return _check_choice(v, DIFFICULTIES, "difficulty level")

    @field_validator("category")
    @classmethod
    def _v_category(cls, v):
        return _check_choice(v, CATEGORIES, "category")

    @field_validator("cuisine")
    @classmethod
    def _v_cuisine(cls, v):
        return _check_choice(v, CUISINES, "cuisine")

    @field_validator("tags")
    @classmethod
    def _v_tags(cls, v):
        return _check_tags(v)

    @model_validator(mode="after")
    def _v_cross_fields(self):
        _check_images(self.images)
        _check_steps(self.instructions)
        return self


class RecipeUpdateIn(BaseModel):
    # 부분 수정: 모든 필드 optional
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    title: Optional[str] = Field(default=None, min_length=TITLE_MIN, max_length=TITLE_MAX)
    description: Optional[str] = Field(default=None, min_length=DESCRIPTION_MIN, max_length=DESCRIPTION_MAX)
    ingredients: Optional[List[IngredientIn]] = Field(default=None, min_length=1, max_length=MAX_INGREDIENTS)
    instructions: Optional[List[InstructionIn]] = Field(default=None, min_length=1, max_length=MAX_INSTRUCTIONS)
    prepTime: Optional[int] = Field(default=None, ge=0, le=MAX_PREP_MINUTES)
    cookTime: Optional[int] = Field(default=None, ge=0, le=MAX_COOK_MINUTES)
    servings: Optional[int] = Field(default=None, ge=MIN_SERVINGS, le=MAX_SERVINGS)
    difficulty: Optional[str] = None
    category: Optional[str] = None
    cuisine: Optional[str] = None
    tags: Optional[List[str]] = Field(default=None, max_length=MAX_TAGS)
    images: Optional[List[ImageIn]] = Field(default=None, max_length=MAX_IMAGES)
    nutrition: Optional[NutritionIn] = None
    notes: Optional[str] = Field(default=None, max_length=1000)
    source: Optional[str] = Field(default=None, max_length=200)
    featured: Optional[bool] = None
    published: Optional[bool] = None

    @field_validator("difficulty")
    @classmethod
    def _v_difficulty(cls, v):
        return _check_choice(v, DIFFICULTIES, "difficulty level")

    @field_validator("category")
    @classmethod
    def _v_category(cls, v):
        return _check_choice(v, CATEGORIES, "category")

    @field_validator("cuisine")
    @classmethod
    def _v_cuisine(cls, v):
        return _check_choice(v, CUISINES, "cuisine")

    @field_validator("tags")
    @classmethod
    def _v_tags(cls, v):
        return _check_tags(v)

    @model_validator(mode="after")
    def _v_cross_fields(self):
        _check_images(self.images)
        _check_steps(self.instructions)
        return self


# ------------------------------
# 응답
# ------------------------------

class RecipeOut(BaseModel):
    # 프론트 필드명/타입과 일치
    id: str
    title: str
    slug: str
    description: str = ""
    prepTime: int = 0
    cookTime: int = 0
    totalTime: int = 0
    servings: int = 0
    difficulty: str = ""
    category: str = ""
    cuisine: str = ""
    ingredients: List[Dict[str, Any]] = Field(default_factory=list)
    instructions: List[Dict[str, Any]] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    images: List[Dict[str, Any]] = Field(default_factory=list)
    nutrition: Optional[Dict[str, Any]] = None
    notes: Optional[str] = None
    source: Optional[str] = None
    published: bool = False
    featured: bool = False
    rating: Optional[float] = None
    authorId: Optional[str] = None
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    totalPages: int
    hasNext: bool
    hasPrev: bool


class SearchEcho(BaseModel):
    q: str = ""
    category: str = ""
    difficulty: str = ""
    cuisine: str = ""
    maxTime: Optional[int] = None
    servings: Optional[int] = None
    tags: List[str] = Field(default_factory=list)
    sort: str = "newest"
    featured: bool = False


class RecipeListResponse(BaseModel):
    data: List[RecipeOut]
    pagination: Pagination


class RecipeSearchResponse(RecipeListResponse):
    query: SearchEcho


class TagOut(BaseModel):
    name: str
    slug: str
    count: int = 0


class CategoryOut(BaseModel):
    name: str
    count: int = 0
