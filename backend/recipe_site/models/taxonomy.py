# recipe_site/models/taxonomy.py
# 레시피 분류 상수 + 태그 정규화
from typing import Dict, List, Tuple
import re

from recipe_site.services.utils import slugify

# === 표준 분류 =================================================================
CATEGORIES = (
    "appetizers", "main-course", "desserts", "beverages",
    "snacks", "salads", "soups", "sides",
)
CUISINES = (
    "italian", "mexican", "indian", "chinese", "american",
    "french", "japanese", "mediterranean", "thai", "other",
)
DIFFICULTIES = ("easy", "medium", "hard")

# 필터에서 "제약 없음"을 뜻하는 값
ALL = "all"

# === 검색 기본값 ===============================================================
DEFAULT_PAGE_SIZE = 12
MAX_PAGE_SIZE = 100
MAX_PAGE = 100_000    # skip이 int64 안에 머물도록
DEFAULT_SORT = "newest"

# sort 키 → (필드, 방향). 1=asc, -1=desc
SORT_FIELDS: Dict[str, Tuple[str, int]] = {
    "newest": ("created_at", -1),
    "oldest": ("created_at", 1),
    "title": ("title", 1),
    "rating": ("rating", -1),
    "time": ("total_time", 1),
    "difficulty": ("difficulty", 1),
}

# === 입력 제한(쓰기 경로) =======================================================
TITLE_MIN, TITLE_MAX = 3, 100
DESCRIPTION_MIN, DESCRIPTION_MAX = 10, 500
MAX_INGREDIENTS = 50
MAX_INSTRUCTIONS = 20
MAX_TAGS = 10
MAX_TAG_LEN = 50
MAX_IMAGES = 5
MAX_PREP_MINUTES = 1440   # 24시간
MAX_COOK_MINUTES = 1440
MIN_SERVINGS, MAX_SERVINGS = 1, 50
MAX_TOTAL_MINUTES = MAX_PREP_MINUTES + MAX_COOK_MINUTES

_WS_RE = re.compile(r"\s+")


def normalize_tag(name: str) -> str:
    """태그 표시명 정리: 앞뒤 공백 제거 + 내부 공백 1칸"""
    return _WS_RE.sub(" ", (name or "").strip())


def normalize_tags(names: List[str]) -> List[str]:
    # 대소문자 무시 중복 제거, 처음 나온 표기 유지
    seen, out = set(), []
    for n in names or []:
        t = normalize_tag(n)
        if not t or t.lower() in seen:
            continue
        seen.add(t.lower())
        out.append(t)
    return out


def tag_slug(name: str) -> str:
    return slugify(normalize_tag(name)) or "tag"
