# recipe_site/services/utils.py
# 문자열/숫자 파싱 유틸
# - slug 생성 (제목 → URL용 키)
# - 쿼리스트링 숫자 관용 파싱 (잘못된 값은 기본값으로 수렴)

from __future__ import annotations
import re
import secrets
import unicodedata
from typing import Iterable, List, Optional

_NON_ALNUM = r"[^a-z0-9]+"


def _nfkd(s: str) -> str:
    return unicodedata.normalize("NFKD", s or "")


def slugify(text: str) -> str:
    # 1) NFKD 분해 → 악센트 제거(ascii) → 소문자
    # 2) 영숫자 외 문자는 하이픈으로
    # 3) 앞뒤 하이픈 제거
    s = _nfkd((text or "").strip()).encode("ascii", "ignore").decode("ascii").lower()
    s = re.sub(_NON_ALNUM, "-", s)
    return s.strip("-")


def unique_slug(base: str) -> str:
    # 충돌 시 짧은 랜덤 접미사
    return f"{base}-{secrets.token_hex(3)}"


def parse_int(value: Optional[str], default: int = 0) -> int:
    """
    parseInt 스타일 관용 파싱.
    - None/빈 문자열/숫자 아님 → default
    - "12abc" 처럼 앞자리가 숫자면 그 숫자 사용
    """
    if value is None:
        return default
    m = re.match(r"\s*([+-]?\d+)", str(value))
    if not m:
        return default
    return int(m.group(1))


def split_csv(value: Optional[str]) -> List[str]:
    # "a,,b, c" → ["a", "b", "c"]
    return [p.strip() for p in (value or "").split(",") if p.strip()]


def join_csv(values: Iterable[str]) -> str:
    return ",".join(str(v) for v in values if v)
