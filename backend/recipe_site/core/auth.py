# recipe_site/core/auth.py
# Clerk 세션 토큰(JWT, RS256) 검증 → CurrentUser
# - Authorization: Bearer <session token>
# - 서명 키는 JWKS에서 kid로 조회 (PyJWKClient가 캐시)

from __future__ import annotations
import logging
from functools import lru_cache
from typing import Any, Dict, Literal, Optional

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from recipe_site.core.config import settings
from recipe_site.core.errors import AuthenticationError, PermissionDeniedError

log = logging.getLogger(__name__)

auth_scheme = HTTPBearer(auto_error=False)


class CurrentUser(BaseModel):
    id: str
    email: Optional[str] = None
    role: Literal["USER", "ADMIN"] = "USER"

    @property
    def is_admin(self) -> bool:
        return self.role == "ADMIN"


@lru_cache(maxsize=1)
def _jwks_client(url: str) -> jwt.PyJWKClient:
    return jwt.PyJWKClient(url)


def _role_from_claims(claims: Dict[str, Any]) -> str:
    # 세션 토큰 커스텀 클레임: {"metadata": {"role": "admin"}} 또는 public_metadata
    for k in ("metadata", "public_metadata", "publicMetadata"):
        meta = claims.get(k)
        if isinstance(meta, dict) and meta.get("role"):
            return "ADMIN" if str(meta["role"]).upper() == "ADMIN" else "USER"
    return "USER"


def verify_session_token(token: str) -> CurrentUser:
    """토큰 검증 실패 시 AuthenticationError"""
    if not settings.ENABLE_CLERK or not settings.CLERK_JWKS_URL:
        raise AuthenticationError()

    try:
        key = _jwks_client(settings.CLERK_JWKS_URL).get_signing_key_from_jwt(token)
        claims = jwt.decode(
            token,
            key.key,
            algorithms=["RS256"],
            issuer=settings.CLERK_ISSUER or None,
            options={"verify_iss": bool(settings.CLERK_ISSUER), "require": ["exp", "sub"]},
        )
    except jwt.PyJWTError as e:
        log.info("session token rejected: %s", e)
        raise AuthenticationError("Invalid session") from e

    # azp(authorized party) 제한이 설정돼 있으면 확인
    azp = claims.get("azp")
    if settings.CLERK_AUTHORIZED_PARTIES and azp and azp not in settings.CLERK_AUTHORIZED_PARTIES:
        raise AuthenticationError("Invalid session")

    return CurrentUser(
        id=str(claims["sub"]),
        email=claims.get("email"),
        role=_role_from_claims(claims),
    )


async def get_current_user(
    cred: Optional[HTTPAuthorizationCredentials] = Depends(auth_scheme),
) -> CurrentUser:
    if cred is None or cred.scheme.lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    try:
        return verify_session_token(cred.credentials)
    except AuthenticationError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))


def ensure_admin(user: CurrentUser) -> CurrentUser:
    if not user.is_admin:
        raise PermissionDeniedError()
    return user


async def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    try:
        return ensure_admin(user)
    except PermissionDeniedError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
