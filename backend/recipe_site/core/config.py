# 환경변수 로딩 (.env)
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    MONGO_URI: str = "mongodb://localhost:27017"  # 필요 시 prod/staging로 분리
    MONGO_DB: str = "recipes"

    # 캐시(redis): 장애 시에도 서비스는 계속 동작
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_KEY_PREFIX: str = "recipe-website:"
    CACHE_ENABLED: bool = True

    # Clerk 세션 토큰 검증
    ENABLE_CLERK: bool = False
    CLERK_JWKS_URL: Optional[str] = None
    CLERK_ISSUER: Optional[str] = None
    CLERK_AUTHORIZED_PARTIES: List[str] = Field(default_factory=list)

    FRONTEND_CORS_ORIGINS: List[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://127.0.0.1:3000"],
    )

    LOG_LEVEL: str = "INFO"
    WRITE_RATE_LIMIT: int = 30      # 사용자당 시간당 쓰기 요청 수
    SLOW_QUERY_MS: float = 1000.0


settings = Settings()
