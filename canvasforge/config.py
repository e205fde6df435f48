import os
from functools import lru_cache

from pydantic_settings import BaseSettings

# Hosting platforms set DATABASE_URL without a prefix; map it to the
# CANVASFORGE_-prefixed name that pydantic-settings expects.
if "DATABASE_URL" in os.environ and "CANVASFORGE_DATABASE_URL" not in os.environ:
    _url = os.environ["DATABASE_URL"]
    if _url.startswith("postgres://"):
        _url = _url.replace("postgres://", "postgresql+asyncpg://", 1)
    elif _url.startswith("postgresql://"):
        _url = _url.replace("postgresql://", "postgresql+asyncpg://", 1)
    os.environ["CANVASFORGE_DATABASE_URL"] = _url


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite+aiosqlite:///./canvasforge.db"
    JWT_SECRET: str = "dev-secret-change-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_MINUTES: int = 1440
    # "passthrough" trusts the X-Owner-Key header, "token" requires a signed bearer token
    AUTH_MODE: str = "passthrough"
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]
    LOG_LEVEL: str = "INFO"
    GENERATOR_MODEL: str = "gpt-4o-mini"
    GENERATOR_API_KEY: str | None = None
    GENERATOR_BASE_URL: str | None = None
    GENERATOR_TIMEOUT: float = 120.0
    VERSION_RETRY_ATTEMPTS: int = 10
    # seconds; grows linearly with the attempt number, with jitter
    VERSION_RETRY_BACKOFF: float = 0.02
    PUBLISHED_PAGE_SIZE: int = 50
    PUBLISHED_MAX_PAGE_SIZE: int = 100

    model_config = {"env_prefix": "CANVASFORGE_"}


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
