from __future__ import annotations
from functools import lru_cache
from typing import List
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── App ──────────────────────────────────────────────────────────────────
    APP_NAME: str = "Agri Census Sync"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "production"
    PORT: int = 5000

    # ── CORS ─────────────────────────────────────────────────────────────────
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # ── Database ─────────────────────────────────────────────────────────────
    DB_USER: str  # required, no default
    DB_PASSWORD: str  # required, no default
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_NAME: str = "agri_census"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    # ── Outsource reporting API ──────────────────────────────────────────────
    OUTSOURCE_API_BASE_URL: str  # required, no default
    API_USERNAME: str = ""
    API_PASSWORD: str = ""
    ACCESS_TOKEN: str = ""           # optional pre-issued bearer token

    # ── Token lifecycle (seconds) ────────────────────────────────────────────
    TOKEN_REFRESH_BUFFER_SECONDS: int = 60
    TOKEN_DEFAULT_TTL_SECONDS: int = 3600

    # ── HTTP client ──────────────────────────────────────────────────────────
    HTTP_TIMEOUT: float = 30.0
    RATE_LIMIT_MAX_RETRIES: int = 3
    RATE_LIMIT_DEFAULT_RETRY_AFTER: int = 60

    # ── Pagination ───────────────────────────────────────────────────────────
    PAGE_SIZE: int = 500
    MAX_PAGES: int = 200             # hard stop for open-ended page loops

    # ── Report windows ───────────────────────────────────────────────────────
    CROP_START_YEAR: int = 2023
    CROP_END_YEAR: int = 2025
    NEWS_FROM_DATE: str = "2010-01-01"
    NEWS_TO_DATE: str = "2030-12-31"
    PRICE_FROM_DATE: str = "2020-01-01"
    PRICE_TO_DATE: str = "2030-12-31"

    # ── Scheduler ────────────────────────────────────────────────────────────
    SCHEDULER_ENABLED: bool = True
    SYNC_INTERVAL_MINUTES: int = 3
    SCHEDULER_TIMEZONE: str = "Asia/Bangkok"

    @property
    def DATABASE_URL(self) -> str:
        from urllib.parse import quote_plus
        return (
            f"postgresql+asyncpg://{quote_plus(self.DB_USER)}:{quote_plus(self.DB_PASSWORD)}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )

    @property
    def CROP_YEARS(self) -> List[int]:
        return list(range(self.CROP_START_YEAR, self.CROP_END_YEAR + 1))

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_env(cls, v: str) -> str:
        allowed = {"development", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"ENVIRONMENT must be one of {allowed}")
        return v

    @field_validator("OUTSOURCE_API_BASE_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @model_validator(mode="after")
    def validate_crop_years(self) -> "Settings":
        if self.CROP_START_YEAR > self.CROP_END_YEAR:
            raise ValueError("CROP_START_YEAR must not be after CROP_END_YEAR")
        return self

    model_config = {"env_file": ".env", "extra": "ignore"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
