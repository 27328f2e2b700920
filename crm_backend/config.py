from __future__ import annotations

import logging
from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Central configuration for the CRM backend.

    - Reads from .env (local) and the process environment.
    - Ignores extra env vars so adding new ones doesn't break startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Core app
    # -------------------------------------------------------------------------
    app_name: str = Field(default="CRM Backend", alias="APP_NAME")
    debug: bool = Field(default=False, alias="DEBUG")
    environment: str = Field(default="local", alias="ENVIRONMENT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # -------------------------------------------------------------------------
    # Database
    # -------------------------------------------------------------------------
    database_url: str = Field(default="sqlite:///./crm.db", alias="DATABASE_URL")

    # -------------------------------------------------------------------------
    # HTTP
    # -------------------------------------------------------------------------
    cors_origins_raw: Optional[str] = Field(default=None, alias="CORS_ORIGINS")

    @property
    def cors_origins(self) -> List[str]:
        """
        Returns a list of allowed origins from the comma-separated env string.
        Falls back to the local front-end dev servers.
        """
        if not self.cors_origins_raw:
            return ["http://localhost:5173", "http://127.0.0.1:5173"]
        return [
            origin.strip()
            for origin in self.cors_origins_raw.split(",")
            if origin.strip()
        ]

    # -------------------------------------------------------------------------
    # Cold leads + client activity
    # -------------------------------------------------------------------------
    claim_daily_limit: int = Field(default=10, ge=1, alias="CLAIM_DAILY_LIMIT")
    active_window_days: int = Field(default=3, ge=1, alias="ACTIVE_WINDOW_DAYS")
    inactive_window_days: int = Field(default=30, ge=1, alias="INACTIVE_WINDOW_DAYS")

    max_page_size: int = Field(default=500, ge=1, alias="MAX_PAGE_SIZE")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader so config is evaluated once per process.
    """
    settings = Settings()
    logger.info(
        "Settings loaded (env=%s, debug=%s)",
        settings.environment,
        settings.debug,
    )
    return settings


# Singleton used everywhere else
settings: Settings = get_settings()
