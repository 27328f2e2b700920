import logging
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("crm_backend.ingestion.config")


class IngestionSettings(BaseSettings):
    """Settings for CSV customer import.

    Environment variables (examples):

    IMPORT_MAX_CSV_SIZE_MB=5
    """

    max_csv_size_mb: int = 5

    model_config = SettingsConfigDict(
        env_prefix="IMPORT_",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("max_csv_size_mb", mode="before")
    @classmethod
    def validate_size(cls, v):
        val = int(v)
        if val <= 0:
            raise ValueError("IMPORT_MAX_CSV_SIZE_MB must be > 0")
        return val


@lru_cache(maxsize=1)
def get_ingestion_settings() -> IngestionSettings:
    settings = IngestionSettings()
    logger.info("IngestionSettings loaded (max_csv_size_mb=%s)", settings.max_csv_size_mb)
    return settings


ingestion_settings = get_ingestion_settings()
