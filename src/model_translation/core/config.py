from functools import lru_cache
from typing import Literal
import warnings

from pydantic import ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="TRANSLATION_",
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    PROJECT_NAME: str = "Model Translation"
    DEBUG: bool = False

    ENVIRONMENT: Literal["local", "staging", "production"] = "local"

    # Default driver resolved by the manager when none is given explicitly.
    # Set to an empty string to force callers to name a driver.
    DRIVER: str | None = "json"

    @field_validator("DRIVER", mode="before")
    @classmethod
    def empty_driver_is_unset(cls, v: str | None) -> str | None:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    # JSON driver
    JSON_DISK: Literal["local", "s3", "memory"] = "local"
    JSON_BASE_PATH: str = "storage/translations"
    # Answer reverse lookups from the language-model map (indexed mode).
    # When disabled, every lookup scans the stored blobs instead.
    JSON_CACHE: bool = True

    # Relational driver
    SQL_TABLE: str = "translations"
    DATABASE_URI: str = "sqlite:///translations.db"

    # Index synchronization queue
    QUEUE: Literal["sync", "async", "deferred", "null"] = "sync"
    QUEUE_MAX_SIZE: int = 10000
    SYNC_MAX_ATTEMPTS: int = 3

    @field_validator("QUEUE", mode="after")
    @classmethod
    def warn_on_null_queue(cls, v: str, info: ValidationInfo) -> str:
        """Warn when the language-model map would never be updated."""
        json_cache = info.data.get("JSON_CACHE", True) if info.data else True
        if v == "null" and json_cache:
            warnings.warn(
                "QUEUE is 'null' while JSON_CACHE is enabled. "
                "The language-model map will not follow writes; "
                "rebuild it manually or disable JSON_CACHE.",
                UserWarning,
                stacklevel=2,
            )
        return v

    S3_ENDPOINT_URL: str | None = None
    S3_ACCESS_KEY: str = "any"
    S3_SECRET_KEY: str = "any"
    S3_REGION: str = "us-east-1"
    S3_BUCKET_NAME: str = "translations"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
