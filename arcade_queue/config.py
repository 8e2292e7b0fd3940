"""
Application Configuration

Centralized configuration management using Pydantic settings.
Loads from environment variables with fallback to .env file.
"""
from typing import List, Optional
import re

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings
from functools import lru_cache

RESET_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Note: We use lru_cache on get_settings() so configuration is loaded once.
    Services take a Settings argument, so tests pass model_copy(update=...)
    variants directly instead of going through the cache.
    """

    # Database settings
    DATABASE_URL: str = "sqlite:///./arcade_queue.db"
    DATABASE_POOL_SIZE: int = 20
    DATABASE_MAX_OVERFLOW: int = 40

    # Gateway token verification
    SECRET_KEY: str = "dev-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # Redis for directory lookup caching
    REDIS_URL: str = "redis://localhost:6379/0"

    # Application settings
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Daily reset clock
    DAILY_RESET_TIME: str = "04:00"
    RESET_UPDATER: str = "auto-reset"
    SCHEDULER_ENABLED: bool = True

    # Arcade rules
    MAX_ALIASES_PER_ARCADE: int = Field(5, ge=1, le=20)
    RESET_CONFIRMATION_TEXT: str = "confirm reset all data"

    # Authorization
    # OWNER_IDS entries are qualified ids: "<platform>:<user id>"
    OWNER_IDS: List[str] = []
    ADMIN_ROLES: List[str] = ["admin", "owner"]
    ALLOW_LIST_ENABLED: bool = False
    ALLOW_LIST_REQUIRE_ADMIN: bool = True

    # Guild-style platforms expose a roles list with numeric markers
    GUILD_MARKERS: List[str] = ["guild_", "group_"]
    GUILD_OWNER_ROLE: str = "4"
    GUILD_ADMIN_ROLE: str = "2"

    # Platform directory (member / group metadata lookups)
    DIRECTORY_URL: Optional[str] = None
    DIRECTORY_TIMEOUT: float = 5.0
    DIRECTORY_CACHE_TTL: int = 60

    class Config:
        env_file = ".env"
        case_sensitive = True

    @field_validator("DAILY_RESET_TIME")
    @classmethod
    def validate_reset_time(cls, value: str) -> str:
        if not RESET_TIME_PATTERN.match(value):
            raise ValueError("DAILY_RESET_TIME must use HH:mm, e.g. 04:00")
        return value

    @property
    def reset_hour_minute(self) -> tuple[int, int]:
        hour, minute = self.DAILY_RESET_TIME.split(":")
        return int(hour), int(minute)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache ensures we only instantiate settings once.
    This is efficient but means settings are immutable at runtime.
    """
    return Settings()
