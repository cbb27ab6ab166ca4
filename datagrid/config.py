"""
Centralized configuration using pydantic-settings.

All settings are read from environment variables or .env file.
Timings are in milliseconds to match the persisted `updatedAt` stamps.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables.

    Priority: environment variables > .env file > defaults
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore unknown env vars
    )

    # --- Document store ---
    DB_URL: str = Field(
        default="sqlite:///./datagrid.db",
        description="Database URL for the document-store backend"
    )

    # --- Flat key/value store ---
    REDIS_URL: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL for the flat-kv backend"
    )
    STORAGE_NAMESPACE: str = Field(
        default="datagrid",
        description="Prefix for flat-kv keys (<namespace>-<key>)"
    )

    # --- Persistence timings ---
    SAVE_DEBOUNCE_MS: int = Field(
        default=100,
        ge=0,
        description="Quiet period before an autosave is written"
    )
    SETTLE_DELAY_MS: int = Field(
        default=100,
        ge=0,
        description="Delay between load completion and autosave activation"
    )

    # --- Grid defaults ---
    DEFAULT_PAGE_SIZE: int = Field(
        default=10,
        gt=0,
        description="Page size on mount and after reset"
    )

    # --- Debug / Logging ---
    DEBUG: bool = Field(
        default=False,
        description="Echo SQL statements"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )
    LOG_DIR: Optional[str] = Field(
        default=None,
        description="Directory for access/error log files (console only when unset)"
    )

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"LOG_LEVEL must be one of {allowed}")
        return v_upper


@lru_cache
def get_settings() -> Settings:
    """Return cached Settings instance (singleton pattern)."""
    return Settings()


# --- Singleton instance for easy import ---
settings = get_settings()


# --- Module-level exports ---

DATABASE_URL: str = settings.DB_URL
REDIS_URL: str = settings.REDIS_URL
STORAGE_NAMESPACE: str = settings.STORAGE_NAMESPACE

SAVE_DEBOUNCE_SECONDS: float = settings.SAVE_DEBOUNCE_MS / 1000
SETTLE_DELAY_SECONDS: float = settings.SETTLE_DELAY_MS / 1000
DEFAULT_PAGE_SIZE: int = settings.DEFAULT_PAGE_SIZE

DEBUG: bool = settings.DEBUG
LOG_LEVEL: str = settings.LOG_LEVEL
LOG_DIR: Optional[str] = settings.LOG_DIR
