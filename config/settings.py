from functools import lru_cache
from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from chainstats.constants import CACHE_KEY, REFRESH_INTERVAL, SNAPSHOT_WINDOW

class Settings(BaseSettings):
    """Configuration for the chainstats service."""

    # Database Configuration
    DATABASE_URL: str = Field(
        default="postgresql+psycopg2://explorer@localhost:5432/explorer",
        description="SQLAlchemy URL of the primary block store"
    )
    DB_POOL_PRE_PING: bool = Field(
        default=True,
        description="Check pooled connections before use"
    )

    # Redis Configuration
    REDIS_URL: str = Field(
        default="redis://localhost:6379/0",
        description="Redis URL used for the snapshot cache and broadcasts"
    )
    CACHE_KEY: str = Field(
        default=CACHE_KEY,
        description="Key holding the cached snapshot"
    )
    CACHE_TTL: Optional[int] = Field(
        default=None,
        gt=0,
        description="Optional expiry of the cached snapshot in seconds"
    )

    # Refresh Configuration
    REFRESH_LIMIT: int = Field(
        default=SNAPSHOT_WINDOW,
        gt=0,
        le=SNAPSHOT_WINDOW,
        description="Number of recent blocks loaded per refresh"
    )
    REFRESH_INTERVAL: float = Field(
        default=REFRESH_INTERVAL,
        gt=0,
        description="Seconds between scheduled refresh cycles"
    )

    # API Configuration
    API_HOST: str = Field(
        default="0.0.0.0",
        description="API host"
    )
    API_PORT: int = Field(
        default=8000,
        description="API port"
    )

    LOG_LEVEL: str = Field(
        default="INFO",
        description="Root log level"
    )

    model_config = SettingsConfigDict(
        env_prefix="CHAINSTATS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

@lru_cache()
def get_settings() -> Settings:
    """Return the process-wide settings, loaded once from the environment."""
    return Settings()
