"""
SmartSafety - Configuration Management
Centralized configuration using pydantic-settings.
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_env: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # Incident repository
    database_url: str = "sqlite:///./smartsafety.db"
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_timeout: int = 30

    # Object store (photos)
    storage_url: Optional[str] = None
    storage_api_key: Optional[str] = None
    storage_bucket: str = "incidents"
    storage_timeout_seconds: float = 30.0

    # Proximity / map
    proximity_radius_km: float = 1.0
    map_zoom: int = 15

    # Change feed
    stale_event_guard: bool = False

    # API Settings
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def storage_configured(self) -> bool:
        return bool(self.storage_url and self.storage_api_key)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
