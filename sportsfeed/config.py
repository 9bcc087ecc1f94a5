"""
Application configuration using Pydantic settings.

Usage:
    from sportsfeed.config import get_settings
    settings = get_settings()

For fixed values (sports list, upstream host), see sportsfeed.constants.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from sportsfeed.constants import DEFAULT_SPORTS, UPSTREAM_BASE_URL


class Settings(BaseSettings):
    """
    Unified engine settings loaded from environment variables and .env file.

    Required for production:
        - API_KEY (RapidAPI key for the sport highlights provider)
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App settings
    app_name: str = "Sports Feed Engine"
    debug: bool = Field(default=False)
    host: str = Field(default="0.0.0.0", validation_alias="HOST")
    port: int = Field(default=5000, validation_alias="PORT")

    # Upstream provider
    api_key: str = Field(default="", validation_alias="API_KEY")
    upstream_base_url: str = Field(default=UPSTREAM_BASE_URL, validation_alias="UPSTREAM_BASE_URL")
    upstream_timeout_seconds: float = Field(default=10.0, validation_alias="UPSTREAM_TIMEOUT_SECONDS")
    upstream_max_attempts: int = Field(default=3, validation_alias="UPSTREAM_MAX_ATTEMPTS")
    upstream_backoff_seconds: float = Field(default=1.0, validation_alias="UPSTREAM_BACKOFF_SECONDS")
    upstream_requests_per_hour: int = Field(default=3600, validation_alias="UPSTREAM_REQUESTS_PER_HOUR")

    # Refresh / cache policy
    update_interval_seconds: float = Field(default=60.0, validation_alias="UPDATE_INTERVAL_SECONDS")
    cache_ttl_seconds: float = Field(default=60.0, validation_alias="CACHE_TTL_SECONDS")
    max_limit: int = Field(default=100, validation_alias="MAX_LIMIT")
    days_range: int = Field(default=7, validation_alias="DAYS_RANGE")
    inactivity_timeout_seconds: float = Field(default=300.0, validation_alias="INACTIVITY_TIMEOUT_SECONDS")
    sweep_interval_seconds: float = Field(default=60.0, validation_alias="SWEEP_INTERVAL_SECONDS")

    # Known domains, comma separated
    sports: str = Field(default=",".join(DEFAULT_SPORTS), validation_alias="SPORTS")

    # Redis fan-out (optional)
    redis_url: Optional[str] = Field(default=None, validation_alias="REDIS_URL")
    redis_channel_prefix: str = Field(default="sportsfeed", validation_alias="REDIS_CHANNEL_PREFIX")

    # CORS
    cors_allowed_origins: str = Field(default="*", validation_alias="CORS_ALLOWED_ORIGINS")

    @field_validator(
        "update_interval_seconds",
        "cache_ttl_seconds",
        "inactivity_timeout_seconds",
        "sweep_interval_seconds",
        "upstream_timeout_seconds",
    )
    @classmethod
    def validate_positive_seconds(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("interval and timeout settings must be positive")
        return v

    @field_validator("max_limit", "days_range", "upstream_max_attempts", "upstream_requests_per_hour")
    @classmethod
    def validate_positive_count(cls, v: int) -> int:
        if v < 1:
            raise ValueError("count settings must be at least 1")
        return v

    @property
    def sport_list(self) -> List[str]:
        """Parse known sports from comma-separated string."""
        return [s.strip().lower() for s in self.sports.split(",") if s.strip()]

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_allowed_origins.split(",") if origin.strip()]

    def validate_production_config(self) -> List[str]:
        """Return advisory warnings for a production deployment."""
        warnings = []
        if not self.api_key:
            warnings.append("API_KEY is not set - upstream requests will be rejected")
        if self.cache_ttl_seconds > self.update_interval_seconds:
            warnings.append(
                "CACHE_TTL_SECONDS exceeds UPDATE_INTERVAL_SECONDS - "
                "some refresh ticks will be served from cache"
            )
        return warnings


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()


__all__ = ["Settings", "get_settings"]
