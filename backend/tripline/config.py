"""Typed settings configuration - single source of truth."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Itinerary server (generation + edit services)
    itinerary_server_url: str = "http://localhost:5500"
    max_results: int = 20

    # Timeouts (seconds)
    health_check_timeout_s: float = 10.0
    edit_health_check_timeout_s: float = 5.0
    generation_timeout_s: float = 290.0
    connect_timeout_s: float = 30.0
    edit_timeout_s: float = 120.0

    # Timezone inference (destination substring -> IANA zone, checked in order)
    default_timezone: str = "America/New_York"
    timezone_table: dict[str, str] = {
        "los angeles": "America/Los_Angeles",
        "chicago": "America/Chicago",
    }

    # Document store
    database_url: str | None = None

    # Cache
    redis_url: str | None = None

    # Rate limiting (requests per minute)
    generation_runs_per_min: int = 5
    edit_ops_per_min: int = 30
    crud_ops_per_min: int = 60


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
