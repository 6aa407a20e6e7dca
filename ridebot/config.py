"""Configuration management for the RidesWith query bot."""

from __future__ import annotations

import logging
from functools import lru_cache
from zoneinfo import ZoneInfo

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Language understanding (OpenAI-compatible endpoint)
    groq_api_key: str = Field(default="", description="Groq API key")
    groq_base_url: str = Field(
        default="https://api.groq.com/openai/v1",
        description="OpenAI-compatible base URL for query parsing",
    )
    groq_model: str = Field(
        default="llama-3.3-70b-versatile", description="Model used for query parsing"
    )

    # RidesWith
    rideswith_api_url: str = Field(
        default="https://rideswith.com/api", description="RidesWith API base URL"
    )
    rideswith_base_url: str = Field(
        default="https://rideswith.com", description="Public site URL for ride links"
    )

    # Geocoding
    nominatim_base_url: str = Field(
        default="https://nominatim.openstreetmap.org",
        description="Nominatim geocoding base URL",
    )
    nominatim_user_agent: str = Field(
        default="RidesWithQueryBot/1.0 (contact@rideswith.com)",
        description="User-Agent required by the Nominatim usage policy",
    )

    # Search behaviour
    timezone: str = Field(default="Europe/Berlin", description="Server local timezone")
    default_radius_km: float = Field(default=50.0, description="Radius when none is known")
    relaxed_radius_km: float = Field(
        default=100.0, description="Radius for the location-only fallback search"
    )
    result_limit: int = Field(default=5, description="Maximum rides per answer")
    external_timeout_seconds: float = Field(
        default=10.0, description="Ceiling for each provider call"
    )

    # Server config
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:3001",
        description="Comma-separated CORS origins",
    )
    log_level: str = Field(default="INFO", description="Logging level")

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins into list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin]

    @property
    def tz(self) -> ZoneInfo:
        """Timezone used for date boundaries and display."""
        return ZoneInfo(self.timezone)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def configure_logging(settings: Settings | None = None) -> None:
    """Configure application logging."""
    if settings is None:
        settings = get_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    # Suppress verbose third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
