"""Typed settings loader for the weather dashboard."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import AnyUrl, Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigError


class Settings(BaseSettings):
    """Application settings loaded from environment variables and `.env`."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    openweather_api_key: str = Field(alias="OPENWEATHER_API_KEY", repr=False)
    openweather_base_url: AnyUrl = Field(
        default=AnyUrl("https://api.openweathermap.org/data/2.5"),
        alias="OPENWEATHER_BASE_URL",
    )
    openweather_geo_url: AnyUrl = Field(
        default=AnyUrl("https://api.openweathermap.org/geo/1.0"),
        alias="OPENWEATHER_GEO_URL",
    )
    weather_timeout_seconds: float = Field(default=10.0, alias="WEATHER_TIMEOUT_SECONDS")
    weather_max_retries: int = Field(default=1, alias="WEATHER_MAX_RETRIES")
    weather_retry_delay_seconds: float = Field(
        default=0.5,
        alias="WEATHER_RETRY_DELAY_SECONDS",
    )

    staleness_threshold_ms: int = Field(default=60_000, alias="STALENESS_THRESHOLD_MS")
    search_debounce_ms: int = Field(default=400, alias="SEARCH_DEBOUNCE_MS")
    search_min_length: int = Field(default=2, alias="SEARCH_MIN_LENGTH")
    search_limit: int = Field(default=5, alias="SEARCH_LIMIT")
    recent_searches_max: int = Field(default=5, alias="RECENT_SEARCHES_MAX")

    state_file: Path = Field(default=Path("./data/state.json"), alias="STATE_FILE")

    @model_validator(mode="after")
    def validate_ranges(self) -> Settings:
        """Reject values the sync and search policies cannot work with."""
        if not self.openweather_api_key.strip():
            raise ValueError("OPENWEATHER_API_KEY must not be empty.")
        if self.weather_timeout_seconds <= 0:
            raise ValueError("WEATHER_TIMEOUT_SECONDS must be > 0.")
        if self.weather_max_retries < 0:
            raise ValueError("WEATHER_MAX_RETRIES must be >= 0.")
        if self.weather_retry_delay_seconds < 0:
            raise ValueError("WEATHER_RETRY_DELAY_SECONDS must be >= 0.")
        if self.staleness_threshold_ms <= 0:
            raise ValueError("STALENESS_THRESHOLD_MS must be > 0.")
        if self.search_debounce_ms < 0:
            raise ValueError("SEARCH_DEBOUNCE_MS must be >= 0.")
        if self.search_min_length < 1:
            raise ValueError("SEARCH_MIN_LENGTH must be >= 1.")
        # The geocoding endpoint caps `limit` at 5.
        if not (1 <= self.search_limit <= 5):
            raise ValueError("SEARCH_LIMIT must be between 1 and 5.")
        if self.recent_searches_max <= 0:
            raise ValueError("RECENT_SEARCHES_MAX must be > 0.")
        return self

    def safe_summary(self) -> dict[str, Any]:
        """Return config summary safe for logging (no credentials)."""
        return {
            "base_url": str(self.openweather_base_url),
            "geo_url": str(self.openweather_geo_url),
            "timeout_seconds": self.weather_timeout_seconds,
            "max_retries": self.weather_max_retries,
            "staleness_threshold_ms": self.staleness_threshold_ms,
            "search_debounce_ms": self.search_debounce_ms,
            "search_min_length": self.search_min_length,
            "search_limit": self.search_limit,
            "state_file": str(self.state_file),
        }


def load_settings() -> Settings:
    """Load and validate settings, raising ConfigError on failure."""
    try:
        settings = Settings()
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Failed reading environment/.env: {exc}") from exc

    settings.state_file.parent.mkdir(parents=True, exist_ok=True)
    return settings
