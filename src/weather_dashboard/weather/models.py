"""Typed models for normalized weather snapshots and search candidates."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class UnitPreference(str, Enum):
    """Unit system requested from the provider; values are its query tokens."""

    METRIC = "metric"
    IMPERIAL = "imperial"

    def flipped(self) -> UnitPreference:
        if self is UnitPreference.METRIC:
            return UnitPreference.IMPERIAL
        return UnitPreference.METRIC


class WeatherSnapshot(BaseModel):
    """Current conditions for one city, replaced wholesale on every fetch."""

    city_key: str
    unit: UnitPreference
    temperature: float
    feels_like: float | None = None
    temp_min: float | None = None
    temp_max: float | None = None
    humidity: float | None = None
    pressure: float | None = None
    wind_speed: float | None = None
    wind_dir_deg: float | None = None
    visibility: float | None = None
    cloudiness: float | None = None
    condition_main: str | None = None
    condition_description: str | None = None
    condition_icon: str | None = None
    sunrise: datetime | None = None
    sunset: datetime | None = None
    country_code: str | None = None
    fetched_at_ms: int = 0


class ForecastEntry(BaseModel):
    """One 3-hour forecast slot."""

    epoch_ms: int
    temperature: float
    temp_min: float | None = None
    temp_max: float | None = None
    feels_like: float | None = None
    humidity: float | None = None
    wind_speed: float | None = None
    condition_main: str | None = None
    condition_icon: str | None = None
    precipitation_mm: float | None = None


class ForecastSnapshot(BaseModel):
    """Chronologically ordered 5-day forecast for one city."""

    city_key: str
    unit: UnitPreference
    country_code: str | None = None
    entries: list[ForecastEntry] = Field(default_factory=list)
    fetched_at_ms: int = 0


class SearchCandidate(BaseModel):
    """Geocoding match offered to the user while typing a city query."""

    name: str
    state: str | None = None
    country_code: str | None = None
    lat: float
    lon: float

    def label(self) -> str:
        parts = [self.name]
        if self.state:
            parts.append(self.state)
        if self.country_code:
            parts.append(self.country_code)
        return ", ".join(parts)
