"""Weather provider port, normalized models and the OpenWeather adapter."""

from .base import WeatherProvider
from .models import (
    ForecastEntry,
    ForecastSnapshot,
    SearchCandidate,
    UnitPreference,
    WeatherSnapshot,
)
from .openweather import OpenWeatherProvider

__all__ = [
    "ForecastEntry",
    "ForecastSnapshot",
    "OpenWeatherProvider",
    "SearchCandidate",
    "UnitPreference",
    "WeatherProvider",
    "WeatherSnapshot",
]
