"""Provider-agnostic weather interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from .models import ForecastSnapshot, SearchCandidate, UnitPreference, WeatherSnapshot


class WeatherProvider(ABC):
    """Port the caches and search coordinator call for upstream data.

    Implementations must raise only `FetchError`; values come back already
    denominated in the requested unit system.
    """

    @abstractmethod
    async def fetch_current(self, city: str, unit: UnitPreference) -> WeatherSnapshot:
        """Fetch current conditions for a city name."""

    @abstractmethod
    async def fetch_forecast(self, city: str, unit: UnitPreference) -> ForecastSnapshot:
        """Fetch the 3-hour step, 5-day forecast for a city name."""

    @abstractmethod
    async def search_cities(self, query: str, limit: int = 5) -> list[SearchCandidate]:
        """Look up city candidates matching free text."""

    @abstractmethod
    async def aclose(self) -> None:
        """Release provider resources."""
