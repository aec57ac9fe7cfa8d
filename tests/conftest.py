"""Shared fakes for cache, search and sync tests."""

from __future__ import annotations

import asyncio
import logging

import pytest

from weather_dashboard.exceptions import FetchError
from weather_dashboard.storage.memory import MemoryKeyValueStore
from weather_dashboard.weather.base import WeatherProvider
from weather_dashboard.weather.models import (
    ForecastEntry,
    ForecastSnapshot,
    SearchCandidate,
    UnitPreference,
    WeatherSnapshot,
)

TEMPERATURES = {UnitPreference.METRIC: 20.0, UnitPreference.IMPERIAL: 68.0}


class FakeClock:
    def __init__(self, now: int = 1_700_000_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeProvider(WeatherProvider):
    """Records every call; responses can be failed or held open per city/query."""

    def __init__(self) -> None:
        self.current_calls: list[tuple[str, UnitPreference]] = []
        self.forecast_calls: list[tuple[str, UnitPreference]] = []
        self.search_calls: list[str] = []
        self.current_errors: dict[str, FetchError] = {}
        self.forecast_errors: dict[str, FetchError] = {}
        self.search_errors: dict[str, FetchError] = {}
        self.search_results: dict[str, list[SearchCandidate]] = {}
        self.current_gates: dict[tuple[str, UnitPreference], asyncio.Event] = {}
        self.forecast_gates: dict[tuple[str, UnitPreference], asyncio.Event] = {}
        self.search_gates: dict[str, asyncio.Event] = {}
        self.closed = False

    @staticmethod
    def canonical(city: str) -> str:
        return city.split(",")[0].strip().title()

    @staticmethod
    def country(city: str) -> str:
        _, _, code = city.partition(",")
        return code.strip().upper() or "FR"

    async def fetch_current(self, city: str, unit: UnitPreference) -> WeatherSnapshot:
        self.current_calls.append((city, unit))
        gate = self.current_gates.get((city, unit))
        if gate is not None:
            await gate.wait()
        await asyncio.sleep(0)
        if city in self.current_errors:
            raise self.current_errors[city]
        return WeatherSnapshot(
            city_key=self.canonical(city),
            unit=unit,
            temperature=TEMPERATURES[unit],
            humidity=55,
            wind_speed=3.5,
            condition_main="Clouds",
            country_code=self.country(city),
        )

    async def fetch_forecast(self, city: str, unit: UnitPreference) -> ForecastSnapshot:
        self.forecast_calls.append((city, unit))
        gate = self.forecast_gates.get((city, unit))
        if gate is not None:
            await gate.wait()
        await asyncio.sleep(0)
        if city in self.forecast_errors:
            raise self.forecast_errors[city]
        start = 1_700_000_000_000
        entries = [
            ForecastEntry(
                epoch_ms=start + index * 3 * 3600 * 1000,
                temperature=TEMPERATURES[unit] + index,
                condition_main="Rain" if index % 2 else "Clear",
            )
            for index in range(40)
        ]
        return ForecastSnapshot(
            city_key=self.canonical(city),
            unit=unit,
            country_code=self.country(city),
            entries=entries,
        )

    async def search_cities(self, query: str, limit: int = 5) -> list[SearchCandidate]:
        self.search_calls.append(query)
        gate = self.search_gates.get(query)
        if gate is not None:
            await gate.wait()
        await asyncio.sleep(0)
        if query in self.search_errors:
            raise self.search_errors[query]
        return self.search_results.get(
            query,
            [SearchCandidate(name=query.title(), country_code="GB", lat=51.5, lon=-0.12)],
        )[:limit]

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("test_weather_dashboard")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()
