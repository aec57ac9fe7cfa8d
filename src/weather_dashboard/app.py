"""Wires settings, persistence and the provider into one injectable state container."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from .config import Settings
from .search import SearchCoordinator
from .state.favorites import FavoritesStore
from .state.forecast_cache import ForecastCache
from .state.keys import epoch_ms_now
from .state.preferences import PreferenceStore
from .state.recent import RecentSearches
from .state.weather_cache import WeatherCache
from .storage.base import KeyValueStore
from .storage.json_file import JsonFileKeyValueStore
from .sync import SyncCoordinator
from .weather.base import WeatherProvider
from .weather.openweather import OpenWeatherProvider


@dataclass(slots=True)
class DashboardCore:
    preferences: PreferenceStore
    favorites: FavoritesStore
    recent: RecentSearches
    weather_cache: WeatherCache
    forecast_cache: ForecastCache
    search: SearchCoordinator
    sync: SyncCoordinator
    provider: WeatherProvider

    async def aclose(self) -> None:
        await self.search.aclose()
        await self.provider.aclose()


def build_core(
    settings: Settings,
    logger: logging.Logger,
    *,
    store: KeyValueStore | None = None,
    provider: WeatherProvider | None = None,
    clock: Callable[[], int] = epoch_ms_now,
) -> DashboardCore:
    """Create every component; must be called from inside a running event loop.

    Raises StorageError when the persisted state file cannot be read.
    """
    store = store if store is not None else JsonFileKeyValueStore(settings.state_file)
    preferences = PreferenceStore(store, logger)
    favorites = FavoritesStore(store, logger)
    recent = RecentSearches(store, logger, max_items=settings.recent_searches_max)
    provider = provider if provider is not None else OpenWeatherProvider(settings, logger)

    weather_cache = WeatherCache(
        provider,
        logger,
        clock=clock,
        default_threshold_ms=settings.staleness_threshold_ms,
    )
    forecast_cache = ForecastCache(provider, logger, clock=clock)
    search = SearchCoordinator(
        provider,
        weather_cache,
        preferences,
        recent,
        logger,
        debounce_seconds=settings.search_debounce_ms / 1000.0,
        min_length=settings.search_min_length,
        limit=settings.search_limit,
    )
    sync = SyncCoordinator(
        weather_cache,
        forecast_cache,
        favorites,
        preferences,
        logger,
        staleness_threshold_ms=settings.staleness_threshold_ms,
    )
    return DashboardCore(
        preferences=preferences,
        favorites=favorites,
        recent=recent,
        weather_cache=weather_cache,
        forecast_cache=forecast_cache,
        search=search,
        sync=sync,
        provider=provider,
    )
