"""Cross-cutting refresh policies tying the stores and caches together."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from .exceptions import FetchError
from .state.favorites import FavoritesStore
from .state.forecast_cache import ForecastCache
from .state.preferences import PreferenceStore
from .state.weather_cache import DEFAULT_STALENESS_THRESHOLD_MS, RefreshReport, WeatherCache
from .weather.models import ForecastSnapshot, UnitPreference, WeatherSnapshot


@dataclass(slots=True)
class DetailView:
    """What the detail panel shows for the open city, plus any fetch errors."""

    city: str
    weather: WeatherSnapshot | None = None
    forecast: ForecastSnapshot | None = None
    errors: dict[str, str] = field(default_factory=dict)


class SyncCoordinator:
    """Translates UI intents into cache fetches.

    - start: fetch every favorite once.
    - change_unit: refetch every cached city and the open detail city.
    - manual_refresh: refetch only stale cached cities.
    - open_detail: make sure weather exists, always refetch the forecast.
    """

    def __init__(
        self,
        weather_cache: WeatherCache,
        forecast_cache: ForecastCache,
        favorites: FavoritesStore,
        preferences: PreferenceStore,
        logger: logging.Logger,
        *,
        staleness_threshold_ms: int = DEFAULT_STALENESS_THRESHOLD_MS,
    ) -> None:
        self.weather_cache = weather_cache
        self.forecast_cache = forecast_cache
        self.favorites = favorites
        self.preferences = preferences
        self.logger = logger
        self.staleness_threshold_ms = staleness_threshold_ms
        self._detail: DetailView | None = None

    @property
    def unit(self) -> UnitPreference:
        return self.preferences.unit

    @property
    def open_city(self) -> str | None:
        return self._detail.city if self._detail is not None else None

    @property
    def detail(self) -> DetailView | None:
        return self._detail

    async def start(self) -> RefreshReport:
        names = self.favorites.list()
        if not names:
            self.logger.info("No favorites persisted; nothing to fetch on startup")
            return RefreshReport()
        self.logger.info("Fetching %d favorite(s) on startup", len(names))
        return await self.weather_cache.refresh_all(names, self.unit)

    async def change_unit(self) -> RefreshReport:
        """Flip the unit and refetch everything denominated in the old one."""
        unit = self.preferences.toggle_unit()
        targets = self.weather_cache.cities()
        detail = self._detail
        if detail is not None:
            targets.append(detail.city)
            report, forecast_error = await asyncio.gather(
                self.weather_cache.refresh_all(targets, unit),
                self._refresh_forecast(detail.city, unit),
            )
            self._update_detail(detail, report, forecast_error)
            return report
        return await self.weather_cache.refresh_all(targets, unit)

    async def manual_refresh(self) -> RefreshReport:
        report = await self.weather_cache.refresh_stale(
            self.weather_cache.cities(),
            self.unit,
            self.staleness_threshold_ms,
        )
        if report.skipped:
            self.logger.info("Manual refresh skipped %d fresh city(ies)", len(report.skipped))
        return report

    async def open_detail(self, city_name: str) -> DetailView:
        detail = DetailView(city=city_name.strip())
        self._detail = detail
        unit = self.unit

        if city_name in self.weather_cache:
            report = RefreshReport()
            forecast_error = await self._refresh_forecast(detail.city, unit)
        else:
            report, forecast_error = await asyncio.gather(
                self.weather_cache.refresh_all([detail.city], unit),
                self._refresh_forecast(detail.city, unit),
            )
        self._update_detail(detail, report, forecast_error)
        return detail

    def close_detail(self) -> None:
        self._detail = None

    async def toggle_favorite(self, city_name: str) -> bool:
        """Toggle a favorite; a newly added, uncached city is fetched right away."""
        added = self.favorites.toggle(city_name)
        if added and city_name not in self.weather_cache:
            try:
                await self.weather_cache.fetch_and_store(city_name, self.unit)
            except FetchError as exc:
                # The favorite stays; the startup fetch will try it again.
                self.logger.info("Favorite %s added without weather: %s", city_name, exc.message)
        return added

    async def _refresh_forecast(self, city_name: str, unit: UnitPreference) -> str | None:
        try:
            await self.forecast_cache.fetch_and_store(
                self.weather_cache.query_for(city_name), unit
            )
        except FetchError as exc:
            return exc.message
        return None

    def _update_detail(
        self,
        detail: DetailView,
        report: RefreshReport,
        forecast_error: str | None,
    ) -> None:
        # Only touch the view if it is still the one on screen.
        if self._detail is not detail:
            return
        detail.errors.clear()
        weather_error = report.failed.get(detail.city)
        if weather_error is not None:
            detail.errors["weather"] = weather_error
        if forecast_error is not None:
            detail.errors["forecast"] = forecast_error
        weather = self.weather_cache.get(detail.city)
        if weather is not None:
            detail.city = weather.city_key
        detail.weather = weather
        detail.forecast = self.forecast_cache.get(detail.city)
