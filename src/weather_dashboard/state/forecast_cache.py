"""Per-city forecast cache; every fetch overwrites, there is no staleness gate."""

from __future__ import annotations

import logging
from collections.abc import Callable

from ..exceptions import FetchError
from ..weather.base import WeatherProvider
from ..weather.models import ForecastSnapshot, UnitPreference
from .keys import CityKeyIndex, epoch_ms_now


class ForecastCache:
    def __init__(
        self,
        provider: WeatherProvider,
        logger: logging.Logger,
        *,
        clock: Callable[[], int] = epoch_ms_now,
    ) -> None:
        self._provider = provider
        self.logger = logger
        self._clock = clock
        self._entries: dict[str, ForecastSnapshot] = {}
        self._keys = CityKeyIndex()
        self._dispatch_seq = 0
        self._stored_seq: dict[str, int] = {}

    async def fetch_and_store(self, city_name: str, unit: UnitPreference) -> ForecastSnapshot:
        """Fetch a fresh forecast and replace the cached one.

        Raises `FetchError` on provider failure, leaving any prior forecast.
        A response that lands after a later request for the same city has
        already been stored is dropped in favour of the newer forecast.
        """
        self._dispatch_seq += 1
        seq = self._dispatch_seq
        try:
            forecast = await self._provider.fetch_forecast(city_name, unit)
        except FetchError as exc:
            self.logger.warning(
                "Forecast fetch failed for %s (%s): %s", city_name, unit.value, exc.message
            )
            raise

        key = forecast.city_key
        self._keys.bind(city_name, key)
        prior = self._entries.get(key)
        if prior is not None and self._stored_seq.get(key, 0) > seq:
            self.logger.debug("Dropping superseded forecast for %s", key)
            return prior

        now = self._clock()
        fetched_at = max(now, prior.fetched_at_ms) if prior is not None else now
        stored = forecast.model_copy(
            update={
                "entries": sorted(forecast.entries, key=lambda entry: entry.epoch_ms),
                "fetched_at_ms": fetched_at,
            }
        )
        self._entries[key] = stored
        self._stored_seq[key] = seq
        return stored

    def get(self, city_name: str) -> ForecastSnapshot | None:
        return self._entries.get(self._keys.resolve(city_name))

    def evict(self, city_name: str) -> bool:
        key = self._keys.resolve(city_name)
        removed = self._entries.pop(key, None)
        self._keys.forget(key)
        return removed is not None
