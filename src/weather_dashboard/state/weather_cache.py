"""Per-city current-conditions cache with a staleness-gated refresh policy."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from ..exceptions import FetchError
from ..weather.base import WeatherProvider
from ..weather.models import UnitPreference, WeatherSnapshot
from .keys import CityKeyIndex, epoch_ms_now, fold_city_name

DEFAULT_STALENESS_THRESHOLD_MS = 60_000


@dataclass(slots=True)
class RefreshReport:
    """Outcome of a batch refresh: which cities were fetched, skipped or failed."""

    fetched: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed

    def merge(self, other: RefreshReport) -> RefreshReport:
        self.fetched.extend(other.fetched)
        self.skipped.extend(other.skipped)
        self.failed.update(other.failed)
        return self


def unique_names(names: Iterable[str]) -> list[str]:
    """Drop blank names and case-insensitive repeats, keeping first-seen order."""
    seen: set[str] = set()
    result: list[str] = []
    for name in names:
        folded = fold_city_name(name)
        if folded and folded not in seen:
            seen.add(folded)
            result.append(name.strip())
    return result


class WeatherCache:
    """Latest `WeatherSnapshot` per city, keyed by the provider's city name.

    Concurrent fetches for the same city and unit share one provider
    request. When requests for one city overlap with different units, the
    most recently dispatched one wins: an older result that resolves after
    a newer one was stored is dropped.
    """

    def __init__(
        self,
        provider: WeatherProvider,
        logger: logging.Logger,
        *,
        clock: Callable[[], int] = epoch_ms_now,
        default_threshold_ms: int = DEFAULT_STALENESS_THRESHOLD_MS,
    ) -> None:
        self._provider = provider
        self.logger = logger
        self._clock = clock
        self.default_threshold_ms = default_threshold_ms
        self._entries: dict[str, WeatherSnapshot] = {}
        self._keys = CityKeyIndex()
        self._inflight: dict[tuple[str, UnitPreference], asyncio.Task[WeatherSnapshot]] = {}
        self._dispatch_seq = 0
        self._stored_seq: dict[str, int] = {}
        # Query that produced each entry, e.g. "London,CA" for key "London".
        self._queries: dict[str, str] = {}

    async def fetch_and_store(self, city_name: str, unit: UnitPreference) -> WeatherSnapshot:
        """Fetch current conditions and replace the cached snapshot.

        A name that already addresses a cached entry is refetched with the
        query that produced it, so a country-qualified pick stays that city.
        Raises `FetchError` on provider failure; any prior entry is kept.
        """
        query = self.query_for(city_name)
        inflight_key = (fold_city_name(self._keys.resolve(city_name)), unit)
        task = self._inflight.get(inflight_key)
        if task is None or task.done():
            self._dispatch_seq += 1
            task = asyncio.create_task(self._fetch(query, unit, self._dispatch_seq))
            self._inflight[inflight_key] = task
            task.add_done_callback(lambda done: self._release(inflight_key, done))
        else:
            self.logger.debug("Joining in-flight weather fetch for %s", city_name)
        return await asyncio.shield(task)

    def is_stale(self, city_name: str, threshold_ms: int | None = None) -> bool:
        """True when nothing is cached or the entry is older than the threshold.

        A threshold of zero or less treats every entry as stale.
        """
        threshold = self.default_threshold_ms if threshold_ms is None else threshold_ms
        entry = self.get(city_name)
        if entry is None or threshold <= 0:
            return True
        return self._clock() - entry.fetched_at_ms > threshold

    async def refresh_stale(
        self,
        city_names: Iterable[str],
        unit: UnitPreference,
        threshold_ms: int | None = None,
    ) -> RefreshReport:
        """Refetch only the cities whose entries are stale."""
        report = RefreshReport()
        stale: list[str] = []
        for name in unique_names(city_names):
            if self.is_stale(name, threshold_ms):
                stale.append(name)
            else:
                self.logger.debug("Skipping fresh weather entry for %s", name)
                report.skipped.append(self._keys.resolve(name))
        return report.merge(await self._fetch_many(stale, unit))

    async def refresh_all(self, city_names: Iterable[str], unit: UnitPreference) -> RefreshReport:
        """Refetch every named city regardless of freshness."""
        return await self._fetch_many(unique_names(city_names), unit)

    def query_for(self, city_name: str) -> str:
        """Provider query to use for a name; cached cities keep their original query."""
        return self._queries.get(self._keys.resolve(city_name), city_name.strip())

    def get(self, city_name: str) -> WeatherSnapshot | None:
        return self._entries.get(self._keys.resolve(city_name))

    def cities(self) -> list[str]:
        return list(self._entries)

    def snapshots(self) -> list[WeatherSnapshot]:
        return list(self._entries.values())

    def evict(self, city_name: str) -> bool:
        key = self._keys.resolve(city_name)
        removed = self._entries.pop(key, None)
        self._queries.pop(key, None)
        self._keys.forget(key)
        return removed is not None

    def __contains__(self, city_name: object) -> bool:
        return isinstance(city_name, str) and self.get(city_name) is not None

    async def _fetch(self, city_name: str, unit: UnitPreference, seq: int) -> WeatherSnapshot:
        try:
            snapshot = await self._provider.fetch_current(city_name, unit)
        except FetchError as exc:
            self.logger.warning(
                "Weather fetch failed for %s (%s): %s", city_name, unit.value, exc.message
            )
            raise

        key = snapshot.city_key
        self._keys.bind(city_name, key)
        prior = self._entries.get(key)
        if prior is not None and self._stored_seq.get(key, 0) > seq:
            self.logger.debug("Dropping superseded weather result for %s", key)
            return prior

        now = self._clock()
        fetched_at = max(now, prior.fetched_at_ms) if prior is not None else now
        stored = snapshot.model_copy(update={"fetched_at_ms": fetched_at})
        self._entries[key] = stored
        self._stored_seq[key] = seq
        self._queries[key] = city_name
        return stored

    async def _fetch_many(self, names: list[str], unit: UnitPreference) -> RefreshReport:
        report = RefreshReport()
        if not names:
            return report
        results = await asyncio.gather(
            *(self.fetch_and_store(name, unit) for name in names),
            return_exceptions=True,
        )
        for name, result in zip(names, results):
            if isinstance(result, FetchError):
                report.failed[name] = result.message
            elif isinstance(result, BaseException):
                raise result
            else:
                report.fetched.append(result.city_key)
        self.logger.info(
            "Weather refresh (%s): fetched=%d failed=%d",
            unit.value, len(report.fetched), len(report.failed),
            extra={"fields": {"unit": unit.value, "failed_cities": sorted(report.failed)}},
        )
        return report

    def _release(
        self,
        inflight_key: tuple[str, UnitPreference],
        task: asyncio.Task[WeatherSnapshot],
    ) -> None:
        if self._inflight.get(inflight_key) is task:
            del self._inflight[inflight_key]
