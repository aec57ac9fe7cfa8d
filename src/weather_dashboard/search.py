"""Debounced city autocomplete with sequence-numbered lookups.

Every keystroke restarts a debounce timer; only when the timer runs out
undisturbed is a geocoding lookup dispatched. Each dispatch takes the next
number from a monotonically increasing counter, and a lookup may only
update visible state if its number is still the latest when it resolves.
A slow early response therefore can never overwrite a faster later one.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from enum import Enum

from .exceptions import FetchError
from .state.preferences import PreferenceStore
from .state.recent import RecentSearches
from .state.weather_cache import WeatherCache
from .weather.base import WeatherProvider
from .weather.models import SearchCandidate, WeatherSnapshot


class SearchState(str, Enum):
    IDLE = "idle"
    DEBOUNCING = "debouncing"
    IN_FLIGHT = "in_flight"
    RESOLVED = "resolved"
    REJECTED = "rejected"
    SUPERSEDED = "superseded"


class SearchCoordinator:
    """Turns raw query text into at most one visible candidate list at a time.

    Must be driven from inside a running event loop. `results()` is meant
    for a single consumer; it only ever holds the newest unread list.
    """

    def __init__(
        self,
        provider: WeatherProvider,
        weather_cache: WeatherCache,
        preferences: PreferenceStore,
        recent: RecentSearches,
        logger: logging.Logger,
        *,
        debounce_seconds: float = 0.4,
        min_length: int = 2,
        limit: int = 5,
    ) -> None:
        if min_length < 1:
            raise ValueError("min_length must be >= 1.")
        self._provider = provider
        self._weather_cache = weather_cache
        self._preferences = preferences
        self._recent = recent
        self.logger = logger
        self.debounce_seconds = debounce_seconds
        self.min_length = min_length
        self.limit = limit

        self._state = SearchState.IDLE
        self._query = ""
        self._candidates: list[SearchCandidate] = []
        self._last_error: str | None = None
        self._seq = 0
        self._inflight_seq: int | None = None
        self._debounce_task: asyncio.Task[None] | None = None
        self._lookups: set[asyncio.Task[SearchState]] = set()
        self._pending: list[SearchCandidate] | None = None
        self._pending_event = asyncio.Event()
        self._closed = False
        self.lookups_dispatched = 0
        self.superseded_count = 0

    @property
    def state(self) -> SearchState:
        return self._state

    @property
    def query(self) -> str:
        return self._query

    @property
    def candidates(self) -> list[SearchCandidate]:
        return list(self._candidates)

    @property
    def loading(self) -> bool:
        """True only while the most recently dispatched lookup is unresolved."""
        return self._inflight_seq is not None and self._inflight_seq == self._seq

    @property
    def last_error(self) -> str | None:
        return self._last_error

    def update_query(self, text: str) -> SearchState:
        """Feed the current contents of the search box."""
        if self._closed:
            raise RuntimeError("SearchCoordinator is closed.")
        self._query = text
        query = text.strip()
        self._cancel_debounce()
        if len(query) < self.min_length:
            self._reset()
            return self._state

        self._state = SearchState.DEBOUNCING
        self._debounce_task = asyncio.create_task(self._debounce(query))
        return self._state

    async def select(self, candidate: SearchCandidate) -> WeatherSnapshot:
        """Record the pick as a recent search and fetch its weather.

        Raises `FetchError` when the weather fetch fails.
        """
        self._recent.push(candidate.name)
        self.clear()
        city_query = candidate.name
        if candidate.country_code:
            city_query = f"{candidate.name},{candidate.country_code}"
        return await self._weather_cache.fetch_and_store(city_query, self._preferences.unit)

    def clear(self) -> None:
        self._query = ""
        self._cancel_debounce()
        self._reset()

    async def settle(self) -> None:
        """Wait until no debounce timer or lookup is outstanding."""
        while True:
            pending = [task for task in self._lookups if not task.done()]
            if self._debounce_task is not None and not self._debounce_task.done():
                pending.append(self._debounce_task)
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def results(self) -> AsyncIterator[list[SearchCandidate]]:
        """Yield each newly visible candidate list; intermediate lists are skipped."""
        while not self._closed:
            await self._pending_event.wait()
            self._pending_event.clear()
            if self._pending is None:
                continue
            value, self._pending = self._pending, None
            yield value

    async def aclose(self) -> None:
        self._closed = True
        self._cancel_debounce()
        for task in list(self._lookups):
            task.cancel()
        if self._lookups:
            await asyncio.gather(*self._lookups, return_exceptions=True)
        self._pending_event.set()

    async def _debounce(self, query: str) -> None:
        await asyncio.sleep(self.debounce_seconds)
        self._debounce_task = None
        self._dispatch(query)

    def _dispatch(self, query: str) -> None:
        self._seq += 1
        seq = self._seq
        self._inflight_seq = seq
        self._state = SearchState.IN_FLIGHT
        self._last_error = None
        self.lookups_dispatched += 1
        self.logger.debug("Dispatching city lookup #%d for %r", seq, query)
        task = asyncio.create_task(self._lookup(query, seq))
        self._lookups.add(task)
        task.add_done_callback(self._lookups.discard)

    async def _lookup(self, query: str, seq: int) -> SearchState:
        try:
            candidates = await self._provider.search_cities(query, self.limit)
        except FetchError as exc:
            if self._is_superseded(seq, query):
                return SearchState.SUPERSEDED
            self.logger.warning("City lookup failed for %r: %s", query, exc.message)
            self._inflight_seq = None
            self._last_error = exc.message
            self._apply(SearchState.REJECTED, [])
            return SearchState.REJECTED

        if self._is_superseded(seq, query):
            return SearchState.SUPERSEDED
        self._inflight_seq = None
        self._apply(SearchState.RESOLVED, candidates)
        return SearchState.RESOLVED

    def _is_superseded(self, seq: int, query: str) -> bool:
        if seq == self._seq:
            return False
        self.superseded_count += 1
        self.logger.debug("Discarding superseded lookup #%d for %r", seq, query)
        return True

    def _apply(self, state: SearchState, candidates: list[SearchCandidate]) -> None:
        # A keystroke that arrived meanwhile keeps the session debouncing.
        if self._debounce_task is None:
            self._state = state
        self._candidates = list(candidates)
        self._publish(self._candidates)

    def _reset(self) -> None:
        # Bumping the counter supersedes any lookup still in flight.
        self._seq += 1
        self._inflight_seq = None
        self._state = SearchState.IDLE
        self._last_error = None
        had_results = bool(self._candidates)
        self._candidates = []
        if had_results:
            self._publish([])

    def _publish(self, candidates: list[SearchCandidate]) -> None:
        self._pending = list(candidates)
        self._pending_event.set()

    def _cancel_debounce(self) -> None:
        if self._debounce_task is not None and not self._debounce_task.done():
            self._debounce_task.cancel()
        self._debounce_task = None
