"""Bounded most-recent-first list of selected city names."""

from __future__ import annotations

import json
import logging

from ..storage.base import RECENT_SEARCHES_KEY, KeyValueStore
from .favorites import load_name_list
from .keys import fold_city_name


class RecentSearches:
    def __init__(
        self,
        store: KeyValueStore,
        logger: logging.Logger,
        max_items: int = 5,
    ) -> None:
        if max_items <= 0:
            raise ValueError("max_items must be > 0.")
        self._store = store
        self.logger = logger
        self.max_items = max_items
        self._names = load_name_list(store, RECENT_SEARCHES_KEY, logger)[:max_items]

    def push(self, city_name: str) -> tuple[str, ...]:
        """Move the name to the front, dropping any older copy and the overflow."""
        name = city_name.strip()
        if not name:
            raise ValueError("City name must not be empty.")
        folded = fold_city_name(name)
        updated = [
            name,
            *(existing for existing in self._names if fold_city_name(existing) != folded),
        ]
        updated = updated[: self.max_items]
        self._store.set(RECENT_SEARCHES_KEY, json.dumps(updated))
        self._names = updated
        return tuple(updated)

    def list(self) -> tuple[str, ...]:
        return tuple(self._names)
