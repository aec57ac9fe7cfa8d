"""Persisted, insertion-ordered set of favorite city names."""

from __future__ import annotations

import json
import logging

from ..storage.base import FAVORITES_KEY, KeyValueStore
from .keys import fold_city_name


def load_name_list(store: KeyValueStore, key: str, logger: logging.Logger) -> list[str]:
    """Decode a persisted JSON array of names, dropping blanks and repeats."""
    raw = store.get(key)
    if raw is None:
        return []
    try:
        decoded = json.loads(raw)
    except ValueError:
        logger.warning("Persisted %s is not valid JSON; starting empty", key)
        return []
    if not isinstance(decoded, list):
        logger.warning("Persisted %s is not a JSON array; starting empty", key)
        return []

    names: list[str] = []
    seen: set[str] = set()
    for item in decoded:
        if not isinstance(item, str) or not item.strip():
            continue
        folded = fold_city_name(item)
        if folded not in seen:
            seen.add(folded)
            names.append(item.strip())
    return names


class FavoritesStore:
    """Ordered favorites with toggle semantics.

    Names compare case-insensitively, like the cache keys, so "paris" and
    "Paris" are the same favorite.
    """

    def __init__(self, store: KeyValueStore, logger: logging.Logger) -> None:
        self._store = store
        self.logger = logger
        self._names = load_name_list(store, FAVORITES_KEY, logger)

    def toggle(self, city_name: str) -> bool:
        """Remove the city if present, else append it. Returns True when added."""
        name = city_name.strip()
        if not name:
            raise ValueError("City name must not be empty.")
        folded = fold_city_name(name)
        if any(fold_city_name(existing) == folded for existing in self._names):
            updated = [
                existing for existing in self._names if fold_city_name(existing) != folded
            ]
            added = False
        else:
            updated = [*self._names, name]
            added = True
        self._store.set(FAVORITES_KEY, json.dumps(updated))
        self._names = updated
        self.logger.info("Favorite %s: %s", "added" if added else "removed", name)
        return added

    def contains(self, city_name: str) -> bool:
        folded = fold_city_name(city_name)
        return any(fold_city_name(existing) == folded for existing in self._names)

    def list(self) -> tuple[str, ...]:
        return tuple(self._names)

    def __len__(self) -> int:
        return len(self._names)
