"""City-name canonicalization shared by the snapshot caches."""

from __future__ import annotations

import time


def epoch_ms_now() -> int:
    return time.time_ns() // 1_000_000


def fold_city_name(name: str) -> str:
    """Case- and whitespace-insensitive lookup form of a city name."""
    return " ".join(name.split()).casefold()


class CityKeyIndex:
    """Remembers which provider-reported name each requested spelling resolved to."""

    def __init__(self) -> None:
        self._aliases: dict[str, str] = {}

    def resolve(self, name: str) -> str:
        """Return the canonical key for a name, or the tidied name if unseen."""
        return self._aliases.get(fold_city_name(name), " ".join(name.split()))

    def bind(self, requested: str, canonical: str) -> None:
        self._aliases[fold_city_name(requested)] = canonical
        self._aliases[fold_city_name(canonical)] = canonical

    def forget(self, canonical: str) -> None:
        stale = [alias for alias, key in self._aliases.items() if key == canonical]
        for alias in stale:
            del self._aliases[alias]
