"""Shared protocol for persisted key/value backends."""

from __future__ import annotations

from typing import Protocol

FAVORITES_KEY = "favorites"
UNIT_KEY = "tempUnit"
RECENT_SEARCHES_KEY = "recentSearches"


class KeyValueStore(Protocol):
    """Synchronous string store; values are JSON text or plain tokens."""

    def get(self, key: str) -> str | None:
        """Return the stored value, or None when the key was never set."""

    def set(self, key: str, value: str) -> None:
        """Persist a value, raising StorageError if it cannot be written."""
