"""Persisted favorites, unit preference and recent searches."""

from __future__ import annotations

import json
import logging

import pytest

from weather_dashboard.exceptions import StorageError
from weather_dashboard.state.favorites import FavoritesStore
from weather_dashboard.state.preferences import PreferenceStore
from weather_dashboard.state.recent import RecentSearches
from weather_dashboard.storage.memory import MemoryKeyValueStore
from weather_dashboard.weather.models import UnitPreference


class FailingStore(MemoryKeyValueStore):
    def set(self, key: str, value: str) -> None:
        raise StorageError("disk full")


def test_favorite_toggle_twice_restores_set_and_persisted_value(
    store: MemoryKeyValueStore, logger: logging.Logger
) -> None:
    favorites = FavoritesStore(store, logger)
    favorites.toggle("Paris")
    before = store.get("favorites")

    assert favorites.toggle("Tokyo") is True
    assert favorites.list() == ("Paris", "Tokyo")
    assert favorites.toggle("Tokyo") is False

    assert favorites.list() == ("Paris",)
    assert store.get("favorites") == before == json.dumps(["Paris"])


def test_favorites_never_hold_duplicates(
    store: MemoryKeyValueStore, logger: logging.Logger
) -> None:
    favorites = FavoritesStore(store, logger)
    favorites.toggle(" Paris ")
    favorites.toggle("Paris")

    assert favorites.list() == ()
    assert not favorites.contains("Paris")


def test_favorites_reload_from_store(logger: logging.Logger) -> None:
    store = MemoryKeyValueStore({"favorites": json.dumps(["Paris", "Paris", "", "Tokyo", 3])})

    favorites = FavoritesStore(store, logger)

    assert favorites.list() == ("Paris", "Tokyo")
    assert len(favorites) == 2


@pytest.mark.parametrize("raw", ["not json", json.dumps({"Paris": True})])
def test_corrupt_favorites_start_empty(raw: str, logger: logging.Logger) -> None:
    favorites = FavoritesStore(MemoryKeyValueStore({"favorites": raw}), logger)

    assert favorites.list() == ()


def test_empty_favorite_name_is_rejected(
    store: MemoryKeyValueStore, logger: logging.Logger
) -> None:
    favorites = FavoritesStore(store, logger)

    with pytest.raises(ValueError):
        favorites.toggle("   ")
    assert store.write_count == 0


def test_failed_favorite_write_leaves_memory_unchanged(logger: logging.Logger) -> None:
    favorites = FavoritesStore(FailingStore({"favorites": json.dumps(["Paris"])}), logger)

    with pytest.raises(StorageError):
        favorites.toggle("Tokyo")

    assert favorites.list() == ("Paris",)


def test_unit_defaults_to_metric_and_toggles_round_trip(
    store: MemoryKeyValueStore, logger: logging.Logger
) -> None:
    preferences = PreferenceStore(store, logger)
    assert preferences.unit is UnitPreference.METRIC
    assert store.get("tempUnit") is None

    assert preferences.toggle_unit() is UnitPreference.IMPERIAL
    assert store.get("tempUnit") == "imperial"
    assert preferences.toggle_unit() is UnitPreference.METRIC
    assert store.get("tempUnit") == "metric"


def test_persisted_unit_is_loaded(logger: logging.Logger) -> None:
    preferences = PreferenceStore(MemoryKeyValueStore({"tempUnit": "imperial"}), logger)

    assert preferences.unit is UnitPreference.IMPERIAL


def test_unknown_persisted_unit_falls_back_to_metric(
    logger: logging.Logger, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.WARNING, logger=logger.name):
        preferences = PreferenceStore(MemoryKeyValueStore({"tempUnit": "kelvin"}), logger)

    assert preferences.unit is UnitPreference.METRIC
    assert "kelvin" in caplog.text


def test_failed_unit_write_keeps_current_unit(logger: logging.Logger) -> None:
    preferences = PreferenceStore(FailingStore(), logger)

    with pytest.raises(StorageError):
        preferences.toggle_unit()

    assert preferences.unit is UnitPreference.METRIC


def test_recent_searches_are_bounded_and_most_recent_first(
    store: MemoryKeyValueStore, logger: logging.Logger
) -> None:
    recent = RecentSearches(store, logger, max_items=5)
    for name in ["Paris", "Tokyo", "Lima", "Oslo", "Rome", "Cairo"]:
        recent.push(name)

    assert recent.list() == ("Cairo", "Rome", "Oslo", "Lima", "Tokyo")
    assert json.loads(store.get("recentSearches") or "[]") == list(recent.list())


def test_recent_search_repeat_moves_to_front(
    store: MemoryKeyValueStore, logger: logging.Logger
) -> None:
    recent = RecentSearches(store, logger)
    recent.push("Paris")
    recent.push("Tokyo")

    assert recent.push("Paris") == ("Paris", "Tokyo")


def test_recent_searches_truncate_oversized_persisted_list(logger: logging.Logger) -> None:
    names = ["A1", "B2", "C3", "D4", "E5", "F6", "G7"]
    recent = RecentSearches(MemoryKeyValueStore({"recentSearches": json.dumps(names)}), logger)

    assert recent.list() == tuple(names[:5])


def test_favorites_match_names_case_insensitively(
    store: MemoryKeyValueStore, logger: logging.Logger
) -> None:
    favorites = FavoritesStore(store, logger)

    assert favorites.toggle("paris") is True
    assert favorites.contains("PARIS")
    assert favorites.toggle("Paris") is False

    assert favorites.list() == ()
    assert store.get("favorites") == "[]"


def test_persisted_favorites_drop_case_variants(logger: logging.Logger) -> None:
    store = MemoryKeyValueStore({"favorites": json.dumps(["Paris", "paris", "New  York", "new york"])})

    assert FavoritesStore(store, logger).list() == ("Paris", "New  York")


def test_recent_search_repeat_ignores_case(
    store: MemoryKeyValueStore, logger: logging.Logger
) -> None:
    recent = RecentSearches(store, logger)
    recent.push("paris")
    recent.push("Tokyo")

    assert recent.push("Paris") == ("Paris", "Tokyo")
