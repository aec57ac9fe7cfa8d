"""Persisted temperature-unit preference."""

from __future__ import annotations

import logging

from ..storage.base import UNIT_KEY, KeyValueStore
from ..weather.models import UnitPreference


class PreferenceStore:
    """Single global unit setting, loaded at start and written on every change."""

    def __init__(self, store: KeyValueStore, logger: logging.Logger) -> None:
        self._store = store
        self.logger = logger
        self._unit = self._load()

    @property
    def unit(self) -> UnitPreference:
        return self._unit

    def toggle_unit(self) -> UnitPreference:
        """Flip metric/imperial and persist.

        Cached snapshots are not touched here; callers refetch them
        (see `SyncCoordinator.change_unit`).
        """
        flipped = self._unit.flipped()
        self._store.set(UNIT_KEY, flipped.value)
        self._unit = flipped
        self.logger.info("Unit preference changed to %s", flipped.value)
        return flipped

    def _load(self) -> UnitPreference:
        raw = self._store.get(UNIT_KEY)
        if raw is None:
            return UnitPreference.METRIC
        try:
            return UnitPreference(raw)
        except ValueError:
            self.logger.warning("Ignoring unknown persisted unit %r; using metric", raw)
            return UnitPreference.METRIC
