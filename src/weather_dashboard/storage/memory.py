"""In-memory key/value store, intended for tests and throwaway sessions."""

from __future__ import annotations


class MemoryKeyValueStore:
    """Dict-backed store that also counts writes for assertions."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})
        self.write_count = 0

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value
        self.write_count += 1

    def snapshot(self) -> dict[str, str]:
        return dict(self._values)
