"""JSON-file key/value store with atomic replace-on-write."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path

from ..exceptions import StorageError


class JsonFileKeyValueStore:
    """Keeps every key in one JSON object on disk.

    The file is read once on first access. Each `set` rewrites the whole
    object through a temp file in the same directory followed by
    `os.replace`, so readers never observe a partially written file.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._values: dict[str, str] | None = None

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        updated = dict(self._load())
        updated[key] = value
        self._write(updated)
        self._values = updated

    def _load(self) -> dict[str, str]:
        if self._values is not None:
            return self._values
        if not self.path.exists():
            self._values = {}
            return self._values
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                raw = json.load(fh)
        except (OSError, ValueError) as exc:
            raise StorageError(f"Failed reading state file {self.path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise StorageError(
                f"State file {self.path} must contain a JSON object, "
                f"found {type(raw).__name__}."
            )
        self._values = {str(key): str(value) for key, value in raw.items()}
        return self._values

    def _write(self, values: dict[str, str]) -> None:
        tmp_name: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                dir=self.path.parent,
            )
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(values, fh, ensure_ascii=False, indent=2, sort_keys=True)
                fh.write("\n")
            os.replace(tmp_name, self.path)
            tmp_name = None
        except (OSError, TypeError, ValueError) as exc:
            raise StorageError(f"Failed writing state file {self.path}: {exc}") from exc
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
