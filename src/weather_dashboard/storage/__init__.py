"""Key/value persistence for favorites, unit preference and recent searches."""

from .base import KeyValueStore
from .json_file import JsonFileKeyValueStore
from .memory import MemoryKeyValueStore

__all__ = ["JsonFileKeyValueStore", "KeyValueStore", "MemoryKeyValueStore"]
