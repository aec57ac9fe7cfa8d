"""Application exception classes."""

from __future__ import annotations

from typing import Literal

FetchErrorCategory = Literal["http_status", "transport", "timeout", "malformed", "unknown"]


class ConfigError(Exception):
    """Raised when configuration is invalid or incomplete."""


class FetchError(Exception):
    """Raised when a weather, forecast or geocoding lookup fails."""

    def __init__(
        self,
        message: str,
        *,
        category: FetchErrorCategory = "unknown",
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.category = category
        self.status_code = status_code


class StorageError(Exception):
    """Raised when reading or writing persisted dashboard state fails."""
