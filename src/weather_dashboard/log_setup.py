"""Logging setup for the dashboard process."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import Any

from .redaction import sanitize_for_logging, sanitize_text

# httpx logs every request URL at INFO, query string and API key included.
_NOISY_LIBRARIES = ("httpx", "httpcore")


class JsonConsoleFormatter(logging.Formatter):
    """One JSON object per log line, with API keys scrubbed.

    Structured values passed as ``extra={"fields": {...}}`` are merged into
    the event after redaction.
    """

    def format(self, record: logging.LogRecord) -> str:
        event: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": sanitize_text(record.getMessage()),
        }
        fields = getattr(record, "fields", None)
        if isinstance(fields, dict):
            for key, value in sanitize_for_logging(fields).items():
                event.setdefault(str(key), value)
        if record.exc_info:
            event["exception"] = sanitize_text(self.formatException(record.exc_info))
        return json.dumps(event, default=str)


def setup_logger(
    name: str = "weather_dashboard",
    level: int = logging.INFO,
    *,
    quiet_libraries: bool = True,
) -> logging.Logger:
    """Configure the dashboard logger once; later calls only adjust the level."""
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False
    if quiet_libraries:
        for library in _NOISY_LIBRARIES:
            logging.getLogger(library).setLevel(logging.WARNING)
    if logger.handlers:
        return logger

    handler = logging.StreamHandler()
    handler.setFormatter(JsonConsoleFormatter())
    logger.addHandler(handler)
    return logger
