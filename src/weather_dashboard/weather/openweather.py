"""OpenWeather (api.openweathermap.org) provider implementation."""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime
from typing import Any

import httpx

from ..config import Settings
from ..exceptions import FetchError
from ..redaction import sanitize_text
from .base import WeatherProvider
from .models import (
    ForecastEntry,
    ForecastSnapshot,
    SearchCandidate,
    UnitPreference,
    WeatherSnapshot,
)


class OpenWeatherProvider(WeatherProvider):
    """Fetches and normalizes current conditions, forecasts and geocoding matches."""

    provider_name = "openweather"

    def __init__(
        self,
        settings: Settings,
        logger: logging.Logger,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings
        self.logger = logger
        self._api_key = settings.openweather_api_key
        self._base_url = str(settings.openweather_base_url).rstrip("/")
        self._geo_url = str(settings.openweather_geo_url).rstrip("/")
        self._max_retries = settings.weather_max_retries
        self._retry_delay = settings.weather_retry_delay_seconds
        self._client = client or httpx.AsyncClient(
            timeout=settings.weather_timeout_seconds,
            headers={"Accept": "application/json"},
        )

    async def __aenter__(self) -> OpenWeatherProvider:
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, exc_tb: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch_current(self, city: str, unit: UnitPreference) -> WeatherSnapshot:
        payload = await self._request_json(
            f"{self._base_url}/weather",
            params={"q": city, "units": unit.value},
            context="current weather",
        )
        if not isinstance(payload, dict):
            raise FetchError(
                "OpenWeather current weather returned a non-object payload.",
                category="malformed",
            )
        return self._normalize_current(payload, requested_city=city, unit=unit)

    async def fetch_forecast(self, city: str, unit: UnitPreference) -> ForecastSnapshot:
        payload = await self._request_json(
            f"{self._base_url}/forecast",
            params={"q": city, "units": unit.value},
            context="forecast",
        )
        if not isinstance(payload, dict):
            raise FetchError(
                "OpenWeather forecast returned a non-object payload.",
                category="malformed",
            )
        return self._normalize_forecast(payload, requested_city=city, unit=unit)

    async def search_cities(self, query: str, limit: int = 5) -> list[SearchCandidate]:
        payload = await self._request_json(
            f"{self._geo_url}/direct",
            params={"q": query, "limit": limit},
            context="geocoding",
        )
        if not isinstance(payload, list):
            raise FetchError(
                "OpenWeather geocoding returned a non-list payload.",
                category="malformed",
            )
        candidates: list[SearchCandidate] = []
        for item in payload:
            candidate = self._normalize_candidate(item)
            if candidate is not None:
                candidates.append(candidate)
        return candidates[:limit]

    async def _request_json(self, url: str, params: dict[str, Any], context: str) -> Any:
        query = dict(params)
        query["appid"] = self._api_key
        for attempt in range(self._max_retries + 1):
            delay = self._retry_delay * (2**attempt)
            try:
                response = await self._client.get(url, params=query)
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                status = exc.response.status_code
                # 4xx other than 429 will not succeed on retry.
                if 400 <= status < 500 and status != 429:
                    raise FetchError(
                        f"OpenWeather {context} failed with status {status}: "
                        f"{self._error_detail(exc.response)}",
                        category="http_status",
                        status_code=status,
                    ) from exc
                if attempt < self._max_retries:
                    self.logger.warning(
                        "OpenWeather %s failed (HTTP %d); retrying in %.2fs",
                        context, status, delay,
                        extra={"fields": {"attempt": attempt + 1, "status_code": status}},
                    )
                    await asyncio.sleep(delay)
                    continue
                raise FetchError(
                    f"OpenWeather {context} failed with status {status}: "
                    f"{self._error_detail(exc.response)}",
                    category="http_status",
                    status_code=status,
                ) from exc
            except httpx.TimeoutException as exc:
                if attempt < self._max_retries:
                    self.logger.warning(
                        "OpenWeather %s timed out; retrying in %.2fs", context, delay
                    )
                    await asyncio.sleep(delay)
                    continue
                raise FetchError(
                    f"OpenWeather {context} timed out after "
                    f"{self.settings.weather_timeout_seconds:g}s.",
                    category="timeout",
                ) from exc
            except httpx.HTTPError as exc:
                if attempt < self._max_retries:
                    self.logger.warning(
                        "OpenWeather %s request failed (%s); retrying in %.2fs",
                        context, type(exc).__name__, delay,
                    )
                    await asyncio.sleep(delay)
                    continue
                raise FetchError(
                    f"OpenWeather {context} request failed: {sanitize_text(str(exc))}",
                    category="transport",
                ) from exc

            try:
                return response.json()
            except ValueError as exc:
                raise FetchError(
                    f"OpenWeather {context} returned a non-JSON response.",
                    category="malformed",
                ) from exc

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        # OpenWeather error bodies look like {"cod": "404", "message": "city not found"}.
        try:
            body = response.json()
        except ValueError:
            return sanitize_text(response.text[:300]) or "no response body"
        if isinstance(body, dict) and isinstance(body.get("message"), str):
            return sanitize_text(body["message"])
        return sanitize_text(str(body)[:300])

    def _normalize_current(
        self,
        payload: dict[str, Any],
        *,
        requested_city: str,
        unit: UnitPreference,
    ) -> WeatherSnapshot:
        main = payload.get("main")
        if not isinstance(main, dict):
            raise FetchError(
                "OpenWeather current weather payload missing 'main' object.",
                category="malformed",
            )
        temperature = self._as_float(main.get("temp"))
        if temperature is None:
            raise FetchError(
                "OpenWeather current weather payload missing 'main.temp'.",
                category="malformed",
            )

        condition = self._first_condition(payload.get("weather"))
        wind = payload.get("wind") if isinstance(payload.get("wind"), dict) else {}
        clouds = payload.get("clouds") if isinstance(payload.get("clouds"), dict) else {}
        sys_block = payload.get("sys") if isinstance(payload.get("sys"), dict) else {}

        return WeatherSnapshot(
            city_key=self._as_str(payload.get("name")) or requested_city.strip(),
            unit=unit,
            temperature=temperature,
            feels_like=self._as_float(main.get("feels_like")),
            temp_min=self._as_float(main.get("temp_min")),
            temp_max=self._as_float(main.get("temp_max")),
            humidity=self._as_float(main.get("humidity")),
            pressure=self._as_float(main.get("pressure")),
            wind_speed=self._as_float(wind.get("speed")),
            wind_dir_deg=self._as_float(wind.get("deg")),
            visibility=self._as_float(payload.get("visibility")),
            cloudiness=self._as_float(clouds.get("all")),
            condition_main=self._as_str(condition.get("main")),
            condition_description=self._as_str(condition.get("description")),
            condition_icon=self._as_str(condition.get("icon")),
            sunrise=self._parse_epoch_seconds(sys_block.get("sunrise")),
            sunset=self._parse_epoch_seconds(sys_block.get("sunset")),
            country_code=self._as_str(sys_block.get("country")),
        )

    def _normalize_forecast(
        self,
        payload: dict[str, Any],
        *,
        requested_city: str,
        unit: UnitPreference,
    ) -> ForecastSnapshot:
        raw_entries = payload.get("list")
        if not isinstance(raw_entries, list):
            raise FetchError(
                "OpenWeather forecast payload missing 'list' array.",
                category="malformed",
            )

        entries: list[ForecastEntry] = []
        for item in raw_entries:
            if not isinstance(item, dict):
                continue
            entry = self._normalize_entry(item)
            if entry is not None:
                entries.append(entry)
        if raw_entries and not entries:
            raise FetchError(
                "OpenWeather forecast entries were present but not parseable.",
                category="malformed",
            )
        entries.sort(key=lambda entry: entry.epoch_ms)

        city = payload.get("city") if isinstance(payload.get("city"), dict) else {}
        return ForecastSnapshot(
            city_key=self._as_str(city.get("name")) or requested_city.strip(),
            unit=unit,
            country_code=self._as_str(city.get("country")),
            entries=entries,
        )

    def _normalize_entry(self, item: dict[str, Any]) -> ForecastEntry | None:
        epoch_seconds = item.get("dt")
        main = item.get("main")
        if not isinstance(epoch_seconds, (int, float)) or not isinstance(main, dict):
            return None
        temperature = self._as_float(main.get("temp"))
        if temperature is None:
            return None

        condition = self._first_condition(item.get("weather"))
        wind = item.get("wind") if isinstance(item.get("wind"), dict) else {}
        return ForecastEntry(
            epoch_ms=int(epoch_seconds * 1000),
            temperature=temperature,
            temp_min=self._as_float(main.get("temp_min")),
            temp_max=self._as_float(main.get("temp_max")),
            feels_like=self._as_float(main.get("feels_like")),
            humidity=self._as_float(main.get("humidity")),
            wind_speed=self._as_float(wind.get("speed")),
            condition_main=self._as_str(condition.get("main")),
            condition_icon=self._as_str(condition.get("icon")),
            precipitation_mm=self._precipitation(item),
        )

    def _precipitation(self, item: dict[str, Any]) -> float | None:
        total: float | None = None
        for key in ("rain", "snow"):
            block = item.get(key)
            if not isinstance(block, dict):
                continue
            volume = self._as_float(block.get("3h"))
            if volume is not None:
                total = (total or 0.0) + volume
        return total

    def _normalize_candidate(self, item: Any) -> SearchCandidate | None:
        if not isinstance(item, dict):
            return None
        name = self._as_str(item.get("name"))
        lat = self._as_float(item.get("lat"))
        lon = self._as_float(item.get("lon"))
        if name is None or lat is None or lon is None:
            self.logger.debug("Skipping malformed geocoding entry: %s", item)
            return None
        return SearchCandidate(
            name=name,
            state=self._as_str(item.get("state")),
            country_code=self._as_str(item.get("country")),
            lat=lat,
            lon=lon,
        )

    @staticmethod
    def _first_condition(value: Any) -> dict[str, Any]:
        if isinstance(value, list) and value and isinstance(value[0], dict):
            return value[0]
        return {}

    @staticmethod
    def _as_str(value: Any) -> str | None:
        if isinstance(value, str) and value.strip():
            return value.strip()
        return None

    @staticmethod
    def _as_float(value: Any) -> float | None:
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return float(value)
        return None

    @staticmethod
    def _parse_epoch_seconds(value: Any) -> datetime | None:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        return datetime.fromtimestamp(value, tz=UTC)
