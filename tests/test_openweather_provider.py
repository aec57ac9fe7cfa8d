"""OpenWeather provider: request shape, retries and normalization."""

from __future__ import annotations

import asyncio
import logging
from types import SimpleNamespace
from typing import Any

import httpx
import pytest
import respx

from weather_dashboard.exceptions import FetchError
from weather_dashboard.weather.models import UnitPreference
from weather_dashboard.weather.openweather import OpenWeatherProvider

BASE = "https://api.openweathermap.org/data/2.5"
GEO = "https://api.openweathermap.org/geo/1.0"
API_KEY = "test-secret-key"


def _make_settings(**overrides: Any) -> Any:
    defaults = {
        "openweather_api_key": API_KEY,
        "openweather_base_url": BASE,
        "openweather_geo_url": GEO,
        "weather_timeout_seconds": 5.0,
        "weather_max_retries": 1,
        "weather_retry_delay_seconds": 0.0,
    }
    defaults.update(overrides)
    return SimpleNamespace(**defaults)


def _make_provider(**settings_overrides: Any) -> OpenWeatherProvider:
    return OpenWeatherProvider(
        settings=_make_settings(**settings_overrides),
        logger=logging.getLogger("test_openweather_provider"),
    )


def _current_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "name": "London",
        "main": {
            "temp": 12.3,
            "feels_like": 10.9,
            "temp_min": 11.0,
            "temp_max": 13.5,
            "humidity": 81,
            "pressure": 1012,
        },
        "weather": [{"main": "Rain", "description": "light rain", "icon": "10d"}],
        "wind": {"speed": 4.1, "deg": 240},
        "clouds": {"all": 90},
        "visibility": 10000,
        "sys": {"country": "GB", "sunrise": 1700000000, "sunset": 1700030000},
    }
    payload.update(overrides)
    return payload


def _run(coro: Any) -> Any:
    return asyncio.run(coro)


@respx.mock
def test_current_weather_is_normalized_and_authenticated() -> None:
    route = respx.get(f"{BASE}/weather").mock(
        return_value=httpx.Response(200, json=_current_payload())
    )

    async def scenario() -> Any:
        async with _make_provider() as provider:
            return await provider.fetch_current("london", UnitPreference.IMPERIAL)

    snapshot = _run(scenario())

    params = route.calls[0].request.url.params
    assert params["q"] == "london"
    assert params["units"] == "imperial"
    assert params["appid"] == API_KEY
    assert snapshot.city_key == "London"
    assert snapshot.unit is UnitPreference.IMPERIAL
    assert snapshot.temperature == 12.3
    assert snapshot.humidity == 81
    assert snapshot.wind_dir_deg == 240
    assert snapshot.condition_main == "Rain"
    assert snapshot.condition_description == "light rain"
    assert snapshot.country_code == "GB"
    assert snapshot.sunrise is not None and snapshot.sunrise.year == 2023
    assert snapshot.fetched_at_ms == 0


@respx.mock
def test_missing_temperature_is_malformed() -> None:
    respx.get(f"{BASE}/weather").mock(
        return_value=httpx.Response(200, json=_current_payload(main={"humidity": 50}))
    )

    with pytest.raises(FetchError) as excinfo:
        _run(_make_provider().fetch_current("London", UnitPreference.METRIC))

    assert excinfo.value.category == "malformed"


@respx.mock
def test_not_found_is_not_retried() -> None:
    route = respx.get(f"{BASE}/weather").mock(
        return_value=httpx.Response(404, json={"cod": "404", "message": "city not found"})
    )

    with pytest.raises(FetchError, match="city not found") as excinfo:
        _run(_make_provider().fetch_current("Atlantis", UnitPreference.METRIC))

    assert route.call_count == 1
    assert excinfo.value.category == "http_status"
    assert excinfo.value.status_code == 404


@respx.mock
def test_server_error_is_retried_then_succeeds() -> None:
    route = respx.get(f"{BASE}/weather").mock(
        side_effect=[
            httpx.Response(503),
            httpx.Response(200, json=_current_payload()),
        ]
    )

    snapshot = _run(_make_provider().fetch_current("London", UnitPreference.METRIC))

    assert route.call_count == 2
    assert snapshot.city_key == "London"


@respx.mock
def test_server_error_after_retries_raises_http_status() -> None:
    route = respx.get(f"{BASE}/weather").mock(return_value=httpx.Response(502))

    with pytest.raises(FetchError, match="status 502") as excinfo:
        _run(_make_provider(weather_max_retries=2).fetch_current("London", UnitPreference.METRIC))

    assert route.call_count == 3
    assert excinfo.value.status_code == 502


@respx.mock
def test_timeout_is_categorized() -> None:
    respx.get(f"{BASE}/weather").mock(side_effect=httpx.ConnectTimeout("timed out"))

    with pytest.raises(FetchError, match="timed out after 5s") as excinfo:
        _run(_make_provider().fetch_current("London", UnitPreference.METRIC))

    assert excinfo.value.category == "timeout"


@respx.mock
def test_transport_error_message_hides_api_key() -> None:
    respx.get(f"{BASE}/weather").mock(
        side_effect=httpx.ConnectError(f"failed to reach {BASE}/weather?q=x&appid={API_KEY}")
    )

    with pytest.raises(FetchError) as excinfo:
        _run(_make_provider(weather_max_retries=0).fetch_current("x", UnitPreference.METRIC))

    assert excinfo.value.category == "transport"
    assert API_KEY not in excinfo.value.message
    assert "appid=[REDACTED]" in excinfo.value.message


@respx.mock
def test_non_json_body_is_malformed() -> None:
    respx.get(f"{BASE}/weather").mock(return_value=httpx.Response(200, text="<html>"))

    with pytest.raises(FetchError) as excinfo:
        _run(_make_provider().fetch_current("London", UnitPreference.METRIC))

    assert excinfo.value.category == "malformed"


@respx.mock
def test_forecast_entries_are_sorted_with_precipitation() -> None:
    later = {"dt": 1700010800, "main": {"temp": 9.0}, "weather": [{"main": "Snow"}],
             "rain": {"3h": 0.4}, "snow": {"3h": 1.1}}
    earlier = {"dt": 1700000000, "main": {"temp": 11.0}, "weather": [{"main": "Clear"}]}
    respx.get(f"{BASE}/forecast").mock(
        return_value=httpx.Response(
            200,
            json={
                "list": [later, {"dt": "bad"}, earlier],
                "city": {"name": "Oslo", "country": "NO"},
            },
        )
    )

    forecast = _run(_make_provider().fetch_forecast("oslo", UnitPreference.METRIC))

    assert forecast.city_key == "Oslo"
    assert forecast.country_code == "NO"
    assert [entry.epoch_ms for entry in forecast.entries] == [1700000000000, 1700010800000]
    assert forecast.entries[0].precipitation_mm is None
    assert forecast.entries[1].precipitation_mm == pytest.approx(1.5)


@respx.mock
def test_geocoding_skips_malformed_candidates() -> None:
    route = respx.get(f"{GEO}/direct").mock(
        return_value=httpx.Response(
            200,
            json=[
                {"name": "Springfield", "state": "Illinois", "country": "US",
                 "lat": 39.8, "lon": -89.6},
                {"name": "Nowhere"},
                {"name": "Springfield", "country": "US", "lat": 37.2, "lon": -93.3},
            ],
        )
    )

    candidates = _run(_make_provider().search_cities("Springfield", limit=3))

    assert route.calls[0].request.url.params["limit"] == "3"
    assert [c.label() for c in candidates] == ["Springfield, Illinois, US", "Springfield, US"]


@respx.mock
def test_geocoding_object_payload_is_malformed() -> None:
    respx.get(f"{GEO}/direct").mock(return_value=httpx.Response(200, json={"cod": 401}))

    with pytest.raises(FetchError, match="non-list"):
        _run(_make_provider().search_cities("Paris"))


def test_request_json_can_be_stubbed_for_normalization() -> None:
    provider = _make_provider()

    async def fake_request_json(url: str, params: dict[str, Any], context: str) -> Any:
        assert url == f"{BASE}/weather"
        return _current_payload(name="", sys={})

    provider._request_json = fake_request_json  # type: ignore[method-assign]

    snapshot = _run(provider.fetch_current("  Lyon ", UnitPreference.METRIC))

    assert snapshot.city_key == "Lyon"
    assert snapshot.country_code is None


@respx.mock
def test_zero_retries_makes_a_single_attempt() -> None:
    route = respx.get(f"{BASE}/forecast").mock(return_value=httpx.Response(503))

    with pytest.raises(FetchError, match="status 503") as excinfo:
        _run(_make_provider(weather_max_retries=0).fetch_forecast("Oslo", UnitPreference.METRIC))

    assert route.call_count == 1
    assert excinfo.value.category == "http_status"
