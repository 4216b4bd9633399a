from __future__ import annotations

from typing import Any, Callable

import httpx
import pytest

from vhiteskies.config import Settings


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        openweather_api_key="test-key",
        fetch_retry_delay_seconds=1.0,
        suggest_debounce_seconds=0.05,
    )


@pytest.fixture
def observation_payload() -> dict:
    return {
        "coord": {"lon": -74.006, "lat": 40.7128},
        "weather": [{"id": 803, "main": "Clouds", "description": "broken clouds", "icon": "04d"}],
        "main": {"temp": 18.4, "feels_like": 17.9, "pressure": 1016, "humidity": 61},
        "visibility": 10000,
        "wind": {"speed": 4.6, "deg": 230},
        "sys": {"country": "US"},
        "name": "New York",
    }


@pytest.fixture
def forecast_payload() -> dict:
    start = 1_771_495_200
    return {
        "cnt": 20,
        "list": [
            {
                "dt": start + idx * 3 * 3600,
                "main": {"temp": 15.0 + idx * 0.5},
                "weather": [{"description": "light rain", "icon": "10d"}],
            }
            for idx in range(20)
        ],
    }


@pytest.fixture
def air_quality_payload() -> dict:
    return {
        "coord": {"lon": -74.006, "lat": 40.7128},
        "list": [
            {
                "main": {"aqi": 3},
                "components": {"co": 230.3, "no": 0.1, "no2": 12.4, "o3": 68.7, "so2": 2.3, "pm2_5": 8.6, "pm10": 11.2, "nh3": 0.9},
                "dt": 1_771_495_200,
            }
        ],
    }


@pytest.fixture
def openweather_transport(
    observation_payload: dict, forecast_payload: dict, air_quality_payload: dict
) -> Callable[..., httpx.MockTransport]:
    """Build a mock OpenWeatherMap transport.

    ``overrides`` maps an endpoint suffix (``weather``, ``forecast``,
    ``air_pollution``, ``direct``) to a payload or an HTTP status code.
    Every request is appended to ``seen``.
    """

    def factory(seen: list[httpx.Request] | None = None, **overrides: Any) -> httpx.MockTransport:
        defaults: dict[str, Any] = {
            "weather": observation_payload,
            "forecast": forecast_payload,
            "air_pollution": air_quality_payload,
            "direct": [],
        }
        defaults.update(overrides)

        def handler(request: httpx.Request) -> httpx.Response:
            if seen is not None:
                seen.append(request)
            endpoint = request.url.path.rsplit("/", 1)[-1]
            result = defaults.get(endpoint, 404)
            if isinstance(result, int):
                return httpx.Response(result, json={"cod": result, "message": "upstream error"})
            return httpx.Response(200, json=result)

        return httpx.MockTransport(handler)

    return factory
