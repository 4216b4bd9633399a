from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from vhiteskies.config import Settings
from vhiteskies.errors import NetworkError
from vhiteskies.schemas import AirQuality, HourlyPoint, Location, Observation
from vhiteskies.services.fetcher import RetryingFetcher


AQI_COMPONENTS = ("pm2_5", "pm10", "so2", "no2", "no", "o3", "co", "nh3")

AQI_LEVELS = {
    1: "Good",
    2: "Fair",
    3: "Moderate",
    4: "Poor",
    5: "Very Poor",
}


@dataclass
class WeatherClient:
    settings: Settings
    fetcher: RetryingFetcher

    async def fetch_observation(self, latitude: float, longitude: float) -> Observation:
        payload = await self.fetcher.fetch(
            f"{self.settings.openweather_base_url}/weather",
            params=self._point_params(latitude, longitude, units=True),
        )
        return parse_observation(payload)

    async def fetch_forecast(self, latitude: float, longitude: float) -> list[HourlyPoint]:
        url = f"{self.settings.openweather_base_url}/forecast"
        payload = await self.fetcher.fetch(url, params=self._point_params(latitude, longitude, units=True))
        hourly = parse_forecast(payload, limit=self.settings.hourly_points)
        if not hourly:
            raise NetworkError(transport="forecast payload has no entries", url=url)
        return hourly

    async def fetch_air_quality(self, latitude: float, longitude: float) -> AirQuality:
        payload = await self.fetcher.fetch(
            f"{self.settings.openweather_base_url}/air_pollution",
            params=self._point_params(latitude, longitude, units=False),
        )
        return parse_air_quality(payload)

    async def geocode(self, query: str) -> list[Location]:
        query = query.strip()
        if not query:
            return []

        # Suggestions are advisory, so a single attempt is enough
        payload = await self.fetcher.fetch(
            f"{self.settings.openweather_geo_url}/direct",
            params={"q": query, "limit": self.settings.suggest_limit, "appid": self.settings.openweather_api_key},
            attempts=1,
        )
        return parse_geocode(payload)[: self.settings.suggest_limit]

    def _point_params(self, latitude: float, longitude: float, *, units: bool) -> dict[str, Any]:
        params: dict[str, Any] = {
            "lat": latitude,
            "lon": longitude,
            "appid": self.settings.openweather_api_key,
        }
        if units:
            params["units"] = self.settings.units
        return params


def aqi_label(index: int | None) -> str:
    if index is None:
        return AQI_LEVELS[1]
    return AQI_LEVELS.get(index, AQI_LEVELS[1])


def parse_observation(payload: Any) -> Observation:
    if not isinstance(payload, dict):
        raise NetworkError(transport="observation payload is not an object")

    main = payload.get("main", {}) if isinstance(payload.get("main"), dict) else {}
    wind = payload.get("wind", {}) if isinstance(payload.get("wind"), dict) else {}
    system = payload.get("sys", {}) if isinstance(payload.get("sys"), dict) else {}
    condition = _first_condition(payload.get("weather"))

    temperature = _as_float(main.get("temp"))
    if temperature is None:
        raise NetworkError(transport="observation payload has no temperature")

    feels_like = _as_float(main.get("feels_like"))
    return Observation(
        temperature=temperature,
        feels_like=temperature if feels_like is None else feels_like,
        wind_speed=_as_float(wind.get("speed")) or 0.0,
        humidity=_as_float(main.get("humidity")) or 0.0,
        pressure=_as_float(main.get("pressure")) or 0.0,
        visibility=_as_float(payload.get("visibility")) or 0.0,
        condition_text=condition.get("description") or condition.get("main") or "",
        condition_icon=condition.get("icon") or "",
        place_name=payload.get("name") or None,
        country_code=system.get("country") or None,
    )


def parse_forecast(payload: Any, *, limit: int) -> list[HourlyPoint]:
    entries = payload.get("list", []) if isinstance(payload, dict) else []
    if not isinstance(entries, list):
        return []

    points: list[HourlyPoint] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        stamp = _as_float(entry.get("dt"))
        main = entry.get("main", {}) if isinstance(entry.get("main"), dict) else {}
        temperature = _as_float(main.get("temp"))
        if stamp is None or temperature is None:
            continue
        try:
            timestamp = datetime.fromtimestamp(stamp, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            continue
        condition = _first_condition(entry.get("weather"))
        points.append(
            HourlyPoint(
                timestamp=timestamp,
                temperature=temperature,
                condition_icon=condition.get("icon") or "",
                condition_text=condition.get("description") or "",
            )
        )

    points.sort(key=lambda point: point.timestamp)
    return points[:limit]


def parse_air_quality(payload: Any) -> AirQuality:
    entries = payload.get("list", []) if isinstance(payload, dict) else []
    if not isinstance(entries, list) or not entries or not isinstance(entries[0], dict):
        raise NetworkError(transport="air quality payload has no entries")

    first = entries[0]
    main = first.get("main", {}) if isinstance(first.get("main"), dict) else {}
    components = first.get("components", {}) if isinstance(first.get("components"), dict) else {}
    return AirQuality(index=main.get("aqi"), **{key: components.get(key) for key in AQI_COMPONENTS})


def parse_geocode(payload: Any) -> list[Location]:
    if not isinstance(payload, list):
        return []

    results: list[Location] = []
    for item in payload:
        if not isinstance(item, dict):
            continue
        latitude = _as_float(item.get("lat"))
        longitude = _as_float(item.get("lon"))
        if latitude is None or longitude is None:
            continue
        if not (-90 <= latitude <= 90 and -180 <= longitude <= 180):
            continue
        results.append(
            Location(
                name=item.get("name") or "Unknown",
                country_code=item.get("country") or "",
                admin_region=item.get("state") or None,
                latitude=latitude,
                longitude=longitude,
            )
        )
    return results


def _first_condition(value: Any) -> dict:
    if isinstance(value, list) and value and isinstance(value[0], dict):
        return value[0]
    return {}


def _as_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    return None
