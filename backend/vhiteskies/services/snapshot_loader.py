from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from vhiteskies.errors import NetworkError
from vhiteskies.schemas import Location, WeatherSnapshot
from vhiteskies.services.weather_client import WeatherClient

logger = logging.getLogger("vhiteskies.snapshot")

FEED_NAMES = ("observation", "forecast", "air_quality")


def _utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


@dataclass
class WeatherSnapshotLoader:
    weather_client: WeatherClient
    clock: Callable[[], datetime] = _utc_now

    async def load(self, location: Location) -> WeatherSnapshot:
        """Fetch all three feeds for ``location`` and combine them.

        Either every feed succeeds and a snapshot is returned, or the first
        failing feed's ``NetworkError`` is raised and nothing is built.
        """
        latitude, longitude = location.latitude, location.longitude
        results = await asyncio.gather(
            self.weather_client.fetch_observation(latitude, longitude),
            self.weather_client.fetch_forecast(latitude, longitude),
            self.weather_client.fetch_air_quality(latitude, longitude),
            return_exceptions=True,
        )

        for feed, result in zip(FEED_NAMES, results):
            if isinstance(result, NetworkError):
                logger.warning("Feed %s failed for %s: %s", feed, location.name, result)
                raise result
            if isinstance(result, BaseException):
                raise result

        observation, hourly, air_quality = results
        return WeatherSnapshot(
            location=location,
            observation=observation,
            hourly=hourly,
            air_quality=air_quality,
            fetched_at=self.clock(),
        )
