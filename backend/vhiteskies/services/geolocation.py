from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from vhiteskies.errors import GeolocationError


class GeolocationProvider(Protocol):
    async def get_current_position(self, *, high_accuracy: bool = True) -> tuple[float, float]: ...


@dataclass(frozen=True)
class ReportedPosition:
    """Position (or failure) the browser reported from ``navigator.geolocation``."""

    latitude: float | None = None
    longitude: float | None = None
    error: str | None = None

    async def get_current_position(self, *, high_accuracy: bool = True) -> tuple[float, float]:
        if self.error is not None:
            raise GeolocationError(self.error)
        if self.latitude is None or self.longitude is None:
            raise GeolocationError("unavailable")
        return self.latitude, self.longitude


class UnavailableGeolocation:
    """Provider used when no device position source is attached."""

    async def get_current_position(self, *, high_accuracy: bool = True) -> tuple[float, float]:
        raise GeolocationError("unavailable")
