from __future__ import annotations

GEOLOCATION_REASONS = ("denied", "unavailable", "timeout")


class DashboardError(Exception):
    """Base class for errors raised by the dashboard core."""


class NetworkError(DashboardError):
    def __init__(self, *, status_code: int | None = None, transport: str | None = None, url: str | None = None) -> None:
        self.status_code = status_code
        self.transport = transport
        self.url = url
        super().__init__(self._describe())

    def _describe(self) -> str:
        target = f" for {self.url}" if self.url else ""
        if self.status_code is not None:
            return f"Upstream returned status {self.status_code}{target}"
        return f"Transport failure{target}: {self.transport or 'no response'}"


class GeolocationError(DashboardError):
    def __init__(self, reason: str) -> None:
        if reason not in GEOLOCATION_REASONS:
            reason = "unavailable"
        self.reason = reason
        super().__init__(f"Geolocation {reason}")


class StaleResultDiscarded(DashboardError):
    """A snapshot load finished after a newer selection was issued."""

    def __init__(self, generation: int, latest: int) -> None:
        self.generation = generation
        self.latest = latest
        super().__init__(f"Discarded result of load #{generation}; latest is #{latest}")
