from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

import httpx

from vhiteskies.config import Settings
from vhiteskies.errors import NetworkError

logger = logging.getLogger("vhiteskies.fetcher")

Sleep = Callable[[float], Awaitable[Any]]


@dataclass
class RetryingFetcher:
    settings: Settings
    client: httpx.AsyncClient | None = None
    sleep: Sleep = asyncio.sleep
    _owns_client: bool = field(default=False, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.client is None:
            self.client = httpx.AsyncClient(timeout=self.settings.request_timeout_seconds)
            self._owns_client = True

    async def close(self) -> None:
        if self._owns_client and self.client is not None:
            await self.client.aclose()

    async def fetch(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        attempts: int | None = None,
    ) -> Any:
        """GET ``url`` and decode JSON, retrying with a flat delay.

        ``attempts`` is the total number of tries, including the first one.
        """
        total = self.settings.fetch_retry_attempts if attempts is None else attempts
        total = max(1, total)
        failure = NetworkError(transport="no attempt made", url=url)

        for attempt in range(1, total + 1):
            try:
                response = await self.client.get(url, params=params)
                response.raise_for_status()
                return response.json()
            except httpx.HTTPStatusError as exc:
                failure = NetworkError(status_code=exc.response.status_code, url=url)
            except httpx.RequestError as exc:
                failure = NetworkError(transport=str(exc) or exc.__class__.__name__, url=url)
            except ValueError as exc:
                failure = NetworkError(transport=f"invalid JSON body: {exc}", url=url)

            if attempt >= total:
                break
            logger.warning("Request failed (%s/%s): %s", attempt, total, failure)
            await self.sleep(self.settings.fetch_retry_delay_seconds)

        raise failure
