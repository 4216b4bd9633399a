from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import AsyncIterator, Awaitable, Callable

from vhiteskies.config import Settings
from vhiteskies.schemas import Location

logger = logging.getLogger("vhiteskies.suggester")

Geocoder = Callable[[str], Awaitable[list[Location]]]
SuggestionListener = Callable[[list[Location]], None]


@dataclass
class LocationSuggester:
    """Debounced free-text lookup of candidate locations.

    Each keystroke goes through ``submit``. Short input clears the list right
    away; longer input (re)starts the debounce timer, and only the last text
    typed before the window elapses is looked up. A lookup is never retried
    and a failed one leaves the current list untouched.
    """

    settings: Settings
    geocode: Geocoder
    listener: SuggestionListener | None = None
    query: str = field(default="", init=False)
    suggestions: list[Location] = field(default_factory=list, init=False)
    _pending: asyncio.Task | None = field(default=None, init=False, repr=False)
    _queues: list[asyncio.Queue] = field(default_factory=list, init=False, repr=False)

    def submit(self, text: str) -> None:
        self.query = text
        self._cancel_pending()
        if len(text) < self.settings.suggest_min_length:
            self._publish([])
            return
        self._pending = asyncio.get_running_loop().create_task(self._lookup(text))

    def reset(self) -> None:
        self._cancel_pending()
        self.query = ""
        self._publish([])

    async def wait_idle(self) -> None:
        task = self._pending
        if task is not None:
            await asyncio.wait({task})

    async def close(self) -> None:
        task = self._pending
        self._cancel_pending()
        if task is not None:
            await asyncio.wait({task})

    async def stream(self) -> AsyncIterator[list[Location]]:
        """Yield every suggestion list published after the call."""
        queue: asyncio.Queue[list[Location]] = asyncio.Queue()
        self._queues.append(queue)
        try:
            while True:
                yield await queue.get()
        finally:
            self._queues.remove(queue)

    async def _lookup(self, text: str) -> None:
        try:
            await asyncio.sleep(self.settings.suggest_debounce_seconds)
            try:
                results = await self.geocode(text)
            except Exception as exc:  # noqa: BLE001 - suggestion failures are only logged
                logger.warning("Suggestion lookup for %r failed: %s", text, exc)
                return
            self._publish(results[: self.settings.suggest_limit])
        finally:
            if self._pending is asyncio.current_task():
                self._pending = None

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _publish(self, results: list[Location]) -> None:
        self.suggestions = list(results)
        if self.listener is not None:
            self.listener(list(self.suggestions))
        for queue in self._queues:
            queue.put_nowait(list(self.suggestions))
