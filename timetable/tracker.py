from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Callable, Iterable, Optional, Tuple

from .models import Event


logger = logging.getLogger(__name__)


DEFAULT_INTERVAL_SECONDS = 60.0


def soonest_unfinished(events: Iterable[Event], now: datetime) -> Optional[Event]:
    """The earliest-starting event that has not ended at ``now``.

    Ties on start go to the event that comes first in ``events``.
    """
    upcoming = [e for e in events if e.end > now]
    if not upcoming:
        return None
    return min(upcoming, key=lambda e: e.start)


class NextEventTracker:
    """Keeps ``current`` pointing at the next thing happening.

    The host drives it, either by calling ``tick`` itself or by running the
    built-in loop between ``start`` and ``stop``.
    """

    def __init__(self, interval: float = DEFAULT_INTERVAL_SECONDS) -> None:
        self.interval = interval
        self.current: Optional[Event] = None
        self._events: Tuple[Event, ...] = ()
        self._stop_event: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task] = None

    def recompute(self, events: Iterable[Event], now: datetime) -> Optional[Event]:
        self._events = tuple(events)
        return self.tick(now)

    def tick(self, now: datetime) -> Optional[Event]:
        self.current = soonest_unfinished(self._events, now)
        return self.current

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _run(self, clock: Callable[[], datetime], stop_event: asyncio.Event) -> None:
        while not stop_event.is_set():
            try:
                self.tick(clock())
            except Exception as e:
                logger.error("Next-event tick failed: %s", e)
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass

    def start(self, clock: Callable[[], datetime]) -> None:
        """Tick now and then every ``interval`` seconds. Needs a running loop."""
        if self.running:
            return
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run(clock, self._stop_event))
        logger.debug("Next-event tracker started (every %ss)", self.interval)

    async def stop(self) -> None:
        if self._stop_event is not None:
            self._stop_event.set()
        if self._task is not None:
            await self._task
        self._task = None
        self._stop_event = None
        logger.debug("Next-event tracker stopped")
