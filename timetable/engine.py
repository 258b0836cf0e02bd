from __future__ import annotations

import asyncio
import enum
import logging
from datetime import datetime, timezone, tzinfo
from typing import Callable, Optional, Tuple

import httpx

from .cursor import NavigationCursor
from .day_index import DayIndex
from .errors import EmptyCalendarUrl, MalformedFeed, NetworkError
from .fetcher import describe_url, fetch_calendar
from .models import Event
from .parser import parse_calendar
from .store import CALENDAR_URL_KEY, SettingsStore
from .tracker import DEFAULT_INTERVAL_SECONDS, NextEventTracker


logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class LoadState(str, enum.Enum):
    NO_CALENDAR = "no_calendar"
    READY = "ready"
    ERROR = "error"


class TimetableEngine:
    """Owns the loaded events and everything derived from them.

    Readers always see a complete event set: a refresh builds the new index
    off to the side and swaps it in only once fetch and parse have succeeded.
    Refreshes never overlap. Each one takes a sequence number and its result
    is dropped if a newer refresh was requested or ``cancel_pending`` was
    called in the meantime.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        store: SettingsStore,
        tz: tzinfo = timezone.utc,
        clock: Callable[[], datetime] = utcnow,
        next_event_interval: float = DEFAULT_INTERVAL_SECONDS,
        reset_cursor_on_refresh: bool = False,
    ) -> None:
        self.client = client
        self.store = store
        self.tz = tz
        self.clock = clock
        self.reset_cursor_on_refresh = reset_cursor_on_refresh

        self.events: Tuple[Event, ...] = ()
        self.index = DayIndex.build((), tz)
        self.cursor = NavigationCursor(self.index)
        self.tracker = NextEventTracker(interval=next_event_interval)

        self.state = LoadState.NO_CALENDAR
        self.last_error: Optional[str] = None

        self._lock = asyncio.Lock()
        self._seq = 0
        self._loaded_url: Optional[str] = None

    # -- configuration -----------------------------------------------------

    @property
    def calendar_url(self) -> Optional[str]:
        return self.store.get(CALENDAR_URL_KEY) or None

    def require_calendar_url(self) -> str:
        url = self.calendar_url
        if not url:
            raise EmptyCalendarUrl("No calendar URL configured")
        return url

    async def set_calendar_url(self, url: Optional[str]) -> LoadState:
        url = (url or "").strip() or None
        self.store.set(CALENDAR_URL_KEY, url)
        if url is None:
            self.cancel_pending()
            self._clear()
            return self.state
        logger.info("Calendar URL set (host %s)", describe_url(url))
        return await self.refresh()

    # -- ingestion ---------------------------------------------------------

    def cancel_pending(self) -> None:
        self._seq += 1

    async def refresh(self) -> LoadState:
        self._seq += 1
        seq = self._seq
        async with self._lock:
            if seq != self._seq:
                logger.debug("Refresh #%d superseded before it started", seq)
                return self.state
            try:
                url = self.require_calendar_url()
            except EmptyCalendarUrl:
                logger.info("No calendar configured yet")
                self._clear()
                return self.state

            logger.info("Refreshing calendar from %s", describe_url(url))
            try:
                text = await fetch_calendar(self.client, url)
                events = parse_calendar(text, self.tz)
            except (NetworkError, MalformedFeed) as e:
                if seq != self._seq:
                    return self.state
                logger.error("Refresh failed: %s", e)
                self.state = LoadState.ERROR
                self.last_error = str(e)
                return self.state

            if seq != self._seq:
                logger.info("Discarding stale refresh #%d", seq)
                return self.state
            self._apply(events, url)
            return self.state

    def _apply(self, events: list[Event], url: str) -> None:
        now = self.clock()
        index = DayIndex.build(events, self.tz)
        reset = (
            self.reset_cursor_on_refresh
            or url != self._loaded_url
            or self.cursor.current_day is None
        )

        self.events = tuple(events)
        self.index = index
        self.cursor.rebind(index)
        if reset:
            self.cursor.initialize(self.events, now)
        self.tracker.recompute(self.events, now)

        self._loaded_url = url
        self.state = LoadState.READY
        self.last_error = None
        logger.info("Refresh successful: %d events on %d days", len(self.events), len(index))

    def _clear(self) -> None:
        self.events = ()
        self.index = DayIndex.build((), self.tz)
        self.cursor = NavigationCursor(self.index)
        self.tracker.recompute((), self.clock())
        self._loaded_url = None
        self.state = LoadState.NO_CALENDAR
        self.last_error = None

    async def run_refresh_loop(self, stop_event: asyncio.Event, interval: float) -> None:
        """Refresh now, then every ``interval`` seconds until ``stop_event`` is set.

        An ``interval`` of 0 or less only does the first refresh.
        """
        await self.refresh()
        if interval <= 0:
            return
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass
            if stop_event.is_set():
                break
            await self.refresh()

    # -- view lifecycle ----------------------------------------------------

    async def activate(self) -> LoadState:
        """The view became visible: start ticking and load the feed."""
        self.tracker.start(self.clock)
        return await self.refresh()

    async def deactivate(self) -> None:
        self.cancel_pending()
        await self.tracker.stop()

    # -- queries -----------------------------------------------------------

    @property
    def current_day(self) -> Optional[datetime]:
        return self.cursor.current_day

    def current_day_events(self) -> Tuple[Event, ...]:
        return self.cursor.events()

    def can_move_prev(self) -> bool:
        return self.cursor.can_move_prev()

    def can_move_next(self) -> bool:
        return self.cursor.can_move_next()

    def move_prev(self) -> Optional[datetime]:
        return self.cursor.move_prev()

    def move_next(self) -> Optional[datetime]:
        return self.cursor.move_next()

    def go_today(self) -> datetime:
        return self.cursor.jump_to(self.clock())

    def next_event(self) -> Optional[Event]:
        return self.tracker.current
