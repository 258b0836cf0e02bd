from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from .day_index import DayIndex, Direction, start_of_day
from .models import Event
from .tracker import soonest_unfinished


class NavigationCursor:
    """The day currently being viewed.

    ``current_day`` is always a midnight in the index's zone but does not
    have to be a day with events.
    """

    def __init__(self, index: DayIndex, current_day: Optional[datetime] = None) -> None:
        self.index = index
        self.current_day = index.key_of(current_day) if current_day is not None else None

    def rebind(self, index: DayIndex) -> None:
        self.index = index
        if self.current_day is not None:
            self.current_day = index.key_of(self.current_day)

    def initialize(self, events: Iterable[Event], now: datetime) -> datetime:
        """Land on the most relevant day for ``now``.

        In order: the day of the soonest event that has not ended yet, the
        first day with events from today on, the last day with events, today.
        """
        upcoming = soonest_unfinished(events, now)
        if upcoming is not None:
            day = self.index.key_of(upcoming.start)
        else:
            day = (
                self.index.first_day_on_or_after(now)
                or self.index.last_day
                or start_of_day(now, self.index.tz)
            )
        self.current_day = day
        return day

    def jump_to(self, instant: datetime) -> datetime:
        self.current_day = self.index.key_of(instant)
        return self.current_day

    def _target(self, direction: Direction) -> Optional[datetime]:
        if self.current_day is None:
            return None
        return self.index.nearest_day_with_events(self.current_day, direction)

    def move_next(self) -> Optional[datetime]:
        target = self._target(Direction.FORWARD)
        if target is not None:
            self.current_day = target
        return self.current_day

    def move_prev(self) -> Optional[datetime]:
        target = self._target(Direction.BACKWARD)
        if target is not None:
            self.current_day = target
        return self.current_day

    def can_move_next(self) -> bool:
        return self._target(Direction.FORWARD) is not None

    def can_move_prev(self) -> bool:
        return self._target(Direction.BACKWARD) is not None

    def events(self) -> tuple:
        if self.current_day is None:
            return ()
        return self.index.events_on(self.current_day)
