from __future__ import annotations

from datetime import datetime, time, timedelta, timezone, tzinfo
from enum import IntEnum
from typing import Dict, Iterable, List, Optional, Tuple

from .models import Event


DEFAULT_MAX_SEARCH_DAYS = 365


class Direction(IntEnum):
    BACKWARD = -1
    FORWARD = 1


def start_of_day(instant: datetime, tz: tzinfo = timezone.utc) -> datetime:
    """Midnight of the calendar day ``instant`` falls on, as seen in ``tz``."""
    local = instant.astimezone(tz)
    return datetime.combine(local.date(), time(), tzinfo=tz)


class DayIndex:
    """Events grouped by the day their start falls on.

    Keys are timezone-aware midnights in a single zone. Each group is sorted
    by start; events that start at the same instant keep their input order.
    An event running past midnight is only listed under its start day.
    """

    def __init__(self, days: Dict[datetime, Tuple[Event, ...]], tz: tzinfo = timezone.utc) -> None:
        self.tz = tz
        self._days = days
        self._ordered: List[datetime] = sorted(days)

    @classmethod
    def build(cls, events: Iterable[Event], tz: tzinfo = timezone.utc) -> "DayIndex":
        grouped: Dict[datetime, List[Event]] = {}
        for ev in events:
            grouped.setdefault(start_of_day(ev.start, tz), []).append(ev)
        days = {
            key: tuple(sorted(group, key=lambda e: e.start))
            for key, group in grouped.items()
        }
        return cls(days, tz)

    def key_of(self, instant: datetime) -> datetime:
        return start_of_day(instant, self.tz)

    def events_on(self, day: datetime) -> Tuple[Event, ...]:
        return self._days.get(self.key_of(day), ())

    def has_events(self, day: datetime) -> bool:
        return self.key_of(day) in self._days

    def _step(self, day: datetime, offset: int) -> datetime:
        # Calendar arithmetic on the date keeps keys on midnight across DST changes
        return datetime.combine(day.date() + timedelta(days=offset), time(), tzinfo=self.tz)

    def nearest_day_with_events(
        self,
        from_day: datetime,
        direction: Direction,
        max_search_days: int = DEFAULT_MAX_SEARCH_DAYS,
    ) -> Optional[datetime]:
        """First day with events strictly after/before ``from_day``.

        Gives up after ``max_search_days`` steps and returns None.
        """
        if not self._days:
            return None
        origin = self.key_of(from_day)
        for i in range(1, max_search_days + 1):
            candidate = self._step(origin, i * int(direction))
            if candidate in self._days:
                return candidate
        return None

    def days(self) -> List[datetime]:
        return list(self._ordered)

    @property
    def first_day(self) -> Optional[datetime]:
        return self._ordered[0] if self._ordered else None

    @property
    def last_day(self) -> Optional[datetime]:
        return self._ordered[-1] if self._ordered else None

    def first_day_on_or_after(self, day: datetime) -> Optional[datetime]:
        key = self.key_of(day)
        for candidate in self._ordered:
            if candidate >= key:
                return candidate
        return None

    @property
    def is_empty(self) -> bool:
        return not self._days

    def __len__(self) -> int:
        return len(self._days)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DayIndex):
            return NotImplemented
        return self.tz == other.tz and self._days == other._days

    def __repr__(self) -> str:
        return f"DayIndex(days={len(self._days)}, tz={self.tz})"
