from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Any, List, Optional, Tuple, Union

from icalendar import Calendar

from .errors import MalformedFeed
from .models import Event


logger = logging.getLogger(__name__)


def extract_course_fields(description: str) -> Tuple[str, Optional[str]]:
    """Split a feed description into (course code, course name).

    The code is the first line up to the first comma, then up to the first
    hyphen: ``"CS101-A, Section 2"`` gives ``"CS101"``. The name is the second
    line verbatim, or None when the description has fewer than two lines.
    """
    lines = (description or "").split("\n")
    code = lines[0].split(",")[0].split("-")[0].strip()
    name = lines[1].rstrip("\r") if len(lines) > 1 else None
    return code, name


def _to_datetime(val: Any, tz: tzinfo) -> Optional[datetime]:
    dt = getattr(val, "dt", None)
    if isinstance(dt, datetime):
        # Floating times carry no zone of their own
        return dt if dt.tzinfo is not None else dt.replace(tzinfo=tz)
    if isinstance(dt, date):
        return datetime.combine(dt, time(), tzinfo=tz)
    return None


def _is_all_day(val: Any) -> bool:
    dt = getattr(val, "dt", None)
    return isinstance(dt, date) and not isinstance(dt, datetime)


def _text(component: Any, key: str) -> str:
    value = component.get(key)
    if value is None:
        return ""
    return str(value)


def coerce_event(component: Any, tz: tzinfo) -> Optional[Event]:
    raw_start = component.get("DTSTART")
    start = _to_datetime(raw_start, tz)
    summary = _text(component, "SUMMARY")
    if start is None:
        logger.warning("Dropping event %r: missing or unreadable DTSTART", summary)
        return None

    end = _to_datetime(component.get("DTEND"), tz)
    if end is None:
        raw_duration = component.get("DURATION")
        duration = getattr(raw_duration, "td", None) or getattr(raw_duration, "dt", None)
        if isinstance(duration, timedelta):
            end = start + duration
        elif _is_all_day(raw_start):
            end = start + timedelta(days=1)
        else:
            end = start

    if start >= end:
        logger.warning(
            "Dropping event %r: start %s is not before end %s",
            summary, start.isoformat(), end.isoformat(),
        )
        return None

    description = _text(component, "DESCRIPTION")
    course_code, course_name = extract_course_fields(description)
    uid = _text(component, "UID") or f"{summary}-{int(start.timestamp())}"

    return Event(
        id=uid,
        start=start,
        end=end,
        summary=summary,
        location=_text(component, "LOCATION"),
        description=description,
        course_code=course_code,
        course_name=course_name,
    )


def parse_calendar(data: Union[str, bytes], tz: tzinfo = timezone.utc) -> List[Event]:
    """Parse raw iCalendar text into events, in source order.

    ``tz`` is only applied to all-day and floating values; zoned and UTC
    values are kept as the feed encodes them.
    """
    if isinstance(data, bytes):
        data = data.decode("utf-8", errors="replace")
    if not data or not data.strip():
        raise MalformedFeed("Calendar feed is empty")

    try:
        cal = Calendar.from_ical(data)
    except Exception as e:
        raise MalformedFeed(f"Unable to parse calendar feed: {e}") from e
    if cal.name != "VCALENDAR":
        raise MalformedFeed(f"Expected a VCALENDAR, got {cal.name!r}")

    events: list[Event] = []
    dropped = 0
    for component in cal.walk("VEVENT"):
        ev = coerce_event(component, tz)
        if ev:
            events.append(ev)
        else:
            dropped += 1
    logger.debug("Parsed %d events (%d dropped)", len(events), dropped)
    return events
