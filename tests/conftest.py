"""
Pytest configuration and shared fixtures.
"""

from datetime import datetime, timedelta, timezone

import pytest

from timetable.models import Event


def utc(year, month, day, hour=0, minute=0):
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


def make_event(event_id, start, end, summary="", description=""):
    return Event(id=event_id, start=start, end=end, summary=summary, description=description)


def vevent(uid, dtstart, dtend=None, summary="Lecture", location="", description="", extra=()):
    lines = ["BEGIN:VEVENT"]
    if uid:
        lines.append(f"UID:{uid}")
    if dtstart:
        lines.append(dtstart if ":" in dtstart else f"DTSTART:{dtstart}")
    if dtend:
        lines.append(dtend if ":" in dtend else f"DTEND:{dtend}")
    lines.append(f"SUMMARY:{summary}")
    if location:
        lines.append(f"LOCATION:{location}")
    if description:
        lines.append(f"DESCRIPTION:{description}")
    lines.extend(extra)
    lines.append("END:VEVENT")
    return lines


def make_feed(*blocks):
    lines = ["BEGIN:VCALENDAR", "VERSION:2.0", "PRODID:-//timetable-tests//EN"]
    for block in blocks:
        lines.extend(block)
    lines.append("END:VCALENDAR")
    return "\r\n".join(lines) + "\r\n"


# Two events on Monday 2 March 2026 and one three days later.
DAY_A = utc(2026, 3, 2)
DAY_B = DAY_A + timedelta(days=3)

SCENARIO_FEED = make_feed(
    vevent(
        "evt-1", "20260302T090000Z", "20260302T100000Z",
        summary="Systems lecture", location="Room 4",
        description="CS101-A\\, Section 2\\nIntro to Systems\\nWeekly lecture",
    ),
    vevent(
        "evt-2", "20260302T110000Z", "20260302T120000Z",
        summary="Maths tutorial", location="Room 9",
        description="MA201\\nLinear Algebra",
    ),
    vevent(
        "evt-3", "20260305T140000Z", "20260305T160000Z",
        summary="Systems lab", description="CS101-B\\nIntro to Systems",
    ),
)


@pytest.fixture
def scenario_feed():
    return SCENARIO_FEED


@pytest.fixture
def scenario_events():
    return [
        make_event("evt-1", utc(2026, 3, 2, 9), utc(2026, 3, 2, 10), "Systems lecture"),
        make_event("evt-2", utc(2026, 3, 2, 11), utc(2026, 3, 2, 12), "Maths tutorial"),
        make_event("evt-3", utc(2026, 3, 5, 14), utc(2026, 3, 5, 16), "Systems lab"),
    ]
