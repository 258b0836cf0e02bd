from __future__ import annotations


class TimetableError(Exception):
    pass


class NetworkError(TimetableError):
    """The feed could not be retrieved (offline, DNS, timeout, non-2xx)."""


class MalformedFeed(TimetableError):
    """Text was retrieved but is not calendar data."""


class EmptyCalendarUrl(TimetableError):
    """No calendar URL has been configured yet."""
