"""
Tests for the HTTP surface, run against a mocked feed server.
"""

import asyncio
import time

import httpx
import pytest
from fastapi.testclient import TestClient

from timetable.config import Settings
from timetable.main import create_app
from timetable.store import CALENDAR_URL_KEY, SettingsStore

from conftest import DAY_A, DAY_B, SCENARIO_FEED


URL = "https://cal.example.org/student.ics"


def _feed_handler(request):
    if request.url.path == "/student.ics":
        return httpx.Response(200, text=SCENARIO_FEED)
    return httpx.Response(404)


async def _hanging_handler(request):
    await asyncio.sleep(3600)


def _settings(tmp_path, **kwargs):
    kwargs.setdefault("calendar_url", URL)
    return Settings(data_dir=tmp_path, refresh_interval_seconds=0, **kwargs)


def _wait_for_load(client, timeout=5.0):
    deadline = time.monotonic() + timeout
    body = client.get("/day").json()
    while body["state"] == "no_calendar" and time.monotonic() < deadline:
        time.sleep(0.01)
        body = client.get("/day").json()
    return body


@pytest.fixture
def client(tmp_path):
    app = create_app(_settings(tmp_path), transport=httpx.MockTransport(_feed_handler))
    with TestClient(app) as c:
        _wait_for_load(c)
        yield c


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.text == "OK"


def test_day_lands_on_latest_past_day(client):
    # every scenario event lies in the past, so the last day with events is shown
    body = client.get("/day").json()
    assert body["state"] == "ready"
    assert body["day"] == DAY_B.isoformat()
    assert [e["id"] for e in body["events"]] == ["evt-3"]
    assert body["can_move_prev"] is True
    assert body["can_move_next"] is False
    assert body["next_event_id"] is None
    assert client.get("/next-event").json() is None


def test_move_prev_and_next(client):
    body = client.post("/day/prev").json()
    assert body["day"] == DAY_A.isoformat()
    first = body["events"][0]
    assert first["course_code"] == "CS101"
    assert first["course_name"] == "Intro to Systems"
    assert first["duration_minutes"] == 60
    assert body["can_move_prev"] is False

    # no-op at the first day
    assert client.post("/day/prev").json()["day"] == DAY_A.isoformat()
    assert client.post("/day/next").json()["day"] == DAY_B.isoformat()


def test_clear_and_set_calendar_url(client):
    body = client.put("/settings/calendar-url", json={"url": None}).json()
    assert body["state"] == "no_calendar"
    assert body["events"] == []
    assert client.get("/settings/calendar-url").json() == {"url": None}

    body = client.put("/settings/calendar-url", json={"url": URL}).json()
    assert body["state"] == "ready"
    assert client.get("/settings/calendar-url").json() == {"url": URL}


def test_unreachable_calendar_reports_error(client):
    body = client.put("/settings/calendar-url", json={"url": "https://cal.example.org/gone.ics"}).json()
    assert body["state"] == "error"
    assert body["error"]
    # previous day view stays available
    assert body["day"] == DAY_B.isoformat()
    assert len(body["events"]) == 1


def test_refresh_requires_token(tmp_path):
    settings = _settings(tmp_path, refresh_token="s3cret")
    app = create_app(settings, transport=httpx.MockTransport(_feed_handler))
    with TestClient(app) as c:
        assert c.post("/refresh").status_code == 401
        assert c.post("/refresh", headers={"X-Refresh-Token": "nope"}).status_code == 401
        resp = c.post("/refresh", headers={"X-Refresh-Token": "s3cret"})
        assert resp.status_code == 200
        assert resp.json() == {"status": "ready", "events": 3, "error": None}


def test_starts_without_calendar(tmp_path):
    app = create_app(_settings(tmp_path, calendar_url=None), transport=httpx.MockTransport(_feed_handler))
    with TestClient(app) as c:
        body = c.get("/day").json()
    assert body["state"] == "no_calendar"
    assert body["day"] is None


def test_serves_requests_while_first_load_is_pending(tmp_path):
    app = create_app(_settings(tmp_path), transport=httpx.MockTransport(_hanging_handler))
    with TestClient(app) as c:
        assert c.get("/health").status_code == 200
        body = c.get("/day").json()
    assert body["day"] is None
    assert body["events"] == []


def test_starts_with_invalid_stored_url(tmp_path):
    bad = "https://[cal.example.org/student.ics"
    SettingsStore(tmp_path / "settings.json").set(CALENDAR_URL_KEY, bad)
    app = create_app(_settings(tmp_path, calendar_url=None), transport=httpx.MockTransport(_feed_handler))
    with TestClient(app) as c:
        body = _wait_for_load(c)
        assert body["state"] == "error"
        assert c.get("/health").status_code == 200

        body = c.put("/settings/calendar-url", json={"url": URL}).json()
        assert body["state"] == "ready"
