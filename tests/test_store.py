"""
Tests for the on-disk settings store.
"""

import json

from timetable.store import CALENDAR_URL_KEY, SettingsStore


def test_missing_file_returns_none(tmp_path):
    assert SettingsStore(tmp_path / "missing.json").get(CALENDAR_URL_KEY) is None


def test_set_and_get(tmp_path):
    path = tmp_path / "nested" / "settings.json"
    store = SettingsStore(path)
    store.set(CALENDAR_URL_KEY, "https://cal.example.org/feed.ics")

    assert SettingsStore(path).get(CALENDAR_URL_KEY) == "https://cal.example.org/feed.ics"
    assert json.loads(path.read_text(encoding="utf-8")) == {
        CALENDAR_URL_KEY: "https://cal.example.org/feed.ics"
    }
    assert not path.with_suffix(".json.tmp").exists()


def test_set_none_removes_key(tmp_path):
    store = SettingsStore(tmp_path / "settings.json")
    store.set(CALENDAR_URL_KEY, "https://cal.example.org/feed.ics")
    store.set("other", "kept")
    store.set(CALENDAR_URL_KEY, None)
    assert store.get(CALENDAR_URL_KEY) is None
    assert store.get("other") == "kept"


def test_corrupt_file_is_ignored(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("{not json", encoding="utf-8")
    store = SettingsStore(path)
    assert store.get(CALENDAR_URL_KEY) is None
    store.set(CALENDAR_URL_KEY, "x")
    assert store.get(CALENDAR_URL_KEY) == "x"
