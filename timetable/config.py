from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import tzinfo
from pathlib import Path
from typing import Optional

from zoneinfo import ZoneInfo


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    data_dir: Path = Path("data")
    timezone: str = "UTC"
    calendar_url: Optional[str] = None
    refresh_interval_seconds: int = 900
    next_event_interval_seconds: int = 60
    refresh_token: Optional[str] = None
    reset_cursor_on_refresh: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            data_dir=Path(os.environ.get("DATA_DIR", "data")).resolve(),
            timezone=os.environ.get("TIMETABLE_TZ", "UTC"),
            calendar_url=os.environ.get("CALENDAR_URL") or None,
            refresh_interval_seconds=int(os.environ.get("REFRESH_INTERVAL_SECONDS", "900")),
            next_event_interval_seconds=int(os.environ.get("NEXT_EVENT_INTERVAL_SECONDS", "60")),
            refresh_token=os.environ.get("REFRESH_TOKEN") or None,
            reset_cursor_on_refresh=_env_bool("RESET_CURSOR_ON_REFRESH", False),
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        )

    @property
    def tz(self) -> tzinfo:
        return ZoneInfo(self.timezone)

    @property
    def settings_path(self) -> Path:
        return self.data_dir / "settings.json"
