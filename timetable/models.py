from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class Event:
    id: str
    start: datetime  # timezone-aware
    end: datetime    # timezone-aware, always after start
    summary: str = ""
    location: str = ""
    description: str = ""
    course_code: str = ""
    course_name: Optional[str] = None

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)
