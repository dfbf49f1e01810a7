"""Read-only projections of household tasks and reminders.

Day indices follow one convention everywhere: 0=Sunday .. 6=Saturday.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional, Tuple

WEEKDAY_NAMES = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")


def day_index(moment: datetime) -> int:
    """0=Sunday day index for a datetime (``weekday()`` is 0=Monday)."""
    return (moment.weekday() + 1) % 7


def parse_hhmm(value: str) -> int:
    """Minutes since midnight for an ``HH:MM`` string; a trailing ``:SS`` is ignored."""
    parts = value.strip().split(":")
    if not 1 <= len(parts) <= 3:
        raise ValueError(f"Invalid time of day: {value!r}")
    h, m, s = (int(p) for p in parts + ["0"] * (3 - len(parts)))
    if not (0 <= h < 24 and 0 <= m < 60 and 0 <= s < 60):
        raise ValueError(f"Invalid time of day: {value!r}")
    return h * 60 + m


def format_hhmm(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def _parse_days(raw: Any) -> Tuple[int, ...]:
    # Stores keep days as JSON text ('[1,3]' or '["1","3"]')
    if raw is None or raw == "":
        return ()
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            return ()
    return tuple(int(d) for d in raw)


@dataclass(frozen=True)
class TaskSnapshot:
    id: str
    title: str
    description: str
    time: str
    repeat_daily: bool = False
    days: Tuple[int, ...] = ()
    category: str = "personal"
    zone: Optional[int] = None
    priority: str = "medium"
    estimated_duration: int = 15
    enabled: bool = True

    @property
    def minutes(self) -> int:
        return parse_hhmm(self.time)

    def runs_on(self, day: int) -> bool:
        return self.repeat_daily or day in self.days

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> "TaskSnapshot":
        zone = row.get("zone")
        return cls(
            id=str(row["id"]),
            title=str(row.get("title") or ""),
            description=str(row.get("description") or ""),
            time=format_hhmm(parse_hhmm(str(row["time"]))),
            repeat_daily=bool(row.get("repeat_daily")),
            days=_parse_days(row.get("days")),
            category=str(row.get("category") or "personal"),
            zone=int(zone) if zone not in (None, "") else None,
            priority=str(row.get("priority") or "medium"),
            estimated_duration=int(row.get("estimated_duration") or 0),
            enabled=bool(row.get("enabled", True)),
        )


@dataclass(frozen=True)
class PersonalReminder:
    id: str
    user_id: str
    type: str
    message: str
    frequency: int
    enabled: bool = True
    last_triggered: Optional[str] = None

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> "PersonalReminder":
        return cls(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            type=str(row["type"]),
            message=str(row.get("message") or ""),
            frequency=int(row.get("frequency") or 0),
            enabled=bool(row.get("enabled", True)),
            last_triggered=row.get("last_triggered"),
        )
