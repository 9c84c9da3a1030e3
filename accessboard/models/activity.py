from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime


@dataclass(frozen=True)
class UserDayActivity:
    """
    One user's activity on one local calendar day. Pivot for every
    day-based aggregate; never persisted.
    """

    username: str
    day: date
    first_event_time: datetime
    had_early_event: bool
    had_late_event: bool


@dataclass(frozen=True)
class DayClass:
    is_early_day: bool
    is_late_day: bool


@dataclass(frozen=True)
class StreakResult:
    longest: int = 0
    current: int = 0
