"""
accessboard/models/analytics.py
Analytics read models: time windows, leaderboards, summaries, profiles, seasons.
All derived per request, never persisted.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class PeriodKind(str, Enum):
    DAY = "day"
    MONTH = "month"
    LAST7 = "last7"
    LAST30 = "last30"
    MTD = "mtd"
    SEASON = "season"


class Season(BaseModel):
    """Administrator-defined fixed date range with its own leaderboard scope."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    key: str
    name: str
    start_at: datetime
    end_at: datetime

    @field_validator("start_at", "end_at")
    @classmethod
    def _ensure_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @model_validator(mode="after")
    def _check_bounds(self) -> "Season":
        if self.start_at > self.end_at:
            raise ValueError(f"season {self.key!r} starts after it ends")
        return self


class TimeWindow(BaseModel):
    """Concrete [start, end] range (both inclusive) resolved for one request."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime
    period_kind: PeriodKind

    @model_validator(mode="after")
    def _check_order(self) -> "TimeWindow":
        if self.start > self.end:
            raise ValueError("window start must not be after end")
        return self

    @property
    def is_month_like(self) -> bool:
        """Distinct-day semantics apply to every period except a single day."""
        return self.period_kind != PeriodKind.DAY


class _Payload(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class LeaderboardEntry(_Payload):
    id: str = Field(description="Username or lock id")
    count: int = Field(ge=0)


class HourCount(_Payload):
    hour: int = Field(ge=0, le=23)
    count: int = Field(ge=0)


class DateCount(_Payload):
    date: datetime = Field(description="Start of the neighbouring day or month")
    count: int = Field(ge=0)


class RangeSummary(_Payload):
    """Aggregates over every entry matching the current filter and window."""

    total_entries: int = Field(ge=0)
    unique_users: int = Field(ge=0)
    most_active_user: Optional[LeaderboardEntry] = None
    most_used_lock: Optional[LeaderboardEntry] = Field(default=None, description="Day period only")
    busiest_hour: Optional[HourCount] = Field(default=None, description="Day period only")
    first_entry_time: Optional[datetime] = None
    last_entry_time: Optional[datetime] = None


class Achievement(_Payload):
    key: str
    title: str
    description: str


class UserProfile(_Payload):
    """Lifetime stats for one username."""

    display_username: str
    total_visits: int = Field(ge=0, description="Distinct primary-lock days, lifetime")
    unique_locks_visited: int = Field(ge=0)
    first_seen: Optional[datetime] = None
    last_seen: Optional[datetime] = None
    longest_streak_days: int = Field(ge=0)
    achievements: List[Achievement] = Field(default_factory=list)


class SeasonProgress(_Payload):
    points: int = Field(ge=0, description="Distinct primary-lock days inside the season")
    rank: Optional[int] = Field(default=None, ge=1)
    current_streak_days: int = Field(ge=0)
    longest_streak_days: int = Field(ge=0)
    level: int = Field(ge=0)
    next_level_at: Optional[int] = None


class CohortMonth(BaseModel):
    """New vs returning users for one calendar month."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    month: str
    new: int = Field(ge=0)
    returning: int = Field(ge=0)
