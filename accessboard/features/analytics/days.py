"""
accessboard/features/analytics/days.py

Pure day-level reducers: (entries, tz) -> per user-day activity.

Every day and hour boundary here is taken in the reference timezone.
Mixing UTC and local boundaries silently corrupts streaks and leaderboards.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime, tzinfo
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from accessboard.models.activity import DayClass, UserDayActivity
from accessboard.models.entry import Entry

DEFAULT_EARLY_HOUR = 8
DEFAULT_LATE_HOUR = 22

UNKNOWN_USER = "unknown"


def local_day(instant: datetime, tz: tzinfo) -> date:
    return instant.astimezone(tz).date()


def local_hour(instant: datetime, tz: tzinfo) -> int:
    return instant.astimezone(tz).hour


def user_key(entry: Entry) -> str:
    return entry.username if entry.username is not None else UNKNOWN_USER


def chronological(entries: Iterable[Entry]) -> List[Entry]:
    """Ascending by entry_time, id as tie-break."""
    return sorted(entries, key=lambda e: (e.entry_time, e.id))


def classify_day(
    event_times: Sequence[datetime],
    tz: tzinfo,
    early_hour: int = DEFAULT_EARLY_HOUR,
    late_hour: int = DEFAULT_LATE_HOUR,
) -> DayClass:
    """
    Classify one user-day.

    Early: the first event falls strictly before `early_hour`.
    Late: any event at or after `late_hour`. The day is credited once.
    """
    if not event_times:
        return DayClass(is_early_day=False, is_late_day=False)
    first = min(event_times)
    return DayClass(
        is_early_day=local_hour(first, tz) < early_hour,
        is_late_day=any(local_hour(t, tz) >= late_hour for t in event_times),
    )


def user_day_activity(
    entries: Iterable[Entry],
    tz: tzinfo,
    early_hour: int = DEFAULT_EARLY_HOUR,
    late_hour: int = DEFAULT_LATE_HOUR,
) -> List[UserDayActivity]:
    """Project entries onto one record per (username, local day), sorted by both."""
    grouped: Dict[Tuple[str, date], List[datetime]] = defaultdict(list)
    for entry in chronological(entries):
        grouped[(user_key(entry), local_day(entry.entry_time, tz))].append(entry.entry_time)

    activities = []
    for (username, day), times in sorted(grouped.items()):
        day_class = classify_day(times, tz, early_hour, late_hour)
        activities.append(
            UserDayActivity(
                username=username,
                day=day,
                first_event_time=times[0],
                had_early_event=day_class.is_early_day,
                had_late_event=day_class.is_late_day,
            )
        )
    return activities


def active_days_by_user(activities: Iterable[UserDayActivity]) -> Dict[str, List[date]]:
    """username -> ascending, de-duplicated active days."""
    days: Dict[str, set] = defaultdict(set)
    for activity in activities:
        days[activity.username].add(activity.day)
    return {username: sorted(values) for username, values in days.items()}


def distinct_day_counts(
    source: Union[Iterable[Entry], Iterable[UserDayActivity]],
    tz: Optional[tzinfo] = None,
) -> Dict[str, int]:
    """
    username -> number of distinct local days with at least one event.

    Accepts raw entries (tz required) or precomputed activities.
    """
    pairs = set()
    for item in source:
        if isinstance(item, UserDayActivity):
            pairs.add((item.username, item.day))
        else:
            if tz is None:
                raise ValueError("tz is required when counting raw entries")
            pairs.add((user_key(item), local_day(item.entry_time, tz)))

    counts: Dict[str, int] = defaultdict(int)
    for username, _ in pairs:
        counts[username] += 1
    return dict(counts)


def early_day_counts(activities: Iterable[UserDayActivity]) -> Dict[str, int]:
    counts: Dict[str, int] = defaultdict(int)
    for activity in activities:
        if activity.had_early_event:
            counts[activity.username] += 1
    return dict(counts)


def late_day_counts(activities: Iterable[UserDayActivity]) -> Dict[str, int]:
    counts: Dict[str, int] = defaultdict(int)
    for activity in activities:
        if activity.had_late_event:
            counts[activity.username] += 1
    return dict(counts)


def first_active_month_by_user(activities: Iterable[UserDayActivity]) -> Dict[str, str]:
    """username -> 'YYYY-MM' of the earliest active day."""
    firsts: Dict[str, date] = {}
    for activity in activities:
        known = firsts.get(activity.username)
        if known is None or activity.day < known:
            firsts[activity.username] = activity.day
    return {username: day.strftime("%Y-%m") for username, day in firsts.items()}
