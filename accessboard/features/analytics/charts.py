"""
accessboard/features/analytics/charts.py

Time series for the analytics panel, computed over primary-lock entries in
the window. Day, week and month series are zero-filled across the window.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from datetime import date, timedelta, tzinfo
from typing import Dict, Iterable, List, Sequence, Set

from accessboard.features.analytics.days import local_day, local_hour, user_key
from accessboard.models.analytics import TimeWindow
from accessboard.models.entry import Entry


def week_start(day: date) -> date:
    """ISO week start (Monday)."""
    return day - timedelta(days=day.weekday())


def month_key(day: date) -> str:
    return day.strftime("%Y-%m")


def window_days(window: TimeWindow, tz: tzinfo) -> List[date]:
    first = local_day(window.start, tz)
    last = local_day(window.end, tz)
    return [first + timedelta(days=offset) for offset in range((last - first).days + 1)]


def _distinct(pairs: Iterable[tuple]) -> Dict[object, int]:
    users: Dict[object, Set[str]] = defaultdict(set)
    for bucket, username in pairs:
        users[bucket].add(username)
    return {bucket: len(names) for bucket, names in users.items()}


def entries_per_day(entries: Sequence[Entry], days: Sequence[date], tz: tzinfo) -> List[dict]:
    counts = Counter(local_day(e.entry_time, tz) for e in entries)
    return [{"day": day.isoformat(), "count": counts.get(day, 0)} for day in days]


def entries_per_hour(entries: Sequence[Entry], tz: tzinfo) -> List[dict]:
    counts = Counter(local_hour(e.entry_time, tz) for e in entries)
    return [{"hour": hour, "count": counts.get(hour, 0)} for hour in range(24)]


def dau_per_day(entries: Sequence[Entry], days: Sequence[date], tz: tzinfo) -> List[dict]:
    counts = _distinct((local_day(e.entry_time, tz), user_key(e)) for e in entries)
    return [{"day": day.isoformat(), "count": counts.get(day, 0)} for day in days]


def dau_per_hour(entries: Sequence[Entry], tz: tzinfo) -> List[dict]:
    counts = _distinct((local_hour(e.entry_time, tz), user_key(e)) for e in entries)
    return [{"hour": hour, "count": counts.get(hour, 0)} for hour in range(24)]


def wau_by_week(entries: Sequence[Entry], days: Sequence[date], tz: tzinfo) -> List[dict]:
    counts = _distinct((week_start(local_day(e.entry_time, tz)), user_key(e)) for e in entries)
    weeks = sorted({week_start(day) for day in days})
    return [{"week": week.isoformat(), "count": counts.get(week, 0)} for week in weeks]


def mau_by_month(entries: Sequence[Entry], days: Sequence[date], tz: tzinfo) -> List[dict]:
    counts = _distinct((month_key(local_day(e.entry_time, tz)), user_key(e)) for e in entries)
    months = sorted({month_key(day) for day in days})
    return [{"month": month, "count": counts.get(month, 0)} for month in months]


def chart_series(window: TimeWindow, entries: Sequence[Entry], tz: tzinfo) -> Dict[str, List[dict]]:
    days = window_days(window, tz)
    return {
        "entriesPerDay": entries_per_day(entries, days, tz),
        "entriesPerHour": entries_per_hour(entries, tz),
        "dauPerDay": dau_per_day(entries, days, tz),
        "dauPerHour": dau_per_hour(entries, tz),
        "wauByWeek": wau_by_week(entries, days, tz),
        "mauByMonth": mau_by_month(entries, days, tz),
    }
