"""
accessboard/features/analytics/leaderboards.py

Ranked top-N leaderboards per category.
Stable sort: count (desc), then id (asc) for tie-breaking.
"""

from __future__ import annotations

from collections import Counter
from datetime import tzinfo
from typing import Dict, Iterable, List, Mapping, Optional

from accessboard.features.analytics.days import (
    DEFAULT_EARLY_HOUR,
    DEFAULT_LATE_HOUR,
    active_days_by_user,
    distinct_day_counts,
    early_day_counts,
    late_day_counts,
    user_day_activity,
    user_key,
)
from accessboard.features.analytics.streaks import longest_streaks
from accessboard.models.analytics import LeaderboardEntry, TimeWindow
from accessboard.models.entry import Entry

DEFAULT_LIMIT = 5

PERIOD_CATEGORIES = ("topUsers", "topLocks", "topEarlyBirds", "topNightOwls", "topLongestStreaks")
GLOBAL_CATEGORIES = ("topUsers", "topEarlyBirds", "topNightOwls", "topLongestStreaks")


def rank(values: Mapping[str, int], limit: int = DEFAULT_LIMIT) -> List[LeaderboardEntry]:
    """Order entities by value desc, id asc; truncate to `limit`. Zero values are dropped."""
    ordered = sorted(
        ((entity, count) for entity, count in values.items() if count > 0),
        key=lambda item: (-item[1], item[0]),
    )
    return [LeaderboardEntry(id=entity, count=count) for entity, count in ordered[: max(0, limit)]]


def raw_counts_by_user(entries: Iterable[Entry]) -> Dict[str, int]:
    return dict(Counter(user_key(e) for e in entries))


def raw_counts_by_lock(entries: Iterable[Entry]) -> Dict[str, int]:
    return dict(Counter(e.lock_id for e in entries if e.lock_id is not None))


def _day_based_boards(
    entries: Iterable[Entry],
    tz: tzinfo,
    *,
    limit: int,
    early_hour: int,
    late_hour: int,
) -> Dict[str, List[LeaderboardEntry]]:
    activities = user_day_activity(entries, tz, early_hour, late_hour)
    return {
        "topUsers": rank(distinct_day_counts(activities), limit),
        "topEarlyBirds": rank(early_day_counts(activities), limit),
        "topNightOwls": rank(late_day_counts(activities), limit),
        "topLongestStreaks": rank(longest_streaks(active_days_by_user(activities)), limit),
    }


def period_leaderboards(
    window: TimeWindow,
    period_entries: Iterable[Entry],
    primary_entries: Iterable[Entry],
    tz: tzinfo,
    *,
    limit: int = DEFAULT_LIMIT,
    early_hour: int = DEFAULT_EARLY_HOUR,
    late_hour: int = DEFAULT_LATE_HOUR,
) -> Dict[str, List[LeaderboardEntry]]:
    """
    Leaderboards for the requested window.

    Day view ranks raw counts over `period_entries` (window + caller's lock
    filter). Month-like views (month, rolling, season) rank distinct days over
    `primary_entries` (window + primary lock) so narrowing the entry table to
    another lock never changes the standings.
    """
    if window.is_month_like:
        boards = _day_based_boards(primary_entries, tz, limit=limit, early_hour=early_hour, late_hour=late_hour)
        boards["topLocks"] = []
        return {category: boards[category] for category in PERIOD_CATEGORIES}

    day_entries = list(period_entries)
    activities = user_day_activity(day_entries, tz, early_hour, late_hour)
    return {
        "topUsers": rank(raw_counts_by_user(day_entries), limit),
        "topLocks": rank(raw_counts_by_lock(day_entries), limit),
        "topEarlyBirds": rank(early_day_counts(activities), limit),
        "topNightOwls": rank(late_day_counts(activities), limit),
        "topLongestStreaks": rank(longest_streaks(active_days_by_user(activities)), limit),
    }


def global_leaderboards(
    lifetime_primary_entries: Iterable[Entry],
    tz: tzinfo,
    *,
    limit: int = DEFAULT_LIMIT,
    early_hour: int = DEFAULT_EARLY_HOUR,
    late_hour: int = DEFAULT_LATE_HOUR,
) -> Dict[str, List[LeaderboardEntry]]:
    """Lifetime, unwindowed standings on the primary lock."""
    boards = _day_based_boards(lifetime_primary_entries, tz, limit=limit, early_hour=early_hour, late_hour=late_hour)
    return {category: boards[category] for category in GLOBAL_CATEGORIES}


def leaderboards_payload(boards: Mapping[str, List[LeaderboardEntry]]) -> Dict[str, List[dict]]:
    return {category: [entry.to_payload() for entry in rows] for category, rows in boards.items()}


def top_one(values: Mapping[str, int]) -> Optional[LeaderboardEntry]:
    ranked = rank(values, limit=1)
    return ranked[0] if ranked else None
