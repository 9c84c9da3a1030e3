"""
accessboard/features/analytics/summary.py

Range summary ("day aggregates") and the lifetime user profile with badges.
Pure functions: same entries + same now => identical output.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Iterable, List, Optional, Sequence

from accessboard.features.analytics.days import (
    DEFAULT_EARLY_HOUR,
    DEFAULT_LATE_HOUR,
    classify_day,
    distinct_day_counts,
    local_day,
    local_hour,
    user_key,
)
from accessboard.features.analytics.leaderboards import raw_counts_by_lock, raw_counts_by_user, top_one
from accessboard.features.analytics.streaks import compute_streak
from accessboard.models.analytics import Achievement, HourCount, RangeSummary, TimeWindow, UserProfile
from accessboard.models.entry import Entry

VISIT_MILESTONES = (
    (10, "milestone_10", "Visitor I", "10+ visits"),
    (50, "milestone_50", "Visitor II", "50+ visits"),
    (100, "milestone_100", "Visitor III", "100+ visits"),
)
ACTIVE_MONTH_MIN_DAYS = 5
ACTIVE_MONTH_LOOKBACK = timedelta(days=30)


def busiest_hour(entries: Iterable[Entry], tz: tzinfo) -> Optional[HourCount]:
    counts = Counter(local_hour(e.entry_time, tz) for e in entries)
    if not counts:
        return None
    hour, count = min(counts.items(), key=lambda item: (-item[1], item[0]))
    return HourCount(hour=hour, count=count)


def summarize_range(
    window: TimeWindow,
    entries: Sequence[Entry],
    tz: tzinfo,
    primary_entries: Optional[Sequence[Entry]] = None,
) -> RangeSummary:
    """
    Aggregate every entry matching the current filter and window.

    Day period: most active user by raw count, plus busiest hour and most used
    lock. Month-like periods: most active user by distinct days on the primary
    lock (`primary_entries`), matching the leaderboards; lock and hour are
    left out.
    """
    if not entries:
        return RangeSummary(total_entries=0, unique_users=0)

    times = [e.entry_time for e in entries]
    if window.is_month_like:
        most_active = top_one(distinct_day_counts(primary_entries or [], tz))
        most_used_lock = None
        hour = None
    else:
        most_active = top_one(raw_counts_by_user(entries))
        most_used_lock = top_one(raw_counts_by_lock(entries))
        hour = busiest_hour(entries, tz)

    return RangeSummary(
        total_entries=len(entries),
        unique_users=len({user_key(e) for e in entries}),
        most_active_user=most_active,
        most_used_lock=most_used_lock,
        busiest_hour=hour,
        first_entry_time=min(times),
        last_entry_time=max(times),
    )


def evaluate_achievements(
    total_visits: int,
    has_early_day: bool,
    has_late_day: bool,
    recent_days: int,
    *,
    early_hour: int = DEFAULT_EARLY_HOUR,
    late_hour: int = DEFAULT_LATE_HOUR,
) -> List[Achievement]:
    """Every rule is evaluated independently; all qualifying badges are returned."""
    achievements = [
        Achievement(key=key, title=title, description=description)
        for threshold, key, title, description in VISIT_MILESTONES
        if total_visits >= threshold
    ]
    if has_early_day:
        achievements.append(Achievement(key="early_bird", title="Early Bird", description=f"Visited before {early_hour:02d}:00"))
    if has_late_day:
        achievements.append(Achievement(key="night_owl", title="Night Owl", description=f"Visited at or after {late_hour:02d}:00"))
    if recent_days >= ACTIVE_MONTH_MIN_DAYS:
        achievements.append(
            Achievement(key="active_month", title="Active This Month", description=f"{ACTIVE_MONTH_MIN_DAYS}+ visits in the last 30 days")
        )
    return achievements


def build_user_profile(
    username: str,
    user_entries: Sequence[Entry],
    primary_lock_id: str,
    tz: tzinfo,
    *,
    display_username: Optional[str] = None,
    now: Optional[datetime] = None,
    early_hour: int = DEFAULT_EARLY_HOUR,
    late_hour: int = DEFAULT_LATE_HOUR,
) -> Optional[UserProfile]:
    """
    Lifetime profile for one user. `user_entries` are all of the user's
    entries on every lock (already matched case-insensitively).

    Returns None when the user has no entries at all.
    """
    if not user_entries:
        return None
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    primary_days = sorted({local_day(e.entry_time, tz) for e in user_entries if e.lock_id == primary_lock_id})
    recent_cutoff = now - ACTIVE_MONTH_LOOKBACK
    recent_days = {
        local_day(e.entry_time, tz)
        for e in user_entries
        if e.lock_id == primary_lock_id and recent_cutoff <= e.entry_time <= now
    }

    by_day = {}
    for entry in user_entries:
        by_day.setdefault(local_day(entry.entry_time, tz), []).append(entry.entry_time)
    day_classes = [classify_day(times, tz, early_hour, late_hour) for times in by_day.values()]

    times = [e.entry_time for e in user_entries]
    if display_username is None:
        display_username = min(user_entries, key=lambda e: e.id).username or username

    return UserProfile(
        display_username=display_username,
        total_visits=len(primary_days),
        unique_locks_visited=len({e.lock_id for e in user_entries if e.lock_id is not None}),
        first_seen=min(times),
        last_seen=max(times),
        longest_streak_days=compute_streak(primary_days).longest,
        achievements=evaluate_achievements(
            len(primary_days),
            any(c.is_early_day for c in day_classes),
            any(c.is_late_day for c in day_classes),
            len(recent_days),
            early_hour=early_hour,
            late_hour=late_hour,
        ),
    )
