"""
accessboard/features/analytics/retention.py

Retention / streak histograms and monthly new-vs-returning cohorts.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, List, Mapping, Sequence, Set

from accessboard.models.activity import UserDayActivity
from accessboard.models.analytics import CohortMonth

RETENTION_CAP = 20
RETENTION_KEYS = [str(n) for n in range(1, RETENTION_CAP)] + [f"{RETENTION_CAP}+"]

# (label, lowest, highest inclusive); None means open-ended
STREAK_RANGES = (
    ("1", 1, 1),
    ("2-3", 2, 3),
    ("4-7", 4, 7),
    ("8-15", 8, 15),
    ("16+", 16, None),
)


def retention_bucket(days: int) -> str:
    if days >= RETENTION_CAP:
        return f"{RETENTION_CAP}+"
    return str(days)


def streak_bucket(length: int) -> str:
    for label, low, high in STREAK_RANGES:
        if length >= low and (high is None or length <= high):
            return label
    raise ValueError(f"streak length must be positive, got {length}")


def retention_buckets(days_by_user: Mapping[str, Sequence]) -> Dict[str, int]:
    """
    Histogram of distinct active days per user: "1".."19" and "20+".

    Every key is present; users with no active days are not counted.
    """
    buckets = {key: 0 for key in RETENTION_KEYS}
    for days in days_by_user.values():
        count = len(set(days))
        if count > 0:
            buckets[retention_bucket(count)] += 1
    return buckets


def streak_buckets(longest_by_user: Mapping[str, int]) -> Dict[str, int]:
    """Histogram of longest streaks: "1", "2-3", "4-7", "8-15", "16+"."""
    buckets = {label: 0 for label, _, _ in STREAK_RANGES}
    for longest in longest_by_user.values():
        if longest > 0:
            buckets[streak_bucket(longest)] += 1
    return buckets


def cohort_by_month(
    window_activities: Iterable[UserDayActivity],
    first_month_by_user: Mapping[str, str],
) -> List[CohortMonth]:
    """
    For each month active in the window: users whose lifetime first month is
    that month are new, every other active user is returning.
    """
    users_by_month: Dict[str, Set[str]] = defaultdict(set)
    for activity in window_activities:
        users_by_month[activity.day.strftime("%Y-%m")].add(activity.username)

    rows = []
    for month in sorted(users_by_month):
        users = users_by_month[month]
        new = sum(1 for username in users if first_month_by_user.get(username, month) == month)
        rows.append(CohortMonth(month=month, new=new, returning=len(users) - new))
    return rows
