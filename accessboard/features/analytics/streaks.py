"""
accessboard/features/analytics/streaks.py
Consecutive-day runs over a user's distinct active days.
"""

from __future__ import annotations

from datetime import date
from typing import Dict, Iterable, Mapping, Sequence

from accessboard.models.activity import StreakResult


def compute_streak(days: Iterable[date]) -> StreakResult:
    """
    Longest and current run of consecutive calendar days.

    Days are compared as local calendar dates, so DST transitions never
    stretch or shrink a day. `current` is the run ending at the last day in
    the sequence, which is not necessarily today.
    """
    ordered = sorted(set(days))
    if not ordered:
        return StreakResult(longest=0, current=0)

    best = 1
    run = 1
    last = ordered[0]
    for day in ordered[1:]:
        if (day - last).days == 1:
            run += 1
        else:
            run = 1
        best = max(best, run)
        last = day
    return StreakResult(longest=best, current=run)


def longest_streaks(days_by_user: Mapping[str, Sequence[date]]) -> Dict[str, int]:
    return {username: compute_streak(days).longest for username, days in days_by_user.items()}
