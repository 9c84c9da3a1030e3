"""
accessboard/features/analytics/seasons.py

Season progress for one user: points, rank, streaks and level.
"""

from __future__ import annotations

from datetime import tzinfo
from typing import Iterable, Optional, Sequence

from accessboard.features.analytics.days import active_days_by_user, distinct_day_counts, user_day_activity
from accessboard.features.analytics.filters import username_regex
from accessboard.features.analytics.streaks import compute_streak
from accessboard.models.analytics import SeasonProgress
from accessboard.models.entry import Entry

LEVEL_THRESHOLDS = (1, 5, 10, 20, 30)


def level_for(points: int, thresholds: Sequence[int] = LEVEL_THRESHOLDS) -> tuple:
    """(level, next_level_at). Level 0 below the first threshold; next is None at max."""
    level = sum(1 for threshold in thresholds if points >= threshold)
    next_level_at = next((threshold for threshold in thresholds if threshold > points), None)
    return level, next_level_at


def season_progress(
    username: Optional[str],
    season_entries: Iterable[Entry],
    tz: tzinfo,
) -> Optional[SeasonProgress]:
    """
    `season_entries` are primary-lock entries inside the season window for
    every user. Ranking is points desc, username asc over all participants.

    The username is matched case-insensitively; when several stored
    spellings match, the best-ranked one wins.
    """
    if not username:
        return None

    activities = user_day_activity(season_entries, tz)
    points_by_user = distinct_day_counts(activities)
    if not points_by_user:
        return None

    standings = sorted(points_by_user.items(), key=lambda item: (-item[1], item[0]))
    pattern = username_regex(username)
    for position, (candidate, points) in enumerate(standings, start=1):
        if not pattern.match(candidate):
            continue
        streak = compute_streak(active_days_by_user(activities).get(candidate, []))
        level, next_level_at = level_for(points)
        return SeasonProgress(
            points=points,
            rank=position,
            current_streak_days=streak.current,
            longest_streak_days=streak.longest,
            level=level,
            next_level_at=next_level_at,
        )
    return None
