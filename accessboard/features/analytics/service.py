"""
accessboard/features/analytics/service.py
Builds the full entries + analytics payload for one request.

Scans the entry store, then hands the entries to the pure reducers
(days, streaks, leaderboards, summary, retention, charts, seasons).
Sub-aggregations run sequentially; a store failure aborts the whole request.
"""

import logging
import math
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from accessboard.core.config import AnalyticsConfig
from accessboard.core.logging import timed
from accessboard.core.tracing import start_span
from accessboard.features.analytics.charts import chart_series
from accessboard.features.analytics.days import active_days_by_user, first_active_month_by_user, user_day_activity
from accessboard.features.analytics.filters import EntryFilter, build_filter
from accessboard.features.analytics.leaderboards import global_leaderboards, leaderboards_payload, period_leaderboards
from accessboard.features.analytics.retention import cohort_by_month, retention_buckets, streak_buckets
from accessboard.features.analytics.seasons import season_progress
from accessboard.features.analytics.streaks import longest_streaks
from accessboard.features.analytics.summary import build_user_profile, summarize_range
from accessboard.features.analytics.timewindow import coerce_timezone, get_season, neighbour_window, resolve_window
from accessboard.features.entries.store import EntryStore
from accessboard.models.analytics import DateCount, PeriodKind, Season, TimeWindow

logger = logging.getLogger("accessboard")


@dataclass(frozen=True)
class EntriesQuery:
    """Validated request parameters for GET /api/entries."""

    page: int = 1
    limit: int = 50
    lock_id: Optional[str] = None
    username: Optional[str] = None
    date: Optional[str] = None
    period: Optional[str] = None
    season: Optional[str] = None


def _season_payload(season: Season) -> dict:
    return season.model_dump(mode="json", by_alias=True)


class AnalyticsService:
    """Deterministic analytics computation over the entry store."""

    def __init__(self, store: EntryStore, config: Optional[AnalyticsConfig] = None):
        self.store = store
        self.config = config or AnalyticsConfig.from_settings()
        self.tz = coerce_timezone(self.config.timezone)

    @contextmanager
    def _step(self, op: str, **attributes):
        with start_span(f"analytics.{op}", attributes), timed(logger, op):
            yield

    def _neighbour_counts(self, window: TimeWindow, anchor: Optional[datetime]) -> Optional[DateCount]:
        if anchor is None:
            return None
        neighbour = neighbour_window(anchor, window, self.tz)
        count = self.store.count(EntryFilter(start=neighbour.start, end=neighbour.end))
        return DateCount(date=neighbour.start, count=count)

    def _active_season(self, window: TimeWindow, key: Optional[str]) -> Optional[Season]:
        if window.period_kind != PeriodKind.SEASON or not key:
            return None
        return get_season(key, self.config.seasons)

    def build_payload(self, query: EntriesQuery, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Compute every section of the response for one request.

        Args:
            query: Validated request parameters
            now: Fixed timestamp for deterministic testing (optional)

        Returns:
            JSON-serialisable dict with camelCase keys
        """
        if now is None:
            now = datetime.now(timezone.utc)
        cfg = self.config
        primary = cfg.primary_lock_id

        window = resolve_window(query.period, query.date, query.season, seasons=cfg.seasons, tz=self.tz, now=now)
        season = self._active_season(window, query.season)
        flt = build_filter(window, query.lock_id, query.username)
        username = flt.username

        with self._step("entries.page", period=window.period_kind.value, lock_id=flt.lock_id):
            page_entries = self.store.find(flt, page=query.page, limit=query.limit)
            total = self.store.count(flt)

        with self._step("entries.filters"):
            available_lock_ids = self.store.distinct_lock_ids()
            entry_counts = self.store.count_by_lock(EntryFilter(start=window.start, end=window.end))
            previous_counts = self._neighbour_counts(window, getattr(self.store.nearest_before(window.start), "entry_time", None))
            next_counts = self._neighbour_counts(window, getattr(self.store.nearest_after(window.end), "entry_time", None))

        with self._step("entries.scan", period=window.period_kind.value):
            range_entries = self.store.scan(flt)
            primary_window_entries = self.store.scan(build_filter(window, primary))
            lifetime_primary_entries = self.store.scan(build_filter(lock_id=primary))
            period_entries = primary_window_entries if window.is_month_like else self.store.scan(build_filter(window, flt.lock_id))
            range_primary_entries = self.store.scan(flt.with_lock(primary)) if window.is_month_like else None

        with self._step("summary"):
            summary = summarize_range(window, range_entries, self.tz, range_primary_entries)

        with self._step("leaderboards"):
            boards = period_leaderboards(
                window,
                period_entries,
                primary_window_entries,
                self.tz,
                limit=cfg.leaderboard_limit,
                early_hour=cfg.early_hour,
                late_hour=cfg.late_hour,
            )
            global_boards = global_leaderboards(
                lifetime_primary_entries,
                self.tz,
                limit=cfg.leaderboard_limit,
                early_hour=cfg.early_hour,
                late_hour=cfg.late_hour,
            )

        user_profile = None
        user_season = None
        if username:
            with self._step("user_profile", username=username):
                user_entries = self.store.scan(build_filter(username=username))
                sample = self.store.first_matching_user(username)
                profile = build_user_profile(
                    username,
                    user_entries,
                    primary,
                    self.tz,
                    display_username=sample.username if sample is not None else None,
                    now=now,
                    early_hour=cfg.early_hour,
                    late_hour=cfg.late_hour,
                )
                user_profile = profile.to_payload() if profile is not None else None
            if season is not None:
                with self._step("season_progress", season=season.key):
                    progress = season_progress(username, primary_window_entries, self.tz)
                    user_season = progress.to_payload() if progress is not None else None

        with self._step("analytics"):
            analytics = self._analytics(window, primary_window_entries, lifetime_primary_entries)

        return {
            "entries": [entry.to_payload() for entry in page_entries],
            "pagination": {
                "total": total,
                "page": query.page,
                "limit": query.limit,
                "totalPages": math.ceil(total / query.limit) if query.limit else 0,
            },
            "filters": {
                "availableLockIds": available_lock_ids,
                "entryCounts": entry_counts,
                "date": window.start.isoformat(),
                "previousDateCounts": previous_counts.to_payload() if previous_counts else None,
                "nextDateCounts": next_counts.to_payload() if next_counts else None,
                "period": window.period_kind.value,
                "seasons": [_season_payload(s) for s in cfg.seasons],
                "season": _season_payload(season) if season is not None else None,
            },
            "dayAggregates": summary.to_payload(),
            "leaderboards": leaderboards_payload(boards),
            "globalLeaderboards": leaderboards_payload(global_boards),
            "userProfile": user_profile,
            "userSeasonProgress": user_season,
            "analytics": analytics,
        }

    def _analytics(self, window: TimeWindow, window_entries: List, lifetime_entries: List) -> Dict[str, Any]:
        cfg = self.config
        activities = user_day_activity(window_entries, self.tz, cfg.early_hour, cfg.late_hour)
        days_by_user = active_days_by_user(activities)
        first_months = first_active_month_by_user(user_day_activity(lifetime_entries, self.tz, cfg.early_hour, cfg.late_hour))

        series = chart_series(window, window_entries, self.tz)
        series["retentionBuckets"] = retention_buckets(days_by_user)
        series["streakBuckets"] = streak_buckets(longest_streaks(days_by_user))
        series["cohortByMonth"] = [row.model_dump() for row in cohort_by_month(activities, first_months)]
        return series
