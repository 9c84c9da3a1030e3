"""Tests for the range summary and the lifetime user profile."""

from datetime import datetime, timedelta, timezone

from accessboard.features.analytics.summary import build_user_profile, evaluate_achievements, summarize_range
from accessboard.models.analytics import PeriodKind, TimeWindow
from accessboard.models.entry import Entry

UTC = timezone.utc
PRIMARY = "19228015"
NOW = datetime(2025, 3, 1, 12, tzinfo=UTC)

DAY = TimeWindow(
    start=datetime(2025, 1, 1, tzinfo=UTC),
    end=datetime(2025, 1, 1, 23, 59, 59, tzinfo=UTC),
    period_kind=PeriodKind.DAY,
)
MONTH = TimeWindow(
    start=datetime(2025, 1, 1, tzinfo=UTC),
    end=datetime(2025, 1, 31, 23, 59, 59, tzinfo=UTC),
    period_kind=PeriodKind.MONTH,
)


def _entry(entry_id, username, when, lock_id="L1"):
    return Entry(id=entry_id, username=username, lock_id=lock_id, entry_time=when)


def _at(hour, day=1, month=1):
    return datetime(2025, month, day, hour, tzinfo=UTC)


def test_day_summary_scenario():
    entries = [
        _entry("1", "alice", _at(7)),
        _entry("2", "bob", _at(8)),
        _entry("3", "alice", _at(9), lock_id="L2"),
        _entry("4", "carol", _at(9)),
        _entry("5", "alice", _at(9)),
    ]
    summary = summarize_range(DAY, entries, UTC)

    assert summary.total_entries == 5
    assert summary.unique_users == 3
    assert (summary.most_active_user.id, summary.most_active_user.count) == ("alice", 3)
    assert (summary.busiest_hour.hour, summary.busiest_hour.count) == (9, 3)
    assert (summary.most_used_lock.id, summary.most_used_lock.count) == ("L1", 4)
    assert summary.first_entry_time == _at(7)
    assert summary.last_entry_time == _at(9)


def test_empty_range_has_no_leaders():
    summary = summarize_range(DAY, [], UTC)
    payload = summary.to_payload()
    assert payload["totalEntries"] == 0
    assert payload["mostActiveUser"] is None
    assert payload["busiestHour"] is None
    assert payload["firstEntryTime"] is None


def test_month_summary_ranks_distinct_primary_days():
    entries = [
        _entry("1", "alice", _at(9, day=2), lock_id=PRIMARY),
        _entry("2", "alice", _at(10, day=2), lock_id=PRIMARY),
        _entry("3", "alice", _at(11, day=2), lock_id=PRIMARY),
        _entry("4", "bob", _at(9, day=3), lock_id=PRIMARY),
        _entry("5", "bob", _at(9, day=4), lock_id=PRIMARY),
        _entry("6", "alice", _at(9, day=5), lock_id="L2"),
    ]
    primary = [e for e in entries if e.lock_id == PRIMARY]
    summary = summarize_range(MONTH, entries, UTC, primary)

    assert summary.total_entries == 6
    assert (summary.most_active_user.id, summary.most_active_user.count) == ("bob", 2)
    assert summary.most_used_lock is None
    assert summary.busiest_hour is None


def test_busiest_hour_tie_goes_to_earliest_hour():
    entries = [_entry("1", "a", _at(14)), _entry("2", "b", _at(6))]
    assert summarize_range(DAY, entries, UTC).busiest_hour.hour == 6


def test_profile_counts_distinct_primary_days_and_all_locks():
    entries = [
        _entry("3", "Alice", _at(9, day=1), lock_id=PRIMARY),
        _entry("1", "alice", _at(10, day=1), lock_id=PRIMARY),
        _entry("2", "alice", _at(9, day=2), lock_id=PRIMARY),
        _entry("4", "alice", _at(9, day=9), lock_id="L2"),
    ]
    profile = build_user_profile("ALICE", entries, PRIMARY, UTC, now=NOW)

    assert profile.display_username == "alice"
    assert profile.total_visits == 2
    assert profile.unique_locks_visited == 2
    assert profile.longest_streak_days == 2
    assert profile.first_seen == _at(9, day=1)
    assert profile.last_seen == _at(9, day=9)
    assert profile.achievements == []


def test_profile_prefers_stored_display_name():
    entries = [_entry("1", "alice", _at(9), lock_id=PRIMARY)]
    profile = build_user_profile("ALICE", entries, PRIMARY, UTC, display_username="Alice", now=NOW)
    assert profile.to_payload()["displayUsername"] == "Alice"


def test_unknown_user_has_no_profile():
    assert build_user_profile("ghost", [], PRIMARY, UTC, now=NOW) is None


def test_achievements_thresholds_and_order():
    keys = [a.key for a in evaluate_achievements(100, True, True, 5)]
    assert keys == ["milestone_10", "milestone_50", "milestone_100", "early_bird", "night_owl", "active_month"]
    assert [a.key for a in evaluate_achievements(9, False, False, 4)] == []
    assert [a.key for a in evaluate_achievements(50, False, True, 0)] == ["milestone_10", "milestone_50", "night_owl"]


def test_achievement_copy():
    early, late = evaluate_achievements(0, True, True, 0)
    assert (early.title, early.description) == ("Early Bird", "Visited before 08:00")
    assert (late.title, late.description) == ("Night Owl", "Visited at or after 22:00")


def test_profile_badges_from_lifetime_activity():
    recent = [_entry(f"r{i}", "dana", NOW - timedelta(days=i + 1), lock_id=PRIMARY) for i in range(5)]
    old = [
        _entry("o1", "dana", datetime(2024, 6, 1, 6, tzinfo=UTC), lock_id="L2"),
        _entry("o2", "dana", datetime(2024, 6, 2, 23, tzinfo=UTC), lock_id="L2"),
    ]
    profile = build_user_profile("dana", recent + old, PRIMARY, UTC, now=NOW)
    keys = [a.key for a in profile.achievements]
    assert keys == ["early_bird", "night_owl", "active_month"]
    assert profile.longest_streak_days == 5


def test_active_month_needs_five_recent_days():
    entries = [_entry(f"r{i}", "erin", NOW - timedelta(days=i * 10 + 1), lock_id=PRIMARY) for i in range(5)]
    profile = build_user_profile("erin", entries, PRIMARY, UTC, now=NOW)
    assert "active_month" not in [a.key for a in profile.achievements]
