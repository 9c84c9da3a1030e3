"""Tests for the canonical entry predicate and query-string helper."""

from datetime import datetime, timezone

from accessboard.features.analytics.filters import EntryFilter, build_filter, build_query, escape_like, username_regex
from accessboard.models.analytics import PeriodKind, TimeWindow
from accessboard.models.entry import Entry

UTC = timezone.utc
WINDOW = TimeWindow(
    start=datetime(2024, 3, 1, tzinfo=UTC),
    end=datetime(2024, 3, 1, 23, 59, 59, tzinfo=UTC),
    period_kind=PeriodKind.DAY,
)


def _entry(username="alice", lock_id="L1", when=datetime(2024, 3, 1, 9, tzinfo=UTC)):
    return Entry(id="1", username=username, lock_id=lock_id, entry_time=when)


def test_build_query_drops_empty_values():
    assert build_query({"a": 1, "b": "", "c": None, "e": "x y"}) == "a=1&e=x+y"
    assert build_query(None) == ""


def test_blank_filters_are_absent():
    flt = build_filter(WINDOW, lock_id="  ", username="")
    assert flt.lock_id is None
    assert flt.username is None
    assert flt.start == WINDOW.start


def test_window_bounds_are_inclusive():
    flt = build_filter(WINDOW)
    assert flt.matches(_entry(when=WINDOW.start))
    assert flt.matches(_entry(when=WINDOW.end))
    assert not flt.matches(_entry(when=datetime(2024, 3, 2, tzinfo=UTC)))


def test_username_is_case_insensitive_exact_match():
    flt = build_filter(username="Alice")
    assert flt.matches(_entry(username="alice"))
    assert flt.matches(_entry(username="ALICE"))
    assert not flt.matches(_entry(username="alice2"))
    assert not flt.matches(_entry(username=None))


def test_username_metacharacters_are_literal():
    flt = build_filter(username="a.c")
    assert flt.matches(_entry(username="A.C"))
    assert not flt.matches(_entry(username="abc"))
    assert username_regex("x+y").match("X+Y")


def test_lock_filter_is_exact():
    flt = build_filter(lock_id="L1")
    assert flt.matches(_entry(lock_id="L1"))
    assert not flt.matches(_entry(lock_id="L10"))


def test_relocked_filter_leaves_original_untouched():
    flt = build_filter(WINDOW, lock_id="L1", username="bob")
    relocked = flt.with_lock("L2")

    assert flt.lock_id == "L1"
    assert relocked.lock_id == "L2" and relocked.username == "bob"
    assert (relocked.start, relocked.end) == (WINDOW.start, WINDOW.end)
    assert flt.with_lock("").lock_id is None
    assert EntryFilter().matches(_entry())


def test_escape_like_escapes_wildcards():
    assert escape_like("50%_off\\") == "50\\%\\_off\\\\"


def test_username_match_rejects_trailing_newline():
    flt = build_filter(username="alice")
    assert not flt.matches(_entry(username="alice\n"))
    assert not username_regex("alice").match("alice\n")
    assert flt.matches(_entry(username="Alice"))
