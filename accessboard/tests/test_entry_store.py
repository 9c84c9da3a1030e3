"""Contract tests run against both the in-memory and the SQL entry store."""

from datetime import datetime, timezone

import pytest

from accessboard.core.database import entries as entries_table, init_engine, reset_engine
from accessboard.core.errors import StoreUnavailableError
from accessboard.features.analytics.filters import EntryFilter, build_filter
from accessboard.features.entries.store import InMemoryEntryStore
from accessboard.features.entries.store_sql import SqlEntryStore
from accessboard.models.entry import Entry

UTC = timezone.utc
PRIMARY = "19228015"

ROWS = [
    Entry(id="e1", username="alice", lock_id=PRIMARY, entry_time=datetime(2024, 3, 1, 9, tzinfo=UTC)),
    Entry(id="e2", username="Bob", lock_id=PRIMARY, entry_time=datetime(2024, 3, 1, 9, tzinfo=UTC)),
    Entry(id="e3", username="alice", lock_id="L2", entry_time=datetime(2024, 3, 2, 10, tzinfo=UTC)),
    Entry(id="e4", username="carol", lock_id="L2", entry_time=datetime(2024, 3, 3, 23, tzinfo=UTC)),
    Entry(id="e5", username="al_ce", lock_id=PRIMARY, entry_time=datetime(2024, 3, 4, 8, tzinfo=UTC)),
]


@pytest.fixture(params=["memory", "sql"])
def store(request):
    if request.param == "memory":
        return InMemoryEntryStore(ROWS)
    engine = request.getfixturevalue("sqlite_engine")
    with engine.begin() as conn:
        conn.execute(entries_table.insert(), [row.model_dump() for row in ROWS])
    return SqlEntryStore()


def _ids(rows):
    return [row.id for row in rows]


def test_find_is_newest_first_with_id_tiebreak(store):
    assert _ids(store.find(EntryFilter(), page=1, limit=10)) == ["e5", "e4", "e3", "e2", "e1"]
    assert _ids(store.find(EntryFilter(), page=2, limit=2)) == ["e3", "e2"]
    assert store.find(EntryFilter(), page=9, limit=2) == []


def test_scan_is_oldest_first(store):
    assert _ids(store.scan(EntryFilter())) == ["e1", "e2", "e3", "e4", "e5"]


def test_scan_returns_aware_utc_times(store):
    first = store.scan(EntryFilter())[0]
    assert first.entry_time == datetime(2024, 3, 1, 9, tzinfo=UTC)
    assert first.entry_time.tzinfo is not None


def test_window_and_lock_filters(store):
    day = EntryFilter(start=datetime(2024, 3, 1, tzinfo=UTC), end=datetime(2024, 3, 1, 23, 59, 59, tzinfo=UTC))
    assert store.count(day) == 2
    assert store.count(build_filter(lock_id="L2")) == 2
    assert store.count(EntryFilter()) == 5


def test_username_filter_is_case_insensitive_and_literal(store):
    assert _ids(store.scan(build_filter(username="ALICE"))) == ["e1", "e3"]
    assert _ids(store.scan(build_filter(username="AL_CE"))) == ["e5"]
    assert _ids(store.scan(build_filter(username="bob"))) == ["e2"]


def test_distinct_locks_and_counts(store):
    assert store.distinct_lock_ids() == [PRIMARY, "L2"]
    assert store.count_by_lock(EntryFilter()) == {PRIMARY: 3, "L2": 2}


def test_nearest_neighbours(store):
    before = store.nearest_before(datetime(2024, 3, 2, tzinfo=UTC))
    after = store.nearest_after(datetime(2024, 3, 3, 23, 59, 59, tzinfo=UTC))
    assert before.id == "e2"
    assert after.id == "e5"
    assert store.nearest_before(datetime(2024, 3, 1, tzinfo=UTC)) is None
    assert store.nearest_after(datetime(2024, 3, 5, tzinfo=UTC)) is None


def test_first_matching_user_is_lowest_id(store):
    assert store.first_matching_user("ALICE").id == "e1"
    assert store.first_matching_user("nobody") is None


def test_sql_driver_errors_become_store_unavailable():
    init_engine("sqlite://")  # no tables created
    try:
        with pytest.raises(StoreUnavailableError) as exc_info:
            SqlEntryStore().count(EntryFilter())
        assert exc_info.value.code == "store_unavailable"
        assert exc_info.value.status_code == 500
        assert exc_info.value.message == "Failed to fetch entries"
    finally:
        reset_engine()


def test_store_selection_follows_database_url(monkeypatch):
    from accessboard.features.entries.store import get_entry_store, get_store, reset_store

    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("TEST_DATABASE_URL", raising=False)
    monkeypatch.setattr("accessboard.core.database.settings.DATABASE_URL", None)
    assert isinstance(get_entry_store(), InMemoryEntryStore)

    monkeypatch.setenv("TEST_DATABASE_URL", "sqlite://")
    assert isinstance(get_entry_store(), SqlEntryStore)

    reset_store()
    try:
        assert get_store() is get_store()
    finally:
        reset_store()


@pytest.mark.parametrize("backend", ["memory", "sql"])
def test_username_match_is_exact_in_both_stores(backend, request):
    rows = [
        Entry(id="n1", username="alice\n", lock_id=PRIMARY, entry_time=datetime(2024, 3, 1, 9, tzinfo=UTC)),
        Entry(id="n2", username="ALICE", lock_id=PRIMARY, entry_time=datetime(2024, 3, 2, 9, tzinfo=UTC)),
    ]
    if backend == "memory":
        store = InMemoryEntryStore(rows)
    else:
        engine = request.getfixturevalue("sqlite_engine")
        with engine.begin() as conn:
            conn.execute(entries_table.insert(), [row.model_dump() for row in rows])
        store = SqlEntryStore()

    assert _ids(store.scan(build_filter(username="alice"))) == ["n2"]
    assert store.first_matching_user("alice").id == "n2"
