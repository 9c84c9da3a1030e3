# accessboard/conftest.py
import sys
from datetime import datetime, timezone
from itertools import count
from pathlib import Path

import pytest

# Add repo root to PYTHONPATH
REPO_ROOT = Path(__file__).resolve().parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from accessboard.core.config import AnalyticsConfig  # noqa: E402
from accessboard.features.entries.store import InMemoryEntryStore  # noqa: E402
from accessboard.models.analytics import Season  # noqa: E402
from accessboard.models.entry import Entry  # noqa: E402

PRIMARY_LOCK = "19228015"
SIDE_LOCK = "L2"

# Fixed clock for deterministic windows
FIXED_NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)

SPRING_SEASON = Season(
    key="spring-2024",
    name="Spring 2024",
    start_at=datetime(2024, 3, 1, tzinfo=timezone.utc),
    end_at=datetime(2024, 3, 31, 23, 59, 59, tzinfo=timezone.utc),
)


def utc(year, month, day, hour=12, minute=0):
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def make_entry():
    """Entry factory with sequential, zero-padded ids (sortable as strings)."""
    ids = count(1)

    def _make(username="alice", when=None, lock_id=PRIMARY_LOCK, entry_id=None):
        return Entry(
            id=entry_id or f"e{next(ids):05d}",
            username=username,
            lock_id=lock_id,
            entry_time=when or FIXED_NOW,
        )

    return _make


@pytest.fixture
def memory_store():
    return InMemoryEntryStore()


@pytest.fixture
def analytics_config():
    return AnalyticsConfig(
        timezone="UTC",
        primary_lock_id=PRIMARY_LOCK,
        early_hour=8,
        late_hour=22,
        leaderboard_limit=5,
        seasons=(SPRING_SEASON,),
    )


@pytest.fixture
def sqlite_engine():
    """In-memory SQLite engine with the entries table; torn down after the test."""
    from accessboard.core.database import create_all_tables, drop_all_tables, init_engine, reset_engine

    engine = init_engine("sqlite://")
    create_all_tables()
    yield engine
    drop_all_tables()
    reset_engine()


@pytest.fixture
def client(memory_store, analytics_config):
    """TestClient over the real app with the store and config swapped for fixtures."""
    from fastapi.testclient import TestClient

    from accessboard.api.entries import get_analytics_config
    from accessboard.features.entries.store import get_store
    from accessboard.main import app

    app.dependency_overrides[get_store] = lambda: memory_store
    app.dependency_overrides[get_analytics_config] = lambda: analytics_config
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
