"""
accessboard/features/entries/store_sql.py

SQL-backed entry store (SQLAlchemy Core over the `entries` table).

Same interface and ordering contract as InMemoryEntryStore. Any driver
error is raised as StoreUnavailableError so the request fails as a whole.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy import and_, func, select
from sqlalchemy.exc import SQLAlchemyError

from accessboard.core.database import entries, get_db_session
from accessboard.core.errors import StoreUnavailableError
from accessboard.features.analytics.filters import LIKE_ESCAPE, EntryFilter, escape_like
from accessboard.features.entries.store import EntryStore
from accessboard.models.entry import Entry

logger = logging.getLogger("accessboard")

FETCH_ERROR_MESSAGE = "Failed to fetch entries"


def _utc(value: datetime) -> datetime:
    # SQLite stores wall-clock text, so bounds must share the stored UTC offset.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _conditions(flt: EntryFilter) -> list:
    conditions = []
    if flt.start is not None:
        conditions.append(entries.c.entry_time >= _utc(flt.start))
    if flt.end is not None:
        conditions.append(entries.c.entry_time <= _utc(flt.end))
    if flt.lock_id is not None:
        conditions.append(entries.c.lock_id == flt.lock_id)
    if flt.username:
        conditions.append(entries.c.username.ilike(escape_like(flt.username), escape=LIKE_ESCAPE))
    return conditions


def _where(query, flt: EntryFilter):
    conditions = _conditions(flt)
    if conditions:
        query = query.where(and_(*conditions))
    return query


def _to_entry(row) -> Entry:
    return Entry(
        id=row.id,
        username=row.username,
        lock_id=row.lock_id,
        entry_time=row.entry_time,
        lock_mac=row.lock_mac,
        record_type=row.record_type,
        electric_quantity=row.electric_quantity,
    )


@contextmanager
def _store_call(operation: str):
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error(
            "entry_store.failed",
            extra={"operation": operation, "error_type": type(exc).__name__, "error_message": str(exc)[:200]},
        )
        raise StoreUnavailableError(FETCH_ERROR_MESSAGE) from exc


class SqlEntryStore(EntryStore):
    """
    Read-only view over the `entries` table.

    Maintains identical interface to InMemoryEntryStore.
    """

    def find(self, flt: EntryFilter, *, page: int = 1, limit: int = 50) -> List[Entry]:
        query = (
            _where(select(entries), flt)
            .order_by(entries.c.entry_time.desc(), entries.c.id.desc())
            .offset((max(page, 1) - 1) * limit)
            .limit(limit)
        )
        with _store_call("find"), get_db_session() as session:
            return [_to_entry(row) for row in session.execute(query)]

    def count(self, flt: EntryFilter) -> int:
        query = _where(select(func.count()).select_from(entries), flt)
        with _store_call("count"), get_db_session() as session:
            return int(session.execute(query).scalar_one())

    def distinct_lock_ids(self) -> List[str]:
        query = (
            select(entries.c.lock_id)
            .where(entries.c.lock_id.is_not(None))
            .distinct()
            .order_by(entries.c.lock_id)
        )
        with _store_call("distinct_lock_ids"), get_db_session() as session:
            return [row.lock_id for row in session.execute(query)]

    def scan(self, flt: EntryFilter) -> List[Entry]:
        query = _where(select(entries), flt).order_by(entries.c.entry_time, entries.c.id)
        with _store_call("scan"), get_db_session() as session:
            return [_to_entry(row) for row in session.execute(query)]

    def count_by_lock(self, flt: EntryFilter) -> Dict[str, int]:
        query = (
            _where(select(entries.c.lock_id, func.count().label("count")), flt)
            .where(entries.c.lock_id.is_not(None))
            .group_by(entries.c.lock_id)
        )
        with _store_call("count_by_lock"), get_db_session() as session:
            return {row.lock_id: int(row.count) for row in session.execute(query)}

    def nearest_before(self, instant: datetime) -> Optional[Entry]:
        query = (
            select(entries)
            .where(entries.c.entry_time < _utc(instant))
            .order_by(entries.c.entry_time.desc(), entries.c.id.desc())
            .limit(1)
        )
        with _store_call("nearest_before"), get_db_session() as session:
            row = session.execute(query).first()
            return _to_entry(row) if row is not None else None

    def nearest_after(self, instant: datetime) -> Optional[Entry]:
        query = (
            select(entries)
            .where(entries.c.entry_time > _utc(instant))
            .order_by(entries.c.entry_time, entries.c.id)
            .limit(1)
        )
        with _store_call("nearest_after"), get_db_session() as session:
            row = session.execute(query).first()
            return _to_entry(row) if row is not None else None

    def first_matching_user(self, username: str) -> Optional[Entry]:
        query = (
            select(entries)
            .where(entries.c.username.ilike(escape_like(username), escape=LIKE_ESCAPE))
            .order_by(entries.c.id)
            .limit(1)
        )
        with _store_call("first_matching_user"), get_db_session() as session:
            row = session.execute(query).first()
            return _to_entry(row) if row is not None else None
