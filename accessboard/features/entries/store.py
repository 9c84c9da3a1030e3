"""
accessboard/features/entries/store.py

Read-only entry store. The analytics core only ever scans through this
interface; `InMemoryEntryStore` backs tests and local development,
`SqlEntryStore` (store_sql.py) reads the `entries` table.
"""

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from accessboard.core.database import get_database_url
from accessboard.features.analytics.filters import EntryFilter, username_regex
from accessboard.models.entry import Entry

logger = logging.getLogger("accessboard")


class EntryStore:
    """
    Interface shared by every store implementation.

    Ordering contract:
    - find() returns newest first (entry_time desc, id desc)
    - scan() returns oldest first (entry_time asc, id asc)
    """

    def find(self, flt: EntryFilter, *, page: int = 1, limit: int = 50) -> List[Entry]:
        raise NotImplementedError

    def count(self, flt: EntryFilter) -> int:
        raise NotImplementedError

    def distinct_lock_ids(self) -> List[str]:
        raise NotImplementedError

    def scan(self, flt: EntryFilter) -> List[Entry]:
        raise NotImplementedError

    def count_by_lock(self, flt: EntryFilter) -> Dict[str, int]:
        raise NotImplementedError

    def nearest_before(self, instant: datetime) -> Optional[Entry]:
        raise NotImplementedError

    def nearest_after(self, instant: datetime) -> Optional[Entry]:
        raise NotImplementedError

    def first_matching_user(self, username: str) -> Optional[Entry]:
        raise NotImplementedError


class InMemoryEntryStore(EntryStore):
    """
    List-backed store with the same semantics as the SQL one.

    Copies are returned, never references to the internal list.
    """

    def __init__(self, entries: Optional[Iterable[Entry]] = None):
        self._entries: List[Entry] = list(entries or [])

    def add(self, *entries: Entry) -> None:
        """Seed entries. FOR TESTING ONLY."""
        self._entries.extend(entries)

    def clear(self) -> None:
        self._entries.clear()

    def _matching(self, flt: EntryFilter) -> List[Entry]:
        return [e for e in self._entries if flt.matches(e)]

    def find(self, flt: EntryFilter, *, page: int = 1, limit: int = 50) -> List[Entry]:
        ordered = sorted(self._matching(flt), key=lambda e: (e.entry_time, e.id), reverse=True)
        offset = (max(page, 1) - 1) * limit
        return ordered[offset:offset + limit]

    def count(self, flt: EntryFilter) -> int:
        return len(self._matching(flt))

    def distinct_lock_ids(self) -> List[str]:
        return sorted({e.lock_id for e in self._entries if e.lock_id is not None})

    def scan(self, flt: EntryFilter) -> List[Entry]:
        return sorted(self._matching(flt), key=lambda e: (e.entry_time, e.id))

    def count_by_lock(self, flt: EntryFilter) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for entry in self._matching(flt):
            if entry.lock_id is None:
                continue
            counts[entry.lock_id] = counts.get(entry.lock_id, 0) + 1
        return counts

    def nearest_before(self, instant: datetime) -> Optional[Entry]:
        earlier = [e for e in self._entries if e.entry_time < instant]
        return max(earlier, key=lambda e: (e.entry_time, e.id), default=None)

    def nearest_after(self, instant: datetime) -> Optional[Entry]:
        later = [e for e in self._entries if e.entry_time > instant]
        return min(later, key=lambda e: (e.entry_time, e.id), default=None)

    def first_matching_user(self, username: str) -> Optional[Entry]:
        pattern = username_regex(username)
        matches = [e for e in self._entries if e.username is not None and pattern.match(e.username)]
        return min(matches, key=lambda e: e.id, default=None)


def get_entry_store() -> EntryStore:
    """
    Pick the store implementation.

    SQL store when DATABASE_URL (or TEST_DATABASE_URL) is configured,
    in-memory otherwise. Connection problems surface at query time as
    StoreUnavailableError rather than silently switching stores.
    """
    if get_database_url():
        from accessboard.features.entries.store_sql import SqlEntryStore

        return SqlEntryStore()

    logger.info("entry_store.in_memory", extra={"reason": "DATABASE_URL not configured"})
    return InMemoryEntryStore()


# Global store instance (lazy initialization)
_store_instance: Optional[EntryStore] = None


def get_store() -> EntryStore:
    """Singleton store; also the FastAPI dependency for the entries route."""
    global _store_instance
    if _store_instance is None:
        _store_instance = get_entry_store()
    return _store_instance


def reset_store() -> None:
    """FOR TESTING ONLY - forces re-initialization on next get_store() call."""
    global _store_instance
    _store_instance = None
