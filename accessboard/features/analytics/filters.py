"""
accessboard/features/analytics/filters.py

Canonical entry predicate shared by every aggregate query, plus the
query-string helper used to build navigation links.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from datetime import datetime
from functools import cached_property
from typing import Any, Mapping, Optional, Pattern
from urllib.parse import urlencode

from accessboard.models.analytics import TimeWindow
from accessboard.models.entry import Entry

LIKE_ESCAPE = "\\"


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so the value only matches itself."""
    return (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def username_regex(username: str) -> Pattern[str]:
    """Anchored, escaped, case-insensitive exact-match pattern."""
    return re.compile(rf"{re.escape(username)}\Z", re.IGNORECASE)


@dataclass(frozen=True)
class EntryFilter:
    """
    Entry predicate: time window (inclusive bounds), exact lock id and
    case-insensitive exact username. Absent parts match everything.
    """

    start: Optional[datetime] = None
    end: Optional[datetime] = None
    lock_id: Optional[str] = None
    username: Optional[str] = None

    @cached_property
    def _username_pattern(self) -> Optional[Pattern[str]]:
        return username_regex(self.username) if self.username else None

    def matches(self, entry: Entry) -> bool:
        if self.start is not None and entry.entry_time < self.start:
            return False
        if self.end is not None and entry.entry_time > self.end:
            return False
        if self.lock_id is not None and entry.lock_id != self.lock_id:
            return False
        if self._username_pattern is not None:
            if entry.username is None or not self._username_pattern.match(entry.username):
                return False
        return True

    def with_lock(self, lock_id: Optional[str]) -> "EntryFilter":
        return replace(self, lock_id=lock_id or None)


def build_filter(
    window: Optional[TimeWindow] = None,
    lock_id: Optional[str] = None,
    username: Optional[str] = None,
) -> EntryFilter:
    """Normalise raw request filters: blank values count as absent."""
    lock = (lock_id or "").strip() or None
    user = (username or "").strip() or None
    return EntryFilter(
        start=window.start if window else None,
        end=window.end if window else None,
        lock_id=lock,
        username=user,
    )


def build_query(params: Optional[Mapping[str, Any]] = None) -> str:
    """Form-encode params, skipping None and empty-string values."""
    clean = {k: v for k, v in (params or {}).items() if v is not None and v != ""}
    return urlencode(clean)
