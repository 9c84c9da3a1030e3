"""
accessboard/api/entries.py

GET /api/entries: paginated entries plus every analytics section.
Read-only; one request recomputes everything from the entry store.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query

from accessboard.core.config import AnalyticsConfig, settings
from accessboard.core.errors import ValidationError
from accessboard.core.logging import log_event
from accessboard.features.analytics.service import AnalyticsService, EntriesQuery
from accessboard.features.entries.store import EntryStore, get_store

logger = logging.getLogger("accessboard")

router = APIRouter(prefix="/api", tags=["entries"])


def get_analytics_config() -> AnalyticsConfig:
    return AnalyticsConfig.from_settings()


def _parse_positive_int(name: str, raw: Optional[str], default: int, maximum: Optional[int] = None) -> int:
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")
    if value < 1:
        raise ValidationError(f"{name} must be >= 1")
    if maximum is not None and value > maximum:
        raise ValidationError(f"{name} must be <= {maximum}")
    return value


def _parse_now(now: Optional[str]) -> Optional[datetime]:
    if not now:
        return None
    try:
        return datetime.fromisoformat(now.replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError("now must be an ISO timestamp")


@router.get("/entries", response_model=Dict[str, Any])
def list_entries(
    page: Optional[str] = Query(None, description="1-based page number"),
    limit: Optional[str] = Query(None, description="Page size"),
    lockId: Optional[str] = Query(None, description="Restrict to one lock"),
    userId: Optional[str] = Query(None, description="Username, matched case-insensitively"),
    date: Optional[str] = Query(None, description="Reference date: YYYY-MM-DD, YYYY-MM or ISO timestamp"),
    period: Optional[str] = Query(None, description="day | month | last7 | last30 | mtd"),
    season: Optional[str] = Query(None, description="Season key from the configured catalog"),
    now: Optional[str] = Query(None, description="ISO timestamp for deterministic results (testing only)"),
    store: EntryStore = Depends(get_store),
    config: AnalyticsConfig = Depends(get_analytics_config),
) -> Dict[str, Any]:
    """
    Entries for the resolved window, with pagination, filters, range summary,
    leaderboards, optional user profile and season progress, and chart series.

    Deterministic: same entries + same now => identical output.
    """
    query = EntriesQuery(
        page=_parse_positive_int("page", page, 1),
        limit=_parse_positive_int("limit", limit, settings.DEFAULT_PAGE_LIMIT, settings.MAX_PAGE_LIMIT),
        lock_id=lockId,
        username=userId,
        date=date,
        period=period,
        season=season,
    )
    payload = AnalyticsService(store, config).build_payload(query, now=_parse_now(now))
    log_event(
        "info",
        "entries.served",
        request_id=None,
        username=(userId or "").strip() or None,
        lock_id=lockId or None,
        period=payload["filters"]["period"],
        extra={"total": payload["pagination"]["total"]},
    )
    return payload
