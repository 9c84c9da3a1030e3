"""
accessboard/features/analytics/timewindow.py

Resolve a period selector (+ optional reference date or season) into a
concrete [start, end] window in the reference timezone.

Date-only inputs are wall-clock dates in the reference timezone; they are
never routed through UTC, which would shift the day for negative offsets.
"""

from __future__ import annotations

import calendar
import logging
import re
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Optional, Sequence, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from accessboard.core.errors import InvalidDateInput, UnknownSeasonKey
from accessboard.models.analytics import PeriodKind, Season, TimeWindow

logger = logging.getLogger("accessboard")

_YMD_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_YM_RE = re.compile(r"^(\d{4})-(\d{2})$")

SELECTABLE_PERIODS = (PeriodKind.DAY, PeriodKind.MONTH, PeriodKind.LAST7, PeriodKind.LAST30, PeriodKind.MTD)


def coerce_timezone(tz: Union[str, tzinfo, None]) -> tzinfo:
    if isinstance(tz, tzinfo):
        return tz
    try:
        return ZoneInfo(tz or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"[timewindow] unknown timezone {tz!r}, using UTC")
        return ZoneInfo("UTC")


def normalize_period(value: Optional[str]) -> PeriodKind:
    """Map a raw `period` parameter onto a selectable period; anything else is `day`."""
    raw = (value or "").strip().lower()
    for kind in SELECTABLE_PERIODS:
        if kind.value == raw:
            return kind
    return PeriodKind.DAY


def _now(tz: tzinfo, now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(tz)
    if now.tzinfo is None:
        return now.replace(tzinfo=tz)
    return now.astimezone(tz)


def start_of_day(moment: datetime, tz: tzinfo) -> datetime:
    local = moment.astimezone(tz)
    return datetime.combine(local.date(), time.min, tzinfo=tz)


def end_of_day(moment: datetime, tz: tzinfo) -> datetime:
    local = moment.astimezone(tz)
    return datetime.combine(local.date(), time.max, tzinfo=tz)


def start_of_month(moment: datetime, tz: tzinfo) -> datetime:
    local = moment.astimezone(tz)
    return datetime.combine(date(local.year, local.month, 1), time.min, tzinfo=tz)


def end_of_month(moment: datetime, tz: tzinfo) -> datetime:
    local = moment.astimezone(tz)
    last_day = calendar.monthrange(local.year, local.month)[1]
    return datetime.combine(date(local.year, local.month, last_day), time.max, tzinfo=tz)


def _parse_strict(value: str, tz: tzinfo) -> datetime:
    m3 = _YMD_RE.match(value)
    if m3:
        try:
            return datetime(int(m3.group(1)), int(m3.group(2)), int(m3.group(3)), tzinfo=tz)
        except ValueError as e:
            raise InvalidDateInput(value) from e
    m2 = _YM_RE.match(value)
    if m2:
        try:
            return datetime(int(m2.group(1)), int(m2.group(2)), 1, tzinfo=tz)
        except ValueError as e:
            raise InvalidDateInput(value) from e
    raise InvalidDateInput(value)


def _parse_generic(value: str, tz: tzinfo) -> datetime:
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise InvalidDateInput(value) from e
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=tz)
    return parsed.astimezone(tz)


def parse_reference_date(value: Optional[str], tz: Union[str, tzinfo] = "UTC", now: Optional[datetime] = None) -> datetime:
    """
    Parse `YYYY-MM-DD` / `YYYY-MM` as local dates, anything else as a generic
    timestamp. Unparseable input falls back to now.
    """
    zone = coerce_timezone(tz)
    current = _now(zone, now)
    text = (value or "").strip()
    if not text:
        return current
    try:
        return _parse_strict(text, zone)
    except InvalidDateInput:
        pass
    try:
        return _parse_generic(text, zone)
    except InvalidDateInput:
        logger.debug(f"[timewindow] invalid date input {text!r}, falling back to now")
        return current


def get_season(key: str, seasons: Sequence[Season]) -> Season:
    for season in seasons:
        if str(season.key) == str(key):
            return season
    raise UnknownSeasonKey(key)


def day_window(moment: datetime, tz: tzinfo) -> TimeWindow:
    return TimeWindow(start=start_of_day(moment, tz), end=end_of_day(moment, tz), period_kind=PeriodKind.DAY)


def month_window(moment: datetime, tz: tzinfo) -> TimeWindow:
    return TimeWindow(start=start_of_month(moment, tz), end=end_of_month(moment, tz), period_kind=PeriodKind.MONTH)


def resolve_window(
    period: Union[str, PeriodKind, None],
    reference: Optional[str] = None,
    season_key: Optional[str] = None,
    *,
    seasons: Sequence[Season] = (),
    tz: Union[str, tzinfo] = "UTC",
    now: Optional[datetime] = None,
) -> TimeWindow:
    """
    Turn a period selector into a TimeWindow.

    Rolling periods (last7, last30, mtd) are anchored on `now` and ignore the
    reference date. A known season key overrides the period entirely.
    """
    zone = coerce_timezone(tz)
    current = _now(zone, now)

    if season_key:
        try:
            season = get_season(season_key, seasons)
        except UnknownSeasonKey:
            logger.debug(f"[timewindow] unknown season {season_key!r}, ignoring")
        else:
            return TimeWindow(start=season.start_at, end=season.end_at, period_kind=PeriodKind.SEASON)

    kind = period if isinstance(period, PeriodKind) else normalize_period(period)

    if kind == PeriodKind.MONTH:
        return month_window(parse_reference_date(reference, zone, current), zone)
    if kind == PeriodKind.LAST7:
        return TimeWindow(start=start_of_day(current - timedelta(days=6), zone), end=end_of_day(current, zone), period_kind=kind)
    if kind == PeriodKind.LAST30:
        return TimeWindow(start=start_of_day(current - timedelta(days=29), zone), end=end_of_day(current, zone), period_kind=kind)
    if kind == PeriodKind.MTD:
        return TimeWindow(start=start_of_month(current, zone), end=end_of_day(current, zone), period_kind=kind)
    return day_window(parse_reference_date(reference, zone, current), zone)


def neighbour_window(moment: datetime, window: TimeWindow, tz: Union[str, tzinfo] = "UTC") -> TimeWindow:
    """Day or month window around `moment`, matching the granularity of `window`."""
    zone = coerce_timezone(tz)
    if window.is_month_like:
        return month_window(moment, zone)
    return day_window(moment, zone)
