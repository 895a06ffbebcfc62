"""
Calendar helpers for analytics windows and time buckets.

Windows are inclusive calendar days [start, end]. Queries run them as the
half-open timestamp range [start 00:00, end+1 00:00) so a row created at
23:59 on `end` is counted exactly once.
"""
from __future__ import annotations

import calendar
from collections import OrderedDict
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Iterable, TypeVar

from app.models.enums import AnalyticsPeriod

T = TypeVar("T")


def today() -> date:
    return datetime.now(tz=timezone.utc).date()


def sub_months(d: date, months: int) -> date:
    """Step back `months` calendar months, clamping to the month's last day."""
    index = d.year * 12 + (d.month - 1) - months
    year, month = divmod(index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(d.day, last_day))


def sub_years(d: date, years: int) -> date:
    return sub_months(d, years * 12)


def truncate(d: date | datetime, period: AnalyticsPeriod) -> date:
    """Start date of the `period` bucket containing `d`. Weeks start on Monday."""
    if isinstance(d, datetime):
        d = d.date()
    if period == AnalyticsPeriod.day:
        return d
    if period == AnalyticsPeriod.week:
        return d - timedelta(days=d.weekday())
    if period == AnalyticsPeriod.month:
        return d.replace(day=1)
    if period == AnalyticsPeriod.quarter:
        return date(d.year, ((d.month - 1) // 3) * 3 + 1, 1)
    return date(d.year, 1, 1)


def window_bounds(start: date, end: date) -> tuple[datetime, datetime]:
    """Timestamp range [start 00:00, end+1 00:00) for an inclusive day window."""
    return (
        datetime.combine(start, time.min),
        datetime.combine(end + timedelta(days=1), time.min),
    )


def previous_window(start: date, end: date) -> tuple[date, date]:
    """The adjacent window of equal length that ends the day before `start`."""
    length = (end - start).days + 1
    prev_end = start - timedelta(days=1)
    return prev_end - timedelta(days=length - 1), prev_end


def bucket_rows(
    rows: Iterable[T],
    period: AnalyticsPeriod,
    key: Callable[[T], date | datetime],
) -> "OrderedDict[date, list[T]]":
    """Group rows by bucket start, ascending. Empty buckets are not synthesized."""
    grouped: dict[date, list[T]] = {}
    for row in rows:
        grouped.setdefault(truncate(key(row), period), []).append(row)
    return OrderedDict(sorted(grouped.items()))


def is_settled_window(start: date, end: date, recency_days: int, ref: date | None = None) -> bool:
    """True when the whole window ends more than `recency_days` before `ref`."""
    cutoff = (ref or today()) - timedelta(days=recency_days)
    return start < cutoff and end < cutoff
