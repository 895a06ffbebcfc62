"""
Analytics filter state and its query-string form.

A FilterState is what a dashboard view is parameterised by. It round-trips
through the address bar so views are shareable: only fields that differ
from DEFAULT_FILTERS are written, in a fixed order.

Explicit `from`/`to` are optional. When absent, the window is the period's
default lookback ending today (see DEFAULT_LOOKBACK), so changing the
period moves the window along with it.

Public API
----------
parse_query_string(query)          -> FilterState
to_query_string(filters)           -> str
default_date_range(period, ref)    -> (date, date)
effective_range(filters, ref)      -> (date, date)
with_period / with_scope / with_range
to_request_params(filters, ref)    -> dict[str, str]
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, timedelta
from typing import Mapping, Optional, Union
from urllib.parse import parse_qs, urlencode

from app.models.enums import (
    AnalyticsPeriod,
    AnalyticsScope,
    ShoutoutDirection,
    ShoutoutVisibility,
)
from app.services.periods import sub_months, sub_years, today


@dataclass(frozen=True)
class FilterState:
    scope: AnalyticsScope = AnalyticsScope.organization
    id: Optional[str] = None
    period: AnalyticsPeriod = AnalyticsPeriod.month
    from_date: Optional[date] = None
    to_date: Optional[date] = None
    direction: ShoutoutDirection = ShoutoutDirection.all
    visibility: ShoutoutVisibility = ShoutoutVisibility.all

    @property
    def is_queryable(self) -> bool:
        """Team and user scopes need an entity id before anything is fetched."""
        return self.scope == AnalyticsScope.organization or bool(self.id)


DEFAULT_FILTERS = FilterState()


def default_date_range(period: AnalyticsPeriod, ref: Optional[date] = None) -> tuple[date, date]:
    end = ref or today()
    if period == AnalyticsPeriod.day:
        return end - timedelta(days=30), end
    if period == AnalyticsPeriod.week:
        return end - timedelta(weeks=12), end
    if period == AnalyticsPeriod.quarter:
        return sub_years(end, 2), end
    if period == AnalyticsPeriod.year:
        return sub_years(end, 5), end
    return sub_months(end, 12), end


def effective_range(filters: FilterState, ref: Optional[date] = None) -> tuple[date, date]:
    default_from, default_to = default_date_range(filters.period, ref)
    return filters.from_date or default_from, filters.to_date or default_to


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------

def with_period(filters: FilterState, period: AnalyticsPeriod) -> FilterState:
    """Switch granularity; the window snaps back to the new period's default."""
    return replace(filters, period=period, from_date=None, to_date=None)


def with_scope(filters: FilterState, scope: AnalyticsScope) -> FilterState:
    """Switch scope; the previously selected entity never carries over."""
    return replace(filters, scope=scope, id=None)


def with_range(filters: FilterState, start: Optional[date], end: Optional[date]) -> FilterState:
    return replace(filters, from_date=start, to_date=end)


# ---------------------------------------------------------------------------
# Query-string codec
# ---------------------------------------------------------------------------

def _enum_or_default(enum_cls, raw: Optional[str], default):
    if not raw:
        return default
    try:
        return enum_cls(raw)
    except ValueError:
        return default


def _date_or_none(raw: Optional[str]) -> Optional[date]:
    if not raw:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError:
        return None


def parse_query_string(query: Union[str, Mapping[str, str]]) -> FilterState:
    """Build a FilterState from `?a=b` text or a flat mapping. Bad values fall back to defaults."""
    if isinstance(query, str):
        parsed = parse_qs(query.lstrip("?"), keep_blank_values=False)
        params = {k: v[0] for k, v in parsed.items() if v}
    else:
        params = dict(query)

    d = DEFAULT_FILTERS
    scope = _enum_or_default(AnalyticsScope, params.get("scope"), d.scope)
    return FilterState(
        scope=scope,
        id=None if scope == AnalyticsScope.organization else params.get("id") or None,
        period=_enum_or_default(AnalyticsPeriod, params.get("period"), d.period),
        from_date=_date_or_none(params.get("from")),
        to_date=_date_or_none(params.get("to")),
        direction=_enum_or_default(ShoutoutDirection, params.get("direction"), d.direction),
        visibility=_enum_or_default(ShoutoutVisibility, params.get("visibility"), d.visibility),
    )


def to_query_string(filters: FilterState) -> str:
    d = DEFAULT_FILTERS
    pairs: list[tuple[str, str]] = []
    if filters.scope != d.scope:
        pairs.append(("scope", filters.scope.value))
    if filters.id and filters.scope != AnalyticsScope.organization:
        pairs.append(("id", filters.id))
    if filters.period != d.period:
        pairs.append(("period", filters.period.value))
    if filters.from_date:
        pairs.append(("from", filters.from_date.isoformat()))
    if filters.to_date:
        pairs.append(("to", filters.to_date.isoformat()))
    if filters.direction != d.direction:
        pairs.append(("direction", filters.direction.value))
    if filters.visibility != d.visibility:
        pairs.append(("visibility", filters.visibility.value))
    return urlencode(pairs)


def to_request_params(filters: FilterState, ref: Optional[date] = None) -> dict[str, str]:
    """Parameters sent to the aggregation endpoints; the window is always explicit."""
    start, end = effective_range(filters, ref)
    params = {
        "scope": filters.scope.value,
        "period": filters.period.value,
        "from": start.isoformat(),
        "to": end.isoformat(),
    }
    if filters.id and filters.scope != AnalyticsScope.organization:
        params["id"] = filters.id
    return params
