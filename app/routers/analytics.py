"""
Analytics router — dashboard aggregation endpoints.

GET /api/analytics/filters             — resolved filters, canonical query string, allowed scopes
GET /api/analytics/overview            — headline metrics vs the previous window
GET /api/analytics/pulse               — average pulse per period bucket
GET /api/analytics/shoutouts           — shoutout counts per period bucket
GET /api/analytics/leaderboard         — top-N teams or users for one metric
GET /api/analytics/checkin-compliance  — on-time check-in submission
GET /api/analytics/review-compliance   — on-time check-in review

Every endpoint takes scope/id/period/from/to. Requested filters are first
clamped to the caller's role, then verified against the database before
any aggregation runs.
"""
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.base import get_db
from app.dependencies import get_analytics_cache, get_current_user
from app.models.enums import (
    AnalyticsPeriod,
    AnalyticsScope,
    LeaderboardMetric,
    ShoutoutDirection,
    ShoutoutVisibility,
)
from app.models.user import User
from app.schemas.common import ERROR_RESPONSES
from app.schemas.analytics import (
    CompliancePointResponse,
    ComplianceMetricsResponse,
    FilterStateResponse,
    FiltersResponse,
    LeaderboardEntryResponse,
    OverviewMetricResponse,
    OverviewResponse,
    PulsePointResponse,
    ShoutoutPointResponse,
)
from app.services import analytics as analytics_service
from app.services.analytics import (
    AnalyticsQuery,
    CompliancePoint,
    OverviewMetric,
    build_query,
)
from app.services.cache import AnalyticsCache
from app.services.filters import FilterState, to_query_string
from app.services.formatting import format_change, format_leaderboard_value, trend
from app.services.permissions import allowed_scopes, authorize_filters, resolve_filters

router = APIRouter(prefix="/api/analytics", tags=["analytics"], responses=ERROR_RESPONSES)


# ---------------------------------------------------------------------------
# Shared query parameters
# ---------------------------------------------------------------------------

def requested_filters(
    scope: AnalyticsScope = Query(
        default=AnalyticsScope.organization,
        description="organization | team | user. Clamped to what the caller may see.",
    ),
    id: Optional[str] = Query(
        default=None,
        description="Team or user id. Required for team and user scope.",
    ),
    period: AnalyticsPeriod = Query(default=AnalyticsPeriod.month),
    from_date: Optional[date] = Query(
        default=None,
        alias="from",
        description="First day (inclusive). Defaults to the period's lookback.",
        examples=["2026-01-01"],
    ),
    to_date: Optional[date] = Query(
        default=None,
        alias="to",
        description="Last day (inclusive). Defaults to today (UTC).",
        examples=["2026-03-31"],
    ),
    direction: ShoutoutDirection = Query(default=ShoutoutDirection.all),
    visibility: ShoutoutVisibility = Query(default=ShoutoutVisibility.all),
) -> FilterState:
    return FilterState(
        scope=scope,
        id=id or None,
        period=period,
        from_date=from_date,
        to_date=to_date,
        direction=direction,
        visibility=visibility,
    )


def authorized_query(
    requested: FilterState = Depends(requested_filters),
    caller: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> AnalyticsQuery:
    filters = authorize_filters(db, caller, requested)
    return build_query(caller.organization_id, filters)


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def _metric_to_response(m: OverviewMetric) -> OverviewMetricResponse:
    return OverviewMetricResponse(
        current=m.current,
        previous=m.previous,
        change=round(m.change, 2),
        trend=trend(m.change),
        display_change=format_change(m.change),
    )


def _compliance_to_response(points: list[CompliancePoint]) -> list[CompliancePointResponse]:
    return [
        CompliancePointResponse(
            period_start=p.period_start,
            metrics=ComplianceMetricsResponse.model_validate(p.metrics),
        )
        for p in points
    ]


# ---------------------------------------------------------------------------
# GET /api/analytics/filters
# ---------------------------------------------------------------------------

@router.get(
    "/filters",
    response_model=FiltersResponse,
    summary="Resolve dashboard filters for the caller",
)
def filters(
    requested: FilterState = Depends(requested_filters),
    caller: User = Depends(get_current_user),
):
    """
    Apply the caller's role to the requested filters without querying any
    analytics. Out-of-bounds scopes are downgraded, never rejected, so a
    dashboard can call this on every filter change.
    """
    resolved = resolve_filters(caller, requested)
    query = build_query(caller.organization_id, resolved)
    return FiltersResponse(
        filters=FilterStateResponse(
            scope=resolved.scope,
            id=resolved.id,
            period=resolved.period,
            from_date=resolved.from_date,
            to_date=resolved.to_date,
            direction=resolved.direction,
            visibility=resolved.visibility,
        ),
        query_string=to_query_string(resolved),
        window_from=query.start,
        window_to=query.end,
        allowed_scopes=list(allowed_scopes(caller)),
    )


# ---------------------------------------------------------------------------
# GET /api/analytics/overview
# ---------------------------------------------------------------------------

@router.get(
    "/overview",
    response_model=OverviewResponse,
    summary="Headline metrics with change vs the previous window",
)
def overview(
    query: AnalyticsQuery = Depends(authorized_query),
    db: Session = Depends(get_db),
    cache: AnalyticsCache = Depends(get_analytics_cache),
):
    """
    Pulse average, shoutouts, active users and completed check-ins for the
    window, each compared with the window of equal length just before it.
    `change` is 0 when the previous value is 0.
    """
    result = analytics_service.get_overview(db, query, cache)
    return OverviewResponse(
        window_from=result.start,
        window_to=result.end,
        previous_from=result.previous_start,
        previous_to=result.previous_end,
        pulse_avg=_metric_to_response(result.pulse_avg),
        total_shoutouts=_metric_to_response(result.total_shoutouts),
        active_users=_metric_to_response(result.active_users),
        completed_checkins=_metric_to_response(result.completed_checkins),
    )


# ---------------------------------------------------------------------------
# GET /api/analytics/pulse
# ---------------------------------------------------------------------------

@router.get(
    "/pulse",
    response_model=list[PulsePointResponse],
    summary="Average pulse per period",
)
def pulse(
    query: AnalyticsQuery = Depends(authorized_query),
    db: Session = Depends(get_db),
    cache: AnalyticsCache = Depends(get_analytics_cache),
):
    """Completed check-ins bucketed on `week_of`, oldest first. Empty buckets are omitted."""
    points = analytics_service.get_pulse_series(db, query, cache)
    return [PulsePointResponse.model_validate(p) for p in points]


# ---------------------------------------------------------------------------
# GET /api/analytics/shoutouts
# ---------------------------------------------------------------------------

@router.get(
    "/shoutouts",
    response_model=list[ShoutoutPointResponse],
    summary="Shoutouts per period",
)
def shoutouts(
    query: AnalyticsQuery = Depends(authorized_query),
    db: Session = Depends(get_db),
    cache: AnalyticsCache = Depends(get_analytics_cache),
):
    """
    Shoutouts bucketed on creation time. `direction` is relative to the
    scoped user or team; it has no effect at organization scope.
    """
    points = analytics_service.get_shoutout_series(db, query, cache)
    return [ShoutoutPointResponse.model_validate(p) for p in points]


# ---------------------------------------------------------------------------
# GET /api/analytics/leaderboard
# ---------------------------------------------------------------------------

@router.get(
    "/leaderboard",
    response_model=list[LeaderboardEntryResponse],
    summary="Top teams or users for one metric",
)
def leaderboard(
    metric: LeaderboardMetric = Query(default=LeaderboardMetric.shoutouts_received),
    limit: Optional[int] = Query(
        default=None,
        ge=1,
        le=settings.LEADERBOARD_MAX_LIMIT,
        description="Maximum entries. Defaults to LEADERBOARD_LIMIT.",
    ),
    query: AnalyticsQuery = Depends(authorized_query),
    db: Session = Depends(get_db),
    cache: AnalyticsCache = Depends(get_analytics_cache),
):
    """
    Organization scope ranks teams, team scope ranks the team's members and
    user scope returns just that user. Highest value first.
    """
    entries = analytics_service.get_leaderboard(db, query, metric, limit, cache)
    return [
        LeaderboardEntryResponse(
            rank=i,
            entity_id=e.entity_id,
            entity_name=e.entity_name,
            value=e.value,
            display_value=format_leaderboard_value(metric, e.value),
        )
        for i, e in enumerate(entries, start=1)
    ]


# ---------------------------------------------------------------------------
# GET /api/analytics/checkin-compliance, /review-compliance
# ---------------------------------------------------------------------------

@router.get(
    "/checkin-compliance",
    response_model=list[CompliancePointResponse],
    summary="On-time check-in submission",
)
def checkin_compliance(
    bucketed: bool = Query(default=False, description="One point per period instead of a single summary."),
    query: AnalyticsQuery = Depends(authorized_query),
    db: Session = Depends(get_db),
    cache: AnalyticsCache = Depends(get_analytics_cache),
):
    """Vacation weeks are excluded from the due count."""
    points = analytics_service.get_checkin_compliance(db, query, bucketed, cache)
    return _compliance_to_response(points)


@router.get(
    "/review-compliance",
    response_model=list[CompliancePointResponse],
    summary="On-time check-in review",
)
def review_compliance(
    bucketed: bool = Query(default=False, description="One point per period instead of a single summary."),
    query: AnalyticsQuery = Depends(authorized_query),
    db: Session = Depends(get_db),
    cache: AnalyticsCache = Depends(get_analytics_cache),
):
    """
    Attributed to the reviewer: user scope reads reviews done by that user,
    team scope reads reviews done by the team's leader.
    """
    points = analytics_service.get_review_compliance(db, query, bucketed, cache)
    return _compliance_to_response(points)
