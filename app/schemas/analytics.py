"""
Analytics response schemas.

GET /api/analytics/filters             → FiltersResponse
GET /api/analytics/overview            → OverviewResponse
GET /api/analytics/pulse               → list[PulsePointResponse]
GET /api/analytics/shoutouts           → list[ShoutoutPointResponse]
GET /api/analytics/leaderboard         → list[LeaderboardEntryResponse]
GET /api/analytics/checkin-compliance  → list[CompliancePointResponse]
GET /api/analytics/review-compliance   → list[CompliancePointResponse]
"""
from datetime import date
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import (
    AnalyticsPeriod,
    AnalyticsScope,
    ShoutoutDirection,
    ShoutoutVisibility,
)


class FilterStateResponse(BaseModel):
    """Filters after role-based resolution; what the queries actually ran with."""
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    scope: AnalyticsScope
    id: Optional[str] = None
    period: AnalyticsPeriod
    from_date: Optional[date] = Field(default=None, alias="from")
    to_date: Optional[date] = Field(default=None, alias="to")
    direction: ShoutoutDirection
    visibility: ShoutoutVisibility


class FiltersResponse(BaseModel):
    filters: FilterStateResponse
    query_string: str = Field(
        description="Canonical query string; only fields that differ from the defaults.",
        examples=["scope=team&id=7f1c&period=week"],
    )
    window_from: date = Field(description="First day (inclusive) of the effective window.")
    window_to: date = Field(description="Last day (inclusive) of the effective window.")
    allowed_scopes: list[AnalyticsScope] = Field(
        description="Scopes the caller may select, widest first."
    )


class OverviewMetricResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    current: float
    previous: float
    change: float = Field(
        description="Percent change vs the previous window. 0 when previous is 0.",
        examples=[-20.0],
    )
    trend: str = Field(description="up | down | flat", examples=["down"])
    display_change: str = Field(examples=["-20.0%"])


class OverviewResponse(BaseModel):
    window_from: date
    window_to: date
    previous_from: date = Field(description="Start of the equal-length window before window_from.")
    previous_to: date
    pulse_avg: OverviewMetricResponse
    total_shoutouts: OverviewMetricResponse
    active_users: OverviewMetricResponse
    completed_checkins: OverviewMetricResponse


class PulsePointResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    period_start: date
    avg_mood: float = Field(description="Mean overall_mood of completed check-ins in the bucket.")
    checkin_count: int


class ShoutoutPointResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    period_start: date
    count: int


class LeaderboardEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    rank: int = Field(description="1-based position in the ranking.")
    entity_id: str
    entity_name: str
    value: float
    display_value: str = Field(examples=["4.2", "17"])


class ComplianceMetricsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_count: int = Field(description="Due items, vacation weeks excluded.")
    on_time_count: int
    on_time_percentage: float = Field(description="Rounded to 2 decimals.", examples=[87.5])
    average_days_early: Optional[float] = None
    average_days_late: Optional[float] = None
    vacation_weeks: int


class CompliancePointResponse(BaseModel):
    period_start: Optional[date] = Field(
        default=None, description="Bucket start; null for an unbucketed summary."
    )
    metrics: ComplianceMetricsResponse
