"""
Analytics aggregation service.

Every public function takes an AnalyticsQuery whose filters have already
been through permissions.authorize_filters; this module only narrows rows
to that scope and aggregates them. Reads raw tables by default and daily
rollups (models.aggregates) when USE_AGGREGATES allows it.

Public API
----------
build_query(organization_id, filters, ref)         -> AnalyticsQuery
get_overview(db, query, cache)                      -> Overview
get_pulse_series(db, query, cache)                  -> list[PulsePoint]
get_shoutout_series(db, query, cache)               -> list[ShoutoutPoint]
get_leaderboard(db, query, metric, limit, cache)    -> list[LeaderboardEntry]
get_checkin_compliance(db, query, bucketed, cache)  -> list[CompliancePoint]
get_review_compliance(db, query, bucketed, cache)   -> list[CompliancePoint]
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Callable, Optional, TypeVar

from sqlalchemy import and_, distinct, func, or_, select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import InvalidDateRangeError
from app.models.aggregates import ComplianceMetricsDaily, PulseMetricsDaily, ShoutoutMetricsDaily
from app.models.checkin import Checkin
from app.models.enums import (
    AnalyticsPeriod,
    AnalyticsScope,
    LeaderboardMetric,
    ShoutoutDirection,
    ShoutoutVisibility,
)
from app.models.shoutout import Shoutout
from app.models.team import Team
from app.models.user import User
from app.models.vacation import Vacation
from app.services.cache import AnalyticsCache, make_key
from app.services.filters import FilterState, effective_range
from app.services.formatting import percent_change
from app.services.periods import bucket_rows, is_settled_window, previous_window, today, window_bounds

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Query + result types (plain dataclasses, serialized by the router)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AnalyticsQuery:
    organization_id: str
    filters: FilterState
    start: date
    end: date

    @property
    def scope(self) -> AnalyticsScope:
        return self.filters.scope

    @property
    def entity_id(self) -> Optional[str]:
        return self.filters.id

    @property
    def period(self) -> AnalyticsPeriod:
        return self.filters.period

    def cache_params(self, **extra: Any) -> dict[str, Any]:
        params = {
            "scope": self.scope,
            "id": self.entity_id,
            "period": self.period,
            "from": self.start,
            "to": self.end,
        }
        params.update(extra)
        return params


@dataclass
class OverviewMetric:
    current: float
    previous: float
    change: float


@dataclass
class Overview:
    start: date
    end: date
    previous_start: date
    previous_end: date
    pulse_avg: OverviewMetric
    total_shoutouts: OverviewMetric
    active_users: OverviewMetric
    completed_checkins: OverviewMetric


@dataclass
class PulsePoint:
    period_start: date
    avg_mood: float
    checkin_count: int


@dataclass
class ShoutoutPoint:
    period_start: date
    count: int


@dataclass
class LeaderboardEntry:
    entity_id: str
    entity_name: str
    value: float


@dataclass
class ComplianceMetrics:
    total_count: int = 0
    on_time_count: int = 0
    on_time_percentage: float = 0.0
    average_days_early: Optional[float] = None
    average_days_late: Optional[float] = None
    vacation_weeks: int = 0


@dataclass
class CompliancePoint:
    period_start: Optional[date]
    metrics: ComplianceMetrics = field(default_factory=ComplianceMetrics)


@dataclass
class _ComplianceRecord:
    week_of: date
    on_time: bool
    on_vacation: bool
    done_at: Optional[datetime]
    due_at: Optional[datetime]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def build_query(
    organization_id: str,
    filters: FilterState,
    ref: Optional[date] = None,
) -> AnalyticsQuery:
    start, end = effective_range(filters, ref)
    if start > end:
        raise InvalidDateRangeError(start, end)
    return AnalyticsQuery(organization_id=organization_id, filters=filters, start=start, end=end)


def _ttl_for(query: AnalyticsQuery) -> int:
    if (today() - query.start) > timedelta(days=7):
        return settings.ANALYTICS_CACHE_STALE_TTL_SECONDS
    return settings.ANALYTICS_CACHE_TTL_SECONDS


def _cached(
    cache: Optional[AnalyticsCache],
    method: str,
    query: AnalyticsQuery,
    params: dict[str, Any],
    compute: Callable[[], T],
) -> T:
    if cache is None:
        return compute()
    key = make_key(method, query.organization_id, params)
    hit = cache.get(key)
    if hit is not None:
        return hit
    result = compute()
    cache.set(key, result, ttl=_ttl_for(query))
    return result


def _use_rollups(query: AnalyticsQuery) -> bool:
    if not settings.USE_AGGREGATES:
        return False
    if query.period != AnalyticsPeriod.day:
        return True
    return is_settled_window(query.start, query.end, settings.AGGREGATE_RECENCY_DAYS)


def _read(
    method: str,
    query: AnalyticsQuery,
    use_rollups: bool,
    from_rollups: Callable[[], list],
    from_raw: Callable[[], list],
) -> list:
    """Serve from rollups or raw rows. With SHADOW_READS, rollup reads are also run raw and compared."""
    if not use_rollups:
        return from_raw()
    result = from_rollups()
    if settings.SHADOW_READS:
        raw = from_raw()
        logger.info(
            "Shadow read %s org %s scope=%s %s..%s: rollup=%d raw=%d match=%s",
            method, query.organization_id, query.scope.value, query.start, query.end,
            len(result), len(raw), result == raw,
        )
    return result


def _team_members(query: AnalyticsQuery):
    return select(User.id).where(
        User.team_id == query.entity_id,
        User.organization_id == query.organization_id,
    )


def _scoped_user_column(q, column, query: AnalyticsQuery):
    """Restrict a query whose rows belong to `column` (a user id) to the scope."""
    if query.scope == AnalyticsScope.team:
        return q.filter(column.in_(_team_members(query)))
    if query.scope == AnalyticsScope.user:
        return q.filter(column == query.entity_id)
    return q


def _shoutout_scope(q, query: AnalyticsQuery, direction: ShoutoutDirection):
    if query.scope == AnalyticsScope.organization:
        return q
    if query.scope == AnalyticsScope.team:
        members = _team_members(query)
        to_match = Shoutout.to_user_id.in_(members)
        from_match = Shoutout.from_user_id.in_(members)
    else:
        to_match = Shoutout.to_user_id == query.entity_id
        from_match = Shoutout.from_user_id == query.entity_id

    if direction == ShoutoutDirection.received:
        return q.filter(to_match)
    if direction == ShoutoutDirection.given:
        return q.filter(from_match)
    return q.filter(or_(to_match, from_match))


def _metric(current: float, previous: float) -> OverviewMetric:
    return OverviewMetric(
        current=current,
        previous=previous,
        change=percent_change(current, previous),
    )


# ---------------------------------------------------------------------------
# Overview
# ---------------------------------------------------------------------------

def _window_totals(db: Session, query: AnalyticsQuery, start: date, end: date) -> dict[str, float]:
    lo, hi = window_bounds(start, end)
    org = query.organization_id

    completed = _scoped_user_column(
        db.query(func.avg(Checkin.overall_mood), func.count(Checkin.id)).filter(
            Checkin.organization_id == org,
            Checkin.is_complete.is_(True),
            Checkin.created_at >= lo,
            Checkin.created_at < hi,
        ),
        Checkin.user_id,
        query,
    ).one()

    active = _scoped_user_column(
        db.query(func.count(distinct(Checkin.user_id))).filter(
            Checkin.organization_id == org,
            Checkin.created_at >= lo,
            Checkin.created_at < hi,
        ),
        Checkin.user_id,
        query,
    ).scalar()

    shoutouts = _shoutout_scope(
        db.query(func.count(Shoutout.id)).filter(
            Shoutout.organization_id == org,
            Shoutout.created_at >= lo,
            Shoutout.created_at < hi,
        ),
        query,
        ShoutoutDirection.all,
    ).scalar()

    return {
        "pulse_avg": float(completed[0] or 0),
        "completed_checkins": int(completed[1] or 0),
        "active_users": int(active or 0),
        "total_shoutouts": int(shoutouts or 0),
    }


def get_overview(
    db: Session,
    query: AnalyticsQuery,
    cache: Optional[AnalyticsCache] = None,
) -> Overview:
    """Four headline metrics for the window against the preceding window of equal length."""

    def compute() -> Overview:
        prev_start, prev_end = previous_window(query.start, query.end)
        current = _window_totals(db, query, query.start, query.end)
        previous = _window_totals(db, query, prev_start, prev_end)
        return Overview(
            start=query.start,
            end=query.end,
            previous_start=prev_start,
            previous_end=prev_end,
            pulse_avg=_metric(current["pulse_avg"], previous["pulse_avg"]),
            total_shoutouts=_metric(current["total_shoutouts"], previous["total_shoutouts"]),
            active_users=_metric(current["active_users"], previous["active_users"]),
            completed_checkins=_metric(current["completed_checkins"], previous["completed_checkins"]),
        )

    return _cached(cache, "overview", query, query.cache_params(), compute)


# ---------------------------------------------------------------------------
# Pulse series
# ---------------------------------------------------------------------------

def _pulse_from_raw(db: Session, query: AnalyticsQuery) -> list[PulsePoint]:
    rows = _scoped_user_column(
        db.query(Checkin.week_of, Checkin.overall_mood).filter(
            Checkin.organization_id == query.organization_id,
            Checkin.is_complete.is_(True),
            Checkin.week_of >= query.start,
            Checkin.week_of <= query.end,
        ),
        Checkin.user_id,
        query,
    ).all()

    points = []
    for bucket, items in bucket_rows(rows, query.period, key=lambda r: r.week_of).items():
        moods = [r.overall_mood for r in items]
        points.append(PulsePoint(
            period_start=bucket,
            avg_mood=sum(moods) / len(moods),
            checkin_count=len(moods),
        ))
    return points


def _pulse_from_rollups(db: Session, query: AnalyticsQuery) -> list[PulsePoint]:
    q = db.query(
        PulseMetricsDaily.bucket_date,
        PulseMetricsDaily.mood_sum,
        PulseMetricsDaily.checkin_count,
    ).filter(
        PulseMetricsDaily.organization_id == query.organization_id,
        PulseMetricsDaily.bucket_date >= query.start,
        PulseMetricsDaily.bucket_date <= query.end,
    )
    if query.scope == AnalyticsScope.team:
        q = q.filter(PulseMetricsDaily.team_id == query.entity_id)
    elif query.scope == AnalyticsScope.user:
        q = q.filter(PulseMetricsDaily.user_id == query.entity_id)

    points = []
    for bucket, items in bucket_rows(q.all(), query.period, key=lambda r: r.bucket_date).items():
        total = sum(r.checkin_count for r in items)
        mood = sum(r.mood_sum for r in items)
        points.append(PulsePoint(
            period_start=bucket,
            avg_mood=mood / total if total else 0.0,
            checkin_count=total,
        ))
    return points


def get_pulse_series(
    db: Session,
    query: AnalyticsQuery,
    cache: Optional[AnalyticsCache] = None,
) -> list[PulsePoint]:
    """Average pulse per bucket of completed check-ins, oldest bucket first."""
    use_rollups = _use_rollups(query)

    def compute() -> list[PulsePoint]:
        return _read(
            "pulse", query, use_rollups,
            lambda: _pulse_from_rollups(db, query),
            lambda: _pulse_from_raw(db, query),
        )

    return _cached(
        cache, "pulse", query, query.cache_params(source="rollup" if use_rollups else "raw"), compute
    )


# ---------------------------------------------------------------------------
# Shoutout series
# ---------------------------------------------------------------------------

def _shoutouts_from_raw(db: Session, query: AnalyticsQuery) -> list[ShoutoutPoint]:
    lo, hi = window_bounds(query.start, query.end)
    q = db.query(Shoutout.created_at).filter(
        Shoutout.organization_id == query.organization_id,
        Shoutout.created_at >= lo,
        Shoutout.created_at < hi,
    )
    q = _shoutout_scope(q, query, query.filters.direction)
    if query.filters.visibility == ShoutoutVisibility.public:
        q = q.filter(Shoutout.is_public.is_(True))
    elif query.filters.visibility == ShoutoutVisibility.private:
        q = q.filter(Shoutout.is_public.is_(False))

    return [
        ShoutoutPoint(period_start=bucket, count=len(items))
        for bucket, items in bucket_rows(q.all(), query.period, key=lambda r: r.created_at).items()
    ]


def _shoutouts_from_rollups(db: Session, query: AnalyticsQuery) -> list[ShoutoutPoint]:
    q = db.query(
        ShoutoutMetricsDaily.bucket_date,
        ShoutoutMetricsDaily.received_count,
        ShoutoutMetricsDaily.given_count,
    ).filter(
        ShoutoutMetricsDaily.organization_id == query.organization_id,
        ShoutoutMetricsDaily.bucket_date >= query.start,
        ShoutoutMetricsDaily.bucket_date <= query.end,
    )
    if query.scope == AnalyticsScope.team:
        q = q.filter(ShoutoutMetricsDaily.team_id == query.entity_id)
    elif query.scope == AnalyticsScope.user:
        q = q.filter(ShoutoutMetricsDaily.user_id == query.entity_id)

    direction = query.filters.direction
    if query.scope == AnalyticsScope.organization:
        # Every shoutout is one receipt and one gift inside the org.
        direction = ShoutoutDirection.received

    def count(row) -> int:
        if direction == ShoutoutDirection.received:
            return row.received_count
        if direction == ShoutoutDirection.given:
            return row.given_count
        return row.received_count + row.given_count

    points = []
    for bucket, items in bucket_rows(q.all(), query.period, key=lambda r: r.bucket_date).items():
        total = sum(count(r) for r in items)
        # a row can hold only the other direction
        if total:
            points.append(ShoutoutPoint(period_start=bucket, count=total))
    return points


def get_shoutout_series(
    db: Session,
    query: AnalyticsQuery,
    cache: Optional[AnalyticsCache] = None,
) -> list[ShoutoutPoint]:
    # Rollups only keep received-side visibility counts, so filtered views read raw.
    use_rollups = _use_rollups(query) and query.filters.visibility == ShoutoutVisibility.all

    def compute() -> list[ShoutoutPoint]:
        return _read(
            "shoutouts", query, use_rollups,
            lambda: _shoutouts_from_rollups(db, query),
            lambda: _shoutouts_from_raw(db, query),
        )

    params = query.cache_params(
        direction=query.filters.direction,
        visibility=query.filters.visibility,
        source="rollup" if use_rollups else "raw",
    )
    return _cached(cache, "shoutouts", query, params, compute)


# ---------------------------------------------------------------------------
# Leaderboard
# ---------------------------------------------------------------------------

def _leaderboard_rows(db: Session, query: AnalyticsQuery, metric: LeaderboardMetric, limit: int):
    lo, hi = window_bounds(query.start, query.end)
    org = query.organization_id

    if metric == LeaderboardMetric.pulse_avg:
        user_col = Checkin.user_id
        value = func.avg(Checkin.overall_mood)
        base_filters = [
            Checkin.organization_id == org,
            Checkin.is_complete.is_(True),
            Checkin.created_at >= lo,
            Checkin.created_at < hi,
        ]
        source = Checkin
    else:
        user_col = (
            Shoutout.to_user_id if metric == LeaderboardMetric.shoutouts_received
            else Shoutout.from_user_id
        )
        value = func.count(Shoutout.id)
        base_filters = [
            Shoutout.organization_id == org,
            Shoutout.created_at >= lo,
            Shoutout.created_at < hi,
        ]
        source = Shoutout

    if query.scope == AnalyticsScope.organization:
        entity = User.team_id
        extra = [User.team_id.isnot(None)]
    elif query.scope == AnalyticsScope.team:
        entity = user_col
        extra = [User.team_id == query.entity_id]
    else:
        entity = user_col
        extra = [user_col == query.entity_id]

    return (
        db.query(entity.label("entity_id"), value.label("value"))
        .select_from(source)
        .join(User, and_(User.id == user_col, User.organization_id == org))
        .filter(*base_filters, *extra)
        .group_by(entity)
        .order_by(value.desc(), entity.asc())
        .limit(limit)
        .all()
    )


def _entity_names(db: Session, query: AnalyticsQuery, ids: list[str]) -> dict[str, str]:
    if not ids:
        return {}
    model = Team if query.scope == AnalyticsScope.organization else User
    rows = (
        db.query(model.id, model.name)
        .filter(model.id.in_(ids), model.organization_id == query.organization_id)
        .all()
    )
    return {r.id: r.name for r in rows}


def get_leaderboard(
    db: Session,
    query: AnalyticsQuery,
    metric: LeaderboardMetric,
    limit: Optional[int] = None,
    cache: Optional[AnalyticsCache] = None,
) -> list[LeaderboardEntry]:
    """
    Top-N ranking for `metric` inside the scope.

    organization scope ranks teams, team scope ranks that team's users,
    user scope yields the single user. Equal values keep entity id order.
    """
    limit = limit or settings.LEADERBOARD_LIMIT

    def compute() -> list[LeaderboardEntry]:
        rows = _leaderboard_rows(db, query, metric, limit)
        names = _entity_names(db, query, [r.entity_id for r in rows])
        return [
            LeaderboardEntry(
                entity_id=r.entity_id,
                entity_name=names.get(r.entity_id, "Unknown"),
                value=float(r.value or 0) if metric == LeaderboardMetric.pulse_avg else int(r.value or 0),
            )
            for r in rows
        ]

    return _cached(cache, "leaderboard", query, query.cache_params(metric=metric, limit=limit), compute)


# ---------------------------------------------------------------------------
# Compliance
# ---------------------------------------------------------------------------

def offset_days(done: datetime, due: datetime) -> float:
    """Days from due to done; negative when done early."""
    if (done.tzinfo is None) != (due.tzinfo is None):
        done, due = done.replace(tzinfo=None), due.replace(tzinfo=None)
    return (done - due).total_seconds() / 86400


def _compliance_metrics(
    due: int,
    on_time: int,
    vacation: int,
    early_count: int,
    early_days: float,
    late_count: int,
    late_days: float,
) -> ComplianceMetrics:
    return ComplianceMetrics(
        total_count=due,
        on_time_count=on_time,
        on_time_percentage=round(on_time / due * 100, 2) if due else 0.0,
        average_days_early=early_days / early_count if early_count else None,
        average_days_late=late_days / late_count if late_count else None,
        vacation_weeks=vacation,
    )


def summarize_compliance(records: list[_ComplianceRecord]) -> ComplianceMetrics:
    """
    Vacation weeks are not "due", but an on-time submission during one
    still counts as on time.
    """
    if not records:
        return ComplianceMetrics()

    due = sum(1 for r in records if not r.on_vacation)
    on_time = sum(1 for r in records if r.on_time)

    early: list[float] = []
    late: list[float] = []
    for r in records:
        if r.done_at is None or r.due_at is None:
            continue
        diff = offset_days(r.done_at, r.due_at)
        if diff < 0:
            early.append(-diff)
        elif diff > 0:
            late.append(diff)

    return _compliance_metrics(
        due=due,
        on_time=on_time,
        vacation=len(records) - due,
        early_count=len(early),
        early_days=sum(early),
        late_count=len(late),
        late_days=sum(late),
    )


def _compliance_points(
    records: list[_ComplianceRecord],
    period: AnalyticsPeriod,
    bucketed: bool,
) -> list[CompliancePoint]:
    if not bucketed:
        return [CompliancePoint(period_start=None, metrics=summarize_compliance(records))]
    return [
        CompliancePoint(period_start=bucket, metrics=summarize_compliance(items))
        for bucket, items in bucket_rows(records, period, key=lambda r: r.week_of).items()
    ]


def _checkin_records(db: Session, query: AnalyticsQuery) -> list[_ComplianceRecord]:
    org = query.organization_id
    q = (
        db.query(
            Checkin.week_of,
            Checkin.submitted_on_time,
            Checkin.submitted_at,
            Checkin.due_date,
            Vacation.id.label("vacation_id"),
        )
        .join(User, User.id == Checkin.user_id)
        .outerjoin(Vacation, and_(
            Vacation.organization_id == org,
            Vacation.user_id == Checkin.user_id,
            Vacation.week_of == Checkin.week_of,
        ))
        .filter(
            Checkin.organization_id == org,
            Checkin.is_complete.is_(True),
            Checkin.week_of >= query.start,
            Checkin.week_of <= query.end,
        )
    )
    if query.scope == AnalyticsScope.team:
        q = q.filter(User.team_id == query.entity_id)
    elif query.scope == AnalyticsScope.user:
        q = q.filter(Checkin.user_id == query.entity_id)

    return [
        _ComplianceRecord(
            week_of=r.week_of,
            on_time=bool(r.submitted_on_time),
            on_vacation=r.vacation_id is not None,
            done_at=r.submitted_at,
            due_at=r.due_date,
        )
        for r in q.all()
    ]


def _team_leader(db: Session, query: AnalyticsQuery) -> Optional[str]:
    return (
        db.query(Team.leader_id)
        .filter(Team.id == query.entity_id, Team.organization_id == query.organization_id)
        .scalar()
    )


def _review_records(db: Session, query: AnalyticsQuery, reviewer_id: Optional[str]) -> list[_ComplianceRecord]:
    """Reviewed check-ins, restricted to one reviewer unless `reviewer_id` is None."""
    org = query.organization_id
    q = (
        db.query(
            Checkin.week_of,
            Checkin.reviewed_on_time,
            Checkin.reviewed_at,
            Checkin.review_due_date,
            Vacation.id.label("vacation_id"),
        )
        .outerjoin(Vacation, and_(
            Vacation.organization_id == org,
            Vacation.user_id == Checkin.reviewed_by,
            Vacation.week_of == Checkin.week_of,
        ))
        .filter(
            Checkin.organization_id == org,
            Checkin.is_complete.is_(True),
            Checkin.reviewed_at.isnot(None),
            Checkin.week_of >= query.start,
            Checkin.week_of <= query.end,
        )
    )
    if reviewer_id is not None:
        q = q.filter(Checkin.reviewed_by == reviewer_id)

    return [
        _ComplianceRecord(
            week_of=r.week_of,
            on_time=bool(r.reviewed_on_time),
            on_vacation=r.vacation_id is not None,
            done_at=r.reviewed_at,
            due_at=r.review_due_date,
        )
        for r in q.all()
    ]


_TALLY_FIELDS = (
    "due_count",
    "on_time_count",
    "vacation_count",
    "early_count",
    "early_days",
    "late_count",
    "late_days",
)


def _compliance_from_rollups(
    db: Session,
    query: AnalyticsQuery,
    side: str,
    bucketed: bool,
    user_id: Optional[str] = None,
    team_id: Optional[str] = None,
) -> list[CompliancePoint]:
    """`side` is "checkin" or "review"; rows without any item on that side are ignored."""
    columns = [getattr(ComplianceMetricsDaily, f"{side}_{name}").label(name) for name in _TALLY_FIELDS]
    q = db.query(ComplianceMetricsDaily.bucket_date, *columns).filter(
        ComplianceMetricsDaily.organization_id == query.organization_id,
        ComplianceMetricsDaily.bucket_date >= query.start,
        ComplianceMetricsDaily.bucket_date <= query.end,
    )
    if user_id is not None:
        q = q.filter(ComplianceMetricsDaily.user_id == user_id)
    if team_id is not None:
        q = q.filter(ComplianceMetricsDaily.team_id == team_id)
    rows = [r for r in q.all() if r.due_count or r.vacation_count]

    def summarize(items) -> ComplianceMetrics:
        if not items:
            return ComplianceMetrics()
        return _compliance_metrics(
            due=sum(r.due_count for r in items),
            on_time=sum(r.on_time_count for r in items),
            vacation=sum(r.vacation_count for r in items),
            early_count=sum(r.early_count for r in items),
            early_days=sum(r.early_days for r in items),
            late_count=sum(r.late_count for r in items),
            late_days=sum(r.late_days for r in items),
        )

    if not bucketed:
        return [CompliancePoint(period_start=None, metrics=summarize(rows))]
    return [
        CompliancePoint(period_start=bucket, metrics=summarize(items))
        for bucket, items in bucket_rows(rows, query.period, key=lambda r: r.bucket_date).items()
    ]


def get_checkin_compliance(
    db: Session,
    query: AnalyticsQuery,
    bucketed: bool = False,
    cache: Optional[AnalyticsCache] = None,
) -> list[CompliancePoint]:
    use_rollups = _use_rollups(query)

    def from_rollups() -> list[CompliancePoint]:
        return _compliance_from_rollups(
            db, query, "checkin", bucketed,
            user_id=query.entity_id if query.scope == AnalyticsScope.user else None,
            team_id=query.entity_id if query.scope == AnalyticsScope.team else None,
        )

    def from_raw() -> list[CompliancePoint]:
        return _compliance_points(_checkin_records(db, query), query.period, bucketed)

    def compute() -> list[CompliancePoint]:
        return _read("checkin_compliance", query, use_rollups, from_rollups, from_raw)

    params = query.cache_params(bucketed=bucketed, source="rollup" if use_rollups else "raw")
    return _cached(cache, "checkin_compliance", query, params, compute)


def get_review_compliance(
    db: Session,
    query: AnalyticsQuery,
    bucketed: bool = False,
    cache: Optional[AnalyticsCache] = None,
) -> list[CompliancePoint]:
    """
    Attributed to the reviewer: user scope reads that user's reviews, team
    scope reads the team leader's. A team without a leader yields one empty
    summary.
    """
    use_rollups = _use_rollups(query)

    def compute() -> list[CompliancePoint]:
        reviewer_id: Optional[str] = None
        if query.scope == AnalyticsScope.user:
            reviewer_id = query.entity_id
        elif query.scope == AnalyticsScope.team:
            reviewer_id = _team_leader(db, query)
            if not reviewer_id:
                return [CompliancePoint(period_start=None)]

        return _read(
            "review_compliance",
            query,
            use_rollups,
            lambda: _compliance_from_rollups(db, query, "review", bucketed, user_id=reviewer_id),
            lambda: _compliance_points(_review_records(db, query, reviewer_id), query.period, bucketed),
        )

    params = query.cache_params(bucketed=bucketed, source="rollup" if use_rollups else "raw")
    return _cached(cache, "review_compliance", query, params, compute)
