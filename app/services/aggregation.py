"""
Daily rollup maintenance.

Rollup rows are derived from `checkins` and `shoutouts` and keyed by
(organization, user, bucket_date). Pulse and shoutout rows bucket on the UTC
day the raw row was created; compliance rows bucket on the check-in week.
Recomputing a user-day is idempotent: the affected rows are deleted and
re-inserted from the raw tables, and all-zero rows are skipped.

Public API
----------
recompute_user_day(db, organization_id, user_id, day)  -> None
periodic_sweep(db, now, organization_id)               -> list[SweepResult]
backfill(db, organization_id, start, end, batch_size)  -> BackfillResult

Callers own cache invalidation (AnalyticsCache.invalidate_organization).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.aggregates import (
    AggregationWatermark,
    ComplianceMetricsDaily,
    PulseMetricsDaily,
    ShoutoutMetricsDaily,
)
from app.models.checkin import Checkin
from app.models.shoutout import Shoutout
from app.models.user import User
from app.models.vacation import Vacation
from app.services.analytics import offset_days
from app.services.periods import window_bounds

logger = logging.getLogger(__name__)

# First sweep for an organization looks back this far.
DEFAULT_SWEEP_LOOKBACK = timedelta(days=7)
ACTIVITY_WINDOW = timedelta(days=1)


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class SweepResult:
    organization_id: str
    user_days: int
    watermark: Optional[datetime]


@dataclass
class BackfillResult:
    organization_id: str
    user_days: int
    batches: int


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc).replace(tzinfo=None)


def _naive(ts: datetime) -> datetime:
    """Timestamps are compared as naive UTC; SQLite drops tzinfo, Postgres keeps it."""
    if ts.tzinfo is not None:
        return ts.astimezone(timezone.utc).replace(tzinfo=None)
    return ts


# ---------------------------------------------------------------------------
# Single user-day
# ---------------------------------------------------------------------------

def recompute_user_day(db: Session, organization_id: str, user_id: str, day: date) -> None:
    """
    Rebuild the rollup rows for one user on one day. Flushes, does not commit.

    Compliance rows are rebuilt whole for every check-in week touched by a
    check-in the user created or reviewed that day.
    """
    lo, hi = window_bounds(day, day)

    for model in (PulseMetricsDaily, ShoutoutMetricsDaily):
        db.query(model).filter(
            model.organization_id == organization_id,
            model.user_id == user_id,
            model.bucket_date == day,
        ).delete(synchronize_session=False)

    team_id = (
        db.query(User.team_id)
        .filter(User.id == user_id, User.organization_id == organization_id)
        .scalar()
    )

    mood_sum, checkin_count = db.query(
        func.coalesce(func.sum(Checkin.overall_mood), 0),
        func.count(Checkin.id),
    ).filter(
        Checkin.organization_id == organization_id,
        Checkin.user_id == user_id,
        Checkin.is_complete.is_(True),
        Checkin.created_at >= lo,
        Checkin.created_at < hi,
    ).one()

    if checkin_count:
        db.add(PulseMetricsDaily(
            organization_id=organization_id,
            user_id=user_id,
            team_id=team_id,
            bucket_date=day,
            mood_sum=int(mood_sum),
            checkin_count=int(checkin_count),
        ))

    day_shoutouts = db.query(Shoutout).filter(
        Shoutout.organization_id == organization_id,
        Shoutout.created_at >= lo,
        Shoutout.created_at < hi,
    )
    received = day_shoutouts.filter(Shoutout.to_user_id == user_id).count()
    given = day_shoutouts.filter(Shoutout.from_user_id == user_id).count()
    public = day_shoutouts.filter(
        Shoutout.to_user_id == user_id, Shoutout.is_public.is_(True)
    ).count()

    if received or given:
        db.add(ShoutoutMetricsDaily(
            organization_id=organization_id,
            user_id=user_id,
            team_id=team_id,
            bucket_date=day,
            received_count=received,
            given_count=given,
            public_count=public,
            private_count=received - public,
        ))

    weeks = db.query(Checkin.week_of).filter(
        Checkin.organization_id == organization_id,
        or_(Checkin.user_id == user_id, Checkin.reviewed_by == user_id),
        Checkin.created_at >= lo,
        Checkin.created_at < hi,
    ).distinct()
    for week_of in sorted(w for (w,) in weeks):
        _recompute_compliance_week(db, organization_id, user_id, team_id, week_of)

    db.flush()


def _compliance_tally(rows, on_vacation: bool) -> dict[str, float]:
    """Counts for one side of a compliance row; `rows` are (on_time, done_at, due_at)."""
    early_count = late_count = 0
    early_days = late_days = 0.0
    for _, done_at, due_at in rows:
        if done_at is None or due_at is None:
            continue
        diff = offset_days(done_at, due_at)
        if diff < 0:
            early_count += 1
            early_days += -diff
        elif diff > 0:
            late_count += 1
            late_days += diff

    return {
        "due_count": 0 if on_vacation else len(rows),
        "vacation_count": len(rows) if on_vacation else 0,
        "on_time_count": sum(1 for on_time, _, _ in rows if on_time),
        "early_count": early_count,
        "early_days": early_days,
        "late_count": late_count,
        "late_days": late_days,
    }


def _recompute_compliance_week(
    db: Session, organization_id: str, user_id: str, team_id: Optional[str], week_of: date
) -> None:
    db.query(ComplianceMetricsDaily).filter(
        ComplianceMetricsDaily.organization_id == organization_id,
        ComplianceMetricsDaily.user_id == user_id,
        ComplianceMetricsDaily.bucket_date == week_of,
    ).delete(synchronize_session=False)

    on_vacation = db.query(Vacation.id).filter(
        Vacation.organization_id == organization_id,
        Vacation.user_id == user_id,
        Vacation.week_of == week_of,
    ).first() is not None

    submitted = db.query(Checkin.submitted_on_time, Checkin.submitted_at, Checkin.due_date).filter(
        Checkin.organization_id == organization_id,
        Checkin.user_id == user_id,
        Checkin.is_complete.is_(True),
        Checkin.week_of == week_of,
    ).all()
    reviewed = db.query(Checkin.reviewed_on_time, Checkin.reviewed_at, Checkin.review_due_date).filter(
        Checkin.organization_id == organization_id,
        Checkin.reviewed_by == user_id,
        Checkin.is_complete.is_(True),
        Checkin.reviewed_at.isnot(None),
        Checkin.week_of == week_of,
    ).all()
    if not submitted and not reviewed:
        return

    values: dict[str, float] = {}
    for side, rows in (("checkin", submitted), ("review", reviewed)):
        for name, value in _compliance_tally(rows, on_vacation).items():
            values[f"{side}_{name}"] = value

    db.add(ComplianceMetricsDaily(
        organization_id=organization_id,
        user_id=user_id,
        team_id=team_id,
        bucket_date=week_of,
        **values,
    ))


def _recompute_all(db: Session, organization_id: str, user_days: Iterable[tuple[str, date]]) -> int:
    count = 0
    for user_id, day in user_days:
        recompute_user_day(db, organization_id, user_id, day)
        count += 1
    return count


# ---------------------------------------------------------------------------
# Incremental sweep
# ---------------------------------------------------------------------------

def _active_organizations(db: Session, since: datetime) -> list[str]:
    checkin_orgs = db.query(Checkin.organization_id).filter(Checkin.created_at >= since).distinct()
    shoutout_orgs = db.query(Shoutout.organization_id).filter(Shoutout.created_at >= since).distinct()
    return sorted({r[0] for r in checkin_orgs} | {r[0] for r in shoutout_orgs})


def _touched_user_days(
    db: Session, organization_id: str, since: datetime
) -> tuple[set[tuple[str, date]], Optional[datetime]]:
    """User-days with raw rows created after `since`, plus the newest such timestamp."""
    user_days: set[tuple[str, date]] = set()
    newest: Optional[datetime] = None

    checkins = db.query(Checkin.user_id, Checkin.reviewed_by, Checkin.created_at).filter(
        Checkin.organization_id == organization_id,
        Checkin.created_at > since,
    )
    shoutouts = db.query(Shoutout.from_user_id, Shoutout.to_user_id, Shoutout.created_at).filter(
        Shoutout.organization_id == organization_id,
        Shoutout.created_at > since,
    )

    for user_id, reviewer_id, created_at in checkins:
        created_at = _naive(created_at)
        user_days.add((user_id, created_at.date()))
        if reviewer_id:
            user_days.add((reviewer_id, created_at.date()))
        newest = max(newest, created_at) if newest else created_at

    for from_user_id, to_user_id, created_at in shoutouts:
        created_at = _naive(created_at)
        user_days.add((from_user_id, created_at.date()))
        user_days.add((to_user_id, created_at.date()))
        newest = max(newest, created_at) if newest else created_at

    return user_days, newest


def periodic_sweep(
    db: Session,
    now: Optional[datetime] = None,
    organization_id: Optional[str] = None,
) -> list[SweepResult]:
    """
    Roll up everything created since each active organization's watermark.

    An organization is active when it has check-ins or shoutouts from the
    last day. Without a watermark the sweep starts DEFAULT_SWEEP_LOOKBACK
    ago. The watermark advances to the newest event processed, so an
    unchanged organization is a no-op on the next run. Pass
    `organization_id` to restrict the sweep to one tenant.
    """
    now = _naive(now) if now else _utcnow()
    organizations = _active_organizations(db, now - ACTIVITY_WINDOW)
    if organization_id is not None:
        organizations = [o for o in organizations if o == organization_id]

    results: list[SweepResult] = []
    for org in organizations:
        mark = db.query(AggregationWatermark).filter(
            AggregationWatermark.organization_id == org
        ).first()
        since = _naive(mark.last_processed_at) if mark else now - DEFAULT_SWEEP_LOOKBACK

        user_days, newest = _touched_user_days(db, org, since)
        processed = _recompute_all(db, org, sorted(user_days))

        if newest is not None:
            if mark is None:
                mark = AggregationWatermark(organization_id=org, last_processed_at=newest)
                db.add(mark)
            else:
                mark.last_processed_at = newest
        db.commit()

        logger.info("Rollup sweep for org %s: %d user-days since %s", org, processed, since.isoformat())
        results.append(SweepResult(
            organization_id=org,
            user_days=processed,
            watermark=newest or since,
        ))
    return results


# ---------------------------------------------------------------------------
# Backfill
# ---------------------------------------------------------------------------

def _user_days_in_range(db: Session, organization_id: str, start: date, end: date) -> list[tuple[str, date]]:
    lo, hi = window_bounds(start, end)
    user_days: set[tuple[str, date]] = set()

    for user_id, reviewer_id, created_at in db.query(
        Checkin.user_id, Checkin.reviewed_by, Checkin.created_at
    ).filter(
        Checkin.organization_id == organization_id,
        Checkin.created_at >= lo,
        Checkin.created_at < hi,
    ):
        day = _naive(created_at).date()
        user_days.add((user_id, day))
        if reviewer_id:
            user_days.add((reviewer_id, day))

    for from_user_id, to_user_id, created_at in db.query(
        Shoutout.from_user_id, Shoutout.to_user_id, Shoutout.created_at
    ).filter(
        Shoutout.organization_id == organization_id,
        Shoutout.created_at >= lo,
        Shoutout.created_at < hi,
    ):
        day = _naive(created_at).date()
        user_days.add((from_user_id, day))
        user_days.add((to_user_id, day))

    return sorted(user_days, key=lambda ud: (ud[1], ud[0]))


def backfill(
    db: Session,
    organization_id: str,
    start: date,
    end: date,
    batch_size: Optional[int] = None,
) -> BackfillResult:
    """Recompute every user-day with raw activity in [start, end], committing per batch."""
    batch_size = batch_size or settings.AGGREGATION_BACKFILL_BATCH_SIZE
    user_days = _user_days_in_range(db, organization_id, start, end)

    batches = 0
    for offset in range(0, len(user_days), batch_size):
        batch = user_days[offset:offset + batch_size]
        _recompute_all(db, organization_id, batch)
        db.commit()
        batches += 1
        logger.info(
            "Backfill org %s: batch %d (%d/%d user-days)",
            organization_id, batches, offset + len(batch), len(user_days),
        )

    return BackfillResult(organization_id=organization_id, user_days=len(user_days), batches=batches)
