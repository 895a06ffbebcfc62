"""
Daily rollups of the raw check-in and shoutout tables.

Derived data only: `checkins` and `shoutouts` remain the source of truth and
every row here can be rebuilt by `recompute_user_day`. One row per
(organization, user, bucket_date); rows with all-zero counts are not stored.

Compliance rows are keyed by the check-in week (`week_of`) rather than the
creation day, matching how the raw compliance endpoints bucket.
"""
import uuid
from datetime import datetime, date
from sqlalchemy import Integer, Float, String, DateTime, Date, func, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class PulseMetricsDaily(Base):
    __tablename__ = "pulse_metrics_daily"
    __table_args__ = (
        UniqueConstraint("organization_id", "user_id", "bucket_date", name="uq_pulse_daily_org_user_date"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    organization_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    team_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    bucket_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    mood_sum: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    checkin_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class ShoutoutMetricsDaily(Base):
    __tablename__ = "shoutout_metrics_daily"
    __table_args__ = (
        UniqueConstraint("organization_id", "user_id", "bucket_date", name="uq_shoutout_daily_org_user_date"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    organization_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    team_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    bucket_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    received_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    given_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    public_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, comment="Public shoutouts received",
    )
    private_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, comment="Private shoutouts received",
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class ComplianceMetricsDaily(Base):
    """
    Per-user check-in and review compliance for one check-in week.

    The `checkin_*` columns cover the user's own completed check-ins, the
    `review_*` columns cover check-ins the user reviewed. `*_due_count` leaves
    out weeks the user was on vacation, `*_vacation_count` holds those.
    Early/late columns keep sums of day offsets so averages can be rebuilt.
    """
    __tablename__ = "compliance_metrics_daily"
    __table_args__ = (
        UniqueConstraint("organization_id", "user_id", "bucket_date", name="uq_compliance_daily_org_user_date"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    organization_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    team_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    bucket_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    checkin_due_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    checkin_on_time_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    checkin_vacation_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    checkin_early_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    checkin_early_days: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    checkin_late_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    checkin_late_days: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    review_due_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    review_on_time_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    review_vacation_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    review_early_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    review_early_days: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    review_late_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    review_late_days: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class AggregationWatermark(Base):
    """Per-organization high-water mark of raw events already rolled up."""
    __tablename__ = "aggregation_watermarks"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    organization_id: Mapped[str] = mapped_column(String(36), nullable=False, unique=True)
    last_processed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
