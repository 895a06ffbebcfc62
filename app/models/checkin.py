"""
Checkin — one weekly pulse submission.

overall_mood is the 1–5 pulse rating. Compliance flags (submitted_on_time,
reviewed_on_time) are computed by the write path against due_date and
review_due_date; analytics only reads them.
"""
import uuid
from datetime import datetime, date
from sqlalchemy import Integer, String, Boolean, DateTime, Date, func, Index
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class Checkin(Base):
    __tablename__ = "checkins"
    __table_args__ = (
        Index("ix_checkins_org_week_of", "organization_id", "week_of"),
        Index("ix_checkins_org_user_week_of", "organization_id", "user_id", "week_of"),
        Index("ix_checkins_reviewed_by", "reviewed_by", "reviewed_at"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    organization_id: Mapped[str] = mapped_column(String(36), nullable=False)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    week_of: Mapped[date] = mapped_column(Date, nullable=False)
    overall_mood: Mapped[int] = mapped_column(Integer, nullable=False)
    is_complete: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    due_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    submitted_on_time: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    reviewed_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    review_due_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewed_on_time: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
