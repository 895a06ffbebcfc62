"""add compliance rollup table

Revision ID: 0003
Revises: 0002
Create Date: 2026-10-19

One row per (organization, user, check-in week) with check-in and review
compliance tallies. Rebuilt by the backfill endpoint like the other rollups.
"""
from alembic import op
import sqlalchemy as sa

revision = "0003"
down_revision = "0002"
branch_labels = None
depends_on = None

_SIDES = ("checkin", "review")


def _tally_columns(side: str) -> list:
    return [
        sa.Column(f"{side}_due_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(f"{side}_on_time_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(f"{side}_vacation_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(f"{side}_early_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(f"{side}_early_days", sa.Float(), nullable=False, server_default="0"),
        sa.Column(f"{side}_late_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(f"{side}_late_days", sa.Float(), nullable=False, server_default="0"),
    ]


def upgrade() -> None:
    op.create_table(
        "compliance_metrics_daily",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("organization_id", sa.String(36), nullable=False),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("team_id", sa.String(36), nullable=True),
        sa.Column("bucket_date", sa.Date(), nullable=False, comment="Check-in week (Monday)"),
        *[col for side in _SIDES for col in _tally_columns(side)],
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_unique_constraint(
        "uq_compliance_daily_org_user_date",
        "compliance_metrics_daily",
        ["organization_id", "user_id", "bucket_date"],
    )
    op.create_index("ix_compliance_metrics_daily_organization_id", "compliance_metrics_daily", ["organization_id"])
    op.create_index("ix_compliance_metrics_daily_team_id", "compliance_metrics_daily", ["team_id"])
    op.create_index("ix_compliance_metrics_daily_bucket_date", "compliance_metrics_daily", ["bucket_date"])


def downgrade() -> None:
    table = "compliance_metrics_daily"
    op.drop_index(f"ix_{table}_bucket_date", table_name=table)
    op.drop_index(f"ix_{table}_team_id", table_name=table)
    op.drop_index(f"ix_{table}_organization_id", table_name=table)
    op.drop_constraint("uq_compliance_daily_org_user_date", table, type_="unique")
    op.drop_table(table)
