"""add daily rollup tables and aggregation watermarks

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-19

Derived data only. Every row can be rebuilt from checkins/shoutouts by the
backfill endpoint, so downgrade drops cleanly.
"""
from alembic import op
import sqlalchemy as sa

revision = "0002"
down_revision = "0001"
branch_labels = None
depends_on = None


def _rollup_columns() -> list:
    return [
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("organization_id", sa.String(36), nullable=False),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("team_id", sa.String(36), nullable=True),
        sa.Column("bucket_date", sa.Date(), nullable=False),
    ]


def _updated_at() -> sa.Column:
    return sa.Column(
        "updated_at",
        sa.DateTime(timezone=True),
        server_default=sa.func.now(),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "pulse_metrics_daily",
        *_rollup_columns(),
        sa.Column("mood_sum", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("checkin_count", sa.Integer(), nullable=False, server_default="0"),
        _updated_at(),
    )
    op.create_unique_constraint(
        "uq_pulse_daily_org_user_date",
        "pulse_metrics_daily",
        ["organization_id", "user_id", "bucket_date"],
    )
    op.create_index("ix_pulse_metrics_daily_organization_id", "pulse_metrics_daily", ["organization_id"])
    op.create_index("ix_pulse_metrics_daily_team_id", "pulse_metrics_daily", ["team_id"])
    op.create_index("ix_pulse_metrics_daily_bucket_date", "pulse_metrics_daily", ["bucket_date"])

    op.create_table(
        "shoutout_metrics_daily",
        *_rollup_columns(),
        sa.Column("received_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("given_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("public_count", sa.Integer(), nullable=False, server_default="0",
                  comment="Public shoutouts received"),
        sa.Column("private_count", sa.Integer(), nullable=False, server_default="0",
                  comment="Private shoutouts received"),
        _updated_at(),
    )
    op.create_unique_constraint(
        "uq_shoutout_daily_org_user_date",
        "shoutout_metrics_daily",
        ["organization_id", "user_id", "bucket_date"],
    )
    op.create_index("ix_shoutout_metrics_daily_organization_id", "shoutout_metrics_daily", ["organization_id"])
    op.create_index("ix_shoutout_metrics_daily_team_id", "shoutout_metrics_daily", ["team_id"])
    op.create_index("ix_shoutout_metrics_daily_bucket_date", "shoutout_metrics_daily", ["bucket_date"])

    op.create_table(
        "aggregation_watermarks",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("organization_id", sa.String(36), nullable=False, unique=True),
        sa.Column("last_processed_at", sa.DateTime(timezone=True), nullable=False),
        _updated_at(),
    )


def downgrade() -> None:
    op.drop_table("aggregation_watermarks")
    for table in ("shoutout_metrics_daily", "pulse_metrics_daily"):
        op.drop_index(f"ix_{table}_bucket_date", table_name=table)
        op.drop_index(f"ix_{table}_team_id", table_name=table)
        op.drop_index(f"ix_{table}_organization_id", table_name=table)
    op.drop_constraint("uq_shoutout_daily_org_user_date", "shoutout_metrics_daily", type_="unique")
    op.drop_constraint("uq_pulse_daily_org_user_date", "pulse_metrics_daily", type_="unique")
    op.drop_table("shoutout_metrics_daily")
    op.drop_table("pulse_metrics_daily")
