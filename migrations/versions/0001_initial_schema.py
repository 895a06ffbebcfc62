"""initial schema: teams, users, checkins, shoutouts, vacations

Revision ID: 0001
Revises:
Create Date: 2026-10-19

Raw tables the analytics read from. Tenancy is by organization_id on every
row; there is no organizations table in this service.
"""
from alembic import op
import sqlalchemy as sa

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

user_role_enum = sa.Enum("member", "manager", "admin", name="user_role_enum")


def upgrade() -> None:
    op.create_table(
        "teams",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("organization_id", sa.String(36), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("leader_id", sa.String(36), nullable=True,
                  comment="User who reviews this team's check-ins"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_teams_organization_id", "teams", ["organization_id"])

    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("organization_id", sa.String(36), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("email", sa.String(256), nullable=True),
        sa.Column("role", user_role_enum, nullable=False, server_default="member"),
        sa.Column("team_id", sa.String(36), nullable=True),
        sa.Column("manager_id", sa.String(36), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_users_organization_id", "users", ["organization_id"])
    op.create_index("ix_users_team_id", "users", ["team_id"])

    op.create_table(
        "checkins",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("organization_id", sa.String(36), nullable=False),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("week_of", sa.Date(), nullable=False),
        sa.Column("overall_mood", sa.Integer(), nullable=False),
        sa.Column("is_complete", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("submitted_on_time", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("reviewed_by", sa.String(36), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("review_due_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reviewed_on_time", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_checkins_org_week_of", "checkins", ["organization_id", "week_of"])
    op.create_index("ix_checkins_org_user_week_of", "checkins", ["organization_id", "user_id", "week_of"])
    op.create_index("ix_checkins_reviewed_by", "checkins", ["reviewed_by", "reviewed_at"])

    op.create_table(
        "shoutouts",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("organization_id", sa.String(36), nullable=False),
        sa.Column("from_user_id", sa.String(36), nullable=False),
        sa.Column("to_user_id", sa.String(36), nullable=False),
        sa.Column("message", sa.Text(), nullable=False, server_default=""),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_shoutouts_org_from_created", "shoutouts", ["organization_id", "from_user_id", "created_at"])
    op.create_index("ix_shoutouts_org_to_created", "shoutouts", ["organization_id", "to_user_id", "created_at"])

    op.create_table(
        "vacations",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("organization_id", sa.String(36), nullable=False),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("week_of", sa.Date(), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_vacations_organization_id", "vacations", ["organization_id"])
    op.create_unique_constraint(
        "uq_vacations_org_user_week",
        "vacations",
        ["organization_id", "user_id", "week_of"],
    )


def downgrade() -> None:
    op.drop_constraint("uq_vacations_org_user_week", "vacations", type_="unique")
    op.drop_index("ix_vacations_organization_id", table_name="vacations")
    op.drop_table("vacations")
    op.drop_index("ix_shoutouts_org_to_created", table_name="shoutouts")
    op.drop_index("ix_shoutouts_org_from_created", table_name="shoutouts")
    op.drop_table("shoutouts")
    op.drop_index("ix_checkins_reviewed_by", table_name="checkins")
    op.drop_index("ix_checkins_org_user_week_of", table_name="checkins")
    op.drop_index("ix_checkins_org_week_of", table_name="checkins")
    op.drop_table("checkins")
    op.drop_index("ix_users_team_id", table_name="users")
    op.drop_index("ix_users_organization_id", table_name="users")
    op.drop_table("users")
    op.drop_index("ix_teams_organization_id", table_name="teams")
    op.drop_table("teams")
    user_role_enum.drop(op.get_bind(), checkfirst=True)
