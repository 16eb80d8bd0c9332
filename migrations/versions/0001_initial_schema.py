"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-03-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    # --- ENUM types ---
    cadence_enum = sa.Enum("daily", "weekly", name="cadence_enum")
    cadence_enum.create(op.get_bind(), checkfirst=True)

    value_kind_enum = sa.Enum("boolean", "counter", "duration", name="value_kind_enum")
    value_kind_enum.create(op.get_bind(), checkfirst=True)

    challenge_status_enum = sa.Enum(
        "active", "completed", "abandoned", name="challenge_status_enum"
    )
    challenge_status_enum.create(op.get_bind(), checkfirst=True)

    # --- habits ---
    op.create_table(
        "habits",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("owner_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("cadence", sa.Enum(
            "daily", "weekly", name="cadence_enum", create_type=False,
        ), nullable=False),
        sa.Column("days_of_week", sa.JSON(), nullable=True),
        sa.Column("value_kind", sa.Enum(
            "boolean", "counter", "duration", name="value_kind_enum", create_type=False,
        ), nullable=False),
        sa.Column("target_value", sa.Float(), nullable=True),
        sa.Column("unit", sa.String(32), nullable=True),
        sa.Column("created_on", sa.Date(), nullable=False),
        sa.Column("is_archived", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("current_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("longest_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_completed_on", sa.Date(), nullable=True),
        sa.Column("total_completions", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_habits_id", "habits", ["id"])
    op.create_index("ix_habits_owner_id", "habits", ["owner_id"])

    # --- habit_logs ---
    op.create_table(
        "habit_logs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("habit_id", sa.Integer(), sa.ForeignKey("habits.id", ondelete="CASCADE"), nullable=False),
        sa.Column("owner_id", sa.String(64), nullable=False),
        sa.Column("day", sa.Date(), nullable=False),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("value", sa.Float(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("habit_id", "day", name="uq_habit_log_habit_day"),
    )
    op.create_index("ix_habit_logs_id", "habit_logs", ["id"])
    op.create_index("ix_habit_logs_habit_id", "habit_logs", ["habit_id"])
    op.create_index("ix_habit_logs_owner_id", "habit_logs", ["owner_id"])
    op.create_index("ix_habit_logs_day", "habit_logs", ["day"])

    # --- challenges ---
    op.create_table(
        "challenges",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("owner_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("duration_days", sa.Integer(), nullable=False),
        sa.Column("status", sa.Enum(
            "active", "completed", "abandoned", name="challenge_status_enum", create_type=False,
        ), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_challenges_id", "challenges", ["id"])
    op.create_index("ix_challenges_owner_id", "challenges", ["owner_id"])

    # --- challenge_habits ---
    op.create_table(
        "challenge_habits",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("challenge_id", sa.Integer(), sa.ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False),
        sa.Column("habit_id", sa.Integer(), sa.ForeignKey("habits.id", ondelete="CASCADE"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("challenge_id", "habit_id", name="uq_challenge_habit"),
    )
    op.create_index("ix_challenge_habits_id", "challenge_habits", ["id"])
    op.create_index("ix_challenge_habits_challenge_id", "challenge_habits", ["challenge_id"])
    op.create_index("ix_challenge_habits_habit_id", "challenge_habits", ["habit_id"])

    # --- challenge_days ---
    op.create_table(
        "challenge_days",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("challenge_id", sa.Integer(), sa.ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False),
        sa.Column("day", sa.Date(), nullable=False),
        sa.Column("completed_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_habits", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_perfect_day", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("challenge_id", "day", name="uq_challenge_day"),
    )
    op.create_index("ix_challenge_days_id", "challenge_days", ["id"])
    op.create_index("ix_challenge_days_challenge_id", "challenge_days", ["challenge_id"])

    # --- milestones ---
    op.create_table(
        "milestones",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("habit_id", sa.Integer(), sa.ForeignKey("habits.id", ondelete="CASCADE"), nullable=False),
        sa.Column("owner_id", sa.String(64), nullable=False),
        sa.Column("kind", sa.String(16), nullable=False),
        sa.Column("threshold", sa.Integer(), nullable=False),
        sa.Column("achieved_on", sa.Date(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("habit_id", "kind", "threshold", name="uq_milestone_habit_kind_threshold"),
    )
    op.create_index("ix_milestones_id", "milestones", ["id"])
    op.create_index("ix_milestones_habit_id", "milestones", ["habit_id"])
    op.create_index("ix_milestones_owner_id", "milestones", ["owner_id"])


def downgrade() -> None:
    op.drop_table("milestones")
    op.drop_table("challenge_days")
    op.drop_table("challenge_habits")
    op.drop_table("challenges")
    op.drop_table("habit_logs")
    op.drop_table("habits")

    op.execute("DROP TYPE IF EXISTS challenge_status_enum")
    op.execute("DROP TYPE IF EXISTS value_kind_enum")
    op.execute("DROP TYPE IF EXISTS cadence_enum")
