"""
Challenge — a fixed habit subset tracked over a fixed date window.

challenge_days is the stored per-day table written by the progress sync.
One row per (challenge_id, day); rollups are always recomputed from the
whole table, never from the row that was just touched.

status values:
  "active"     — window still open (or not yet synced past its end)
  "completed"  — set automatically once today > start_date + duration_days - 1
  "abandoned"  — set only by an explicit user action
"""
from datetime import datetime, date
from sqlalchemy import Integer, String, Boolean, DateTime, Date, Enum, ForeignKey, func, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
import enum

from habitcore.db.base import Base


class ChallengeStatus(str, enum.Enum):
    active = "active"
    completed = "completed"
    abandoned = "abandoned"


class Challenge(Base):
    __tablename__ = "challenges"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    duration_days: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(
        Enum(ChallengeStatus, name="challenge_status_enum"),
        nullable=False,
        default=ChallengeStatus.active,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class ChallengeHabit(Base):
    __tablename__ = "challenge_habits"
    __table_args__ = (
        UniqueConstraint("challenge_id", "habit_id", name="uq_challenge_habit"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    challenge_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False, index=True
    )
    habit_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("habits.id", ondelete="CASCADE"), nullable=False, index=True
    )


class ChallengeDay(Base):
    __tablename__ = "challenge_days"
    __table_args__ = (
        UniqueConstraint("challenge_id", "day", name="uq_challenge_day"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    challenge_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False, index=True
    )
    day: Mapped[date] = mapped_column(Date, nullable=False)
    completed_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_habits: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_perfect_day: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
