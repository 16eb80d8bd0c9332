"""
Milestone — threshold crossings emitted by the tracking service.

Append-only. One row per (habit_id, kind, threshold); the unique
constraint makes re-emission after a streak break and recovery a no-op.

kind values:
  "streak"       — current streak reached `threshold` days
  "completions"  — total qualifying completions reached `threshold`
"""
from datetime import datetime, date
from sqlalchemy import Integer, String, DateTime, Date, ForeignKey, func, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from habitcore.db.base import Base


class Milestone(Base):
    __tablename__ = "milestones"
    __table_args__ = (
        UniqueConstraint("habit_id", "kind", "threshold", name="uq_milestone_habit_kind_threshold"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    habit_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("habits.id", ondelete="CASCADE"), nullable=False, index=True
    )
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    kind: Mapped[str] = mapped_column(String(16), nullable=False)
    threshold: Mapped[int] = mapped_column(Integer, nullable=False)
    achieved_on: Mapped[date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
