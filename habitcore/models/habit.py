"""
Habit — a user-defined recurring activity.

The streak columns (current_streak, longest_streak, last_completed_on,
total_completions) are a read cache maintained by the tracking service in the
same transaction as every log write. The authoritative value is always the
recomputation in habitcore/services/streaks.py.
"""
from datetime import datetime, date
from sqlalchemy import Integer, String, Text, Float, Boolean, DateTime, Date, Enum, JSON, func
from sqlalchemy.orm import Mapped, mapped_column
import enum

from habitcore.db.base import Base


class Cadence(str, enum.Enum):
    daily = "daily"
    weekly = "weekly"


class ValueKind(str, enum.Enum):
    boolean = "boolean"
    counter = "counter"
    duration = "duration"


class Habit(Base):
    __tablename__ = "habits"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    cadence: Mapped[str] = mapped_column(
        Enum(Cadence, name="cadence_enum"), nullable=False, default=Cadence.daily,
    )
    days_of_week: Mapped[list[int] | None] = mapped_column(
        JSON, nullable=True,
        comment="ISO weekdays 1=Mon..7=Sun; required and non-empty for weekly cadence",
    )
    value_kind: Mapped[str] = mapped_column(
        Enum(ValueKind, name="value_kind_enum"), nullable=False, default=ValueKind.boolean,
    )
    target_value: Mapped[float | None] = mapped_column(Float, nullable=True)
    unit: Mapped[str | None] = mapped_column(String(32), nullable=True)
    created_on: Mapped[date] = mapped_column(Date, nullable=False)
    is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # --- streak cache ---
    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_completed_on: Mapped[date | None] = mapped_column(Date, nullable=True)
    total_completions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
