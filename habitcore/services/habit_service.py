"""
Habit definitions: create, list, archive.

A definition is validated with the same rules the engine applies, so a
misconfigured cadence is rejected at write time instead of surfacing later
as a ConfigurationError inside an analytics call.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from habitcore.models.habit import Cadence, Habit, ValueKind
from habitcore.services.calendar import validate_habit
from habitcore.services.repository import get_habit
from habitcore.services.snapshot import HabitSnapshot


@dataclass
class HabitDefinition:
    """Lightweight DTO so the service layer stays schema-agnostic."""
    name: str
    cadence: Cadence = Cadence.daily
    days_of_week: Optional[list[int]] = None
    value_kind: ValueKind = ValueKind.boolean
    target_value: Optional[float] = None
    unit: Optional[str] = None
    description: Optional[str] = None
    created_on: Optional[date] = None


def create_habit(db: Session, owner_id: str, definition: HabitDefinition, today: date) -> Habit:
    created_on = definition.created_on or today
    days = sorted(set(definition.days_of_week or ()))
    validate_habit(HabitSnapshot(
        id="new",
        cadence=definition.cadence,
        created_on=created_on,
        days_of_week=frozenset(days),
        value_kind=definition.value_kind,
        target_value=definition.target_value,
    ))

    habit = Habit(
        owner_id=owner_id,
        name=definition.name,
        description=definition.description,
        cadence=definition.cadence,
        days_of_week=days or None,
        value_kind=definition.value_kind,
        target_value=definition.target_value,
        unit=definition.unit,
        created_on=created_on,
        is_archived=False,
        current_streak=0,
        longest_streak=0,
        total_completions=0,
    )
    db.add(habit)
    db.commit()
    db.refresh(habit)
    return habit


def archive_habit(db: Session, owner_id: str, habit_id: int) -> Habit:
    """Idempotent: archiving an archived habit is a no-op."""
    habit = get_habit(db, owner_id, habit_id)
    if not habit.is_archived:
        habit.is_archived = True
        db.commit()
        db.refresh(habit)
    return habit
