"""
Repository: loads ORM rows and converts them into engine snapshots.

The engine only ever sees the frozen dataclasses from services/snapshot.py;
this module is the single seam between the two.
"""
from __future__ import annotations

from datetime import date
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from habitcore.core.errors import NotFoundError
from habitcore.models.challenge import Challenge, ChallengeDay, ChallengeHabit, ChallengeStatus
from habitcore.models.habit import Cadence, Habit, ValueKind
from habitcore.models.habit_log import HabitLog
from habitcore.services.challenges import ChallengeDayProgress
from habitcore.services.snapshot import ChallengeSnapshot, HabitSnapshot, LogSnapshot


# ---------------------------------------------------------------------------
# Row -> snapshot
# ---------------------------------------------------------------------------

def habit_to_snapshot(h: Habit) -> HabitSnapshot:
    return HabitSnapshot(
        id=h.id,
        cadence=Cadence(h.cadence),
        created_on=h.created_on,
        days_of_week=frozenset(h.days_of_week or ()),
        value_kind=ValueKind(h.value_kind),
        target_value=h.target_value,
        unit=h.unit,
        name=h.name,
        owner_id=h.owner_id,
        archived=h.is_archived,
    )


def log_to_snapshot(log: HabitLog) -> LogSnapshot:
    return LogSnapshot(
        habit_id=log.habit_id,
        day=log.day,
        completed=log.completed,
        value=log.value,
    )


def challenge_to_snapshot(c: Challenge, habit_ids: Iterable[int]) -> ChallengeSnapshot:
    return ChallengeSnapshot(
        id=c.id,
        habit_ids=frozenset(habit_ids),
        start_date=c.start_date,
        duration_days=c.duration_days,
        status=ChallengeStatus(c.status),
    )


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def get_habit(db: Session, owner_id: str, habit_id: int) -> Habit:
    habit = (
        db.query(Habit)
        .filter(Habit.id == habit_id, Habit.owner_id == owner_id)
        .first()
    )
    if habit is None:
        raise NotFoundError("Habit", habit_id)
    return habit


def list_habits(
    db: Session,
    owner_id: str,
    include_archived: bool = False,
    habit_ids: Optional[Iterable[int]] = None,
) -> list[Habit]:
    q = db.query(Habit).filter(Habit.owner_id == owner_id)
    if not include_archived:
        q = q.filter(Habit.is_archived == False)  # noqa: E712
    if habit_ids is not None:
        q = q.filter(Habit.id.in_(list(habit_ids)))
    return q.order_by(Habit.id).all()


def load_habits(
    db: Session,
    owner_id: str,
    include_archived: bool = False,
    habit_ids: Optional[Iterable[int]] = None,
) -> list[HabitSnapshot]:
    return [
        habit_to_snapshot(h)
        for h in list_habits(db, owner_id, include_archived, habit_ids)
    ]


def load_logs(
    db: Session,
    owner_id: str,
    habit_ids: Optional[Iterable[int]] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> list[LogSnapshot]:
    q = db.query(HabitLog).filter(HabitLog.owner_id == owner_id)
    if habit_ids is not None:
        q = q.filter(HabitLog.habit_id.in_(list(habit_ids)))
    if start is not None:
        q = q.filter(HabitLog.day >= start)
    if end is not None:
        q = q.filter(HabitLog.day <= end)
    return [log_to_snapshot(log) for log in q.order_by(HabitLog.day).all()]


def get_challenge(db: Session, owner_id: str, challenge_id: int) -> Challenge:
    challenge = (
        db.query(Challenge)
        .filter(Challenge.id == challenge_id, Challenge.owner_id == owner_id)
        .first()
    )
    if challenge is None:
        raise NotFoundError("Challenge", challenge_id)
    return challenge


def challenge_habit_ids(db: Session, challenge_id: int) -> list[int]:
    rows = (
        db.query(ChallengeHabit.habit_id)
        .filter(ChallengeHabit.challenge_id == challenge_id)
        .order_by(ChallengeHabit.habit_id)
        .all()
    )
    return [r.habit_id for r in rows]


def load_challenge_table(db: Session, challenge_id: int) -> dict[date, ChallengeDayProgress]:
    rows = db.query(ChallengeDay).filter(ChallengeDay.challenge_id == challenge_id).all()
    return {
        r.day: ChallengeDayProgress(
            day=r.day,
            completed_count=r.completed_count,
            total_habits=r.total_habits,
            is_perfect_day=r.is_perfect_day,
        )
        for r in rows
    }
