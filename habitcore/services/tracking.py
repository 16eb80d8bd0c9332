"""
Tracking service: the log write path and the streak cache around it.

Every write
-----------
  1. Validate the day (not after today, not before the habit existed).
  2. Recompute the pre-write streak from the stored history.
  3. Upsert the single log row for (habit, day).
  4. Recompute the post-write streak from the full history.
  5. Emit a milestone for every threshold crossed in (before, after].
  6. Refresh the cache columns on the habit row.
db.commit() is called once at the end, so the log, the cache and the new
milestones land together or not at all.

The pure recomputation (services/streaks.py) stays the source of truth;
audit_streak_cache() exposes drift and rebuild_streak_cache() repairs it.

Public API
----------
check_in(db, owner_id, habit_id, day, today, ...)  -> CheckInResult
undo_check_in(db, owner_id, habit_id, day, today)  -> StreakResult
current_streak(db, owner_id, habit_id, today)      -> StreakResult
audit_streak_cache(db, owner_id, habit_id, today)  -> StreakAudit
rebuild_streak_cache(db, owner_id, habit_id, today)-> StreakResult
list_milestones(db, owner_id, habit_id, limit, offset) -> (total, items)
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from habitcore.core.config import settings
from habitcore.core.errors import DataIntegrityError, NotFoundError, RangeError
from habitcore.models.habit import Habit
from habitcore.models.habit_log import HabitLog
from habitcore.models.milestone import Milestone
from habitcore.services.repository import get_habit, habit_to_snapshot, load_logs
from habitcore.services.streaks import (
    MilestoneEvent,
    StreakResult,
    compute_streak,
    detect_milestones,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class CheckInResult:
    log: HabitLog
    previous: StreakResult
    streak: StreakResult
    milestones_created: list[MilestoneEvent] = field(default_factory=list)
    milestones_skipped: list[MilestoneEvent] = field(default_factory=list)  # already stored


@dataclass
class StreakAudit:
    habit_id: int
    cached: StreakResult
    recomputed: StreakResult

    @property
    def drift(self) -> bool:
        return self.cached != self.recomputed


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _cached(habit: Habit) -> StreakResult:
    return StreakResult(
        current=habit.current_streak or 0,
        longest=habit.longest_streak or 0,
        last_qualifying_date=habit.last_completed_on,
        total_completions=habit.total_completions or 0,
    )


def _recompute(db: Session, habit: Habit, today: date) -> StreakResult:
    logs = load_logs(db, habit.owner_id, habit_ids=[habit.id])
    return compute_streak(habit_to_snapshot(habit), logs, as_of=today, open_day=today)


def _write_cache(habit: Habit, streak: StreakResult) -> None:
    habit.current_streak = streak.current
    habit.longest_streak = streak.longest
    habit.last_completed_on = streak.last_qualifying_date
    habit.total_completions = streak.total_completions


def _milestone_exists(db: Session, event: MilestoneEvent) -> bool:
    return (
        db.query(Milestone.id)
        .filter(
            Milestone.habit_id == event.habit_id,
            Milestone.kind == event.kind,
            Milestone.threshold == event.threshold,
        )
        .first()
        is not None
    )


def _emit_milestones(
    db: Session,
    owner_id: str,
    events: Sequence[MilestoneEvent],
    result: CheckInResult,
) -> None:
    for event in events:
        if _milestone_exists(db, event):
            result.milestones_skipped.append(event)
            continue
        db.add(Milestone(
            habit_id=event.habit_id,
            owner_id=owner_id,
            kind=event.kind,
            threshold=event.threshold,
            achieved_on=event.achieved_on,
        ))
        result.milestones_created.append(event)
        logger.info(
            "Milestone achieved habit=%s kind=%s threshold=%s",
            event.habit_id, event.kind, event.threshold,
        )


def _check_day(habit: Habit, day: date, today: date) -> None:
    if day > today:
        raise RangeError(day, today, reason="cannot log a day that has not started yet")
    if day < habit.created_on:
        raise DataIntegrityError(habit.id, day, "log predates habit creation")


# ---------------------------------------------------------------------------
# Public: write path
# ---------------------------------------------------------------------------

def check_in(
    db: Session,
    owner_id: str,
    habit_id: int,
    day: date,
    today: date,
    completed: bool = True,
    value: Optional[float] = None,
    notes: Optional[str] = None,
) -> CheckInResult:
    habit = get_habit(db, owner_id, habit_id)
    _check_day(habit, day, today)

    previous = _recompute(db, habit, today)

    log = (
        db.query(HabitLog)
        .filter(HabitLog.habit_id == habit.id, HabitLog.day == day)
        .first()
    )
    if log is None:
        log = HabitLog(habit_id=habit.id, owner_id=owner_id, day=day)
        db.add(log)
    log.completed = completed
    log.value = value
    log.notes = notes
    db.flush()

    streak = _recompute(db, habit, today)
    _write_cache(habit, streak)

    result = CheckInResult(log=log, previous=previous, streak=streak)
    events = detect_milestones(
        habit.id,
        previous,
        streak,
        achieved_on=today,
        streak_thresholds=settings.STREAK_MILESTONES,
        completion_thresholds=settings.COMPLETION_MILESTONES,
    )
    _emit_milestones(db, owner_id, events, result)

    try:
        db.commit()
    except IntegrityError as exc:
        # Concurrent writer inserted the same (habit, day) or milestone first
        db.rollback()
        raise DataIntegrityError(habit.id, day, "concurrent write for the same day") from exc

    db.refresh(log)
    return result


def undo_check_in(
    db: Session,
    owner_id: str,
    habit_id: int,
    day: date,
    today: date,
) -> StreakResult:
    """Delete the log for (habit, day) and refresh the cache. Milestones stay."""
    habit = get_habit(db, owner_id, habit_id)
    log = (
        db.query(HabitLog)
        .filter(HabitLog.habit_id == habit.id, HabitLog.day == day)
        .first()
    )
    if log is None:
        raise NotFoundError("HabitLog", f"{habit_id}@{day}")

    db.delete(log)
    db.flush()
    streak = _recompute(db, habit, today)
    _write_cache(habit, streak)
    db.commit()
    return streak


# ---------------------------------------------------------------------------
# Public: reads, audit, backfill
# ---------------------------------------------------------------------------

def current_streak(db: Session, owner_id: str, habit_id: int, today: date) -> StreakResult:
    """Authoritative value, always recomputed."""
    habit = get_habit(db, owner_id, habit_id)
    return _recompute(db, habit, today)


def audit_streak_cache(db: Session, owner_id: str, habit_id: int, today: date) -> StreakAudit:
    habit = get_habit(db, owner_id, habit_id)
    audit = StreakAudit(
        habit_id=habit.id,
        cached=_cached(habit),
        recomputed=_recompute(db, habit, today),
    )
    if audit.drift:
        logger.warning(
            "Streak cache drift on habit %s: cached=%s recomputed=%s",
            habit.id, audit.cached, audit.recomputed,
        )
    return audit


def rebuild_streak_cache(db: Session, owner_id: str, habit_id: int, today: date) -> StreakResult:
    habit = get_habit(db, owner_id, habit_id)
    streak = _recompute(db, habit, today)
    _write_cache(habit, streak)
    db.commit()
    return streak


def list_milestones(
    db: Session,
    owner_id: str,
    habit_id: Optional[int] = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[int, list[Milestone]]:
    """Return (total, page) ordered by achieved_on desc."""
    q = db.query(Milestone).filter(Milestone.owner_id == owner_id)
    if habit_id is not None:
        q = q.filter(Milestone.habit_id == habit_id)
    total = q.count()
    items = (
        q.order_by(Milestone.achieved_on.desc(), Milestone.threshold.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return total, items
