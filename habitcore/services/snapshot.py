"""
Immutable per-user snapshot the analytics engine computes over.

The engine never touches the ORM: the repository converts rows into these
frozen dataclasses once per request, and every computation is a pure
function of them plus an explicit "today".

Public API
----------
HabitSnapshot, LogSnapshot, ChallengeSnapshot
index_habit_logs(habit, logs)   -> dict[date, LogSnapshot]
index_logs(habits, logs)        -> dict[habit_id, dict[date, LogSnapshot]]
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Iterable, Optional

from habitcore.core.errors import DataIntegrityError
from habitcore.models.challenge import ChallengeStatus
from habitcore.models.habit import Cadence, ValueKind


@dataclass(frozen=True)
class HabitSnapshot:
    id: Any
    cadence: Cadence
    created_on: date
    days_of_week: frozenset[int] = field(default_factory=frozenset)
    value_kind: ValueKind = ValueKind.boolean
    target_value: Optional[float] = None
    unit: Optional[str] = None
    name: str = ""
    owner_id: Optional[str] = None
    archived: bool = False


@dataclass(frozen=True)
class LogSnapshot:
    habit_id: Any
    day: date
    completed: bool = True
    value: Optional[float] = None


@dataclass(frozen=True)
class ChallengeSnapshot:
    id: Any
    habit_ids: frozenset
    start_date: date
    duration_days: int
    status: ChallengeStatus = ChallengeStatus.active

    @property
    def end_date(self) -> date:
        """Last day of the window (inclusive)."""
        return self.start_date + timedelta(days=self.duration_days - 1)


def index_habit_logs(habit: HabitSnapshot, logs: Iterable[LogSnapshot]) -> dict[date, LogSnapshot]:
    """
    Map day -> log for a single habit, ignoring other habits' logs.

    Raises DataIntegrityError on a duplicate (habit, day) or on a log that
    predates the habit; both are upstream defects and are surfaced as-is.
    """
    by_day: dict[date, LogSnapshot] = {}
    for log in logs:
        if log.habit_id != habit.id:
            continue
        if log.day < habit.created_on:
            raise DataIntegrityError(habit.id, log.day, "log predates habit creation")
        if log.day in by_day:
            raise DataIntegrityError(habit.id, log.day, "duplicate log entry")
        by_day[log.day] = log
    return by_day


def index_logs(
    habits: Iterable[HabitSnapshot],
    logs: Iterable[LogSnapshot],
) -> dict[Any, dict[date, LogSnapshot]]:
    """Per-habit day index for every habit given. Fails on the first bad habit."""
    logs = list(logs)
    return {h.id: index_habit_logs(h, logs) for h in habits}
