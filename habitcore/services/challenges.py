"""
Challenge progress — projects a fixed habit subset onto a fixed date window.

Window
------
[start_date, min(today, start_date + duration_days - 1)], restricted to the
challenge's habit ids. Per date, completed_count / total_habits follow the
aggregator's semantics (total = challenge habits scheduled that date).

  is_perfect_day     completed_count == total_habits and total_habits > 0
  days_completed     dates with completed_count > 0          (partial credit)
  perfect_days       dates with is_perfect_day               (strict credit)
  current_streak     trailing run of perfect days ending at the latest synced
                     date; every day in the window counts, no skip allowance
  overall_completion round-half-up(100 * Σcompleted / Σtotal)

Idempotency
-----------
sync_day() recomputes one row and then re-derives every rollup from the full
per-day table, never from the touched row alone. Running sync() twice on the
same inputs yields equal ChallengeProgress values.

Status
------
active -> completed   automatically once today > end_date
active -> abandoned   only through abandon()
completed / abandoned are terminal.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from typing import Any, Iterable, Mapping

from habitcore.core.errors import InvalidStatusTransitionError, RangeError
from habitcore.models.challenge import ChallengeStatus
from habitcore.services.aggregator import percent
from habitcore.services.calendar import date_range, is_qualifying, is_scheduled, validate_habit
from habitcore.services.snapshot import ChallengeSnapshot, HabitSnapshot, LogSnapshot, index_logs


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ChallengeDayProgress:
    day: date
    completed_count: int
    total_habits: int
    is_perfect_day: bool


@dataclass(frozen=True)
class ChallengeProgress:
    challenge_id: Any
    status: ChallengeStatus
    days: tuple[ChallengeDayProgress, ...]   # oldest first
    days_completed: int
    perfect_days: int
    current_streak: int
    overall_completion: int                  # 0–100


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _check_window(challenge: ChallengeSnapshot) -> None:
    if challenge.duration_days < 1:
        raise RangeError(
            challenge.start_date, None, reason="challenge duration must be at least one day"
        )
    if not challenge.habit_ids:
        raise RangeError(
            challenge.start_date, challenge.end_date, reason="challenge has no habits"
        )


def synced_until(challenge: ChallengeSnapshot, today: date) -> date:
    """Latest date that can be synced: the window end or today, whichever is first."""
    return min(today, challenge.end_date)


def _challenge_habits(
    challenge: ChallengeSnapshot, habits: Iterable[HabitSnapshot]
) -> list[HabitSnapshot]:
    selected = [h for h in habits if h.id in challenge.habit_ids]
    for habit in selected:
        validate_habit(habit)
    return selected


def compute_day(
    challenge: ChallengeSnapshot,
    habits: Iterable[HabitSnapshot],
    logs: Iterable[LogSnapshot],
    day: date,
) -> ChallengeDayProgress:
    """One row of the per-day table."""
    selected = _challenge_habits(challenge, habits)
    by_habit = index_logs(selected, logs)
    return _day_row(selected, by_habit, day)


def _day_row(selected, by_habit, day: date) -> ChallengeDayProgress:
    scheduled = [h for h in selected if is_scheduled(h, day)]
    completed = sum(1 for h in scheduled if is_qualifying(h, by_habit[h.id].get(day)))
    total = len(scheduled)
    return ChallengeDayProgress(
        day=day,
        completed_count=completed,
        total_habits=total,
        is_perfect_day=total > 0 and completed == total,
    )


def rollup(
    challenge: ChallengeSnapshot,
    table: Mapping[date, ChallengeDayProgress],
    status: ChallengeStatus,
) -> ChallengeProgress:
    """Derive every summary metric from the complete per-day table."""
    days = tuple(table[d] for d in sorted(table))

    streak = 0
    for row in reversed(days):
        if not row.is_perfect_day:
            break
        streak += 1

    return ChallengeProgress(
        challenge_id=challenge.id,
        status=status,
        days=days,
        days_completed=sum(1 for r in days if r.completed_count > 0),
        perfect_days=sum(1 for r in days if r.is_perfect_day),
        current_streak=streak,
        overall_completion=percent(
            sum(r.completed_count for r in days),
            sum(r.total_habits for r in days),
        ),
    )


# ---------------------------------------------------------------------------
# Status transitions
# ---------------------------------------------------------------------------

def resolve_status(challenge: ChallengeSnapshot, today: date) -> ChallengeStatus:
    """Automatic transition only: active -> completed once the window has passed."""
    if challenge.status == ChallengeStatus.active and today > challenge.end_date:
        return ChallengeStatus.completed
    return ChallengeStatus(challenge.status)


def abandon(challenge: ChallengeSnapshot) -> ChallengeSnapshot:
    if challenge.status != ChallengeStatus.active:
        raise InvalidStatusTransitionError(
            challenge.id, ChallengeStatus(challenge.status).value, ChallengeStatus.abandoned.value
        )
    return replace(challenge, status=ChallengeStatus.abandoned)


# ---------------------------------------------------------------------------
# Public: sync
# ---------------------------------------------------------------------------

def sync(
    challenge: ChallengeSnapshot,
    habits: Iterable[HabitSnapshot],
    logs: Iterable[LogSnapshot],
    today: date,
) -> ChallengeProgress:
    """
    Full recomputation over the synced window. A challenge that has not
    started yet returns an empty table with zeroed metrics.
    """
    _check_window(challenge)
    selected = _challenge_habits(challenge, habits)
    by_habit = index_logs(selected, logs)

    table: dict[date, ChallengeDayProgress] = {}
    last = synced_until(challenge, today)
    if challenge.start_date <= last:
        for day in date_range(challenge.start_date, last):
            table[day] = _day_row(selected, by_habit, day)

    return rollup(challenge, table, resolve_status(challenge, today))


def sync_day(
    challenge: ChallengeSnapshot,
    stored: Mapping[date, ChallengeDayProgress],
    habits: Iterable[HabitSnapshot],
    logs: Iterable[LogSnapshot],
    day: date,
    today: date,
) -> tuple[dict[date, ChallengeDayProgress], ChallengeProgress]:
    """
    Recompute the row for `day` and return (new table, progress rolled up from
    the whole table). Days outside the synced window are rejected.
    """
    _check_window(challenge)
    last = synced_until(challenge, today)
    if day < challenge.start_date or day > last:
        raise RangeError(challenge.start_date, last, reason=f"{day} is outside the challenge window")

    table = dict(stored)
    table[day] = compute_day(challenge, habits, logs, day)
    return table, rollup(challenge, table, resolve_status(challenge, today))
