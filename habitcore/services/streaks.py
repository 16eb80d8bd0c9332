"""
Streak calculator — current/longest streak for one habit, milestone
crossings, and a short-horizon risk forecast.

Definitions
-----------
A streak run is a maximal sequence of scheduled dates that all have a
qualifying log. Unscheduled dates are skipped without effect; a scheduled
date without a qualifying log ends the run.

current  — length of the run reached by scanning scheduled dates backward
           from as_of.
longest  — longest run anywhere in [created_on, as_of].

The still-open day
------------------
A day that has not fully elapsed for the user must not break a streak.
Callers either pass as_of = last fully-elapsed day, or pass
as_of = today together with open_day = today. An open day with a qualifying
log counts; an open day without one is pending: it neither extends nor
breaks the run. The boundary is always an explicit argument; this module
never reads a clock.

Public API
----------
compute_streak(habit, logs, as_of, open_day)                      -> StreakResult
crossed_thresholds(old, new, thresholds)                          -> list[int]
detect_milestones(habit_id, before, after, achieved_on, ...)      -> list[MilestoneEvent]
forecast_streak(habit, logs, today, thresholds)                   -> StreakForecast
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Iterable, Optional, Sequence

from habitcore.services.calendar import date_range, is_qualifying, is_scheduled, validate_habit
from habitcore.services.snapshot import HabitSnapshot, LogSnapshot, index_habit_logs


DEFAULT_STREAK_MILESTONES: tuple[int, ...] = (7, 14, 21, 30, 60, 90, 100, 180, 365, 500, 1000)
DEFAULT_COMPLETION_MILESTONES: tuple[int, ...] = (10, 25, 50, 100, 250, 500, 1000)

# Forecast thresholds over the trailing 7-day window
_FORECAST_WINDOW_DAYS = 7
_RECENT_MISS_DAYS = 3
_LOW_RISK_RATE = 0.9
_MEDIUM_RISK_RATE = 0.7
_MILESTONE_FALLBACK_STEP = 30


class MilestoneKind:
    STREAK      = "streak"
    COMPLETIONS = "completions"


class RiskLevel:
    LOW    = "low"
    MEDIUM = "medium"
    HIGH   = "high"


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StreakResult:
    current: int
    longest: int
    last_qualifying_date: Optional[date]
    total_completions: int   # qualifying logs on or before as_of


@dataclass(frozen=True)
class MilestoneEvent:
    habit_id: Any
    kind: str
    threshold: int
    achieved_on: date


@dataclass(frozen=True)
class StreakForecast:
    habit_id: Any
    current_streak: int
    next_milestone: int
    days_to_milestone: int        # scheduled occurrences still needed
    recent_rate: float            # qualifying share of recent scheduled days
    risk_level: str
    risk_reason: Optional[str]


# ---------------------------------------------------------------------------
# Streak computation
# ---------------------------------------------------------------------------

def compute_streak(
    habit: HabitSnapshot,
    logs: Iterable[LogSnapshot],
    as_of: date,
    open_day: Optional[date] = None,
) -> StreakResult:
    """
    Recompute the streak for one habit from its full log history.
    Logs for other habits and logs after as_of are ignored.

    Raises ConfigurationError for a malformed cadence and DataIntegrityError
    for duplicate / pre-creation logs.
    """
    validate_habit(habit)
    by_day = index_habit_logs(habit, logs)

    if as_of < habit.created_on:
        return StreakResult(current=0, longest=0, last_qualifying_date=None, total_completions=0)

    qualifying_days = sorted(
        d for d, log in by_day.items() if d <= as_of and is_qualifying(habit, log)
    )
    qualifying = set(qualifying_days)

    # Backward scan for the current run
    current = 0
    day = as_of
    while day >= habit.created_on:
        if is_scheduled(habit, day):
            if day in qualifying:
                current += 1
            elif day != open_day:
                break
        day -= timedelta(days=1)

    # Forward partition for the longest run
    longest = 0
    run = 0
    for day in date_range(habit.created_on, as_of):
        if not is_scheduled(habit, day):
            continue
        if day in qualifying:
            run += 1
            longest = max(longest, run)
        elif day != open_day:
            run = 0

    return StreakResult(
        current=current,
        longest=longest,
        last_qualifying_date=qualifying_days[-1] if qualifying_days else None,
        total_completions=len(qualifying_days),
    )


# ---------------------------------------------------------------------------
# Milestones
# ---------------------------------------------------------------------------

def crossed_thresholds(old: int, new: int, thresholds: Iterable[int]) -> list[int]:
    """Every threshold t with old < t <= new, ascending. Empty when new <= old."""
    return sorted(t for t in set(thresholds) if old < t <= new)


def detect_milestones(
    habit_id: Any,
    before: StreakResult,
    after: StreakResult,
    achieved_on: date,
    streak_thresholds: Sequence[int] = DEFAULT_STREAK_MILESTONES,
    completion_thresholds: Sequence[int] = DEFAULT_COMPLETION_MILESTONES,
) -> list[MilestoneEvent]:
    """
    Compare pre-write and post-write streaks. A single backfilled write can
    cross several thresholds at once; each one is emitted.
    """
    events = [
        MilestoneEvent(habit_id, MilestoneKind.STREAK, t, achieved_on)
        for t in crossed_thresholds(before.current, after.current, streak_thresholds)
    ]
    events.extend(
        MilestoneEvent(habit_id, MilestoneKind.COMPLETIONS, t, achieved_on)
        for t in crossed_thresholds(
            before.total_completions, after.total_completions, completion_thresholds
        )
    )
    return events


def next_milestone(current: int, thresholds: Sequence[int] = DEFAULT_STREAK_MILESTONES) -> int:
    upcoming = [t for t in sorted(thresholds) if t > current]
    return upcoming[0] if upcoming else current + _MILESTONE_FALLBACK_STEP


# ---------------------------------------------------------------------------
# Forecast
# ---------------------------------------------------------------------------

def forecast_streak(
    habit: HabitSnapshot,
    logs: Iterable[LogSnapshot],
    today: date,
    thresholds: Sequence[int] = DEFAULT_STREAK_MILESTONES,
) -> StreakForecast:
    """
    Distance to the next streak milestone plus a risk level drawn from the
    last 7 days. Today is treated as the open day.

      low    — >= 90 % of recent scheduled days qualified
      medium — >= 70 %, or any miss in the last 3 days
      high   — below 70 %
    """
    logs = list(logs)
    streak = compute_streak(habit, logs, as_of=today, open_day=today)
    by_day = index_habit_logs(habit, logs)

    window_start = max(habit.created_on, today - timedelta(days=_FORECAST_WINDOW_DAYS - 1))
    recent = [
        d for d in scheduled_between(habit, window_start, today)
        if not (d == today and not is_qualifying(habit, by_day.get(d)))
    ]
    hits = sum(1 for d in recent if is_qualifying(habit, by_day.get(d)))
    recent_rate = hits / len(recent) if recent else 1.0

    if recent_rate >= _LOW_RISK_RATE:
        risk_level, risk_reason = RiskLevel.LOW, None
    elif recent_rate >= _MEDIUM_RISK_RATE:
        risk_level, risk_reason = RiskLevel.MEDIUM, "Missed some days recently"
    else:
        risk_level, risk_reason = RiskLevel.HIGH, "Declining activity pattern"

    miss_cutoff = today - timedelta(days=_RECENT_MISS_DAYS - 1)
    missed_recently = any(
        d >= miss_cutoff and not is_qualifying(habit, by_day.get(d)) for d in recent
    )
    if missed_recently and risk_level != RiskLevel.HIGH:
        risk_level, risk_reason = RiskLevel.MEDIUM, "Missed check-in in last 3 days"

    target = next_milestone(streak.current, thresholds)
    return StreakForecast(
        habit_id=habit.id,
        current_streak=streak.current,
        next_milestone=target,
        days_to_milestone=target - streak.current,
        recent_rate=round(recent_rate, 4),
        risk_level=risk_level,
        risk_reason=risk_reason,
    )


def scheduled_between(habit: HabitSnapshot, start: date, end: date) -> list[date]:
    if start > end:
        return []
    return [d for d in date_range(start, end) if is_scheduled(habit, d)]
