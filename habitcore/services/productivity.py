"""
Productivity score — one 0–100 number with a letter grade and a trend.

Score = consistency + streaks + completion, each already weighted in points:

  consistency (40)  mean daily completion percentage over the window, only
                    counting days that had at least one scheduled habit
  streaks     (30)  (0.5 * best current streak + 0.5 * mean current streak)
                    divided by the reference streak, capped at 1
  completion  (30)  Σ completed / Σ scheduled over the same window

Grade: A >= 90, B >= 75, C >= 60, D >= 40, else F.

Trend compares this window's score with the immediately preceding window of
equal length. |delta| <= dead_band reads "steady". If the preceding window
had nothing scheduled the trend is "insufficient_data".

as_of should be the last fully-elapsed day; the window is
[as_of - window_days + 1, as_of].
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable, Optional

from habitcore.core.errors import InsufficientDataError, RangeError
from habitcore.services.aggregator import aggregate
from habitcore.services.calendar import partition_valid
from habitcore.services.snapshot import HabitSnapshot, LogSnapshot
from habitcore.services.streaks import compute_streak


DEFAULT_WINDOW_DAYS = 30
DEFAULT_REFERENCE_STREAK = 30
DEFAULT_DEAD_BAND = 3

CONSISTENCY_WEIGHT = 40
STREAKS_WEIGHT = 30
COMPLETION_WEIGHT = 30

GRADE_BREAKPOINTS: tuple[tuple[int, str], ...] = ((90, "A"), (75, "B"), (60, "C"), (40, "D"))
FAILING_GRADE = "F"


class ScoreTrend:
    IMPROVING         = "improving"
    STEADY            = "steady"
    DECLINING         = "declining"
    INSUFFICIENT_DATA = "insufficient_data"


@dataclass(frozen=True)
class ScoreBreakdown:
    consistency: int   # 0–40
    streaks: int       # 0–30
    completion: int    # 0–30

    @property
    def total(self) -> int:
        return self.consistency + self.streaks + self.completion


@dataclass(frozen=True)
class ProductivityScore:
    score: int
    grade: str
    trend: str
    breakdown: ScoreBreakdown
    previous_score: Optional[int]
    window_start: date
    window_end: date
    excluded_habits: tuple[Any, ...] = ()


def _points(weight: int, fraction: Decimal) -> int:
    fraction = max(Decimal(0), min(Decimal(1), fraction))
    return int((weight * fraction).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def grade_for(score: int) -> str:
    for breakpoint, grade in GRADE_BREAKPOINTS:
        if score >= breakpoint:
            return grade
    return FAILING_GRADE


def classify_trend(current: int, previous: Optional[int], dead_band: int = DEFAULT_DEAD_BAND) -> str:
    """Raises InsufficientDataError when there is no previous score to compare with."""
    if previous is None:
        raise InsufficientDataError(required=1, available=0, what="scheduled days in the previous window")
    delta = current - previous
    if delta > dead_band:
        return ScoreTrend.IMPROVING
    if delta < -dead_band:
        return ScoreTrend.DECLINING
    return ScoreTrend.STEADY


def window_breakdown(
    habits: list[HabitSnapshot],
    logs: list[LogSnapshot],
    start: date,
    end: date,
    reference_streak: int = DEFAULT_REFERENCE_STREAK,
) -> Optional[ScoreBreakdown]:
    """Points for one window; None when nothing was scheduled in it."""
    days = [d for d in aggregate(habits, logs, start, end).values() if d.total > 0]
    if not days:
        return None

    consistency = Decimal(sum(d.percentage for d in days)) / len(days) / 100
    completion = Decimal(sum(d.completed for d in days)) / sum(d.total for d in days)

    currents = [compute_streak(h, logs, as_of=end).current for h in habits]
    best = max(currents, default=0)
    mean = Decimal(sum(currents)) / len(currents) if currents else Decimal(0)
    streak_fraction = (Decimal("0.5") * best + Decimal("0.5") * mean) / reference_streak

    return ScoreBreakdown(
        consistency=_points(CONSISTENCY_WEIGHT, consistency),
        streaks=_points(STREAKS_WEIGHT, streak_fraction),
        completion=_points(COMPLETION_WEIGHT, completion),
    )


def score(
    habits: Iterable[HabitSnapshot],
    logs: Iterable[LogSnapshot],
    as_of: date,
    window_days: int = DEFAULT_WINDOW_DAYS,
    reference_streak: int = DEFAULT_REFERENCE_STREAK,
    dead_band: int = DEFAULT_DEAD_BAND,
) -> ProductivityScore:
    if window_days < 1:
        raise RangeError(None, as_of, reason="score window must be at least one day")
    if reference_streak < 1:
        raise RangeError(None, as_of, reason="reference streak must be at least one day")

    logs = list(logs)
    valid, failures = partition_valid(habits, logs)

    window_start = as_of - timedelta(days=window_days - 1)
    previous_end = window_start - timedelta(days=1)
    previous_start = previous_end - timedelta(days=window_days - 1)

    current = window_breakdown(valid, logs, window_start, as_of, reference_streak)
    if current is None:
        current = ScoreBreakdown(consistency=0, streaks=0, completion=0)
    previous = window_breakdown(valid, logs, previous_start, previous_end, reference_streak)
    previous_score = previous.total if previous is not None else None

    try:
        trend = classify_trend(current.total, previous_score, dead_band)
    except InsufficientDataError:
        trend = ScoreTrend.INSUFFICIENT_DATA

    return ProductivityScore(
        score=current.total,
        grade=grade_for(current.total),
        trend=trend,
        breakdown=current,
        previous_score=previous_score,
        window_start=window_start,
        window_end=as_of,
        excluded_habits=tuple(failures),
    )
