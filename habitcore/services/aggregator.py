"""
Completion aggregator — per-day completion summaries across a set of habits,
plus the coarser views built on top of them (week rollups, yearly heatmap,
weekday performance, week-over-week comparison, 30-day trend).

Per date
--------
total       = habits scheduled that date
completed   = scheduled habits with a qualifying log
percentage  = round-half-up(100 * completed / total), 0 when total == 0

Heatmap levels (from the unrounded completion share)
----------------------------------------------------
  0 completions       -> 0
  0  < pct < 25       -> 1
  25 <= pct < 50      -> 2
  50 <= pct < 75      -> 3
  pct >= 75           -> 4
"""
from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable, Mapping, Optional

from habitcore.core.errors import HabitCoreException, RangeError
from habitcore.services.calendar import date_range, is_qualifying, is_scheduled, partition_valid
from habitcore.services.snapshot import HabitSnapshot, LogSnapshot, index_logs


HEATMAP_LEVEL_BOUNDS = (25, 50, 75)

WEEKDAY_NAMES = {
    1: "Monday", 2: "Tuesday", 3: "Wednesday", 4: "Thursday",
    5: "Friday", 6: "Saturday", 7: "Sunday",
}


class Trend:
    UP   = "up"
    DOWN = "down"
    SAME = "same"


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class HabitDayStatus:
    habit_id: Any
    completed: bool          # qualifying, not just flagged
    value: Optional[float]


@dataclass(frozen=True)
class DayAggregate:
    day: date
    completed: int
    total: int
    percentage: int          # 0–100
    level: int               # 0–4 heatmap bucket
    habits: tuple[HabitDayStatus, ...]


@dataclass(frozen=True)
class PeriodSummary:
    completed: int
    total: int
    rate: int


@dataclass(frozen=True)
class WeekSummary:
    week_start: date
    week_end: date
    completed: int
    total: int
    rate: int


@dataclass(frozen=True)
class HeatmapDay:
    day: date
    count: int
    total: int
    level: int


@dataclass(frozen=True)
class WeekdayPerformance:
    weekday: int             # ISO 1=Mon..7=Sun
    name: str
    completed: int
    total: int
    rate: int


@dataclass(frozen=True)
class PeriodComparison:
    current: PeriodSummary
    previous: PeriodSummary
    change: int
    trend: str


@dataclass(frozen=True)
class MonthlyTrend:
    days: list[DayAggregate]
    average_rate: int        # mean day percentage over days with anything scheduled


class DayTable(OrderedDict):
    """date -> DayAggregate, plus the habits left out and why."""

    def __init__(self, excluded: Optional[dict[Any, HabitCoreException]] = None):
        super().__init__()
        self.excluded = dict(excluded or {})


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def percent(part: float, whole: float) -> int:
    """round(100 * part / whole), half-up; 0 when whole is 0."""
    if not whole:
        return 0
    raw = Decimal(100) * Decimal(str(part)) / Decimal(str(whole))
    return int(raw.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def heatmap_level(completed: int, total: int) -> int:
    if completed <= 0 or total <= 0:
        return 0
    share = Decimal(100) * completed / total
    for level, bound in enumerate(HEATMAP_LEVEL_BOUNDS, start=1):
        if share < bound:
            return level
    return len(HEATMAP_LEVEL_BOUNDS) + 1


def _week_start(day: date) -> date:
    return day - timedelta(days=day.isoweekday() - 1)


# ---------------------------------------------------------------------------
# Core
# ---------------------------------------------------------------------------

def aggregate(
    habits: Iterable[HabitSnapshot],
    logs: Iterable[LogSnapshot],
    range_start: date,
    range_end: date,
) -> DayTable:
    """
    Day-by-day completion detail for [range_start, range_end], oldest first.

    Raises RangeError before doing any work if the range is inverted. A
    habit with a bad cadence or log history is left out of every day and
    reported in `excluded`; the other habits are still aggregated.
    """
    if range_start > range_end:
        raise RangeError(range_start, range_end)

    logs = list(logs)
    habits, failures = partition_valid(habits, logs)
    by_habit = index_logs(habits, logs)

    result = DayTable(excluded=failures)
    for day in date_range(range_start, range_end):
        statuses = []
        for habit in habits:
            if not is_scheduled(habit, day):
                continue
            log = by_habit[habit.id].get(day)
            statuses.append(HabitDayStatus(
                habit_id=habit.id,
                completed=is_qualifying(habit, log),
                value=log.value if log else None,
            ))
        total = len(statuses)
        completed = sum(1 for s in statuses if s.completed)
        result[day] = DayAggregate(
            day=day,
            completed=completed,
            total=total,
            percentage=percent(completed, total),
            level=heatmap_level(completed, total),
            habits=tuple(statuses),
        )
    return result


def summarize(days: Iterable[DayAggregate]) -> PeriodSummary:
    completed = total = 0
    for d in days:
        completed += d.completed
        total += d.total
    return PeriodSummary(completed=completed, total=total, rate=percent(completed, total))


def weekly_rollup(days: Mapping[date, DayAggregate]) -> list[WeekSummary]:
    """Group day aggregates into Monday-start weeks, clipped to the range given."""
    buckets: OrderedDict[date, list[DayAggregate]] = OrderedDict()
    for day in sorted(days):
        buckets.setdefault(_week_start(day), []).append(days[day])

    weeks = []
    for _, items in buckets.items():
        summary = summarize(items)
        weeks.append(WeekSummary(
            week_start=items[0].day,
            week_end=items[-1].day,
            completed=summary.completed,
            total=summary.total,
            rate=summary.rate,
        ))
    return weeks


def heatmap(
    habits: Iterable[HabitSnapshot],
    logs: Iterable[LogSnapshot],
    year: int,
    today: date,
) -> list[HeatmapDay]:
    """Calendar year view, clipped at today. A year entirely in the future is empty."""
    start = date(year, 1, 1)
    end = min(date(year, 12, 31), today)
    if start > end:
        return []
    return [
        HeatmapDay(day=d.day, count=d.completed, total=d.total, level=d.level)
        for d in aggregate(habits, logs, start, end).values()
    ]


def weekday_performance(days: Iterable[DayAggregate]) -> list[WeekdayPerformance]:
    """Completion rate per ISO weekday, Monday first."""
    totals = {wd: [0, 0] for wd in WEEKDAY_NAMES}
    for d in days:
        bucket = totals[d.day.isoweekday()]
        bucket[0] += d.completed
        bucket[1] += d.total
    return [
        WeekdayPerformance(
            weekday=wd,
            name=WEEKDAY_NAMES[wd],
            completed=completed,
            total=total,
            rate=percent(completed, total),
        )
        for wd, (completed, total) in totals.items()
    ]


def habit_completion_rates(
    habits: Iterable[HabitSnapshot],
    logs: Iterable[LogSnapshot],
    range_start: date,
    range_end: date,
) -> dict[Any, PeriodSummary]:
    """Per-habit completed / scheduled over the range."""
    habits = list(habits)
    counts = {h.id: [0, 0] for h in habits}
    for day in aggregate(habits, logs, range_start, range_end).values():
        for status in day.habits:
            counts[status.habit_id][1] += 1
            if status.completed:
                counts[status.habit_id][0] += 1
    return {
        habit_id: PeriodSummary(completed=c, total=t, rate=percent(c, t))
        for habit_id, (c, t) in counts.items()
    }


def compare_periods(current: PeriodSummary, previous: PeriodSummary) -> PeriodComparison:
    change = current.rate - previous.rate
    if change > 0:
        trend = Trend.UP
    elif change < 0:
        trend = Trend.DOWN
    else:
        trend = Trend.SAME
    return PeriodComparison(current=current, previous=previous, change=change, trend=trend)


def week_comparison(
    habits: Iterable[HabitSnapshot],
    logs: Iterable[LogSnapshot],
    today: date,
) -> PeriodComparison:
    """This week (Monday..today) against the whole previous Monday..Sunday week."""
    habits = list(habits)
    logs = list(logs)
    this_start = _week_start(today)
    last_start = this_start - timedelta(days=7)
    last_end = this_start - timedelta(days=1)
    current = summarize(aggregate(habits, logs, this_start, today).values())
    previous = summarize(aggregate(habits, logs, last_start, last_end).values())
    return compare_periods(current, previous)


def monthly_trend(
    habits: Iterable[HabitSnapshot],
    logs: Iterable[LogSnapshot],
    today: date,
    days: int = 30,
) -> MonthlyTrend:
    """The last `days` days ending today, with the mean daily rate."""
    if days < 1:
        raise RangeError(None, today, reason="trend window must be at least one day")
    start = today - timedelta(days=days - 1)
    rows = list(aggregate(habits, logs, start, today).values())
    scored = [d.percentage for d in rows if d.total > 0]
    average = 0
    if scored:
        mean = Decimal(sum(scored)) / len(scored)
        average = int(mean.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return MonthlyTrend(days=rows, average_rate=average)
