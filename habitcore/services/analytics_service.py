"""
Analytics service — loads an owner's habits and logs once per call and
hands the snapshots to the pure engine.

Every function takes `today` explicitly (resolved at the HTTP edge).
Views that score whole days (correlation, productivity) end on
`today - 1`, the last fully elapsed day; streak views use `today` as the
open day.

Public API
----------
calendar_view(db, owner_id, start, end)               -> CalendarView
heatmap_view(db, owner_id, year, today)               -> list[HeatmapDay]
streak_leaderboard(db, owner_id, today, limit, offset)-> (total, list[LeaderboardEntry])
habit_stats(db, owner_id, habit_id, today, window)    -> HabitStats
week_comparison_view(db, owner_id, today)             -> PeriodComparison
monthly_trend_view(db, owner_id, today)               -> MonthlyTrend
overview_view(db, owner_id, today)                    -> Overview
day_of_week_view(db, owner_id, today, window)         -> DayOfWeekReport
correlation_view(db, owner_id, today)                 -> CorrelationBatch
productivity_view(db, owner_id, today)                -> ProductivityScore
predictions_view(db, owner_id, today)                 -> list[StreakForecast]
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Optional

from sqlalchemy.orm import Session

from habitcore.core.config import settings
from habitcore.core.errors import RangeError
from habitcore.services import aggregator, correlation, productivity
from habitcore.services.aggregator import (
    DayAggregate,
    HeatmapDay,
    MonthlyTrend,
    PeriodComparison,
    PeriodSummary,
    WeekdayPerformance,
    WeekSummary,
)
from habitcore.services.calendar import is_qualifying, partition_valid
from habitcore.services.correlation import CorrelationBatch
from habitcore.services.productivity import ProductivityScore
from habitcore.services.repository import get_habit, habit_to_snapshot, load_habits, load_logs
from habitcore.services.snapshot import HabitSnapshot
from habitcore.services.streaks import (
    RiskLevel,
    StreakForecast,
    StreakResult,
    compute_streak,
    forecast_streak,
)

logger = logging.getLogger(__name__)

DEFAULT_STATS_WINDOW_DAYS = 30
DEFAULT_WEEKDAY_WINDOW_DAYS = 90
MONTHLY_TREND_DAYS = 30


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class CalendarView:
    start: date
    end: date
    days: list[DayAggregate]
    summary: PeriodSummary
    weeks: list[WeekSummary]
    excluded_habits: list[Any] = field(default_factory=list)


@dataclass
class LeaderboardEntry:
    habit_id: int
    name: str
    current_streak: int
    longest_streak: int
    last_completed_on: Optional[date]


@dataclass
class HabitStats:
    habit_id: int
    name: str
    streak: StreakResult
    window_start: date
    window_end: date
    completion: PeriodSummary
    average_value: Optional[float]        # counter / duration habits only
    weekly: list[WeekSummary]


@dataclass
class HabitConsistency:
    habit_id: int
    name: str
    rate: int


@dataclass
class DayOfWeekReport:
    window_start: date
    window_end: date
    weekdays: list[WeekdayPerformance]
    best_day: Optional[WeekdayPerformance]
    worst_day: Optional[WeekdayPerformance]
    most_consistent: Optional[HabitConsistency]
    least_consistent: Optional[HabitConsistency]


@dataclass
class Overview:
    total_habits: int
    active_habits: int
    archived_habits: int
    today: PeriodSummary
    this_week: list[DayAggregate]
    current_best_streak: int
    longest_ever_streak: int
    total_completions: int
    weekly_average: float                 # qualifying check-ins per day, Monday..today
    monthly_rate: int                     # 1st of the month..today
    excluded_habits: list[Any] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _load_valid(db: Session, owner_id: str, start: Optional[date] = None, end: Optional[date] = None):
    habits = load_habits(db, owner_id)
    logs = load_logs(db, owner_id, habit_ids=[h.id for h in habits], start=start, end=end)
    valid, failures = partition_valid(habits, logs)
    return valid, logs, failures


def _elapsed(today: date) -> date:
    return today - timedelta(days=1)


# ---------------------------------------------------------------------------
# Period views
# ---------------------------------------------------------------------------

def calendar_view(db: Session, owner_id: str, start: date, end: date) -> CalendarView:
    if start > end:
        raise RangeError(start, end)
    valid, logs, failures = _load_valid(db, owner_id, start, end)
    days = aggregator.aggregate(valid, logs, start, end)
    return CalendarView(
        start=start,
        end=end,
        days=list(days.values()),
        summary=aggregator.summarize(days.values()),
        weeks=aggregator.weekly_rollup(days),
        excluded_habits=list(failures),
    )


def heatmap_view(db: Session, owner_id: str, year: int, today: date) -> list[HeatmapDay]:
    valid, logs, _ = _load_valid(db, owner_id, date(year, 1, 1), date(year, 12, 31))
    return aggregator.heatmap(valid, logs, year, today)


def week_comparison_view(db: Session, owner_id: str, today: date) -> PeriodComparison:
    valid, logs, _ = _load_valid(db, owner_id, end=today)
    return aggregator.week_comparison(valid, logs, today)


def monthly_trend_view(db: Session, owner_id: str, today: date) -> MonthlyTrend:
    start = today - timedelta(days=MONTHLY_TREND_DAYS - 1)
    valid, logs, _ = _load_valid(db, owner_id, start, today)
    return aggregator.monthly_trend(valid, logs, today, MONTHLY_TREND_DAYS)


def overview_view(db: Session, owner_id: str, today: date) -> Overview:
    """
    Dashboard counters. Streaks are recomputed rather than read from the
    cache; archived habits count toward the longest-ever streak and total
    completions only.
    """
    habits = load_habits(db, owner_id, include_archived=True)
    logs = load_logs(db, owner_id, habit_ids=[h.id for h in habits], end=today)
    valid, failures = partition_valid(habits, logs)
    active = [h for h in valid if not h.archived]

    streaks = {h.id: compute_streak(h, logs, as_of=today, open_day=today) for h in valid}

    week_start = today - timedelta(days=today.isoweekday() - 1)
    month_start = today.replace(day=1)
    week = aggregator.aggregate(active, logs, week_start, today)
    month = aggregator.aggregate(active, logs, month_start, today)
    week_done = sum(d.completed for d in week.values())

    return Overview(
        total_habits=len(habits),
        active_habits=sum(1 for h in habits if not h.archived),
        archived_habits=sum(1 for h in habits if h.archived),
        today=aggregator.summarize([week[today]]),
        this_week=list(week.values()),
        current_best_streak=max((streaks[h.id].current for h in active), default=0),
        longest_ever_streak=max((s.longest for s in streaks.values()), default=0),
        total_completions=sum(s.total_completions for s in streaks.values()),
        weekly_average=round(week_done / len(week), 1),
        monthly_rate=aggregator.summarize(month.values()).rate,
        excluded_habits=list(failures),
    )


# ---------------------------------------------------------------------------
# Streak views
# ---------------------------------------------------------------------------

def streak_leaderboard(
    db: Session,
    owner_id: str,
    today: date,
    limit: int = 20,
    offset: int = 0,
) -> tuple[int, list[LeaderboardEntry]]:
    """Active habits by current streak, then longest streak."""
    valid, logs, _ = _load_valid(db, owner_id, end=today)
    entries = []
    for habit in valid:
        streak = compute_streak(habit, logs, as_of=today, open_day=today)
        entries.append(LeaderboardEntry(
            habit_id=habit.id,
            name=habit.name,
            current_streak=streak.current,
            longest_streak=streak.longest,
            last_completed_on=streak.last_qualifying_date,
        ))
    entries.sort(key=lambda e: (-e.current_streak, -e.longest_streak, e.habit_id))
    return len(entries), entries[offset:offset + limit]


def habit_stats(
    db: Session,
    owner_id: str,
    habit_id: int,
    today: date,
    window_days: int = DEFAULT_STATS_WINDOW_DAYS,
) -> HabitStats:
    if window_days < 1:
        raise RangeError(None, today, reason="stats window must be at least one day")
    habit = habit_to_snapshot(get_habit(db, owner_id, habit_id))
    logs = load_logs(db, owner_id, habit_ids=[habit.id], end=today)

    streak = compute_streak(habit, logs, as_of=today, open_day=today)
    window_start = max(habit.created_on, today - timedelta(days=window_days - 1))
    if window_start > today:
        window_start = today
    days = aggregator.aggregate([habit], logs, window_start, today)

    values = [
        log.value for log in logs
        if log.value is not None and window_start <= log.day <= today
    ]
    average_value = None
    if habit.target_value is not None and values:
        average_value = round(sum(values) / len(values), 2)

    return HabitStats(
        habit_id=habit.id,
        name=habit.name,
        streak=streak,
        window_start=window_start,
        window_end=today,
        completion=aggregator.summarize(days.values()),
        average_value=average_value,
        weekly=aggregator.weekly_rollup(days),
    )


def predictions_view(db: Session, owner_id: str, today: date) -> list[StreakForecast]:
    """Forecast per active habit, most at risk first."""
    valid, logs, _ = _load_valid(db, owner_id, end=today)
    order = {RiskLevel.HIGH: 0, RiskLevel.MEDIUM: 1, RiskLevel.LOW: 2}
    forecasts = [
        forecast_streak(habit, logs, today, settings.STREAK_MILESTONES)
        for habit in valid
    ]
    forecasts.sort(key=lambda f: (order.get(f.risk_level, 3), f.days_to_milestone))
    return forecasts


# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

def day_of_week_view(
    db: Session,
    owner_id: str,
    today: date,
    window_days: int = DEFAULT_WEEKDAY_WINDOW_DAYS,
) -> DayOfWeekReport:
    if window_days < 1:
        raise RangeError(None, today, reason="weekday window must be at least one day")
    end = _elapsed(today)
    start = end - timedelta(days=window_days - 1)
    valid, logs, _ = _load_valid(db, owner_id, start, end)

    days = aggregator.aggregate(valid, logs, start, end).values()
    weekdays = aggregator.weekday_performance(days)
    scored = [w for w in weekdays if w.total > 0]
    best = max(scored, key=lambda w: (w.rate, -w.weekday), default=None)
    worst = min(scored, key=lambda w: (w.rate, w.weekday), default=None)

    names = {h.id: h.name for h in valid}
    rates = [
        HabitConsistency(habit_id=habit_id, name=names[habit_id], rate=summary.rate)
        for habit_id, summary in aggregator.habit_completion_rates(valid, logs, start, end).items()
        if summary.total > 0
    ]
    most = max(rates, key=lambda r: (r.rate, -r.habit_id), default=None)
    least = min(rates, key=lambda r: (r.rate, r.habit_id), default=None)

    return DayOfWeekReport(
        window_start=start,
        window_end=end,
        weekdays=weekdays,
        best_day=best,
        worst_day=worst,
        most_consistent=most,
        least_consistent=least,
    )


def _top_habits(habits: list[HabitSnapshot], logs, limit: int) -> list[HabitSnapshot]:
    """The `limit` habits with the most qualifying check-ins, oldest id first on ties."""
    by_id = {h.id: h for h in habits}
    done: dict[Any, int] = {h.id: 0 for h in habits}
    for log in logs:
        habit = by_id.get(log.habit_id)
        if habit is not None and is_qualifying(habit, log):
            done[log.habit_id] += 1
    ranked = sorted(habits, key=lambda h: (-done[h.id], h.id))
    return ranked[:limit]


def correlation_view(db: Session, owner_id: str, today: date) -> CorrelationBatch:
    as_of = _elapsed(today)
    start = as_of - timedelta(days=settings.CORRELATION_WINDOW_DAYS - 1)
    valid, logs, failures = _load_valid(db, owner_id, start, as_of)
    selected = _top_habits(valid, logs, settings.CORRELATION_MAX_HABITS)

    batch = correlation.correlate_all(
        selected,
        logs,
        window_days=settings.CORRELATION_WINDOW_DAYS,
        as_of=as_of,
        min_samples=settings.CORRELATION_MIN_SAMPLES,
    )
    for pair, exc in batch.failures.items():
        logger.warning("Correlation skipped for pair %s: %s", pair, exc.message)
    return batch


def productivity_view(db: Session, owner_id: str, today: date) -> ProductivityScore:
    habits = load_habits(db, owner_id)
    logs = load_logs(db, owner_id, habit_ids=[h.id for h in habits], end=_elapsed(today))
    return productivity.score(
        habits,
        logs,
        as_of=_elapsed(today),
        window_days=settings.SCORE_WINDOW_DAYS,
        reference_streak=settings.SCORE_REFERENCE_STREAK,
        dead_band=settings.TREND_DEAD_BAND,
    )
