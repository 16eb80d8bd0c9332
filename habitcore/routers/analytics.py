"""
Analytics router — read-only views over an owner's active habits.

GET /analytics/calendar          — day-by-day breakdown for a range or a month
GET /analytics/heatmap           — yearly 0–4 heatmap, clipped to today
GET /analytics/streaks           — streak leaderboard
GET /analytics/habits/{id}       — per-habit stats
GET /analytics/week-comparison   — this week vs last week
GET /analytics/monthly-trend     — last 30 days with the mean daily rate
GET /analytics/overview          — dashboard counters
GET /analytics/day-of-week       — weekday performance, most/least consistent habit
GET /analytics/correlations      — pairwise phi coefficients
GET /analytics/productivity      — 0–100 score, grade, trend
GET /analytics/predictions       — streak risk forecast
"""
from __future__ import annotations

import calendar as cal
from datetime import date, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from habitcore.core.errors import RangeError
from habitcore.db.base import get_db
from habitcore.routers.deps import current_owner, resolve_today
from habitcore.routers.tracking import streak_to_response
from habitcore.schemas.analytics import (
    CalendarResponse,
    ContingencyOut,
    CorrelationOut,
    CorrelationResponse,
    DayAggregateOut,
    DayOfWeekResponse,
    ForecastOut,
    HabitConsistencyOut,
    HabitDayStatusOut,
    HabitStatsResponse,
    HeatmapDayOut,
    HeatmapResponse,
    LeaderboardEntryOut,
    LeaderboardResponse,
    MonthlyTrendResponse,
    OverviewResponse,
    PeriodComparisonResponse,
    PredictionsResponse,
    ProductivityResponse,
    ScoreBreakdownOut,
    WeekdayOut,
    WeekSummaryOut,
)
from habitcore.schemas.common import PeriodSummaryOut
from habitcore.services import analytics_service as svc
from habitcore.services.aggregator import DayAggregate, PeriodSummary, WeekdayPerformance, WeekSummary

router = APIRouter(prefix="/analytics", tags=["analytics"])


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def _summary(s: PeriodSummary) -> PeriodSummaryOut:
    return PeriodSummaryOut(completed=s.completed, total=s.total, rate=s.rate)


def _week(w: WeekSummary) -> WeekSummaryOut:
    return WeekSummaryOut(
        week_start=str(w.week_start),
        week_end=str(w.week_end),
        completed=w.completed,
        total=w.total,
        rate=w.rate,
    )


def _day(d: DayAggregate) -> DayAggregateOut:
    return DayAggregateOut(
        day=str(d.day),
        completed=d.completed,
        total=d.total,
        percentage=d.percentage,
        level=d.level,
        habits=[
            HabitDayStatusOut(habit_id=s.habit_id, completed=s.completed, value=s.value)
            for s in d.habits
        ],
    )


def _weekday(w: Optional[WeekdayPerformance]) -> Optional[WeekdayOut]:
    if w is None:
        return None
    return WeekdayOut(weekday=w.weekday, name=w.name, completed=w.completed, total=w.total, rate=w.rate)


def _consistency(c: Optional[svc.HabitConsistency]) -> Optional[HabitConsistencyOut]:
    if c is None:
        return None
    return HabitConsistencyOut(habit_id=c.habit_id, name=c.name, rate=c.rate)


def _month_bounds(year: int, month: int) -> tuple[date, date]:
    last = cal.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last)


# ---------------------------------------------------------------------------
# Period views
# ---------------------------------------------------------------------------

@router.get(
    "/calendar",
    response_model=CalendarResponse,
    summary="Completion calendar",
    responses={422: {"description": "Inverted range (INVALID_RANGE)"}},
)
def get_calendar(
    start: Optional[date] = Query(default=None, description="Range start (inclusive)."),
    end: Optional[date] = Query(default=None, description="Range end (inclusive)."),
    year: Optional[int] = Query(default=None, ge=1970, le=9999),
    month: Optional[int] = Query(default=None, ge=1, le=12),
    owner_id: str = Depends(current_owner),
    today: date = Depends(resolve_today),
    db: Session = Depends(get_db),
):
    """
    Pass either `start`/`end`, or `year`/`month` for a month view.
    With neither, the current Monday-start week up to today is returned.
    """
    if year is not None and month is not None:
        start, end = _month_bounds(year, month)
    elif start is None and end is None:
        start, end = today - timedelta(days=today.isoweekday() - 1), today
    elif start is None or end is None:
        raise RangeError(start, end, reason="both start and end are required")

    view = svc.calendar_view(db, owner_id, start, end)
    return CalendarResponse(
        start=str(view.start),
        end=str(view.end),
        summary=_summary(view.summary),
        days=[_day(d) for d in view.days],
        weeks=[_week(w) for w in view.weeks],
        excluded_habits=view.excluded_habits,
    )


@router.get("/heatmap", response_model=HeatmapResponse, summary="Yearly heatmap")
def get_heatmap(
    year: Optional[int] = Query(default=None, ge=1970, le=9999, description="Defaults to the current year."),
    owner_id: str = Depends(current_owner),
    today: date = Depends(resolve_today),
    db: Session = Depends(get_db),
):
    year = year or today.year
    days = svc.heatmap_view(db, owner_id, year, today)
    return HeatmapResponse(
        year=year,
        days=[HeatmapDayOut(day=str(d.day), count=d.count, total=d.total, level=d.level) for d in days],
    )


@router.get("/week-comparison", response_model=PeriodComparisonResponse, summary="This week vs last week")
def get_week_comparison(
    owner_id: str = Depends(current_owner),
    today: date = Depends(resolve_today),
    db: Session = Depends(get_db),
):
    c = svc.week_comparison_view(db, owner_id, today)
    return PeriodComparisonResponse(
        current=_summary(c.current),
        previous=_summary(c.previous),
        change=c.change,
        trend=c.trend,
    )


@router.get("/monthly-trend", response_model=MonthlyTrendResponse, summary="Last 30 days")
def get_monthly_trend(
    owner_id: str = Depends(current_owner),
    today: date = Depends(resolve_today),
    db: Session = Depends(get_db),
):
    t = svc.monthly_trend_view(db, owner_id, today)
    return MonthlyTrendResponse(days=[_day(d) for d in t.days], average_rate=t.average_rate)


@router.get("/overview", response_model=OverviewResponse, summary="Dashboard overview")
def get_overview(
    owner_id: str = Depends(current_owner),
    today: date = Depends(resolve_today),
    db: Session = Depends(get_db),
):
    o = svc.overview_view(db, owner_id, today)
    return OverviewResponse(
        total_habits=o.total_habits,
        active_habits=o.active_habits,
        archived_habits=o.archived_habits,
        today=_summary(o.today),
        this_week=[_day(d) for d in o.this_week],
        current_best_streak=o.current_best_streak,
        longest_ever_streak=o.longest_ever_streak,
        total_completions=o.total_completions,
        weekly_average=o.weekly_average,
        monthly_rate=o.monthly_rate,
        excluded_habits=o.excluded_habits,
    )


# ---------------------------------------------------------------------------
# Streak views
# ---------------------------------------------------------------------------

@router.get("/streaks", response_model=LeaderboardResponse, summary="Streak leaderboard")
def get_streaks(
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    owner_id: str = Depends(current_owner),
    today: date = Depends(resolve_today),
    db: Session = Depends(get_db),
):
    total, entries = svc.streak_leaderboard(db, owner_id, today, limit=limit, offset=offset)
    return LeaderboardResponse(
        total=total,
        items=[
            LeaderboardEntryOut(
                habit_id=e.habit_id,
                name=e.name,
                current_streak=e.current_streak,
                longest_streak=e.longest_streak,
                last_completed_on=str(e.last_completed_on) if e.last_completed_on else None,
            )
            for e in entries
        ],
    )


@router.get("/habits/{habit_id}", response_model=HabitStatsResponse, summary="Per-habit stats")
def get_habit_stats(
    habit_id: int,
    window_days: int = Query(default=svc.DEFAULT_STATS_WINDOW_DAYS, ge=1, le=366),
    owner_id: str = Depends(current_owner),
    today: date = Depends(resolve_today),
    db: Session = Depends(get_db),
):
    stats = svc.habit_stats(db, owner_id, habit_id, today, window_days)
    return HabitStatsResponse(
        habit_id=stats.habit_id,
        name=stats.name,
        streak=streak_to_response(stats.habit_id, stats.streak),
        window_start=str(stats.window_start),
        window_end=str(stats.window_end),
        completion=_summary(stats.completion),
        average_value=stats.average_value,
        weekly=[_week(w) for w in stats.weekly],
    )


@router.get("/predictions", response_model=PredictionsResponse, summary="Streak risk forecast")
def get_predictions(
    owner_id: str = Depends(current_owner),
    today: date = Depends(resolve_today),
    db: Session = Depends(get_db),
):
    return PredictionsResponse(items=[
        ForecastOut(
            habit_id=f.habit_id,
            current_streak=f.current_streak,
            next_milestone=f.next_milestone,
            days_to_milestone=f.days_to_milestone,
            recent_rate=f.recent_rate,
            risk_level=f.risk_level,
            risk_reason=f.risk_reason,
        )
        for f in svc.predictions_view(db, owner_id, today)
    ])


# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

@router.get("/day-of-week", response_model=DayOfWeekResponse, summary="Weekday performance")
def get_day_of_week(
    window_days: int = Query(default=svc.DEFAULT_WEEKDAY_WINDOW_DAYS, ge=7, le=366),
    owner_id: str = Depends(current_owner),
    today: date = Depends(resolve_today),
    db: Session = Depends(get_db),
):
    r = svc.day_of_week_view(db, owner_id, today, window_days)
    return DayOfWeekResponse(
        window_start=str(r.window_start),
        window_end=str(r.window_end),
        weekdays=[_weekday(w) for w in r.weekdays],
        best_day=_weekday(r.best_day),
        worst_day=_weekday(r.worst_day),
        most_consistent=_consistency(r.most_consistent),
        least_consistent=_consistency(r.least_consistent),
    )


@router.get("/correlations", response_model=CorrelationResponse, summary="Habit correlations")
def get_correlations(
    owner_id: str = Depends(current_owner),
    today: date = Depends(resolve_today),
    db: Session = Depends(get_db),
):
    """
    Phi coefficient for every pair among the most-logged active habits,
    over the last CORRELATION_WINDOW_DAYS elapsed days. Pairs with too few
    jointly scheduled days read "insufficient data" with a null coefficient.
    """
    batch = svc.correlation_view(db, owner_id, today)
    return CorrelationResponse(
        total=batch.total,
        items=[
            CorrelationOut(
                habit_a=r.habit_a,
                habit_b=r.habit_b,
                coefficient=r.coefficient,
                interpretation=r.interpretation,
                samples=r.samples,
                table=ContingencyOut(
                    both=r.table.both,
                    only_a=r.table.only_a,
                    only_b=r.table.only_b,
                    neither=r.table.neither,
                ),
            )
            for r in batch.results
        ],
        failures={f"{a}-{b}": exc.to_dict() for (a, b), exc in batch.failures.items()},
    )


@router.get("/productivity", response_model=ProductivityResponse, summary="Productivity score")
def get_productivity(
    owner_id: str = Depends(current_owner),
    today: date = Depends(resolve_today),
    db: Session = Depends(get_db),
):
    """Scored over the SCORE_WINDOW_DAYS ending yesterday; today is still open."""
    s = svc.productivity_view(db, owner_id, today)
    return ProductivityResponse(
        score=s.score,
        grade=s.grade,
        trend=s.trend,
        previous_score=s.previous_score,
        breakdown=ScoreBreakdownOut(
            consistency=s.breakdown.consistency,
            streaks=s.breakdown.streaks,
            completion=s.breakdown.completion,
        ),
        window_start=str(s.window_start),
        window_end=str(s.window_end),
        excluded_habits=list(s.excluded_habits),
    )
