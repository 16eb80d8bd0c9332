"""
Analytics response schemas.

Dates are rendered as ISO strings; percentages are integers 0–100.
"""
from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field

from habitcore.schemas.common import PeriodSummaryOut, StreakOut


# ---------------------------------------------------------------------------
# Period views
# ---------------------------------------------------------------------------

class HabitDayStatusOut(BaseModel):
    habit_id: int
    completed: bool
    value: Optional[float] = None


class DayAggregateOut(BaseModel):
    day: str
    completed: int
    total: int
    percentage: int
    level: int = Field(description="Heatmap bucket 0–4.")
    habits: list[HabitDayStatusOut]


class WeekSummaryOut(BaseModel):
    week_start: str
    week_end: str
    completed: int
    total: int
    rate: int


class CalendarResponse(BaseModel):
    start: str
    end: str
    summary: PeriodSummaryOut
    days: list[DayAggregateOut]
    weeks: list[WeekSummaryOut]
    excluded_habits: list[int] = Field(default_factory=list)


class HeatmapDayOut(BaseModel):
    day: str
    count: int
    total: int
    level: int


class HeatmapResponse(BaseModel):
    year: int
    days: list[HeatmapDayOut]


class PeriodComparisonResponse(BaseModel):
    current: PeriodSummaryOut
    previous: PeriodSummaryOut
    change: int = Field(description="Percentage points, current minus previous.")
    trend: str = Field(description="`up`, `down` or `same`.")


class MonthlyTrendResponse(BaseModel):
    days: list[DayAggregateOut]
    average_rate: int = Field(description="Mean daily percentage over days with anything scheduled.")


class OverviewResponse(BaseModel):
    total_habits: int
    active_habits: int
    archived_habits: int
    today: PeriodSummaryOut
    this_week: list[DayAggregateOut]
    current_best_streak: int
    longest_ever_streak: int
    total_completions: int
    weekly_average: float = Field(description="Qualifying check-ins per day since Monday.")
    monthly_rate: int
    excluded_habits: list[int] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Streak views
# ---------------------------------------------------------------------------

class LeaderboardEntryOut(BaseModel):
    habit_id: int
    name: str
    current_streak: int
    longest_streak: int
    last_completed_on: Optional[str] = None


class LeaderboardResponse(BaseModel):
    total: int
    items: list[LeaderboardEntryOut]


class HabitStatsResponse(BaseModel):
    habit_id: int
    name: str
    streak: StreakOut
    window_start: str
    window_end: str
    completion: PeriodSummaryOut
    average_value: Optional[float] = None
    weekly: list[WeekSummaryOut]


class ForecastOut(BaseModel):
    habit_id: int
    current_streak: int
    next_milestone: int
    days_to_milestone: int
    recent_rate: float
    risk_level: str
    risk_reason: Optional[str] = None


class PredictionsResponse(BaseModel):
    items: list[ForecastOut]


# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

class WeekdayOut(BaseModel):
    weekday: int
    name: str
    completed: int
    total: int
    rate: int


class HabitConsistencyOut(BaseModel):
    habit_id: int
    name: str
    rate: int


class DayOfWeekResponse(BaseModel):
    window_start: str
    window_end: str
    weekdays: list[WeekdayOut]
    best_day: Optional[WeekdayOut] = None
    worst_day: Optional[WeekdayOut] = None
    most_consistent: Optional[HabitConsistencyOut] = None
    least_consistent: Optional[HabitConsistencyOut] = None


class ContingencyOut(BaseModel):
    both: int
    only_a: int
    only_b: int
    neither: int


class CorrelationOut(BaseModel):
    habit_a: int
    habit_b: int
    coefficient: Optional[float] = Field(
        default=None,
        description="Phi coefficient in [-1, 1]; null when data is insufficient.",
    )
    interpretation: str
    samples: int
    table: ContingencyOut


class CorrelationResponse(BaseModel):
    total: int
    items: list[CorrelationOut]
    failures: dict[str, Any] = Field(
        default_factory=dict,
        description="Pairs that could not be scored, keyed `a-b`.",
    )


class ScoreBreakdownOut(BaseModel):
    consistency: int
    streaks: int
    completion: int


class ProductivityResponse(BaseModel):
    score: int
    grade: str
    trend: str
    previous_score: Optional[int] = None
    breakdown: ScoreBreakdownOut
    window_start: str
    window_end: str
    excluded_habits: list[int] = Field(default_factory=list)
