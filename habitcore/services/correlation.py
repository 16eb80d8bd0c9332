"""
Correlation engine — do two habits tend to get done on the same days?

Only dates inside the window on which BOTH habits were scheduled are sampled;
a date scheduled for just one of them gives no co-occurrence opportunity.
The coefficient is phi (Pearson over the two binary completion vectors):

    phi = (n11 * n00 - n10 * n01) / sqrt((n11+n10)(n01+n00)(n11+n01)(n10+n00))

When one vector is constant phi is undefined. In that case identical vectors
with at least one shared completion score 1.0, exact complements score -1.0,
anything else (including two habits never done) 0.0.

Interpretation buckets
----------------------
|c| >= 0.7 strong, |c| >= 0.4 moderate, otherwise weak; the sign gives
positive / negative. c == 0 reads "no correlation". Fewer jointly-scheduled
samples than min_samples yields an explicit "insufficient data" result.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, timedelta
from itertools import combinations
from typing import Any, Iterable, Optional, Sequence

from habitcore.core.errors import HabitCoreException, InsufficientDataError, RangeError
from habitcore.services.calendar import date_range, is_qualifying, is_scheduled, validate_habit
from habitcore.services.snapshot import HabitSnapshot, LogSnapshot, index_habit_logs


DEFAULT_WINDOW_DAYS = 30
DEFAULT_MIN_SAMPLES = 7

STRONG_THRESHOLD = 0.7
MODERATE_THRESHOLD = 0.4

INSUFFICIENT_DATA = "insufficient data"
NO_CORRELATION = "no correlation"


@dataclass(frozen=True)
class ContingencyTable:
    both: int = 0          # n11
    only_a: int = 0        # n10
    only_b: int = 0        # n01
    neither: int = 0       # n00

    @property
    def samples(self) -> int:
        return self.both + self.only_a + self.only_b + self.neither


@dataclass(frozen=True)
class CorrelationResult:
    habit_a: Any
    habit_b: Any
    coefficient: Optional[float]   # None when there is not enough data
    interpretation: str
    samples: int
    table: ContingencyTable

    @property
    def insufficient_data(self) -> bool:
        return self.coefficient is None


@dataclass
class CorrelationBatch:
    results: list[CorrelationResult] = field(default_factory=list)
    failures: dict[tuple[Any, Any], HabitCoreException] = field(default_factory=dict)
    total: int = 0


# ---------------------------------------------------------------------------
# Math
# ---------------------------------------------------------------------------

def phi_coefficient(table: ContingencyTable, min_samples: int = DEFAULT_MIN_SAMPLES) -> float:
    """Raises InsufficientDataError below min_samples."""
    if table.samples < max(min_samples, 1):
        raise InsufficientDataError(required=max(min_samples, 1), available=table.samples)

    a_done = table.both + table.only_a
    a_missed = table.only_b + table.neither
    b_done = table.both + table.only_b
    b_missed = table.only_a + table.neither
    denominator = math.sqrt(a_done * a_missed * b_done * b_missed)

    if denominator == 0:
        # never done by either habit is not agreement
        if table.only_a == 0 and table.only_b == 0 and table.both > 0:
            return 1.0
        if table.both == 0 and table.neither == 0:
            return -1.0
        return 0.0

    phi = (table.both * table.neither - table.only_a * table.only_b) / denominator
    return max(-1.0, min(1.0, phi))


def interpret(coefficient: float) -> str:
    if coefficient == 0:
        return NO_CORRELATION
    magnitude = abs(coefficient)
    if magnitude >= STRONG_THRESHOLD:
        strength = "strong"
    elif magnitude >= MODERATE_THRESHOLD:
        strength = "moderate"
    else:
        strength = "weak"
    direction = "positive" if coefficient > 0 else "negative"
    return f"{strength} {direction}"


# ---------------------------------------------------------------------------
# Public
# ---------------------------------------------------------------------------

def contingency(
    habit_a: HabitSnapshot,
    habit_b: HabitSnapshot,
    logs: Iterable[LogSnapshot],
    window_start: date,
    window_end: date,
) -> ContingencyTable:
    logs = list(logs)
    days_a = index_habit_logs(habit_a, logs)
    days_b = index_habit_logs(habit_b, logs)

    counts = {"both": 0, "only_a": 0, "only_b": 0, "neither": 0}
    for day in date_range(window_start, window_end):
        if not (is_scheduled(habit_a, day) and is_scheduled(habit_b, day)):
            continue
        a = is_qualifying(habit_a, days_a.get(day))
        b = is_qualifying(habit_b, days_b.get(day))
        if a and b:
            counts["both"] += 1
        elif a:
            counts["only_a"] += 1
        elif b:
            counts["only_b"] += 1
        else:
            counts["neither"] += 1
    return ContingencyTable(**counts)


def correlate(
    habit_a: HabitSnapshot,
    habit_b: HabitSnapshot,
    logs: Iterable[LogSnapshot],
    window_days: int,
    as_of: date,
    min_samples: int = DEFAULT_MIN_SAMPLES,
) -> CorrelationResult:
    """Phi coefficient over the window_days ending on as_of (inclusive)."""
    if window_days < 1:
        raise RangeError(None, as_of, reason="correlation window must be at least one day")
    validate_habit(habit_a)
    validate_habit(habit_b)

    window_start = as_of - timedelta(days=window_days - 1)
    table = contingency(habit_a, habit_b, logs, window_start, as_of)
    try:
        coefficient = round(phi_coefficient(table, min_samples), 4)
    except InsufficientDataError:
        return CorrelationResult(
            habit_a=habit_a.id,
            habit_b=habit_b.id,
            coefficient=None,
            interpretation=INSUFFICIENT_DATA,
            samples=table.samples,
            table=table,
        )
    return CorrelationResult(
        habit_a=habit_a.id,
        habit_b=habit_b.id,
        coefficient=coefficient,
        interpretation=interpret(coefficient),
        samples=table.samples,
        table=table,
    )


def correlate_all(
    habits: Sequence[HabitSnapshot],
    logs: Iterable[LogSnapshot],
    window_days: int,
    as_of: date,
    min_samples: int = DEFAULT_MIN_SAMPLES,
    min_magnitude: float = 0.0,
) -> CorrelationBatch:
    """
    Every unordered pair, strongest first; insufficient-data pairs go last.
    A pair that fails (bad cadence, bad log history) is recorded in
    `failures` and the remaining pairs still run.
    """
    logs = list(logs)
    batch = CorrelationBatch()
    for habit_a, habit_b in combinations(habits, 2):
        try:
            result = correlate(habit_a, habit_b, logs, window_days, as_of, min_samples)
        except HabitCoreException as exc:
            batch.failures[(habit_a.id, habit_b.id)] = exc
            continue
        if result.coefficient is not None and abs(result.coefficient) < min_magnitude:
            continue
        batch.results.append(result)

    batch.results.sort(
        key=lambda r: (r.coefficient is None, -abs(r.coefficient or 0.0))
    )
    batch.total = len(batch.results)
    return batch
