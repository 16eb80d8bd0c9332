"""
Calendar / date normalizer.

Decides, per habit, which calendar dates require an attempt. Dates are
already in the owner's local day; nothing here converts timezones or reads
a clock.

Public API
----------
validate_habit(habit)                 -> None  (raises ConfigurationError)
is_scheduled(habit, day)              -> bool
is_qualifying(habit, log)             -> bool
date_range(start, end)                -> Iterator[date]
scheduled_dates(habit, start, end)    -> list[date]
partition_valid(habits, logs)         -> (valid habits, {habit_id: error})
"""
from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any, Iterable, Iterator, Optional

from habitcore.core.errors import ConfigurationError, HabitCoreException, RangeError
from habitcore.models.habit import Cadence, ValueKind
from habitcore.services.snapshot import HabitSnapshot, LogSnapshot, index_habit_logs

logger = logging.getLogger(__name__)

ISO_WEEKDAYS = frozenset(range(1, 8))


def validate_habit(habit: HabitSnapshot) -> None:
    """Reject definitions the engine cannot schedule or score unambiguously."""
    if habit.cadence == Cadence.weekly:
        if not habit.days_of_week:
            raise ConfigurationError(habit.id, "weekly cadence requires at least one day of week")
        invalid = set(habit.days_of_week) - ISO_WEEKDAYS
        if invalid:
            raise ConfigurationError(
                habit.id, f"days_of_week must be ISO weekdays 1-7, got {sorted(invalid)}"
            )
    elif habit.cadence != Cadence.daily:
        raise ConfigurationError(habit.id, f"unknown cadence {habit.cadence!r}")

    if habit.value_kind in (ValueKind.counter, ValueKind.duration):
        if habit.target_value is None or habit.target_value <= 0:
            kind = ValueKind(habit.value_kind).value
            raise ConfigurationError(habit.id, f"{kind} habits need a positive target value")


def is_scheduled(habit: HabitSnapshot, day: date) -> bool:
    validate_habit(habit)
    if day < habit.created_on:
        return False
    if habit.cadence == Cadence.daily:
        return True
    return day.isoweekday() in habit.days_of_week


def is_qualifying(habit: HabitSnapshot, log: Optional[LogSnapshot]) -> bool:
    """Completed, and for counter/duration habits at or above the target."""
    if log is None or not log.completed:
        return False
    if habit.value_kind == ValueKind.boolean:
        return True
    return log.value is not None and log.value >= habit.target_value


def date_range(start: date, end: date) -> Iterator[date]:
    """Every calendar date in [start, end], oldest first."""
    if start > end:
        raise RangeError(start, end)
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)


def scheduled_dates(habit: HabitSnapshot, start: date, end: date) -> list[date]:
    return [d for d in date_range(start, end) if is_scheduled(habit, d)]


def partition_valid(
    habits: Iterable[HabitSnapshot],
    logs: Iterable[LogSnapshot] = (),
) -> tuple[list[HabitSnapshot], dict[Any, HabitCoreException]]:
    """
    Split habits into those the engine can process and those it cannot.
    Used by batch operations so one bad habit never aborts the rest.
    """
    logs = list(logs)
    valid: list[HabitSnapshot] = []
    failures: dict[Any, HabitCoreException] = {}
    for habit in habits:
        try:
            validate_habit(habit)
            index_habit_logs(habit, logs)
        except HabitCoreException as exc:
            logger.warning("Excluding habit %s from batch: %s", habit.id, exc.message)
            failures[habit.id] = exc
            continue
        valid.append(habit)
    return valid, failures
