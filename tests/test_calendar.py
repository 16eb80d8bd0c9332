"""
Tests for the calendar normalizer: scheduling, qualifying logs, ranges,
and per-habit isolation in batches.
"""
from __future__ import annotations

from datetime import date

import pytest

from habitcore.core.errors import ConfigurationError, DataIntegrityError, RangeError
from habitcore.models.habit import Cadence, ValueKind
from habitcore.services.calendar import (
    date_range,
    is_qualifying,
    is_scheduled,
    partition_valid,
    scheduled_dates,
    validate_habit,
)
from habitcore.services.snapshot import HabitSnapshot, LogSnapshot, index_habit_logs

MON = date(2026, 3, 2)
TUE = date(2026, 3, 3)
WED = date(2026, 3, 4)
SUN = date(2026, 3, 8)


def _daily(habit_id=1, created_on=MON, **kw) -> HabitSnapshot:
    return HabitSnapshot(id=habit_id, cadence=Cadence.daily, created_on=created_on, **kw)


def _weekly(days, habit_id=2, created_on=MON) -> HabitSnapshot:
    return HabitSnapshot(
        id=habit_id, cadence=Cadence.weekly, created_on=created_on, days_of_week=frozenset(days)
    )


class TestIsScheduled:
    def test_daily_every_day_from_creation(self):
        habit = _daily()
        assert all(is_scheduled(habit, d) for d in date_range(MON, SUN))

    def test_nothing_scheduled_before_creation(self):
        habit = _daily(created_on=WED)
        assert is_scheduled(habit, TUE) is False
        assert is_scheduled(habit, WED) is True

    def test_weekly_matches_iso_weekday(self):
        habit = _weekly({1, 3, 5})
        assert is_scheduled(habit, MON) is True
        assert is_scheduled(habit, TUE) is False
        assert is_scheduled(habit, WED) is True
        assert is_scheduled(habit, SUN) is False

    def test_sunday_is_seven(self):
        assert is_scheduled(_weekly({7}), SUN) is True

    def test_scheduled_dates_weekly(self):
        assert scheduled_dates(_weekly({1, 3, 5}), MON, SUN) == [
            MON, WED, date(2026, 3, 6),
        ]


class TestValidation:
    def test_weekly_without_days_is_configuration_error(self):
        with pytest.raises(ConfigurationError) as exc:
            is_scheduled(_weekly(set()), MON)
        assert exc.value.habit_id == 2

    def test_weekly_day_out_of_range(self):
        with pytest.raises(ConfigurationError):
            validate_habit(_weekly({0, 3}))

    def test_counter_requires_positive_target(self):
        habit = _daily(value_kind=ValueKind.counter, target_value=0)
        with pytest.raises(ConfigurationError):
            validate_habit(habit)

    def test_duration_with_target_is_valid(self):
        validate_habit(_daily(value_kind=ValueKind.duration, target_value=20, unit="minutes"))


class TestIsQualifying:
    def test_boolean_needs_completed_flag(self):
        habit = _daily()
        assert is_qualifying(habit, LogSnapshot(1, MON, completed=True)) is True
        assert is_qualifying(habit, LogSnapshot(1, MON, completed=False)) is False
        assert is_qualifying(habit, None) is False

    def test_counter_needs_value_at_target(self):
        habit = _daily(value_kind=ValueKind.counter, target_value=8)
        assert is_qualifying(habit, LogSnapshot(1, MON, value=8)) is True
        assert is_qualifying(habit, LogSnapshot(1, MON, value=7.5)) is False
        assert is_qualifying(habit, LogSnapshot(1, MON, value=None)) is False

    def test_counter_completed_false_never_qualifies(self):
        habit = _daily(value_kind=ValueKind.counter, target_value=1)
        assert is_qualifying(habit, LogSnapshot(1, MON, completed=False, value=10)) is False


class TestDateRange:
    def test_inclusive_both_ends(self):
        assert list(date_range(MON, WED)) == [MON, TUE, WED]

    def test_single_day(self):
        assert list(date_range(MON, MON)) == [MON]

    def test_inverted_range_rejected(self):
        with pytest.raises(RangeError) as exc:
            list(date_range(WED, MON))
        assert exc.value.code == "INVALID_RANGE"


class TestLogIndex:
    def test_duplicate_log_is_integrity_error(self):
        habit = _daily()
        with pytest.raises(DataIntegrityError):
            index_habit_logs(habit, [LogSnapshot(1, MON), LogSnapshot(1, MON)])

    def test_log_before_creation_is_integrity_error(self):
        habit = _daily(created_on=WED)
        with pytest.raises(DataIntegrityError):
            index_habit_logs(habit, [LogSnapshot(1, MON)])

    def test_other_habits_logs_ignored(self):
        habit = _daily()
        index = index_habit_logs(habit, [LogSnapshot(1, MON), LogSnapshot(9, MON), LogSnapshot(9, MON)])
        assert list(index) == [MON]


class TestPartitionValid:
    def test_bad_habit_is_isolated(self):
        good = _daily(habit_id=1)
        bad = _weekly(set(), habit_id=2)
        broken_logs = _daily(habit_id=3, created_on=WED)
        valid, failures = partition_valid(
            [good, bad, broken_logs], [LogSnapshot(3, MON)]
        )
        assert [h.id for h in valid] == [1]
        assert isinstance(failures[2], ConfigurationError)
        assert isinstance(failures[3], DataIntegrityError)
