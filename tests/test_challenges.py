"""
Tests for challenge progress sync and status transitions.
"""
from __future__ import annotations

from dataclasses import replace
from datetime import date, timedelta

import pytest

from habitcore.core.errors import InvalidStatusTransitionError, RangeError
from habitcore.models.challenge import ChallengeStatus
from habitcore.models.habit import Cadence
from habitcore.services.challenges import (
    abandon,
    resolve_status,
    rollup,
    sync,
    sync_day,
)
from habitcore.services.snapshot import ChallengeSnapshot, HabitSnapshot, LogSnapshot

START = date(2026, 3, 2)


def _d(offset: int) -> date:
    return START + timedelta(days=offset)


A = HabitSnapshot(id="A", cadence=Cadence.daily, created_on=START)
B = HabitSnapshot(id="B", cadence=Cadence.daily, created_on=START)
OTHER = HabitSnapshot(id="C", cadence=Cadence.daily, created_on=START)


def _challenge(duration=3, habit_ids=("A", "B"), **kw) -> ChallengeSnapshot:
    return ChallengeSnapshot(
        id=1, habit_ids=frozenset(habit_ids), start_date=START, duration_days=duration, **kw
    )


def _three_day_logs() -> list[LogSnapshot]:
    # day1 both, day2 only A, day3 both
    return [
        LogSnapshot("A", _d(0)), LogSnapshot("B", _d(0)),
        LogSnapshot("A", _d(1)),
        LogSnapshot("A", _d(2)), LogSnapshot("B", _d(2)),
    ]


class TestSync:
    def test_three_day_window_rollups(self):
        progress = sync(_challenge(), [A, B], _three_day_logs(), today=_d(2))
        assert progress.perfect_days == 2
        assert progress.days_completed == 3
        assert progress.current_streak == 1
        assert progress.overall_completion == 83
        assert progress.status == ChallengeStatus.active

    def test_only_challenge_habits_count(self):
        logs = _three_day_logs() + [LogSnapshot("C", _d(1))]
        progress = sync(_challenge(), [A, B, OTHER], logs, today=_d(2))
        assert [d.total_habits for d in progress.days] == [2, 2, 2]
        assert progress.days[1].is_perfect_day is False

    def test_window_clipped_at_today(self):
        progress = sync(_challenge(duration=30), [A, B], _three_day_logs(), today=_d(1))
        assert [d.day for d in progress.days] == [_d(0), _d(1)]

    def test_not_started_is_empty(self):
        progress = sync(_challenge(), [A, B], [], today=_d(-1))
        assert progress.days == ()
        assert progress.overall_completion == 0
        assert progress.current_streak == 0

    def test_sync_twice_is_identical(self):
        first = sync(_challenge(), [A, B], _three_day_logs(), today=_d(2))
        second = sync(_challenge(), [A, B], _three_day_logs(), today=_d(2))
        assert first == second

    def test_no_scheduled_habit_is_not_perfect(self):
        weekly = HabitSnapshot(
            id="W", cadence=Cadence.weekly, created_on=START, days_of_week=frozenset({1})
        )
        progress = sync(_challenge(habit_ids=("W",)), [weekly], [LogSnapshot("W", _d(0))], today=_d(1))
        assert [d.is_perfect_day for d in progress.days] == [True, False]
        assert progress.current_streak == 0

    def test_zero_duration_rejected(self):
        with pytest.raises(RangeError):
            sync(_challenge(duration=0), [A, B], [], today=_d(0))

    def test_empty_habit_set_rejected(self):
        with pytest.raises(RangeError):
            sync(_challenge(habit_ids=()), [A, B], [], today=_d(0))


class TestSyncDay:
    def test_single_day_recompute_rolls_up_whole_table(self):
        challenge = _challenge()
        stored = {d.day: d for d in sync(challenge, [A, B], _three_day_logs(), today=_d(2)).days}

        logs = _three_day_logs() + [LogSnapshot("B", _d(1))]
        table, progress = sync_day(challenge, stored, [A, B], logs, _d(1), today=_d(2))

        assert table[_d(1)].is_perfect_day is True
        assert progress.perfect_days == 3
        assert progress.current_streak == 3
        assert progress.overall_completion == 100
        assert progress == sync(challenge, [A, B], logs, today=_d(2))

    def test_day_outside_window_rejected(self):
        with pytest.raises(RangeError):
            sync_day(_challenge(), {}, [A, B], [], _d(5), today=_d(10))

    def test_future_day_rejected(self):
        with pytest.raises(RangeError):
            sync_day(_challenge(), {}, [A, B], [], _d(2), today=_d(1))


class TestStatus:
    def test_completes_after_window(self):
        assert resolve_status(_challenge(), _d(2)) == ChallengeStatus.active
        assert resolve_status(_challenge(), _d(3)) == ChallengeStatus.completed

    def test_terminal_states_stay(self):
        abandoned = _challenge(status=ChallengeStatus.abandoned)
        assert resolve_status(abandoned, _d(10)) == ChallengeStatus.abandoned

    def test_sync_after_window_reports_completed(self):
        progress = sync(_challenge(), [A, B], _three_day_logs(), today=_d(5))
        assert progress.status == ChallengeStatus.completed
        assert len(progress.days) == 3

    def test_abandon_active(self):
        assert abandon(_challenge()).status == ChallengeStatus.abandoned

    @pytest.mark.parametrize("status", [ChallengeStatus.completed, ChallengeStatus.abandoned])
    def test_abandon_terminal_rejected(self, status):
        with pytest.raises(InvalidStatusTransitionError):
            abandon(replace(_challenge(), status=status))

    def test_rollup_of_empty_table(self):
        progress = rollup(_challenge(), {}, ChallengeStatus.active)
        assert (progress.days_completed, progress.perfect_days, progress.overall_completion) == (0, 0, 0)
