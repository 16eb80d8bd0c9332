"""
Tests for the tracking service: check-in write path, streak cache,
milestone emission and the audit / rebuild path.
"""
from __future__ import annotations

from datetime import date, timedelta

import pytest

from habitcore.core.errors import DataIntegrityError, NotFoundError, RangeError
from habitcore.models.habit import Cadence, ValueKind
from habitcore.models.habit_log import HabitLog
from habitcore.services.habit_service import HabitDefinition, archive_habit, create_habit
from habitcore.services.repository import get_habit
from habitcore.services.streaks import MilestoneKind
from habitcore.services.tracking import (
    audit_streak_cache,
    check_in,
    current_streak,
    list_milestones,
    rebuild_streak_cache,
    undo_check_in,
)

TODAY = date(2026, 3, 2)


def _ago(days: int) -> date:
    return TODAY - timedelta(days=days)


def _habit(db, owner, created_ago=10, **kw):
    return create_habit(
        db, owner, HabitDefinition(name="Read", created_on=_ago(created_ago), **kw), TODAY
    )


class TestCheckIn:
    def test_first_check_in_today(self, db, owner):
        habit = _habit(db, owner)
        result = check_in(db, owner, habit.id, TODAY, TODAY)
        assert result.log.id is not None
        assert result.previous.current == 0
        assert result.streak.current == 1
        assert result.streak.total_completions == 1

    def test_cache_written_with_log(self, db, owner):
        habit = _habit(db, owner)
        check_in(db, owner, habit.id, _ago(1), TODAY)
        check_in(db, owner, habit.id, _ago(2), TODAY)
        refreshed = get_habit(db, owner, habit.id)
        assert refreshed.current_streak == 2
        assert refreshed.longest_streak == 2
        assert refreshed.last_completed_on == _ago(1)
        assert refreshed.total_completions == 2

    def test_unlogged_today_keeps_streak(self, db, owner):
        habit = _habit(db, owner)
        for days in (3, 2, 1):
            check_in(db, owner, habit.id, _ago(days), TODAY)
        assert current_streak(db, owner, habit.id, TODAY).current == 3

    def test_repost_same_day_upserts(self, db, owner):
        habit = _habit(db, owner)
        first = check_in(db, owner, habit.id, TODAY, TODAY, notes="first")
        second = check_in(db, owner, habit.id, TODAY, TODAY, completed=False, notes="second")
        assert first.log.id == second.log.id
        assert second.streak.current == 0
        count = db.query(HabitLog).filter(HabitLog.habit_id == habit.id).count()
        assert count == 1

    def test_counter_below_target_does_not_extend(self, db, owner):
        habit = _habit(db, owner, value_kind=ValueKind.counter, target_value=8, unit="glasses")
        assert check_in(db, owner, habit.id, TODAY, TODAY, value=5).streak.current == 0
        assert check_in(db, owner, habit.id, TODAY, TODAY, value=8).streak.current == 1

    def test_future_day_rejected(self, db, owner):
        habit = _habit(db, owner)
        with pytest.raises(RangeError):
            check_in(db, owner, habit.id, TODAY + timedelta(days=1), TODAY)

    def test_day_before_creation_rejected(self, db, owner):
        habit = _habit(db, owner, created_ago=2)
        with pytest.raises(DataIntegrityError):
            check_in(db, owner, habit.id, _ago(3), TODAY)

    def test_unknown_habit(self, db, owner):
        with pytest.raises(NotFoundError):
            check_in(db, owner, 10_000_000, TODAY, TODAY)

    def test_weekly_habit_skips_unscheduled(self, db, owner):
        # TODAY is a Monday; Mon/Wed/Fri habit
        habit = _habit(db, owner, created_ago=14, cadence=Cadence.weekly, days_of_week=[1, 3, 5])
        for days in (12, 10, 7, 5):   # Wed, Fri, Mon, Wed
            check_in(db, owner, habit.id, _ago(days), TODAY)
        result = check_in(db, owner, habit.id, _ago(3), TODAY)  # Fri
        # T-14 (Mon) was never logged, so the run stops there
        assert result.streak.current == 5
        assert result.streak.longest == 5


class TestMilestones:
    def _seed_six(self, db, owner):
        """Logged T-9, T-8 and T-6..T-1; T-7 missing, so current == 6."""
        habit = _habit(db, owner, created_ago=9)
        for days in (9, 8, 6, 5, 4, 3, 2, 1):
            check_in(db, owner, habit.id, _ago(days), TODAY)
        return habit

    def test_backfill_six_to_nine_emits_only_seven(self, db, owner):
        habit = self._seed_six(db, owner)
        assert current_streak(db, owner, habit.id, TODAY).current == 6

        result = check_in(db, owner, habit.id, _ago(7), TODAY)
        assert result.previous.current == 6
        assert result.streak.current == 9
        assert [(e.kind, e.threshold) for e in result.milestones_created] == [
            (MilestoneKind.STREAK, 7),
        ]
        assert result.milestones_created[0].achieved_on == TODAY

    def test_reaching_threshold_twice_is_idempotent(self, db, owner):
        habit = self._seed_six(db, owner)
        check_in(db, owner, habit.id, _ago(7), TODAY)
        undo_check_in(db, owner, habit.id, _ago(7), TODAY)

        again = check_in(db, owner, habit.id, _ago(7), TODAY)
        assert again.milestones_created == []
        assert [e.threshold for e in again.milestones_skipped] == [7]

        total, items = list_milestones(db, owner, habit_id=habit.id)
        assert total == 1
        assert items[0].kind == MilestoneKind.STREAK

    def test_completion_milestone(self, db, owner):
        habit = _habit(db, owner, created_ago=12)
        created = []
        for days in range(12, 2, -1):   # ten old logs, no current run
            created.extend(check_in(db, owner, habit.id, _ago(days), TODAY).milestones_created)
        assert [(e.kind, e.threshold) for e in created] == [(MilestoneKind.COMPLETIONS, 10)]


class TestUndo:
    def test_undo_recomputes_cache(self, db, owner):
        habit = _habit(db, owner)
        check_in(db, owner, habit.id, _ago(2), TODAY)
        check_in(db, owner, habit.id, _ago(1), TODAY)
        streak = undo_check_in(db, owner, habit.id, _ago(1), TODAY)
        assert streak.current == 0
        assert streak.longest == 1
        assert get_habit(db, owner, habit.id).current_streak == 0

    def test_undo_missing_log(self, db, owner):
        habit = _habit(db, owner)
        with pytest.raises(NotFoundError):
            undo_check_in(db, owner, habit.id, _ago(1), TODAY)


class TestAudit:
    def test_no_drift_after_writes(self, db, owner):
        habit = _habit(db, owner)
        check_in(db, owner, habit.id, _ago(1), TODAY)
        audit = audit_streak_cache(db, owner, habit.id, TODAY)
        assert audit.drift is False

    def test_drift_detected_and_rebuilt(self, db, owner):
        habit = _habit(db, owner)
        check_in(db, owner, habit.id, _ago(1), TODAY)

        row = get_habit(db, owner, habit.id)
        row.current_streak = 42
        db.commit()

        audit = audit_streak_cache(db, owner, habit.id, TODAY)
        assert audit.drift is True
        assert audit.cached.current == 42
        assert audit.recomputed.current == 1

        rebuilt = rebuild_streak_cache(db, owner, habit.id, TODAY)
        assert rebuilt.current == 1
        assert audit_streak_cache(db, owner, habit.id, TODAY).drift is False

    def test_cache_goes_stale_as_days_pass(self, db, owner):
        habit = _habit(db, owner)
        check_in(db, owner, habit.id, _ago(1), TODAY)
        later = TODAY + timedelta(days=3)
        assert audit_streak_cache(db, owner, habit.id, later).drift is True


class TestArchive:
    def test_archive_is_idempotent(self, db, owner):
        habit = _habit(db, owner)
        assert archive_habit(db, owner, habit.id).is_archived is True
        assert archive_habit(db, owner, habit.id).is_archived is True
