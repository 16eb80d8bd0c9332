"""
Challenge service: persistence around the pure progress sync.

create_challenge(db, owner_id, ...)                        -> Challenge
sync_progress(db, owner_id, challenge_id, today)           -> ChallengeProgress
resync_day_for_habit(db, owner_id, habit_id, day, today)   -> list[ChallengeProgress]
abandon_challenge(db, owner_id, challenge_id, today)       -> Challenge

The stored challenge_days table is upserted row by row (one row per
challenge/day) and every rollup is recomputed from the whole table.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Iterable

from sqlalchemy.orm import Session

from habitcore.core.errors import NotFoundError, RangeError
from habitcore.models.challenge import Challenge, ChallengeDay, ChallengeHabit, ChallengeStatus
from habitcore.services import challenges as engine
from habitcore.services.challenges import ChallengeDayProgress, ChallengeProgress
from habitcore.services.repository import (
    challenge_habit_ids,
    challenge_to_snapshot,
    get_challenge,
    list_habits,
    load_challenge_table,
    load_habits,
    load_logs,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _upsert_day(db: Session, challenge_id: int, row: ChallengeDayProgress) -> None:
    existing = (
        db.query(ChallengeDay)
        .filter(ChallengeDay.challenge_id == challenge_id, ChallengeDay.day == row.day)
        .first()
    )
    if existing is None:
        existing = ChallengeDay(challenge_id=challenge_id, day=row.day)
        db.add(existing)
    existing.completed_count = row.completed_count
    existing.total_habits = row.total_habits
    existing.is_perfect_day = row.is_perfect_day


def _apply_status(challenge: Challenge, status: ChallengeStatus) -> None:
    if ChallengeStatus(challenge.status) != status:
        logger.info(
            "Challenge %s moved from %s to %s",
            challenge.id, ChallengeStatus(challenge.status).value, status.value,
        )
        challenge.status = status


def _snapshot_inputs(db: Session, owner_id: str, challenge: Challenge):
    habit_ids = challenge_habit_ids(db, challenge.id)
    snapshot = challenge_to_snapshot(challenge, habit_ids)
    habits = load_habits(db, owner_id, include_archived=True, habit_ids=habit_ids)
    logs = load_logs(
        db, owner_id, habit_ids=habit_ids,
        start=snapshot.start_date, end=snapshot.end_date,
    )
    return snapshot, habits, logs


# ---------------------------------------------------------------------------
# Public
# ---------------------------------------------------------------------------

def create_challenge(
    db: Session,
    owner_id: str,
    name: str,
    habit_ids: Iterable[int],
    start_date: date,
    duration_days: int,
) -> Challenge:
    ids = sorted(set(habit_ids))
    if duration_days < 1:
        raise RangeError(start_date, None, reason="challenge duration must be at least one day")
    if not ids:
        raise RangeError(start_date, None, reason="challenge needs at least one habit")

    found = {h.id for h in list_habits(db, owner_id, include_archived=False, habit_ids=ids)}
    missing = [i for i in ids if i not in found]
    if missing:
        raise NotFoundError("Habit", missing[0])

    challenge = Challenge(
        owner_id=owner_id,
        name=name,
        start_date=start_date,
        duration_days=duration_days,
        status=ChallengeStatus.active,
    )
    db.add(challenge)
    db.flush()
    for habit_id in ids:
        db.add(ChallengeHabit(challenge_id=challenge.id, habit_id=habit_id))
    db.commit()
    db.refresh(challenge)
    return challenge


def sync_progress(db: Session, owner_id: str, challenge_id: int, today: date) -> ChallengeProgress:
    """Full recompute of the per-day table; persists rows and any status change."""
    challenge = get_challenge(db, owner_id, challenge_id)
    snapshot, habits, logs = _snapshot_inputs(db, owner_id, challenge)

    progress = engine.sync(snapshot, habits, logs, today)
    for row in progress.days:
        _upsert_day(db, challenge.id, row)
    _apply_status(challenge, progress.status)
    db.commit()
    return progress


def resync_day_for_habit(
    db: Session,
    owner_id: str,
    habit_id: int,
    day: date,
    today: date,
) -> list[ChallengeProgress]:
    """
    After a log write: recompute `day` for every active challenge that
    contains the habit and whose synced window covers that day.
    """
    rows = (
        db.query(Challenge)
        .join(ChallengeHabit, ChallengeHabit.challenge_id == Challenge.id)
        .filter(
            Challenge.owner_id == owner_id,
            Challenge.status == ChallengeStatus.active,
            ChallengeHabit.habit_id == habit_id,
            Challenge.start_date <= day,
        )
        .all()
    )

    results = []
    for challenge in rows:
        snapshot, habits, logs = _snapshot_inputs(db, owner_id, challenge)
        if day > engine.synced_until(snapshot, today):
            continue
        stored = load_challenge_table(db, challenge.id)
        table, progress = engine.sync_day(snapshot, stored, habits, logs, day, today)
        _upsert_day(db, challenge.id, table[day])
        _apply_status(challenge, progress.status)
        results.append(progress)
    if results:
        db.commit()
    return results


def abandon_challenge(db: Session, owner_id: str, challenge_id: int, today: date) -> Challenge:
    """
    Explicit user action. The automatic transition is applied first, so a
    challenge whose window has already passed is completed, not abandoned.
    """
    challenge = get_challenge(db, owner_id, challenge_id)
    snapshot = challenge_to_snapshot(challenge, challenge_habit_ids(db, challenge.id))

    resolved = engine.resolve_status(snapshot, today)
    if resolved != snapshot.status:
        _apply_status(challenge, resolved)
        db.commit()
        snapshot = challenge_to_snapshot(challenge, snapshot.habit_ids)

    abandoned = engine.abandon(snapshot)
    _apply_status(challenge, abandoned.status)
    db.commit()
    db.refresh(challenge)
    return challenge
