"""
Tracking router.

POST   /tracking/check-in               — log a day, refresh streak, emit milestones
DELETE /tracking/check-in               — remove a day's log
GET    /tracking/habits/{id}/streak     — recomputed streak
GET    /tracking/habits/{id}/audit      — cache vs recomputation
POST   /tracking/habits/{id}/rebuild    — rewrite the cache from history
GET    /tracking/milestones             — achieved milestones, newest first
"""
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from habitcore.db.base import get_db
from habitcore.models.milestone import Milestone
from habitcore.routers.deps import current_owner, resolve_today
from habitcore.schemas.common import StreakOut
from habitcore.schemas.tracking import (
    CheckInRequest,
    CheckInResponse,
    MilestoneListResponse,
    MilestoneOut,
    StreakAuditResponse,
    UndoCheckInRequest,
)
from habitcore.services.challenge_service import resync_day_for_habit
from habitcore.services.streaks import MilestoneEvent, StreakResult
from habitcore.services.tracking import (
    audit_streak_cache,
    check_in,
    current_streak,
    list_milestones,
    rebuild_streak_cache,
    undo_check_in,
)

router = APIRouter(prefix="/tracking", tags=["tracking"])


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def streak_to_response(habit_id: int, s: StreakResult) -> StreakOut:
    return StreakOut(
        habit_id=habit_id,
        current=s.current,
        longest=s.longest,
        last_qualifying_date=str(s.last_qualifying_date) if s.last_qualifying_date else None,
        total_completions=s.total_completions,
    )


def _event_to_response(e: MilestoneEvent) -> MilestoneOut:
    return MilestoneOut(
        habit_id=e.habit_id,
        kind=e.kind,
        threshold=e.threshold,
        achieved_on=str(e.achieved_on),
    )


def _milestone_to_response(m: Milestone) -> MilestoneOut:
    return MilestoneOut(
        habit_id=m.habit_id,
        kind=m.kind,
        threshold=m.threshold,
        achieved_on=str(m.achieved_on),
    )


# ---------------------------------------------------------------------------
# Write path
# ---------------------------------------------------------------------------

@router.post(
    "/check-in",
    response_model=CheckInResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Log a day for a habit",
    responses={
        404: {"description": "Habit not found for this owner"},
        409: {"description": "Day predates the habit, or a concurrent write won"},
        422: {"description": "Day is in the future"},
    },
)
def post_check_in(
    body: CheckInRequest,
    owner_id: str = Depends(current_owner),
    today: date = Depends(resolve_today),
    db: Session = Depends(get_db),
):
    """
    Upserts the single log for (habit, day). Re-posting the same day
    overwrites it; milestones already reached are never emitted twice.
    Active challenges containing the habit get that day's row recomputed.
    """
    day = body.day or today
    result = check_in(
        db,
        owner_id,
        body.habit_id,
        day,
        today,
        completed=body.completed,
        value=body.value,
        notes=body.notes,
    )
    resync_day_for_habit(db, owner_id, body.habit_id, day, today)
    log = result.log
    return CheckInResponse(
        log_id=log.id,
        habit_id=log.habit_id,
        day=str(log.day),
        completed=log.completed,
        value=log.value,
        streak=streak_to_response(log.habit_id, result.streak),
        previous_streak=result.previous.current,
        milestones=[_event_to_response(e) for e in result.milestones_created],
    )


@router.delete("/check-in", response_model=StreakOut, summary="Remove a day's log")
def delete_check_in(
    body: UndoCheckInRequest,
    owner_id: str = Depends(current_owner),
    today: date = Depends(resolve_today),
    db: Session = Depends(get_db),
):
    streak = undo_check_in(db, owner_id, body.habit_id, body.day, today)
    if body.day <= today:
        resync_day_for_habit(db, owner_id, body.habit_id, body.day, today)
    return streak_to_response(body.habit_id, streak)


# ---------------------------------------------------------------------------
# Reads, audit
# ---------------------------------------------------------------------------

@router.get("/habits/{habit_id}/streak", response_model=StreakOut, summary="Current streak")
def get_streak(
    habit_id: int,
    owner_id: str = Depends(current_owner),
    today: date = Depends(resolve_today),
    db: Session = Depends(get_db),
):
    """Always recomputed from the log history; an unlogged today is pending, not missed."""
    return streak_to_response(habit_id, current_streak(db, owner_id, habit_id, today))


@router.get("/habits/{habit_id}/audit", response_model=StreakAuditResponse, summary="Streak cache audit")
def get_audit(
    habit_id: int,
    owner_id: str = Depends(current_owner),
    today: date = Depends(resolve_today),
    db: Session = Depends(get_db),
):
    audit = audit_streak_cache(db, owner_id, habit_id, today)
    return StreakAuditResponse(
        habit_id=audit.habit_id,
        drift=audit.drift,
        cached=streak_to_response(audit.habit_id, audit.cached),
        recomputed=streak_to_response(audit.habit_id, audit.recomputed),
    )


@router.post("/habits/{habit_id}/rebuild", response_model=StreakOut, summary="Rebuild streak cache")
def post_rebuild(
    habit_id: int,
    owner_id: str = Depends(current_owner),
    today: date = Depends(resolve_today),
    db: Session = Depends(get_db),
):
    return streak_to_response(habit_id, rebuild_streak_cache(db, owner_id, habit_id, today))


@router.get("/milestones", response_model=MilestoneListResponse, summary="Achieved milestones")
def get_milestones(
    habit_id: Optional[int] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    owner_id: str = Depends(current_owner),
    db: Session = Depends(get_db),
):
    total, items = list_milestones(db, owner_id, habit_id=habit_id, limit=limit, offset=offset)
    return MilestoneListResponse(total=total, items=[_milestone_to_response(m) for m in items])
