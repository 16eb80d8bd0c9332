"""
Challenges router.

POST /challenges                  — create over a fixed habit subset
GET  /challenges/{id}/progress    — sync the per-day table and roll it up
POST /challenges/{id}/abandon     — active -> abandoned
"""
from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from habitcore.db.base import get_db
from habitcore.models.challenge import Challenge
from habitcore.routers.deps import current_owner, resolve_today
from habitcore.schemas.challenges import (
    ChallengeCreate,
    ChallengeDayOut,
    ChallengeOut,
    ChallengeProgressResponse,
)
from habitcore.services.challenge_service import abandon_challenge, create_challenge, sync_progress
from habitcore.services.repository import challenge_habit_ids, challenge_to_snapshot

router = APIRouter(prefix="/challenges", tags=["challenges"])


def _ev(v) -> str:
    """Extract bare string value from a str-enum or plain str."""
    return v.value if hasattr(v, "value") else str(v)


def _challenge_to_response(db: Session, c: Challenge) -> ChallengeOut:
    habit_ids = challenge_habit_ids(db, c.id)
    snapshot = challenge_to_snapshot(c, habit_ids)
    return ChallengeOut(
        id=c.id,
        name=c.name,
        habit_ids=habit_ids,
        start_date=str(c.start_date),
        end_date=str(snapshot.end_date),
        duration_days=c.duration_days,
        status=_ev(c.status),
    )


@router.post(
    "",
    response_model=ChallengeOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create a challenge",
    responses={404: {"description": "One of the habits does not exist for this owner"}},
)
def create(
    body: ChallengeCreate,
    owner_id: str = Depends(current_owner),
    today: date = Depends(resolve_today),
    db: Session = Depends(get_db),
):
    challenge = create_challenge(
        db,
        owner_id,
        name=body.name,
        habit_ids=body.habit_ids,
        start_date=body.start_date or today,
        duration_days=body.duration_days,
    )
    return _challenge_to_response(db, challenge)


@router.get(
    "/{challenge_id}/progress",
    response_model=ChallengeProgressResponse,
    summary="Challenge progress",
)
def progress(
    challenge_id: int,
    owner_id: str = Depends(current_owner),
    today: date = Depends(resolve_today),
    db: Session = Depends(get_db),
):
    """
    Recomputes every day from the start date up to today (or the window
    end) and stores the rows. An active challenge whose window has passed
    is marked completed here.
    """
    p = sync_progress(db, owner_id, challenge_id, today)
    return ChallengeProgressResponse(
        challenge_id=p.challenge_id,
        status=_ev(p.status),
        days_completed=p.days_completed,
        perfect_days=p.perfect_days,
        current_streak=p.current_streak,
        overall_completion=p.overall_completion,
        days=[
            ChallengeDayOut(
                day=str(d.day),
                completed_count=d.completed_count,
                total_habits=d.total_habits,
                is_perfect_day=d.is_perfect_day,
            )
            for d in p.days
        ],
    )


@router.post(
    "/{challenge_id}/abandon",
    response_model=ChallengeOut,
    summary="Abandon a challenge",
    responses={409: {"description": "Challenge is already completed or abandoned"}},
)
def abandon(
    challenge_id: int,
    owner_id: str = Depends(current_owner),
    today: date = Depends(resolve_today),
    db: Session = Depends(get_db),
):
    return _challenge_to_response(db, abandon_challenge(db, owner_id, challenge_id, today))
