"""
Habits router.

POST /habits                 — create a definition
GET  /habits                 — list (active by default)
GET  /habits/{id}            — single definition with cached streak
POST /habits/{id}/archive    — archive (idempotent)
"""
from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from habitcore.db.base import get_db
from habitcore.models.habit import Habit
from habitcore.routers.deps import current_owner, resolve_today
from habitcore.schemas.habits import HabitCreate, HabitListResponse, HabitOut
from habitcore.services.habit_service import HabitDefinition, archive_habit, create_habit
from habitcore.services.repository import get_habit, list_habits

router = APIRouter(prefix="/habits", tags=["habits"])


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def _ev(v) -> str:
    """Extract bare string value from a str-enum or plain str."""
    return v.value if hasattr(v, "value") else str(v)


def habit_to_response(h: Habit) -> HabitOut:
    return HabitOut(
        id=h.id,
        name=h.name,
        description=h.description,
        cadence=_ev(h.cadence),
        days_of_week=sorted(h.days_of_week or []),
        value_kind=_ev(h.value_kind),
        target_value=h.target_value,
        unit=h.unit,
        created_on=str(h.created_on),
        is_archived=h.is_archived,
        current_streak=h.current_streak or 0,
        longest_streak=h.longest_streak or 0,
        last_completed_on=str(h.last_completed_on) if h.last_completed_on else None,
        total_completions=h.total_completions or 0,
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=HabitOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create a habit",
    responses={422: {"description": "Invalid cadence / target configuration"}},
)
def create(
    body: HabitCreate,
    owner_id: str = Depends(current_owner),
    today: date = Depends(resolve_today),
    db: Session = Depends(get_db),
):
    """
    Weekly habits need at least one ISO weekday in `days_of_week`;
    counter and duration habits need a positive `target_value`.
    """
    habit = create_habit(
        db,
        owner_id,
        HabitDefinition(
            name=body.name,
            cadence=body.cadence,
            days_of_week=body.days_of_week,
            value_kind=body.value_kind,
            target_value=body.target_value,
            unit=body.unit,
            description=body.description,
            created_on=body.created_on,
        ),
        today,
    )
    return habit_to_response(habit)


@router.get("", response_model=HabitListResponse, summary="List habits")
def list_(
    include_archived: bool = Query(default=False),
    owner_id: str = Depends(current_owner),
    db: Session = Depends(get_db),
):
    habits = list_habits(db, owner_id, include_archived=include_archived)
    return HabitListResponse(total=len(habits), items=[habit_to_response(h) for h in habits])


@router.get("/{habit_id}", response_model=HabitOut, summary="Get a habit")
def get(
    habit_id: int,
    owner_id: str = Depends(current_owner),
    db: Session = Depends(get_db),
):
    return habit_to_response(get_habit(db, owner_id, habit_id))


@router.post("/{habit_id}/archive", response_model=HabitOut, summary="Archive a habit")
def archive(
    habit_id: int,
    owner_id: str = Depends(current_owner),
    db: Session = Depends(get_db),
):
    """Archived habits keep their logs but drop out of analytics and leaderboards."""
    return habit_to_response(archive_habit(db, owner_id, habit_id))
