"""
Tracking schemas.

POST   /tracking/check-in      → CheckInRequest → CheckInResponse
DELETE /tracking/check-in      → UndoCheckInRequest → StreakOut
GET    /tracking/habits/{id}/audit → StreakAuditResponse
GET    /tracking/milestones    → MilestoneListResponse
"""
from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from habitcore.schemas.common import StreakOut


class CheckInRequest(BaseModel):
    habit_id: int
    day: Optional[date] = Field(
        default=None,
        description="Day being logged. Defaults to the caller's local today.",
        examples=["2026-03-02"],
    )
    completed: bool = True
    value: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = Field(default=None, max_length=2000)


class UndoCheckInRequest(BaseModel):
    habit_id: int
    day: date


class MilestoneOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    habit_id: int
    kind: str = Field(description="`streak` or `completions`.")
    threshold: int
    achieved_on: str


class CheckInResponse(BaseModel):
    log_id: int
    habit_id: int
    day: str
    completed: bool
    value: Optional[float] = None
    streak: StreakOut
    previous_streak: int
    milestones: list[MilestoneOut] = Field(
        default_factory=list,
        description="Milestones newly reached by this write.",
    )


class StreakAuditResponse(BaseModel):
    habit_id: int
    drift: bool
    cached: StreakOut
    recomputed: StreakOut


class MilestoneListResponse(BaseModel):
    total: int
    items: list[MilestoneOut]
