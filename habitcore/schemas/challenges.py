"""
Challenge schemas.

POST /challenges                 → ChallengeCreate → ChallengeOut
GET  /challenges/{id}/progress   → ChallengeProgressResponse
"""
from __future__ import annotations

from datetime import date
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field


class ChallengeCreate(BaseModel):
    name: Annotated[str, Field(min_length=1, max_length=128, examples=["30-day reset"])]
    habit_ids: Annotated[list[int], Field(min_length=1)]
    start_date: Optional[date] = Field(default=None, description="Defaults to today.")
    duration_days: int = Field(default=30, ge=1, le=3650)


class ChallengeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    habit_ids: list[int]
    start_date: str
    end_date: str
    duration_days: int
    status: str


class ChallengeDayOut(BaseModel):
    day: str
    completed_count: int
    total_habits: int
    is_perfect_day: bool


class ChallengeProgressResponse(BaseModel):
    challenge_id: int
    status: str
    days_completed: int = Field(description="Synced days with at least one habit completed.")
    perfect_days: int
    current_streak: int = Field(description="Consecutive perfect days ending on the last synced day.")
    overall_completion: int
    days: list[ChallengeDayOut]
