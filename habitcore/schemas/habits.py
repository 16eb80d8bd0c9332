"""
Habit definition schemas.

POST /habits  → HabitCreate → HabitOut
GET  /habits  → HabitListResponse
"""
from __future__ import annotations

from datetime import date
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from habitcore.models.habit import Cadence, ValueKind


class HabitCreate(BaseModel):
    """A new habit definition. Cadence rules are re-checked by the service."""
    name: Annotated[str, Field(min_length=1, max_length=128, examples=["Read 20 pages"])]
    description: Optional[str] = Field(default=None, max_length=2000)
    cadence: Cadence = Field(default=Cadence.daily)
    days_of_week: Optional[list[int]] = Field(
        default=None,
        description="ISO weekdays (1=Mon … 7=Sun). Required for weekly habits.",
        examples=[[1, 3, 5]],
    )
    value_kind: ValueKind = Field(default=ValueKind.boolean)
    target_value: Optional[float] = Field(
        default=None,
        description="Qualifying threshold for counter / duration habits.",
    )
    unit: Optional[str] = Field(default=None, max_length=32, examples=["minutes"])
    created_on: Optional[date] = Field(
        default=None,
        description="First day the habit exists. Defaults to today.",
    )

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v: str) -> str:
        stripped = v.strip() if isinstance(v, str) else v
        if not stripped:
            raise ValueError("name must not be empty after stripping whitespace")
        return stripped


class HabitOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    cadence: str
    days_of_week: list[int] = Field(default_factory=list)
    value_kind: str
    target_value: Optional[float] = None
    unit: Optional[str] = None
    created_on: str
    is_archived: bool
    current_streak: int = Field(description="Cached; see /tracking/habits/{id}/audit.")
    longest_streak: int
    last_completed_on: Optional[str] = None
    total_completions: int


class HabitListResponse(BaseModel):
    total: int
    items: list[HabitOut]
