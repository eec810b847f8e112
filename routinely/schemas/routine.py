"""Routine board and session view models.

These are the shapes the tab model builder consumes. ``start_at`` and
``end_at`` are naive wall-clock datetimes in the family's timezone.
"""

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

BoardStatus = Literal["today", "upcoming", "completed"]
SessionStatus = Literal[
    "scheduled", "in_progress", "completed", "auto_closed", "expired", "skipped"
]
StepStatus = Literal["pending", "completed", "skipped"]


class RoutineBoardEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    session_id: str
    routine_id: str
    name: str
    status: BoardStatus
    start_at: datetime | None = None
    end_at: datetime | None = None
    points_available: int = Field(default=0, ge=0)


class RoutineBoardData(BaseModel):
    """Today's routines grouped by placement; ``today[0]`` is the primary one."""

    model_config = ConfigDict(frozen=True)

    today: list[RoutineBoardEntry] = []
    upcoming: list[RoutineBoardEntry] = []
    completed: list[RoutineBoardEntry] = []


class TaskStep(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str | None = None
    points: int = Field(default=0, ge=0)
    duration_seconds: int | None = None
    is_optional: bool = False
    status: StepStatus = "pending"


class SessionViewModel(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    routine_id: str
    child_profile_id: str
    routine_name: str
    session_date: date
    status: SessionStatus = "scheduled"
    started_at: datetime | None = None
    planned_end_at: datetime | None = None
    completed_at: datetime | None = None
    duration_seconds: int | None = None
    best_time_beaten: bool = False
    total_points: int = 0
    points_awarded: int = 0
    steps: list[TaskStep] = []
