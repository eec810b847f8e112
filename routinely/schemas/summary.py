import uuid
from datetime import date, datetime, time

from pydantic import BaseModel, ConfigDict


# ---------------------------------------------------------------------------
# Collaborator DTOs
# ---------------------------------------------------------------------------

class RoutinePerformanceStat(BaseModel):
    routine_id: uuid.UUID
    child_profile_id: uuid.UUID
    best_duration_seconds: int | None = None
    best_session_id: uuid.UUID | None = None
    last_completed_session_id: uuid.UUID | None = None
    last_completed_at: datetime | None = None
    streak_days: int = 0
    updated_at: datetime | None = None
    model_config = ConfigDict(from_attributes=True)


class RoutinePerformanceList(BaseModel):
    data: list[RoutinePerformanceStat]


class ChildAchievement(BaseModel):
    achievement_id: uuid.UUID
    code: str
    name: str | None = None
    description: str | None = None
    icon_url: str | None = None
    awarded_at: datetime
    metadata: dict | None = None


class ChildAchievementList(BaseModel):
    data: list[ChildAchievement]


class PointsRow(BaseModel):
    points_awarded: int | None = None


class DurationRow(BaseModel):
    duration_seconds: int | None = None


class NextSessionRow(BaseModel):
    id: uuid.UUID
    routine_id: uuid.UUID
    session_date: date
    status: str
    routine_name: str | None = None
    start_time: time | None = None


# ---------------------------------------------------------------------------
# Success summary
# ---------------------------------------------------------------------------

class BadgeView(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str | None = None
    icon_url: str | None = None
    unlocked_at: datetime


class NextRoutine(BaseModel):
    model_config = ConfigDict(frozen=True)

    session_id: str
    name: str
    start_at: datetime | None = None


class RoutineSuccessSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    routine_name: str
    points_earned: int
    points_record: int | None = None
    total_duration_seconds: int | None = None
    total_time_minutes: int
    best_duration_seconds: int | None = None
    previous_best_duration_seconds: int | None = None
    best_time_beaten: bool
    improvement_seconds: int | None = None
    streak_days: int = 0
    badges_unlocked: list[BadgeView] = []
    next_routine: NextRoutine | None = None
