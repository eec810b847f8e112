from typing import Literal

from pydantic import BaseModel, ConfigDict

from routinely.schemas.routine import SessionStatus, StepStatus

TabStatus = Literal["active", "upcoming", "completed"]


class TabTask(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str | None = None
    status: StepStatus
    points: int
    duration_seconds: int | None = None
    duration_label: str | None = None
    is_optional: bool


class CompletedTask(BaseModel):
    model_config = ConfigDict(frozen=True)

    task_id: str


class Tab(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    session_id: str
    name: str
    points: int
    status: TabStatus
    start_label: str | None = None
    badge_label: str
    availability_message: str | None = None
    completion_summary: str | None = None
    tasks: list[TabTask]
    is_current: bool
    is_locked: bool
    is_in_progress: bool
    success_href: str
    session_status: SessionStatus
    completed_tasks: list[CompletedTask]
    mandatory_task_ids: frozenset[str]


class TabsModel(BaseModel):
    model_config = ConfigDict(frozen=True)

    tabs: list[Tab]
    active_session_id: str | None = None
