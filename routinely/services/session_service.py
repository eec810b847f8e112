"""Routine session fetch collaborator.

Builds ``SessionViewModel`` objects from session rows, the routine's active
tasks for the child and the session's task completions.
"""

import uuid
from collections import defaultdict
from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from routinely.models.routine import Routine, RoutineTask
from routinely.models.session import RoutineSession, TaskCompletion
from routinely.schemas.routine import SessionViewModel, TaskStep

DEFAULT_ROUTINE_NAME = "Routine"


def _to_step(task: RoutineTask, completion_status: str | None) -> TaskStep:
    return TaskStep(
        id=str(task.id),
        title=task.name,
        description=task.description,
        points=task.points or 0,
        duration_seconds=task.expected_duration_seconds,
        is_optional=task.is_optional,
        status=completion_status or "pending",
    )


async def list_session_view_models(
    db: AsyncSession,
    session_ids: Sequence[uuid.UUID],
    child_profile_id: uuid.UUID | None = None,
) -> list[SessionViewModel]:
    """Load view models for the given sessions, in the order of ``session_ids``.

    Sessions that do not exist (or belong to another child when
    ``child_profile_id`` is given) are left out.
    """
    if not session_ids:
        return []

    query = select(RoutineSession).where(RoutineSession.id.in_(session_ids))
    if child_profile_id is not None:
        query = query.where(RoutineSession.child_profile_id == child_profile_id)
    session_rows = (await db.execute(query)).scalars().all()

    if not session_rows:
        return []

    routine_ids = {row.routine_id for row in session_rows}
    child_ids = {row.child_profile_id for row in session_rows}

    routines = {
        routine.id: routine
        for routine in (
            await db.execute(select(Routine).where(Routine.id.in_(routine_ids)))
        ).scalars().all()
    }

    tasks_result = await db.execute(
        select(RoutineTask)
        .where(
            RoutineTask.routine_id.in_(routine_ids),
            RoutineTask.child_profile_id.in_(child_ids),
            RoutineTask.is_active == True,  # noqa: E712
            RoutineTask.deleted_at.is_(None),
        )
        .order_by(RoutineTask.position.asc())
    )
    tasks_by_key: dict[tuple[uuid.UUID, uuid.UUID], list[RoutineTask]] = defaultdict(list)
    for task in tasks_result.scalars().all():
        tasks_by_key[(task.routine_id, task.child_profile_id)].append(task)

    completions_result = await db.execute(
        select(TaskCompletion).where(
            TaskCompletion.routine_session_id.in_([row.id for row in session_rows])
        )
    )
    completions: dict[uuid.UUID, dict[uuid.UUID, str]] = defaultdict(dict)
    for completion in completions_result.scalars().all():
        completions[completion.routine_session_id][completion.routine_task_id] = completion.status

    by_id = {row.id: row for row in session_rows}
    view_models: list[SessionViewModel] = []

    for session_id in session_ids:
        row = by_id.get(session_id)
        if row is None:
            continue

        routine = routines.get(row.routine_id)
        session_completions = completions.get(row.id, {})
        steps = [
            _to_step(task, session_completions.get(task.id))
            for task in tasks_by_key.get((row.routine_id, row.child_profile_id), [])
        ]

        view_models.append(
            SessionViewModel(
                id=str(row.id),
                routine_id=str(row.routine_id),
                child_profile_id=str(row.child_profile_id),
                routine_name=routine.name if routine is not None else DEFAULT_ROUTINE_NAME,
                session_date=row.session_date,
                status=row.status,
                started_at=row.started_at,
                planned_end_at=row.planned_end_at,
                completed_at=row.completed_at,
                duration_seconds=row.duration_seconds,
                best_time_beaten=row.best_time_beaten,
                total_points=sum(step.points for step in steps),
                points_awarded=row.points_awarded or 0,
                steps=steps,
            )
        )

    return view_models


async def fetch_session_view_model(
    db: AsyncSession,
    session_id: uuid.UUID,
    child_profile_id: uuid.UUID | None = None,
) -> SessionViewModel | None:
    """Fetch one session view model, or None when it does not exist."""
    view_models = await list_session_view_models(db, [session_id], child_profile_id)
    return view_models[0] if view_models else None
