"""Routine performance collaborator.

Reads the per-child aggregates (best time, streak) maintained when
sessions complete.
"""

import uuid

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from routinely.core.errors import DependencyUnavailable
from routinely.models.performance import RoutinePerformanceStat as RoutinePerformanceStatRow
from routinely.schemas.summary import RoutinePerformanceList, RoutinePerformanceStat


async def list_routine_performance(
    db: AsyncSession,
    child_profile_id: uuid.UUID,
    routine_id: uuid.UUID | None = None,
) -> RoutinePerformanceList:
    """List performance aggregates of a child, newest first.

    Raises:
        DependencyUnavailable: If the storage read fails.
    """
    query = (
        select(RoutinePerformanceStatRow)
        .where(RoutinePerformanceStatRow.child_profile_id == child_profile_id)
        .order_by(RoutinePerformanceStatRow.updated_at.desc())
    )
    if routine_id is not None:
        query = query.where(RoutinePerformanceStatRow.routine_id == routine_id)

    try:
        result = await db.execute(query)
        rows = result.scalars().all()
    except SQLAlchemyError as exc:
        raise DependencyUnavailable("routine_performance", exc) from exc

    return RoutinePerformanceList(
        data=[RoutinePerformanceStat.model_validate(row) for row in rows]
    )
