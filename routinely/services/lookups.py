"""Historical session point lookups.

Each lookup is a single-row read against ``routine_sessions`` and returns a
tagged result instead of raising: ``LookupOk`` (``value`` is None when no row
matched) or ``LookupFailed`` carrying the storage error. Rows are validated
into typed DTOs here so callers never see raw result rows.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Generic, Literal, TypeVar

from sqlalchemy import ColumnElement, and_, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from routinely.core.errors import DependencyUnavailable
from routinely.core.timezones import ensure_aware
from routinely.models.routine import Routine
from routinely.models.session import RoutineSession
from routinely.schemas.summary import DurationRow, NextSessionRow, PointsRow

logger = logging.getLogger(__name__)

T = TypeVar("T")

UPCOMING_SESSION_STATUSES = ("scheduled", "in_progress")


@dataclass(frozen=True)
class LookupOk(Generic[T]):
    value: T | None
    ok: Literal[True] = True


@dataclass(frozen=True)
class LookupFailed:
    lookup: str
    error: Exception
    ok: Literal[False] = False


LookupResult = LookupOk[T] | LookupFailed


def unwrap(result: "LookupResult[T]") -> T | None:
    """Return the looked-up value or raise DependencyUnavailable."""
    if isinstance(result, LookupFailed):
        raise DependencyUnavailable(result.lookup, result.error)
    return result.value


def _prior_completions(
    routine_id: uuid.UUID,
    child_profile_id: uuid.UUID,
    exclude_session_id: uuid.UUID,
    completed_before: datetime | None,
    session_date: date,
) -> list[ColumnElement[bool]]:
    """Filter for completions of the routine that precede the given one.

    Completions without a timestamp are placed by ``session_date``. When the
    reference completion has no timestamp either, earlier dates count.
    """
    undated_earlier = and_(
        RoutineSession.completed_at.is_(None),
        RoutineSession.session_date < session_date,
    )
    if completed_before is None:
        ordering = RoutineSession.session_date < session_date
    else:
        cutoff = ensure_aware(completed_before).astimezone(timezone.utc)
        ordering = or_(RoutineSession.completed_at < cutoff, undated_earlier)

    return [
        RoutineSession.routine_id == routine_id,
        RoutineSession.child_profile_id == child_profile_id,
        RoutineSession.id != exclude_session_id,
        RoutineSession.status == "completed",
        ordering,
    ]


async def points_record_lookup(
    db: AsyncSession,
    routine_id: uuid.UUID,
    child_profile_id: uuid.UUID,
    exclude_session_id: uuid.UUID,
    completed_before: datetime | None,
    session_date: date,
) -> "LookupResult[PointsRow]":
    """Highest ``points_awarded`` of completions before this session."""
    conditions = _prior_completions(
        routine_id, child_profile_id, exclude_session_id, completed_before, session_date,
    )
    try:
        result = await db.execute(
            select(func.max(RoutineSession.points_awarded)).where(
                *conditions,
                RoutineSession.points_awarded.isnot(None),
            )
        )
        best = result.scalar()
    except SQLAlchemyError as exc:
        logger.warning("Points record lookup failed: routine=%s, error=%s", routine_id, exc)
        return LookupFailed("points_record", exc)

    if best is None:
        return LookupOk(None)
    return LookupOk(PointsRow(points_awarded=best))


async def previous_best_duration_lookup(
    db: AsyncSession,
    routine_id: uuid.UUID,
    child_profile_id: uuid.UUID,
    exclude_session_id: uuid.UUID,
    completed_before: datetime | None,
    session_date: date,
) -> "LookupResult[DurationRow]":
    """Duration of the record-holding completion before this session."""
    conditions = _prior_completions(
        routine_id, child_profile_id, exclude_session_id, completed_before, session_date,
    )
    try:
        result = await db.execute(
            select(RoutineSession.duration_seconds)
            .where(
                *conditions,
                RoutineSession.duration_seconds.isnot(None),
                RoutineSession.duration_seconds > 0,
            )
            .order_by(RoutineSession.duration_seconds.asc())
            .limit(1)
        )
        duration = result.scalar_one_or_none()
    except SQLAlchemyError as exc:
        logger.warning("Previous best lookup failed: routine=%s, error=%s", routine_id, exc)
        return LookupFailed("previous_best_duration", exc)

    if duration is None:
        return LookupOk(None)
    return LookupOk(DurationRow(duration_seconds=duration))


async def next_scheduled_session_lookup(
    db: AsyncSession,
    child_profile_id: uuid.UUID,
    after_date: date,
) -> "LookupResult[NextSessionRow]":
    """Earliest open session of the child dated strictly after ``after_date``."""
    try:
        result = await db.execute(
            select(
                RoutineSession.id,
                RoutineSession.routine_id,
                RoutineSession.session_date,
                RoutineSession.status,
                Routine.name.label("routine_name"),
                Routine.start_time,
            )
            .join(Routine, Routine.id == RoutineSession.routine_id)
            .where(
                RoutineSession.child_profile_id == child_profile_id,
                RoutineSession.session_date > after_date,
                RoutineSession.status.in_(UPCOMING_SESSION_STATUSES),
            )
            .order_by(
                RoutineSession.session_date.asc(),
                Routine.start_time.asc(),
                RoutineSession.created_at.asc(),
            )
            .limit(1)
        )
        row = result.mappings().first()
    except SQLAlchemyError as exc:
        logger.warning("Next session lookup failed: child=%s, error=%s", child_profile_id, exc)
        return LookupFailed("next_scheduled_session", exc)

    if row is None:
        return LookupOk(None)
    return LookupOk(NextSessionRow.model_validate(dict(row)))
