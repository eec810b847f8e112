"""Routine Success Summary Resolver.

Computes the celebration data shown after a child finishes a routine:
points earned and the points record, the time record context, badges
unlocked on the completion day, and the next scheduled routine.

Lookups run one after another on the request's session. Empty results
fall back to defaults; a storage failure in any collaborator raises
``DependencyUnavailable`` and no summary is returned.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from routinely.config import settings
from routinely.core.errors import DependencyUnavailable, SessionNotFound
from routinely.core.timezones import combine_date_and_time, ensure_aware, get_zone, local_date
from routinely.schemas.routine import SessionViewModel
from routinely.schemas.summary import (
    BadgeView,
    ChildAchievement,
    NextRoutine,
    RoutinePerformanceStat,
    RoutineSuccessSummary,
)
from routinely.services import lookups
from routinely.services.achievements_service import list_child_achievements
from routinely.services.board_service import resolve_child_timezone
from routinely.services.performance_service import list_routine_performance
from routinely.services.session_service import fetch_session_view_model

logger = logging.getLogger(__name__)

NEXT_ROUTINE_FALLBACK_NAME = "Next routine"


def _to_badge(item: ChildAchievement) -> BadgeView:
    return BadgeView(
        id=str(item.achievement_id),
        name=item.name or item.code,
        description=item.description,
        icon_url=item.icon_url,
        unlocked_at=item.awarded_at,
    )


def select_badges(
    achievements: list[ChildAchievement],
    completed_at: datetime | None,
    timezone: str,
) -> list[BadgeView]:
    """Badges awarded on the completion day, or the most recent ones otherwise.

    ``achievements`` must be ordered by ``awarded_at`` descending.
    """
    badges: list[BadgeView] = []

    if completed_at is not None:
        zone = get_zone(timezone)
        completion_day = local_date(completed_at, zone)
        badges = [
            _to_badge(item)
            for item in achievements
            if local_date(item.awarded_at, zone) == completion_day
        ][: settings.SUCCESS_BADGE_LIMIT]

    if not badges:
        badges = [_to_badge(item) for item in achievements[: settings.SUCCESS_BADGE_FALLBACK]]

    return badges


def estimate_total_minutes(session: SessionViewModel) -> int:
    """Minutes spent, or the planned duration when no duration was recorded."""
    seconds = session.duration_seconds
    if not seconds or seconds <= 0:
        seconds = sum(step.duration_seconds or 0 for step in session.steps)
    if seconds <= 0 and session.started_at and session.planned_end_at:
        planned = ensure_aware(session.planned_end_at) - ensure_aware(session.started_at)
        seconds = int(planned.total_seconds())
    if seconds <= 0:
        return 0
    return max(1, (seconds + 30) // 60)


@dataclass(frozen=True)
class _SessionKeys:
    session_id: uuid.UUID
    routine_id: uuid.UUID
    child_id: uuid.UUID


def _parse_uuid(value: str, session_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except ValueError:
        # Malformed ids cannot reference a stored session
        raise SessionNotFound(session_id) from None


def _session_keys(session: SessionViewModel) -> _SessionKeys:
    return _SessionKeys(
        session_id=_parse_uuid(session.id, session.id),
        routine_id=_parse_uuid(session.routine_id, session.id),
        child_id=_parse_uuid(session.child_profile_id, session.id),
    )


async def _resolve_duration_record(
    db: AsyncSession,
    session: SessionViewModel,
    keys: _SessionKeys,
    performance: RoutinePerformanceStat | None,
) -> tuple[int | None, int | None, int | None]:
    """Return (best, previous best, improvement) in seconds."""
    stored_best = performance.best_duration_seconds if performance else None

    if not session.best_time_beaten:
        return stored_best, stored_best, None

    previous = lookups.unwrap(
        await lookups.previous_best_duration_lookup(
            db,
            keys.routine_id,
            keys.child_id,
            keys.session_id,
            session.completed_at,
            session.session_date,
        )
    )
    previous_best = previous.duration_seconds if previous else None
    best = session.duration_seconds

    improvement = None
    if previous_best is not None and best is not None:
        improvement = previous_best - best

    return best, previous_best, improvement


async def resolve_success_summary(
    db: AsyncSession,
    session_id: str,
    session: SessionViewModel | None = None,
) -> RoutineSuccessSummary:
    """Compute the success summary of a completed routine session.

    Records are taken from completions before this one, so reopening an
    older summary gives the same result after later runs.

    Args:
        db: Async database session.
        session_id: The completed session.
        session: Already loaded view model; fetched when omitted.

    Raises:
        SessionNotFound: If the session does not exist or its ids are malformed.
        DependencyUnavailable: If a collaborator read fails.
    """
    if session is None:
        try:
            session = await fetch_session_view_model(db, _parse_uuid(session_id, session_id))
        except SQLAlchemyError as exc:
            raise DependencyUnavailable("routine_session", exc) from exc
        if session is None:
            raise SessionNotFound(session_id)

    keys = _session_keys(session)

    # 1. Performance aggregate
    performance_list = await list_routine_performance(db, keys.child_id, keys.routine_id)
    performance = performance_list.data[0] if performance_list.data else None

    # 2. Achievements unlocked around this completion
    achievements = await list_child_achievements(db, keys.child_id)
    try:
        tz_name = await resolve_child_timezone(db, keys.child_id)
    except SQLAlchemyError as exc:
        raise DependencyUnavailable("family_timezone", exc) from exc
    badges = select_badges(achievements.data, session.completed_at, tz_name)

    # 3. Points record
    points_row = lookups.unwrap(
        await lookups.points_record_lookup(
            db,
            keys.routine_id,
            keys.child_id,
            keys.session_id,
            session.completed_at,
            session.session_date,
        )
    )
    points_record = points_row.points_awarded if points_row else None

    # 4. Time record context
    best, previous_best, improvement = await _resolve_duration_record(
        db, session, keys, performance,
    )

    # 5. Next routine
    next_row = lookups.unwrap(
        await lookups.next_scheduled_session_lookup(db, keys.child_id, session.session_date)
    )
    next_routine = None
    if next_row is not None:
        next_routine = NextRoutine(
            session_id=str(next_row.id),
            name=next_row.routine_name or NEXT_ROUTINE_FALLBACK_NAME,
            start_at=combine_date_and_time(next_row.session_date, next_row.start_time),
        )

    summary = RoutineSuccessSummary(
        routine_name=session.routine_name,
        points_earned=session.points_awarded,
        points_record=points_record,
        total_duration_seconds=session.duration_seconds,
        total_time_minutes=estimate_total_minutes(session),
        best_duration_seconds=best,
        previous_best_duration_seconds=previous_best,
        best_time_beaten=session.best_time_beaten,
        improvement_seconds=improvement,
        streak_days=performance.streak_days if performance else 0,
        badges_unlocked=badges,
        next_routine=next_routine,
    )

    logger.info(
        "Success summary: session=%s, points=%d, best_time_beaten=%s, badges=%d",
        session_id, summary.points_earned, summary.best_time_beaten, len(badges),
    )
    return summary
