"""Routine Board Service.

Assembles a child's routine board for "today" in the family's timezone:
- Loads enabled assignments of active routines (ordered by position)
- Sums active task points per routine
- Materialises today's session for routines that have none yet
- Sorts sessions into today / upcoming / completed groups
"""

import logging
import uuid
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from routinely.config import settings
from routinely.core.timezones import combine_date_and_time, get_zone, local_date, to_wall_clock
from routinely.models.family import Family
from routinely.models.profile import Profile
from routinely.models.routine import ChildRoutine, Routine, RoutineTask
from routinely.models.session import RoutineSession
from routinely.schemas.routine import RoutineBoardData, RoutineBoardEntry

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = frozenset({"scheduled", "in_progress"})
COMPLETED_STATUSES = frozenset({"completed", "auto_closed", "expired", "skipped"})


async def resolve_child_timezone(
    db: AsyncSession,
    child_profile_id: uuid.UUID,
) -> str:
    """Return the IANA timezone of the child's family (default if unset)."""
    result = await db.execute(
        select(Family.timezone)
        .join(Profile, Profile.family_id == Family.id)
        .where(Profile.id == child_profile_id)
    )
    tz_name = result.scalar_one_or_none()

    if isinstance(tz_name, str) and tz_name:
        return tz_name
    return settings.DEFAULT_FAMILY_TIMEZONE


async def _load_assigned_routines(
    db: AsyncSession,
    child_profile_id: uuid.UUID,
) -> dict[uuid.UUID, Routine]:
    result = await db.execute(
        select(Routine)
        .join(ChildRoutine, ChildRoutine.routine_id == Routine.id)
        .where(
            ChildRoutine.child_profile_id == child_profile_id,
            ChildRoutine.deleted_at.is_(None),
            ChildRoutine.is_enabled == True,  # noqa: E712
            Routine.is_active == True,  # noqa: E712
        )
        .order_by(ChildRoutine.position.asc())
    )
    return {routine.id: routine for routine in result.scalars().all()}


async def _load_task_totals(
    db: AsyncSession,
    child_profile_id: uuid.UUID,
) -> dict[uuid.UUID, int]:
    result = await db.execute(
        select(RoutineTask.routine_id, func.coalesce(func.sum(RoutineTask.points), 0))
        .where(
            RoutineTask.child_profile_id == child_profile_id,
            RoutineTask.is_active == True,  # noqa: E712
            RoutineTask.deleted_at.is_(None),
        )
        .group_by(RoutineTask.routine_id)
    )
    return {routine_id: int(total) for routine_id, total in result.all()}


async def _load_sessions(
    db: AsyncSession,
    child_profile_id: uuid.UUID,
    first_day: date,
    last_day: date,
) -> list[RoutineSession]:
    result = await db.execute(
        select(RoutineSession).where(
            RoutineSession.child_profile_id == child_profile_id,
            RoutineSession.session_date >= first_day,
            RoutineSession.session_date <= last_day,
        )
    )
    return list(result.scalars().all())


async def ensure_sessions_for_assignments(
    db: AsyncSession,
    child_profile_id: uuid.UUID,
    routines: dict[uuid.UUID, Routine],
    today: date,
    tz_name: str,
) -> int:
    """Create today's ``scheduled`` session for routines without one from today on.

    Returns the number of sessions created.
    """
    if not routines:
        return 0

    result = await db.execute(
        select(RoutineSession.routine_id).where(
            RoutineSession.child_profile_id == child_profile_id,
            RoutineSession.session_date >= today,
            RoutineSession.routine_id.in_(list(routines)),
        )
    )
    covered = set(result.scalars().all())
    missing = [routine_id for routine_id in routines if routine_id not in covered]

    zone = get_zone(tz_name)
    for routine_id in missing:
        planned_end = combine_date_and_time(today, routines[routine_id].end_time)
        db.add(
            RoutineSession(
                routine_id=routine_id,
                child_profile_id=child_profile_id,
                session_date=today,
                planned_end_at=(
                    planned_end.replace(tzinfo=zone).astimezone(timezone.utc)
                    if planned_end else None
                ),
                status="scheduled",
            )
        )

    if missing:
        await db.flush()
        logger.info(
            "Routine board: materialised %d sessions for child=%s on %s",
            len(missing), child_profile_id, today,
        )
    return len(missing)


def _sort_key(entry: RoutineBoardEntry) -> tuple:
    # Entries with a start time first, in start order; the rest by name
    if entry.start_at is not None:
        return (0, entry.start_at, entry.name)
    return (1, datetime.min, entry.name)


def _to_entry(
    session: RoutineSession,
    routine: Routine,
    base_points: int,
    zone: ZoneInfo,
) -> RoutineBoardEntry:
    start_at = combine_date_and_time(session.session_date, routine.start_time)
    if start_at is None and session.started_at is not None:
        start_at = to_wall_clock(session.started_at, zone)

    end_at = combine_date_and_time(session.session_date, routine.end_time)
    if end_at is None and session.planned_end_at is not None:
        end_at = to_wall_clock(session.planned_end_at, zone)

    points = base_points
    if session.status == "completed" and (session.points_awarded or 0) > 0:
        points = session.points_awarded

    return RoutineBoardEntry(
        session_id=str(session.id),
        routine_id=str(session.routine_id),
        name=routine.name or "Routine",
        status="today",
        start_at=start_at,
        end_at=end_at,
        points_available=points,
    )


async def fetch_child_routine_board(
    db: AsyncSession,
    child_profile_id: uuid.UUID,
    now: datetime | None = None,
    days_ahead: int | None = None,
) -> RoutineBoardData:
    """Build the routine board of a child as of ``now`` (defaults to current time)."""
    tz_name = await resolve_child_timezone(db, child_profile_id)
    zone = get_zone(tz_name)

    if now is None:
        now = datetime.now(timezone.utc)
    today = local_date(now, zone)
    last_day = today + timedelta(
        days=days_ahead if days_ahead is not None else settings.BOARD_DAYS_AHEAD
    )

    routines = await _load_assigned_routines(db, child_profile_id)
    if not routines:
        return RoutineBoardData()

    task_totals = await _load_task_totals(db, child_profile_id)
    sessions = await _load_sessions(db, child_profile_id, today, last_day)

    represented = {s.routine_id for s in sessions if s.routine_id in routines}
    if len(represented) < len(routines):
        created = await ensure_sessions_for_assignments(
            db, child_profile_id, routines, today, tz_name,
        )
        if created:
            sessions = await _load_sessions(db, child_profile_id, today, last_day)

    today_entries: list[RoutineBoardEntry] = []
    upcoming_entries: list[RoutineBoardEntry] = []
    completed_entries: list[RoutineBoardEntry] = []

    for session in sessions:
        routine = routines.get(session.routine_id)
        if routine is None:
            continue

        entry = _to_entry(session, routine, task_totals.get(session.routine_id, 0), zone)

        if session.status in COMPLETED_STATUSES:
            completed_entries.append(entry.model_copy(update={"status": "completed"}))
        elif session.session_date == today and session.status in ACTIVE_STATUSES:
            today_entries.append(entry)
        elif session.session_date > today:
            upcoming_entries.append(entry.model_copy(update={"status": "upcoming"}))

    return RoutineBoardData(
        today=sorted(today_entries, key=_sort_key),
        upcoming=sorted(upcoming_entries, key=_sort_key),
        completed=sorted(completed_entries, key=_sort_key),
    )
