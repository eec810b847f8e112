"""Routine Tab Model Builder.

Turns today's routine board plus the per-routine session view models into
the ordered tabs shown on the child's routine screen.

Rules:
- ``board.today[0]`` is the primary routine. Only it can become ``active``.
- While the primary session is in progress every other tab is locked.
- Secondary ``today`` routines collapse to ``upcoming`` and wait for the
  current mission, whatever their own window says.
- Window phases compare the family-local wall clock with ``start_at`` /
  ``end_at``, inclusive at both ends. A missing bound means the routine is
  open all day and carries no availability message. Bounds that carry an
  offset are first converted to the family wall clock.

The builder is pure: ``now`` is a parameter and no I/O happens here.
"""

from collections.abc import Iterable
from datetime import datetime
from enum import Enum
from zoneinfo import ZoneInfo

from routinely.config import settings
from routinely.core.errors import InvalidBoardState, MissingSessionData
from routinely.core.timezones import (
    format_duration,
    format_instant_label,
    format_time_label,
    get_zone,
    to_wall_clock,
)
from routinely.schemas.routine import (
    RoutineBoardData,
    RoutineBoardEntry,
    SessionViewModel,
    TaskStep,
)
from routinely.schemas.tab import CompletedTask, Tab, TabsModel, TabStatus, TabTask


class WindowPhase(str, Enum):
    BEFORE = "before"
    WITHIN = "within"
    AFTER = "after"
    OPEN = "open"  # start or end missing


class TabRole(str, Enum):
    PRIMARY_IN_PROGRESS = "primary_in_progress"
    PRIMARY = "primary"
    SECONDARY_TODAY = "secondary_today"
    UPCOMING = "upcoming"
    COMPLETED = "completed"


class Notice(str, Enum):
    NONE = "none"
    STARTS_AT = "starts_at"
    ENDED_AT = "ended_at"
    AFTER_CURRENT = "after_current"


AFTER_CURRENT_MESSAGE = "This routine will be available once the current mission is finished."
STARTS_AT_MESSAGE = "This routine is inactive right now. It will be available at {time}."
STARTS_SOON_MESSAGE = "This routine is inactive right now. It will be available soon."
ENDED_AT_MESSAGE = "This routine was available until {time}. Try again at the next scheduled time."

BADGE_LABELS: dict[str, str] = {
    "active": "Available now",
    "upcoming": "Soon",
    "completed": "Completed",
}

_ALL_PHASES = tuple(WindowPhase)

# (role, window phase) -> (tab status, availability notice)
TRANSITIONS: dict[tuple[TabRole, WindowPhase], tuple[TabStatus, Notice]] = {
    **{(TabRole.PRIMARY_IN_PROGRESS, phase): ("active", Notice.NONE) for phase in _ALL_PHASES},
    (TabRole.PRIMARY, WindowPhase.BEFORE): ("upcoming", Notice.STARTS_AT),
    (TabRole.PRIMARY, WindowPhase.WITHIN): ("active", Notice.NONE),
    (TabRole.PRIMARY, WindowPhase.OPEN): ("active", Notice.NONE),
    (TabRole.PRIMARY, WindowPhase.AFTER): ("upcoming", Notice.ENDED_AT),
    **{(TabRole.SECONDARY_TODAY, phase): ("upcoming", Notice.AFTER_CURRENT) for phase in _ALL_PHASES},
    (TabRole.UPCOMING, WindowPhase.BEFORE): ("upcoming", Notice.STARTS_AT),
    (TabRole.UPCOMING, WindowPhase.WITHIN): ("upcoming", Notice.AFTER_CURRENT),
    (TabRole.UPCOMING, WindowPhase.OPEN): ("upcoming", Notice.NONE),
    (TabRole.UPCOMING, WindowPhase.AFTER): ("upcoming", Notice.ENDED_AT),
    **{(TabRole.COMPLETED, phase): ("completed", Notice.NONE) for phase in _ALL_PHASES},
}


def window_phase(entry: RoutineBoardEntry, local_now: datetime) -> WindowPhase:
    """Place ``local_now`` relative to the entry's window (inclusive bounds)."""
    if entry.start_at is None or entry.end_at is None:
        return WindowPhase.OPEN
    if local_now < entry.start_at:
        return WindowPhase.BEFORE
    if local_now > entry.end_at:
        return WindowPhase.AFTER
    return WindowPhase.WITHIN


def _validate_board(
    board: RoutineBoardData,
    sessions: dict[str, SessionViewModel],
) -> None:
    seen: set[str] = set()
    groups = (
        ("today", board.today),
        ("upcoming", board.upcoming),
        ("completed", board.completed),
    )
    for group, entries in groups:
        for entry in entries:
            if entry.session_id in seen:
                raise InvalidBoardState(
                    f"Session {entry.session_id} appears more than once on the board"
                )
            if entry.status != group:
                raise InvalidBoardState(
                    f"Session {entry.session_id} has status {entry.status!r} "
                    f"but is listed under {group!r}"
                )
            seen.add(entry.session_id)

    for _, entries in groups:
        for entry in entries:
            if entry.session_id not in sessions:
                raise MissingSessionData(entry.session_id)


def _notice_text(notice: Notice, entry: RoutineBoardEntry) -> str | None:
    if notice is Notice.AFTER_CURRENT:
        return AFTER_CURRENT_MESSAGE
    if notice is Notice.ENDED_AT:
        end_label = format_time_label(entry.end_at)
        if end_label:
            return ENDED_AT_MESSAGE.format(time=end_label)
        notice = Notice.STARTS_AT
    if notice is Notice.STARTS_AT:
        start_label = format_time_label(entry.start_at)
        if start_label:
            return STARTS_AT_MESSAGE.format(time=start_label)
        return STARTS_SOON_MESSAGE
    return None


def _window_label(entry: RoutineBoardEntry) -> str | None:
    start_label = format_time_label(entry.start_at)
    end_label = format_time_label(entry.end_at)
    if start_label and end_label:
        return f"{start_label} – {end_label}"
    return start_label


def _badge_label(status: TabStatus, entry: RoutineBoardEntry) -> str:
    base = BADGE_LABELS[status]
    start_label = format_time_label(entry.start_at)
    if status == "upcoming" and start_label:
        return f"{base} · {start_label}"
    return base


def _completion_summary(session: SessionViewModel, zone: ZoneInfo) -> str | None:
    completed_label = format_instant_label(session.completed_at, zone)
    duration_label = format_duration(session.duration_seconds)

    if not session.steps:
        if duration_label:
            return f"No tasks in this routine. Last completed in {duration_label}."
        return None

    parts = []
    if completed_label:
        parts.append(f"Last completed at {completed_label}.")
    if duration_label:
        parts.append(f"Duration: {duration_label}.")
    return " ".join(parts) or None


def _to_tab_task(step: TaskStep, reset_status: bool) -> TabTask:
    return TabTask(
        id=step.id,
        title=step.title,
        description=step.description,
        status="pending" if reset_status else step.status,
        points=step.points,
        duration_seconds=step.duration_seconds,
        duration_label=format_duration(step.duration_seconds),
        is_optional=step.is_optional,
    )


def _localise(entry: RoutineBoardEntry, zone: ZoneInfo) -> RoutineBoardEntry:
    """Bring offset-bearing window bounds to naive wall-clock time in ``zone``."""
    updates = {
        field: to_wall_clock(value, zone)
        for field, value in (("start_at", entry.start_at), ("end_at", entry.end_at))
        if value is not None and value.tzinfo is not None
    }
    return entry.model_copy(update=updates) if updates else entry


def _ordered_entries(board: RoutineBoardData) -> Iterable[tuple[RoutineBoardEntry, TabRole]]:
    for index, entry in enumerate(board.today):
        yield entry, TabRole.PRIMARY if index == 0 else TabRole.SECONDARY_TODAY
    for entry in board.upcoming:
        yield entry, TabRole.UPCOMING
    for entry in board.completed:
        yield entry, TabRole.COMPLETED


def build_tabs_model(
    board: RoutineBoardData,
    sessions: list[SessionViewModel],
    timezone: str,
    now: datetime,
) -> TabsModel:
    """Build the ordered routine tabs and the id of the actionable session.

    Raises:
        InvalidBoardState: a session id is listed twice, or an entry sits in
            a group that contradicts its status.
        MissingSessionData: a board entry has no matching session view model.
    """
    session_map = {session.id: session for session in sessions}
    _validate_board(board, session_map)

    zone = get_zone(timezone)
    local_now = to_wall_clock(now, zone)

    primary = board.today[0] if board.today else None
    primary_in_progress = (
        primary is not None and session_map[primary.session_id].status == "in_progress"
    )
    active_session_id = primary.session_id if primary is not None else None

    tabs: list[Tab] = []
    for board_entry, role in _ordered_entries(board):
        entry = _localise(board_entry, zone)
        session = session_map[entry.session_id]
        if role is TabRole.PRIMARY and primary_in_progress:
            role = TabRole.PRIMARY_IN_PROGRESS

        status, notice = TRANSITIONS[(role, window_phase(entry, local_now))]
        is_current = entry.session_id == active_session_id
        is_locked = primary_in_progress and not is_current

        tasks = [
            _to_tab_task(step, reset_status=status == "upcoming")
            for step in session.steps
        ]

        tabs.append(
            Tab(
                id=entry.session_id,
                session_id=entry.session_id,
                name=entry.name,
                points=entry.points_available,
                status=status,
                start_label=_window_label(entry),
                badge_label=_badge_label(status, entry),
                availability_message=_notice_text(notice, entry),
                completion_summary=(
                    _completion_summary(session, zone) if status == "completed" else None
                ),
                tasks=tasks,
                is_current=is_current,
                is_locked=is_locked,
                is_in_progress=role is TabRole.PRIMARY_IN_PROGRESS,
                success_href=settings.SUCCESS_HREF_TEMPLATE.format(session_id=entry.session_id),
                session_status=session.status,
                completed_tasks=[
                    CompletedTask(task_id=step.id)
                    for step in session.steps
                    if step.status == "completed"
                ],
                mandatory_task_ids=frozenset(
                    step.id for step in session.steps if not step.is_optional
                ),
            )
        )

    return TabsModel(tabs=tabs, active_session_id=active_session_id)
