"""Unit tests for the routine tab model builder (no DB required)."""

from datetime import date, datetime, timezone

import pytest

from routinely.core.errors import InvalidBoardState, MissingSessionData
from routinely.schemas.routine import (
    RoutineBoardData,
    RoutineBoardEntry,
    SessionViewModel,
    TaskStep,
)
from routinely.services.tab_model import (
    AFTER_CURRENT_MESSAGE,
    TRANSITIONS,
    TabRole,
    WindowPhase,
    build_tabs_model,
    window_phase,
)

DAY = date(2026, 3, 2)


# ---------------------------------------------------------------------------
# Local helpers
# ---------------------------------------------------------------------------

def _at(hour: int, minute: int = 0) -> datetime:
    return datetime(DAY.year, DAY.month, DAY.day, hour, minute)


def _utc(hour: int, minute: int = 0) -> datetime:
    return _at(hour, minute).replace(tzinfo=timezone.utc)


def _entry(
    session_id: str,
    status: str = "today",
    start: datetime | None = None,
    end: datetime | None = None,
    name: str = "Morning",
    points: int = 10,
) -> RoutineBoardEntry:
    return RoutineBoardEntry(
        session_id=session_id,
        routine_id=f"routine-{session_id}",
        name=name,
        status=status,
        start_at=start,
        end_at=end,
        points_available=points,
    )


def _session(session_id: str, status: str = "scheduled", steps=None, **fields) -> SessionViewModel:
    return SessionViewModel(
        id=session_id,
        routine_id=f"routine-{session_id}",
        child_profile_id="child-1",
        routine_name="Morning",
        session_date=DAY,
        status=status,
        steps=steps if steps is not None else [
            TaskStep(id=f"{session_id}-t1", title="Brush teeth", points=5, duration_seconds=120),
            TaskStep(id=f"{session_id}-t2", title="Get dressed", points=5, is_optional=True),
        ],
        **fields,
    )


def _build(board, sessions, now, tz="UTC"):
    return build_tabs_model(board, sessions, tz, now)


# ---------------------------------------------------------------------------
# Primary routine
# ---------------------------------------------------------------------------

class TestPrimaryTab:
    def test_in_progress_primary_is_current_and_unlocked(self):
        board = RoutineBoardData(today=[_entry("s1", start=_at(6), end=_at(7))])
        model = _build(board, [_session("s1", status="in_progress")], _utc(6, 10))

        tab = model.tabs[0]
        assert tab.status == "active"
        assert tab.is_current is True
        assert tab.is_in_progress is True
        assert tab.is_locked is False
        assert model.active_session_id == "s1"

    def test_in_progress_primary_stays_active_after_window(self):
        board = RoutineBoardData(today=[_entry("s1", start=_at(6), end=_at(7))])
        model = _build(board, [_session("s1", status="in_progress")], _utc(9))

        assert model.tabs[0].status == "active"
        assert model.tabs[0].availability_message is None

    def test_scheduled_primary_within_window_is_active(self):
        board = RoutineBoardData(today=[_entry("s1", start=_at(6), end=_at(7))])
        model = _build(board, [_session("s1")], _utc(6, 30))

        tab = model.tabs[0]
        assert tab.status == "active"
        assert tab.badge_label == "Available now"
        assert tab.is_in_progress is False
        assert tab.availability_message is None

    def test_window_bounds_are_inclusive(self):
        board = RoutineBoardData(today=[_entry("s1", start=_at(6), end=_at(7))])

        assert _build(board, [_session("s1")], _utc(6)).tabs[0].status == "active"
        assert _build(board, [_session("s1")], _utc(7)).tabs[0].status == "active"

    def test_primary_before_window_shows_start_time(self):
        board = RoutineBoardData(today=[_entry("s1", start=_at(19), end=_at(20))])
        model = _build(board, [_session("s1")], _utc(12))

        tab = model.tabs[0]
        assert tab.status == "upcoming"
        assert tab.badge_label == "Soon · 19:00"
        assert tab.availability_message == (
            "This routine is inactive right now. It will be available at 19:00."
        )
        # Still the actionable session, even outside its window
        assert model.active_session_id == "s1"
        assert tab.is_current is True

    def test_primary_after_window_suggests_next_time(self):
        board = RoutineBoardData(today=[_entry("s1", start=_at(6), end=_at(7))])
        model = _build(board, [_session("s1")], _utc(12))

        tab = model.tabs[0]
        assert tab.status == "upcoming"
        assert "available until 07:00" in tab.availability_message
        assert "Try again at the next scheduled time" in tab.availability_message

    def test_open_window_is_active_without_message(self):
        board = RoutineBoardData(today=[_entry("s1", start=_at(6), end=None)])
        model = _build(board, [_session("s1")], _utc(23))

        tab = model.tabs[0]
        assert tab.status == "active"
        assert tab.availability_message is None
        assert tab.start_label == "06:00"

    def test_window_label_shows_both_bounds(self):
        board = RoutineBoardData(today=[_entry("s1", start=_at(6), end=_at(7))])
        model = _build(board, [_session("s1")], _utc(6, 30))

        assert model.tabs[0].start_label == "06:00 – 07:00"

    def test_family_timezone_decides_the_window(self):
        # 05:30 UTC is 06:30 in Warsaw (CET, UTC+1 in March)
        board = RoutineBoardData(today=[_entry("s1", start=_at(6), end=_at(7))])
        model = _build(board, [_session("s1")], _utc(5, 30), tz="Europe/Warsaw")

        assert model.tabs[0].status == "active"

    def test_offset_bounds_are_read_in_family_timezone(self):
        # 06:00Z-07:00Z is 07:00-08:00 in Warsaw
        board = RoutineBoardData(today=[
            _entry("s1", start=_utc(6), end=_utc(7)),
        ])

        before = _build(board, [_session("s1")], _utc(5, 30), tz="Europe/Warsaw").tabs[0]
        assert before.status == "upcoming"
        assert before.badge_label == "Soon · 07:00"
        assert "available at 07:00" in before.availability_message

        within = _build(board, [_session("s1")], _utc(6, 30), tz="Europe/Warsaw").tabs[0]
        assert within.status == "active"
        assert within.start_label == "07:00 – 08:00"


# ---------------------------------------------------------------------------
# Secondary and upcoming routines
# ---------------------------------------------------------------------------

class TestSecondaryTabs:
    def test_secondary_today_locked_while_primary_in_progress(self):
        board = RoutineBoardData(today=[
            _entry("s1", start=_at(6), end=_at(13)),
            _entry("s2", start=_at(18), end=_at(22), name="Evening"),
        ])
        sessions = [_session("s1", status="in_progress"), _session("s2")]
        model = _build(board, sessions, _utc(12, 5))

        secondary = model.tabs[1]
        assert secondary.status == "upcoming"
        assert secondary.is_locked is True
        assert secondary.is_current is False
        assert secondary.availability_message == AFTER_CURRENT_MESSAGE
        assert AFTER_CURRENT_MESSAGE == (
            "This routine will be available once the current mission is finished."
        )

    def test_secondary_today_waits_for_current_mission_within_its_window(self):
        board = RoutineBoardData(today=[
            _entry("s1", start=_at(6), end=_at(22)),
            _entry("s2", start=_at(18), end=_at(22), name="Evening"),
        ])
        model = _build(board, [_session("s1"), _session("s2")], _utc(19))

        secondary = model.tabs[1]
        assert secondary.status == "upcoming"
        assert secondary.is_locked is False
        assert secondary.availability_message == AFTER_CURRENT_MESSAGE

    def test_only_one_tab_is_active(self):
        board = RoutineBoardData(today=[
            _entry("s1", start=None, end=None),
            _entry("s2", start=None, end=None, name="Evening"),
            _entry("s3", start=None, end=None, name="Night"),
        ])
        sessions = [_session("s1"), _session("s2"), _session("s3")]
        model = _build(board, sessions, _utc(12))

        assert [tab.status for tab in model.tabs] == ["active", "upcoming", "upcoming"]

    def test_upcoming_tasks_are_reset_to_pending(self):
        steps = [TaskStep(id="t1", title="Pack bag", points=3, status="completed")]
        board = RoutineBoardData(
            today=[_entry("s1")],
            upcoming=[_entry("s2", status="upcoming", start=_at(18), end=_at(19))],
        )
        model = _build(board, [_session("s1"), _session("s2", steps=steps)], _utc(12))

        upcoming = model.tabs[1]
        assert upcoming.status == "upcoming"
        assert [task.status for task in upcoming.tasks] == ["pending"]
        assert upcoming.badge_label == "Soon · 18:00"
        assert upcoming.availability_message == (
            "This routine is inactive right now. It will be available at 18:00."
        )

    def test_upcoming_tab_locked_but_keeps_its_own_message(self):
        board = RoutineBoardData(
            today=[_entry("s1")],
            upcoming=[_entry("s2", status="upcoming", start=_at(18), end=_at(19))],
        )
        model = _build(board, [_session("s1", status="in_progress"), _session("s2")], _utc(12))

        upcoming = model.tabs[1]
        assert upcoming.is_locked is True
        assert "available at 18:00" in upcoming.availability_message

    def test_no_today_entries_gives_no_active_session(self):
        board = RoutineBoardData(
            upcoming=[_entry("s2", status="upcoming", start=_at(18), end=_at(19))],
        )
        model = _build(board, [_session("s2")], _utc(12))

        assert model.active_session_id is None
        assert all(tab.status != "active" for tab in model.tabs)
        assert all(tab.is_locked is False for tab in model.tabs)


# ---------------------------------------------------------------------------
# Completed routines
# ---------------------------------------------------------------------------

class TestCompletedTabs:
    def test_completed_tab_summarises_last_run(self):
        board = RoutineBoardData(
            completed=[_entry("s1", status="completed", start=_at(6), end=_at(7))],
        )
        session = _session(
            "s1",
            status="completed",
            completed_at=_utc(6, 40),
            duration_seconds=18 * 60,
        )
        model = _build(board, [session], _utc(12))

        tab = model.tabs[0]
        assert tab.status == "completed"
        assert tab.badge_label == "Completed"
        assert tab.availability_message is None
        assert tab.completion_summary == "Last completed at 06:40. Duration: 18 min."

    def test_completion_time_rendered_in_family_timezone(self):
        board = RoutineBoardData(completed=[_entry("s1", status="completed")])
        session = _session("s1", status="completed", completed_at=_utc(6, 40), duration_seconds=600)
        model = _build(board, [session], _utc(12), tz="Europe/Warsaw")

        assert model.tabs[0].completion_summary == "Last completed at 07:40. Duration: 10 min."

    def test_completed_routine_without_tasks(self):
        board = RoutineBoardData(completed=[_entry("s1", status="completed")])
        session = _session("s1", status="completed", steps=[], duration_seconds=3600)
        model = _build(board, [session], _utc(12))

        assert model.tabs[0].completion_summary == "No tasks in this routine. Last completed in 1 h."

    def test_completed_tasks_and_mandatory_ids(self):
        steps = [
            TaskStep(id="t1", title="Brush teeth", status="completed"),
            TaskStep(id="t2", title="Read", is_optional=True, status="completed"),
            TaskStep(id="t3", title="Tidy up"),
        ]
        board = RoutineBoardData(completed=[_entry("s1", status="completed")])
        model = _build(board, [_session("s1", status="completed", steps=steps)], _utc(12))

        tab = model.tabs[0]
        assert [task.task_id for task in tab.completed_tasks] == ["t1", "t2"]
        assert tab.mandatory_task_ids == frozenset({"t1", "t3"})

    def test_success_href_points_at_session(self):
        board = RoutineBoardData(completed=[_entry("s1", status="completed")])
        model = _build(board, [_session("s1", status="completed")], _utc(12))

        assert model.tabs[0].success_href == "/child/routines/s1/success"


# ---------------------------------------------------------------------------
# Contract violations and determinism
# ---------------------------------------------------------------------------

class TestBoardValidation:
    def test_missing_session_raises(self):
        board = RoutineBoardData(today=[_entry("s1"), _entry("s2", name="Evening")])

        with pytest.raises(MissingSessionData) as exc_info:
            _build(board, [_session("s1")], _utc(12))
        assert exc_info.value.session_id == "s2"

    def test_duplicate_session_raises(self):
        board = RoutineBoardData(
            today=[_entry("s1")],
            completed=[_entry("s1", status="completed")],
        )

        with pytest.raises(InvalidBoardState):
            _build(board, [_session("s1")], _utc(12))

    def test_status_group_mismatch_raises(self):
        board = RoutineBoardData(upcoming=[_entry("s1", status="today")])

        with pytest.raises(InvalidBoardState):
            _build(board, [_session("s1")], _utc(12))

    def test_same_inputs_give_same_output(self):
        board = RoutineBoardData(
            today=[_entry("s1", start=_at(6), end=_at(7))],
            upcoming=[_entry("s2", status="upcoming", start=_at(18), end=_at(19))],
        )
        sessions = [_session("s1", status="in_progress"), _session("s2")]

        assert _build(board, sessions, _utc(6, 30)) == _build(board, sessions, _utc(6, 30))

    def test_tab_order_follows_board_groups(self):
        board = RoutineBoardData(
            today=[_entry("a")],
            upcoming=[_entry("b", status="upcoming")],
            completed=[_entry("c", status="completed")],
        )
        sessions = [_session("c", status="completed"), _session("b"), _session("a")]
        model = _build(board, sessions, _utc(12))

        assert [tab.session_id for tab in model.tabs] == ["a", "b", "c"]


class TestTransitions:
    def test_every_role_and_phase_is_covered(self):
        for role in TabRole:
            for phase in WindowPhase:
                assert (role, phase) in TRANSITIONS

    def test_only_primary_roles_reach_active(self):
        active_roles = {role for (role, _), (status, _) in TRANSITIONS.items() if status == "active"}
        assert active_roles == {TabRole.PRIMARY, TabRole.PRIMARY_IN_PROGRESS}

    def test_window_phase(self):
        entry = _entry("s1", start=_at(6), end=_at(7))

        assert window_phase(entry, _at(5, 59)) is WindowPhase.BEFORE
        assert window_phase(entry, _at(6)) is WindowPhase.WITHIN
        assert window_phase(entry, _at(7)) is WindowPhase.WITHIN
        assert window_phase(entry, _at(7, 1)) is WindowPhase.AFTER
        assert window_phase(_entry("s2", start=_at(6)), _at(9)) is WindowPhase.OPEN
