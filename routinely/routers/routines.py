"""Routines router.

Child-facing read endpoints: the routine board, the tab model built from it,
and the success summary of a completed session.
"""

import uuid
from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from routinely.config import settings
from routinely.core.errors import SessionNotFound
from routinely.core.rate_limit import limiter
from routinely.database import get_db
from routinely.models.profile import Profile
from routinely.schemas.routine import RoutineBoardData
from routinely.schemas.summary import RoutineSuccessSummary
from routinely.schemas.tab import TabsModel
from routinely.services.board_service import fetch_child_routine_board, resolve_child_timezone
from routinely.services.session_service import fetch_session_view_model, list_session_view_models
from routinely.services.success_summary import resolve_success_summary
from routinely.services.tab_model import build_tabs_model

router = APIRouter(tags=["Routines"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _get_child(db: AsyncSession, child_id: uuid.UUID) -> Profile:
    result = await db.execute(
        select(Profile).where(Profile.id == child_id, Profile.role == "child")
    )
    child = result.scalar_one_or_none()

    if child is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Child not found",
        )
    return child


# ---------------------------------------------------------------------------
# Board & tabs
# ---------------------------------------------------------------------------

@router.get("/children/{child_id}/routines/board", response_model=RoutineBoardData)
@limiter.limit(settings.RATE_LIMIT_DEFAULT)
async def get_routine_board(
    request: Request,
    child_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Today's, upcoming and completed routine sessions of a child."""
    await _get_child(db, child_id)
    return await fetch_child_routine_board(db, child_id)


@router.get("/children/{child_id}/routines/tabs", response_model=TabsModel)
@limiter.limit(settings.RATE_LIMIT_DEFAULT)
async def get_routine_tabs(
    request: Request,
    child_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    at: datetime | None = Query(None, description="Evaluate the board at this instant"),
):
    """Routine tabs of a child, with availability evaluated at ``at``."""
    await _get_child(db, child_id)

    now = at or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    board = await fetch_child_routine_board(db, child_id, now=now)
    session_ids = [
        uuid.UUID(entry.session_id)
        for entry in (*board.today, *board.upcoming, *board.completed)
    ]
    sessions = await list_session_view_models(db, session_ids, child_id)
    tz_name = await resolve_child_timezone(db, child_id)

    return build_tabs_model(board, sessions, tz_name, now)


# ---------------------------------------------------------------------------
# Success summary
# ---------------------------------------------------------------------------

@router.get(
    "/children/{child_id}/sessions/{session_id}/success",
    response_model=RoutineSuccessSummary,
)
@limiter.limit(settings.RATE_LIMIT_DEFAULT)
async def get_success_summary(
    request: Request,
    child_id: uuid.UUID,
    session_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Celebration data for a completed routine session."""
    await _get_child(db, child_id)

    session = await fetch_session_view_model(db, session_id, child_id)
    if session is None:
        raise SessionNotFound(str(session_id))

    return await resolve_success_summary(db, str(session_id), session)
