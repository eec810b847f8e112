import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from routinely.database import Base


class RoutinePerformanceStat(Base):
    """Per-child aggregate of a routine's completions (best time, streak)."""

    __tablename__ = "routine_performance_stats"
    __table_args__ = (
        UniqueConstraint(
            "routine_id", "child_profile_id", name="uq_performance_routine_child"
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4,
    )
    routine_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("routines.id"), nullable=False
    )
    child_profile_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id"), nullable=False
    )
    best_duration_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    best_session_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("routine_sessions.id"), nullable=True
    )
    last_completed_session_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("routine_sessions.id"), nullable=True
    )
    last_completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    streak_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return (
            f"<RoutinePerformanceStat(routine_id={self.routine_id}, "
            f"best={self.best_duration_seconds})>"
        )
