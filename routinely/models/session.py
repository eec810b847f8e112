import uuid
from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Integer, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from routinely.database import Base


class RoutineSession(Base):
    __tablename__ = "routine_sessions"
    __table_args__ = (
        Index("ix_routine_sessions_child_date", "child_profile_id", "session_date"),
        Index("ix_routine_sessions_routine_child", "routine_id", "child_profile_id"),
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
    session_date: Mapped[date] = mapped_column(Date, nullable=False)
    # scheduled | in_progress | completed | auto_closed | expired | skipped
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="scheduled")
    started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    planned_end_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    duration_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    points_awarded: Mapped[int | None] = mapped_column(Integer, nullable=True)
    best_time_beaten: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Relationships
    routine: Mapped["Routine"] = relationship()  # noqa: F821
    child: Mapped["Profile"] = relationship(  # noqa: F821
        back_populates="routine_sessions", foreign_keys=[child_profile_id]
    )
    completions: Mapped[list["TaskCompletion"]] = relationship(back_populates="session")

    def __repr__(self) -> str:
        return f"<RoutineSession(id={self.id}, status={self.status!r})>"


class TaskCompletion(Base):
    __tablename__ = "task_completions"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4,
    )
    routine_session_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("routine_sessions.id"), nullable=False
    )
    routine_task_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("routine_tasks.id"), nullable=False
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="completed")
    completed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Relationships
    session: Mapped["RoutineSession"] = relationship(back_populates="completions")

    def __repr__(self) -> str:
        return f"<TaskCompletion(session={self.routine_session_id}, task={self.routine_task_id})>"
