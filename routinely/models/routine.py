import uuid
from datetime import datetime, time

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, Time, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from routinely.database import Base


class Routine(Base):
    __tablename__ = "routines"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4,
    )
    family_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("families.id"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    routine_type: Mapped[str | None] = mapped_column(String(30), nullable=True)  # morning | afternoon | evening
    start_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    end_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    auto_close_after_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Relationships
    family: Mapped["Family"] = relationship(back_populates="routines")  # noqa: F821
    assignments: Mapped[list["ChildRoutine"]] = relationship(back_populates="routine")
    tasks: Mapped[list["RoutineTask"]] = relationship(back_populates="routine")

    def __repr__(self) -> str:
        return f"<Routine(id={self.id}, name={self.name!r})>"


class ChildRoutine(Base):
    """Assignment of a routine to a child, ordered by ``position``."""

    __tablename__ = "child_routines"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4,
    )
    routine_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("routines.id"), nullable=False
    )
    child_profile_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Relationships
    routine: Mapped["Routine"] = relationship(back_populates="assignments")

    def __repr__(self) -> str:
        return f"<ChildRoutine(routine_id={self.routine_id}, child_profile_id={self.child_profile_id})>"


class RoutineTask(Base):
    __tablename__ = "routine_tasks"
    __table_args__ = (
        Index("ix_routine_tasks_routine_child", "routine_id", "child_profile_id"),
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
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    expected_duration_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_optional: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Relationships
    routine: Mapped["Routine"] = relationship(back_populates="tasks")

    def __repr__(self) -> str:
        return f"<RoutineTask(id={self.id}, name={self.name!r})>"
