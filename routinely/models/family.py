import uuid
from datetime import datetime

from sqlalchemy import DateTime, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from routinely.database import Base


class Family(Base):
    __tablename__ = "families"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    timezone: Mapped[str | None] = mapped_column(
        String(50), nullable=True, default="Europe/Warsaw"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Relationships
    profiles: Mapped[list["Profile"]] = relationship(back_populates="family")  # noqa: F821
    routines: Mapped[list["Routine"]] = relationship(back_populates="family")  # noqa: F821

    def __repr__(self) -> str:
        return f"<Family(id={self.id}, name={self.name!r})>"
