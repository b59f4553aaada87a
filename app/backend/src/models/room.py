"""Room model."""

from __future__ import annotations

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


class Room(Base):
    """A ward room with a bed capacity."""

    __tablename__ = "rooms"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    room_number: Mapped[str] = mapped_column(String(32), nullable=False)
    room_type: Mapped[str | None] = mapped_column(String(64))
    capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    current_occupancy: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    department_id: Mapped[int | None] = mapped_column(ForeignKey("departments.id"), index=True)

    department: Mapped["Department | None"] = relationship("Department", back_populates="rooms")


__all__ = ["Room"]
