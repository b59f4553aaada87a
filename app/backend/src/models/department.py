"""Department model."""

from __future__ import annotations

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


class Department(Base):
    """A hospital department that owns rooms."""

    __tablename__ = "departments"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)

    rooms: Mapped[list["Room"]] = relationship("Room", back_populates="department")


__all__ = ["Department"]
