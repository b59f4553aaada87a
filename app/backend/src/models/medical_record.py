"""Medical record model."""

from __future__ import annotations

from datetime import date

from sqlalchemy import Boolean, Date, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class MedicalRecord(Base):
    """An admission episode with its treatment outcome."""

    __tablename__ = "medical_records"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    patient_id: Mapped[int | None] = mapped_column(ForeignKey("patients.id"), index=True)
    diagnosis: Mapped[str | None] = mapped_column(Text)
    treatment: Mapped[str | None] = mapped_column(Text)
    outcome: Mapped[str | None] = mapped_column(String(32))
    readmission: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    admission_date: Mapped[date | None] = mapped_column(Date, index=True)
    discharge_date: Mapped[date | None] = mapped_column(Date, index=True)


__all__ = ["MedicalRecord"]
