"""Billing model."""

from __future__ import annotations

from datetime import date

from sqlalchemy import Date, Float, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class BillingRecord(Base):
    """An invoice issued to a patient."""

    __tablename__ = "billing"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    patient_id: Mapped[int | None] = mapped_column(ForeignKey("patients.id"), index=True)
    total_amount: Mapped[float | None] = mapped_column(Float)
    payment_status: Mapped[str | None] = mapped_column(String(32), index=True)
    payment_method: Mapped[str | None] = mapped_column(String(100))
    invoice_date: Mapped[date | None] = mapped_column(Date, index=True)
    payment_date: Mapped[date | None] = mapped_column(Date)


__all__ = ["BillingRecord"]
