"""Scheduled report model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class ScheduledReport(Base):
    """A recurring report delivered to a list of recipients by email.

    Only ``last_run`` and ``next_run`` are written by the dispatch loop; the
    remaining columns are owned by the console that creates the schedule.
    """

    __tablename__ = "report_schedules"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[str | None] = mapped_column(String(64), index=True)
    report_name: Mapped[str] = mapped_column(String(255), nullable=False)
    report_type: Mapped[str] = mapped_column(String(32), nullable=False)
    frequency: Mapped[str] = mapped_column(String(32), nullable=False)
    recipients: Mapped[str] = mapped_column(Text, nullable=False)
    filters: Mapped[str | None] = mapped_column(Text)
    file_format: Mapped[str | None] = mapped_column(String(16))
    last_run: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    next_run: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    @property
    def recipient_list(self) -> list[str]:
        """Return the recipients as individual, trimmed addresses."""

        return [
            address.strip()
            for address in (self.recipients or "").replace(";", ",").split(",")
            if address.strip()
        ]


__all__ = ["ScheduledReport"]
