"""Read-only access to the hospital tables consumed by the report aggregator."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import date
from typing import Any, Protocol, TypeVar

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.backend.src.models import (
    Appointment,
    BillingRecord,
    Department,
    MedicalRecord,
    Patient,
    Room,
    Staff,
)
from app.backend.src.services.errors import DataFetchError

LOGGER = structlog.get_logger(__name__)

T = TypeVar("T")


class ReportDataSource(Protocol):
    """Queries the aggregator needs; each returns a list of row objects."""

    def billing_records(
        self, date_from: date | None, date_to: date | None
    ) -> Sequence[Any]: ...

    def staff(self) -> Sequence[Any]: ...

    def appointments(
        self, date_from: date | None = None, date_to: date | None = None
    ) -> Sequence[Any]: ...

    def patients(self) -> Sequence[Any]: ...

    def medical_records(
        self, admitted_from: date | None, discharged_to: date | None
    ) -> Sequence[Any]: ...

    def rooms(self) -> Sequence[Any]: ...

    def departments(self) -> Sequence[Any]: ...


class SqlReportDataSource:
    """:class:`ReportDataSource` backed by a SQLAlchemy session."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def _fetch(self, table: str, query: Callable[[], list[T]]) -> list[T]:
        try:
            return query()
        except SQLAlchemyError as exc:
            LOGGER.error("report_data_fetch_failed", table=table, error=str(exc))
            raise DataFetchError(f"Failed to fetch {table} data") from exc

    def billing_records(
        self, date_from: date | None, date_to: date | None
    ) -> list[BillingRecord]:
        stmt = select(BillingRecord)
        if date_from:
            stmt = stmt.where(BillingRecord.invoice_date >= date_from)
        if date_to:
            stmt = stmt.where(BillingRecord.invoice_date <= date_to)
        return self._fetch("billing", lambda: list(self._session.scalars(stmt)))

    def staff(self) -> list[Staff]:
        return self._fetch("staff", lambda: list(self._session.scalars(select(Staff))))

    def appointments(
        self, date_from: date | None = None, date_to: date | None = None
    ) -> list[Appointment]:
        stmt = select(Appointment)
        if date_from:
            stmt = stmt.where(Appointment.appointment_date >= date_from)
        if date_to:
            stmt = stmt.where(Appointment.appointment_date <= date_to)
        return self._fetch("appointments", lambda: list(self._session.scalars(stmt)))

    def patients(self) -> list[Patient]:
        return self._fetch("patients", lambda: list(self._session.scalars(select(Patient))))

    def medical_records(
        self, admitted_from: date | None, discharged_to: date | None
    ) -> list[MedicalRecord]:
        stmt = select(MedicalRecord)
        if admitted_from:
            stmt = stmt.where(MedicalRecord.admission_date >= admitted_from)
        if discharged_to:
            stmt = stmt.where(MedicalRecord.discharge_date <= discharged_to)
        return self._fetch("medical_records", lambda: list(self._session.scalars(stmt)))

    def rooms(self) -> list[Room]:
        return self._fetch("rooms", lambda: list(self._session.scalars(select(Room))))

    def departments(self) -> list[Department]:
        stmt = select(Department).order_by(Department.id)
        return self._fetch("departments", lambda: list(self._session.scalars(stmt)))


__all__ = ["ReportDataSource", "SqlReportDataSource"]
