"""Shared fixtures for the scheduled report tests."""

from __future__ import annotations

import os
import sys
from datetime import date
from pathlib import Path
from types import SimpleNamespace

sys.path.append(str(Path(__file__).resolve().parents[4]))

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_reports.db")
os.environ.setdefault("REPORT_SCHEDULER_SECRET", "test-secret")

import pytest

from app.backend.src.services.errors import DataFetchError

TODAY = date(2024, 3, 10)


class FakeHospitalSource:
    """In-memory report data source with a small, fixed hospital."""

    def __init__(self, *, failing: tuple[str, ...] = ()) -> None:
        self.failing = set(failing)
        self.department_rows = [
            SimpleNamespace(id=1, name="Cardiology"),
            SimpleNamespace(id=2, name="Emergency"),
        ]
        self.staff_rows = [
            SimpleNamespace(id=10, department="Cardiology"),
            SimpleNamespace(id=11, department="Emergency"),
        ]
        self.patient_rows = [
            SimpleNamespace(id=100, gender="male", date_of_birth=date(1950, 1, 1)),
            SimpleNamespace(id=101, gender="Female", date_of_birth=date(2010, 6, 1)),
            SimpleNamespace(id=102, gender=None, date_of_birth=None),
        ]
        self.appointment_rows = [
            SimpleNamespace(patient_id=100, staff_id=10, status="completed"),
            SimpleNamespace(patient_id=101, staff_id=10, status="no-show"),
            SimpleNamespace(patient_id=102, staff_id=11, status="scheduled"),
            SimpleNamespace(patient_id=100, staff_id=10, status="completed"),
        ]
        self.billing_rows = [
            SimpleNamespace(total_amount=100.0, payment_status="paid", payment_method="Visa credit card"),
            SimpleNamespace(total_amount=50.0, payment_status="pending", payment_method="Aetna insurance"),
        ]
        self.medical_rows = [
            SimpleNamespace(patient_id=100, outcome="improved", readmission=False),
            SimpleNamespace(patient_id=101, outcome="worsened", readmission=True),
            SimpleNamespace(patient_id=102, outcome="cured", readmission=False),
        ]
        self.room_rows = [
            SimpleNamespace(department_id=1, capacity=4, current_occupancy=3),
            SimpleNamespace(department_id=1, capacity=2, current_occupancy=1),
            SimpleNamespace(department_id=2, capacity=5, current_occupancy=0),
        ]

    def _rows(self, table: str, rows: list) -> list:
        if table in self.failing:
            raise DataFetchError(f"Failed to fetch {table} data")
        return list(rows)

    def billing_records(self, date_from, date_to):
        return self._rows("billing", self.billing_rows)

    def staff(self):
        return self._rows("staff", self.staff_rows)

    def appointments(self, date_from=None, date_to=None):
        return self._rows("appointments", self.appointment_rows)

    def patients(self):
        return self._rows("patients", self.patient_rows)

    def medical_records(self, admitted_from, discharged_to):
        return self._rows("medical_records", self.medical_rows)

    def rooms(self):
        return self._rows("rooms", self.room_rows)

    def departments(self):
        return self._rows("departments", self.department_rows)


@pytest.fixture()
def hospital_source() -> FakeHospitalSource:
    return FakeHospitalSource()


@pytest.fixture()
def source_factory() -> type[FakeHospitalSource]:
    return FakeHospitalSource
