"""Utilities for seeding development data."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.backend.src.models import (
    Appointment,
    BillingRecord,
    Department,
    MedicalRecord,
    Patient,
    Room,
    ScheduledReport,
    Staff,
)
from app.backend.src.schemas.reports import ReportFilters

DEMO_DEPARTMENTS = ("Cardiology", "Emergency", "Pediatrics")
DEMO_RECIPIENTS = "reports@hospital.example"
DEMO_SCHEDULES = (
    ("Weekly Finance", "financial", "weekly", "pdf"),
    ("Monthly Outcomes", "clinical", "monthly", "html"),
    ("Daily Operations", "operational", "daily", "csv"),
    ("Quarterly Compliance", "compliance", "quarterly", "excel"),
)


@dataclass
class SeedResult:
    """Counts of the demo records written by :func:`seed_demo_hospital`."""

    created: bool
    departments: int = 0
    patients: int = 0
    schedules: int = 0


def seed_demo_hospital(session: Session, *, today: date | None = None) -> SeedResult:
    """Populate an empty database with a small demo hospital.

    Every seeded schedule is due immediately so a single dispatch pass
    exercises all four report categories. Returns ``created=False`` without
    writing anything when departments already exist.
    """

    if session.scalar(select(func.count()).select_from(Department)):
        return SeedResult(created=False)

    today = today or datetime.now(timezone.utc).date()
    departments = [Department(name=name) for name in DEMO_DEPARTMENTS]
    session.add_all(departments)
    session.flush()

    for index, department in enumerate(departments):
        session.add_all(
            [
                Room(
                    room_number=f"{department.name[:3].upper()}-{number}",
                    room_type="ward",
                    capacity=4,
                    current_occupancy=(index + number) % 5,
                    department=department,
                )
                for number in range(1, 4)
            ]
        )

    staff = [
        Staff(first_name="Ana", last_name="Cole", role="physician", department="Cardiology"),
        Staff(first_name="Ben", last_name="Ruiz", role="nurse", department="Emergency"),
        Staff(first_name="Cy", last_name="Park", role="physician", department="Pediatrics"),
    ]
    patients = [
        Patient(first_name="Dee", last_name="Lane", gender="female", date_of_birth=date(1950, 3, 2)),
        Patient(first_name="Eli", last_name="Moss", gender="male", date_of_birth=date(1988, 7, 19)),
        Patient(first_name="Fay", last_name="Wren", gender="female", date_of_birth=date(2015, 1, 9)),
        Patient(first_name="Gus", last_name="Hale", gender="male", date_of_birth=date(1972, 11, 30)),
    ]
    session.add_all([*staff, *patients])
    session.flush()

    methods = ("Visa card", "cash", "Aetna insurance", "bank transfer")
    statuses = ("paid", "pending", "paid", "overdue")
    outcomes = ("improved", "stable", "cured", "worsened")
    appointment_statuses = ("completed", "no-show", "scheduled", "completed")
    for index, patient in enumerate(patients):
        clinician = staff[index % len(staff)]
        visit = today - timedelta(days=7 * (index + 1))
        session.add_all(
            [
                BillingRecord(
                    patient_id=patient.id,
                    total_amount=250.0 * (index + 1),
                    payment_status=statuses[index],
                    payment_method=methods[index],
                    invoice_date=visit,
                    payment_date=visit + timedelta(days=3) if statuses[index] == "paid" else None,
                ),
                Appointment(
                    patient_id=patient.id,
                    staff_id=clinician.id,
                    status=appointment_statuses[index],
                    appointment_date=visit,
                ),
                MedicalRecord(
                    patient_id=patient.id,
                    diagnosis="Observation",
                    treatment="Standard care",
                    outcome=outcomes[index],
                    readmission=index == 3,
                    admission_date=visit,
                    discharge_date=visit + timedelta(days=2),
                ),
            ]
        )

    due = datetime.now(timezone.utc) - timedelta(minutes=1)
    filters = json.dumps(ReportFilters().to_payload())
    session.add_all(
        [
            ScheduledReport(
                user_id="demo",
                report_name=name,
                report_type=report_type,
                frequency=frequency,
                recipients=DEMO_RECIPIENTS,
                filters=filters,
                file_format=file_format,
                next_run=due,
            )
            for name, report_type, frequency, file_format in DEMO_SCHEDULES
        ]
    )
    session.flush()

    return SeedResult(
        created=True,
        departments=len(departments),
        patients=len(patients),
        schedules=len(DEMO_SCHEDULES),
    )


__all__ = ["SeedResult", "seed_demo_hospital"]
