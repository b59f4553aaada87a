"""ORM models exposed for easy imports."""

from .appointment import Appointment
from .billing import BillingRecord
from .department import Department
from .medical_record import MedicalRecord
from .patient import Patient
from .report_schedule import ScheduledReport
from .room import Room
from .staff import Staff

__all__ = [
    "Appointment",
    "BillingRecord",
    "Department",
    "MedicalRecord",
    "Patient",
    "Room",
    "ScheduledReport",
    "Staff",
]
