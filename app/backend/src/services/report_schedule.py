"""Schedule selection, next-run arithmetic and filter normalization."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import Any

import structlog
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.backend.src.models import ScheduledReport
from app.backend.src.schemas.reports import (
    ReportFilters,
    ReportFrequency,
    ScheduledReportCreate,
)
from app.backend.src.services.errors import FilterParseError

LOGGER = structlog.get_logger(__name__)

RUN_HOUR = 8

_DAY_OFFSETS = {
    ReportFrequency.DAILY: 1,
    ReportFrequency.WEEKLY: 7,
    ReportFrequency.BIWEEKLY: 14,
}
_MONTH_OFFSETS = {
    ReportFrequency.MONTHLY: 1,
    ReportFrequency.QUARTERLY: 3,
}


def _first_of_month(now: datetime, months_ahead: int) -> datetime:
    month_index = now.month - 1 + months_ahead
    return now.replace(
        year=now.year + month_index // 12,
        month=month_index % 12 + 1,
        day=1,
        hour=RUN_HOUR,
        minute=0,
        second=0,
        microsecond=0,
    )


def calculate_next_run(frequency: ReportFrequency | str | None, now: datetime) -> datetime:
    """Return the next delivery time for ``frequency`` after ``now``.

    Every run lands at 08:00 in ``now``'s timezone. Monthly and quarterly
    schedules move to the first day of the month one or three months ahead;
    unrecognised frequencies behave like daily ones.
    """

    if not isinstance(frequency, ReportFrequency):
        frequency = ReportFrequency.parse(frequency)

    if frequency in _MONTH_OFFSETS:
        return _first_of_month(now, _MONTH_OFFSETS[frequency])

    anchor = now.replace(hour=RUN_HOUR, minute=0, second=0, microsecond=0)
    return anchor + timedelta(days=_DAY_OFFSETS[frequency])


def find_due_schedules(session: Session, now: datetime) -> list[ScheduledReport]:
    """Return every schedule whose ``next_run`` is at or before ``now``.

    The result is a snapshot; rows are not locked or claimed.
    """

    stmt = (
        select(ScheduledReport)
        .where(ScheduledReport.next_run <= now)
        .order_by(ScheduledReport.next_run, ScheduledReport.id)
    )
    return list(session.scalars(stmt))


def mark_schedule_run(schedule: ScheduledReport, now: datetime) -> None:
    """Record a successful delivery and advance the schedule."""

    schedule.last_run = now
    schedule.next_run = calculate_next_run(schedule.frequency, now)


def decode_report_filters(raw: str | bytes | dict[str, Any] | None) -> ReportFilters:
    """Decode a stored filter payload, raising :class:`FilterParseError`."""

    if raw is None or raw == "" or raw == b"":
        payload: Any = {}
    elif isinstance(raw, (str, bytes)):
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise FilterParseError(f"Filter payload is not valid JSON: {exc.msg}") from exc
    else:
        payload = raw

    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise FilterParseError(f"Filter payload must be an object, got {type(payload).__name__}")

    try:
        return ReportFilters.model_validate(payload)
    except ValidationError as exc:
        raise FilterParseError(f"Filter payload is invalid: {exc.error_count()} errors") from exc


def parse_report_filters(
    raw: str | bytes | dict[str, Any] | None, *, schedule_id: int | None = None
) -> ReportFilters:
    """Normalize a stored filter payload, substituting defaults when unreadable."""

    try:
        return decode_report_filters(raw)
    except FilterParseError as exc:
        LOGGER.warning(
            "report_filters_defaulted",
            schedule_id=schedule_id,
            error=str(exc),
            raw=raw if isinstance(raw, str) else repr(raw),
        )
        return ReportFilters()


def create_schedule(
    session: Session,
    payload: ScheduledReportCreate,
    *,
    now: datetime | None = None,
) -> ScheduledReport:
    """Persist a new schedule whose first run follows the frequency rules."""

    now = now or datetime.now(timezone.utc)
    schedule = ScheduledReport(
        user_id=payload.user_id,
        report_name=payload.report_name.strip(),
        report_type=payload.report_type.strip().lower(),
        frequency=payload.frequency.strip().lower(),
        recipients=payload.recipients.strip(),
        filters=json.dumps(payload.to_filters().to_payload()),
        file_format=payload.file_format.strip().lower() or None,
        next_run=calculate_next_run(payload.frequency, now),
    )
    session.add(schedule)
    session.flush()
    LOGGER.info(
        "report_schedule_created",
        schedule_id=schedule.id,
        report_type=schedule.report_type,
        frequency=schedule.frequency,
        next_run=schedule.next_run.isoformat(),
    )
    return schedule


__all__ = [
    "RUN_HOUR",
    "calculate_next_run",
    "create_schedule",
    "decode_report_filters",
    "find_due_schedules",
    "mark_schedule_run",
    "parse_report_filters",
]
