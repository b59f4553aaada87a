"""Deliver every due report schedule and advance its timestamps."""

from __future__ import annotations

import re
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Protocol

import structlog
from sqlalchemy.orm import Session

from app.backend.src.models import ScheduledReport
from app.backend.src.schemas.reports import DispatchResult, ReportFormat
from app.backend.src.services.errors import DeliveryError
from app.backend.src.services.mail import EmailAttachment, MailgunMailer, MailResult
from app.backend.src.services.metrics import (
    dispatch_duration_seconds,
    scheduled_reports_total,
)
from app.backend.src.services.report_data import ReportDataSource, SqlReportDataSource
from app.backend.src.services.report_metrics import build_report_model
from app.backend.src.services.report_rendering import render_email_html, render_report
from app.backend.src.services.report_schedule import (
    find_due_schedules,
    mark_schedule_run,
    parse_report_filters,
)

LOGGER = structlog.get_logger(__name__)

NO_REPORTS_MESSAGE = "No reports scheduled for now"
_UNSAFE_FILENAME = re.compile(r"[\s/\\]+")


class Mailer(Protocol):
    def send_email(
        self,
        *,
        to: Sequence[str],
        subject: str,
        text: str,
        html: str,
        attachments: Sequence[EmailAttachment] = (),
    ) -> MailResult: ...


def attachment_filename(report_name: str, extension: str) -> str:
    """Return ``report_name`` with whitespace and path separators collapsed to underscores."""

    return f"{_UNSAFE_FILENAME.sub('_', report_name)}.{extension}"


class ReportDispatcher:
    """Generate, encode and email each due schedule in turn.

    A failure in one schedule is rolled back and reported in its result; the
    remaining schedules are still processed. Timestamps only move after the
    mail gateway accepts the message.
    """

    def __init__(
        self,
        session: Session,
        *,
        mailer: Mailer | None = None,
        data_source: ReportDataSource | None = None,
    ) -> None:
        self.session = session
        self.mailer = mailer or MailgunMailer()
        self.data_source = data_source or SqlReportDataSource(session)

    def run(self, now: datetime | None = None) -> list[DispatchResult]:
        now = now or datetime.now(timezone.utc)
        with dispatch_duration_seconds.time():
            schedules = find_due_schedules(self.session, now)
            LOGGER.info("scheduled_reports_due", count=len(schedules), now=now.isoformat())
            # A rollback expires every loaded row, so identity is read up front.
            identities = [
                (schedule, schedule.id, schedule.report_name, schedule.file_format)
                for schedule in schedules
            ]
            return [
                self._dispatch(schedule, schedule_id, name, stored_format, now)
                for schedule, schedule_id, name, stored_format in identities
            ]

    def _dispatch(
        self,
        schedule: ScheduledReport,
        schedule_id: int,
        name: str,
        stored_format: str | None,
        now: datetime,
    ) -> DispatchResult:
        file_format = ReportFormat.parse(stored_format)

        try:
            self._deliver(schedule, file_format, now)
            mark_schedule_run(schedule, now)
            self.session.commit()
            next_run = schedule.next_run
        except Exception as exc:
            self.session.rollback()
            LOGGER.exception(
                "scheduled_report_failed",
                schedule_id=schedule_id,
                report_name=name,
                error=str(exc),
            )
            scheduled_reports_total.labels(format=file_format.value, status="failed").inc()
            return DispatchResult(
                id=schedule_id,
                name=name,
                format=stored_format,
                success=False,
                error=str(exc) or exc.__class__.__name__,
            )

        scheduled_reports_total.labels(format=file_format.value, status="sent").inc()
        LOGGER.info(
            "scheduled_report_sent",
            schedule_id=schedule_id,
            report_name=name,
            next_run=next_run.isoformat(),
        )
        return DispatchResult(id=schedule_id, name=name, format=stored_format, success=True)

    def _deliver(
        self, schedule: ScheduledReport, file_format: ReportFormat, now: datetime
    ) -> None:
        filters = parse_report_filters(schedule.filters, schedule_id=schedule.id)
        model = build_report_model(
            schedule.report_type, filters, self.data_source, today=now.date()
        )
        rendered = render_report(model, filters, file_format)

        result = self.mailer.send_email(
            to=schedule.recipient_list,
            subject=f"{schedule.report_name} - Scheduled Report",
            text=f"Your scheduled {schedule.report_type} report is attached.",
            html=render_email_html(schedule.report_name, schedule.report_type),
            attachments=[
                EmailAttachment(
                    data=rendered.data,
                    filename=attachment_filename(schedule.report_name, rendered.extension),
                    content_type=rendered.media_type,
                )
            ],
        )
        if not result.success:
            raise DeliveryError(result.error or "Email delivery failed")


__all__ = [
    "Mailer",
    "NO_REPORTS_MESSAGE",
    "ReportDispatcher",
    "attachment_filename",
]
