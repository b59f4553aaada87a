"""Tests for the dispatch loop over due report schedules."""

from __future__ import annotations

import json
from datetime import datetime, timedelta

import pytest

from app.backend.src.db import get_engine, session_scope
from app.backend.src.models import ScheduledReport
from app.backend.src.models.base import Base
from app.backend.src.schemas.reports import ReportFilters
from app.backend.src.services.mail import MailResult
from app.backend.src.services import report_dispatch
from app.backend.src.services.report_dispatch import ReportDispatcher, attachment_filename
from app.backend.src.services.report_schedule import calculate_next_run, find_due_schedules

NOW = datetime(2024, 3, 10, 12, 0)


class RecordingMailer:
    def __init__(self, result: MailResult | None = None) -> None:
        self.result = result or MailResult(success=True, message_id="<1@mg.example>")
        self.sent: list[dict] = []

    def send_email(self, **message) -> MailResult:
        self.sent.append(message)
        return self.result


@pytest.fixture(autouse=True)
def setup_database() -> None:  # type: ignore[no-untyped-def]
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


def _add_schedule(
    session,
    name: str,
    report_type: str,
    *,
    next_run: datetime,
    frequency: str = "weekly",
    file_format: str | None = "pdf",
    filters: str | None = None,
) -> int:
    schedule = ScheduledReport(
        user_id="user-1",
        report_name=name,
        report_type=report_type,
        frequency=frequency,
        recipients="ops@example.com; cfo@example.com",
        filters=filters if filters is not None else json.dumps(ReportFilters().to_payload()),
        file_format=file_format,
        next_run=next_run,
    )
    session.add(schedule)
    session.flush()
    return schedule.id


def test_failure_in_one_schedule_does_not_stop_the_others(source_factory) -> None:
    with session_scope() as session:
        first = _add_schedule(session, "Daily Ops", "operational", next_run=NOW - timedelta(hours=3), frequency="daily")
        second = _add_schedule(session, "Weekly Finance", "financial", next_run=NOW - timedelta(hours=2))
        third = _add_schedule(session, "Compliance Review", "compliance", next_run=NOW - timedelta(hours=1), file_format="csv")

    mailer = RecordingMailer()
    with session_scope() as session:
        dispatcher = ReportDispatcher(
            session, mailer=mailer, data_source=source_factory(failing=("billing",))
        )
        results = dispatcher.run(NOW)

    assert [result.id for result in results] == [first, second, third]
    assert [result.success for result in results] == [True, False, True]
    assert results[1].error == "Failed to fetch billing data"
    assert results[2].format == "csv"
    assert len(mailer.sent) == 2

    with session_scope() as session:
        ops = session.get(ScheduledReport, first)
        finance = session.get(ScheduledReport, second)
        compliance = session.get(ScheduledReport, third)

        assert ops.last_run == NOW
        assert ops.next_run == calculate_next_run("daily", NOW)
        assert finance.last_run is None
        assert finance.next_run == NOW - timedelta(hours=2)
        assert compliance.next_run == calculate_next_run("weekly", NOW)
        assert compliance.next_run > NOW


def test_delivery_failure_keeps_schedule_due(hospital_source) -> None:
    with session_scope() as session:
        schedule_id = _add_schedule(session, "Weekly Finance", "financial", next_run=NOW - timedelta(minutes=5))

    mailer = RecordingMailer(MailResult(success=False, error="Mail gateway returned 502"))
    with session_scope() as session:
        results = ReportDispatcher(session, mailer=mailer, data_source=hospital_source).run(NOW)

    assert len(results) == 1
    assert results[0].success is False
    assert results[0].error == "Mail gateway returned 502"

    with session_scope() as session:
        schedule = session.get(ScheduledReport, schedule_id)
        assert schedule.last_run is None
        assert [due.id for due in find_due_schedules(session, NOW)] == [schedule_id]


def test_message_contents(hospital_source) -> None:
    with session_scope() as session:
        _add_schedule(
            session,
            "Monthly  Clinical Outcomes",
            "clinical",
            next_run=NOW,
            frequency="monthly",
            file_format="excel",
        )

    mailer = RecordingMailer()
    with session_scope() as session:
        ReportDispatcher(session, mailer=mailer, data_source=hospital_source).run(NOW)

    message = mailer.sent[0]
    assert message["to"] == ["ops@example.com", "cfo@example.com"]
    assert message["subject"] == "Monthly  Clinical Outcomes - Scheduled Report"
    assert message["text"] == "Your scheduled clinical report is attached."
    assert "Monthly  Clinical Outcomes" in message["html"]
    (attachment,) = message["attachments"]
    assert attachment.filename == "Monthly_Clinical_Outcomes.csv"
    assert attachment.content_type == "application/vnd.ms-excel"
    assert attachment.data.startswith(b'"Clinical Outcomes Report"')


def test_unreadable_filters_use_defaults(hospital_source) -> None:
    with session_scope() as session:
        _add_schedule(session, "Broken Filters", "compliance", next_run=NOW, filters="{oops")

    mailer = RecordingMailer()
    with session_scope() as session:
        results = ReportDispatcher(session, mailer=mailer, data_source=hospital_source).run(NOW)

    assert results[0].success is True
    assert mailer.sent[0]["attachments"][0].data.startswith(b"%PDF")


def test_future_schedules_are_not_processed(hospital_source) -> None:
    with session_scope() as session:
        _add_schedule(session, "Later", "financial", next_run=NOW + timedelta(seconds=1))

    mailer = RecordingMailer()
    with session_scope() as session:
        results = ReportDispatcher(session, mailer=mailer, data_source=hospital_source).run(NOW)

    assert results == []
    assert mailer.sent == []


def test_repeated_runs_advance_next_run(hospital_source) -> None:
    with session_scope() as session:
        schedule_id = _add_schedule(session, "Daily Ops", "operational", next_run=NOW, frequency="daily")

    mailer = RecordingMailer()
    run_at = NOW
    previous = NOW
    for _ in range(3):
        with session_scope() as session:
            results = ReportDispatcher(session, mailer=mailer, data_source=hospital_source).run(run_at)
        assert [result.success for result in results] == [True]
        with session_scope() as session:
            next_run = session.get(ScheduledReport, schedule_id).next_run
        assert next_run > previous
        previous = next_run
        run_at = next_run

    assert len(mailer.sent) == 3


def test_attachment_filename_collapses_whitespace() -> None:
    assert attachment_filename("Q1  Board\tPack", "pdf") == "Q1_Board_Pack.pdf"


def test_attachment_filename_replaces_path_separators() -> None:
    assert attachment_filename("North/South \\ Wing", "csv") == "North_South_Wing.csv"


class ExpiringSession:
    def __init__(self) -> None:
        self.rolled_back = False

    def commit(self) -> None:
        pass

    def rollback(self) -> None:
        self.rolled_back = True


class ExpiringSchedule:
    """Row whose attributes can no longer be loaded once the session rolls back."""

    def __init__(self, session: ExpiringSession, **fields) -> None:
        self._session = session
        self._fields = fields

    def __getattr__(self, name):
        if self._session.rolled_back:
            raise RuntimeError("row no longer exists")
        return self._fields[name]


def test_rows_expired_by_rollback_fail_individually(monkeypatch, hospital_source) -> None:
    session = ExpiringSession()
    schedules = [
        ExpiringSchedule(
            session,
            id=schedule_id,
            report_name=name,
            report_type="financial",
            frequency="weekly",
            file_format="pdf",
            filters=None,
            recipient_list=["ops@example.com"],
        )
        for schedule_id, name in ((1, "Weekly Finance"), (2, "Weekly Billing"))
    ]
    monkeypatch.setattr(report_dispatch, "find_due_schedules", lambda session, now: schedules)

    mailer = RecordingMailer(MailResult(success=False, error="Mail gateway returned 502"))
    results = ReportDispatcher(session, mailer=mailer, data_source=hospital_source).run(NOW)

    assert [(result.id, result.name, result.success) for result in results] == [
        (1, "Weekly Finance", False),
        (2, "Weekly Billing", False),
    ]
    assert results[0].error == "Mail gateway returned 502"
    assert results[1].error == "row no longer exists"
    assert len(mailer.sent) == 1
