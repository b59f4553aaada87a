"""End-to-end dispatch over the seeded demo hospital."""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from app.backend.src.db import get_engine, session_scope
from app.backend.src.models.base import Base
from app.backend.src.services.mail import MailResult
from app.backend.src.services.report_dispatch import ReportDispatcher
from app.backend.src.services.seed import DEMO_SCHEDULES, seed_demo_hospital


class RecordingMailer:
    def __init__(self) -> None:
        self.sent: list[dict] = []

    def send_email(self, **message) -> MailResult:
        self.sent.append(message)
        return MailResult(success=True)


@pytest.fixture(autouse=True)
def setup_database() -> None:  # type: ignore[no-untyped-def]
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


def test_seed_is_idempotent() -> None:
    with session_scope() as session:
        first = seed_demo_hospital(session, today=date(2024, 3, 10))
    with session_scope() as session:
        second = seed_demo_hospital(session, today=date(2024, 3, 10))

    assert first.created is True
    assert first.schedules == len(DEMO_SCHEDULES)
    assert second.created is False


def test_seeded_schedules_are_delivered_from_the_database() -> None:
    with session_scope() as session:
        seed_demo_hospital(session)

    mailer = RecordingMailer()
    with session_scope() as session:
        results = ReportDispatcher(session, mailer=mailer).run(datetime.now(timezone.utc))

    assert len(results) == len(DEMO_SCHEDULES)
    assert all(result.success for result in results), [result.error for result in results]
    extensions = sorted(message["attachments"][0].filename.rsplit(".", 1)[1] for message in mailer.sent)
    assert extensions == ["csv", "csv", "html", "pdf"]
