"""Tests for the Celery wiring of the dispatch loop."""

from __future__ import annotations

import pytest

from app.backend.src.db import get_engine
from app.backend.src.models.base import Base
from tasks.report_tasks import send_scheduled_reports
from tasks.worker import DISPATCH_TASK_NAME, build_beat_schedule, celery


@pytest.fixture(autouse=True)
def setup_database() -> None:  # type: ignore[no-untyped-def]
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


def test_beat_schedule_triggers_dispatch() -> None:
    entry = build_beat_schedule(300)["send-scheduled-reports"]

    assert entry["task"] == DISPATCH_TASK_NAME
    assert entry["schedule"] == 300.0
    assert "send-scheduled-reports" in celery.conf.beat_schedule


def test_task_is_registered() -> None:
    assert send_scheduled_reports.name == "tasks.send_scheduled_reports"
    assert DISPATCH_TASK_NAME in celery.tasks


def test_task_with_nothing_due() -> None:
    summary = send_scheduled_reports.run()

    assert summary == {"processed": 0, "failed_ids": [], "results": []}
