"""Celery task that runs the scheduled report dispatch loop."""

from __future__ import annotations

from typing import Any

import structlog

from app.backend.src.db import session_scope
from app.backend.src.services.report_dispatch import ReportDispatcher

from .worker import DISPATCH_TASK_NAME, celery

LOGGER = structlog.get_logger(__name__)


@celery.task(name=DISPATCH_TASK_NAME)
def send_scheduled_reports() -> dict[str, Any]:
    """Deliver every due schedule and return a summary of the pass."""

    with session_scope() as session:
        results = ReportDispatcher(session).run()

    failed = [result.id for result in results if not result.success]
    LOGGER.info(
        "scheduled_report_task_completed",
        processed=len(results),
        failed=len(failed),
    )
    return {
        "processed": len(results),
        "failed_ids": failed,
        "results": [result.model_dump(exclude_none=True) for result in results],
    }
