"""Scheduled report trigger and schedule registration endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..core.security import require_scheduler_secret
from ..db import get_session_dependency
from ..schemas.reports import DispatchResponse, ScheduledReportCreate, ScheduledReportRead
from ..services.report_dispatch import NO_REPORTS_MESSAGE, ReportDispatcher
from ..services.report_schedule import create_schedule

LOGGER = structlog.get_logger(__name__)

router = APIRouter(tags=["reports"], dependencies=[Depends(require_scheduler_secret)])


def get_report_dispatcher(
    session: Session = Depends(get_session_dependency),
) -> ReportDispatcher:
    """Return the dispatcher bound to the request's session."""

    return ReportDispatcher(session)


@router.post(
    "/send-scheduled-reports",
    response_model=DispatchResponse,
    response_model_exclude_none=True,
)
def send_scheduled_reports(
    dispatcher: ReportDispatcher = Depends(get_report_dispatcher),
) -> DispatchResponse | JSONResponse:
    """Run one dispatch pass over every schedule that is due."""

    try:
        results = dispatcher.run()
    except Exception as exc:
        LOGGER.exception("scheduled_report_dispatch_failed", error=str(exc))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": str(exc) or "Failed to process scheduled reports"},
        )

    if not results:
        return DispatchResponse(processed=0, results=[], message=NO_REPORTS_MESSAGE)
    return DispatchResponse(processed=len(results), results=results)


@router.post(
    "/scheduled-reports",
    response_model=ScheduledReportRead,
    status_code=status.HTTP_201_CREATED,
)
def register_scheduled_report(
    payload: ScheduledReportCreate,
    session: Session = Depends(get_session_dependency),
) -> ScheduledReportRead:
    """Persist a new schedule and return it with its first ``next_run``."""

    schedule = create_schedule(session, payload)
    session.commit()
    return ScheduledReportRead.model_validate(schedule)
