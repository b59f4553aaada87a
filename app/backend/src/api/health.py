"""Health check endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy import text
from sqlalchemy.orm import Session

from ..core.config import get_settings
from ..db import get_session_dependency

router = APIRouter(tags=["health"])


@router.get("/health/live")
def liveness() -> dict[str, str]:
    return {"status": "live"}


@router.get("/health/ready")
def readiness(session: Session = Depends(get_session_dependency)) -> dict[str, str]:
    """Confirm the database answers and report whether outbound mail is configured."""

    session.execute(text("SELECT 1"))
    mail = "configured" if get_settings().mail_enabled else "disabled"
    return {"status": "ready", "mail": mail}


@router.get("/metrics")
def metrics() -> Response:
    """Expose Prometheus metrics for the dispatch loop and renderers."""

    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
