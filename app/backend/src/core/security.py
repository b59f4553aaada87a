"""Shared-secret authorization for machine triggers."""

from __future__ import annotations

import secrets

import structlog
from fastapi import Header

from app.backend.src.core.config import get_settings
from app.backend.src.services.errors import AuthorizationError

LOGGER = structlog.get_logger(__name__)

API_KEY_HEADER = "x-api-key"


def verify_scheduler_secret(provided: str | None) -> None:
    """Raise :class:`AuthorizationError` unless ``provided`` matches the secret."""

    expected = get_settings().report_scheduler_secret.get_secret_value()
    if provided is None or not secrets.compare_digest(
        provided.encode("utf-8"), expected.encode("utf-8")
    ):
        LOGGER.warning("scheduler_secret_rejected", header_present=provided is not None)
        raise AuthorizationError(provided)


def require_scheduler_secret(
    x_api_key: str | None = Header(default=None, alias=API_KEY_HEADER),
) -> None:
    """FastAPI dependency enforcing the scheduler shared secret."""

    verify_scheduler_secret(x_api_key)


__all__ = [
    "API_KEY_HEADER",
    "require_scheduler_secret",
    "verify_scheduler_secret",
]
