"""Celery application factory for scheduled report delivery."""

from __future__ import annotations

import ssl
from pathlib import Path
from typing import Any

import structlog
from celery import Celery, signals

from app.backend.src.core.config import get_settings
from app.backend.src.core.logging import configure_logging

LOGGER = structlog.get_logger(__name__)
PROJECT_ROOT = Path(__file__).resolve().parents[1]

DISPATCH_TASK_NAME = "tasks.send_scheduled_reports"

settings = get_settings()


def _resolve_ca_cert_path(path: str | None) -> str | None:
    """Return an absolute CA bundle path, or ``None`` to use the system store.

    Relative paths are resolved against the project root because redis-py
    requires an absolute path for ``ssl_ca_certs``.
    """

    if not path:
        return None

    candidate = Path(path).expanduser()
    if not candidate.is_absolute():
        candidate = PROJECT_ROOT / candidate
    if candidate.is_file():
        return str(candidate)

    LOGGER.warning(
        "redis_ca_certificate_missing",
        configured_path=path,
        resolved_path=str(candidate),
    )
    return None


def _build_ssl_options() -> dict[str, Any]:
    options: dict[str, Any] = {"ssl_cert_reqs": ssl.CERT_REQUIRED}
    resolved_cert = _resolve_ca_cert_path(settings.redis_ca_cert_path)
    if resolved_cert:
        options["ssl_ca_certs"] = resolved_cert
    return options


def build_beat_schedule(interval_seconds: int) -> dict[str, dict[str, Any]]:
    """Return the beat entry that triggers one dispatch pass per interval."""

    return {
        "send-scheduled-reports": {
            "task": DISPATCH_TASK_NAME,
            "schedule": float(interval_seconds),
            "options": {"expires": float(interval_seconds)},
        }
    }


celery = Celery(
    "hospital_reports",
    broker=settings.broker_url,
    backend=settings.result_backend,
    include=["tasks.report_tasks"],
)

celery_conf: dict[str, object] = {
    "task_default_queue": "reports",
    "task_serializer": "json",
    "accept_content": ["json"],
    "result_serializer": "json",
    "timezone": "UTC",
    "enable_utc": True,
    "worker_prefetch_multiplier": 1,
    "beat_schedule": build_beat_schedule(settings.report_dispatch_interval_seconds),
    "broker_transport_options": {"global_keyprefix": "hospital-reports-broker:"},
    "result_backend_transport_options": {"global_keyprefix": "hospital-reports-result:"},
    "broker_connection_retry_on_startup": True,
}

if settings.broker_url.startswith("rediss://"):
    celery_conf["broker_use_ssl"] = _build_ssl_options()

if settings.result_backend.startswith("rediss://"):
    celery_conf["redis_backend_use_ssl"] = _build_ssl_options()

celery.conf.update(**celery_conf)

LOGGER.info(
    "celery_bootstrap_ready",
    broker=settings.broker_url,
    backend=settings.result_backend,
    dispatch_interval_seconds=settings.report_dispatch_interval_seconds,
)


@signals.setup_logging.connect
def _configure_worker_logging(**_: Any) -> None:
    configure_logging()


@signals.worker_ready.connect
def _log_worker_configuration(sender: Any | None = None, **_: Any) -> None:
    """Emit the registered report tasks once the worker is up."""

    app = sender.app if sender is not None else celery
    registered_tasks = sorted(
        task_name for task_name in app.tasks.keys() if task_name.startswith("tasks.")
    )
    LOGGER.info(
        "celery_worker_configuration",
        default_queue=app.conf.task_default_queue,
        registered_tasks=registered_tasks,
    )


__all__ = ["DISPATCH_TASK_NAME", "build_beat_schedule", "celery"]
