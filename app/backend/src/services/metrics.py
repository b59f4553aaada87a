"""Prometheus metric definitions for scheduled report delivery."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

scheduled_reports_total = Counter(
    "scheduled_reports_total",
    "Scheduled reports processed by the dispatch loop, by outcome.",
    labelnames=["format", "status"],
)

report_render_seconds = Histogram(
    "report_render_seconds",
    "Time spent encoding a single report.",
    labelnames=["format"],
)

report_section_errors_total = Counter(
    "report_section_errors_total",
    "Document sections replaced by an inline error note.",
    labelnames=["section"],
)

dispatch_duration_seconds = Histogram(
    "report_dispatch_duration_seconds",
    "Duration of a full pass over the due schedules.",
)

__all__ = [
    "dispatch_duration_seconds",
    "report_render_seconds",
    "report_section_errors_total",
    "scheduled_reports_total",
]
