"""Text helpers shared by the report renderers."""

from __future__ import annotations

from datetime import date
from typing import Any

from app.backend.src.schemas.reports import ReportFilters


def column_label(key: str) -> str:
    """Turn a row key such as ``bed_utilization`` into ``Bed Utilization``."""

    return key.replace("_", " ").strip().title()


def format_cell(value: Any) -> str:
    """Render a cell value for human-facing formats."""

    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, float):
        if value.is_integer():
            return f"{int(value):,}"
        return f"{value:,.1f}"
    if isinstance(value, int):
        return f"{value:,}"
    return str(value)


def format_date(value: date) -> str:
    return value.strftime("%b %d, %Y").replace(" 0", " ")


def department_label(filters: ReportFilters) -> str | None:
    """Return the department header line, or ``None`` when reporting on all."""

    if filters.department is None:
        return None
    return f"Department: {filters.department}"


def date_range_label(filters: ReportFilters) -> str | None:
    """Return the date range header line, or ``None`` for an open window."""

    window = filters.date_range
    if window.is_open:
        return None
    start = format_date(window.from_) if window.from_ else "earliest"
    end = format_date(window.to) if window.to else "latest"
    return f"Date Range: {start} to {end}"


__all__ = [
    "column_label",
    "date_range_label",
    "department_label",
    "format_cell",
    "format_date",
]
