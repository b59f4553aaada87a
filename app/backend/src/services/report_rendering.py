"""Encode report models as CSV, HTML or PDF and pick the encoder per schedule."""

from __future__ import annotations

import csv
from io import StringIO
from pathlib import Path
from time import perf_counter

import structlog
from jinja2 import Environment, FileSystemLoader, select_autoescape

from app.backend.src.schemas.reports import (
    RenderedReport,
    ReportFilters,
    ReportFormat,
    ReportModel,
)
from app.backend.src.services.metrics import report_render_seconds
from app.backend.src.services.report_pdf import render_pdf_report
from app.backend.src.services.report_text import (
    column_label,
    date_range_label,
    department_label,
    format_cell,
    format_date,
)

LOGGER = structlog.get_logger(__name__)

NO_DATA_PAYLOAD = "No data available"
CSV_MEDIA_TYPE = "text/csv"
HTML_MEDIA_TYPE = "text/html"
EXCEL_MEDIA_TYPE = "application/vnd.ms-excel"

_TEMPLATES_DIR = Path(__file__).resolve().parents[1] / "templates"
_ENV = Environment(
    loader=FileSystemLoader(_TEMPLATES_DIR),
    autoescape=select_autoescape(["html", "j2"]),
    trim_blocks=True,
    lstrip_blocks=True,
)


def render_csv_report(model: ReportModel, filters: ReportFilters) -> RenderedReport:
    """Write the report as quoted CSV; an empty row list yields a placeholder."""

    if not model.rows:
        return RenderedReport(
            data=NO_DATA_PAYLOAD.encode("utf-8"),
            extension="csv",
            media_type=CSV_MEDIA_TYPE,
        )

    buffer = StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow([model.title])
    writer.writerow(["Report Date", model.generated_on.isoformat()])
    writer.writerow([])

    if filters.include_summary:
        writer.writerow(["Executive Summary"])
        writer.writerow([model.summary])
        writer.writerow([])

    columns = model.columns
    writer.writerow(columns)
    writer.writerows([[row.get(column, "") for column in columns] for row in model.rows])

    block = model.summary_block
    if block is not None:
        label, values = block
        writer.writerow([])
        writer.writerow([f"{label}s"])
        writer.writerows([[key, value] for key, value in values.items()])

    return RenderedReport(
        data=buffer.getvalue().encode("utf-8"),
        extension="csv",
        media_type=CSV_MEDIA_TYPE,
    )


def render_excel_report(model: ReportModel, filters: ReportFilters) -> RenderedReport:
    """Spreadsheet delivery reuses the CSV encoding.

    Spreadsheet applications open the CSV directly; only the declared MIME
    type differs from :func:`render_csv_report`.
    """

    rendered = render_csv_report(model, filters)
    return RenderedReport(
        data=rendered.data,
        extension=rendered.extension,
        media_type=EXCEL_MEDIA_TYPE,
    )


def render_html_report(model: ReportModel, filters: ReportFilters) -> RenderedReport:
    """Render a self-contained HTML document with inline styles."""

    columns = model.columns
    template = _ENV.get_template("report.html.j2")
    html = template.render(
        title=model.title,
        report_date=format_date(model.generated_on),
        department_line=department_label(filters),
        date_range_line=date_range_label(filters),
        summary=model.summary if filters.include_summary else None,
        headers=[column_label(column) for column in columns],
        rows=[[format_cell(row.get(column)) for column in columns] for row in model.rows]
        if filters.include_tables
        else [],
        summary_block=_format_summary_block(model) if filters.include_tables else None,
        charts=model.charts if filters.include_charts else [],
    )
    return RenderedReport(
        data=html.encode("utf-8"),
        extension="html",
        media_type=HTML_MEDIA_TYPE,
    )


def _format_summary_block(model: ReportModel) -> tuple[str, list[tuple[str, str]]] | None:
    block = model.summary_block
    if block is None or not model.rows:
        return None
    label, values = block
    return f"{label}s", [(column_label(key), format_cell(value)) for key, value in values.items()]


def render_email_html(report_name: str, report_type: str) -> str:
    """Return the HTML body sent alongside a scheduled report attachment."""

    return _ENV.get_template("report_email.html.j2").render(
        report_name=report_name,
        report_type=report_type,
    )


RENDERERS = {
    ReportFormat.PDF: render_pdf_report,
    ReportFormat.EXCEL: render_excel_report,
    ReportFormat.CSV: render_csv_report,
    ReportFormat.HTML: render_html_report,
}


def render_report(
    model: ReportModel,
    filters: ReportFilters,
    file_format: ReportFormat | str | None = None,
) -> RenderedReport:
    """Encode ``model`` in the requested format, defaulting to PDF."""

    if not isinstance(file_format, ReportFormat):
        file_format = ReportFormat.parse(file_format)

    start = perf_counter()
    rendered = RENDERERS[file_format](model, filters)
    elapsed = perf_counter() - start
    report_render_seconds.labels(format=file_format.value).observe(elapsed)
    LOGGER.info(
        "report_rendered",
        title=model.title,
        format=file_format.value,
        extension=rendered.extension,
        size=len(rendered.data),
        seconds=round(elapsed, 4),
    )
    return rendered


__all__ = [
    "CSV_MEDIA_TYPE",
    "EXCEL_MEDIA_TYPE",
    "HTML_MEDIA_TYPE",
    "NO_DATA_PAYLOAD",
    "RENDERERS",
    "render_csv_report",
    "render_email_html",
    "render_excel_report",
    "render_html_report",
    "render_report",
]
