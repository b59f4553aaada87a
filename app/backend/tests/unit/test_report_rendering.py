"""Tests for the CSV, HTML, spreadsheet and PDF encoders."""

from __future__ import annotations

import csv
from datetime import date
from io import StringIO

import pytest
from prometheus_client import REGISTRY

from app.backend.src.schemas.reports import (
    ChartSpec,
    ChartType,
    DateRange,
    ReportFilters,
    ReportModel,
)
from app.backend.src.services.report_metrics import (
    CLINICAL_TITLE,
    COMPLIANCE_TITLE,
    FINANCIAL_TITLE,
    OPERATIONAL_TITLE,
    build_report_model,
)
from app.backend.src.services.report_pdf import render_pdf_report
from app.backend.src.services.report_rendering import (
    CSV_MEDIA_TYPE,
    EXCEL_MEDIA_TYPE,
    NO_DATA_PAYLOAD,
    render_csv_report,
    render_email_html,
    render_excel_report,
    render_html_report,
    render_report,
)

TODAY = date(2024, 3, 10)


@pytest.fixture()
def financial_model() -> ReportModel:
    return ReportModel(
        title=FINANCIAL_TITLE,
        generated_on=TODAY,
        summary='Revenue of $1,000 "net" for the period.',
        rows=[
            {"department": "Cardiology", "revenue": 600, "expenses": 450, "profit": 150},
            {"department": "<Emergency>", "revenue": 400, "expenses": 300, "profit": 100},
        ],
        totals={"revenue": 1000, "expenses": 750, "profit": 250},
        series={"payment_distribution": {"Insurance": 60, "Other": 40}},
        charts=[
            ChartSpec(ChartType.BAR, "Department Revenue Comparison"),
            ChartSpec(ChartType.PIE, "Payment Method Distribution", source="payment_distribution"),
            ChartSpec(ChartType.LINE, "Trend Analysis"),
        ],
    )


def _empty_model() -> ReportModel:
    return ReportModel(title=COMPLIANCE_TITLE, generated_on=TODAY, summary="Nothing.", rows=[])


def _sample_value(section: str) -> float:
    return REGISTRY.get_sample_value("report_section_errors_total", {"section": section}) or 0.0


def test_csv_without_rows_is_placeholder() -> None:
    rendered = render_csv_report(_empty_model(), ReportFilters())

    assert rendered.data == NO_DATA_PAYLOAD.encode()
    assert rendered.extension == "csv"
    assert rendered.media_type == CSV_MEDIA_TYPE


def test_csv_layout(financial_model: ReportModel) -> None:
    rendered = render_csv_report(financial_model, ReportFilters())
    text = rendered.data.decode("utf-8")
    rows = list(csv.reader(StringIO(text)))

    assert text.startswith(f'"{FINANCIAL_TITLE}"\n')
    assert rows[1] == ["Report Date", "2024-03-10"]
    assert rows[3] == ["Executive Summary"]
    assert rows[4] == ['Revenue of $1,000 "net" for the period.']
    assert rows[6] == ["department", "revenue", "expenses", "profit"]
    assert rows[7] == ["Cardiology", "600", "450", "150"]
    assert rows[10] == ["Totals"]
    assert rows[11] == ["revenue", "1000"]
    assert '"Revenue of $1,000 ""net"" for the period."' in text


def test_csv_omits_summary_when_disabled(financial_model: ReportModel) -> None:
    rendered = render_csv_report(financial_model, ReportFilters(include_summary=False))

    assert b"Executive Summary" not in rendered.data


def test_excel_is_csv_with_spreadsheet_mime(financial_model: ReportModel) -> None:
    excel = render_excel_report(financial_model, ReportFilters())
    plain = render_csv_report(financial_model, ReportFilters())

    assert excel.data == plain.data
    assert excel.extension == "csv"
    assert excel.media_type == EXCEL_MEDIA_TYPE


def test_html_escapes_values_and_shows_chart_placeholders(financial_model: ReportModel) -> None:
    filters = ReportFilters(
        department_filter="Cardiology",
        date_range=DateRange(from_=date(2024, 1, 1), to=date(2024, 1, 31)),
    )

    html = render_html_report(financial_model, filters).data.decode("utf-8")

    assert "&lt;Emergency&gt;" in html
    assert "<Emergency>" not in html
    assert "Department: Cardiology" in html
    assert "Date Range: Jan 1, 2024 to Jan 31, 2024" in html
    assert "Report Date: Mar 10, 2024" in html
    assert "[BAR CHART VISUALIZATION WOULD APPEAR HERE]" in html
    assert "[PIE CHART VISUALIZATION WOULD APPEAR HERE]" in html
    assert "<h3>Totals</h3>" in html


def test_html_respects_include_flags(financial_model: ReportModel) -> None:
    filters = ReportFilters(include_summary=False, include_tables=False, include_charts=False)

    html = render_html_report(financial_model, filters).data.decode("utf-8")

    assert "Executive Summary" not in html
    assert "Data Table" not in html
    assert "Charts and Visualizations" not in html
    assert FINANCIAL_TITLE in html


def test_pdf_output(financial_model: ReportModel) -> None:
    rendered = render_pdf_report(financial_model, ReportFilters())

    assert rendered.data.startswith(b"%PDF")
    assert rendered.extension == "pdf"
    assert rendered.media_type == "application/pdf"


def test_pdf_survives_failing_chart_painter(financial_model: ReportModel) -> None:
    class BrokenPainter:
        def __init__(self, _canvas) -> None:
            pass

        def draw_bar_series(self, *args) -> None:
            raise RuntimeError("bar failed")

        def draw_pie_series(self, *args) -> None:
            raise RuntimeError("pie failed")

    before = _sample_value("chart")

    rendered = render_pdf_report(financial_model, ReportFilters(), painter_factory=BrokenPainter)

    assert rendered.data.startswith(b"%PDF")
    assert _sample_value("chart") == before + 3


def test_pdf_with_empty_rows(financial_model: ReportModel) -> None:
    rendered = render_pdf_report(_empty_model(), ReportFilters())

    assert rendered.data.startswith(b"%PDF")


@pytest.mark.parametrize(
    ("file_format", "extension"),
    [("pdf", "pdf"), ("excel", "csv"), ("csv", "csv"), ("HTML", "html"), ("docx", "pdf"), (None, "pdf")],
)
def test_render_report_selects_encoder(financial_model, file_format, extension) -> None:
    assert render_report(financial_model, ReportFilters(), file_format).extension == extension


def test_unknown_report_type_renders_general_pdf(hospital_source) -> None:
    model = build_report_model("unknown-type", ReportFilters(), hospital_source, today=TODAY)

    rendered = render_report(model, ReportFilters(), "pdf")

    assert rendered.extension == "pdf"
    assert rendered.data.startswith(b"%PDF")
    assert model.title not in {FINANCIAL_TITLE, CLINICAL_TITLE, OPERATIONAL_TITLE, COMPLIANCE_TITLE}


@pytest.mark.parametrize("category", ["financial", "clinical", "operational", "compliance"])
@pytest.mark.parametrize("file_format", ["pdf", "html", "csv"])
def test_every_category_renders(hospital_source, category, file_format) -> None:
    model = build_report_model(category, ReportFilters(), hospital_source, today=TODAY)

    assert render_report(model, ReportFilters(), file_format).data


def test_email_body_mentions_report() -> None:
    html = render_email_html("Weekly <Finance>", "financial")

    assert "Weekly &lt;Finance&gt;" in html
    assert "Report type: financial" in html
