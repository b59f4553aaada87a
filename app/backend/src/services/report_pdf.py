"""Render report models as paginated PDF documents."""

from __future__ import annotations

from collections.abc import Callable
from io import BytesIO

import structlog
from reportlab.lib.colors import HexColor
from reportlab.lib.pagesizes import letter
from reportlab.lib.utils import simpleSplit
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from app.backend.src.schemas.reports import (
    ChartSpec,
    ChartType,
    RenderedReport,
    ReportFilters,
    ReportModel,
)
from app.backend.src.services.errors import RenderError
from app.backend.src.services.metrics import report_section_errors_total
from app.backend.src.services.report_charts import (
    CanvasChartPainter,
    ChartPainter,
    extract_chart_series,
)
from app.backend.src.services.report_text import (
    column_label,
    date_range_label,
    department_label,
    format_cell,
    format_date,
)

LOGGER = structlog.get_logger(__name__)

PDF_MEDIA_TYPE = "application/pdf"
LINE_CHART_NOTE = "(Line chart shown as bar chart)"

MARGIN = 50
BOTTOM_MARGIN = 60
ROW_HEIGHT = 20

PRIMARY_COLOR = HexColor("#0F172A")
HEADER_FILL = HexColor("#2980B9")
MUTED_TEXT = HexColor("#64748B")
LIGHT_PANEL = HexColor("#F8FAFC")
BORDER_COLOR = HexColor("#E2E8F0")
ERROR_TEXT = HexColor("#B91C1C")


def _fit(text: str, font: str, size: float, max_width: float) -> str:
    """Truncate ``text`` with an ellipsis so it fits inside ``max_width``."""

    if stringWidth(text, font, size) <= max_width:
        return text
    while text and stringWidth(f"{text}...", font, size) > max_width:
        text = text[:-1]
    return f"{text}..."


def render_pdf_report(
    model: ReportModel,
    filters: ReportFilters,
    *,
    painter_factory: Callable[[canvas.Canvas], ChartPainter] = CanvasChartPainter,
) -> RenderedReport:
    """Lay out ``model`` as a PDF.

    Sections are governed by the include flags on ``filters``. A failure while
    drawing the table or a chart replaces that section with an error line and
    the rest of the document is still produced.
    """

    buffer = BytesIO()
    pdf_canvas = canvas.Canvas(buffer, pagesize=letter)
    pdf_canvas.setTitle(model.title)
    width, height = letter
    content_width = width - 2 * MARGIN
    painter = painter_factory(pdf_canvas)

    def new_page() -> float:
        pdf_canvas.showPage()
        return height - MARGIN

    def draw_header() -> float:
        pdf_canvas.setFillColor(PRIMARY_COLOR)
        pdf_canvas.setFont("Helvetica-Bold", 20)
        pdf_canvas.drawString(MARGIN, height - 60, model.title)

        y = height - 82
        pdf_canvas.setFont("Helvetica", 12)
        pdf_canvas.setFillColor(MUTED_TEXT)
        lines = [f"Report Date: {format_date(model.generated_on)}"]
        lines.extend(
            line for line in (department_label(filters), date_range_label(filters)) if line
        )
        for line in lines:
            pdf_canvas.drawString(MARGIN, y, line)
            y -= 16

        pdf_canvas.setStrokeColor(BORDER_COLOR)
        pdf_canvas.line(MARGIN, y, width - MARGIN, y)
        return y - 24

    def draw_summary(top: float) -> float:
        pdf_canvas.setFillColor(PRIMARY_COLOR)
        pdf_canvas.setFont("Helvetica-Bold", 14)
        pdf_canvas.drawString(MARGIN, top, "Executive Summary")
        y = top - 18
        pdf_canvas.setFont("Helvetica", 11)
        for line in simpleSplit(model.summary, "Helvetica", 11, content_width):
            if y < BOTTOM_MARGIN:
                y = new_page()
                pdf_canvas.setFillColor(PRIMARY_COLOR)
                pdf_canvas.setFont("Helvetica", 11)
            pdf_canvas.drawString(MARGIN, y, line)
            y -= 15
        return y - 16

    def draw_table_row(
        top: float,
        cells: list[str],
        column_width: float,
        *,
        header: bool = False,
        shaded: bool = False,
        bold: bool = False,
    ) -> float:
        if header:
            pdf_canvas.setFillColor(HEADER_FILL)
            pdf_canvas.rect(MARGIN, top - ROW_HEIGHT, column_width * len(cells), ROW_HEIGHT, fill=1, stroke=0)
        elif shaded:
            pdf_canvas.setFillColor(LIGHT_PANEL)
            pdf_canvas.rect(MARGIN, top - ROW_HEIGHT, column_width * len(cells), ROW_HEIGHT, fill=1, stroke=0)

        font = "Helvetica-Bold" if header or bold else "Helvetica"
        pdf_canvas.setFont(font, 9)
        pdf_canvas.setFillColor(HexColor("#FFFFFF") if header else PRIMARY_COLOR)
        for index, cell in enumerate(cells):
            x = MARGIN + index * column_width + 6
            pdf_canvas.drawString(x, top - 14, _fit(cell, font, 9, column_width - 12))
        return top - ROW_HEIGHT

    def draw_data_table(top: float) -> float:
        columns = model.columns
        column_width = content_width / len(columns)
        headers = [column_label(column) for column in columns]

        pdf_canvas.setFillColor(PRIMARY_COLOR)
        pdf_canvas.setFont("Helvetica-Bold", 14)
        pdf_canvas.drawString(MARGIN, top, "Data Table")
        y = draw_table_row(top - 8, headers, column_width, header=True)

        for index, row in enumerate(model.rows):
            if y - ROW_HEIGHT < BOTTOM_MARGIN:
                y = draw_table_row(new_page(), headers, column_width, header=True)
            cells = [format_cell(row.get(column)) for column in columns]
            y = draw_table_row(y, cells, column_width, shaded=index % 2 == 0)
        return y - 20

    def draw_summary_table(top: float) -> float:
        block = model.summary_block
        if block is None:
            return top
        label, values = block
        column_width = content_width / 4
        if top - ROW_HEIGHT * (len(values) + 1) < BOTTOM_MARGIN:
            top = new_page()
        y = draw_table_row(top, [label, "Value"], column_width, header=True)
        for key, value in values.items():
            y = draw_table_row(y, [column_label(key), format_cell(value)], column_width, bold=True)
        pdf_canvas.setStrokeColor(BORDER_COLOR)
        pdf_canvas.line(MARGIN, y, MARGIN + column_width * 2, y)
        return y - 20

    def draw_section_error(top: float, section: str, message: str, exc: Exception) -> float:
        error = RenderError(f"{section} could not be drawn: {exc}")
        LOGGER.error(
            "report_pdf_section_failed",
            title=model.title,
            section=section,
            error=str(error),
        )
        report_section_errors_total.labels(section=section).inc()
        if top < BOTTOM_MARGIN:
            top = new_page()
        pdf_canvas.setFont("Helvetica-Oblique", 11)
        pdf_canvas.setFillColor(ERROR_TEXT)
        pdf_canvas.drawString(MARGIN, top, message)
        return top - 20

    def draw_chart_page(chart: ChartSpec) -> None:
        top = new_page()
        pdf_canvas.setFillColor(PRIMARY_COLOR)
        pdf_canvas.setFont("Helvetica-Bold", 16)
        pdf_canvas.drawString(MARGIN, top - 10, chart.title)

        chart_height = 300
        chart_bottom = top - 40 - chart_height
        try:
            series = extract_chart_series(model, chart)
            if chart.type is ChartType.PIE:
                painter.draw_pie_series(series, MARGIN, chart_bottom, content_width, chart_height)
            else:
                painter.draw_bar_series(series, MARGIN, chart_bottom, content_width, chart_height)
        except Exception as exc:
            draw_section_error(chart_bottom, "chart", f"Error generating chart: {chart.title}", exc)
            return

        pdf_canvas.setFillColor(MUTED_TEXT)
        pdf_canvas.setFont("Helvetica", 10)
        caption_y = chart_bottom - 30
        if chart.type is ChartType.LINE:
            pdf_canvas.drawString(MARGIN, caption_y, LINE_CHART_NOTE)
            caption_y -= 14
        pdf_canvas.drawString(MARGIN, caption_y, f"Chart Type: {chart.type.value.capitalize()}")

    y_position = draw_header()
    if filters.include_summary:
        y_position = draw_summary(y_position)

    if filters.include_tables and model.rows:
        try:
            y_position = draw_data_table(y_position)
            y_position = draw_summary_table(y_position)
        except Exception as exc:
            y_position = draw_section_error(y_position, "table", "Error generating table data", exc)

    if filters.include_charts:
        for chart in model.charts:
            draw_chart_page(chart)

    pdf_canvas.save()
    return RenderedReport(data=buffer.getvalue(), extension="pdf", media_type=PDF_MEDIA_TYPE)


__all__ = ["LINE_CHART_NOTE", "PDF_MEDIA_TYPE", "render_pdf_report"]
