"""Chart series extraction and drawing primitives.

Renderers describe charts with :class:`ChartSpec`; this module turns a spec
into a :class:`ChartSeries` and draws it through a :class:`ChartPainter`.
The PDF renderer uses :class:`CanvasChartPainter`, which draws with reportlab
canvas primitives and does not need a charting library.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from reportlab.lib.colors import HexColor
from reportlab.pdfgen.canvas import Canvas

from app.backend.src.schemas.reports import ChartSpec, ReportModel

LABEL_FIELDS = ("department", "name")
PRIMARY_VALUE_FIELDS = ("revenue", "successful", "bed_utilization", "compliant", "metric1")

PALETTE = (
    HexColor("#2980B9"),
    HexColor("#E74C3C"),
    HexColor("#F1C40F"),
    HexColor("#2ECC71"),
    HexColor("#9B59B6"),
)
AXIS_COLOR = HexColor("#0F172A")
MUTED_TEXT = HexColor("#64748B")


@dataclass(frozen=True, slots=True)
class ChartSeries:
    """Labels and values for one chart."""

    title: str
    labels: list[str]
    values: list[float]

    @property
    def is_empty(self) -> bool:
        return not self.values


def _row_label(row: dict[str, Any]) -> str:
    for key in LABEL_FIELDS:
        if row.get(key):
            return str(row[key])
    return ""


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def primary_value(row: dict[str, Any]) -> float:
    """Return the metric a chart plots for a row when none is named."""

    for key in PRIMARY_VALUE_FIELDS:
        if _is_number(row.get(key)) and row[key]:
            return float(row[key])
    for key, value in row.items():
        if key not in LABEL_FIELDS and _is_number(value):
            return float(value)
    return 0.0


def extract_chart_series(model: ReportModel, chart: ChartSpec) -> ChartSeries:
    """Resolve the data a chart should draw from the report model."""

    if chart.source is not None:
        points = model.series.get(chart.source, {})
        return ChartSeries(
            title=chart.title,
            labels=[str(label) for label in points],
            values=[float(value) for value in points.values()],
        )

    labels = []
    values = []
    for row in model.rows:
        labels.append(_row_label(row))
        if chart.value_field is not None:
            raw = row.get(chart.value_field)
            values.append(float(raw) if _is_number(raw) else 0.0)
        else:
            values.append(primary_value(row))
    return ChartSeries(title=chart.title, labels=labels, values=values)


class ChartPainter(Protocol):
    """Drawing primitives a document engine must provide for charts."""

    def draw_bar_series(
        self, series: ChartSeries, x: float, y: float, width: float, height: float
    ) -> None: ...

    def draw_pie_series(
        self, series: ChartSeries, x: float, y: float, width: float, height: float
    ) -> None: ...


class CanvasChartPainter:
    """Draw charts on a reportlab canvas.

    Coordinates follow reportlab conventions: ``(x, y)`` is the bottom-left
    corner of the chart area.
    """

    def __init__(self, pdf_canvas: Canvas) -> None:
        self._canvas = pdf_canvas

    def _draw_empty(self, x: float, y: float, height: float) -> None:
        self._canvas.setFont("Helvetica-Oblique", 10)
        self._canvas.setFillColor(MUTED_TEXT)
        self._canvas.drawString(x, y + height / 2, "No chart data available")

    def draw_bar_series(
        self, series: ChartSeries, x: float, y: float, width: float, height: float
    ) -> None:
        if series.is_empty:
            self._draw_empty(x, y, height)
            return

        pdf = self._canvas
        label_band = 40
        value_band = 12
        axis_y = y + label_band
        max_bar_height = height - label_band - value_band
        max_value = max(max(series.values), 0) or 1
        slot_width = width / len(series.values)
        bar_width = slot_width / 2

        pdf.setStrokeColor(AXIS_COLOR)
        pdf.setLineWidth(0.5)
        pdf.line(x, axis_y, x + width, axis_y)
        pdf.line(x, axis_y, x, y + height)

        for index, (label, value) in enumerate(zip(series.labels, series.values)):
            bar_height = max(value, 0) / max_value * max_bar_height
            bar_x = x + index * slot_width + bar_width / 2
            pdf.setFillColor(PALETTE[0])
            pdf.rect(bar_x, axis_y, bar_width, bar_height, fill=1, stroke=0)

            pdf.setFillColor(AXIS_COLOR)
            pdf.setFont("Helvetica", 8)
            pdf.drawCentredString(bar_x + bar_width / 2, axis_y + bar_height + 3, _format_value(value))

            pdf.saveState()
            pdf.translate(bar_x + bar_width / 2, axis_y - 6)
            pdf.rotate(45)
            pdf.drawRightString(0, 0, label[:12])
            pdf.restoreState()

    def draw_pie_series(
        self, series: ChartSeries, x: float, y: float, width: float, height: float
    ) -> None:
        total = sum(value for value in series.values if value > 0)
        if series.is_empty or total <= 0:
            self._draw_empty(x, y, height)
            return

        pdf = self._canvas
        diameter = min(width / 2, height)
        pie_x = x
        pie_y = y + (height - diameter) / 2
        start = 90.0
        legend_x = x + diameter + 30
        legend_y = y + height - 14

        for index, (label, value) in enumerate(zip(series.labels, series.values)):
            if value <= 0:
                continue
            extent = value / total * 360
            color = PALETTE[index % len(PALETTE)]
            pdf.setFillColor(color)
            pdf.wedge(pie_x, pie_y, pie_x + diameter, pie_y + diameter, start, extent, stroke=0, fill=1)
            start += extent

            pdf.rect(legend_x, legend_y, 10, 10, fill=1, stroke=0)
            pdf.setFillColor(AXIS_COLOR)
            pdf.setFont("Helvetica", 10)
            share = round(value / total * 100)
            pdf.drawString(legend_x + 15, legend_y + 2, f"{label[:20]}: {share}%")
            legend_y -= 16


def _format_value(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.1f}"


__all__ = [
    "CanvasChartPainter",
    "ChartPainter",
    "ChartSeries",
    "extract_chart_series",
    "primary_value",
]
