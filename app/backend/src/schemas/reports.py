"""Report model, filter and API schemas for the scheduled report pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ReportCategory(str, Enum):
    """Report families produced by the metrics aggregator."""

    FINANCIAL = "financial"
    CLINICAL = "clinical"
    OPERATIONAL = "operational"
    COMPLIANCE = "compliance"
    OTHER = "other"

    @classmethod
    def parse(cls, value: str | None) -> "ReportCategory":
        """Return the matching category, falling back to :attr:`OTHER`."""

        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.OTHER


class ReportFrequency(str, Enum):
    """Supported delivery cadences."""

    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"

    @classmethod
    def parse(cls, value: str | None) -> "ReportFrequency":
        """Return the matching frequency; unknown values run daily."""

        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.DAILY


class ReportFormat(str, Enum):
    """Output encodings a schedule may request."""

    PDF = "pdf"
    EXCEL = "excel"
    CSV = "csv"
    HTML = "html"

    @classmethod
    def parse(cls, value: str | None) -> "ReportFormat":
        """Return the matching format; unknown or missing values render as PDF."""

        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.PDF


class ChartType(str, Enum):
    BAR = "bar"
    PIE = "pie"
    LINE = "line"


class DateRange(BaseModel):
    """Inclusive reporting window; either bound may be open."""

    from_: date | None = Field(default=None, alias="from")
    to: date | None = None

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("from_", "to", mode="before")
    @classmethod
    def _coerce_timestamp(cls, value: Any) -> Any:
        """Accept ISO timestamps (``2024-01-01T00:00:00.000Z``) as dates."""

        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, str):
            text = value.strip()
            if not text:
                return None
            try:
                return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
            except ValueError:
                return value
        return value

    @property
    def is_open(self) -> bool:
        return self.from_ is None and self.to is None


class ReportFilters(BaseModel):
    """Normalized filter payload stored alongside each schedule."""

    date_range: DateRange = Field(default_factory=DateRange, alias="dateRange")
    department_filter: str = Field(default="all", alias="departmentFilter")
    report_type_filter: str = Field(default="all", alias="reportTypeFilter")
    include_summary: bool = Field(default=True, alias="includeSummary")
    include_tables: bool = Field(default=True, alias="includeTables")
    include_charts: bool = Field(default=True, alias="includeCharts")

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _upgrade_legacy_payload(cls, data: Any) -> Any:
        """Complete payloads written before ``dateRange`` existed."""

        if not isinstance(data, dict):
            return data
        if data.get("dateRange") is not None or data.get("date_range") is not None:
            return data

        upgraded = {key: value for key, value in data.items() if key not in ("dateRange", "date_range")}
        upgraded["dateRange"] = {"from": None, "to": None}
        # Stored camelCase payloads predate the report type filter.
        if "reportTypeFilter" in data:
            upgraded["reportTypeFilter"] = "all"
        return upgraded

    @field_validator("department_filter", "report_type_filter", mode="before")
    @classmethod
    def _default_to_all(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return "all"
        return value

    @field_validator("include_summary", "include_tables", "include_charts", mode="before")
    @classmethod
    def _include_unless_false(cls, value: Any) -> Any:
        """Only an explicit ``false`` turns a section off."""

        if value is None:
            return True
        return value

    @property
    def department(self) -> str | None:
        """Return the selected department, or ``None`` for every department."""

        if self.department_filter.strip().lower() == "all":
            return None
        return self.department_filter.strip()

    def to_payload(self) -> dict[str, Any]:
        """Serialize with the camelCase keys used in stored schedules."""

        return self.model_dump(mode="json", by_alias=True)


@dataclass(frozen=True, slots=True)
class ChartSpec:
    """Format-agnostic description of one chart.

    ``source`` names an alternate series on the report model; ``None`` draws
    from the row list. ``value_field`` overrides the row's primary metric.
    """

    type: ChartType
    title: str
    source: str | None = None
    value_field: str | None = None


@dataclass(frozen=True, slots=True)
class ReportModel:
    """Canonical report produced by the aggregator and read by the renderers."""

    title: str
    generated_on: date
    summary: str
    rows: list[dict[str, Any]]
    totals: dict[str, float] | None = None
    averages: dict[str, float] | None = None
    metrics: dict[str, float] = field(default_factory=dict)
    series: dict[str, dict[str, float]] = field(default_factory=dict)
    charts: list[ChartSpec] = field(default_factory=list)
    fallback: bool = False

    @property
    def columns(self) -> list[str]:
        """Column order is defined by the first row's keys."""

        if not self.rows:
            return []
        return list(self.rows[0].keys())

    @property
    def summary_block(self) -> tuple[str, dict[str, float]] | None:
        """Return ``("Total", totals)`` or ``("Average", averages)`` if present."""

        if self.totals:
            return "Total", self.totals
        if self.averages:
            return "Average", self.averages
        return None


@dataclass(frozen=True, slots=True)
class RenderedReport:
    """Encoded report ready to be attached to an email."""

    data: bytes
    extension: str
    media_type: str


class DispatchResult(BaseModel):
    """Outcome of processing a single due schedule."""

    id: int
    name: str
    format: str | None = None
    success: bool
    error: str | None = None


class DispatchResponse(BaseModel):
    """Response body for the scheduled report trigger."""

    success: bool = True
    processed: int
    results: list[DispatchResult] = Field(default_factory=list)
    message: str | None = None


class ScheduledReportCreate(BaseModel):
    """Payload for registering a new report schedule."""

    report_name: str = Field(alias="reportName", min_length=1)
    report_type: str = Field(alias="reportType", min_length=1)
    frequency: str = Field(min_length=1)
    recipients: str = Field(min_length=1)
    user_id: str | None = Field(default=None, alias="userId")
    date_range: DateRange = Field(default_factory=DateRange, alias="dateRange")
    department_filter: str = Field(default="all", alias="departmentFilter")
    report_type_filter: str = Field(default="all", alias="reportTypeFilter")
    file_format: str = Field(default="pdf", alias="fileFormat")
    include_charts: bool = Field(default=True, alias="includeCharts")
    include_tables: bool = Field(default=True, alias="includeTables")
    include_summary: bool = Field(default=True, alias="includeSummary")

    model_config = ConfigDict(populate_by_name=True)

    def to_filters(self) -> ReportFilters:
        return ReportFilters(
            date_range=self.date_range,
            department_filter=self.department_filter,
            report_type_filter=self.report_type_filter,
            include_summary=self.include_summary,
            include_tables=self.include_tables,
            include_charts=self.include_charts,
        )


class ScheduledReportRead(BaseModel):
    """Schedule record exposed via the API."""

    id: int
    user_id: str | None
    report_name: str
    report_type: str
    frequency: str
    recipients: str
    filters: str | None
    file_format: str | None
    last_run: datetime | None
    next_run: datetime

    model_config = ConfigDict(from_attributes=True)


__all__ = [
    "ChartSpec",
    "ChartType",
    "DateRange",
    "DispatchResponse",
    "DispatchResult",
    "RenderedReport",
    "ReportCategory",
    "ReportFilters",
    "ReportFormat",
    "ReportFrequency",
    "ReportModel",
    "ScheduledReportCreate",
    "ScheduledReportRead",
]
