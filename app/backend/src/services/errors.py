"""Exceptions raised by the scheduled report pipeline."""

from __future__ import annotations


class ReportPipelineError(Exception):
    """Base class for scheduled report failures."""


class AuthorizationError(ReportPipelineError):
    """Raised when the trigger's shared secret is missing or wrong."""

    def __init__(self, provided: str | None) -> None:
        super().__init__("Unauthorized")
        self.provided = provided


class FilterParseError(ReportPipelineError):
    """Raised when a stored filter payload cannot be decoded."""


class DataFetchError(ReportPipelineError):
    """Raised when a domain-store query fails."""


class RenderError(ReportPipelineError):
    """Raised when a document section cannot be drawn."""


class DeliveryError(ReportPipelineError):
    """Raised when the mail gateway rejects a report."""


__all__ = [
    "AuthorizationError",
    "DataFetchError",
    "DeliveryError",
    "FilterParseError",
    "RenderError",
    "ReportPipelineError",
]
