"""Public API routers exposed by the FastAPI application."""

from . import health, reports

__all__ = ["health", "reports"]
