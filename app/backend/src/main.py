"""Entrypoint for the FastAPI application."""

import os

from dotenv import load_dotenv

# Load .env for local development; deployed environments inject variables
env_path = os.path.join(os.path.dirname(__file__), "../.env")
if os.path.exists(env_path):
    load_dotenv(dotenv_path=os.path.abspath(env_path))

import structlog
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api import health, reports
from .core.config import get_settings
from .core.logging import configure_logging
from .services.errors import AuthorizationError

LOGGER = structlog.get_logger(__name__)


async def _authorization_error_handler(request: Request, exc: AuthorizationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"error": "Unauthorized", "provided": exc.provided},
    )


def create_app() -> FastAPI:
    configure_logging()
    settings = get_settings()
    app = FastAPI(title="Hospital Scheduled Reports", version="0.1.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(AuthorizationError, _authorization_error_handler)

    app.include_router(health.router, prefix="/api")
    app.include_router(reports.router, prefix="/api")

    LOGGER.info(
        "application_configured",
        mail_enabled=settings.mail_enabled,
        dispatch_interval_seconds=settings.report_dispatch_interval_seconds,
    )
    return app


app = create_app()
