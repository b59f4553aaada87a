"""Application configuration utilities."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings derived from environment variables."""

    database_url: str = Field(
        default="sqlite:///./hospital.db", alias="DATABASE_URL"
    )
    report_scheduler_secret: SecretStr = Field(alias="REPORT_SCHEDULER_SECRET")
    report_dispatch_interval_seconds: int = Field(
        default=900, alias="REPORT_DISPATCH_INTERVAL_SECONDS", gt=0
    )
    mailgun_api_key: SecretStr | None = Field(default=None, alias="MAILGUN_API_KEY")
    mailgun_domain: str | None = Field(default=None, alias="MAILGUN_DOMAIN")
    mailgun_base_url: str = Field(
        default="https://api.mailgun.net/v3", alias="MAILGUN_BASE_URL"
    )
    mail_from_name: str = Field(default="CareSanar HMS", alias="MAIL_FROM_NAME")
    mail_timeout_seconds: float = Field(default=30.0, alias="MAIL_TIMEOUT_SECONDS")
    redis_url: str = Field(default="redis://localhost:6379/0", alias="REDIS_URL")
    celery_broker_url: str | None = Field(
        default=None, alias="CELERY_BROKER_URL"
    )
    celery_result_backend: str | None = Field(
        default=None, alias="CELERY_RESULT_BACKEND"
    )
    redis_ca_cert_path: str | None = Field(default=None, alias="REDIS_CA_CERT_PATH")

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    @property
    def broker_url(self) -> str:
        """Return the Celery broker URL, defaulting to Redis."""

        return self.celery_broker_url or self.redis_url

    @property
    def result_backend(self) -> str:
        """Return the Celery result backend, defaulting to the Redis URL."""

        if self.celery_result_backend:
            return self.celery_result_backend
        return self.redis_url

    @property
    def mail_enabled(self) -> bool:
        """Return ``True`` when the Mailgun credentials are complete."""

        return bool(self.mailgun_api_key and self.mailgun_domain)


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance.

    Raises a ``pydantic.ValidationError`` when ``REPORT_SCHEDULER_SECRET`` is
    not configured, which stops the API and the worker from starting.
    """

    return Settings()


__all__ = ["Settings", "get_settings"]
