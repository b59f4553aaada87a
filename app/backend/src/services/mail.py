"""Outbound email through the Mailgun HTTP API."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

import httpx
import structlog

from app.backend.src.core.config import Settings, get_settings

LOGGER = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class EmailAttachment:
    """Binary file attached to an outgoing message."""

    data: bytes
    filename: str
    content_type: str = "application/octet-stream"


@dataclass(frozen=True, slots=True)
class MailResult:
    """Outcome reported by the mail gateway."""

    success: bool
    error: str | None = None
    message_id: str | None = None


@dataclass
class MailgunMailer:
    """Send messages with attachments via Mailgun.

    Transport and API failures are returned as unsuccessful
    :class:`MailResult` values rather than raised.
    """

    settings: Settings = field(default_factory=get_settings)
    transport: httpx.BaseTransport | None = None

    @property
    def sender(self) -> str:
        return f"{self.settings.mail_from_name} <reports@{self.settings.mailgun_domain}>"

    def send_email(
        self,
        *,
        to: Sequence[str],
        subject: str,
        text: str,
        html: str,
        attachments: Sequence[EmailAttachment] = (),
    ) -> MailResult:
        if not self.settings.mail_enabled:
            LOGGER.warning("mail_gateway_not_configured", subject=subject)
            return MailResult(success=False, error="Mail gateway is not configured")
        if not to:
            return MailResult(success=False, error="No recipients")

        url = f"{self.settings.mailgun_base_url.rstrip('/')}/{self.settings.mailgun_domain}/messages"
        data = {
            "from": self.sender,
            "to": list(to),
            "subject": subject,
            "text": text,
            "html": html,
        }
        files = [
            ("attachment", (attachment.filename, attachment.data, attachment.content_type))
            for attachment in attachments
        ]
        api_key = self.settings.mailgun_api_key.get_secret_value()

        try:
            with httpx.Client(
                timeout=self.settings.mail_timeout_seconds,
                transport=self.transport,
            ) as client:
                response = client.post(url, auth=("api", api_key), data=data, files=files)
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            LOGGER.error(
                "mail_send_rejected",
                status_code=exc.response.status_code,
                subject=subject,
                body=exc.response.text[:500],
            )
            return MailResult(success=False, error=f"Mail gateway returned {exc.response.status_code}")
        except httpx.HTTPError as exc:
            LOGGER.error("mail_send_failed", subject=subject, error=str(exc))
            return MailResult(success=False, error=str(exc) or exc.__class__.__name__)

        message_id = None
        try:
            message_id = response.json().get("id")
        except ValueError:
            pass
        LOGGER.info("mail_sent", recipients=len(to), subject=subject, message_id=message_id)
        return MailResult(success=True, message_id=message_id)


def send_email(
    to: Sequence[str] | str,
    subject: str,
    text: str,
    html: str,
    attachments: Sequence[EmailAttachment] = (),
) -> MailResult:
    """Send one message with the configured gateway.

    ``to`` may be a list or a comma separated string of addresses.
    """

    if isinstance(to, str):
        to = [address.strip() for address in to.split(",") if address.strip()]
    return MailgunMailer().send_email(
        to=to, subject=subject, text=text, html=html, attachments=attachments
    )


__all__ = ["EmailAttachment", "MailResult", "MailgunMailer", "send_email"]
