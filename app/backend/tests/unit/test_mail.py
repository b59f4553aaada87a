"""Tests for the Mailgun gateway."""

from __future__ import annotations

import base64

import httpx

from app.backend.src.core.config import Settings
from app.backend.src.services.mail import EmailAttachment, MailgunMailer


def _settings(**overrides) -> Settings:
    values = {
        "REPORT_SCHEDULER_SECRET": "test-secret",
        "MAILGUN_API_KEY": "key-123",
        "MAILGUN_DOMAIN": "mg.example.com",
        **overrides,
    }
    return Settings(_env_file=None, **values)


def _send(mailer: MailgunMailer):
    return mailer.send_email(
        to=["ops@example.com", "cfo@example.com"],
        subject="Weekly Finance - Scheduled Report",
        text="Your scheduled financial report is attached.",
        html="<p>Attached</p>",
        attachments=[EmailAttachment(data=b"%PDF-1.4", filename="Weekly_Finance.pdf")],
    )


def test_send_posts_multipart_message() -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={"id": "<20240310.1@mg.example.com>", "message": "Queued"})

    mailer = MailgunMailer(settings=_settings(), transport=httpx.MockTransport(handler))

    result = _send(mailer)

    assert result.success is True
    assert result.message_id == "<20240310.1@mg.example.com>"
    (request,) = captured
    assert str(request.url) == "https://api.mailgun.net/v3/mg.example.com/messages"
    expected_auth = base64.b64encode(b"api:key-123").decode()
    assert request.headers["authorization"] == f"Basic {expected_auth}"
    body = request.read()
    assert b'filename="Weekly_Finance.pdf"' in body
    assert b"CareSanar HMS <reports@mg.example.com>" in body
    assert body.count(b'name="to"') == 2


def test_rejected_message_is_reported() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(502, text="bad gateway"))
    mailer = MailgunMailer(settings=_settings(), transport=transport)

    result = _send(mailer)

    assert result.success is False
    assert result.error == "Mail gateway returned 502"


def test_transport_error_is_reported() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    mailer = MailgunMailer(settings=_settings(), transport=httpx.MockTransport(handler))

    result = _send(mailer)

    assert result.success is False
    assert "connection refused" in result.error


def test_unconfigured_gateway_fails_without_request() -> None:
    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover - must not be called
        raise AssertionError("no request expected")

    mailer = MailgunMailer(
        settings=_settings(MAILGUN_API_KEY=None),
        transport=httpx.MockTransport(handler),
    )

    result = _send(mailer)

    assert result.success is False
    assert result.error == "Mail gateway is not configured"
