from __future__ import annotations

import json
import smtplib
from unittest.mock import MagicMock, patch

import httpx
import pytest

from uptime_monitor.config import Settings
from uptime_monitor.services.email_sender import (
    ResendEmailSender,
    SmtpEmailSender,
    create_email_sender,
    parse_recipients,
)


def test_parse_recipients() -> None:
    assert parse_recipients("a@x.com, b@x.com,,") == ["a@x.com", "b@x.com"]
    assert parse_recipients("") == []


@pytest.mark.asyncio
async def test_resend_posts_html_email() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"id": "email-1"})

    sender = ResendEmailSender("re_key", transport=httpx.MockTransport(handler))
    ok = await sender.send("monitor@example.com", "owner@example.com", "Subject", "<p>hi</p>")

    assert ok is True
    request = seen[0]
    assert request.method == "POST"
    assert str(request.url) == "https://api.resend.com/emails"
    assert request.headers["Authorization"] == "Bearer re_key"
    assert json.loads(request.content) == {
        "from": "monitor@example.com",
        "to": ["owner@example.com"],
        "subject": "Subject",
        "html": "<p>hi</p>",
    }


@pytest.mark.asyncio
async def test_resend_error_response_returns_false() -> None:
    sender = ResendEmailSender("re_key", transport=httpx.MockTransport(lambda r: httpx.Response(422, text="bad")))
    assert await sender.send("monitor@example.com", "owner@example.com", "s", "b") is False


@pytest.mark.asyncio
async def test_resend_transport_error_returns_false() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("no route", request=request)

    sender = ResendEmailSender("re_key", transport=httpx.MockTransport(handler))
    assert await sender.send("monitor@example.com", "owner@example.com", "s", "b") is False


@pytest.mark.asyncio
async def test_smtp_sends_with_starttls_and_login() -> None:
    server = MagicMock()
    with patch("uptime_monitor.services.email_sender.smtplib.SMTP") as smtp_cls:
        smtp_cls.return_value.__enter__.return_value = server
        sender = SmtpEmailSender("smtp.example.com", 587, "user", "pw", use_tls=True)
        ok = await sender.send("monitor@example.com", "a@x.com, b@x.com", "Subject", "<p>hi</p>")

    assert ok is True
    smtp_cls.assert_called_once_with("smtp.example.com", 587, timeout=30)
    server.starttls.assert_called_once()
    server.login.assert_called_once_with("user", "pw")
    from_addr, recipients, message = server.sendmail.call_args.args
    assert from_addr == "monitor@example.com"
    assert recipients == ["a@x.com", "b@x.com"]
    assert "text/html" in message


@pytest.mark.asyncio
async def test_smtp_failure_returns_false() -> None:
    with patch("uptime_monitor.services.email_sender.smtplib.SMTP") as smtp_cls:
        smtp_cls.return_value.__enter__.return_value.sendmail.side_effect = smtplib.SMTPDataError(554, b"rejected")
        sender = SmtpEmailSender("smtp.example.com", use_tls=False)
        assert await sender.send("monitor@example.com", "a@x.com", "s", "b") is False


def test_create_email_sender_selects_backend() -> None:
    assert create_email_sender(Settings(sender_email=None, resend_api_key="k")) is None
    assert create_email_sender(Settings(sender_email="m@x.com", resend_api_key=None)) is None
    assert isinstance(create_email_sender(Settings(sender_email="m@x.com", resend_api_key="k")), ResendEmailSender)

    smtp = create_email_sender(Settings(sender_email="m@x.com", email_backend="smtp", smtp_host="mail.x.com"))
    assert isinstance(smtp, SmtpEmailSender)
    assert create_email_sender(Settings(sender_email="m@x.com", email_backend="smtp", smtp_host=None)) is None
    assert create_email_sender(Settings(sender_email="m@x.com", email_backend="carrier-pigeon")) is None
