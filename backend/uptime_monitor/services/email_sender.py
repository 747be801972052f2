"""Email sender service - delivers HTML messages via Resend or SMTP."""
import asyncio
import logging
import smtplib
import ssl
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional, List, Protocol

import httpx

from ..config import Settings

logger = logging.getLogger(__name__)


class EmailSender(Protocol):
    """Outbound email capability. Returns True on success, never retries."""

    async def send(self, from_address: str, to_address: str, subject: str, html: str) -> bool:
        ...


def parse_recipients(to_address: str) -> List[str]:
    """Parse comma-separated email addresses into a list."""
    if not to_address:
        return []
    return [addr.strip() for addr in to_address.split(",") if addr.strip()]


class ResendEmailSender:
    """Sends email through the Resend HTTP API."""

    def __init__(
        self,
        api_key: str,
        api_url: str = "https://api.resend.com/emails",
        timeout: float = 15,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.api_url = api_url
        self.timeout = timeout
        self._transport = transport

    async def send(self, from_address: str, to_address: str, subject: str, html: str) -> bool:
        recipients = parse_recipients(to_address)
        if not recipients:
            logger.warning("No valid recipients found in to_address")
            return False

        payload = {
            "from": from_address,
            "to": recipients,
            "subject": subject,
            "html": html,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    self.api_url,
                    json=payload,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
        except httpx.HTTPError as e:
            logger.error(f"Failed to reach email API: {type(e).__name__}: {e}")
            return False

        if response.status_code >= 400:
            logger.warning(f"Email API returned {response.status_code}: {response.text[:200]}")
            return False

        logger.info(f"Email sent to {len(recipients)} recipient(s): {subject}")
        return True


class SmtpEmailSender:
    """Sends email over SMTP. The blocking client runs in a worker thread."""

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = True,
        timeout: float = 30,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    async def send(self, from_address: str, to_address: str, subject: str, html: str) -> bool:
        recipients = parse_recipients(to_address)
        if not recipients:
            logger.warning("No valid recipients found in to_address")
            return False

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = from_address
        msg["To"] = ", ".join(recipients)
        msg.attach(MIMEText(html, "html"))

        try:
            await asyncio.to_thread(self._deliver, from_address, recipients, msg.as_string())
        except smtplib.SMTPAuthenticationError as e:
            logger.error(f"SMTP authentication failed for user '{self.username}': {e}")
            return False
        except smtplib.SMTPException as e:
            logger.error(f"SMTP error: {type(e).__name__}: {e}")
            return False
        except OSError as e:
            logger.error(f"Failed to connect to SMTP server {self.host}:{self.port}: {e}")
            return False

        logger.info(f"Email sent successfully to {len(recipients)} recipient(s): {subject}")
        return True

    def _deliver(self, from_address: str, recipients: List[str], message: str):
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            if self.use_tls:
                server.starttls(context=ssl.create_default_context())
            if self.username and self.password:
                server.login(self.username, self.password)
            server.sendmail(from_address, recipients, message)


def create_email_sender(settings: Settings) -> Optional[EmailSender]:
    """Build the configured sender, or None when email is not configured."""
    if not settings.sender_email:
        return None

    if settings.email_backend == "smtp":
        if not settings.smtp_host:
            logger.warning("EMAIL_BACKEND=smtp but SMTP_HOST is not set - email disabled")
            return None
        return SmtpEmailSender(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
        )

    if settings.email_backend == "resend":
        if not settings.resend_api_key:
            return None
        return ResendEmailSender(
            api_key=settings.resend_api_key,
            api_url=settings.resend_api_url,
            timeout=settings.notify_timeout_seconds,
        )

    logger.warning(f"Unknown EMAIL_BACKEND '{settings.email_backend}' - email disabled")
    return None
