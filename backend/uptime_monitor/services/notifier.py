"""Alert notifier - renders down/recovery/system emails and sends them.

Sending is fire-and-forget: failures and timeouts are logged and never
raised to the caller.
"""
import asyncio
import html
import logging
import re
from datetime import datetime
from typing import Mapping, Optional, Tuple

from ..config import Settings
from ..models import AlertSettings, Site
from ..models.settings import DEFAULT_ALERT_SUBJECT, DEFAULT_ALERT_BODY
from ..utils.clock import isoformat
from .email_sender import EmailSender
from .incidents import IncidentReport
from .prober import ProbeResult

logger = logging.getLogger(__name__)

PLACEHOLDERS = ("site_name", "url", "status", "latency", "error", "time")

_PLACEHOLDER_RE = re.compile(r"\{\{(\w+)\}\}")

FOOTER = '<p style="font-size: 12px; color: #6b7280; margin-top: 20px;">Monitored by Uptime Monitor</p>'


def render_template(template: str, values: Mapping[str, str]) -> str:
    """Substitute ``{{name}}`` placeholders in a single pass.

    Names missing from ``values`` are left as-is. Substituted text is not
    scanned again, so a value containing ``{{...}}`` stays literal.
    """
    def replace(match: re.Match) -> str:
        name = match.group(1)
        if name in values:
            return values[name]
        return match.group(0)

    return _PLACEHOLDER_RE.sub(replace, template)


class AlertNotifier:
    """Builds alert emails and hands them to the configured sender."""

    def __init__(self, settings: Settings, sender: Optional[EmailSender] = None):
        self.sender = sender
        self.from_address = settings.sender_email
        self.timeout = settings.notify_timeout_seconds

    def can_notify(self, alert_settings: Optional[AlertSettings]) -> bool:
        """Both a sender and a destination address are required."""
        return bool(
            self.sender
            and self.from_address
            and alert_settings is not None
            and alert_settings.notification_email
        )

    def build_down_alert(
        self,
        site: Site,
        alert_settings: Optional[AlertSettings],
        probe: ProbeResult,
        now: datetime,
    ) -> Tuple[str, str]:
        """Subject and HTML body from the user's templates."""
        subject_template = (alert_settings and alert_settings.alert_subject) or DEFAULT_ALERT_SUBJECT
        body_template = (alert_settings and alert_settings.alert_body) or DEFAULT_ALERT_BODY

        values = {
            "site_name": site.name,
            "url": site.url,
            "status": str(probe.status_code),
            "latency": str(probe.latency_ms),
            "error": probe.error or "",
            "time": isoformat(now),
        }
        subject = render_template(subject_template, values)
        # Template markup is the user's own; substituted values are escaped
        body = render_template(body_template, {k: html.escape(v) for k, v in values.items()})

        html_body = (
            '<div style="font-family: sans-serif; padding: 20px; border: 1px solid #fee2e2; border-radius: 5px;">'
            '<h2 style="color: #ef4444;">Site Down Alert</h2>'
            f"{body}{FOOTER}</div>"
        )
        return subject, html_body

    def build_recovery(self, site: Site, status_code: int, report: IncidentReport) -> Tuple[str, str]:
        """Fixed-format recovery email with the outage summary."""
        name = html.escape(site.name)
        url = html.escape(site.url, quote=True)
        if report.duration_minutes is None:
            duration = "Unknown"
        else:
            duration = f"{report.duration_minutes} minutes"

        error_list = ""
        if report.recent_errors:
            items = "".join(
                f"<li>{log.created_at.strftime('%H:%M:%S')} UTC: Status {log.status_code}</li>"
                for log in report.recent_errors
            )
            error_list = f"<h4>Latest recorded errors:</h4><ul>{items}</ul>"

        subject = f"RECOVERED: {site.name} is ONLINE"
        html_body = (
            '<div style="font-family: sans-serif; padding: 20px; border: 1px solid #e0e0e0; border-radius: 5px;">'
            '<h2 style="color: #10b981;">Site Recovered</h2>'
            f'<p>The site <strong>{name}</strong> (<a href="{url}">{url}</a>) is operational again.</p>'
            '<div style="background: #f9fafb; padding: 15px; border-radius: 5px; margin: 20px 0;">'
            f"<p><strong>Downtime:</strong> {duration}</p>"
            f"<p><strong>Current status:</strong> {status_code} (OK)</p>"
            "</div>"
            f"{error_list}{FOOTER}</div>"
        )
        return subject, html_body

    def build_system_alert(self, message: str) -> Tuple[str, str]:
        subject = "Monitoring System Notice"
        html_body = (
            '<div style="font-family: sans-serif; padding: 20px; border: 1px solid #fcd34d; '
            'border-radius: 5px; background-color: #fffbeb;">'
            '<h2 style="color: #b45309;">Infrastructure Notice</h2>'
            f"<p>{html.escape(message)}</p>"
            "<p>The scheduler stopped running for a while and has just resumed.</p>"
            "</div>"
        )
        return subject, html_body

    async def notify_transition(
        self,
        site: Site,
        alert_settings: Optional[AlertSettings],
        probe: ProbeResult,
        report: IncidentReport,
        now: datetime,
    ) -> bool:
        """Send the down or recovery email for a state change."""
        if not self.can_notify(alert_settings):
            return False

        if probe.is_up:
            subject, body = self.build_recovery(site, probe.status_code, report)
        else:
            subject, body = self.build_down_alert(site, alert_settings, probe, now)

        return await self.deliver(alert_settings.notification_email, subject, body)

    async def send_system_alert(self, alert_settings: Optional[AlertSettings], message: str) -> bool:
        if not self.can_notify(alert_settings):
            return False
        subject, body = self.build_system_alert(message)
        return await self.deliver(alert_settings.notification_email, subject, body)

    async def deliver(self, to_address: str, subject: str, body: str) -> bool:
        """Send one email, bounded by the notification timeout."""
        if not self.sender or not self.from_address:
            return False
        try:
            return await asyncio.wait_for(
                self.sender.send(self.from_address, to_address, subject, body),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.error(f"Timed out after {self.timeout}s sending '{subject}' to {to_address}")
            return False
        except Exception as e:
            logger.error(f"Failed to send '{subject}' to {to_address}: {type(e).__name__}: {e}")
            return False
