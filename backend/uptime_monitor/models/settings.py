"""AlertSettings model - per-user alerting and retention configuration."""
from sqlalchemy import Column, Integer, String, DateTime

from ..database import Base
from ..utils.clock import utcnow


class AlertSettings(Base):
    """Alert and retention settings, one row per user."""

    __tablename__ = "settings"

    user_id = Column(String, primary_key=True)
    waf_secret = Column(String, nullable=True)  # Sent as X-Monitor-Secret
    notification_email = Column(String, nullable=True)
    alert_subject = Column(String, nullable=True)  # Template, see services.notifier
    alert_body = Column(String, nullable=True)  # HTML template
    retention_ok_days = Column(Integer, default=1)
    retention_error_days = Column(Integer, default=30)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


# Defaults applied when a user has no settings row or a column is NULL
DEFAULT_ALERT_SUBJECT = "ALERT: {{site_name}} is DOWN"
DEFAULT_ALERT_BODY = "<p>The site {{url}} responded with error {{status}}</p>"
DEFAULT_RETENTION_OK_DAYS = 1
DEFAULT_RETENTION_ERROR_DAYS = 30
