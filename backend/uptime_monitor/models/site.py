"""Site model - endpoints registered by users for monitoring."""
from sqlalchemy import Boolean, Column, Integer, String, DateTime
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.clock import utcnow


class Site(Base):
    """A monitored URL owned by a user account.

    The ``last_*``, ``status_changed_at``, ``last_incident_at`` and
    ``next_run_at`` columns are only written by the check pipeline.
    """

    __tablename__ = "sites"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    url = Column(String, nullable=False)
    check_interval = Column(Integer, default=60)  # seconds
    is_active = Column(Boolean, default=True, nullable=False)

    last_status = Column(Integer, nullable=True)  # NULL = never checked
    last_latency = Column(Integer, nullable=True)  # ms
    last_checked_at = Column(DateTime, nullable=True)
    status_changed_at = Column(DateTime, nullable=True)
    last_incident_at = Column(DateTime, nullable=True)
    incident_acknowledged_at = Column(DateTime, nullable=True)
    next_run_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow)

    # Relationships
    logs = relationship("PingLog", back_populates="site", cascade="all, delete-orphan", passive_deletes=True)
