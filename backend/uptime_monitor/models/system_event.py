"""SystemEvent model - events about the monitor itself."""
from sqlalchemy import Column, Integer, String, DateTime

from ..database import Base
from ..utils.clock import utcnow


class SystemEvent(Base):
    """Append-only record such as a detected scheduler outage."""

    __tablename__ = "system_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, nullable=False, index=True)
    event_type = Column(String, nullable=False)  # system_recovery
    message = Column(String, nullable=False)
    created_at = Column(DateTime, default=utcnow)
