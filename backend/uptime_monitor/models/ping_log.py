"""PingLog model - append-only history of individual probes."""
from sqlalchemy import Column, Integer, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.clock import utcnow


class PingLog(Base):
    """One probe result. Never updated; pruned by the retention sweep."""

    __tablename__ = "ping_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    site_id = Column(Integer, ForeignKey("sites.id", ondelete="CASCADE"), nullable=False, index=True)
    status_code = Column(Integer, nullable=False)  # 0 = transport failure
    latency_ms = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    # Relationship
    site = relationship("Site", back_populates="logs")
