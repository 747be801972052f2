"""Incident correlator - summarizes an outage when a site recovers."""
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import PingLog

RECENT_ERRORS_LIMIT = 5


@dataclass
class IncidentReport:
    """Outage summary attached to a recovery notification."""
    duration_minutes: Optional[int] = None
    recent_errors: List[PingLog] = field(default_factory=list)


def round_minutes(minutes: float) -> int:
    """Round to whole minutes, halves up."""
    return int(math.floor(minutes + 0.5))


def outage_minutes(started_at: datetime, now: datetime) -> int:
    """Whole minutes between the start of the outage and now, halves rounded up."""
    return round_minutes((now - started_at).total_seconds() / 60)


class IncidentCorrelator:
    """Looks up the error history of the down period that just ended."""

    async def correlate(
        self,
        session: AsyncSession,
        site_id: int,
        down_since: Optional[datetime],
        now: datetime,
    ) -> IncidentReport:
        """Build the report for a down -> up transition.

        ``down_since`` is the site's ``status_changed_at`` as it was before
        the recovering probe overwrote it. Without it the duration is unknown
        and no history window can be chosen.
        """
        if down_since is None:
            return IncidentReport()

        result = await session.execute(
            select(PingLog)
            .where(
                PingLog.site_id == site_id,
                PingLog.created_at >= down_since,
                or_(PingLog.status_code < 200, PingLog.status_code >= 300),
            )
            .order_by(PingLog.created_at.desc())
            .limit(RECENT_ERRORS_LIMIT)
        )
        return IncidentReport(
            duration_minutes=outage_minutes(down_since, now),
            recent_errors=list(result.scalars().all()),
        )
