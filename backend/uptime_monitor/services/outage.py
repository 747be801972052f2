"""Outage self-detector - notices when the scheduler itself stopped running.

If every due site was last checked long ago, no batch ran in between, so
the monitor was down rather than the sites.
"""
import logging
from datetime import datetime
from typing import Dict, Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..config import Settings
from ..models import AlertSettings, Site, SystemEvent
from .incidents import round_minutes
from .notifier import AlertNotifier

logger = logging.getLogger(__name__)

SYSTEM_RECOVERY_EVENT = "system_recovery"


def minimum_gap_minutes(sites: Iterable[Site], now: datetime) -> Optional[float]:
    """Smallest time since last check across ``sites``, ignoring never-checked ones."""
    gaps = [
        (now - site.last_checked_at).total_seconds() / 60
        for site in sites
        if site.last_checked_at is not None
    ]
    return min(gaps) if gaps else None


class OutageDetector:
    """Records a system_recovery event per affected user after a scheduler gap."""

    def __init__(
        self,
        settings: Settings,
        session_factory: async_sessionmaker[AsyncSession],
        notifier: AlertNotifier,
    ):
        self.threshold_minutes = settings.outage_threshold_minutes
        self.session_factory = session_factory
        self.notifier = notifier

    async def inspect(
        self,
        sites: list[Site],
        settings_map: Dict[str, AlertSettings],
        now: datetime,
    ) -> Optional[float]:
        """Check the due set for a global gap.

        Returns the gap in minutes when an outage was detected, else None.
        """
        gap = minimum_gap_minutes(sites, now)
        if gap is None or gap <= self.threshold_minutes:
            return None

        message = (
            f"The monitoring system recovered after approx. {round_minutes(gap)} minutes "
            "of global downtime."
        )
        logger.warning(message)

        # One event per user, not per site
        user_ids = list(dict.fromkeys(site.user_id for site in sites))
        for user_id in user_ids:
            try:
                async with self.session_factory() as session:
                    session.add(SystemEvent(
                        user_id=user_id,
                        event_type=SYSTEM_RECOVERY_EVENT,
                        message=message,
                        created_at=now,
                    ))
                    await session.commit()
            except SQLAlchemyError as e:
                logger.error(f"Failed to record system event for user {user_id}: {e}")

            await self.notifier.send_system_alert(settings_map.get(user_id), message)

        return gap
