"""Retention sweeper - prunes ping logs per user-configured windows."""
import logging
from datetime import datetime, timedelta
from typing import Optional, Tuple

from sqlalchemy import and_, delete, not_, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..models import AlertSettings, PingLog, Site
from ..models.settings import DEFAULT_RETENTION_OK_DAYS, DEFAULT_RETENTION_ERROR_DAYS

logger = logging.getLogger(__name__)


def _cutoff(now: datetime, days: int) -> datetime:
    # Windows reaching past year 1 keep everything
    try:
        return now - timedelta(days=days)
    except OverflowError:
        return datetime.min


def retention_cutoffs(alert_settings: Optional[AlertSettings], now: datetime) -> Tuple[datetime, datetime]:
    """(ok_cutoff, error_cutoff) for a user; missing or non-positive windows use defaults."""
    ok_days = alert_settings.retention_ok_days if alert_settings else None
    error_days = alert_settings.retention_error_days if alert_settings else None
    if not ok_days or ok_days <= 0:
        ok_days = DEFAULT_RETENTION_OK_DAYS
    if not error_days or error_days <= 0:
        error_days = DEFAULT_RETENTION_ERROR_DAYS
    return _cutoff(now, ok_days), _cutoff(now, error_days)


async def delete_old_logs(
    session: AsyncSession,
    user_id: str,
    ok_cutoff: datetime,
    error_cutoff: datetime,
) -> int:
    """Delete a user's expired logs in one statement. Returns rows deleted."""
    user_sites = select(Site.id).where(Site.user_id == user_id)
    ok_range = and_(PingLog.status_code >= 200, PingLog.status_code < 300)

    result = await session.execute(
        delete(PingLog)
        .where(
            PingLog.site_id.in_(user_sites),
            or_(
                and_(ok_range, PingLog.created_at < ok_cutoff),
                and_(not_(ok_range), PingLog.created_at < error_cutoff),
            ),
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


class RetentionSweeper:
    """Runs ``delete_old_logs`` for one user at a time."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def sweep(self, user_id: str, alert_settings: Optional[AlertSettings], now: datetime) -> int:
        """Prune one user's logs. Errors are logged, never raised."""
        try:
            ok_cutoff, error_cutoff = retention_cutoffs(alert_settings, now)
            async with self.session_factory() as session:
                deleted = await delete_old_logs(session, user_id, ok_cutoff, error_cutoff)
                await session.commit()
        except (SQLAlchemyError, OverflowError) as e:
            logger.error(f"Error cleaning up logs for user {user_id}: {e}")
            return 0

        if deleted:
            logger.info(f"Deleted {deleted} expired log entries for user {user_id}")
        return deleted
