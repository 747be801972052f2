"""Batch orchestrator - runs the check pipeline over due sites.

Per site: probe -> evaluate transition -> persist -> (correlate) -> notify.
Sites are processed concurrently with a bounded semaphore and each runs in
its own database session, so one site's failure never affects another.
"""
import asyncio
import logging
from datetime import datetime
from typing import Dict, Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..config import Settings
from ..exceptions import SiteNotFoundError
from ..models import AlertSettings, PingLog, Site
from ..utils.clock import Clock, isoformat, utcnow
from .incidents import IncidentCorrelator, IncidentReport
from .notifier import AlertNotifier
from .outage import OutageDetector
from .prober import Prober
from .retention import RetentionSweeper
from .transitions import evaluate_transition, next_run_delay

logger = logging.getLogger(__name__)


class BatchOrchestrator:
    """Entry points for scheduled (``run_batch``) and on-demand (``run_single``) checks."""

    def __init__(
        self,
        settings: Settings,
        session_factory: async_sessionmaker[AsyncSession],
        prober: Prober,
        notifier: AlertNotifier,
        correlator: Optional[IncidentCorrelator] = None,
        detector: Optional[OutageDetector] = None,
        sweeper: Optional[RetentionSweeper] = None,
        clock: Clock = utcnow,
    ):
        self.session_factory = session_factory
        self.prober = prober
        self.notifier = notifier
        self.correlator = correlator or IncidentCorrelator()
        self.detector = detector or OutageDetector(settings, session_factory, notifier)
        self.sweeper = sweeper or RetentionSweeper(session_factory)
        self.max_concurrent_checks = settings.max_concurrent_checks
        self.clock = clock

    async def run_batch(self) -> dict:
        """Check every active site whose ``next_run_at`` has passed.

        Errors loading the due set or the users' settings propagate; errors
        while processing a site are reported in that site's outcome.
        """
        now = self.clock()

        async with self.session_factory() as session:
            result = await session.execute(
                select(Site)
                .where(
                    Site.is_active.is_(True),
                    Site.next_run_at <= now,
                )
                .order_by(Site.id)
            )
            sites = list(result.scalars().all())

            if not sites:
                return {"message": "No sites due", "timestamp": isoformat(now)}

            user_ids = list(dict.fromkeys(site.user_id for site in sites))
            settings_map = await self._load_settings(session, user_ids)

        logger.debug(f"Checking {len(sites)} due sites for {len(user_ids)} users")

        await self.detector.inspect(sites, settings_map, now)

        semaphore = asyncio.Semaphore(self.max_concurrent_checks)

        async def check_with_limit(site: Site) -> dict:
            async with semaphore:
                return await self._check_isolated(site, settings_map.get(site.user_id))

        details = await asyncio.gather(*[check_with_limit(site) for site in sites])

        sweep_time = self.clock()
        sweeps = await asyncio.gather(*[
            self.sweeper.sweep(user_id, settings_map.get(user_id), sweep_time)
            for user_id in user_ids
        ], return_exceptions=True)
        for user_id, outcome in zip(user_ids, sweeps):
            if isinstance(outcome, Exception):
                logger.error(f"Log cleanup for user {user_id} failed: {type(outcome).__name__}: {outcome}")

        failed = sum(1 for outcome in details if "error" in outcome)
        logger.info(f"Batch complete: {len(details)} sites processed, {failed} failed")

        return {"processed": len(details), "details": list(details)}

    async def run_single(self, site_id: int, user_id: Optional[str] = None) -> dict:
        """Check one site now, regardless of its schedule.

        When ``user_id`` is given the site must belong to that user.
        """
        async with self.session_factory() as session:
            site = await session.get(Site, site_id)
            if site is None or (user_id is not None and site.user_id != user_id):
                raise SiteNotFoundError(site_id)
            alert_settings = await session.get(AlertSettings, site.user_id)

        return await self._check_site(site, alert_settings, manual=True)

    async def _load_settings(self, session: AsyncSession, user_ids: Iterable[str]) -> Dict[str, AlertSettings]:
        result = await session.execute(
            select(AlertSettings).where(AlertSettings.user_id.in_(list(user_ids)))
        )
        return {s.user_id: s for s in result.scalars().all()}

    async def _check_isolated(self, site: Site, alert_settings: Optional[AlertSettings]) -> dict:
        """Run one batch check, turning any failure into an error outcome."""
        try:
            if not await self._claim(site):
                logger.info(f"Site {site.id} already claimed by another run, skipping")
                return {"id": site.id, "skipped": "already claimed"}
            return await self._check_site(site, alert_settings, manual=False)
        except Exception as e:
            logger.error(f"Error checking site {site.id}: {type(e).__name__}: {e}")
            return {"id": site.id, "error": str(e) or type(e).__name__}

    async def _claim(self, site: Site) -> bool:
        """Push ``next_run_at`` forward if nobody else has since the due query.

        Overlapping batch runs race on this update; only one of them sees a
        matching row.
        """
        lease = self.clock() + next_run_delay(site.check_interval)
        async with self.session_factory() as session:
            result = await session.execute(
                update(Site)
                .where(
                    Site.id == site.id,
                    Site.next_run_at == site.next_run_at,
                )
                .values(next_run_at=lease)
                .execution_options(synchronize_session=False)
            )
            await session.commit()
        return result.rowcount == 1

    async def _check_site(
        self,
        site: Site,
        alert_settings: Optional[AlertSettings],
        manual: bool,
    ) -> dict:
        secret = alert_settings.waf_secret if alert_settings else None
        probe = await self.prober.probe(site.url, secret)

        now = self.clock()
        down_since = site.status_changed_at
        transition = evaluate_transition(
            previous_status=site.last_status,
            new_status=probe.status_code,
            now=now,
            check_interval=site.check_interval,
            status_changed_at=site.status_changed_at,
            last_incident_at=site.last_incident_at,
        )

        # State is committed before any notification is attempted
        async with self.session_factory() as session:
            await session.execute(
                update(Site)
                .where(Site.id == site.id)
                .values(
                    last_status=probe.status_code,
                    last_latency=probe.latency_ms,
                    last_checked_at=now,
                    status_changed_at=transition.status_changed_at,
                    last_incident_at=transition.last_incident_at,
                    next_run_at=transition.next_run_at,
                )
                .execution_options(synchronize_session=False)
            )
            session.add(PingLog(
                site_id=site.id,
                status_code=probe.status_code,
                latency_ms=probe.latency_ms,
                created_at=now,
            ))
            await session.commit()

            report = IncidentReport()
            notify = transition.changed and self.notifier.can_notify(alert_settings)
            if notify:
                report = await self._incident_report(session, site, transition.recovered, down_since, now)

        if transition.changed:
            logger.info(
                f"Site {site.id} ({site.url}) is now {'UP' if transition.is_up else 'DOWN'} "
                f"(status {probe.status_code})"
            )
        if notify:
            await self.notifier.notify_transition(site, alert_settings, probe, report, now)

        logger.debug(f"Site {site.id}: status={probe.status_code} latency={probe.latency_ms}ms")

        return {
            "id": site.id,
            "url": site.url,
            "status": probe.status_code,
            "latency": probe.latency_ms,
            "changed": transition.changed,
            "manual": manual,
        }

    async def _incident_report(
        self,
        session: AsyncSession,
        site: Site,
        recovered: bool,
        down_since: Optional[datetime],
        now: datetime,
    ) -> IncidentReport:
        if not recovered:
            return IncidentReport()
        try:
            return await self.correlator.correlate(session, site.id, down_since, now)
        except SQLAlchemyError as e:
            logger.error(f"Could not load incident history for site {site.id}: {e}")
            return IncidentReport()
