from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path
from typing import AsyncIterator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from uptime_monitor.config import Settings
from uptime_monitor.database import close_db, create_engine, create_session_factory, init_db
from uptime_monitor.models import AlertSettings, Site
from uptime_monitor.services.notifier import AlertNotifier
from uptime_monitor.services.orchestrator import BatchOrchestrator
from uptime_monitor.services.prober import ProbeResult

T0 = datetime(2026, 3, 1, 12, 0, 0)


class FakeClock:
    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeProber:
    """Returns scripted results per URL; an Exception entry is raised instead."""

    def __init__(self, results: dict[str, object] | None = None) -> None:
        self.results = results or {}
        self.calls: list[tuple[str, str | None]] = []

    async def probe(self, url: str, secret: str | None = None) -> ProbeResult:
        self.calls.append((url, secret))
        result = self.results.get(url, ProbeResult(status_code=200, latency_ms=42))
        if isinstance(result, Exception):
            raise result
        assert isinstance(result, ProbeResult)
        return result


class FakeSender:
    def __init__(self, succeed: bool = True) -> None:
        self.succeed = succeed
        self.sent: list[dict[str, str]] = []

    async def send(self, from_address: str, to_address: str, subject: str, html: str) -> bool:
        self.sent.append({"from": from_address, "to": to_address, "subject": subject, "html": html})
        return self.succeed


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        data_path=str(tmp_path),
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        sender_email="monitor@example.com",
        resend_api_key="re_test",
        notify_timeout_seconds=1,
        scheduler_enabled=False,
        max_concurrent_checks=4,
    )


@pytest_asyncio.fixture
async def engine(settings: Settings) -> AsyncIterator[AsyncEngine]:
    engine = create_engine(settings)
    await init_db(engine, settings)
    yield engine
    await close_db(engine)


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(engine)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sender() -> FakeSender:
    return FakeSender()


@pytest.fixture
def prober() -> FakeProber:
    return FakeProber()


@pytest.fixture
def notifier(settings: Settings, sender: FakeSender) -> AlertNotifier:
    return AlertNotifier(settings, sender)


@pytest.fixture
def orchestrator(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    prober: FakeProber,
    notifier: AlertNotifier,
    clock: FakeClock,
) -> BatchOrchestrator:
    return BatchOrchestrator(settings, session_factory, prober, notifier, clock=clock)  # type: ignore[arg-type]


async def add_site(session_factory: async_sessionmaker[AsyncSession], **kwargs: object) -> Site:
    values: dict[str, object] = {
        "user_id": "user-1",
        "name": "Example",
        "url": "https://example.com",
        "check_interval": 60,
        "is_active": True,
        "next_run_at": T0 - timedelta(seconds=1),
    }
    values.update(kwargs)
    async with session_factory() as session:
        site = Site(**values)
        session.add(site)
        await session.commit()
        return site


async def add_settings(session_factory: async_sessionmaker[AsyncSession], **kwargs: object) -> AlertSettings:
    values: dict[str, object] = {
        "user_id": "user-1",
        "notification_email": "owner@example.com",
    }
    values.update(kwargs)
    async with session_factory() as session:
        row = AlertSettings(**values)
        session.add(row)
        await session.commit()
        return row


async def load_site(session_factory: async_sessionmaker[AsyncSession], site_id: int) -> Site:
    async with session_factory() as session:
        site = await session.get(Site, site_id)
        assert site is not None
        return site
