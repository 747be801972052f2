from __future__ import annotations

import pytest

from uptime_monitor.config import Settings
from uptime_monitor.services.scheduler import SchedulerService


class CountingOrchestrator:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.runs = 0

    async def run_batch(self) -> dict:
        self.runs += 1
        if self.fail:
            raise RuntimeError("Database Error (Sites)")
        return {"processed": 0, "details": []}


@pytest.mark.asyncio
async def test_run_checks_invokes_batch() -> None:
    orchestrator = CountingOrchestrator()
    service = SchedulerService(Settings(), orchestrator)  # type: ignore[arg-type]
    await service.run_checks()
    assert orchestrator.runs == 1


@pytest.mark.asyncio
async def test_run_checks_logs_fatal_batch_errors() -> None:
    orchestrator = CountingOrchestrator(fail=True)
    service = SchedulerService(Settings(), orchestrator)  # type: ignore[arg-type]
    await service.run_checks()
    assert orchestrator.runs == 1


@pytest.mark.asyncio
async def test_start_registers_single_instance_job() -> None:
    service = SchedulerService(Settings(scheduler_tick_seconds=30), CountingOrchestrator())  # type: ignore[arg-type]
    service.start()
    try:
        assert service.running
        job = service.scheduler.get_job("run_checks")
        assert job is not None
        assert job.max_instances == 1
        assert job.trigger.interval.total_seconds() == 30
    finally:
        service.stop()
    assert not service.running
