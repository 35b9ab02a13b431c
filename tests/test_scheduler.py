"""Tests for worksummary.core.scheduler — start/stop and tick handling."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from worksummary.core.scheduler import WorkSummaryScheduler


@pytest.fixture
def service():
    mock = MagicMock()
    mock.run_once = AsyncMock()
    return mock


@pytest.fixture
def aps():
    """A stand-in AsyncIOScheduler that records jobs without running them."""
    mock = MagicMock()
    mock.running = False
    mock.add_job.return_value = MagicMock(name="job")
    return mock


class TestStartStop:
    def test_start_adds_an_interval_job_that_runs_now(self, service, aps):
        sched = WorkSummaryScheduler(service, interval_seconds=600, scheduler=aps)
        before = datetime.now(timezone.utc)

        sched.start()

        assert sched.running is True
        aps.add_job.assert_called_once()
        args, kwargs = aps.add_job.call_args
        assert args[1] == "interval"
        assert kwargs["seconds"] == 600
        assert kwargs["max_instances"] == 1
        assert kwargs["coalesce"] is True
        assert kwargs["next_run_time"] >= before
        aps.start.assert_called_once()

    def test_double_start_is_a_no_op(self, service, aps, caplog):
        sched = WorkSummaryScheduler(service, interval_seconds=600, scheduler=aps)
        sched.start()
        sched.start()

        aps.add_job.assert_called_once()
        assert "already running" in caplog.text

    def test_does_not_restart_a_running_scheduler(self, service, aps):
        aps.running = True
        WorkSummaryScheduler(service, interval_seconds=600, scheduler=aps).start()
        aps.start.assert_not_called()

    def test_stop_removes_the_job(self, service, aps):
        sched = WorkSummaryScheduler(service, interval_seconds=600, scheduler=aps)
        sched.start()
        job = aps.add_job.return_value

        sched.stop()

        job.remove.assert_called_once()
        assert sched.running is False
        # Shared scheduler belongs to the caller.
        aps.shutdown.assert_not_called()

    def test_stop_without_start(self, service, aps):
        WorkSummaryScheduler(service, interval_seconds=600, scheduler=aps).stop()
        aps.shutdown.assert_not_called()

    def test_restart_after_stop(self, service, aps):
        sched = WorkSummaryScheduler(service, interval_seconds=600, scheduler=aps)
        sched.start()
        sched.stop()
        sched.start()
        assert aps.add_job.call_count == 2

    def test_instances_use_distinct_job_ids(self, service, aps):
        first = WorkSummaryScheduler(service, interval_seconds=600, scheduler=aps)
        second = WorkSummaryScheduler(service, interval_seconds=600, scheduler=aps)
        first.start()
        second.start()
        ids = [c.kwargs["id"] for c in aps.add_job.call_args_list]
        assert ids[0] != ids[1]

    def test_interval_defaults_to_settings(self, service, aps):
        from worksummary.config import settings

        sched = WorkSummaryScheduler(service, scheduler=aps)
        assert sched.interval_seconds == settings.SUMMARY_INTERVAL_SECONDS


class TestTick:
    @pytest.mark.asyncio
    async def test_tick_runs_the_service(self, service, aps):
        sched = WorkSummaryScheduler(service, interval_seconds=600, scheduler=aps)
        await sched._tick()
        service.run_once.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_tick_swallows_errors(self, service, aps, caplog):
        service.run_once.side_effect = RuntimeError("boom")
        sched = WorkSummaryScheduler(service, interval_seconds=600, scheduler=aps)

        await sched._tick()

        assert "Work summary tick failed" in caplog.text

    @pytest.mark.asyncio
    async def test_owned_scheduler_runs_first_tick_immediately(self, service):
        import asyncio

        sched = WorkSummaryScheduler(service, interval_seconds=3600)
        sched.start()
        try:
            for _ in range(50):
                if service.run_once.await_count:
                    break
                await asyncio.sleep(0.02)
        finally:
            sched.stop()

        service.run_once.assert_awaited()
        assert sched.running is False
