"""
Work Summary Service — Periodic scheduler.

Runs WorkSummaryService.run_once() immediately on start and then on a fixed
interval (hourly by default). Each WorkSummaryScheduler owns its own job
handle, so several instances (e.g. in tests) never share state.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler

if TYPE_CHECKING:
    from apscheduler.job import Job

    from worksummary.core.summary_service import WorkSummaryService

logger = logging.getLogger(__name__)


class WorkSummaryScheduler:
    """Start/stop wrapper around one interval job on an AsyncIOScheduler."""

    def __init__(
        self,
        service: WorkSummaryService,
        interval_seconds: int | None = None,
        scheduler: AsyncIOScheduler | None = None,
    ) -> None:
        if interval_seconds is None:
            from worksummary.config import settings
            interval_seconds = settings.SUMMARY_INTERVAL_SECONDS

        self._service = service
        self._interval_seconds = interval_seconds
        self._owns_scheduler = scheduler is None
        self._scheduler = scheduler if scheduler is not None else AsyncIOScheduler()
        self._job: Job | None = None

    @property
    def running(self) -> bool:
        return self._job is not None

    @property
    def interval_seconds(self) -> int:
        return self._interval_seconds

    def start(self) -> None:
        """Schedule the tick job. Must be called from within the event loop."""
        if self._job is not None:
            logger.warning("Work summary scheduler is already running")
            return

        self._job = self._scheduler.add_job(
            self._tick,
            "interval",
            seconds=self._interval_seconds,
            next_run_time=datetime.now(timezone.utc),  # first run right away
            id=f"work_summary_{id(self):x}",
            name="work_summary",
            max_instances=1,
            coalesce=True,
        )
        if not self._scheduler.running:
            self._scheduler.start()

        logger.info(
            "Work summary scheduler started (runs every %d seconds)", self._interval_seconds,
        )

    def stop(self) -> None:
        """Remove the job. An in-flight tick finishes; no new tick starts."""
        if self._job is None:
            return

        self._job.remove()
        self._job = None
        if self._owns_scheduler and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        logger.info("Work summary scheduler stopped")

    async def _tick(self) -> None:
        try:
            await self._service.run_once()
        except Exception as exc:
            logger.error("Work summary tick failed: %s", exc)
