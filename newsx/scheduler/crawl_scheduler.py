"""
NewsX Crawl Scheduler
=====================

Periodic and on-demand execution of crawl cycles.

Features:
- Fixed-interval crawling, optionally starting immediately
- Fire-and-forget manual trigger with immediate acknowledgment
- At most one cycle in flight; overlapping triggers are acknowledged only
- Cycle failures are logged and never stop the schedule
"""

import asyncio
from datetime import datetime, timezone
from typing import Dict, Optional

from ..config.settings import SchedulerSettings
from ..processing.pipeline import IngestionPipeline
from ..utils.logging import get_logger_for_component


class CrawlScheduler:
    """Runs IngestionPipeline cycles on a timer and on request."""

    def __init__(self, pipeline: IngestionPipeline, settings: Optional[SchedulerSettings] = None):
        self.pipeline = pipeline
        self.settings = settings or SchedulerSettings()
        self.logger = get_logger_for_component("scheduler")

        self._current: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()

        # Execution tracking
        self.cycles_completed = 0
        self.cycles_failed = 0
        self.last_run_at: Optional[datetime] = None
        self.last_result: Optional[int] = None
        self.last_error: Optional[str] = None

    @property
    def is_running(self) -> bool:
        """Whether a crawl cycle is currently in flight."""
        return self._current is not None and not self._current.done()

    def trigger_crawl(self, trigger: str = "manual") -> Dict[str, str]:
        """Start a crawl cycle in the background and return at once.

        Must be called from within the running event loop.
        """
        if self.is_running:
            self.logger.info(f"Crawl requested ({trigger}) while a cycle is running", extra={"trigger": trigger})
            return {"status": "already_running"}

        self.logger.info(f"Starting crawl cycle ({trigger})", extra={"trigger": trigger})
        self.last_run_at = datetime.now(timezone.utc)
        self._current = asyncio.get_running_loop().create_task(self.pipeline.run_crawl_cycle())
        self._current.add_done_callback(self._on_cycle_done)
        return {"status": "initiated"}

    def _on_cycle_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            self.logger.warning("Crawl cycle cancelled")
            return

        error = task.exception()
        if error is not None:
            self.cycles_failed += 1
            self.last_error = str(error)
            self.logger.error(
                f"Crawl cycle failed: {error}",
                exc_info=(type(error), error, error.__traceback__),
            )
            return

        self.cycles_completed += 1
        self.last_result = task.result()
        self.last_error = None
        self.logger.info(f"Crawl cycle completed: {self.last_result} articles saved")

    async def run_once(self, trigger: str = "scheduled") -> None:
        """Start a cycle (unless one is running) and wait for it to finish."""
        self.trigger_crawl(trigger)
        await self.wait_current()

    async def wait_current(self) -> None:
        """Wait for the in-flight cycle, if any; its errors are already logged."""
        if self._current is not None and not self._current.done():
            await asyncio.wait({self._current})

    async def run_forever(self) -> None:
        """Run a cycle every ``interval_minutes`` until stop() is called."""
        interval = self.settings.interval_minutes * 60
        self.logger.info(f"Auto-crawling started (every {self.settings.interval_minutes} minutes)")

        if self.settings.run_on_startup:
            await self.run_once("startup")

        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                await self.run_once("scheduled")

        self.logger.info("Auto-crawling stopped")

    async def stop(self) -> None:
        """End the schedule and wait for an in-flight cycle to finish."""
        self._stop_event.set()
        await self.wait_current()

    def get_status(self) -> Dict[str, object]:
        """Scheduler counters for health reporting."""
        return {
            "running": self.is_running,
            "cycles_completed": self.cycles_completed,
            "cycles_failed": self.cycles_failed,
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "last_result": self.last_result,
            "last_error": self.last_error,
        }
