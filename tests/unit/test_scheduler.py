"""
Unit Tests for Crawl Scheduler
==============================

Manual triggers, overlap protection, failure handling and the timer loop.
"""

import asyncio

import pytest

from newsx.config.settings import SchedulerSettings
from newsx.scheduler.crawl_scheduler import CrawlScheduler


class GatedPipeline:
    """Pipeline stub whose cycle blocks until released."""

    def __init__(self, result=3, error=None):
        self.result = result
        self.error = error
        self.release = asyncio.Event()
        self.runs = 0

    async def run_crawl_cycle(self):
        self.runs += 1
        await self.release.wait()
        if self.error:
            raise self.error
        return self.result


class InstantPipeline:
    def __init__(self):
        self.runs = 0

    async def run_crawl_cycle(self):
        self.runs += 1
        return 1


class TestTriggerCrawl:
    """Fire-and-forget manual triggers."""

    @pytest.mark.asyncio
    async def test_trigger_returns_immediately(self):
        pipeline = GatedPipeline()
        scheduler = CrawlScheduler(pipeline)

        assert scheduler.trigger_crawl() == {"status": "initiated"}
        assert scheduler.is_running

        pipeline.release.set()
        await scheduler.wait_current()

        assert not scheduler.is_running
        assert scheduler.cycles_completed == 1
        assert scheduler.last_result == 3

    @pytest.mark.asyncio
    async def test_overlapping_trigger_is_acknowledged_only(self):
        pipeline = GatedPipeline()
        scheduler = CrawlScheduler(pipeline)

        scheduler.trigger_crawl()
        await asyncio.sleep(0)
        assert scheduler.trigger_crawl() == {"status": "already_running"}

        pipeline.release.set()
        await scheduler.wait_current()

        assert pipeline.runs == 1
        assert scheduler.trigger_crawl() == {"status": "initiated"}
        await scheduler.wait_current()
        assert pipeline.runs == 2

    @pytest.mark.asyncio
    async def test_failed_cycle_is_recorded(self):
        pipeline = GatedPipeline(error=RuntimeError("database is locked"))
        pipeline.release.set()
        scheduler = CrawlScheduler(pipeline)

        scheduler.trigger_crawl()
        await scheduler.wait_current()
        await asyncio.sleep(0)

        assert scheduler.cycles_failed == 1
        assert scheduler.cycles_completed == 0
        assert scheduler.last_error == "database is locked"

        status = scheduler.get_status()
        assert status["running"] is False
        assert status["last_error"] == "database is locked"
        assert status["last_run_at"] is not None


class TestRunForever:
    """Timer-driven cycles."""

    @pytest.mark.asyncio
    async def test_runs_on_startup_and_on_interval(self):
        pipeline = InstantPipeline()
        settings = SchedulerSettings(interval_minutes=0.02 / 60, run_on_startup=True)
        scheduler = CrawlScheduler(pipeline, settings)

        task = asyncio.create_task(scheduler.run_forever())
        await asyncio.sleep(0.1)
        await scheduler.stop()
        await asyncio.wait_for(task, timeout=1.0)

        assert pipeline.runs >= 2
        assert scheduler.cycles_completed == pipeline.runs

    @pytest.mark.asyncio
    async def test_no_startup_cycle(self):
        pipeline = InstantPipeline()
        settings = SchedulerSettings(interval_minutes=10, run_on_startup=False)
        scheduler = CrawlScheduler(pipeline, settings)

        task = asyncio.create_task(scheduler.run_forever())
        await asyncio.sleep(0.05)
        await scheduler.stop()
        await asyncio.wait_for(task, timeout=1.0)

        assert pipeline.runs == 0

    @pytest.mark.asyncio
    async def test_failures_do_not_stop_schedule(self):
        class FailingPipeline:
            runs = 0

            async def run_crawl_cycle(self):
                self.runs += 1
                raise RuntimeError("boom")

        pipeline = FailingPipeline()
        settings = SchedulerSettings(interval_minutes=0.02 / 60)
        scheduler = CrawlScheduler(pipeline, settings)

        task = asyncio.create_task(scheduler.run_forever())
        await asyncio.sleep(0.1)
        await scheduler.stop()
        await asyncio.wait_for(task, timeout=1.0)

        assert pipeline.runs >= 2
        assert scheduler.cycles_failed >= 1
