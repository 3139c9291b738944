#!/usr/bin/env python
"""
Match Scheduler Daemon

Runs the time-driven match jobs without any user action:
- status sweep every SWEEP_INTERVAL_SECONDS (upcoming -> live -> completed)
- notification prune once a day at NOTIFICATION_PRUNE_HOUR (UTC)
- health check every 5 minutes, logging job statistics

The API process starts the same scheduler on startup when SCHEDULER_ENABLED is
set; otherwise run it on its own.

Usage:
    python -m schedulers.match_scheduler
"""

import asyncio
import logging
import signal
import sys
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from app.utils.config import Settings
from app.utils.timeutils import utc_now
from jobs.prune_notifications import prune_old_notifications
from jobs.sweep_matches import sweep_match_statuses
from notifiers.base import Notifier
from storage.base import Stores

logger = logging.getLogger("matchday.scheduler")

HEALTH_CHECK_SECONDS = 300


class MatchScheduler:
    """Owns the AsyncIOScheduler and the per-job run statistics."""

    def __init__(
        self,
        stores: Stores,
        notifier: Notifier,
        settings: Settings,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.stores = stores
        self.notifier = notifier
        self.settings = settings
        self.clock = clock
        self.scheduler: Optional[AsyncIOScheduler] = None
        self.job_stats: Dict[str, Dict[str, Any]] = {
            "sweep": {"last_run": None, "success_count": 0, "error_count": 0},
            "prune": {"last_run": None, "success_count": 0, "error_count": 0},
        }

    async def run_sweep(self):
        """Run the match status sweep with error handling"""
        job = self.job_stats["sweep"]
        try:
            job["last_run"] = self.clock()
            result = await asyncio.to_thread(
                sweep_match_statuses, self.stores, self.notifier, job["last_run"]
            )
            job["success_count"] += 1
            if result["live"] or result["completed"] or result["errors"]:
                logger.info(f"Match status sweep: {result}")
        except Exception as e:
            job["error_count"] += 1
            logger.error(f"Error in match status sweep: {e}", exc_info=True)

    async def run_prune(self):
        """Run the notification cleanup with error handling"""
        job = self.job_stats["prune"]
        try:
            logger.info("Notification cleanup job running...")
            job["last_run"] = self.clock()
            result = await asyncio.to_thread(
                prune_old_notifications,
                self.stores,
                job["last_run"],
                self.settings.NOTIFICATION_RETENTION_DAYS,
                self.settings.SUBMIT_RETRY_LIMIT,
            )
            job["success_count"] += 1
            logger.info(f"Notification cleanup job finished: {result}")
        except Exception as e:
            job["error_count"] += 1
            logger.error(f"Error in notification cleanup: {e}", exc_info=True)

    async def health_check(self):
        """Log job statistics and flag a sweep that stopped running"""
        now = self.clock()
        for name, stats in self.job_stats.items():
            last_run = stats["last_run"]
            if last_run:
                logger.info(
                    f"{name}: last_run={(now - last_run).total_seconds():.0f}s ago, "
                    f"success={stats['success_count']}, errors={stats['error_count']}"
                )
            else:
                logger.info(f"{name}: never run")

        last_sweep = self.job_stats["sweep"]["last_run"]
        if last_sweep and (now - last_sweep).total_seconds() > self.settings.SWEEP_INTERVAL_SECONDS * 2:
            logger.warning("Match status sweep looks stale")

    def setup(self) -> AsyncIOScheduler:
        """Setup the APScheduler with all match jobs"""
        scheduler = AsyncIOScheduler(timezone="UTC")

        scheduler.add_job(
            self.run_sweep,
            trigger=IntervalTrigger(seconds=self.settings.SWEEP_INTERVAL_SECONDS),
            id="match_status_sweep",
            name="Match Status Sweep",
            max_instances=1,
            coalesce=True,
        )

        scheduler.add_job(
            self.run_prune,
            trigger=CronTrigger(hour=self.settings.NOTIFICATION_PRUNE_HOUR, minute=0, timezone="UTC"),
            id="notification_prune",
            name="Notification Prune",
            max_instances=1,
            coalesce=True,
        )

        scheduler.add_job(
            self.health_check,
            trigger=IntervalTrigger(seconds=HEALTH_CHECK_SECONDS),
            id="health_check",
            name="Health Check",
            max_instances=1,
            coalesce=True,
        )

        self.scheduler = scheduler
        logger.info("Scheduler configured with match jobs")
        return scheduler

    def start(self):
        if self.scheduler is None:
            self.setup()
        self.scheduler.start()
        logger.info("Scheduler started")

    def shutdown(self):
        if self.scheduler is not None and self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")


async def main():
    """Main daemon function"""
    from app.utils.config import get_settings
    from notifiers import build_notifier
    from storage import build_stores

    logger.info("Starting Match Scheduler Daemon...")
    settings = get_settings()
    stores = build_stores(settings)
    match_scheduler = MatchScheduler(stores, build_notifier(settings, stores), settings)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    match_scheduler.start()
    await match_scheduler.run_sweep()

    try:
        await stop.wait()
        logger.info("Shutdown signal received, stopping jobs...")
    finally:
        match_scheduler.shutdown()
        logger.info("Match Scheduler Daemon stopped")


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    asyncio.run(main())
