"""Periodic scrape and summarize jobs."""

from __future__ import annotations

import logging
from typing import Callable

from apscheduler.job import Job
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from .errors import HarvesterError
from .harvester import Harvester

logger = logging.getLogger("threadwatch.scheduler")


class HarvestScheduler:
    """Owns the background scheduler and its two job handles.

    Nothing is global: the owning process builds one, calls :meth:`start`
    and later :meth:`stop`.  Each run gets a fresh :class:`Harvester` from
    ``harvester_factory``.
    """

    def __init__(
        self,
        harvester_factory: Callable[[], Harvester],
        *,
        scrape_cron: str = "0 */2 * * *",
        summarize_cron: str = "30 21 * * *",
    ) -> None:
        self.harvester_factory = harvester_factory
        self.scrape_cron = scrape_cron
        self.summarize_cron = summarize_cron
        self.scheduler = BackgroundScheduler(daemon=True, timezone="UTC")
        self.scrape_job: Job | None = None
        self.summarize_job: Job | None = None

    def run_scrape(self) -> None:
        logger.info("=== Starting scheduled scraper job ===")
        try:
            with self.harvester_factory() as harvester:
                harvester.scrape()
            logger.info("Scheduled scraper job completed successfully")
        except HarvesterError as exc:
            logger.error("Scraper job failed: %s", exc)

    def run_summarize(self) -> None:
        logger.info("=== Starting scheduled summarizer job ===")
        try:
            with self.harvester_factory() as harvester:
                harvester.summarize()
            logger.info("Scheduled summarizer job completed successfully")
        except HarvesterError as exc:
            logger.error("Summarizer job failed: %s", exc)

    @property
    def running(self) -> bool:
        return self.scheduler.running

    def start(self, *, run_now: bool = True) -> None:
        if self.scheduler.running:
            logger.warning("Scheduler is already running")
            return
        self.scrape_job = self.scheduler.add_job(
            self.run_scrape,
            trigger=CronTrigger.from_crontab(self.scrape_cron, timezone="UTC"),
            id="scrape",
            name="Scrape catalog and threads",
            replace_existing=True,
            max_instances=1,
        )
        self.summarize_job = self.scheduler.add_job(
            self.run_summarize,
            trigger=CronTrigger.from_crontab(self.summarize_cron, timezone="UTC"),
            id="summarize",
            name="Summarize selected threads",
            replace_existing=True,
            max_instances=1,
        )
        self.scheduler.start()
        logger.info("Jobs scheduled: scrape (%s), summarize (%s) UTC", self.scrape_cron, self.summarize_cron)
        if run_now:
            self.run_scrape()

    def stop(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Stopped all scheduled jobs")
        self.scrape_job = None
        self.summarize_job = None
