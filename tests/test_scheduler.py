"""
Tests for the periodic job scheduler.
"""

from unittest.mock import MagicMock

from threadwatch.errors import InsufficientDataError, TransientError
from threadwatch.scheduler import HarvestScheduler


def _factory():
    factory = MagicMock()
    harvester = factory.return_value.__enter__.return_value
    return factory, harvester


class TestJobs:
    def test_scrape_runs_on_fresh_harvester(self):
        factory, harvester = _factory()

        HarvestScheduler(factory).run_scrape()

        factory.assert_called_once_with()
        harvester.scrape.assert_called_once_with()
        factory.return_value.__exit__.assert_called_once()

    def test_job_errors_are_contained(self):
        factory, harvester = _factory()
        harvester.scrape.side_effect = TransientError("catalog down")
        harvester.summarize.side_effect = InsufficientDataError("too few", expected=12, actual=3)
        scheduler = HarvestScheduler(factory)

        scheduler.run_scrape()
        scheduler.run_summarize()

        harvester.summarize.assert_called_once_with()


class TestLifecycle:
    def test_start_registers_both_jobs_and_stop_clears_them(self):
        factory, harvester = _factory()
        scheduler = HarvestScheduler(factory, scrape_cron="*/5 * * * *")

        scheduler.start(run_now=False)
        try:
            assert scheduler.running
            assert scheduler.scrape_job.id == "scrape"
            assert scheduler.summarize_job.id == "summarize"
            assert {job.id for job in scheduler.scheduler.get_jobs()} == {"scrape", "summarize"}
            harvester.scrape.assert_not_called()
        finally:
            scheduler.stop()

        assert not scheduler.running
        assert scheduler.scrape_job is None

    def test_start_runs_first_scrape_immediately(self):
        factory, harvester = _factory()
        scheduler = HarvestScheduler(factory)

        scheduler.start()
        try:
            harvester.scrape.assert_called_once_with()
        finally:
            scheduler.stop()

    def test_stop_without_start_is_harmless(self):
        scheduler = HarvestScheduler(MagicMock())
        scheduler.stop()
        assert not scheduler.running
