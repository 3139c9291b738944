import asyncio

from app.models.match import MatchStatus
from app.utils.config import Settings
from schedulers.match_scheduler import MatchScheduler

from conftest import load_match, seed_match


def test_setup_registers_match_jobs(stores, notifier, clock):
    scheduler = MatchScheduler(stores, notifier, Settings(), clock=clock).setup()
    assert {job.id for job in scheduler.get_jobs()} == {"match_status_sweep", "notification_prune", "health_check"}


def test_run_sweep_records_job_stats(stores, league, notifier, clock):
    seed_match(stores, league)
    match_scheduler = MatchScheduler(stores, notifier, Settings(), clock=clock)

    asyncio.run(match_scheduler.run_sweep())

    assert load_match(stores).status == MatchStatus.COMPLETED
    assert match_scheduler.job_stats["sweep"]["success_count"] == 1
    assert match_scheduler.job_stats["sweep"]["last_run"] == clock()
    assert len(notifier.titled("Match Completed")) == 1


def test_run_prune_survives_store_errors(notifier, clock):
    class BrokenStores:
        @property
        def players(self):
            raise RuntimeError("store down")

    match_scheduler = MatchScheduler(BrokenStores(), notifier, Settings(), clock=clock)
    asyncio.run(match_scheduler.run_prune())

    assert match_scheduler.job_stats["prune"]["error_count"] == 1
