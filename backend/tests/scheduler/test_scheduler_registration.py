# backend/tests/scheduler/test_scheduler_registration.py

import pytest
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.jobstores.sqlalchemy import SQLAlchemyJobStore

from forecast_engine.config import Settings
from forecast_engine.scheduler import setup
from forecast_engine.scheduler.setup import build_scheduler, configure_jobs, scheduler


def test_configure_jobs_registers_nightly_forecasts() -> None:
    # Start from a clean slate so repeated test runs don't accumulate jobs
    scheduler.remove_all_jobs()

    configure_jobs()

    job_ids = {job.id for job in scheduler.get_jobs()}
    assert "nightly-forecasts" in job_ids


def test_job_store_follows_settings(tmp_path) -> None:
    memory = build_scheduler(Settings(SCHEDULER_DB_URL=None))
    assert isinstance(memory._lookup_jobstore("default"), MemoryJobStore)

    persistent = build_scheduler(Settings(SCHEDULER_DB_URL=f"sqlite:///{tmp_path/'jobs.sqlite'}"))
    assert isinstance(persistent._lookup_jobstore("default"), SQLAlchemyJobStore)


def test_scheduler_timezone_from_settings() -> None:
    sched = build_scheduler(Settings(SCHEDULER_TZ="America/New_York"))
    assert str(sched.timezone) == "America/New_York"


@pytest.mark.anyio
async def test_init_and_shutdown_scheduler(monkeypatch) -> None:
    target = build_scheduler(Settings(SCHEDULER_DB_URL=None))
    levels = []
    monkeypatch.setattr(setup, "scheduler", target)
    monkeypatch.setattr(
        setup, "get_settings", lambda: Settings(SCHEDULER_ENABLED=True, SCHEDULER_DB_URL=None, LOG_LEVEL="DEBUG")
    )
    monkeypatch.setattr(setup, "configure_logging", levels.append)

    await setup.init_scheduler()
    try:
        assert target.running
        assert target.get_job("nightly-forecasts") is not None
        assert levels == ["DEBUG"]
    finally:
        await setup.shutdown_scheduler()
    assert not target.running


@pytest.mark.anyio
async def test_init_scheduler_disabled_only_configures_logging(monkeypatch) -> None:
    target = build_scheduler(Settings(SCHEDULER_DB_URL=None))
    levels = []
    monkeypatch.setattr(setup, "scheduler", target)
    monkeypatch.setattr(setup, "get_settings", lambda: Settings(SCHEDULER_ENABLED=False, LOG_LEVEL="INFO"))
    monkeypatch.setattr(setup, "configure_logging", levels.append)

    await setup.init_scheduler()

    assert not target.running
    assert target.get_jobs() == []
    assert levels == ["INFO"]
