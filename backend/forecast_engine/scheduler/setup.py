from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.jobstores.sqlalchemy import SQLAlchemyJobStore
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from pytz import timezone

from forecast_engine.config import Settings, get_settings
from forecast_engine.observability.logging import configure_logging
from forecast_engine.scheduler.jobs import run_nightly_forecasts

NIGHTLY_JOB_ID = "nightly-forecasts"


def build_scheduler(settings: Settings | None = None) -> AsyncIOScheduler:
    settings = settings or get_settings()
    if settings.SCHEDULER_DB_URL:
        store = SQLAlchemyJobStore(url=settings.SCHEDULER_DB_URL)
    else:
        store = MemoryJobStore()
    return AsyncIOScheduler(
        jobstores={"default": store},
        timezone=timezone(settings.SCHEDULER_TZ),
    )


# Global scheduler instance for the nightly forecast run.
scheduler = build_scheduler()


def configure_jobs(target: AsyncIOScheduler | None = None) -> None:
    """
    Register recurring jobs.

    - nightly-forecasts: batch forecasts for every user with saved configs
    """
    (target or scheduler).add_job(
        run_nightly_forecasts,
        "cron",
        id=NIGHTLY_JOB_ID,
        hour=2,
        minute=15,
        replace_existing=True,
        misfire_grace_time=3600,
        coalesce=True,
        max_instances=1,
    )


async def init_scheduler() -> None:
    """Set up logging, then configure and start the scheduler if SCHEDULER_ENABLED is true."""
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)
    if not settings.SCHEDULER_ENABLED:
        return
    configure_jobs()
    scheduler.start()


async def shutdown_scheduler() -> None:
    if scheduler.running:
        scheduler.shutdown(wait=False)
