from .jobs import run_nightly_forecasts
from .setup import configure_jobs, init_scheduler, scheduler, shutdown_scheduler

__all__ = [
    "configure_jobs",
    "init_scheduler",
    "run_nightly_forecasts",
    "scheduler",
    "shutdown_scheduler",
]
