from __future__ import annotations

from prometheus_client import Counter, Histogram

JOB_COUNTER = Counter(
    "forecast_jobs_total",
    "Forecast engine operations by outcome",
    ["job", "outcome"],
)
JOB_LATENCY = Histogram(
    "forecast_job_duration_seconds",
    "Forecast engine operation latency",
    ["job"],
)
CACHE_EVENTS = Counter(
    "forecast_cache_events_total",
    "Result cache lookups",
    ["event"],
)
ROWS_PERSISTED = Counter(
    "forecast_rows_persisted_total",
    "Rows handed to the result/anomaly stores",
    ["kind"],
)


def record_job(job: str, outcome: str, duration_s: float) -> None:
    JOB_COUNTER.labels(job=job, outcome=outcome).inc()
    JOB_LATENCY.labels(job=job).observe(duration_s)


def record_cache(event: str) -> None:
    CACHE_EVENTS.labels(event=event).inc()


def record_rows(kind: str, count: int) -> None:
    if count:
        ROWS_PERSISTED.labels(kind=kind).inc(count)


__all__ = [
    "JOB_COUNTER",
    "JOB_LATENCY",
    "CACHE_EVENTS",
    "ROWS_PERSISTED",
    "record_job",
    "record_cache",
    "record_rows",
]
