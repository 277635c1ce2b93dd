from __future__ import annotations

import functools
import inspect
import time
from typing import Any, Callable, TypeVar

import structlog

from .metrics import record_job

F = TypeVar("F", bound=Callable[..., Any])

logger = structlog.get_logger("job")


def _result_size(res: Any) -> int | None:
    if isinstance(res, (list, tuple, set, dict)):
        return len(res)
    if hasattr(res, "__len__"):
        try:
            return len(res)  # type: ignore[arg-type]
        except TypeError:
            return None
    return None


def log_job(name: str) -> Callable[[F], F]:
    """Decorator to measure job duration, emit structured logs and record metrics."""

    def decorator(func: F) -> F:
        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any):
                start = time.perf_counter()
                logger.info("job.start", job=name)
                try:
                    result = await func(*args, **kwargs)
                except Exception:
                    elapsed = time.perf_counter() - start
                    record_job(name, "error", elapsed)
                    logger.exception("job.error", job=name, duration_ms=round(elapsed * 1000, 2))
                    raise
                elapsed = time.perf_counter() - start
                record_job(name, "ok", elapsed)
                logger.info(
                    "job.completed",
                    job=name,
                    duration_ms=round(elapsed * 1000, 2),
                    result_size=_result_size(result),
                )
                return result

            return async_wrapper  # type: ignore[return-value]

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any):
            start = time.perf_counter()
            logger.info("job.start", job=name)
            try:
                result = func(*args, **kwargs)
            except Exception:
                elapsed = time.perf_counter() - start
                record_job(name, "error", elapsed)
                logger.exception("job.error", job=name, duration_ms=round(elapsed * 1000, 2))
                raise
            elapsed = time.perf_counter() - start
            record_job(name, "ok", elapsed)
            logger.info(
                "job.completed",
                job=name,
                duration_ms=round(elapsed * 1000, 2),
                result_size=_result_size(result),
            )
            return result

        return sync_wrapper  # type: ignore[return-value]

    return decorator
