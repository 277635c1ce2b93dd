from __future__ import annotations

from datetime import date
from typing import Dict, List, Optional, Sequence

import anyio
import structlog

from forecast_engine.models.forecast_config import ForecastConfig
from forecast_engine.models.forecast_result import ForecastResult
from forecast_engine.observability.instrument import log_job
from forecast_engine.services.cache import batch_key
from forecast_engine.services.forecast import ForecastOrchestrator, check_horizon
from forecast_engine.services.registry import resolve_algorithm

logger = structlog.get_logger(__name__)

# Map key for a config that still has no identity after registration.
UNSAVED_CONFIG_KEY = -1

BatchResult = Dict[int, List[ForecastResult]]


def _result_key(config: ForecastConfig) -> int:
    return int(config.id) if config.id is not None else UNSAVED_CONFIG_KEY


def _first_error(group: BaseExceptionGroup) -> BaseException:
    for exc in group.exceptions:
        if isinstance(exc, BaseExceptionGroup):
            return _first_error(exc)
        return exc
    return group


class BatchCoordinator:
    """
    Runs one forecast per config concurrently and joins them into a map keyed by
    config id, in submission order.

    Failure policy is fail-fast: the first member error cancels the remaining
    members and is raised to the caller; no partial map is returned.
    """

    def __init__(self, orchestrator: ForecastOrchestrator) -> None:
        self.orchestrator = orchestrator

    @property
    def cache(self):
        return self.orchestrator.cache

    async def _fan_out(
        self, user, configs: Sequence[ForecastConfig], start_date: date, horizon_days: int
    ) -> BatchResult:
        slots: List[Optional[List[ForecastResult]]] = [None] * len(configs)

        async def _member(idx: int, cfg: ForecastConfig) -> None:
            slots[idx] = await self.orchestrator.generate_prepared(user, cfg, start_date, horizon_days)

        try:
            async with anyio.create_task_group() as tg:
                for idx, cfg in enumerate(configs):
                    tg.start_soon(_member, idx, cfg)
        except BaseExceptionGroup as group:
            err = _first_error(group)
            logger.warning(
                "batch.member_failed",
                user_id=user.id,
                error=type(err).__name__,
                detail=str(err),
            )
            raise err from group

        out: BatchResult = {}
        for cfg, rows in zip(configs, slots):
            out[_result_key(cfg)] = rows or []
        return out

    @log_job("forecast.batch")
    async def batch_generate(
        self,
        user_id: int,
        configs: Sequence[ForecastConfig],
        start_date: date,
        horizon_days: int,
    ) -> BatchResult:
        horizon_days = check_horizon(horizon_days)
        configs = list(configs)
        for cfg in configs:
            resolve_algorithm(cfg.algorithm)

        orch = self.orchestrator
        user = await orch.run_sync(orch.users.find, user_id)
        registered: List[ForecastConfig] = []
        for cfg in configs:
            registered.append(await orch.run_sync(orch.configs.get_or_create, user, cfg))

        key = batch_key(user.id, [c.id for c in registered], start_date, horizon_days)
        joined = await self.cache.get_or_compute(
            key, lambda: self._fan_out(user, registered, start_date, horizon_days)
        )
        # a cache hit may come from a different submission order
        ordered: BatchResult = {}
        for cfg in registered:
            k = _result_key(cfg)
            if k in joined and k not in ordered:
                ordered[k] = list(joined[k])
        return ordered


__all__ = ["BatchCoordinator", "BatchResult", "UNSAVED_CONFIG_KEY"]
