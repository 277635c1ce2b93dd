from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable, List

import numpy as np
import structlog

from forecast_engine.exceptions import InvalidParameter
from forecast_engine.models.forecast_config import ForecastConfig
from forecast_engine.models.forecast_performance import ForecastPerformance
from forecast_engine.models.forecast_result import ForecastResult
from forecast_engine.models.user import User
from forecast_engine.observability.instrument import log_job
from forecast_engine.observability.metrics import record_rows
from forecast_engine.services.cache import backtest_key
from forecast_engine.services.forecast import ForecastOrchestrator, check_horizon
from forecast_engine.services.registry import min_points, resolve_algorithm, run_algorithm

logger = structlog.get_logger(__name__)


def _mape(actual: Iterable[float], pred: Iterable[float], eps: float = 1e-9) -> float:
    """Mean absolute percentage error over the overlapping prefix, in percent."""
    a = np.asarray(list(actual), dtype=float)
    p = np.asarray(list(pred), dtype=float)
    n = min(len(a), len(p))
    if n == 0:
        return 100.0
    a, p = a[:n], p[:n]
    denom = np.maximum(np.abs(a), eps)
    return float(np.mean(np.abs(a - p) / denom) * 100.0)


class BacktestEngine:
    """
    Holdout backtest: forecast the last ``horizon`` observed days from the days
    before them, score the result with MAPE and persist the forecast rows dated
    from the requested start date. Every row of one call carries the same score.
    """

    def __init__(self, orchestrator: ForecastOrchestrator) -> None:
        self.orchestrator = orchestrator

    @property
    def cache(self):
        return self.orchestrator.cache

    def score(
        self,
        user: User,
        config: ForecastConfig,
        start_date: date,
        horizon_days: int,
        lookback_days: int,
    ) -> List[ForecastResult]:
        orch = self.orchestrator
        history_from = start_date - timedelta(days=lookback_days + horizon_days)
        history_to = start_date - timedelta(days=1)
        values = orch.load_history(user.id, config, history_from, history_to)

        min_history = max(orch.settings.BACKTEST_MIN_POINTS, horizon_days)
        if len(values) < min_history:
            logger.info(
                "backtest.short_history",
                user_id=user.id,
                config_id=config.id,
                points=len(values),
                required=min_history,
            )
            return []

        split = max(1, len(values) - horizon_days)
        train, actual = values[:split], values[split:]
        required = min_points(config, orch.defaults)
        if len(train) < required:
            logger.info(
                "backtest.short_training",
                user_id=user.id,
                config_id=config.id,
                train_points=len(train),
                required=required,
            )
            return []

        forecast = run_algorithm(config, train, horizon_days, orch.defaults)
        mape = _mape(actual, forecast)

        rows = orch.build_results(user, config, start_date, horizon_days, forecast, mape=mape)
        saved = orch.results.save_all(rows)
        orch.results.save_performance(
            ForecastPerformance(
                config_id=config.id,
                user_id=user.id,
                mape=mape,
                horizon_days=horizon_days,
                lookback_days=lookback_days,
            )
        )
        record_rows("backtest", len(saved))
        logger.info(
            "backtest.scored",
            user_id=user.id,
            config_id=config.id,
            train_points=len(train),
            test_points=len(actual),
            mape=round(mape, 4),
        )
        return saved

    @log_job("forecast.backtest")
    async def backtest(
        self,
        user_id: int,
        config: ForecastConfig,
        start_date: date,
        horizon_days: int,
        lookback_days: int,
    ) -> List[ForecastResult]:
        horizon_days = check_horizon(horizon_days)
        if lookback_days is None or int(lookback_days) < 0:
            raise InvalidParameter(f"lookback_days must be >= 0, got {lookback_days}")
        lookback_days = int(lookback_days)
        resolve_algorithm(config.algorithm)

        orch = self.orchestrator
        user, config = await orch.run_sync(orch.prepare, user_id, config)
        key = backtest_key(user.id, config.id, start_date, horizon_days, lookback_days)
        return await self.cache.get_or_compute(
            key,
            lambda: orch.run_sync(self.score, user, config, start_date, horizon_days, lookback_days),
        )


__all__ = ["BacktestEngine"]
