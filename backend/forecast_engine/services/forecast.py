# forecast_engine/services/forecast.py
from __future__ import annotations

import functools
from datetime import date, timedelta
from typing import Any, Callable, List, Optional, Sequence, Tuple, TypeVar

import anyio
import anyio.to_thread
import structlog

from forecast_engine.config import Settings, get_settings
from forecast_engine.exceptions import InvalidParameter
from forecast_engine.models.forecast_config import ForecastConfig
from forecast_engine.models.forecast_result import ForecastResult
from forecast_engine.models.user import User
from forecast_engine.observability.instrument import log_job
from forecast_engine.observability.metrics import record_rows
from forecast_engine.services.cache import ResultCache, generate_key
from forecast_engine.services.registry import AlgorithmDefaults, resolve_algorithm, run_algorithm
from forecast_engine.services.series import series_values, zero_fill
from forecast_engine.services.stores import ConfigStore, ResultStore, SeriesSource, UserDirectory

T = TypeVar("T")

logger = structlog.get_logger(__name__)


def check_horizon(horizon_days: int) -> int:
    if horizon_days is None or int(horizon_days) < 1:
        raise InvalidParameter(f"horizon_days must be >= 1, got {horizon_days}")
    return int(horizon_days)


class ForecastOrchestrator:
    """
    Turns (user, config, start date, horizon) into persisted per-day forecasts.

    The synchronous methods do the actual work and run on worker threads;
    :meth:`generate` is the awaitable entry point and sits behind the result cache.
    """

    def __init__(
        self,
        *,
        users: UserDirectory,
        configs: ConfigStore,
        series: SeriesSource,
        results: ResultStore,
        settings: Settings | None = None,
        cache: ResultCache | None = None,
        limiter: anyio.CapacityLimiter | None = None,
    ) -> None:
        self.users = users
        self.configs = configs
        self.series = series
        self.results = results
        self.settings = settings or get_settings()
        self.defaults = AlgorithmDefaults.from_settings(self.settings)
        self.cache = cache if cache is not None else ResultCache.from_settings(self.settings)
        self._limiter = limiter

    # ---------- threading ----------

    def _get_limiter(self) -> anyio.CapacityLimiter:
        if self._limiter is None:
            self._limiter = anyio.CapacityLimiter(self.settings.FORECAST_MAX_WORKERS)
        return self._limiter

    async def run_sync(self, func: Callable[..., T], *args: Any) -> T:
        """Run blocking store/algorithm work off the event loop."""
        return await anyio.to_thread.run_sync(
            functools.partial(func, *args), limiter=self._get_limiter()
        )

    # ---------- synchronous core ----------

    def prepare(self, user_id: int, config: ForecastConfig) -> Tuple[User, ForecastConfig]:
        """Resolve the user (NotFound if absent) and make sure the config has an identity."""
        user = self.users.find(user_id)
        return user, self.configs.get_or_create(user, config)

    def load_history(self, user_id: int, config: ForecastConfig, from_date: date, to_date: date) -> List[float]:
        points = self.series.daily_totals(
            user_id,
            from_date,
            to_date,
            category=config.category,
            transaction_type=config.transaction_type,
        )
        if self.settings.ZERO_FILL_GAPS:
            points = zero_fill(points, to_date)
        return series_values(points)

    def build_results(
        self,
        user: User,
        config: ForecastConfig,
        start_date: date,
        horizon_days: int,
        forecasts: Sequence[float],
        mape: Optional[float] = None,
    ) -> List[ForecastResult]:
        """One row per day in [start, start+horizon); short vectors hold their last value."""
        rows: List[ForecastResult] = []
        for i in range(horizon_days):
            value = forecasts[min(i, len(forecasts) - 1)]
            rows.append(
                ForecastResult(
                    config_id=config.id,
                    user_id=user.id,
                    target_date=start_date + timedelta(days=i),
                    forecast_value=float(value),
                    mape=mape,
                )
            )
        return rows

    def forecast(self, user: User, config: ForecastConfig, start_date: date, horizon_days: int) -> List[ForecastResult]:
        algorithm = resolve_algorithm(config.algorithm)
        from_date = start_date - timedelta(days=self.settings.FORECAST_LOOKBACK_DAYS)
        to_date = start_date - timedelta(days=1)

        values = self.load_history(user.id, config, from_date, to_date)
        if not values:
            logger.info("forecast.no_history", user_id=user.id, config_id=config.id)
            return []

        forecasts = run_algorithm(config, values, horizon_days, self.defaults)
        rows = self.build_results(user, config, start_date, horizon_days, forecasts)
        saved = self.results.save_all(rows)
        record_rows("forecast", len(saved))
        logger.info(
            "forecast.generated",
            user_id=user.id,
            config_id=config.id,
            algorithm=algorithm.value,
            points=len(values),
            rows=len(saved),
        )
        return saved

    # ---------- async surface ----------

    async def generate_prepared(
        self, user: User, config: ForecastConfig, start_date: date, horizon_days: int
    ) -> List[ForecastResult]:
        key = generate_key(user.id, config.id, start_date, horizon_days)
        return await self.cache.get_or_compute(
            key, lambda: self.run_sync(self.forecast, user, config, start_date, horizon_days)
        )

    @log_job("forecast.generate")
    async def generate(
        self, user_id: int, config: ForecastConfig, start_date: date, horizon_days: int
    ) -> List[ForecastResult]:
        horizon_days = check_horizon(horizon_days)
        resolve_algorithm(config.algorithm)
        user, config = await self.run_sync(self.prepare, user_id, config)
        return await self.generate_prepared(user, config, start_date, horizon_days)


__all__ = ["ForecastOrchestrator", "check_horizon"]
