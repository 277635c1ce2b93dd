"""
Composition root: one object exposing the four engine operations, wired to
SQLAlchemy-backed stores by :func:`build_engine`.
"""
from __future__ import annotations

from datetime import date
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session, sessionmaker

from forecast_engine.config import Settings, get_settings
from forecast_engine.db.session import get_sessionmaker
from forecast_engine.models.forecast_anomaly import ForecastAnomaly
from forecast_engine.models.forecast_config import ForecastConfig
from forecast_engine.models.forecast_result import ForecastResult
from forecast_engine.services.anomaly import AnomalyScanner
from forecast_engine.services.backtest import BacktestEngine
from forecast_engine.services.batch import BatchCoordinator, BatchResult
from forecast_engine.services.cache import ResultCache
from forecast_engine.services.forecast import ForecastOrchestrator
from forecast_engine.services.stores import (
    AnomalyStore,
    ConfigStore,
    ResultStore,
    SeriesSource,
    SqlAnomalyStore,
    SqlConfigStore,
    SqlResultStore,
    SqlSeriesSource,
    SqlUserDirectory,
    UserDirectory,
)


class ForecastEngine:
    def __init__(
        self,
        *,
        users: UserDirectory,
        configs: ConfigStore,
        series: SeriesSource,
        results: ResultStore,
        anomalies: AnomalyStore,
        settings: Settings | None = None,
        cache: ResultCache | None = None,
    ) -> None:
        self.orchestrator = ForecastOrchestrator(
            users=users,
            configs=configs,
            series=series,
            results=results,
            settings=settings,
            cache=cache,
        )
        self.backtests = BacktestEngine(self.orchestrator)
        self.batches = BatchCoordinator(self.orchestrator)
        self.anomalies = AnomalyScanner(self.orchestrator, anomalies)

    @property
    def settings(self) -> Settings:
        return self.orchestrator.settings

    @property
    def cache(self) -> ResultCache:
        return self.orchestrator.cache

    async def generate(
        self, user_id: int, config: ForecastConfig, start_date: date, horizon_days: int
    ) -> List[ForecastResult]:
        return await self.orchestrator.generate(user_id, config, start_date, horizon_days)

    async def backtest(
        self,
        user_id: int,
        config: ForecastConfig,
        start_date: date,
        horizon_days: int,
        lookback_days: int,
    ) -> List[ForecastResult]:
        return await self.backtests.backtest(user_id, config, start_date, horizon_days, lookback_days)

    async def batch_generate(
        self,
        user_id: int,
        configs: Sequence[ForecastConfig],
        start_date: date,
        horizon_days: int,
    ) -> BatchResult:
        return await self.batches.batch_generate(user_id, configs, start_date, horizon_days)

    async def scan_anomalies(
        self,
        user_id: int,
        from_date: date,
        to_date: date,
        threshold_sigma: float = 3.0,
        config: Optional[ForecastConfig] = None,
    ) -> List[ForecastAnomaly]:
        return await self.anomalies.scan(user_id, from_date, to_date, threshold_sigma, config)


def build_engine(
    settings: Settings | None = None,
    session_factory: sessionmaker[Session] | None = None,
) -> ForecastEngine:
    settings = settings or get_settings()
    factory = session_factory or get_sessionmaker()
    return ForecastEngine(
        users=SqlUserDirectory(factory),
        configs=SqlConfigStore(factory),
        series=SqlSeriesSource(factory),
        results=SqlResultStore(factory),
        anomalies=SqlAnomalyStore(factory),
        settings=settings,
    )


__all__ = ["ForecastEngine", "build_engine"]
