from __future__ import annotations

from datetime import date
from typing import List, Optional

import structlog

from forecast_engine.exceptions import InvalidParameter
from forecast_engine.models.forecast_anomaly import ForecastAnomaly
from forecast_engine.models.forecast_config import ForecastConfig
from forecast_engine.observability.instrument import log_job
from forecast_engine.observability.metrics import record_rows
from forecast_engine.services.algorithms import anomaly_baseline, detect_anomalies
from forecast_engine.services.forecast import ForecastOrchestrator
from forecast_engine.services.series import series_values, zero_fill
from forecast_engine.services.stores import AnomalyStore

logger = structlog.get_logger(__name__)


class AnomalyScanner:
    """Flags days whose total sits more than ``threshold_sigma`` deviations from the window mean."""

    def __init__(self, orchestrator: ForecastOrchestrator, store: AnomalyStore) -> None:
        self.orchestrator = orchestrator
        self.store = store

    def find(
        self,
        user_id: int,
        from_date: date,
        to_date: date,
        threshold_sigma: float,
        config: Optional[ForecastConfig] = None,
    ) -> List[ForecastAnomaly]:
        orch = self.orchestrator
        user = orch.users.find(user_id)
        points = orch.series.daily_totals(
            user.id,
            from_date,
            to_date,
            category=config.category if config is not None else None,
            transaction_type=config.transaction_type if config is not None else None,
        )
        if orch.settings.ZERO_FILL_GAPS:
            points = zero_fill(points, to_date)
        values = series_values(points)
        if not values:
            return []

        mean, std = anomaly_baseline(values)
        params = {
            "threshold_sigma": float(threshold_sigma),
            "from": from_date.isoformat(),
            "to": to_date.isoformat(),
            "mean": mean,
            "std": std,
        }
        flagged = [
            ForecastAnomaly(
                user_id=user.id,
                config_id=config.id if config is not None else None,
                event_date=points[i].day,
                anomaly_value=values[i],
                zscore=(values[i] - mean) / std,
                params_json=params,
            )
            for i in detect_anomalies(values, threshold_sigma)
        ]
        if not flagged:
            return []

        saved = self.store.save_all(flagged)
        record_rows("anomaly", len(saved))
        logger.info(
            "anomaly.flagged",
            user_id=user.id,
            points=len(values),
            flagged=len(saved),
            threshold_sigma=threshold_sigma,
        )
        return saved

    @log_job("anomaly.scan")
    async def scan(
        self,
        user_id: int,
        from_date: date,
        to_date: date,
        threshold_sigma: float = 3.0,
        config: Optional[ForecastConfig] = None,
    ) -> List[ForecastAnomaly]:
        if from_date > to_date:
            raise InvalidParameter(f"from_date {from_date} is after to_date {to_date}")
        if threshold_sigma is None or float(threshold_sigma) <= 0:
            raise InvalidParameter(f"threshold_sigma must be > 0, got {threshold_sigma}")
        return await self.orchestrator.run_sync(
            self.find, user_id, from_date, to_date, float(threshold_sigma), config
        )


__all__ = ["AnomalyScanner"]
