from .user import User
from .transaction import Transaction, TransactionType
from .forecast_config import ForecastConfig
from .forecast_result import ForecastResult
from .forecast_performance import ForecastPerformance
from .forecast_anomaly import ForecastAnomaly


__all__ = [
    "User",
    "Transaction",
    "TransactionType",
    "ForecastConfig",
    "ForecastResult",
    "ForecastPerformance",
    "ForecastAnomaly",
]
