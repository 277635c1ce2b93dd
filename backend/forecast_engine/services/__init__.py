from .backtest import BacktestEngine
from .batch import UNSAVED_CONFIG_KEY, BatchCoordinator
from .cache import ResultCache
from .engine import ForecastEngine, build_engine
from .forecast import ForecastOrchestrator
from .registry import Algorithm, list_algorithms

__all__ = [
    "Algorithm",
    "BacktestEngine",
    "BatchCoordinator",
    "ForecastEngine",
    "ForecastOrchestrator",
    "ResultCache",
    "UNSAVED_CONFIG_KEY",
    "build_engine",
    "list_algorithms",
]
