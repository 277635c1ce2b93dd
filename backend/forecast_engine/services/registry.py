from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Callable, Dict, List, Sequence

from forecast_engine.config import Settings, get_settings
from forecast_engine.exceptions import InvalidParameter
from forecast_engine.models.forecast_config import ForecastConfig
from forecast_engine.services import algorithms as algo


class Algorithm(str, enum.Enum):
    SMA = "SMA"
    EWMA = "EWMA"
    LINEAR_REGRESSION = "LINEAR_REGRESSION"
    SEASONAL_DECOMPOSITION = "SEASONAL_DECOMPOSITION"


@dataclass(frozen=True)
class AlgorithmDefaults:
    window_size: int = 7
    smoothing_factor: float = 0.3
    season_length: int = 7

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "AlgorithmDefaults":
        s = settings or get_settings()
        return cls(
            window_size=s.SMA_DEFAULT_WINDOW,
            smoothing_factor=s.EWMA_DEFAULT_ALPHA,
            season_length=s.SEASON_DEFAULT_LENGTH,
        )


Strategy = Callable[[Sequence[float], ForecastConfig, int, AlgorithmDefaults], List[float]]


def _sma(values, config, horizon, defaults) -> List[float]:
    window = config.window_size if config.window_size is not None else defaults.window_size
    return algo.flat_line(algo.simple_moving_average(values, window), horizon)


def _ewma(values, config, horizon, defaults) -> List[float]:
    alpha = config.smoothing_factor if config.smoothing_factor is not None else defaults.smoothing_factor
    return algo.flat_line(algo.exponential_weighted_moving_average(values, alpha), horizon)


def _linear(values, config, horizon, defaults) -> List[float]:
    return algo.linear_regression_forecast(values, horizon)


def _seasonal(values, config, horizon, defaults) -> List[float]:
    season = config.season_length if config.season_length is not None else defaults.season_length
    return algo.seasonal_decomposition(values, season, horizon)


_REGISTRY: Dict[Algorithm, Strategy] = {
    Algorithm.SMA: _sma,
    Algorithm.EWMA: _ewma,
    Algorithm.LINEAR_REGRESSION: _linear,
    Algorithm.SEASONAL_DECOMPOSITION: _seasonal,
}


def resolve_algorithm(name: str | Algorithm | None) -> Algorithm:
    if isinstance(name, Algorithm):
        return name
    try:
        return Algorithm(str(name or "").upper())
    except ValueError:
        raise InvalidParameter(
            f"Unknown algorithm '{name}'. Available: {list_algorithms()}"
        ) from None


def get_strategy(name: str | Algorithm | None) -> Strategy:
    return _REGISTRY[resolve_algorithm(name)]


def run_algorithm(
    config: ForecastConfig,
    values: Sequence[float],
    horizon: int,
    defaults: AlgorithmDefaults | None = None,
) -> List[float]:
    """Dispatch ``config.algorithm`` and return a forecast vector for ``horizon`` days."""
    strategy = get_strategy(config.algorithm)
    return strategy(values, config, horizon, defaults or AlgorithmDefaults())


def min_points(config: ForecastConfig, defaults: AlgorithmDefaults | None = None) -> int:
    """Fewest observed points the selected algorithm can forecast from."""
    if resolve_algorithm(config.algorithm) is Algorithm.SMA:
        defaults = defaults or AlgorithmDefaults()
        return config.window_size if config.window_size is not None else defaults.window_size
    return 1


def list_algorithms() -> list[str]:
    return [a.value for a in Algorithm]
