# forecast_engine/services/algorithms.py
"""
Pure forecasting and anomaly primitives over plain sequences of floats.

Every function is deterministic, holds no state and returns a new list, so it
is safe to call from any number of worker threads at once. Precondition
violations raise ``InvalidParameter``.

Index ``i`` is a position in the observed series, not a calendar offset: the
series source omits days without activity unless zero-fill is enabled.
"""
from __future__ import annotations

import math
from typing import List, Sequence, Tuple

import numpy as np

from forecast_engine.exceptions import InvalidParameter

_DENOM_FLOOR = 1e-9
_STD_FLOOR = 1e-9


def _as_array(values: Sequence[float]) -> np.ndarray:
    return np.asarray(list(values), dtype=float)


def _check_horizon(horizon: int) -> int:
    if horizon < 0:
        raise InvalidParameter(f"horizon must be >= 0, got {horizon}")
    return int(horizon)


def flat_line(smoothed: Sequence[float], horizon: int) -> List[float]:
    """Repeat the last smoothed value across the horizon (no trend)."""
    horizon = _check_horizon(horizon)
    if len(smoothed) == 0:
        raise InvalidParameter("cannot project an empty smoothed series")
    return [float(smoothed[-1])] * horizon


def simple_moving_average(values: Sequence[float], window: int) -> List[float]:
    """
    Trailing mean over ``window`` points.

    Output length is ``len(values) - window + 1``; ``out[i]`` is the mean of the
    window ending at input index ``i + window - 1``.
    """
    y = _as_array(values)
    if window is None or window < 1 or len(y) < window:
        raise InvalidParameter(
            f"Invalid window size for SMA: window={window}, points={len(y)}"
        )
    csum = np.cumsum(np.insert(y, 0, 0.0))
    out = (csum[window:] - csum[:-window]) / float(window)
    return [float(v) for v in out]


def exponential_weighted_moving_average(values: Sequence[float], alpha: float) -> List[float]:
    """out[0] = v[0]; out[i] = alpha*v[i] + (1-alpha)*out[i-1]."""
    if alpha is None or not (0.0 < alpha < 1.0):
        raise InvalidParameter(f"alpha must be in (0, 1), got {alpha}")
    y = _as_array(values)
    if len(y) == 0:
        return []
    out = np.empty_like(y)
    out[0] = y[0]
    for i in range(1, len(y)):
        out[i] = alpha * y[i] + (1.0 - alpha) * out[i - 1]
    return [float(v) for v in out]


def linear_regression_forecast(values: Sequence[float], horizon: int) -> List[float]:
    """
    Ordinary least squares over (1..n, values), extrapolated to x = n+1 .. n+horizon.
    """
    horizon = _check_horizon(horizon)
    y = _as_array(values)
    n = len(y)
    if n == 0:
        raise InvalidParameter("linear regression needs at least one point")

    x = np.arange(1, n + 1, dtype=float)
    sum_x, sum_y = x.sum(), y.sum()
    sum_xx, sum_xy = (x * x).sum(), (x * y).sum()

    denom = n * sum_xx - sum_x * sum_x
    if denom == 0:
        denom = _DENOM_FLOOR
    slope = (n * sum_xy - sum_x * sum_y) / denom
    intercept = (sum_y - slope * sum_x) / n

    future_x = np.arange(n + 1, n + 1 + horizon, dtype=float)
    return [float(v) for v in intercept + slope * future_x]


def seasonal_decomposition(values: Sequence[float], season_length: int, horizon: int) -> List[float]:
    """
    Naive additive decomposition: linear trend plus the average of each seasonal phase.

    Phase averages are taken on the raw values (no de-trending first), so a strong
    trend leaks into the seasonal component. With less than two full seasons the
    forecast falls back to a flat moving-average projection and never raises.
    """
    horizon = _check_horizon(horizon)
    y = _as_array(values)
    n = len(y)

    if season_length is None or season_length <= 1 or n < season_length * 2:
        if n == 0:
            return [0.0] * horizon
        window = min(7, max(2, n), n)
        return flat_line(simple_moving_average(y, window), horizon)

    phases = np.arange(n) % season_length
    sums = np.bincount(phases, weights=y, minlength=season_length)
    counts = np.bincount(phases, minlength=season_length)
    seasonal = np.divide(sums, counts, out=np.zeros(season_length), where=counts > 0)

    trend = linear_regression_forecast(y, horizon)
    return [float(trend[i] + seasonal[(n + i) % season_length]) for i in range(horizon)]


def ensemble_forecast(members: Sequence[Sequence[float]]) -> List[float]:
    """
    Elementwise mean across member forecasts. The first member fixes the output
    length; at each index only members long enough to have a value take part.
    """
    if not members:
        return []
    n = len(members[0])
    out: List[float] = []
    for i in range(n):
        present = [float(m[i]) for m in members if i < len(m)]
        out.append(sum(present) / len(present) if present else 0.0)
    return out


def anomaly_baseline(values: Sequence[float]) -> Tuple[float, float]:
    """Sample mean and sample std (n-1), std clamped to 1.0 when ~0."""
    y = _as_array(values)
    if len(y) == 0:
        return 0.0, 1.0
    mean = float(y.mean())
    var = float(((y - mean) ** 2).sum()) / max(1, len(y) - 1)
    std = math.sqrt(var)
    if std <= _STD_FLOOR:
        std = 1.0
    return mean, std


def detect_anomalies(values: Sequence[float], threshold_sigma: float) -> List[int]:
    """
    Indices whose absolute deviation from the global mean exceeds
    ``threshold_sigma`` sample standard deviations.
    """
    y = _as_array(values)
    if len(y) == 0:
        return []
    mean, std = anomaly_baseline(y)
    threshold = max(_STD_FLOOR, float(threshold_sigma)) * std
    return [int(i) for i in np.flatnonzero(np.abs(y - mean) > threshold)]


# ---------- Named stubs ----------

def arima_forecast(values: Sequence[float], p: int, d: int, q: int, horizon: int) -> List[float]:
    """Stub: (p, d, q) are accepted but ignored; projects a linear-regression trend."""
    return linear_regression_forecast(values, horizon)


def prophet_like_decomposition(values: Sequence[float], season_length: int, horizon: int) -> List[float]:
    """Stub: delegates to :func:`seasonal_decomposition`."""
    return seasonal_decomposition(values, season_length, horizon)


__all__ = [
    "flat_line",
    "simple_moving_average",
    "exponential_weighted_moving_average",
    "linear_regression_forecast",
    "seasonal_decomposition",
    "ensemble_forecast",
    "anomaly_baseline",
    "detect_anomalies",
    "arima_forecast",
    "prophet_like_decomposition",
]
