import math

import pytest

from forecast_engine.exceptions import InvalidParameter
from forecast_engine.services import algorithms as algo


def test_sma_trailing_mean():
    assert algo.simple_moving_average([1, 2, 3, 4, 5], 3) == pytest.approx([2.0, 3.0, 4.0])


def test_sma_output_length_and_window_one_is_identity():
    values = [4.0, 8.0, 15.0, 16.0, 23.0, 42.0]
    for window in range(1, len(values) + 1):
        assert len(algo.simple_moving_average(values, window)) == len(values) - window + 1
    assert algo.simple_moving_average(values, 1) == pytest.approx(values)


@pytest.mark.parametrize("window", [0, -1, 6])
def test_sma_rejects_bad_window(window):
    with pytest.raises(InvalidParameter):
        algo.simple_moving_average([1, 2, 3, 4, 5], window)


def test_ewma_recursion():
    out = algo.exponential_weighted_moving_average([10, 20, 30, 40], 0.5)
    assert out == pytest.approx([10.0, 15.0, 22.5, 31.25])


def test_ewma_constant_series_is_fixed_point():
    assert algo.exponential_weighted_moving_average([7.0] * 5, 0.3) == pytest.approx([7.0] * 5)


def test_ewma_empty_input():
    assert algo.exponential_weighted_moving_average([], 0.3) == []


@pytest.mark.parametrize("alpha", [0.0, 1.0, -0.2, 1.5])
def test_ewma_rejects_alpha_outside_open_interval(alpha):
    with pytest.raises(InvalidParameter):
        algo.exponential_weighted_moving_average([1, 2, 3], alpha)


def test_linear_regression_increasing_trend():
    fc = algo.linear_regression_forecast([1, 2, 3, 4, 5], 3)
    assert len(fc) == 3
    assert fc[0] < fc[1] < fc[2]
    assert fc == pytest.approx([6.0, 7.0, 8.0])


def test_linear_regression_constant_series_is_flat():
    assert algo.linear_regression_forecast([3.0] * 6, 4) == pytest.approx([3.0] * 4)


def test_linear_regression_single_point_does_not_divide_by_zero():
    fc = algo.linear_regression_forecast([5.0], 2)
    assert all(math.isfinite(v) for v in fc)
    assert fc == pytest.approx([5.0, 5.0])


def test_linear_regression_empty_raises():
    with pytest.raises(InvalidParameter):
        algo.linear_regression_forecast([], 3)


def test_seasonal_repeats_phase_pattern_on_flat_trend():
    pattern = [10.0, 0.0, 5.0]
    values = pattern * 4
    fc = algo.seasonal_decomposition(values, 3, 6)
    assert len(fc) == 6
    # trend is slightly negative over the window; phase ordering survives
    assert fc[0] > fc[2] > fc[1]
    assert fc[3] > fc[5] > fc[4]


def test_seasonal_falls_back_when_history_is_short():
    values = [1.0, 2.0, 3.0, 4.0, 5.0]
    fc = algo.seasonal_decomposition(values, 7, 3)
    # window = min(7, n) = 5 -> mean of the whole series
    assert fc == pytest.approx([3.0, 3.0, 3.0])


def test_seasonal_fallback_never_raises_on_tiny_input():
    assert algo.seasonal_decomposition([], 7, 2) == [0.0, 0.0]
    assert algo.seasonal_decomposition([4.0], 7, 2) == pytest.approx([4.0, 4.0])
    assert algo.seasonal_decomposition([2.0, 4.0], 1, 1) == pytest.approx([3.0])


def test_flat_line_repeats_last_value():
    assert algo.flat_line([1.0, 2.0, 9.0], 3) == [9.0, 9.0, 9.0]
    assert algo.flat_line([1.0], 0) == []


def test_flat_line_rejects_negative_horizon():
    with pytest.raises(InvalidParameter):
        algo.flat_line([1.0], -1)


def test_ensemble_averages_and_first_member_fixes_length():
    out = algo.ensemble_forecast([[1.0, 2.0, 3.0], [3.0, 4.0], [5.0, 6.0, 9.0, 100.0]])
    assert out == pytest.approx([3.0, 4.0, 6.0])
    assert algo.ensemble_forecast([]) == []


def test_ensemble_of_identical_members_is_that_member():
    s = [1.5, -2.0, 3.25, 0.0]
    assert algo.ensemble_forecast([s, s, s]) == s
    assert algo.ensemble_forecast([s]) == s


@pytest.mark.parametrize("n", [2, 3, 10, 45])
@pytest.mark.parametrize("step", [0.5, 3.0])
def test_linear_regression_arithmetic_series_is_strictly_increasing(n, step):
    values = [4.0 + step * i for i in range(n)]
    fc = algo.linear_regression_forecast(values, 5)
    assert all(a < b for a, b in zip(fc, fc[1:]))
    assert fc[0] == pytest.approx(values[-1] + step)


def test_detect_anomalies_flags_spike():
    values = [10.0] * 20 + [500.0] + [10.0] * 5
    assert algo.detect_anomalies(values, 3.0) == [20]


def test_detect_anomalies_constant_series_and_empty():
    assert algo.detect_anomalies([5.0] * 10, 3.0) == []
    assert algo.detect_anomalies([], 3.0) == []


def test_anomaly_baseline_uses_sample_std_and_floor():
    mean, std = algo.anomaly_baseline([2.0, 4.0, 4.0, 4.0, 5.0, 5.0, 7.0, 9.0])
    assert mean == pytest.approx(5.0)
    assert std == pytest.approx(math.sqrt(32.0 / 7.0))
    assert algo.anomaly_baseline([3.0, 3.0]) == (3.0, 1.0)


def test_named_stubs_delegate():
    values = [1.0, 2.0, 3.0, 4.0]
    assert algo.arima_forecast(values, 2, 1, 2, 3) == algo.linear_regression_forecast(values, 3)
    assert algo.prophet_like_decomposition(values, 7, 3) == algo.seasonal_decomposition(values, 7, 3)


def test_functions_do_not_mutate_input():
    values = [1.0, 5.0, 2.0, 8.0]
    snapshot = list(values)
    algo.simple_moving_average(values, 2)
    algo.exponential_weighted_moving_average(values, 0.4)
    algo.linear_regression_forecast(values, 2)
    algo.seasonal_decomposition(values, 2, 2)
    algo.detect_anomalies(values, 1.0)
    assert values == snapshot
