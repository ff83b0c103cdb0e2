"""Next-month savings forecast.

Three candidate predictors (mean, least-squares trend, exponential smoothing)
are backtested on the most recent month; the winner supplies the point
forecast and its walk-forward residuals size the uncertainty band.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Sequence, Tuple

from finance_coach.models import ForecastInterval, ForecastMethod, ForecastResult, MonthlyData
from finance_coach.utils.stats import clamp, mean, round_to, round_whole

SMOOTHING_ALPHA = 0.5
METHODS_TRIED: Tuple[ForecastMethod, ...] = ("mean", "regression", "expSmooth")


@dataclass
class MethodSelection:
    method: ForecastMethod
    forecast: float
    errors: List[float] = field(default_factory=list)


def _savings(data: Sequence[MonthlyData]) -> List[float]:
    return [float(d.savings) for d in data]


def _linear_fit(ys: Sequence[float]) -> Tuple[float, float]:
    """Least-squares (slope, intercept) of ``ys`` against their index.

    A singular system (fewer than 2 points) degrades to a flat line at the mean.
    """
    n = len(ys)
    sum_x = sum(range(n))
    sum_y = sum(ys)
    sum_xy = sum(i * y for i, y in enumerate(ys))
    sum_xx = sum(i * i for i in range(n))
    denom = n * sum_xx - sum_x * sum_x
    if denom == 0:
        return 0.0, mean(ys)
    slope = (n * sum_xy - sum_x * sum_y) / denom
    return slope, (sum_y - slope * sum_x) / n


def mean_forecast(data: Sequence[MonthlyData]) -> float:
    return mean(_savings(data))


def regression_forecast(data: Sequence[MonthlyData]) -> float:
    """Extrapolate the linear trend to the next index."""
    if len(data) < 2:
        return mean_forecast(data)
    slope, intercept = _linear_fit(_savings(data))
    return slope * len(data) + intercept


def exp_smooth_forecast(data: Sequence[MonthlyData], alpha: float = SMOOTHING_ALPHA) -> float:
    values = _savings(data)
    if not values:
        return 0.0
    smoothed = values[0]
    for v in values[1:]:
        smoothed = alpha * v + (1 - alpha) * smoothed
    return smoothed


FORECASTERS: Dict[ForecastMethod, Callable[[Sequence[MonthlyData]], float]] = {
    "mean": mean_forecast,
    "regression": regression_forecast,
    "expSmooth": exp_smooth_forecast,
}


def walk_forward_errors(data: Sequence[MonthlyData], method: ForecastMethod) -> List[float]:
    """One-step-ahead absolute errors for months 1..n-1, each fit on all prior months."""
    fn = FORECASTERS[method]
    return [abs(data[i].savings - fn(data[:i])) for i in range(1, len(data))]


def select_best_method(data: Sequence[MonthlyData]) -> MethodSelection:
    if len(data) < 2:
        return MethodSelection(method="mean", forecast=mean_forecast(data), errors=[])

    train, actual = data[:-1], data[-1].savings
    results = []
    for name in METHODS_TRIED:
        prediction = FORECASTERS[name](train)
        results.append((name, prediction, abs(actual - prediction)))
    # stable: ties keep mean, regression, expSmooth order
    results.sort(key=lambda r: r[2])

    if len(data) < 3:
        # Two months of history: one held-out point cannot separate the
        # methods meaningfully, so the trend model is used outright.
        name, prediction, error = next(r for r in results if r[0] == "regression")
        return MethodSelection(method=name, forecast=prediction, errors=[error])

    name, prediction, _ = results[0]
    return MethodSelection(method=name, forecast=prediction, errors=walk_forward_errors(data, name))


def erf(x: float) -> float:
    # Abramowitz & Stegun 7.1.26, max abs error ~1.5e-7
    a1, a2, a3, a4, a5 = 0.254829592, -0.284496736, 1.421413741, -1.453152027, 1.061405429
    p = 0.3275911
    sign = 1.0 if x >= 0 else -1.0
    x = abs(x)
    t = 1.0 / (1.0 + p * x)
    y = 1.0 - (((((a5 * t + a4) * t) + a3) * t + a2) * t + a1) * t * math.exp(-x * x)
    return sign * y


def normal_cdf(z: float) -> float:
    return 0.5 * (1 + erf(z / math.sqrt(2)))


def residual_sigma(errors: Sequence[float], required_monthly: float) -> float:
    if errors:
        return math.sqrt(sum(e * e for e in errors) / len(errors))
    return max(1.0, required_monthly * 0.1)


def forecast_savings(data: Sequence[MonthlyData], required_monthly: float) -> ForecastResult:
    selection = select_best_method(data)
    f = selection.forecast
    sigma = residual_sigma(selection.errors, required_monthly)

    # A negative forecast (net dissaving) still yields a 0-floored band.
    low = max(0.0, f - sigma)
    high = max(low, f + sigma)
    # sigma is 0 only when every residual is 0: the forecast is exact
    if sigma > 0:
        probability = normal_cdf((f - required_monthly) / sigma)
    else:
        probability = 1.0 if f >= required_monthly else 0.0

    return ForecastResult(
        method=selection.method,
        savings=round_whole(f),
        interval=ForecastInterval(low=round_whole(low), high=round_whole(high)),
        probability_on_track=round_to(clamp(probability, 0, 1), 2),
    )
