"""Statistical helpers shared by the analysis services.

All helpers accept plain sequences, work on numpy arrays internally, and
return 0 (never raise) when a denominator is empty or zero.
"""
from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

import numpy as np

from pnl_forecast.domain.models.drivers import SeasonalPattern


def _as_array(values: Sequence[float]) -> np.ndarray:
    return np.asarray(list(values), dtype=float)


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    if denominator == 0 or not np.isfinite(denominator):
        return default
    return float(numerator / denominator)


def mean(values: Sequence[float]) -> float:
    arr = _as_array(values)
    return float(arr.mean()) if arr.size else 0.0


def population_std(values: Sequence[float]) -> float:
    arr = _as_array(values)
    return float(arr.std()) if arr.size else 0.0


def coefficient_of_variation(values: Sequence[float]) -> float:
    """std / |mean| using the population standard deviation."""
    arr = _as_array(values)
    if arr.size == 0:
        return 0.0
    avg = float(arr.mean())
    if avg == 0:
        return 0.0
    return float(arr.std()) / abs(avg)


def revenue_volatility(values: Sequence[float]) -> float:
    """std / mean for a revenue series; 0 for short or non-positive series."""
    arr = _as_array(values)
    if arr.size < 2:
        return 0.0
    avg = float(arr.mean())
    if avg <= 0:
        return 0.0
    return float(arr.std()) / avg


def linear_fit(values: Sequence[float]) -> Tuple[float, float, float]:
    """OLS of value against month index; returns (slope, intercept, r_squared)."""
    y = _as_array(values)
    n = y.size
    if n == 0:
        return 0.0, 0.0, 0.0
    if n == 1:
        return 0.0, float(y[0]), 0.0
    x = np.arange(n, dtype=float)
    x_mean = x.mean()
    y_mean = y.mean()
    sxx = float(((x - x_mean) ** 2).sum())
    slope = float(((x - x_mean) * (y - y_mean)).sum()) / sxx if sxx else 0.0
    intercept = float(y_mean - slope * x_mean)
    if n < 3:
        return slope, intercept, 0.0
    ss_total = float(((y - y_mean) ** 2).sum())
    if ss_total == 0:
        return slope, intercept, 0.0
    residuals = y - (slope * x + intercept)
    r_squared = 1.0 - float((residuals**2).sum()) / ss_total
    return slope, intercept, float(min(max(r_squared, 0.0), 1.0))


def pearson(x_values: Sequence[float], y_values: Sequence[float]) -> float:
    """Pearson correlation over the common prefix; 0 on a zero denominator."""
    n = min(len(x_values), len(y_values))
    if n < 2:
        return 0.0
    x = _as_array(x_values[:n])
    y = _as_array(y_values[:n])
    dx = x - x.mean()
    dy = y - y.mean()
    denominator = float(np.sqrt((dx**2).sum() * (dy**2).sum()))
    if denominator == 0:
        return 0.0
    return float(min(max((dx * dy).sum() / denominator, -1.0), 1.0))


def percentile(values: Sequence[float], q: float) -> float:
    """Linear-interpolated percentile (q in 0..100)."""
    arr = _as_array(values)
    if arr.size == 0:
        return 0.0
    return float(np.percentile(arr, q))


def compound_growth(values: Sequence[float], min_points: int = 6) -> float:
    """Annual CAGR from the first non-zero value to the last value.

    Magnitudes are used so negative lines (refunds, contra accounts) still
    yield a growth figure. Returns 0 when fewer than ``min_points`` values or
    no non-zero starting point exist.
    """
    arr = _as_array(values)
    if arr.size < max(min_points, 2):
        return 0.0
    non_zero = np.flatnonzero(arr)
    if non_zero.size == 0:
        return 0.0
    first = abs(float(arr[non_zero[0]]))
    last = abs(float(arr[-1]))
    years = arr.size / 12.0
    if first == 0 or years <= 0:
        return 0.0
    return float((last / first) ** (1.0 / years) - 1.0)


def month_over_month_growth(values: Sequence[float]) -> List[float]:
    """Percent changes, skipping transitions from a non-positive month."""
    rates: List[float] = []
    for previous, current in zip(values, values[1:]):
        if previous > 0:
            rates.append((current - previous) / previous * 100.0)
    return rates


def detect_seasonal_pattern(
    values: Sequence[float],
    months: Sequence[str],
    *,
    min_points: int = 6,
    peak_ratio: float = 1.5,
    month_ratio: float = 1.3,
) -> Optional[SeasonalPattern]:
    """Flag months well above the mean when the series spikes seasonally."""
    arr = _as_array(values)
    if arr.size < min_points:
        return None
    avg = float(arr.mean())
    if avg <= 0:
        return None
    peak = float(arr.max())
    if peak <= avg * peak_ratio:
        return None
    peak_months = [
        month for month, value in zip(months, arr.tolist()) if value > avg * month_ratio
    ]
    return SeasonalPattern(peak_months=peak_months, multiplier=peak / avg)


def month_name(label: str) -> str:
    """Three-letter month name from a label such as 'Jan 2024'."""
    return label.strip()[:3].title()
