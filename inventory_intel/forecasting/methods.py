"""
Inventory Intelligence - Forecasting Methods
============================================

Classical univariate methods used by the forecaster:

    SMA:     F(t+h) = mean(Y[t-w+1..t])
    SES:     L(t) = α·Y(t) + (1-α)·L(t-1);             F(t+h) = L(t)
    Holt's:  L(t) = α·Y(t) + (1-α)·(L(t-1) + T(t-1))
             T(t) = β·(L(t) - L(t-1)) + (1-β)·T(t-1);   F(t+h) = L(t) + h·T(t)
    Croston: SES on non-zero demand sizes and on inter-demand intervals;
             F = size / interval (intermittent demand)
    Holt-Winters (additive): Holt's plus a seasonal component of length m,
             fitted with statsmodels; missing parameters are estimated

Every method returns raw model output; clamping to non-negative values is
done by the forecaster.

References:
- Hyndman & Athanasopoulos (2021). Forecasting: Principles and Practice
- Croston (1972). Forecasting and stock control for intermittent demands
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional

import numpy as np
from scipy import stats
from statsmodels.tsa.holtwinters import ExponentialSmoothing

from inventory_intel.errors import InvalidArgumentError

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# CONSTANTS
# ═══════════════════════════════════════════════════════════════════════════════

SES_ALPHA_BY_GRADE = {"X": 0.2, "Y": 0.3, "Z": 0.5}
DEFAULT_SES_ALPHA = 0.3

HIGH_TURNOVER = 12.0
LOW_TURNOVER = 3.0
TURNOVER_ALPHA_STEP = 0.1
ALPHA_CAP = 0.9
ALPHA_FLOOR = 0.1

DEFAULT_HOLT_ALPHA = 0.3
DEFAULT_HOLT_BETA = 0.1

CROSTON_ALPHA = 0.15
CROSTON_ALPHA_MIN = 0.05
CROSTON_ALPHA_MAX = 0.5

SEASON_LENGTH = 12
MIN_SEASONS = 2

TREND_MIN_POINTS = 4
TREND_P_VALUE = 0.05
TREND_MIN_RELATIVE_SLOPE = 0.02


class ForecastMethodType(str, Enum):
    """Available forecasting methods."""
    SMA = "SMA"                    # Simple Moving Average
    SES = "SES"                    # Simple Exponential Smoothing
    HOLTS = "Holts"                # Holt's linear trend
    CROSTON = "Croston"            # Intermittent demand
    HOLT_WINTERS = "HoltWinters"   # Additive seasonal


_METHOD_ALIASES = {
    "sma": ForecastMethodType.SMA,
    "moving_average": ForecastMethodType.SMA,
    "ses": ForecastMethodType.SES,
    "holts": ForecastMethodType.HOLTS,
    "holt's": ForecastMethodType.HOLTS,
    "holt": ForecastMethodType.HOLTS,
    "croston": ForecastMethodType.CROSTON,
    "holtwinters": ForecastMethodType.HOLT_WINTERS,
    "holt_winters": ForecastMethodType.HOLT_WINTERS,
    "holt-winters": ForecastMethodType.HOLT_WINTERS,
}


def parse_method(method: Any) -> ForecastMethodType:
    """Resolve a method key (enum or case-insensitive name)."""
    if isinstance(method, ForecastMethodType):
        return method
    key = str(method).strip().lower()
    if key not in _METHOD_ALIASES:
        raise InvalidArgumentError(f"Unknown forecast method: {method!r}")
    return _METHOD_ALIASES[key]


@dataclass
class MethodOutput:
    """Raw output of a forecasting method."""
    forecast: np.ndarray
    parameters: Dict[str, float] = field(default_factory=dict)
    fitted: Optional[np.ndarray] = None


# ═══════════════════════════════════════════════════════════════════════════════
# PARAMETER HELPERS
# ═══════════════════════════════════════════════════════════════════════════════

def default_alpha(xyz_grade: Optional[str]) -> float:
    return SES_ALPHA_BY_GRADE.get(xyz_grade or "", DEFAULT_SES_ALPHA)


def adjust_alpha_for_turnover(alpha: float, turnover_rate: Optional[float]) -> float:
    """Fast movers weight recent periods more, slow movers less."""
    if turnover_rate is None:
        return alpha
    if turnover_rate > HIGH_TURNOVER:
        return min(ALPHA_CAP, round(alpha + TURNOVER_ALPHA_STEP, 4))
    if turnover_rate < LOW_TURNOVER:
        return max(ALPHA_FLOOR, round(alpha - TURNOVER_ALPHA_STEP, 4))
    return alpha


def _smoothing(name: str, value: Any, allow_zero: bool = False) -> float:
    try:
        v = float(value)
    except (TypeError, ValueError):
        raise InvalidArgumentError(f"{name} must be a number, got {value!r}")
    low_ok = v >= 0 if allow_zero else v > 0
    if not (low_ok and v <= 1):
        raise InvalidArgumentError(f"{name} must be in {'[0' if allow_zero else '(0'}, 1], got {v}")
    return v


def detect_trend(values: np.ndarray) -> bool:
    """
    Significant linear trend: regression slope with p < 0.05 whose magnitude is
    at least 2% of the mean per period.
    """
    y = np.asarray(values, dtype=float)
    if y.size < TREND_MIN_POINTS:
        return False
    mean = float(y.mean())
    if mean <= 0 or np.all(y == y[0]):
        return False
    res = stats.linregress(np.arange(y.size, dtype=float), y)
    if not np.isfinite(res.pvalue):
        return False
    return bool(res.pvalue < TREND_P_VALUE and abs(res.slope) / mean >= TREND_MIN_RELATIVE_SLOPE)


# ═══════════════════════════════════════════════════════════════════════════════
# METHODS
# ═══════════════════════════════════════════════════════════════════════════════

def simple_moving_average(values: np.ndarray, periods: int, window: int = 3) -> MethodOutput:
    try:
        window = int(window)
    except (TypeError, ValueError):
        raise InvalidArgumentError(f"window must be an integer, got {window!r}")
    if window < 1:
        raise InvalidArgumentError(f"window must be >= 1, got {window}")
    w = min(window, len(values))
    level = float(np.mean(values[-w:]))
    return MethodOutput(forecast=np.full(periods, level), parameters={"window": w})


def simple_exponential_smoothing(
    values: np.ndarray,
    periods: int,
    alpha: float = DEFAULT_SES_ALPHA,
) -> MethodOutput:
    alpha = _smoothing("alpha", alpha)
    level = float(values[0])
    fitted = np.empty(len(values))
    fitted[0] = level
    for t in range(1, len(values)):
        fitted[t] = level
        level = alpha * float(values[t]) + (1 - alpha) * level
    return MethodOutput(forecast=np.full(periods, level), parameters={"alpha": alpha}, fitted=fitted)


def holts_linear(
    values: np.ndarray,
    periods: int,
    alpha: float = DEFAULT_HOLT_ALPHA,
    beta: float = DEFAULT_HOLT_BETA,
) -> MethodOutput:
    alpha = _smoothing("alpha", alpha)
    beta = _smoothing("beta", beta, allow_zero=True)
    level = float(values[0])
    trend = float(values[1] - values[0]) if len(values) > 1 else 0.0
    fitted = np.empty(len(values))
    fitted[0] = level
    for t in range(1, len(values)):
        fitted[t] = level + trend
        prev_level = level
        level = alpha * float(values[t]) + (1 - alpha) * (level + trend)
        trend = beta * (level - prev_level) + (1 - beta) * trend
    horizon = np.arange(1, periods + 1, dtype=float)
    return MethodOutput(
        forecast=level + horizon * trend,
        parameters={"alpha": alpha, "beta": beta},
        fitted=fitted,
    )


def croston(values: np.ndarray, periods: int, alpha: float = CROSTON_ALPHA) -> MethodOutput:
    alpha = min(CROSTON_ALPHA_MAX, max(CROSTON_ALPHA_MIN, float(alpha)))
    y = np.asarray(values, dtype=float)
    zero_share = float(np.mean(y == 0)) if y.size else 1.0

    nonzero_idx = np.flatnonzero(y > 0)
    sizes = y[nonzero_idx]
    intervals = np.diff(nonzero_idx)

    if sizes.size < 2 or intervals.size == 0:
        # Not enough demand events to smooth intervals
        mean = float(y.mean()) if y.size else 0.0
        return MethodOutput(
            forecast=np.full(periods, mean),
            parameters={"alpha": alpha, "zero_proportion": zero_share},
        )

    size = float(sizes[0])
    for s in sizes[1:]:
        size = alpha * float(s) + (1 - alpha) * size
    interval = float(intervals[0])
    for i in intervals[1:]:
        interval = alpha * float(i) + (1 - alpha) * interval
    interval = max(interval, 1.0)

    return MethodOutput(
        forecast=np.full(periods, size / interval),
        parameters={"alpha": alpha, "zero_proportion": zero_share},
    )


def holt_winters(
    values: np.ndarray,
    periods: int,
    season_length: int = SEASON_LENGTH,
    alpha: Optional[float] = None,
    beta: Optional[float] = None,
    gamma: Optional[float] = None,
) -> MethodOutput:
    """
    Additive Holt-Winters (statsmodels ``ExponentialSmoothing``).

    Given smoothing parameters are held fixed; the missing ones are estimated
    by statsmodels.
    """
    m = int(season_length)
    y = np.asarray(values, dtype=float)
    if m < 2 or y.size < MIN_SEASONS * m:
        raise InvalidArgumentError(
            f"Holt-Winters needs {MIN_SEASONS} seasons of {m} periods, got {y.size} points"
        )

    fixed = {}
    if alpha is not None:
        fixed["smoothing_level"] = _smoothing("alpha", alpha)
    if beta is not None:
        fixed["smoothing_trend"] = _smoothing("beta", beta, allow_zero=True)
    if gamma is not None:
        fixed["smoothing_seasonal"] = _smoothing("gamma", gamma, allow_zero=True)

    model = ExponentialSmoothing(y, trend="add", seasonal="add", seasonal_periods=m)
    fitted = model.fit(optimized=len(fixed) < 3, **fixed)
    forecast = np.asarray(fitted.forecast(periods), dtype=float)
    mse = float(fitted.sse) / y.size

    params = {
        "alpha": float(fitted.params["smoothing_level"]),
        "beta": float(fitted.params["smoothing_trend"]),
        "gamma": float(fitted.params["smoothing_seasonal"]),
        "season_length": m,
        "mse": mse,
    }
    logger.debug(
        f"Holt-Winters fit: alpha={params['alpha']:.3f}, beta={params['beta']:.3f}, "
        f"gamma={params['gamma']:.3f}, mse={mse:.3f}"
    )
    return MethodOutput(
        forecast=forecast,
        parameters=params,
        fitted=np.asarray(fitted.fittedvalues, dtype=float),
    )


# ═══════════════════════════════════════════════════════════════════════════════
# REGISTRY
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class MethodSpec:
    method: ForecastMethodType
    min_points: int
    fn: Callable[..., MethodOutput]
    param_names: tuple


METHODS: Dict[ForecastMethodType, MethodSpec] = {
    ForecastMethodType.SMA: MethodSpec(ForecastMethodType.SMA, 1, simple_moving_average, ("window",)),
    ForecastMethodType.SES: MethodSpec(ForecastMethodType.SES, 3, simple_exponential_smoothing, ("alpha",)),
    ForecastMethodType.HOLTS: MethodSpec(ForecastMethodType.HOLTS, 6, holts_linear, ("alpha", "beta")),
    ForecastMethodType.CROSTON: MethodSpec(ForecastMethodType.CROSTON, 4, croston, ("alpha",)),
    ForecastMethodType.HOLT_WINTERS: MethodSpec(
        ForecastMethodType.HOLT_WINTERS, MIN_SEASONS * SEASON_LENGTH, holt_winters,
        ("season_length", "alpha", "beta", "gamma"),
    ),
}


def run_method(
    method: Any,
    values: np.ndarray,
    periods: int,
    params: Optional[Dict[str, Any]] = None,
) -> MethodOutput:
    """Run a registered method with explicit parameters (unknown parameters are rejected)."""
    spec = METHODS[parse_method(method)]
    params = dict(params or {})
    unknown = set(params) - set(spec.param_names)
    if unknown:
        raise InvalidArgumentError(
            f"Unknown parameters for {spec.method.value}: {sorted(unknown)}"
        )
    return spec.fn(np.asarray(values, dtype=float), periods, **params)
