"""
Holdout backtesting of forecasting methods.

The last ``periods`` observations are withheld, the method is fit on the rest
and its forecast is scored against the withheld actuals with MAPE.
Results are advisory: they annotate a forecast, they never replace it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

import numpy as np

from inventory_intel.errors import InsufficientData, InvalidArgumentError, require_positive_int
from inventory_intel.forecasting import seasonality
from inventory_intel.forecasting.methods import (
    METHODS,
    MIN_SEASONS,
    SEASON_LENGTH,
    ForecastMethodType,
    parse_method,
    run_method,
)
from inventory_intel.models import TimeSeriesPoint, fill_gaps, series_values

logger = logging.getLogger(__name__)

# MAPE (%) thresholds for the confidence buckets
HIGH_CONFIDENCE_MAPE = 10.0
MEDIUM_CONFIDENCE_MAPE = 25.0

MIN_TRAINING_POINTS = 2


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


def confidence_from_mape(mape: float) -> Confidence:
    if mape < HIGH_CONFIDENCE_MAPE:
        return Confidence.HIGH
    if mape < MEDIUM_CONFIDENCE_MAPE:
        return Confidence.MEDIUM
    return Confidence.LOW


def compute_mape(actual: Sequence[float], predicted: Sequence[float]) -> float:
    """MAPE in percent over periods with actual > 0; 0.0 when every actual is zero."""
    actual = np.asarray(actual, dtype=float)
    predicted = np.asarray(predicted, dtype=float)
    mask = actual > 0
    if not np.any(mask):
        return 0.0
    return float(np.mean(np.abs((actual[mask] - predicted[mask]) / actual[mask])) * 100)


@dataclass
class BacktestResult:
    method: ForecastMethodType
    mape: float
    confidence: Confidence
    actuals: List[float] = field(default_factory=list)
    predicted: List[float] = field(default_factory=list)
    parameters: Dict[str, float] = field(default_factory=dict)
    seasonally_adjusted: bool = False

    @property
    def evaluated_periods(self) -> int:
        return sum(1 for a in self.actuals if a > 0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "method": self.method.value,
            "mape": round(self.mape, 2),
            "confidence": self.confidence.value,
            "actuals": self.actuals,
            "predicted": [round(p, 2) for p in self.predicted],
            "evaluated_periods": self.evaluated_periods,
            "parameters": self.parameters,
            "seasonally_adjusted": self.seasonally_adjusted,
        }


def _as_values(
    history: Union[Sequence[float], Sequence[TimeSeriesPoint]],
    freq: str = "monthly",
) -> np.ndarray:
    seq = list(history)
    if seq and isinstance(seq[0], TimeSeriesPoint):
        # Same bucketing as the forecaster: ordered, missing periods as zero
        seq = series_values(fill_gaps(seq, freq))
    values = np.asarray(seq, dtype=float)
    if np.any(values < 0):
        raise InvalidArgumentError("demand quantities must be >= 0")
    return values


def _training_indices(train: np.ndarray) -> Optional[np.ndarray]:
    if train.size < SEASON_LENGTH:
        return None
    indices = seasonality.detect_seasonality(train)
    return indices if seasonality.is_significant(indices) else None


def backtest(
    history: Union[Sequence[float], Sequence[TimeSeriesPoint]],
    method: Any,
    periods: int = 3,
    params: Optional[Dict[str, Any]] = None,
    freq: str = "monthly",
    seasonal_adjustment: bool = False,
) -> Union[BacktestResult, InsufficientData]:
    """
    Score ``method`` on the last ``periods`` points of ``history``.

    Point histories are bucketed by ``freq`` with missing periods as zero
    demand, exactly as the forecaster sees them.

    With ``seasonal_adjustment`` the method is scored on the forecaster's own
    chain: seasonal indices are detected on the training part only, the method
    is fit on the deseasonalized training data and its forecast reseasonalized.

    Returns:
        BacktestResult, or InsufficientData when fewer than periods + 2 points
        are available (or a seasonal method lacks two full training seasons).
    """
    require_positive_int("periods", periods)
    method = parse_method(method)
    values = _as_values(history, freq)

    required = periods + MIN_TRAINING_POINTS
    if method == ForecastMethodType.HOLT_WINTERS:
        season = int((params or {}).get("season_length", SEASON_LENGTH))
        required = max(required, periods + MIN_SEASONS * season)
    if values.size < required:
        return InsufficientData(
            reason=f"backtest of {method.value} needs {required} points",
            required=required,
            available=int(values.size),
        )

    train, test = values[:-periods], values[-periods:]
    indices = _training_indices(train) if seasonal_adjustment else None
    fit_train = seasonality.deseasonalize(train, indices) if indices is not None else train

    output = run_method(method, fit_train, periods, params)
    predicted = np.maximum(output.forecast, 0.0)
    if indices is not None:
        predicted = seasonality.reseasonalize(predicted, indices, train.size % SEASON_LENGTH)
    mape = compute_mape(test, predicted)

    return BacktestResult(
        method=method,
        mape=mape,
        confidence=confidence_from_mape(mape),
        actuals=[float(v) for v in test],
        predicted=[float(v) for v in predicted],
        parameters=dict(output.parameters),
        seasonally_adjusted=indices is not None,
    )


def compare_methods(
    history: Union[Sequence[float], Sequence[TimeSeriesPoint]],
    methods: Optional[Iterable[Any]] = None,
    periods: int = 3,
    freq: str = "monthly",
    params_by_method: Optional[Dict[ForecastMethodType, Dict[str, Any]]] = None,
    seasonal_adjustment: bool = False,
) -> List[BacktestResult]:
    """
    Backtest several methods, best MAPE first.

    Methods missing from ``params_by_method`` use their default parameters.
    Methods that cannot be backtested on this history are left out.
    """
    params_by_method = params_by_method or {}
    methods = [parse_method(m) for m in (methods or METHODS.keys())]
    results = []
    for method in methods:
        result = backtest(
            history, method, periods, params_by_method.get(method),
            freq=freq, seasonal_adjustment=seasonal_adjustment,
        )
        if isinstance(result, InsufficientData):
            logger.debug(f"Skipping {method.value} in comparison: {result.reason}")
            continue
        results.append(result)
    return sorted(results, key=lambda r: (r.mape, r.method.value))
