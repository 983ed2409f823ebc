"""
Inventory Intelligence - Demand Forecaster
==========================================

Produces an N-period demand forecast for one SKU.

Automatic mode:
    1. Fill gaps in the series (zeros) and validate it
    2. Detect trend / seasonality / intermittency
    3. Pick a method from the selection rule table, or by holdout MAPE when
       cross-validation is enabled
    4. Fit on the (optionally deseasonalized) history, forecast, reseasonalize
    5. Conservative x0.9 adjustment for overstocked items
    6. Annotate with an advisory holdout backtest (MAPE + confidence), scored on
       the same deseasonalize -> fit -> reseasonalize chain

Manual mode uses the caller's method and parameters as given
(selection_reason = "manual"), never substituting another method.

Forecasts feed replenishment.reorder through the batch pipeline.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np

from inventory_intel.config import PolicyConfig
from inventory_intel.errors import (
    InsufficientData,
    InvalidArgumentError,
    require_positive_int,
)
from inventory_intel.forecasting import seasonality
from inventory_intel.forecasting.backtest import BacktestResult, Confidence, backtest
from inventory_intel.forecasting.methods import (
    MIN_SEASONS,
    SEASON_LENGTH,
    ForecastMethodType,
    detect_trend,
    parse_method,
    run_method,
)
from inventory_intel.forecasting.selector import Selection, SelectionContext, select_by_backtest, select_method
from inventory_intel.models import TimeSeriesPoint, fill_gaps, grade_value, series_values

logger = logging.getLogger(__name__)

MIN_FORECAST_POINTS = 2
OVERSTOCK_FACTOR = 0.9
MANUAL_REASON = "manual"


# ═══════════════════════════════════════════════════════════════════════════════
# DATA STRUCTURES
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class ForecastRequest:
    """
    Forecast input.

    Attributes:
        history: Demand series (TimeSeriesPoint list, or plain ordered quantities)
        periods: Horizon (number of future periods)
        abc_grade / xyz_grade: Classifier hints
        turnover_rate: Annual inventory turnover
        yoy_growth_rate: Year-over-year growth in percent
        is_overstock: Apply the conservative adjustment
        seasonal_adjustment: Allow deseasonalize/reseasonalize
        method / params: Manual override
        cross_validate: Choose the automatic method by holdout MAPE (None = config)
        freq: Bucket size used to fill gaps of a dated history
    """
    history: Sequence[Union[TimeSeriesPoint, float]]
    periods: int
    abc_grade: Optional[str] = None
    xyz_grade: Optional[str] = None
    turnover_rate: Optional[float] = None
    yoy_growth_rate: Optional[float] = None
    is_overstock: bool = False
    seasonal_adjustment: bool = True
    method: Optional[Any] = None
    params: Optional[Dict[str, Any]] = None
    freq: str = "monthly"
    cross_validate: Optional[bool] = None

    @property
    def is_manual(self) -> bool:
        return self.method is not None


@dataclass
class ForecastResult:
    """Forecast for one SKU. ``forecast`` has exactly ``periods`` non-negative values."""
    method: ForecastMethodType
    forecast: List[float]
    parameters: Dict[str, float] = field(default_factory=dict)
    confidence: Confidence = Confidence.LOW
    mape: Optional[float] = None
    selection_reason: str = ""
    seasonally_adjusted: bool = False
    rule: Optional[str] = None
    backtest: Optional[BacktestResult] = None

    @property
    def horizon(self) -> int:
        return len(self.forecast)

    @property
    def mean_forecast(self) -> float:
        return float(np.mean(self.forecast)) if self.forecast else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "method": self.method.value,
            "forecast": [round(v, 2) for v in self.forecast],
            "parameters": self.parameters,
            "confidence": self.confidence.value,
            "mape": round(self.mape, 2) if self.mape is not None else None,
            "selection_reason": self.selection_reason,
            "seasonally_adjusted": self.seasonally_adjusted,
            "rule": self.rule,
        }


# ═══════════════════════════════════════════════════════════════════════════════
# FORECASTER
# ═══════════════════════════════════════════════════════════════════════════════

class DemandForecaster:
    """
    Rule-driven forecaster.

    Stateless apart from its policy configuration; safe to share across threads.
    """

    def __init__(self, config: Optional[PolicyConfig] = None):
        self.config = config or PolicyConfig()

    def forecast(self, request: ForecastRequest) -> Union[ForecastResult, InsufficientData]:
        require_positive_int("periods", request.periods)
        values = self._values(request)
        if values.size < MIN_FORECAST_POINTS:
            return InsufficientData(
                reason="at least 2 historical periods are needed to forecast",
                required=MIN_FORECAST_POINTS,
                available=int(values.size),
            )
        if request.is_manual:
            return self._forecast_manual(request, values)
        return self._forecast_auto(request, values)

    # ── input ────────────────────────────────────────────────────────────────

    def _values(self, request: ForecastRequest) -> np.ndarray:
        history = list(request.history)
        if history and isinstance(history[0], TimeSeriesPoint):
            history = series_values(fill_gaps(history, request.freq))
        values = np.asarray(history, dtype=float)
        if np.any(values < 0):
            raise InvalidArgumentError("demand quantities must be >= 0")
        return values

    # ── automatic ────────────────────────────────────────────────────────────

    def _forecast_auto(self, request: ForecastRequest, values: np.ndarray) -> ForecastResult:
        indices = None
        fit_values = values
        if request.seasonal_adjustment and values.size >= SEASON_LENGTH:
            candidate = seasonality.detect_seasonality(values)
            if seasonality.is_significant(candidate):
                indices = candidate
                fit_values = seasonality.deseasonalize(values, indices)

        ctx = SelectionContext(
            data_points=int(values.size),
            abc_grade=grade_value(request.abc_grade),
            xyz_grade=grade_value(request.xyz_grade),
            has_trend=detect_trend(fit_values),
            has_seasonality=indices is not None,
            turnover_rate=request.turnover_rate,
            yoy_growth_rate=request.yoy_growth_rate,
            is_overstock=request.is_overstock,
            zero_share=float(np.mean(values == 0)),
            sma_window=self.config.sma_window,
        )
        selection: Selection = select_method(ctx)
        if self._cross_validate(request):
            validated = select_by_backtest(
                ctx, values, self.config.backtest_periods, seasonal_adjustment=indices is not None,
            )
            if validated is None:
                logger.debug("Cross-validation not possible, using the rule table")
            else:
                selection = validated

        output = run_method(selection.method, fit_values, request.periods, selection.params)
        forecast = np.maximum(output.forecast, 0.0)
        reason = selection.reason

        if indices is not None:
            forecast = seasonality.reseasonalize(forecast, indices, values.size % SEASON_LENGTH)
            reason += " + seasonal adjustment"

        if request.is_overstock:
            forecast = forecast * OVERSTOCK_FACTOR

        result = ForecastResult(
            method=selection.method,
            forecast=[float(v) for v in np.maximum(forecast, 0.0)],
            parameters=dict(output.parameters),
            selection_reason=reason,
            seasonally_adjusted=indices is not None,
            rule=selection.rule,
        )
        return self._annotate(result, values, selection.params, seasonal=indices is not None)

    def _cross_validate(self, request: ForecastRequest) -> bool:
        if request.cross_validate is None:
            return self.config.cross_validate_selection
        return request.cross_validate

    # ── manual ───────────────────────────────────────────────────────────────

    def _forecast_manual(
        self, request: ForecastRequest, values: np.ndarray
    ) -> Union[ForecastResult, InsufficientData]:
        method = parse_method(request.method)
        params = dict(request.params or {})

        if method == ForecastMethodType.HOLT_WINTERS:
            season = int(params.get("season_length", SEASON_LENGTH))
            if values.size < MIN_SEASONS * season:
                return InsufficientData(
                    reason=f"Holt-Winters needs {MIN_SEASONS} full seasons",
                    required=MIN_SEASONS * season,
                    available=int(values.size),
                )

        output = run_method(method, values, request.periods, params)
        result = ForecastResult(
            method=method,
            forecast=[float(v) for v in np.maximum(output.forecast, 0.0)],
            parameters=dict(output.parameters),
            selection_reason=MANUAL_REASON,
        )
        return self._annotate(result, values, params)

    # ── backtest annotation ──────────────────────────────────────────────────

    def _annotate(
        self,
        result: ForecastResult,
        values: np.ndarray,
        params: Dict[str, Any],
        seasonal: bool = False,
    ) -> ForecastResult:
        """Attach an advisory backtest; failures never block the forecast."""
        try:
            bt = backtest(
                values, result.method, self.config.backtest_periods, params, seasonal_adjustment=seasonal,
            )
        except InvalidArgumentError as e:
            logger.debug(f"Backtest skipped for {result.method.value}: {e}")
            return result
        if isinstance(bt, InsufficientData):
            logger.debug(f"Backtest skipped: {bt.reason}")
            return result
        result.backtest = bt
        result.mape = bt.mape
        result.confidence = bt.confidence
        return result


def forecast_demand(
    request: ForecastRequest,
    config: Optional[PolicyConfig] = None,
) -> Union[ForecastResult, InsufficientData]:
    """
    Convenience wrapper around ``DemandForecaster``.

    Example:
        result = forecast_demand(ForecastRequest(history=[10, 12, 11, 13], periods=3))
    """
    return DemandForecaster(config).forecast(request)
