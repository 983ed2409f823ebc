"""
Demand forecasting: classical methods, rule-based selection, seasonal
adjustment and holdout backtesting.
"""

from inventory_intel.forecasting.backtest import (
    HIGH_CONFIDENCE_MAPE,
    MEDIUM_CONFIDENCE_MAPE,
    BacktestResult,
    Confidence,
    backtest,
    compare_methods,
    compute_mape,
    confidence_from_mape,
)
from inventory_intel.forecasting.engine import (
    DemandForecaster,
    ForecastRequest,
    ForecastResult,
    forecast_demand,
)
from inventory_intel.forecasting.methods import ForecastMethodType, parse_method
from inventory_intel.forecasting.selector import (
    SELECTION_RULES,
    SelectionContext,
    SelectionRule,
    prefer_for_grade,
    select_by_backtest,
    select_method,
)

__all__ = [
    "HIGH_CONFIDENCE_MAPE",
    "MEDIUM_CONFIDENCE_MAPE",
    "BacktestResult",
    "Confidence",
    "backtest",
    "compare_methods",
    "compute_mape",
    "confidence_from_mape",
    "DemandForecaster",
    "ForecastRequest",
    "ForecastResult",
    "forecast_demand",
    "ForecastMethodType",
    "parse_method",
    "SELECTION_RULES",
    "SelectionContext",
    "SelectionRule",
    "prefer_for_grade",
    "select_by_backtest",
    "select_method",
]
