"""
═══════════════════════════════════════════════════════════════════════════════
                    INVENTORY INTELLIGENCE CORE
═══════════════════════════════════════════════════════════════════════════════

Turns per-SKU sales and stock history into:

1. **Classification**: ABC (value Pareto) x XYZ (demand CV) grades + 9-cell matrix
2. **Forecasting**: rule-table selection among SMA / SES / Holt's / Croston,
   seasonal adjustment, advisory holdout backtest (MAPE)
3. **Replenishment**: safety stock, reorder point, EOQ, ranked reorder
   recommendations with MOQ floor and urgency
4. **Simulation**: seeded Monte Carlo stockout risk, order simulation,
   what-if and sensitivity analysis
5. **Grade tracking**: upgrades/downgrades between grade snapshots

Data flow:
    demand series ─► classify ─► grades
    demand series (+ grades) ─► forecast (+ backtest)
    forecast + grades + lead time ─► reorder recommendation
    demand / lead-time stats + stock ─► stockout simulation
    grade snapshots ─► grade changes

Every computation is a pure function of its inputs and an explicit
``PolicyConfig``; the caller owns caching, persistence sessions and transport.
"""

from inventory_intel.classification import ABCXYZItem, ClassificationResult, ClassificationSummary, classify_items
from inventory_intel.config import PolicyConfig
from inventory_intel.errors import InsufficientData, InvalidArgumentError, InventoryIntelError
from inventory_intel.forecasting import (
    DemandForecaster,
    ForecastRequest,
    ForecastResult,
    backtest,
    forecast_demand,
)
from inventory_intel.grades import track_grade_changes
from inventory_intel.models import TimeSeriesPoint
from inventory_intel.replenishment import ReorderInput, ReorderRecommendation, recommend_batch, recommend_reorder
from inventory_intel.simulation import ScenarioInput, SimulationResult, simulate_batch, simulate_stockout

__version__ = "1.0.0"

__all__ = [
    "ABCXYZItem",
    "ClassificationResult",
    "ClassificationSummary",
    "classify_items",
    "PolicyConfig",
    "InsufficientData",
    "InvalidArgumentError",
    "InventoryIntelError",
    "DemandForecaster",
    "ForecastRequest",
    "ForecastResult",
    "backtest",
    "forecast_demand",
    "track_grade_changes",
    "TimeSeriesPoint",
    "ReorderInput",
    "ReorderRecommendation",
    "recommend_batch",
    "recommend_reorder",
    "ScenarioInput",
    "SimulationResult",
    "simulate_batch",
    "simulate_stockout",
]
