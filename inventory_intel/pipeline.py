"""
═══════════════════════════════════════════════════════════════════════════════
                    BATCH PIPELINE
═══════════════════════════════════════════════════════════════════════════════

Per-SKU chain over a catalogue:

    classify (all SKUs together, ABC needs the whole population)
      → forecast (+ advisory backtest)
      → reorder recommendation
      → stockout simulation (optional)

Per-SKU work runs on a thread pool. Results come back in input order, and
every simulation is seeded per SKU, so the output never depends on
scheduling.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np

from inventory_intel.classification.abc_xyz import ABCXYZItem, ClassificationResult, ClassificationSummary, classify_items
from inventory_intel.config import PolicyConfig
from inventory_intel.errors import InsufficientData
from inventory_intel.forecasting.engine import DemandForecaster, ForecastRequest, ForecastResult
from inventory_intel.replenishment.reorder import (
    ReorderInput,
    ReorderRecommendation,
    rank_recommendations,
    recommend_reorder,
    resolve_policy,
)
from inventory_intel.simulation.scenario_simulator import ScenarioInput, SimulationResult, sku_seed, simulate_stockout

logger = logging.getLogger(__name__)

DAYS_PER_PERIOD = {"monthly": 30.0, "weekly": 7.0, "daily": 1.0}


@dataclass
class SKUInput:
    """Master data, demand history and stock position of one SKU."""
    product_id: str
    value: float
    history: List[float]
    current_stock: Optional[float] = None
    sku: Optional[str] = None
    name: str = ""
    moq: int = 1
    lead_time_days: Optional[float] = None
    lead_time_std: Optional[float] = None
    unit_price: float = 0.0
    cost_price: float = 0.0
    safety_stock: Optional[float] = None
    reorder_point: Optional[float] = None
    turnover_rate: Optional[float] = None
    yoy_growth_rate: Optional[float] = None
    outbound_counts: Optional[List[float]] = None


@dataclass
class SKUOutcome:
    product_id: str
    classification: ClassificationResult
    forecast: Union[ForecastResult, InsufficientData]
    recommendation: Optional[ReorderRecommendation] = None
    simulation: Optional[SimulationResult] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product_id": self.product_id,
            "classification": self.classification.to_dict(),
            "forecast": self.forecast.to_dict(),
            "recommendation": self.recommendation.to_dict() if self.recommendation else None,
            "simulation": self.simulation.to_dict() if self.simulation else None,
        }


@dataclass
class PipelineReport:
    outcomes: List[SKUOutcome] = field(default_factory=list)
    classification: Optional[ClassificationSummary] = None
    recommendations: List[ReorderRecommendation] = field(default_factory=list)
    runtime_sec: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "outcomes": [o.to_dict() for o in self.outcomes],
            "matrix": dict(self.classification.matrix) if self.classification else {},
            "recommendations": [r.to_dict() for r in self.recommendations],
            "runtime_sec": self.runtime_sec,
        }


def _daily_stats(history: Sequence[float], days_per_period: float) -> tuple:
    """Average daily demand and daily deviation from per-period history."""
    values = np.asarray(history, dtype=float)
    if values.size == 0:
        return 0.0, None
    mean = float(values.mean()) / days_per_period
    std = float(values.std()) / np.sqrt(days_per_period) if values.size > 1 else None
    return mean, std


def _run_one(
    sku: SKUInput,
    classification: ClassificationResult,
    forecaster: DemandForecaster,
    config: PolicyConfig,
    periods: int,
    freq: str,
    simulate: bool,
    seed: Optional[int],
) -> SKUOutcome:
    days_per_period = DAYS_PER_PERIOD.get(freq, 30.0)
    forecast = forecaster.forecast(ForecastRequest(
        history=sku.history,
        periods=periods,
        abc_grade=classification.abc_grade.value,
        xyz_grade=classification.xyz_grade.value,
        turnover_rate=sku.turnover_rate,
        yoy_growth_rate=sku.yoy_growth_rate,
        freq=freq,
    ))

    avg_daily, daily_std = _daily_stats(sku.history, days_per_period)
    forecast_daily = None
    if isinstance(forecast, ForecastResult):
        forecast_daily = forecast.mean_forecast / days_per_period

    reorder_input = ReorderInput(
        product_id=sku.product_id,
        sku=sku.sku,
        avg_daily_sales=avg_daily,
        forecast_daily_sales=forecast_daily,
        demand_std=daily_std,
        current_stock=sku.current_stock,
        abc_grade=classification.abc_grade.value,
        xyz_grade=classification.xyz_grade.value,
        moq=sku.moq,
        lead_time_days=sku.lead_time_days,
        lead_time_std=sku.lead_time_std,
        unit_price=sku.unit_price,
        cost_price=sku.cost_price,
        safety_stock=sku.safety_stock,
        reorder_point=sku.reorder_point,
    )
    recommendation = recommend_reorder(reorder_input, config)

    simulation = None
    if simulate and sku.current_stock is not None:
        # Simulate the exact policy the recommendation is built on
        policy = resolve_policy(reorder_input, config)
        simulation = simulate_stockout(
            ScenarioInput(
                product_id=sku.product_id,
                current_stock=sku.current_stock,
                average_daily_demand=policy.daily_demand,
                demand_std=policy.demand_std,
                lead_time_days=policy.lead_time_days,
                lead_time_std=sku.lead_time_std,
                safety_stock=policy.safety_stock,
                reorder_point=policy.reorder_point,
                service_level=config.target_service_level,
            ),
            trials=config.simulation_trials,
            seed=sku_seed(seed, sku.product_id),
        )
        simulation.seed = seed

    return SKUOutcome(
        product_id=sku.product_id,
        classification=classification,
        forecast=forecast,
        recommendation=recommendation,
        simulation=simulation,
    )


def run_pipeline(
    skus: Sequence[SKUInput],
    config: Optional[PolicyConfig] = None,
    periods: int = 3,
    freq: str = "monthly",
    simulate: bool = False,
    seed: Optional[int] = None,
    parallel: bool = True,
) -> PipelineReport:
    """
    Run the full chain for a catalogue.

    Args:
        skus: SKUs with value, per-period demand history and stock position
        config: Policy configuration (``max_workers`` sizes the pool)
        periods: Forecast horizon
        freq: Period size of ``history`` (monthly, weekly or daily)
        simulate: Also run the stockout simulation for SKUs with known stock
        seed: Base seed for the simulations
        parallel: Use the thread pool (False runs sequentially)

    Returns:
        PipelineReport with outcomes in input order and ranked recommendations
    """
    config = config or PolicyConfig()
    start = time.time()

    summary = classify_items(
        [
            ABCXYZItem(
                id=s.product_id, value=s.value, demand_history=list(s.history),
                name=s.name, outbound_counts=s.outbound_counts,
            )
            for s in skus
        ],
        config,
    )
    forecaster = DemandForecaster(config)

    def _worker(args):
        sku, classification = args
        return _run_one(sku, classification, forecaster, config, periods, freq, simulate, seed)

    work = list(zip(skus, summary.results))
    if parallel and len(work) > 1:
        with ThreadPoolExecutor(max_workers=config.max_workers) as ex:
            outcomes = list(ex.map(_worker, work))
    else:
        outcomes = [_worker(item) for item in work]

    recommendations = rank_recommendations(o.recommendation for o in outcomes if o.recommendation)
    runtime = round(time.time() - start, 3)
    logger.info(
        f"Pipeline: {len(outcomes)} SKUs, {len(recommendations)} reorder recommendations, "
        f"{runtime}s"
    )
    return PipelineReport(
        outcomes=outcomes,
        classification=summary,
        recommendations=recommendations,
        runtime_sec=runtime,
    )
