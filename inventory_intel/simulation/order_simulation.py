"""
Order simulation: effect of placing (or not placing) an order of a given size
over the next 30 days.

Daily demand is sampled from a normal distribution clipped at zero, the order
is received after the lead time, and the median trajectory is reported along
with the stockout probability and the cost/cash impact.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from inventory_intel.errors import require_non_negative, require_positive_int
from inventory_intel.replenishment.eoq import DAYS_PER_YEAR

logger = logging.getLogger(__name__)

ORDER_SIMULATION_TRIALS = 100
ORDER_SIMULATION_DAYS = 30


@dataclass
class OrderSimulationInput:
    current_stock: float
    order_quantity: float
    daily_demand: float
    demand_std: float
    lead_time_days: float
    unit_cost: float
    ordering_cost: float = 50.0
    holding_cost_rate: float = 0.25
    label: Optional[str] = None

    def __post_init__(self):
        for name in ("current_stock", "order_quantity", "daily_demand", "demand_std", "lead_time_days",
                     "unit_cost", "ordering_cost", "holding_cost_rate"):
            require_non_negative(name, getattr(self, name))


@dataclass
class OrderSimulationResult:
    label: str
    projected_stock: List[float]
    stockout_probability: float  # percent
    holding_cost_change: float
    cash_flow_impact: float
    days_until_stockout: Optional[int]  # None when there is no demand
    days_of_stock_covered: Optional[int]
    trials: int = ORDER_SIMULATION_TRIALS
    days: int = ORDER_SIMULATION_DAYS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "projected_stock": self.projected_stock,
            "stockout_probability": self.stockout_probability,
            "holding_cost_change": self.holding_cost_change,
            "cash_flow_impact": self.cash_flow_impact,
            "days_until_stockout": self.days_until_stockout,
            "days_of_stock_covered": self.days_of_stock_covered,
            "trials": self.trials,
            "days": self.days,
        }


@dataclass
class ScenarioComparison:
    baseline: OrderSimulationResult
    scenarios: List[OrderSimulationResult] = field(default_factory=list)
    deltas: List[Dict[str, float]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "baseline": self.baseline.to_dict(),
            "scenarios": [
                {**s.to_dict(), **d} for s, d in zip(self.scenarios, self.deltas)
            ],
        }


def _default_label(inp: OrderSimulationInput) -> str:
    if inp.order_quantity == 0:
        return "no order (status quo)"
    return f"order {inp.order_quantity:,.0f} units"


def simulate_order(
    inp: OrderSimulationInput,
    trials: int = ORDER_SIMULATION_TRIALS,
    days: int = ORDER_SIMULATION_DAYS,
    seed: Optional[Any] = None,
) -> OrderSimulationResult:
    """
    Monte Carlo projection of stock over ``days`` days.

    Stock may go negative (unmet demand). A trial is a stockout when any day
    ends at or below zero.
    """
    require_positive_int("trials", trials)
    require_positive_int("days", days)
    rng = np.random.default_rng(seed)

    if inp.demand_std > 0:
        demand = np.maximum(rng.normal(inp.daily_demand, inp.demand_std, size=(trials, days)), 0.0)
    else:
        demand = np.full((trials, days), inp.daily_demand)

    receipts = np.zeros(days)
    lead_time = int(round(inp.lead_time_days))
    if inp.order_quantity > 0 and lead_time < days:
        receipts[lead_time] = inp.order_quantity

    trajectories = inp.current_stock + np.cumsum(receipts[None, :] - demand, axis=1)
    projected = np.rint(np.median(trajectories, axis=0))
    stockout_pct = round(float(np.mean((trajectories <= 0).any(axis=1))) * 100, 1)

    daily_rate = inp.holding_cost_rate / DAYS_PER_YEAR
    avg_without = max(0.0, inp.current_stock - inp.daily_demand * days / 2)
    avg_with = float(np.mean(np.maximum(projected, 0.0)))
    holding_without = round(avg_without * inp.unit_cost * daily_rate * days)
    holding_with = round(avg_with * inp.unit_cost * daily_rate * days)
    holding_change = float(holding_with - holding_without)

    ordering = inp.ordering_cost if inp.order_quantity > 0 else 0.0
    cash_flow = float(round(inp.order_quantity * inp.unit_cost + ordering + holding_change))

    if inp.daily_demand > 0:
        until_stockout = max(0, int(inp.current_stock // inp.daily_demand))
        covered = max(0, int((inp.current_stock + inp.order_quantity) // inp.daily_demand))
    else:
        until_stockout = covered = None

    return OrderSimulationResult(
        label=inp.label or _default_label(inp),
        projected_stock=[float(v) for v in projected],
        stockout_probability=stockout_pct,
        holding_cost_change=holding_change,
        cash_flow_impact=cash_flow,
        days_until_stockout=until_stockout,
        days_of_stock_covered=covered,
        trials=trials,
        days=days,
    )


def compare_scenarios(
    baseline: OrderSimulationInput,
    scenarios: Sequence[OrderSimulationInput],
    trials: int = ORDER_SIMULATION_TRIALS,
    seed: Optional[int] = None,
) -> ScenarioComparison:
    """
    Simulate a baseline and alternative order sizes with common random numbers,
    reporting each alternative's delta against the baseline.
    """
    base = simulate_order(baseline, trials=trials, seed=seed)
    results, deltas = [], []
    for i, scenario in enumerate(scenarios, start=1):
        if scenario.label is None:
            scenario = replace(scenario, label=f"scenario {i} ({_default_label(scenario)})")
        res = simulate_order(scenario, trials=trials, seed=seed)
        results.append(res)
        deltas.append({
            "stockout_delta": round(res.stockout_probability - base.stockout_probability, 1),
            "holding_cost_delta": res.holding_cost_change - base.holding_cost_change,
            "cash_flow_delta": res.cash_flow_impact - base.cash_flow_impact,
        })
    return ScenarioComparison(baseline=base, scenarios=results, deltas=deltas)
