"""
═══════════════════════════════════════════════════════════════════════════════
                    SCENARIO SIMULATOR (Monte Carlo stockout risk)
═══════════════════════════════════════════════════════════════════════════════

Each trial follows one replenishment cycle of a continuous-review (s, Q) policy:

    1. daily demand      D_t ~ max(0, Normal(μ_d, σ_d))
    2. lead time         L   ~ max(0, round(Normal(μ_L, σ_L)))
    3. the order is placed at the end of the first day stock falls to the
       reorder point (immediately when stock is already at or below it)
    4. stock is exposed until the order arrives, trigger + L days later
    5. a stockout day is a day whose cumulative demand exceeds stock

Trials are vectorized with numpy as a (trials, horizon) matrix. A seed makes
runs reproducible; σ_d = σ_L = 0 collapses every trial to the same
deterministic outcome.

Outputs:
    stockout_probability     share of trials with at least one stockout day
    expected_stockout_days   mean stockout days per cycle
    service_level_achieved   1 - stockout_probability
    percentile_outcomes      p5/p50/p95 of stock left when the order arrives
"""

from __future__ import annotations

import logging
import math
import zlib
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

import numpy as np

from inventory_intel.config import PolicyConfig
from inventory_intel.errors import require_non_negative, require_positive_int, require_probability
from inventory_intel.replenishment.safety_stock import compute_reorder_point, compute_safety_stock

logger = logging.getLogger(__name__)

MAX_HORIZON_DAYS = 730
# Allowance on the expected days to reach the reorder point
TRIGGER_HORIZON_FACTOR = 3.0
PERCENTILES = (5, 50, 95)


# ═══════════════════════════════════════════════════════════════════════════════
# DATA STRUCTURES
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class ScenarioInput:
    """
    Demand and lead-time statistics for one SKU.

    When ``reorder_point`` is None it is derived from the service level
    (and ``safety_stock`` when that is None too).
    """
    product_id: str
    current_stock: float
    average_daily_demand: float
    demand_std: float
    lead_time_days: float
    lead_time_std: Optional[float] = None
    safety_stock: Optional[float] = None
    reorder_point: Optional[float] = None
    service_level: float = 0.95

    def __post_init__(self):
        for name in ("current_stock", "average_daily_demand", "demand_std", "lead_time_days",
                     "lead_time_std", "safety_stock", "reorder_point"):
            require_non_negative(name, getattr(self, name))
        require_probability("service_level", self.service_level)

    def resolved_policy(self) -> tuple:
        """(safety_stock, reorder_point) actually simulated."""
        ss = self.safety_stock
        if ss is None:
            ss = compute_safety_stock(
                self.average_daily_demand, self.demand_std, self.lead_time_days,
                self.lead_time_std, self.service_level,
            ).safety_stock
        rop = self.reorder_point
        if rop is None:
            rop = compute_reorder_point(self.average_daily_demand, self.lead_time_days, ss)
        return ss, rop


@dataclass
class SimulationResult:
    product_id: str
    stockout_probability: float
    expected_stockout_days: float
    service_level_achieved: float
    percentile_outcomes: Dict[str, float] = field(default_factory=dict)
    expected_shortfall: float = 0.0
    target_service_level: Optional[float] = None
    safety_stock: float = 0.0
    reorder_point: float = 0.0
    trials: int = 0
    seed: Optional[int] = None

    @property
    def meets_target(self) -> Optional[bool]:
        if self.target_service_level is None:
            return None
        return self.service_level_achieved >= self.target_service_level

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product_id": self.product_id,
            "stockout_probability": round(self.stockout_probability, 4),
            "expected_stockout_days": round(self.expected_stockout_days, 3),
            "service_level_achieved": round(self.service_level_achieved, 4),
            "percentile_outcomes": {k: round(v, 2) for k, v in self.percentile_outcomes.items()},
            "expected_shortfall": round(self.expected_shortfall, 2),
            "target_service_level": self.target_service_level,
            "meets_target": self.meets_target,
            "safety_stock": round(self.safety_stock, 2),
            "reorder_point": round(self.reorder_point, 2),
            "trials": self.trials,
            "seed": self.seed,
        }


# ═══════════════════════════════════════════════════════════════════════════════
# SIMULATION
# ═══════════════════════════════════════════════════════════════════════════════

def _horizon(scenario: ScenarioInput, reorder_point: float, max_lead_time: int) -> int:
    if scenario.current_stock <= reorder_point:
        days_to_trigger = 0
    else:
        expected = (scenario.current_stock - reorder_point) / scenario.average_daily_demand
        days_to_trigger = int(math.ceil(expected * TRIGGER_HORIZON_FACTOR)) + 1
    return int(min(MAX_HORIZON_DAYS, max(1, days_to_trigger + max_lead_time)))


def simulate_stockout(
    scenario: ScenarioInput,
    trials: int = 10000,
    seed: Optional[Any] = None,
) -> SimulationResult:
    """
    Monte Carlo stockout risk for one SKU over one replenishment cycle.

    Args:
        scenario: Demand / lead-time statistics and policy
        trials: Number of trials (bounds latency)
        seed: Seed (int or numpy SeedSequence) for reproducible runs

    Returns:
        SimulationResult
    """
    require_positive_int("trials", trials)
    safety_stock, reorder_point = scenario.resolved_policy()
    rng = np.random.default_rng(seed)
    seed_value = seed if isinstance(seed, int) else None

    def result(prob, days, percentiles, shortfall) -> SimulationResult:
        return SimulationResult(
            product_id=scenario.product_id,
            stockout_probability=prob,
            expected_stockout_days=days,
            service_level_achieved=1.0 - prob,
            percentile_outcomes=percentiles,
            expected_shortfall=shortfall,
            target_service_level=scenario.service_level,
            safety_stock=safety_stock,
            reorder_point=reorder_point,
            trials=trials,
            seed=seed_value,
        )

    if scenario.average_daily_demand == 0 and scenario.demand_std == 0:
        flat = {f"p{p}": float(scenario.current_stock) for p in PERCENTILES}
        return result(0.0, 0.0, flat, 0.0)

    # Lead times per trial
    mean_lt = scenario.lead_time_days
    if scenario.lead_time_std:
        lead_times = np.rint(rng.normal(mean_lt, scenario.lead_time_std, size=trials))
        lead_times = np.maximum(lead_times, 0).astype(int)
    else:
        lead_times = np.full(trials, int(round(mean_lt)), dtype=int)

    if scenario.average_daily_demand == 0:
        # Only noise around zero demand: bound the horizon by the lead time
        horizon = int(max(1, lead_times.max()))
    else:
        horizon = _horizon(scenario, reorder_point, int(lead_times.max()))

    # Daily demand matrix
    if scenario.demand_std > 0:
        demand = rng.normal(scenario.average_daily_demand, scenario.demand_std, size=(trials, horizon))
        demand = np.maximum(demand, 0.0)
    else:
        demand = np.full((trials, horizon), scenario.average_daily_demand)

    stock = scenario.current_stock - np.cumsum(demand, axis=1)   # end-of-day stock
    days = np.arange(horizon)

    if scenario.current_stock <= reorder_point:
        trigger = np.zeros(trials, dtype=int)
    else:
        hit = stock <= reorder_point
        trigger = np.where(hit.any(axis=1), hit.argmax(axis=1) + 1, horizon)

    arrival = np.minimum(trigger + lead_times, horizon)
    exposed = days[None, :] < arrival[:, None]
    stockout_days = ((stock < 0) & exposed).sum(axis=1)

    # Stock just before the order is received
    idx = np.clip(arrival - 1, 0, horizon - 1)
    at_receipt = np.where(arrival > 0, stock[np.arange(trials), idx], scenario.current_stock)

    prob = float(np.mean(stockout_days > 0))
    percentiles = {
        f"p{p}": float(v) for p, v in zip(PERCENTILES, np.percentile(at_receipt, PERCENTILES))
    }
    shortfall = float(np.mean(np.maximum(-at_receipt, 0.0)))

    logger.debug(
        f"Simulated {scenario.product_id}: P(stockout)={prob:.4f}, "
        f"E[days]={stockout_days.mean():.3f}, horizon={horizon}"
    )
    return result(prob, float(stockout_days.mean()), percentiles, shortfall)


def sku_seed(seed: Optional[int], product_id: str) -> Optional[np.random.SeedSequence]:
    if seed is None:
        return None
    return np.random.SeedSequence([int(seed), zlib.crc32(product_id.encode("utf-8"))])


def simulate_batch(
    scenarios: Iterable[ScenarioInput],
    trials: Optional[int] = None,
    seed: Optional[int] = None,
    config: Optional[PolicyConfig] = None,
) -> List[SimulationResult]:
    """
    Simulate many SKUs. Each SKU gets its own seed derived from ``seed`` and
    its product id, so a SKU's result does not depend on the rest of the batch.
    """
    config = config or PolicyConfig()
    trials = config.simulation_trials if trials is None else trials
    results = []
    for scenario in scenarios:
        res = simulate_stockout(scenario, trials, sku_seed(seed, scenario.product_id))
        res.seed = seed
        results.append(res)
    return results


def rank_by_risk(results: Iterable[SimulationResult]) -> List[SimulationResult]:
    """Highest stockout probability first, then expected shortfall, then product id."""
    return sorted(results, key=lambda r: (-r.stockout_probability, -r.expected_shortfall, r.product_id))
