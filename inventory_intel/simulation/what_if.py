"""
What-if and sensitivity analysis of replenishment policy parameters.

For a parameter set (service level, lead time, demand statistics, cost) the
analysis reports safety stock, reorder point, EOQ, yearly holding/ordering
cost and the implied stockout probability. The sensitivity sweep repeats it
over a range of one parameter.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, List, Optional

import numpy as np
from scipy import stats

from inventory_intel.config import PolicyConfig
from inventory_intel.errors import InvalidArgumentError, require_non_negative, require_positive_int
from inventory_intel.replenishment.eoq import DAYS_PER_YEAR, annual_cost, compute_eoq
from inventory_intel.replenishment.safety_stock import compute_reorder_point, compute_safety_stock

logger = logging.getLogger(__name__)

SERVICE_LEVEL_MIN = 0.90
SERVICE_LEVEL_MAX = 0.999
DEFAULT_SENSITIVITY_STEPS = 10


class SensitivityParameter(str, Enum):
    SERVICE_LEVEL = "service_level"
    LEAD_TIME_DAYS = "lead_time_days"
    SAFETY_STOCK = "safety_stock"


@dataclass
class WhatIfInput:
    service_level: float
    lead_time_days: float
    daily_demand: float
    demand_std: float
    unit_cost: float
    annual_demand: Optional[float] = None
    holding_cost_rate: Optional[float] = None
    ordering_cost: Optional[float] = None

    def __post_init__(self):
        for name in ("lead_time_days", "daily_demand", "demand_std", "unit_cost",
                     "annual_demand", "holding_cost_rate", "ordering_cost"):
            require_non_negative(name, getattr(self, name))


@dataclass
class WhatIfResult:
    safety_stock: int
    reorder_point: int
    eoq: int
    service_level: float
    stockout_probability: float  # percent
    holding_cost: float
    annual_ordering_cost: float
    total_inventory_cost: float
    orders_per_year: float
    parameter_value: Optional[float] = None
    parameter: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "safety_stock": self.safety_stock,
            "reorder_point": self.reorder_point,
            "eoq": self.eoq,
            "service_level": round(self.service_level, 4),
            "stockout_probability": self.stockout_probability,
            "holding_cost": self.holding_cost,
            "annual_ordering_cost": self.annual_ordering_cost,
            "total_inventory_cost": self.total_inventory_cost,
            "orders_per_year": self.orders_per_year,
            "parameter": self.parameter,
            "parameter_value": self.parameter_value,
        }


def _clamp_level(level: float) -> float:
    return min(SERVICE_LEVEL_MAX, max(SERVICE_LEVEL_MIN, level))


def _build(inp: WhatIfInput, safety_stock: int, service_level: float, config: PolicyConfig) -> WhatIfResult:
    holding_rate = inp.holding_cost_rate if inp.holding_cost_rate is not None else config.holding_cost_rate
    ordering_cost = inp.ordering_cost if inp.ordering_cost is not None else config.ordering_cost
    annual_demand = inp.annual_demand if inp.annual_demand is not None else inp.daily_demand * DAYS_PER_YEAR
    lead_time = max(inp.lead_time_days, 1.0)

    eoq = compute_eoq(annual_demand, inp.unit_cost, ordering_cost, holding_rate)
    eoq_units = max(1, math.ceil(eoq)) if eoq > 0 else 0
    costs = annual_cost(annual_demand, eoq_units, inp.unit_cost, safety_stock, ordering_cost, holding_rate)

    return WhatIfResult(
        safety_stock=safety_stock,
        reorder_point=int(math.ceil(compute_reorder_point(inp.daily_demand, lead_time, safety_stock))),
        eoq=eoq_units,
        service_level=service_level,
        stockout_probability=round((1 - service_level) * 100, 1),
        holding_cost=round(costs["holding_cost"], 2),
        annual_ordering_cost=round(costs["ordering_cost"], 2),
        total_inventory_cost=round(costs["total_cost"], 2),
        orders_per_year=round(costs["orders_per_year"], 2),
    )


def calculate_what_if(inp: WhatIfInput, config: Optional[PolicyConfig] = None) -> WhatIfResult:
    """Policy figures for one parameter set (service level clamped to 0.90..0.999)."""
    config = config or PolicyConfig()
    level = _clamp_level(inp.service_level)
    ss = compute_safety_stock(inp.daily_demand, inp.demand_std, max(inp.lead_time_days, 1.0),
                              service_level=level).safety_stock
    return _build(inp, int(math.ceil(ss)), level, config)


def _what_if_fixed_safety_stock(inp: WhatIfInput, safety_stock: int, config: PolicyConfig) -> WhatIfResult:
    """Service level implied by a given safety stock: Φ(SS / (σ_d·√L))."""
    denominator = inp.demand_std * math.sqrt(max(inp.lead_time_days, 1.0))
    if denominator > 0:
        level = float(stats.norm.cdf(safety_stock / denominator))
    else:
        level = SERVICE_LEVEL_MAX
    return _build(inp, safety_stock, level, config)


def sensitivity_analysis(
    base: WhatIfInput,
    parameter: Any,
    minimum: float,
    maximum: float,
    steps: int = DEFAULT_SENSITIVITY_STEPS,
    config: Optional[PolicyConfig] = None,
) -> List[WhatIfResult]:
    """
    Sweep one parameter over ``steps + 1`` evenly spaced values.

    Returns an empty list when ``minimum > maximum``.
    """
    config = config or PolicyConfig()
    require_positive_int("steps", steps)
    try:
        parameter = SensitivityParameter(parameter)
    except ValueError:
        raise InvalidArgumentError(f"Unknown sensitivity parameter: {parameter!r}")
    if minimum > maximum:
        return []

    results = []
    for value in np.linspace(minimum, maximum, steps + 1):
        if parameter == SensitivityParameter.SERVICE_LEVEL:
            level = _clamp_level(float(value))
            res = calculate_what_if(replace(base, service_level=level), config)
            param_value = level
        elif parameter == SensitivityParameter.LEAD_TIME_DAYS:
            lead_time = max(1, int(round(value)))
            res = calculate_what_if(replace(base, lead_time_days=lead_time), config)
            param_value = float(lead_time)
        else:
            ss = max(0, int(round(value)))
            res = _what_if_fixed_safety_stock(base, ss, config)
            param_value = float(ss)
        res.parameter = parameter.value
        res.parameter_value = param_value
        results.append(res)

    logger.debug(f"Sensitivity on {parameter.value}: {len(results)} points")
    return results
