"""
Simulation: Monte Carlo stockout risk, order simulation and what-if analysis.
"""

from inventory_intel.simulation.order_simulation import (
    OrderSimulationInput,
    OrderSimulationResult,
    ScenarioComparison,
    compare_scenarios,
    simulate_order,
)
from inventory_intel.simulation.scenario_simulator import (
    ScenarioInput,
    SimulationResult,
    rank_by_risk,
    sku_seed,
    simulate_batch,
    simulate_stockout,
)
from inventory_intel.simulation.what_if import (
    SensitivityParameter,
    WhatIfInput,
    WhatIfResult,
    calculate_what_if,
    sensitivity_analysis,
)

__all__ = [
    "OrderSimulationInput",
    "OrderSimulationResult",
    "ScenarioComparison",
    "compare_scenarios",
    "simulate_order",
    "ScenarioInput",
    "SimulationResult",
    "rank_by_risk",
    "sku_seed",
    "simulate_batch",
    "simulate_stockout",
    "SensitivityParameter",
    "WhatIfInput",
    "WhatIfResult",
    "calculate_what_if",
    "sensitivity_analysis",
]
