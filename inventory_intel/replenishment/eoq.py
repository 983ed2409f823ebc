"""
Economic order quantity and the related yearly cost figures.

    EOQ = sqrt(2 * D * S / H),   H = unit cost * holding rate
"""

from __future__ import annotations

import math
from typing import Optional

from inventory_intel.errors import require_non_negative

DAYS_PER_YEAR = 365


def compute_eoq(
    annual_demand: float,
    unit_cost: float,
    ordering_cost: float = 50.0,
    holding_cost_rate: float = 0.25,
) -> float:
    """
    Classic EOQ.

    Returns 0.0 (not applicable) when demand, unit cost, ordering cost or
    holding rate is not positive.
    """
    for name, value in (
        ("annual_demand", annual_demand),
        ("unit_cost", unit_cost),
        ("ordering_cost", ordering_cost),
        ("holding_cost_rate", holding_cost_rate),
    ):
        require_non_negative(name, value)

    holding_cost_per_unit = unit_cost * holding_cost_rate
    if annual_demand <= 0 or ordering_cost <= 0 or holding_cost_per_unit <= 0:
        return 0.0
    return math.sqrt(2.0 * annual_demand * ordering_cost / holding_cost_per_unit)


def annual_cost(
    annual_demand: float,
    order_quantity: float,
    unit_cost: float,
    safety_stock: float = 0.0,
    ordering_cost: float = 50.0,
    holding_cost_rate: float = 0.25,
) -> dict:
    """Yearly holding + ordering cost for an order quantity (average stock Q/2 + SS)."""
    holding_per_unit = unit_cost * holding_cost_rate
    orders_per_year = annual_demand / order_quantity if order_quantity > 0 else 0.0
    average_inventory = (order_quantity / 2 if order_quantity > 0 else 0.0) + safety_stock
    holding = average_inventory * holding_per_unit
    ordering = orders_per_year * ordering_cost
    return {
        "orders_per_year": orders_per_year,
        "holding_cost": holding,
        "ordering_cost": ordering,
        "total_cost": holding + ordering,
    }


def annualize(avg_daily_demand: Optional[float]) -> float:
    return (avg_daily_demand or 0.0) * DAYS_PER_YEAR
