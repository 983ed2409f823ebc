"""
═══════════════════════════════════════════════════════════════════════════════
                    SAFETY STOCK & REORDER POINT
═══════════════════════════════════════════════════════════════════════════════

Mathematical Formulation:
─────────────────────────
    Safety Stock (demand and lead time stochastic):
        SS = z * sqrt(L * σ_d² + μ_d² * σ_L²)

    Safety Stock (lead time variability unknown):
        SS = z * σ_d * sqrt(L)

    Reorder Point:
        ROP = μ_d * L + SS

    where:
        μ_d = average daily demand
        σ_d = standard deviation of daily demand
        L   = average lead time (days)
        σ_L = standard deviation of lead time (days)
        z   = normal quantile of the service level (1.645 for 95%)

    The safety stock is scaled by the grade supply coefficient.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Optional

from scipy import stats

from inventory_intel.errors import require_non_negative, require_probability

logger = logging.getLogger(__name__)


@dataclass
class SafetyStockResult:
    safety_stock: float
    z_score: float
    service_level: float
    method: str  # "full" (lead time variance known) or "simplified"
    coefficient: float = 1.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "safety_stock": round(self.safety_stock, 2),
            "z_score": round(self.z_score, 4),
            "service_level": self.service_level,
            "method": self.method,
            "coefficient": self.coefficient,
        }


def service_level_z(service_level: float) -> float:
    """
    z-score for a cycle service level.

    Args:
        service_level: Cycle service level, strictly between 0 and 1 (0.95 = 95%)

    Returns:
        Standard normal quantile
    """
    require_probability("service_level", service_level)
    return float(stats.norm.ppf(service_level))


def compute_safety_stock(
    avg_daily_demand: float,
    demand_std: float,
    lead_time_days: float,
    lead_time_std: Optional[float] = None,
    service_level: float = 0.95,
    coefficient: float = 1.0,
) -> SafetyStockResult:
    """
    Safety stock under demand (and optionally lead-time) uncertainty.

    No demand means no buffer: returns 0 with the z-score still reported.
    """
    for name, value in (
        ("avg_daily_demand", avg_daily_demand),
        ("demand_std", demand_std),
        ("lead_time_days", lead_time_days),
        ("lead_time_std", lead_time_std),
        ("coefficient", coefficient),
    ):
        require_non_negative(name, value)

    z = service_level_z(service_level)
    known_lt_variance = lead_time_std is not None and lead_time_std > 0

    if avg_daily_demand == 0:
        return SafetyStockResult(0.0, z, service_level, "simplified", coefficient)

    if known_lt_variance:
        variance = lead_time_days * demand_std ** 2 + avg_daily_demand ** 2 * lead_time_std ** 2
        ss = z * math.sqrt(variance)
        method = "full"
    else:
        ss = z * demand_std * math.sqrt(lead_time_days)
        method = "simplified"

    ss = max(0.0, ss * coefficient)
    return SafetyStockResult(ss, z, service_level, method, coefficient)


def compute_reorder_point(avg_daily_demand: float, lead_time_days: float, safety_stock: float) -> float:
    """ROP = μ_d * L + SS."""
    require_non_negative("avg_daily_demand", avg_daily_demand)
    require_non_negative("lead_time_days", lead_time_days)
    return avg_daily_demand * lead_time_days + max(0.0, safety_stock)
