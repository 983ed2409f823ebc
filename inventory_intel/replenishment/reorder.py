"""
Inventory Intelligence - Reorder Recommendations
================================================

For each SKU at or below its reorder point (or with unknown stock):

    1. safety stock (grade-scaled) and reorder point from demand/lead-time stats
    2. target = ROP + daily demand * target days of inventory
    3. need   = target - current stock
    4. qty    = max(MOQ, ceil(need))         (never fractional, never below MOQ)
    5. basis  = min_order | eoq | rop
    6. urgency 0..3 from the stock position vs. safety stock / ROP

Recommendations are ranked by urgency, then ABC grade, then stock/ROP ratio,
then SKU, so repeated runs on unchanged data give the same order.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from inventory_intel.config import PolicyConfig
from inventory_intel.errors import require_non_negative
from inventory_intel.models import ABC_RANK, grade_value
from inventory_intel.replenishment.eoq import annualize, compute_eoq
from inventory_intel.replenishment.safety_stock import compute_reorder_point, compute_safety_stock

logger = logging.getLogger(__name__)

# Demand CV assumed when no demand deviation is supplied
DEFAULT_DEMAND_CV = 0.3


# ═══════════════════════════════════════════════════════════════════════════════
# INVENTORY STATUS
# ═══════════════════════════════════════════════════════════════════════════════

class InventoryStatusKey(str, Enum):
    OUT_OF_STOCK = "out_of_stock"
    CRITICAL = "critical"
    SHORTAGE = "shortage"
    CAUTION = "caution"
    OPTIMAL = "optimal"
    EXCESS = "excess"
    OVERSTOCK = "overstock"


_STATUS_META = {
    InventoryStatusKey.OUT_OF_STOCK: (True, 3, "Place an emergency order now"),
    InventoryStatusKey.CRITICAL: (True, 3, "Emergency order, negotiate a shorter lead time"),
    InventoryStatusKey.SHORTAGE: (True, 2, "Place an order"),
    InventoryStatusKey.CAUTION: (True, 1, "Review and place an order"),
    InventoryStatusKey.OPTIMAL: (False, 0, "Stock level is healthy"),
    InventoryStatusKey.EXCESS: (True, 1, "Plan to run down stock (promotion, transfer)"),
    InventoryStatusKey.OVERSTOCK: (True, 2, "Plan disposal (discount, return, write-off)"),
}

EXCESS_MULTIPLE = 3.0
OVERSTOCK_MULTIPLE = 5.0
CRITICAL_SHARE = 0.5


@dataclass
class InventoryStatus:
    key: InventoryStatusKey
    needs_action: bool
    urgency_level: int
    recommendation: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key.value,
            "needs_action": self.needs_action,
            "urgency_level": self.urgency_level,
            "recommendation": self.recommendation,
        }


def classify_inventory_status(current_stock: float, safety_stock: float, reorder_point: float) -> InventoryStatus:
    """
    Position of the stock against safety stock and reorder point.

        stock <= 0                 out_of_stock
        stock <  0.5 * SS          critical
        stock <  SS                shortage
        stock <  ROP               caution
        stock <  3 * SS            optimal
        stock <  5 * SS            excess
        otherwise                  overstock
    Without a safety stock anything at or above the ROP is optimal.
    """
    if current_stock <= 0:
        key = InventoryStatusKey.OUT_OF_STOCK
    elif current_stock < safety_stock * CRITICAL_SHARE:
        key = InventoryStatusKey.CRITICAL
    elif current_stock < safety_stock:
        key = InventoryStatusKey.SHORTAGE
    elif current_stock < reorder_point:
        key = InventoryStatusKey.CAUTION
    elif safety_stock <= 0 or current_stock < safety_stock * EXCESS_MULTIPLE:
        key = InventoryStatusKey.OPTIMAL
    elif current_stock < safety_stock * OVERSTOCK_MULTIPLE:
        key = InventoryStatusKey.EXCESS
    else:
        key = InventoryStatusKey.OVERSTOCK

    needs_action, urgency, text = _STATUS_META[key]
    return InventoryStatus(key, needs_action, urgency, text)


def is_overstocked(current_stock: float, safety_stock: float, reorder_point: float) -> bool:
    key = classify_inventory_status(current_stock, safety_stock, reorder_point).key
    return key in (InventoryStatusKey.EXCESS, InventoryStatusKey.OVERSTOCK)


# ═══════════════════════════════════════════════════════════════════════════════
# DATA STRUCTURES
# ═══════════════════════════════════════════════════════════════════════════════

class OrderBasis(str, Enum):
    EOQ = "eoq"
    ROP = "rop"
    MIN_ORDER = "min_order"


@dataclass
class ReorderInput:
    """
    Per-SKU replenishment input.

    ``current_stock=None`` means the stock is unknown (treated as eligible and
    as zero on hand). ``safety_stock``/``reorder_point`` are the values already
    configured on the product; when given they take precedence over the
    computed ones for eligibility.
    """
    product_id: str
    avg_daily_sales: float
    current_stock: Optional[float] = None
    sku: Optional[str] = None
    forecast_daily_sales: Optional[float] = None
    demand_std: Optional[float] = None
    abc_grade: Optional[str] = None
    xyz_grade: Optional[str] = None
    moq: int = 1
    lead_time_days: Optional[float] = None
    lead_time_std: Optional[float] = None
    unit_price: float = 0.0
    cost_price: float = 0.0
    safety_stock: Optional[float] = None
    reorder_point: Optional[float] = None

    def __post_init__(self):
        for name in ("avg_daily_sales", "current_stock", "forecast_daily_sales", "demand_std",
                     "moq", "lead_time_days", "lead_time_std", "unit_price", "cost_price",
                     "safety_stock", "reorder_point"):
            require_non_negative(name, getattr(self, name))
        self.abc_grade = grade_value(self.abc_grade)
        self.xyz_grade = grade_value(self.xyz_grade)

    @property
    def key(self) -> str:
        return self.sku or self.product_id


@dataclass
class ReorderRecommendation:
    product_id: str
    sku: str
    recommended_qty: int
    safety_stock: float
    reorder_point: float
    eoq: float
    method: OrderBasis
    urgency_level: int
    reason: str
    current_stock: Optional[float] = None
    abc_grade: Optional[str] = None
    xyz_grade: Optional[str] = None

    @property
    def stock_ratio(self) -> float:
        """Stock relative to the reorder point (0 when stock is unknown)."""
        if self.current_stock is None or self.reorder_point <= 0:
            return 0.0
        return self.current_stock / self.reorder_point

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product_id": self.product_id,
            "sku": self.sku,
            "recommended_qty": self.recommended_qty,
            "safety_stock": round(self.safety_stock, 2),
            "reorder_point": round(self.reorder_point, 2),
            "eoq": round(self.eoq, 2),
            "method": self.method.value,
            "urgency_level": self.urgency_level,
            "reason": self.reason,
            "current_stock": self.current_stock,
            "abc_grade": self.abc_grade,
            "xyz_grade": self.xyz_grade,
        }


# ═══════════════════════════════════════════════════════════════════════════════
# RECOMMENDATION
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class ReorderPolicy:
    """Demand assumptions and stock levels a SKU is managed with."""
    daily_demand: float
    demand_std: float
    lead_time_days: float
    safety_stock: float
    reorder_point: float


def resolve_policy(item: ReorderInput, config: Optional[PolicyConfig] = None) -> ReorderPolicy:
    """
    Safety stock and reorder point for one SKU.

    Configured levels on the item take precedence over computed ones. A missing
    demand deviation is taken as DEFAULT_DEMAND_CV of the daily demand.
    """
    config = config or PolicyConfig()

    demand = item.forecast_daily_sales if item.forecast_daily_sales is not None else item.avg_daily_sales
    demand_std = item.demand_std if item.demand_std is not None else demand * DEFAULT_DEMAND_CV
    lead_time = item.lead_time_days if item.lead_time_days is not None else config.default_lead_time_days

    ss_result = compute_safety_stock(
        avg_daily_demand=demand,
        demand_std=demand_std,
        lead_time_days=lead_time,
        lead_time_std=item.lead_time_std,
        service_level=config.target_service_level,
        coefficient=config.coefficient_for(item.abc_grade, item.xyz_grade),
    )
    safety_stock = item.safety_stock if item.safety_stock is not None else ss_result.safety_stock
    computed_rop = compute_reorder_point(demand, lead_time, ss_result.safety_stock)
    reorder_point = item.reorder_point if item.reorder_point is not None else computed_rop
    return ReorderPolicy(
        daily_demand=demand,
        demand_std=demand_std,
        lead_time_days=lead_time,
        safety_stock=safety_stock,
        reorder_point=reorder_point,
    )


def recommend_reorder(
    item: ReorderInput,
    config: Optional[PolicyConfig] = None,
) -> Optional[ReorderRecommendation]:
    """
    Reorder recommendation for one SKU, or None when stock is above the
    reorder point.
    """
    config = config or PolicyConfig()

    policy = resolve_policy(item, config)
    demand = policy.daily_demand
    safety_stock = policy.safety_stock
    reorder_point = policy.reorder_point

    if item.current_stock is not None and item.current_stock > reorder_point:
        return None

    on_hand = item.current_stock if item.current_stock is not None else 0.0
    target = reorder_point + demand * config.target_days_of_inventory
    need = max(0, math.ceil(target - on_hand - 1e-9))
    moq = int(item.moq)
    qty = max(moq, need)

    eoq = compute_eoq(annualize(demand), item.cost_price, config.ordering_cost, config.holding_cost_rate)

    if qty == moq and moq > 0:
        method = OrderBasis.MIN_ORDER
        reason = f"Minimum order quantity {moq} applied (computed need {need})"
    elif eoq > 0 and abs(qty - eoq) < eoq * config.eoq_match_tolerance:
        method = OrderBasis.EOQ
        reason = f"Economic order quantity basis (EOQ {eoq:.0f})"
    else:
        method = OrderBasis.ROP
        reason = (f"Reorder point {reorder_point:.0f} plus "
                  f"{config.target_days_of_inventory} days of cover")

    if item.current_stock is None:
        urgency = 3
        reason += "; stock unknown, treated as empty"
    else:
        status = classify_inventory_status(item.current_stock, safety_stock, reorder_point)
        urgency = max(1, status.urgency_level)

    return ReorderRecommendation(
        product_id=item.product_id,
        sku=item.key,
        recommended_qty=int(qty),
        safety_stock=safety_stock,
        reorder_point=reorder_point,
        eoq=eoq,
        method=method,
        urgency_level=urgency,
        reason=reason,
        current_stock=item.current_stock,
        abc_grade=item.abc_grade,
        xyz_grade=item.xyz_grade,
    )


def rank_recommendations(recommendations: Iterable[ReorderRecommendation]) -> List[ReorderRecommendation]:
    """Most urgent first; A grade before B/C at equal urgency; SKU breaks ties."""
    return sorted(
        recommendations,
        key=lambda r: (-r.urgency_level, ABC_RANK.get(r.abc_grade or "", 3), r.stock_ratio, r.sku),
    )


def recommend_batch(
    items: Iterable[ReorderInput],
    config: Optional[PolicyConfig] = None,
) -> List[ReorderRecommendation]:
    """Recommendations for all eligible SKUs, ranked."""
    config = config or PolicyConfig()
    recs = [r for r in (recommend_reorder(item, config) for item in items) if r is not None]
    logger.info(f"Reorder recommendations: {len(recs)} eligible SKUs")
    return rank_recommendations(recs)
