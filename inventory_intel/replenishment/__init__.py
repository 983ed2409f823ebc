"""
Replenishment: safety stock, reorder point, EOQ and ranked reorder
recommendations.
"""

from inventory_intel.replenishment.eoq import annual_cost, compute_eoq
from inventory_intel.replenishment.reorder import (
    InventoryStatus,
    InventoryStatusKey,
    OrderBasis,
    ReorderInput,
    ReorderPolicy,
    ReorderRecommendation,
    classify_inventory_status,
    rank_recommendations,
    recommend_batch,
    recommend_reorder,
    resolve_policy,
)
from inventory_intel.replenishment.safety_stock import (
    SafetyStockResult,
    compute_reorder_point,
    compute_safety_stock,
    service_level_z,
)

__all__ = [
    "annual_cost",
    "compute_eoq",
    "InventoryStatus",
    "InventoryStatusKey",
    "OrderBasis",
    "ReorderInput",
    "ReorderPolicy",
    "ReorderRecommendation",
    "classify_inventory_status",
    "rank_recommendations",
    "recommend_batch",
    "recommend_reorder",
    "resolve_policy",
    "SafetyStockResult",
    "compute_reorder_point",
    "compute_safety_stock",
    "service_level_z",
]
