"""
Inventory Intelligence - Policy Configuration
=============================================

Organization-level policy passed explicitly into every entry point of the core.

Usage:
    from inventory_intel.config import PolicyConfig

    config = PolicyConfig(target_service_level=0.98)
    config = PolicyConfig.from_env()

Environment overrides:
    INVENTORY_INTEL_SERVICE_LEVEL=0.97
    INVENTORY_INTEL_ORDERING_COST=75
    INVENTORY_INTEL_SIMULATION_TRIALS=5000
    INVENTORY_INTEL_CROSS_VALIDATE=true
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

ENV_PREFIX = "INVENTORY_INTEL_"


def _as_bool(raw: str) -> bool:
    value = raw.strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    raise ValueError(raw)


# ═══════════════════════════════════════════════════════════════════════════════
# SUPPLY COEFFICIENTS
# ═══════════════════════════════════════════════════════════════════════════════

DEFAULT_SUPPLY_COEFFICIENTS: Dict[str, float] = {
    "AX": 1.0,   # high value, stable: no adjustment
    "AY": 0.95,
    "AZ": 0.85,
    "BX": 0.95,
    "BY": 0.85,
    "BZ": 0.75,
    "CX": 0.85,
    "CY": 0.75,
    "CZ": 0.65,  # low value, erratic: largest cut
}


def get_supply_coefficient(
    coefficients: Optional[Dict[str, float]],
    abc_grade: Optional[str],
    xyz_grade: Optional[str],
) -> float:
    """Coefficient for a combined grade; 1.0 when either grade is unknown."""
    if not coefficients or not abc_grade or not xyz_grade:
        return 1.0
    return float(coefficients.get(f"{abc_grade}{xyz_grade}", 1.0))


# ═══════════════════════════════════════════════════════════════════════════════
# POLICY CONFIG
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class PolicyConfig:
    """
    Policy configuration for classification, forecasting and replenishment.

    Attributes:
        target_service_level: Target cycle service level (0.95 = 95%)
        holding_cost_rate: Annual holding cost as a share of unit cost
        ordering_cost: Fixed cost per purchase order
        abc_a_threshold / abc_b_threshold: Cumulative value cut points
        xyz_x_threshold / xyz_y_threshold: CV cut points
        fmr_f_threshold / fmr_m_threshold: Cumulative outbound-count cut points
        sma_window: Window of the simple moving average
        target_days_of_inventory: Coverage added on top of the reorder point
        default_lead_time_days: Lead time used when the supplier has none
        eoq_match_tolerance: Relative distance to EOQ reported as "eoq" basis
        backtest_periods: Held-out periods used to annotate forecasts
        cross_validate_selection: Pick automatic methods by holdout MAPE
        simulation_trials: Monte Carlo trials per SKU
        max_workers: Worker threads for batch pipelines
        supply_coefficients: Safety-stock multipliers per combined grade
    """
    target_service_level: float = 0.95

    # Cost parameters
    holding_cost_rate: float = 0.25
    ordering_cost: float = 50.0

    # ABC thresholds (cumulative share)
    abc_a_threshold: float = 0.80
    abc_b_threshold: float = 0.95

    # XYZ thresholds (coefficient of variation)
    xyz_x_threshold: float = 0.5
    xyz_y_threshold: float = 1.0

    # FMR thresholds (cumulative share of outbound movements)
    fmr_f_threshold: float = 0.80
    fmr_m_threshold: float = 0.95

    # Forecasting
    sma_window: int = 3
    backtest_periods: int = 3
    cross_validate_selection: bool = False

    # Replenishment
    target_days_of_inventory: int = 30
    default_lead_time_days: float = 7.0
    eoq_match_tolerance: float = 0.10

    # Simulation / batch
    simulation_trials: int = 10000
    max_workers: int = 4

    supply_coefficients: Dict[str, float] = field(
        default_factory=lambda: dict(DEFAULT_SUPPLY_COEFFICIENTS)
    )

    def coefficient_for(self, abc_grade: Optional[str], xyz_grade: Optional[str]) -> float:
        return get_supply_coefficient(self.supply_coefficients, abc_grade, xyz_grade)

    def with_overrides(self, **overrides: Any) -> "PolicyConfig":
        """Copy with some fields replaced (None values are ignored)."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    @classmethod
    def from_env(cls) -> "PolicyConfig":
        """Load configuration from INVENTORY_INTEL_* environment variables."""
        overrides: Dict[str, Any] = {}
        mapping = {
            "SERVICE_LEVEL": ("target_service_level", float),
            "HOLDING_COST_RATE": ("holding_cost_rate", float),
            "ORDERING_COST": ("ordering_cost", float),
            "SMA_WINDOW": ("sma_window", int),
            "TARGET_DAYS": ("target_days_of_inventory", int),
            "LEAD_TIME_DAYS": ("default_lead_time_days", float),
            "SIMULATION_TRIALS": ("simulation_trials", int),
            "MAX_WORKERS": ("max_workers", int),
            "CROSS_VALIDATE": ("cross_validate_selection", _as_bool),
        }
        for env_name, (attr, cast) in mapping.items():
            raw = os.getenv(ENV_PREFIX + env_name)
            if raw is None:
                continue
            try:
                overrides[attr] = cast(raw)
            except ValueError:
                logger.warning(f"Invalid value for {ENV_PREFIX}{env_name}: {raw!r}, using default")

        config = cls(**overrides)
        logger.debug(f"Policy config loaded from environment: {config.to_dict()}")
        return config

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target_service_level": self.target_service_level,
            "holding_cost_rate": self.holding_cost_rate,
            "ordering_cost": self.ordering_cost,
            "abc_thresholds": [self.abc_a_threshold, self.abc_b_threshold],
            "xyz_thresholds": [self.xyz_x_threshold, self.xyz_y_threshold],
            "fmr_thresholds": [self.fmr_f_threshold, self.fmr_m_threshold],
            "sma_window": self.sma_window,
            "backtest_periods": self.backtest_periods,
            "cross_validate_selection": self.cross_validate_selection,
            "target_days_of_inventory": self.target_days_of_inventory,
            "default_lead_time_days": self.default_lead_time_days,
            "simulation_trials": self.simulation_trials,
            "max_workers": self.max_workers,
            "supply_coefficients": dict(self.supply_coefficients),
        }
