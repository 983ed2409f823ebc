"""
Inventory Intelligence - ABC/XYZ Classifier

ABC: Pareto grade by cumulative share of value (revenue or proxy).
XYZ: demand-variability grade by coefficient of variation (CV).
FMR: movement-frequency grade by monthly outbound counts (optional).

Conventions:
- Ties in value keep their input order (stable sort), so grade boundaries are
  deterministic.
- CV uses the population standard deviation (ddof=0).
- Single-point or all-zero histories have undefined CV and are graded Z.

References:
- Silver et al. (2016). Inventory and Production Management in Supply Chains
- Scholz-Reiter et al. (2012). Analysis and classification of demand patterns
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from inventory_intel.config import PolicyConfig
from inventory_intel.errors import require_non_negative, require_non_negative_series
from inventory_intel.models import ABCGrade, COMBINED_GRADES, FMRGrade, XYZGrade

logger = logging.getLogger(__name__)

# CV reported when it is undefined or the mean is zero
CV_SENTINEL = 999.0

# Float tolerance on cumulative-share cut points
_SHARE_EPS = 1e-9

# Months of outbound counts looked at by the FMR grade
FMR_WINDOW_MONTHS = 6


STRATEGIES: Dict[str, str] = {
    "AX": "Maintain low safety stock, frequent small orders (JIT candidate)",
    "AY": "Moderate safety stock, review forecasts monthly",
    "AZ": "Increase safety stock, monitor closely",
    "BX": "Automate replenishment with periodic review",
    "BY": "Standard safety stock, periodic review",
    "BZ": "Order to demand signals, keep buffer moderate",
    "CX": "Bulk orders at long intervals, minimal attention",
    "CY": "Low safety stock, consolidate orders",
    "CZ": "Make/buy to order, consider delisting",
}


# ============================================================
# DATA STRUCTURES
# ============================================================

@dataclass
class ABCXYZItem:
    """Input item for classification."""
    id: str
    value: float
    demand_history: List[float] = field(default_factory=list)
    name: str = ""
    outbound_counts: Optional[List[float]] = None

    def __post_init__(self):
        require_non_negative("value", self.value)
        require_non_negative_series("demand_history", self.demand_history)
        if self.outbound_counts is not None:
            require_non_negative_series("outbound_counts", self.outbound_counts)


@dataclass
class ClassificationResult:
    """Classification of a single item."""
    id: str
    abc_grade: ABCGrade
    xyz_grade: XYZGrade
    coefficient_of_variation: float
    strategy: str
    value: float = 0.0
    cumulative_share: float = 0.0
    name: str = ""
    fmr_grade: Optional[FMRGrade] = None

    @property
    def combined_grade(self) -> str:
        return f"{self.abc_grade.value}{self.xyz_grade.value}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "abc_grade": self.abc_grade.value,
            "xyz_grade": self.xyz_grade.value,
            "combined_grade": self.combined_grade,
            "coefficient_of_variation": round(self.coefficient_of_variation, 4),
            "strategy": self.strategy,
            "value": self.value,
            "cumulative_share": round(self.cumulative_share, 4),
            "fmr_grade": self.fmr_grade.value if self.fmr_grade else None,
        }


@dataclass
class ClassificationSummary:
    """Results (in input order) plus the 9-cell grade count matrix."""
    results: List[ClassificationResult]
    matrix: Dict[str, int]

    @property
    def total(self) -> int:
        return len(self.results)

    def by_id(self) -> Dict[str, ClassificationResult]:
        return {r.id: r for r in self.results}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "results": [r.to_dict() for r in self.results],
            "matrix": dict(self.matrix),
            "total": self.total,
        }


# ============================================================
# XYZ
# ============================================================

def coefficient_of_variation(history: Sequence[float]) -> Optional[float]:
    """
    CV = population stddev / mean.

    Returns None when undefined (fewer than 2 points or all zeros) and
    CV_SENTINEL when the mean is not positive but the values vary.
    """
    values = np.asarray(history, dtype=float)
    if values.size < 2 or not np.any(values):
        return None
    mean = float(values.mean())
    std = float(values.std(ddof=0))
    if mean <= 0:
        return CV_SENTINEL
    return std / mean


def grade_xyz(cv: Optional[float], config: Optional[PolicyConfig] = None) -> XYZGrade:
    """Grade a CV. A CV exactly on a cut point belongs to the more variable grade."""
    config = config or PolicyConfig()
    if cv is None:
        return XYZGrade.Z
    if cv < config.xyz_x_threshold:
        return XYZGrade.X
    if cv < config.xyz_y_threshold:
        return XYZGrade.Y
    return XYZGrade.Z


# ============================================================
# ABC / FMR
# ============================================================

def _pareto_ranks(values: Sequence[float], first_cut: float, second_cut: float) -> List[tuple]:
    """
    Rank items into three Pareto classes (0, 1, 2) by cumulative share.

    An item is placed by the share accumulated *before* it, so the item that
    crosses a cut point stays in the higher class. Returns (rank, share after
    the item) aligned with ``values``.
    """
    n = len(values)
    total = float(sum(values))
    # sorted() is stable: equal values keep input order
    order = sorted(range(n), key=lambda i: -values[i])

    out: List[Optional[tuple]] = [None] * n
    running = 0.0
    for idx in order:
        before = running / total if total > 0 else 1.0
        running += values[idx]
        share = running / total if total > 0 else 1.0
        if before + _SHARE_EPS < first_cut:
            rank = 0
        elif before + _SHARE_EPS < second_cut:
            rank = 1
        else:
            rank = 2
        out[idx] = (rank, share)
    return out


_ABC_BY_RANK = (ABCGrade.A, ABCGrade.B, ABCGrade.C)
_FMR_BY_RANK = (FMRGrade.F, FMRGrade.M, FMRGrade.R)


def grade_abc(values: Sequence[float], config: Optional[PolicyConfig] = None) -> List[tuple]:
    """
    Assign ABC grades.

    Returns a list of (grade, cumulative_share) aligned with ``values``.
    A zero total grades everything C.
    """
    config = config or PolicyConfig()
    ranks = _pareto_ranks(values, config.abc_a_threshold, config.abc_b_threshold)
    return [(_ABC_BY_RANK[rank], share) for rank, share in ranks]


def grade_fmr(
    outbound_counts: Sequence[Sequence[float]],
    config: Optional[PolicyConfig] = None,
) -> List[FMRGrade]:
    """
    Assign FMR (fast / medium / rare) grades from monthly outbound movement counts.

    Only the last FMR_WINDOW_MONTHS months of each series count. Items are
    ranked by total movements with the same cumulative-share rule as ABC;
    items that never moved are R.
    """
    config = config or PolicyConfig()
    totals = []
    for counts in outbound_counts:
        require_non_negative_series("outbound_counts", counts)
        totals.append(float(sum(list(counts)[-FMR_WINDOW_MONTHS:])))
    ranks = _pareto_ranks(totals, config.fmr_f_threshold, config.fmr_m_threshold)
    return [
        FMRGrade.R if total == 0 else _FMR_BY_RANK[rank]
        for total, (rank, _) in zip(totals, ranks)
    ]


# ============================================================
# CLASSIFIER
# ============================================================

def empty_matrix() -> Dict[str, int]:
    return {code: 0 for code in COMBINED_GRADES}


def _grade_fmr_items(items: Sequence[ABCXYZItem], config: PolicyConfig) -> List[Optional[FMRGrade]]:
    """FMR over the items that carry outbound counts; the rest get None."""
    graded = [i for i, item in enumerate(items) if item.outbound_counts is not None]
    out: List[Optional[FMRGrade]] = [None] * len(items)
    grades = grade_fmr([items[i].outbound_counts for i in graded], config)
    for i, grade in zip(graded, grades):
        out[i] = grade
    return out


def classify_items(
    items: Sequence[ABCXYZItem],
    config: Optional[PolicyConfig] = None,
) -> ClassificationSummary:
    """
    Classify items into the 3x3 ABC-XYZ grid.

    Args:
        items: Items with value and demand history
        config: Policy configuration (cut points)

    Returns:
        ClassificationSummary with results in input order and the grade matrix.
        Empty input gives an empty summary with all counts zero.
    """
    config = config or PolicyConfig()
    matrix = empty_matrix()
    if not items:
        return ClassificationSummary(results=[], matrix=matrix)

    abc = grade_abc([item.value for item in items], config)
    fmr = _grade_fmr_items(items, config)

    results = []
    for item, (abc_grade, share), fmr_grade in zip(items, abc, fmr):
        cv = coefficient_of_variation(item.demand_history)
        xyz_grade = grade_xyz(cv, config)
        combined = f"{abc_grade.value}{xyz_grade.value}"
        matrix[combined] += 1
        results.append(ClassificationResult(
            id=item.id,
            name=item.name,
            abc_grade=abc_grade,
            xyz_grade=xyz_grade,
            coefficient_of_variation=cv if cv is not None else CV_SENTINEL,
            strategy=STRATEGIES[combined],
            value=item.value,
            cumulative_share=share,
            fmr_grade=fmr_grade,
        ))

    logger.debug(f"Classified {len(results)} items: {matrix}")
    return ClassificationSummary(results=results, matrix=matrix)


def classify_dataframe(
    df: pd.DataFrame,
    config: Optional[PolicyConfig] = None,
) -> pd.DataFrame:
    """
    DataFrame variant of ``classify_items``.

    Expects columns ``id``, ``value`` and ``demand_history``; returns a copy with
    ``abc_grade``, ``xyz_grade``, ``combined_grade``, ``cv`` and ``strategy`` added.
    """
    out = df.copy()
    items = [
        ABCXYZItem(id=str(row.id), value=float(row.value), demand_history=list(row.demand_history))
        for row in out.itertuples(index=False)
    ]
    summary = classify_items(items, config)
    out["abc_grade"] = [r.abc_grade.value for r in summary.results]
    out["xyz_grade"] = [r.xyz_grade.value for r in summary.results]
    out["combined_grade"] = [r.combined_grade for r in summary.results]
    out["cv"] = [r.coefficient_of_variation for r in summary.results]
    out["strategy"] = [r.strategy for r in summary.results]
    return out
