"""
═══════════════════════════════════════════════════════════════════════════════
                    GRADE-CHANGE TRACKER
═══════════════════════════════════════════════════════════════════════════════

Diff of each product's two most recent grade snapshots.

Change types:
    new         no previous grade
    upgrade     combined grade moved up in GRADE_ORDER
    downgrade   combined grade moved down (or the grade was lost)
    lateral     same position (never counted as a change)

Changes are always recomputed from the snapshots, never stored.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from inventory_intel.errors import InvalidArgumentError

logger = logging.getLogger(__name__)

# Higher is better; ABC dominates, XYZ breaks ties inside an ABC class
GRADE_ORDER: Dict[str, int] = {
    "AX": 9, "AY": 8, "AZ": 7,
    "BX": 6, "BY": 5, "BZ": 4,
    "CX": 3, "CY": 2, "CZ": 1,
}

HIGH_RISK_MAX_ORDER = 4
NEW_PRODUCT_THRESHOLD_MONTHS = 3
TREND_PERIODS = 6


class ChangeType(str, Enum):
    NEW = "new"
    UPGRADE = "upgrade"
    DOWNGRADE = "downgrade"
    LATERAL = "lateral"


class RiskLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


_RISK_RANK = {RiskLevel.HIGH: 0, RiskLevel.MEDIUM: 1, RiskLevel.LOW: 2}


# ═══════════════════════════════════════════════════════════════════════════════
# DATA STRUCTURES
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class GradeSnapshot:
    """Grades of one product for one period (first day of the month)."""
    product_id: str
    period: date
    abc_grade: Optional[str] = None
    xyz_grade: Optional[str] = None
    combined_grade: Optional[str] = None
    fmr_grade: Optional[str] = None

    @property
    def grade(self) -> Optional[str]:
        if self.combined_grade:
            return self.combined_grade
        if self.abc_grade and self.xyz_grade:
            return self.abc_grade + self.xyz_grade
        return None


@dataclass
class GradeChange:
    product_id: str
    previous_grade: Optional[str]
    current_grade: Optional[str]
    change_type: ChangeType
    risk_level: RiskLevel
    signal: str
    action: str
    previous_period: Optional[date] = None
    current_period: Optional[date] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product_id": self.product_id,
            "previous_grade": self.previous_grade,
            "current_grade": self.current_grade,
            "change_type": self.change_type.value,
            "risk_level": self.risk_level.value,
            "signal": self.signal,
            "action": self.action,
            "previous_period": self.previous_period.isoformat() if self.previous_period else None,
            "current_period": self.current_period.isoformat() if self.current_period else None,
        }


@dataclass
class GradeTrendPoint:
    period: date
    x_count: int = 0
    y_count: int = 0
    z_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "period": self.period.isoformat(),
            "x_count": self.x_count,
            "y_count": self.y_count,
            "z_count": self.z_count,
        }


@dataclass
class GradeChangeReport:
    changes: List[GradeChange] = field(default_factory=list)
    trend: List[GradeTrendPoint] = field(default_factory=list)
    total_products: int = 0
    changed_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "changes": [c.to_dict() for c in self.changes],
            "trend": [t.to_dict() for t in self.trend],
            "total_products": self.total_products,
            "changed_count": self.changed_count,
        }


# ═══════════════════════════════════════════════════════════════════════════════
# RULES
# ═══════════════════════════════════════════════════════════════════════════════

def change_type(previous: Optional[str], current: Optional[str]) -> ChangeType:
    if not previous:
        return ChangeType.NEW
    if not current:
        return ChangeType.DOWNGRADE
    prev_order = GRADE_ORDER.get(previous, 0)
    curr_order = GRADE_ORDER.get(current, 0)
    if curr_order > prev_order:
        return ChangeType.UPGRADE
    if curr_order < prev_order:
        return ChangeType.DOWNGRADE
    return ChangeType.LATERAL


def risk_level(previous: Optional[str], current: Optional[str], kind: ChangeType) -> RiskLevel:
    """
    High: a downgrade out of or within the A class, into the bottom four
    grades, or into a Z grade. Medium: any other Z grade, or a lost grade.
    """
    if not current:
        return RiskLevel.MEDIUM
    if kind == ChangeType.DOWNGRADE and (
        (previous or "").startswith("A")
        or current.startswith("A")
        or GRADE_ORDER.get(current, 0) <= HIGH_RISK_MAX_ORDER
        or current.endswith("Z")
    ):
        return RiskLevel.HIGH
    if current.endswith("Z"):
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def signal_and_action(previous: Optional[str], current: Optional[str], kind: ChangeType) -> Tuple[str, str]:
    if kind == ChangeType.NEW:
        return "New grade assigned", "Monitor initial demand"
    if kind == ChangeType.LATERAL:
        return "Grade unchanged", "Keep current policy"

    prev_abc, prev_xyz = (previous or "  ")[0], (previous or "  ")[1:2]
    curr_abc, curr_xyz = (current or "  ")[0], (current or "  ")[1:2]

    if prev_abc == "A" and curr_abc == "C":
        return "Sales dropped sharply", "Analyze the cause and review stock reduction"
    if prev_abc == "C" and curr_abc == "A":
        return "Sales surged", "Raise safety stock and expand supply"
    if prev_xyz == "X" and curr_xyz == "Z":
        return "Demand destabilized", "Raise safety stock and shorten the order cycle"
    if prev_xyz == "Z" and curr_xyz == "X":
        return "Demand stabilized", "Safety stock can be lowered"

    if kind == ChangeType.DOWNGRADE:
        return "Grade downgraded", "Increase monitoring"
    return "Grade upgraded", "Positive change, keep current policy"


def diff_snapshots(previous: Optional[GradeSnapshot], current: Optional[GradeSnapshot]) -> GradeChange:
    """Grade change between two snapshots of the same product."""
    if current is None and previous is None:
        raise InvalidArgumentError("at least one snapshot is required")
    prev_grade = previous.grade if previous else None
    curr_grade = current.grade if current else None
    kind = change_type(prev_grade, curr_grade)
    signal, action = signal_and_action(prev_grade, curr_grade, kind)
    return GradeChange(
        product_id=(current or previous).product_id,
        previous_grade=prev_grade,
        current_grade=curr_grade,
        change_type=kind,
        risk_level=risk_level(prev_grade, curr_grade, kind),
        signal=signal,
        action=action,
        previous_period=previous.period if previous else None,
        current_period=current.period if current else None,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# TRACKER
# ═══════════════════════════════════════════════════════════════════════════════

def _xyz_trend(entries: List[GradeSnapshot], periods: int) -> List[GradeTrendPoint]:
    by_period: Dict[date, GradeTrendPoint] = {}
    for entry in entries:
        point = by_period.setdefault(entry.period, GradeTrendPoint(entry.period))
        xyz = entry.xyz_grade or (entry.grade or "")[1:2]
        if xyz == "X":
            point.x_count += 1
        elif xyz == "Y":
            point.y_count += 1
        elif xyz == "Z":
            point.z_count += 1
    return [by_period[p] for p in sorted(by_period)][-periods:]


def track_grade_changes(
    entries: Iterable[GradeSnapshot],
    total_products: Optional[int] = None,
    trend_periods: int = TREND_PERIODS,
) -> GradeChangeReport:
    """
    Grade changes between each product's two most recent snapshots.

    Args:
        entries: Grade snapshots of any number of products and periods
        total_products: Size of the active catalogue (defaults to the number
            of products seen in ``entries``)
        trend_periods: Number of most recent periods in the XYZ trend

    Returns:
        GradeChangeReport with changes sorted high risk first, then product id
    """
    entries = list(entries)
    per_product: Dict[str, List[GradeSnapshot]] = defaultdict(list)
    for entry in entries:
        per_product[entry.product_id].append(entry)

    changes = []
    for product_id, history in per_product.items():
        history.sort(key=lambda e: e.period, reverse=True)
        current = history[0]
        previous = history[1] if len(history) > 1 else None
        if previous is not None and previous.grade == current.grade:
            continue
        changes.append(diff_snapshots(previous, current))

    changes.sort(key=lambda c: (_RISK_RANK[c.risk_level], c.product_id))
    changed = sum(1 for c in changes if c.change_type not in (ChangeType.LATERAL, ChangeType.NEW))

    logger.debug(f"Grade changes: {len(changes)} products differ, {changed} up/down")
    return GradeChangeReport(
        changes=changes,
        trend=_xyz_trend(entries, trend_periods),
        total_products=total_products if total_products is not None else len(per_product),
        changed_count=changed,
    )


def months_between(start: date, end: date) -> int:
    return (end.year - start.year) * 12 + (end.month - start.month)


def is_new_product(first_sale: Optional[date], as_of: Optional[date] = None) -> bool:
    """
    A product with no sales, or fewer than three calendar months since its
    first sale, is new and gets no ABC-XYZ grade yet.
    """
    if first_sale is None:
        return True
    as_of = as_of or date.today()
    return months_between(first_sale, as_of) < NEW_PRODUCT_THRESHOLD_MONTHS
