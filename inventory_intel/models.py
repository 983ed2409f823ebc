"""
Shared data structures: grade enums and demand time series.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from inventory_intel.errors import InvalidArgumentError, require_non_negative


# ═══════════════════════════════════════════════════════════════════════════════
# ENUMS
# ═══════════════════════════════════════════════════════════════════════════════

class ABCGrade(str, Enum):
    """ABC grade (by cumulative value share)."""
    A = "A"  # top ~80% of value
    B = "B"  # next ~15%
    C = "C"  # remainder


class XYZGrade(str, Enum):
    """XYZ grade (by demand variability)."""
    X = "X"  # CV < 0.5
    Y = "Y"  # 0.5 <= CV < 1.0
    Z = "Z"  # CV >= 1.0


class FMRGrade(str, Enum):
    """FMR grade (by movement frequency)."""
    F = "F"  # fast moving: top ~80% of outbound movements
    M = "M"  # medium
    R = "R"  # rare, including no movement at all


COMBINED_GRADES: List[str] = [a.value + x.value for a in ABCGrade for x in XYZGrade]

ABC_RANK = {"A": 0, "B": 1, "C": 2}


def grade_value(grade: Optional[Any]) -> Optional[str]:
    """Normalize an enum or string grade to its letter (None stays None)."""
    if grade is None:
        return None
    return grade.value if isinstance(grade, Enum) else str(grade)


# ═══════════════════════════════════════════════════════════════════════════════
# TIME SERIES
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TimeSeriesPoint:
    """One period bucket of demand for a SKU."""
    period: date
    quantity: float

    def __post_init__(self):
        require_non_negative("quantity", self.quantity)

    def to_dict(self) -> Dict[str, Any]:
        return {"period": self.period.isoformat(), "quantity": self.quantity}


_FREQ_ALIASES = {"monthly": "MS", "daily": "D", "weekly": "W-MON"}


def fill_gaps(points: Sequence[TimeSeriesPoint], freq: str = "monthly") -> List[TimeSeriesPoint]:
    """
    Order a demand series and fill missing periods with zero.

    Points falling in the same bucket are summed. Gaps are never dropped, so
    downstream methods always see a contiguous series.
    """
    if not points:
        return []
    rule = _FREQ_ALIASES.get(freq, freq)

    series = pd.Series(
        [p.quantity for p in points],
        index=pd.DatetimeIndex([pd.Timestamp(p.period) for p in points]),
        dtype=float,
    )
    filled = series.sort_index().resample(rule).sum()
    return [TimeSeriesPoint(period=ts.date(), quantity=float(q)) for ts, q in filled.items()]


def series_values(points: Sequence[TimeSeriesPoint]) -> List[float]:
    return [float(p.quantity) for p in points]


def to_points(values: Sequence[float], start: date, freq: str = "monthly") -> List[TimeSeriesPoint]:
    """Build a contiguous series from plain values, starting at ``start``."""
    if any(v < 0 for v in values):
        raise InvalidArgumentError("demand quantities must be >= 0")
    rule = _FREQ_ALIASES.get(freq, freq)
    index = pd.date_range(start=pd.Timestamp(start), periods=len(values), freq=rule)
    return [TimeSeriesPoint(period=ts.date(), quantity=float(v)) for ts, v in zip(index, values)]
