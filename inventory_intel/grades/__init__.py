"""
Grade history and grade-change tracking.
"""

from inventory_intel.grades.grade_change import (
    GRADE_ORDER,
    ChangeType,
    GradeChange,
    GradeChangeReport,
    GradeSnapshot,
    GradeTrendPoint,
    RiskLevel,
    change_type,
    diff_snapshots,
    is_new_product,
    risk_level,
    signal_and_action,
    track_grade_changes,
)
from inventory_intel.grades.history import Base, GradeHistoryEntry, GradeHistoryRepository

__all__ = [
    "GRADE_ORDER",
    "ChangeType",
    "GradeChange",
    "GradeChangeReport",
    "GradeSnapshot",
    "GradeTrendPoint",
    "RiskLevel",
    "change_type",
    "diff_snapshots",
    "is_new_product",
    "risk_level",
    "signal_and_action",
    "track_grade_changes",
    "Base",
    "GradeHistoryEntry",
    "GradeHistoryRepository",
]
