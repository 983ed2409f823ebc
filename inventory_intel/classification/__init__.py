"""
ABC-XYZ classification of SKUs (value x demand variability).
"""

from inventory_intel.classification.abc_xyz import (
    CV_SENTINEL,
    FMR_WINDOW_MONTHS,
    STRATEGIES,
    ABCXYZItem,
    ClassificationResult,
    ClassificationSummary,
    classify_dataframe,
    classify_items,
    coefficient_of_variation,
    grade_abc,
    grade_fmr,
    grade_xyz,
)

__all__ = [
    "CV_SENTINEL",
    "FMR_WINDOW_MONTHS",
    "STRATEGIES",
    "ABCXYZItem",
    "ClassificationResult",
    "ClassificationSummary",
    "classify_dataframe",
    "classify_items",
    "coefficient_of_variation",
    "grade_abc",
    "grade_fmr",
    "grade_xyz",
]
