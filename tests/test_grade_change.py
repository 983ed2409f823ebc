"""
Tests for the grade-change tracker (G1-G4)
"""
from datetime import date

import pytest

from inventory_intel.errors import InvalidArgumentError
from inventory_intel.grades import (
    ChangeType,
    GradeSnapshot,
    RiskLevel,
    change_type,
    diff_snapshots,
    is_new_product,
    risk_level,
    signal_and_action,
    track_grade_changes,
)


def _snap(product_id, period, grade):
    if grade is None:
        return GradeSnapshot(product_id=product_id, period=period)
    return GradeSnapshot(product_id=product_id, period=period, abc_grade=grade[0], xyz_grade=grade[1])


class TestG1_ChangeType:
    """G1: Direction of a grade change."""

    @pytest.mark.parametrize("previous,current,expected", [
        (None, "BY", ChangeType.NEW),
        ("BY", "AX", ChangeType.UPGRADE),
        ("AX", "AY", ChangeType.DOWNGRADE),
        ("BX", "BX", ChangeType.LATERAL),
        ("BX", None, ChangeType.DOWNGRADE),
    ])
    def test_direction(self, previous, current, expected):
        """G1.1: Position in the grade order decides the direction."""
        assert change_type(previous, current) == expected


class TestG2_Risk:
    """G2: Risk level of a change."""

    @pytest.mark.parametrize("previous,current,expected", [
        ("AX", "BX", RiskLevel.HIGH),    # out of the A class
        ("BX", "BY", RiskLevel.LOW),
        ("BY", "BZ", RiskLevel.HIGH),    # into Z
        ("CY", "CZ", RiskLevel.HIGH),    # bottom grades
        ("CX", "BZ", RiskLevel.MEDIUM),  # upgrade that lands on Z
        ("CX", "BX", RiskLevel.LOW),
        ("BX", None, RiskLevel.MEDIUM),  # grade lost
    ])
    def test_levels(self, previous, current, expected):
        """G2.1: Risk follows the downgrade and Z rules."""
        kind = change_type(previous, current)
        assert risk_level(previous, current, kind) == expected


class TestG3_Signals:
    """G3: Signal and recommended action."""

    @pytest.mark.parametrize("previous,current,signal", [
        ("AX", "CX", "Sales dropped sharply"),
        ("CX", "AX", "Sales surged"),
        ("BX", "BZ", "Demand destabilized"),
        ("BZ", "BX", "Demand stabilized"),
        ("BX", "BY", "Grade downgraded"),
        ("BY", "BX", "Grade upgraded"),
        (None, "AX", "New grade assigned"),
    ])
    def test_signal(self, previous, current, signal):
        """G3.1: Pattern specific signals win over the generic ones."""
        kind = change_type(previous, current)
        text, action = signal_and_action(previous, current, kind)
        assert text == signal
        assert action

    def test_diff_snapshots(self, grade_periods):
        """G3.2: Snapshot diff carries both periods."""
        jan, feb = grade_periods
        change = diff_snapshots(_snap("P1", jan, "AX"), _snap("P1", feb, "CX"))
        assert change.change_type == ChangeType.DOWNGRADE
        assert change.risk_level == RiskLevel.HIGH
        assert change.to_dict()["previous_period"] == "2026-01-01"
        assert change.to_dict()["current_period"] == "2026-02-01"

    def test_diff_needs_a_snapshot(self):
        """G3.3: Diffing nothing against nothing is a caller error."""
        with pytest.raises(InvalidArgumentError):
            diff_snapshots(None, None)


class TestG4_Tracking:
    """G4: Report over many products."""

    def _entries(self, jan, feb):
        return [
            _snap("P-low", jan, "CX"), _snap("P-low", feb, "BX"),
            _snap("P-high", jan, "AX"), _snap("P-high", feb, "BX"),
            _snap("P-same", jan, "BY"), _snap("P-same", feb, "BY"),
            _snap("P-new", feb, "CZ"),
            _snap("P-mid", jan, "CX"), _snap("P-mid", feb, "BZ"),
        ]

    def test_sorted_high_risk_first(self, grade_periods):
        """G4.1: High risk first, then by product id."""
        report = track_grade_changes(self._entries(*grade_periods))
        assert [c.product_id for c in report.changes] == ["P-high", "P-mid", "P-new", "P-low"]

    def test_counts(self, grade_periods):
        """G4.2: Unchanged products are omitted; new ones are not counted as changes."""
        report = track_grade_changes(self._entries(*grade_periods), total_products=10)
        assert "P-same" not in {c.product_id for c in report.changes}
        assert report.changed_count == 3
        assert report.total_products == 10

    def test_total_defaults_to_seen_products(self, grade_periods):
        """G4.3: Catalogue size defaults to the products in the snapshots."""
        report = track_grade_changes(self._entries(*grade_periods))
        assert report.total_products == 5

    def test_uses_two_latest_snapshots(self):
        """G4.4: Older snapshots do not affect the diff."""
        entries = [
            _snap("P1", date(2025, 11, 1), "CZ"),
            _snap("P1", date(2025, 12, 1), "AX"),
            _snap("P1", date(2026, 1, 1), "AY"),
        ]
        change = track_grade_changes(entries).changes[0]
        assert change.previous_grade == "AX"
        assert change.current_grade == "AY"

    def test_xyz_trend_last_six_periods(self):
        """G4.5: Trend counts X/Y/Z for the six most recent periods."""
        entries = []
        for month in range(1, 9):
            period = date(2025, month, 1)
            entries.append(_snap("P1", period, "AX"))
            entries.append(_snap("P2", period, "BZ"))
        report = track_grade_changes(entries)
        assert len(report.trend) == 6
        assert report.trend[0].period == date(2025, 3, 1)
        assert report.trend[-1].x_count == 1
        assert report.trend[-1].z_count == 1
        assert report.trend[-1].y_count == 0

    def test_empty(self):
        """G4.6: No snapshots, empty report."""
        report = track_grade_changes([])
        assert report.changes == []
        assert report.changed_count == 0
        assert report.total_products == 0


class TestG5_NewProduct:
    """G5: New product rule."""

    @pytest.mark.parametrize("first_sale,expected", [
        (None, True),
        (date(2026, 1, 15), True),
        (date(2025, 12, 31), True),
        (date(2025, 11, 1), False),
        (date(2024, 6, 1), False),
    ])
    def test_three_month_threshold(self, first_sale, expected):
        """G5.1: Fewer than three calendar months since first sale is new."""
        assert is_new_product(first_sale, as_of=date(2026, 2, 10)) is expected
