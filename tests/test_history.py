"""
Tests for grade history persistence (H1-H2)
"""
from datetime import date

from inventory_intel.classification import ABCXYZItem, classify_items
from inventory_intel.grades import ChangeType, GradeHistoryEntry, GradeHistoryRepository, track_grade_changes


def _classify(raw):
    return classify_items([ABCXYZItem(**r) for r in raw]).results


class TestH1_RecordSnapshot:
    """H1: Insert-only snapshots."""

    def test_records_one_row_per_product(self, db_session, pareto_items):
        """H1.1: Every classified product gets a row for the month."""
        repo = GradeHistoryRepository(db_session)
        inserted = repo.record_snapshot("org-1", date(2026, 1, 17), _classify(pareto_items))
        assert inserted == 3
        rows = repo.entries("org-1")
        assert {r.period for r in rows} == {date(2026, 1, 1)}
        assert {r.combined_grade for r in rows} == {"AX", "BY", "CZ"}

    def test_rows_never_updated(self, db_session, pareto_items):
        """H1.2: Re-running the same month leaves existing rows as they were."""
        repo = GradeHistoryRepository(db_session)
        repo.record_snapshot("org-1", date(2026, 1, 1), _classify(pareto_items))

        changed = [dict(item, value=10) if item["id"] == "A" else item for item in pareto_items]
        inserted = repo.record_snapshot("org-1", date(2026, 1, 20), _classify(changed))

        assert inserted == 0
        assert repo.count("org-1") == 3
        row = db_session.query(GradeHistoryEntry).filter_by(product_id="A").one()
        assert row.abc_grade == "A"
        assert row.sales_value == 8000

    def test_undefined_cv_stored_as_null(self, db_session):
        """H1.3: Undefined CV is not persisted as the sentinel."""
        repo = GradeHistoryRepository(db_session)
        repo.record_snapshot("org-1", date(2026, 1, 1), _classify([{"id": "X1", "value": 5}]))
        row = repo.entries("org-1")[0]
        assert row.coefficient_of_variation is None
        assert row.xyz_grade == "Z"

    def test_organizations_isolated(self, db_session, pareto_items):
        """H1.4: Rows are scoped to the organization."""
        repo = GradeHistoryRepository(db_session)
        repo.record_snapshot("org-1", date(2026, 1, 1), _classify(pareto_items))
        repo.record_snapshot("org-2", date(2026, 1, 1), _classify(pareto_items[:1]))
        assert repo.count("org-1") == 3
        assert repo.count("org-2") == 1


class TestH2_Queries:
    """H2: Reading snapshots back for change tracking."""

    def test_latest_entries_feed_tracker(self, db_session, pareto_items):
        """H2.1: Two months of snapshots produce the expected changes."""
        repo = GradeHistoryRepository(db_session)
        repo.record_snapshot("org-1", date(2025, 12, 1), _classify(pareto_items))
        repo.record_snapshot("org-1", date(2026, 1, 1), _classify(pareto_items))

        swapped = [
            dict(pareto_items[0], value=500),
            pareto_items[1],
            dict(pareto_items[2], value=8000),
        ]
        repo.record_snapshot("org-1", date(2026, 2, 1), _classify(swapped))

        latest = repo.latest_entries("org-1")
        assert len(latest) == 6
        assert {s.period for s in latest} == {date(2026, 1, 1), date(2026, 2, 1)}

        report = track_grade_changes(latest)
        by_id = {c.product_id: c for c in report.changes}
        assert by_id["A"].previous_grade == "AX"
        assert by_id["A"].current_grade == "CX"
        assert by_id["A"].change_type == ChangeType.DOWNGRADE
        assert by_id["C"].change_type == ChangeType.UPGRADE
        assert "B" not in by_id

    def test_snapshots_since(self, db_session, pareto_items):
        """H2.2: Snapshots can be limited to recent periods."""
        repo = GradeHistoryRepository(db_session)
        repo.record_snapshot("org-1", date(2025, 12, 1), _classify(pareto_items))
        repo.record_snapshot("org-1", date(2026, 1, 1), _classify(pareto_items))
        recent = repo.snapshots("org-1", since=date(2026, 1, 15))
        assert len(recent) == 3
        assert all(s.period == date(2026, 1, 1) for s in recent)

    def test_fmr_grade_stored_with_snapshot(self, db_session):
        """H2.3: The FMR grade is persisted and read back; ungraded items store None."""
        repo = GradeHistoryRepository(db_session)
        results = _classify([
            {"id": "F1", "value": 100, "outbound_counts": [9, 8, 10, 9, 11, 10]},
            {"id": "R1", "value": 50, "outbound_counts": [0, 0, 1, 0, 0, 0]},
            {"id": "N1", "value": 10},
        ])
        repo.record_snapshot("org-1", date(2026, 3, 1), results)
        rows = {r.product_id: r for r in repo.entries("org-1")}
        assert rows["F1"].fmr_grade == "F"
        assert rows["R1"].fmr_grade == "R"
        assert rows["N1"].fmr_grade is None
        snapshots = {s.product_id: s for s in repo.snapshots("org-1")}
        assert snapshots["F1"].fmr_grade == "F"
        assert rows["F1"].to_dict()["fmr_grade"] == "F"
