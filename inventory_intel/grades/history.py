"""
Grade history persistence.

One row per organization, product and period, written when classification
runs and never updated afterwards. The caller owns the engine and session.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import Column, Date, DateTime, Float, Index, String, UniqueConstraint
from sqlalchemy.orm import Session, declarative_base

from inventory_intel.classification.abc_xyz import CV_SENTINEL, ClassificationResult
from inventory_intel.grades.grade_change import GradeSnapshot

logger = logging.getLogger(__name__)

Base = declarative_base()


def month_start(day: date) -> date:
    return day.replace(day=1)


# ═══════════════════════════════════════════════════════════════════════════════
# SQLAlchemy MODELS
# ═══════════════════════════════════════════════════════════════════════════════

class GradeHistoryEntry(Base):
    """ABC-XYZ (and FMR) grades of a product for one month."""
    __tablename__ = "grade_history"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    organization_id = Column(String(64), nullable=False, index=True)
    product_id = Column(String(64), nullable=False)
    period = Column(Date, nullable=False)  # first day of the month

    abc_grade = Column(String(1), nullable=True)
    xyz_grade = Column(String(1), nullable=True)
    combined_grade = Column(String(2), nullable=True)  # "AX", "BY", ...
    fmr_grade = Column(String(1), nullable=True)  # None when movements were not graded

    sales_value = Column(Float, nullable=True)
    coefficient_of_variation = Column(Float, nullable=True)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)

    __table_args__ = (
        UniqueConstraint("organization_id", "product_id", "period", name="uq_grade_history_org_product_period"),
        Index("ix_grade_history_org_period", "organization_id", "period"),
    )

    def to_snapshot(self) -> GradeSnapshot:
        return GradeSnapshot(
            product_id=self.product_id,
            period=self.period,
            abc_grade=self.abc_grade,
            xyz_grade=self.xyz_grade,
            combined_grade=self.combined_grade,
            fmr_grade=self.fmr_grade,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "product_id": self.product_id,
            "period": self.period.isoformat() if self.period else None,
            "abc_grade": self.abc_grade,
            "xyz_grade": self.xyz_grade,
            "combined_grade": self.combined_grade,
            "fmr_grade": self.fmr_grade,
            "sales_value": self.sales_value,
            "coefficient_of_variation": self.coefficient_of_variation,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


# ═══════════════════════════════════════════════════════════════════════════════
# REPOSITORY
# ═══════════════════════════════════════════════════════════════════════════════

class GradeHistoryRepository:
    """Insert-only access to grade snapshots."""

    def __init__(self, session: Session):
        self.session = session

    def record_snapshot(
        self,
        organization_id: str,
        period: date,
        results: Iterable[ClassificationResult],
    ) -> int:
        """
        Persist one snapshot row per classified product for the month of
        ``period``. Products that already have a row for that month are left
        untouched.

        Returns:
            Number of rows inserted
        """
        period = month_start(period)
        existing = {
            product_id
            for (product_id,) in self.session.query(GradeHistoryEntry.product_id).filter(
                GradeHistoryEntry.organization_id == organization_id,
                GradeHistoryEntry.period == period,
            )
        }

        inserted = 0
        for result in results:
            if result.id in existing:
                continue
            cv = result.coefficient_of_variation
            self.session.add(GradeHistoryEntry(
                organization_id=organization_id,
                product_id=result.id,
                period=period,
                abc_grade=result.abc_grade.value,
                xyz_grade=result.xyz_grade.value,
                combined_grade=result.combined_grade,
                fmr_grade=result.fmr_grade.value if result.fmr_grade else None,
                sales_value=result.value,
                coefficient_of_variation=None if cv >= CV_SENTINEL else round(cv, 2),
            ))
            existing.add(result.id)
            inserted += 1

        self.session.commit()
        logger.info(f"Grade snapshot {organization_id} {period.isoformat()}: {inserted} rows recorded")
        return inserted

    def entries(self, organization_id: str) -> List[GradeHistoryEntry]:
        """All rows of an organization, most recent period first."""
        return (
            self.session.query(GradeHistoryEntry)
            .filter(GradeHistoryEntry.organization_id == organization_id)
            .order_by(GradeHistoryEntry.period.desc(), GradeHistoryEntry.product_id)
            .all()
        )

    def latest_entries(self, organization_id: str, per_product: int = 2) -> List[GradeSnapshot]:
        """The ``per_product`` most recent snapshots of every product."""
        seen: Dict[str, int] = {}
        latest = []
        for row in self.entries(organization_id):
            count = seen.get(row.product_id, 0)
            if count >= per_product:
                continue
            seen[row.product_id] = count + 1
            latest.append(row.to_snapshot())
        return latest

    def snapshots(self, organization_id: str, since: Optional[date] = None) -> List[GradeSnapshot]:
        """All snapshots (optionally from ``since`` on), for the XYZ trend."""
        query = self.session.query(GradeHistoryEntry).filter(
            GradeHistoryEntry.organization_id == organization_id
        )
        if since is not None:
            query = query.filter(GradeHistoryEntry.period >= month_start(since))
        return [row.to_snapshot() for row in query.order_by(GradeHistoryEntry.period).all()]

    def count(self, organization_id: str) -> int:
        return self.session.query(GradeHistoryEntry).filter(
            GradeHistoryEntry.organization_id == organization_id
        ).count()
