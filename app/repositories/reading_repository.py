from datetime import date
from typing import Optional
from sqlalchemy import func
from sqlalchemy.orm import Session, Query

from app.models.reading import Reading


class ReadingRepository:
    """Repository for Reading data access, filtered by tenant_id"""

    def __init__(self, db: Session):
        self.db = db

    def _scoped(self, tenant_id: Optional[int], all_tenants: bool) -> Query:
        query = self.db.query(Reading)
        if all_tenants:
            return query
        if tenant_id is None:
            raise ValueError("tenant_id is required unless all_tenants=True")
        return query.filter(Reading.tenant_id == tenant_id)

    def create(self, reading: Reading) -> Reading:
        """Create a new reading"""
        self.db.add(reading)
        self.db.commit()
        self.db.refresh(reading)
        return reading

    def get_with_filters(
        self,
        tenant_id: Optional[int],
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: Optional[int] = None,
        all_tenants: bool = False,
    ) -> list[Reading]:
        """List readings newest reading_date first (end_date is exclusive)"""
        query = self._scoped(tenant_id, all_tenants)

        if start_date is not None:
            query = query.filter(Reading.reading_date >= start_date)

        if end_date is not None:
            query = query.filter(Reading.reading_date < end_date)

        query = query.order_by(Reading.reading_date.desc(), Reading.id.desc())
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def stats(self, tenant_id: Optional[int], all_tenants: bool = False) -> dict:
        """Count, lowest, highest and average reading value"""
        row = (
            self._scoped(tenant_id, all_tenants)
            .with_entities(
                func.count(Reading.id),
                func.min(Reading.reading_value),
                func.max(Reading.reading_value),
                func.avg(Reading.reading_value),
            )
            .one()
        )
        return {
            "count": int(row[0]),
            "lowest": float(row[1] or 0),
            "highest": float(row[2] or 0),
            "average": float(row[3] or 0),
        }

    def delete_by_id_and_tenant(self, reading_id: int, tenant_id: int) -> int:
        """Delete with the predicate id AND tenant_id; returns rows deleted"""
        deleted = (
            self.db.query(Reading)
            .filter(Reading.id == reading_id, Reading.tenant_id == tenant_id)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return deleted
