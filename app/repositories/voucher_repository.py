from datetime import date
from typing import Optional
from sqlalchemy import func
from sqlalchemy.orm import Session, Query

from app.models.voucher import Voucher


class VoucherRepository:
    """
    Repository for Voucher data access.

    Every read and delete is filtered by tenant_id. Reading across all
    tenants must be asked for explicitly with all_tenants=True.
    """

    def __init__(self, db: Session):
        self.db = db

    def _scoped(self, tenant_id: Optional[int], all_tenants: bool) -> Query:
        query = self.db.query(Voucher)
        if all_tenants:
            return query
        if tenant_id is None:
            raise ValueError("tenant_id is required unless all_tenants=True")
        return query.filter(Voucher.tenant_id == tenant_id)

    def create(self, voucher: Voucher) -> Voucher:
        """Create a new voucher"""
        self.db.add(voucher)
        self.db.commit()
        self.db.refresh(voucher)
        return voucher

    def get_with_filters(
        self,
        tenant_id: Optional[int],
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: Optional[int] = None,
        all_tenants: bool = False,
    ) -> list[Voucher]:
        """
        List vouchers newest purchase first.

        Args:
            tenant_id: Tenant ID for isolation
            start_date: Optional inclusive lower bound on purchase_date
            end_date: Optional exclusive upper bound on purchase_date
            limit: Optional maximum number of rows
            all_tenants: Skip the tenant filter (super-admin views only)

        Returns:
            List of Voucher objects
        """
        query = self._scoped(tenant_id, all_tenants)

        if start_date is not None:
            query = query.filter(Voucher.purchase_date >= start_date)

        if end_date is not None:
            query = query.filter(Voucher.purchase_date < end_date)

        query = query.order_by(Voucher.purchase_date.desc(), Voucher.id.desc())
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def totals(self, tenant_id: Optional[int], all_tenants: bool = False) -> dict:
        """Sum of amount, kWh and VAT plus row count"""
        row = (
            self._scoped(tenant_id, all_tenants)
            .with_entities(
                func.coalesce(func.sum(Voucher.amount), 0),
                func.coalesce(func.sum(Voucher.kwh_amount), 0),
                func.coalesce(func.sum(Voucher.vat_amount), 0),
                func.count(Voucher.id),
            )
            .one()
        )
        return {
            "total_amount": float(row[0]),
            "total_kwh": float(row[1]),
            "total_vat": float(row[2]),
            "count": int(row[3]),
        }

    def delete_by_id_and_tenant(self, voucher_id: int, tenant_id: int) -> int:
        """
        Delete a voucher with the predicate id AND tenant_id.

        Returns:
            Number of rows deleted (0 or 1)
        """
        deleted = (
            self.db.query(Voucher)
            .filter(Voucher.id == voucher_id, Voucher.tenant_id == tenant_id)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return deleted
