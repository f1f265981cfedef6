import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from app.core.dates import month_bounds, shift_months
from app.core.exceptions import NoTenantAccessException
from app.core.permissions import Permission, read_scope
from app.models.base import utc_now
from app.models.tenant_context import TenantContext
from app.repositories.reading_repository import ReadingRepository
from app.repositories.tenant_membership_repository import TenantMembershipRepository
from app.repositories.tenant_repository import TenantRepository
from app.repositories.voucher_repository import VoucherRepository

logger = logging.getLogger(__name__)

RECENT_LIMIT = 5
DASHBOARD_MONTHS = 6


class ReportService:
    """Read-only aggregate views over a tenant's vouchers and readings"""

    def __init__(self, db: Session):
        self.db = db
        self.voucher_repo = VoucherRepository(db)
        self.reading_repo = ReadingRepository(db)
        self.tenant_repo = TenantRepository(db)
        self.membership_repo = TenantMembershipRepository(db)

    def list_transactions(self, context: TenantContext, month: Optional[str] = None) -> dict:
        """
        History view: vouchers and readings side by side.

        Args:
            context: Tenant context
            month: Optional 'YYYY-MM' filter

        Returns:
            dict with vouchers, readings and their counts
        """
        tenant_id, all_tenants = read_scope(context)
        start_date, end_date = month_bounds(month) if month else (None, None)

        vouchers = self.voucher_repo.get_with_filters(
            tenant_id, start_date=start_date, end_date=end_date, all_tenants=all_tenants
        )
        readings = self.reading_repo.get_with_filters(
            tenant_id, start_date=start_date, end_date=end_date, all_tenants=all_tenants
        )
        return {
            "vouchers": vouchers,
            "readings": readings,
            "total_vouchers": len(vouchers),
            "total_readings": len(readings),
        }

    def get_dashboard(self, context: TenantContext, today: Optional[date] = None) -> dict:
        """
        Dashboard totals for the tenant.

        Includes voucher totals, average cost per kWh, reading statistics,
        the five most recent vouchers and readings, and purchase totals for
        each of the last six months (current month included, oldest first).
        """
        tenant_id, all_tenants = read_scope(context)
        today = today or utc_now().date()

        totals = self.voucher_repo.totals(tenant_id, all_tenants=all_tenants)
        stats = self.reading_repo.stats(tenant_id, all_tenants=all_tenants)

        avg_cost = totals["total_amount"] / totals["total_kwh"] if totals["total_kwh"] else 0.0

        first_month = shift_months(today, -(DASHBOARD_MONTHS - 1))
        monthly = {
            shift_months(first_month, offset).strftime("%Y-%m"): {"amount": 0.0, "kwh": 0.0}
            for offset in range(DASHBOARD_MONTHS)
        }
        recent_months = self.voucher_repo.get_with_filters(
            tenant_id,
            start_date=first_month,
            end_date=shift_months(today, 1),
            all_tenants=all_tenants,
        )
        for voucher in recent_months:
            bucket = monthly[voucher.purchase_date.strftime("%Y-%m")]
            bucket["amount"] += float(voucher.amount)
            bucket["kwh"] += float(voucher.kwh_amount)

        if all_tenants:
            member_count = self.membership_repo.count_all()
        else:
            member_count = self.membership_repo.count_members(tenant_id)

        return {
            "total_vouchers": totals["count"],
            "total_amount": totals["total_amount"],
            "total_kwh": totals["total_kwh"],
            "total_vat": totals["total_vat"],
            "avg_cost_per_kwh": round(avg_cost, 4),
            "reading_count": stats["count"],
            "lowest_reading": stats["lowest"],
            "highest_reading": stats["highest"],
            "avg_reading": round(stats["average"], 2),
            "recent_vouchers": self.voucher_repo.get_with_filters(
                tenant_id, limit=RECENT_LIMIT, all_tenants=all_tenants
            ),
            "recent_readings": self.reading_repo.get_with_filters(
                tenant_id, limit=RECENT_LIMIT, all_tenants=all_tenants
            ),
            "monthly": [
                {"month": month, "amount": round(values["amount"], 2), "kwh": round(values["kwh"], 2)}
                for month, values in monthly.items()
            ],
            "member_count": member_count,
        }

    def export_tenant_data(self, context: TenantContext) -> dict:
        """
        Full export of the caller's tenant. Any member may export.

        Raises:
            NoTenantAccessException: If the caller has no tenant
        """
        context.require(Permission.EXPORT_DATA)
        tenant_id = context.require_tenant()
        tenant = self.tenant_repo.get_by_id(tenant_id)
        if tenant is None:
            raise NoTenantAccessException("Tenant no longer exists")

        vouchers = self.voucher_repo.get_with_filters(tenant_id)
        readings = self.reading_repo.get_with_filters(tenant_id)
        totals = self.voucher_repo.totals(tenant_id)

        logger.info(
            "Tenant %s exported by user %s (%s vouchers, %s readings)",
            tenant_id, context.user_id, len(vouchers), len(readings),
        )
        return {
            "tenant": tenant,
            "vouchers": vouchers,
            "readings": readings,
            "summary": {
                "voucher_count": len(vouchers),
                "reading_count": len(readings),
                "total_amount": totals["total_amount"],
                "total_kwh": totals["total_kwh"],
                "total_vat": totals["total_vat"],
                "exported_at": utc_now(),
            },
            "exported_by": context.email,
        }
