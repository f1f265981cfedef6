from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.dates import MONTH_PATTERN
from app.database import get_db
from app.dependencies import get_tenant_context
from app.models.tenant_context import TenantContext
from app.services.report_service import ReportService
from app.schemas.report_schemas import TransactionsResponse, DashboardResponse, ExportResponse

router = APIRouter()


@router.get("/transactions", response_model=TransactionsResponse)
async def list_transactions(
    month: Optional[str] = Query(None, pattern=MONTH_PATTERN, description="Filter by YYYY-MM"),
    context: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
):
    """Vouchers and readings of the tenant, optionally for one month"""
    service = ReportService(db)
    return service.list_transactions(context, month)


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    context: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
):
    """
    Dashboard totals.

    - Voucher totals and average cost per kWh
    - Reading statistics
    - Recent entries and the last six months of purchases
    """
    service = ReportService(db)
    return service.get_dashboard(context)


@router.get("/export", response_model=ExportResponse)
async def export_data(
    context: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
):
    """Export all of the tenant's data. Available to every member."""
    service = ReportService(db)
    return service.export_tenant_data(context)
