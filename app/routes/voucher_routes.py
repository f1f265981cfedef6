from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.dates import MONTH_PATTERN
from app.database import get_db
from app.dependencies import get_tenant_context
from app.models.tenant_context import TenantContext
from app.services.voucher_service import VoucherService
from app.schemas.voucher_schemas import (
    VoucherCreate,
    VoucherListResponse,
    CreatedResponse,
    DeletedResponse,
)

router = APIRouter()


@router.post("", response_model=CreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_voucher(
    data: VoucherCreate,
    context: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
):
    """Record a voucher purchase for the current tenant"""
    service = VoucherService(db)
    voucher = service.create_voucher(data, context)
    return {"id": voucher.id}


@router.get("", response_model=VoucherListResponse)
async def list_vouchers(
    month: Optional[str] = Query(None, pattern=MONTH_PATTERN, description="Filter by YYYY-MM"),
    context: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
):
    """List the tenant's vouchers, newest first"""
    service = VoucherService(db)
    vouchers = service.list_vouchers(context, month)
    return VoucherListResponse(items=vouchers, total=len(vouchers))


@router.delete("/{voucher_id}", response_model=DeletedResponse)
async def delete_voucher(
    voucher_id: int,
    context: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
):
    """Delete a voucher of the current tenant"""
    service = VoucherService(db)
    return {"deleted_id": service.delete_voucher(voucher_id, context)}
